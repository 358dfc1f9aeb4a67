from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from comic_notes.cancellation import CancellationToken
from comic_notes.errors import (
    Cancelled,
    DecodeError,
    DomainError,
    FetchError,
    HttpStatusError,
    NotConfigured,
    TransportError,
)
from comic_notes.metadata.models import (
    IssueRecord,
    IssueSummary,
    PersonRecord,
    SearchResults,
    VolumeRecord,
)
from comic_notes.metadata.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ISSUE_SEARCH_FIELDS = "id,name,issue_number,cover_date,volume,image,deck,resource_type"
VOLUME_SEARCH_FIELDS = "id,name,start_year,publisher,count_of_issues,image,deck,resource_type"
ISSUE_DETAIL_FIELDS = (
    "id,name,issue_number,cover_date,store_date,description,deck,image,volume,"
    "person_credits,character_credits,story_arc_credits,site_detail_url,api_detail_url"
)
VOLUME_DETAIL_FIELDS = "id,name,start_year,publisher,count_of_issues,description,deck,image,site_detail_url"
VOLUME_ISSUE_FIELDS = "id,name,issue_number,cover_date"
PERSON_DETAIL_FIELDS = "id,name,deck,description,birth,death,site_detail_url,image"

ISSUE_PREFIX = "4000"
VOLUME_PREFIX = "4050"
PERSON_PREFIX = "4040"


class ComicVineClient:
    """
    Async ComicVine API client.

    Every outbound request (API calls and image downloads) passes through one
    `RateLimiter`, so requests are serialized and spaced by at least the
    limiter's interval. Share the limiter between clients to keep the budget
    process-wide.
    """

    def __init__(
        self,
        api_key: str,
        *,
        rate_limiter: RateLimiter | None = None,
        base_url: str = "https://comicvine.gamespot.com/api",
        user_agent: str = "comic-notes/0.1",
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s, connect=timeout_s, read=timeout_s, write=timeout_s),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ComicVineClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # -- transport -----------------------------------------------------------

    async def _dispatch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        token: CancellationToken | None,
    ) -> httpx.Response:
        if token is not None:
            token.raise_if_cancelled()
        await self.rate_limiter.acquire(token)
        try:
            call = self._client.get(url, params=params)
            response = await (token.guard(call) if token is not None else call)
        except Cancelled:
            raise
        except httpx.RequestError as exc:
            if token is not None and token.cancelled:
                raise Cancelled() from exc
            logger.warning("ComicVine request failed: %s (%s)", _redact(url), exc)
            raise TransportError(f"API request failed: {exc}") from exc
        if token is not None:
            token.raise_if_cancelled()
        if not 200 <= response.status_code < 300:
            logger.warning("ComicVine request returned HTTP %s: %s", response.status_code, _redact(url))
            raise HttpStatusError(response.status_code, url=_redact(url))
        return response

    async def request(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> Any:
        """Fetch `url` and return its decoded JSON body."""
        response = await self._dispatch(url, params=params, token=token)
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"Malformed JSON from {_redact(url)}") from exc

    async def download(self, url: str, *, token: CancellationToken | None = None) -> bytes:
        response = await self._dispatch(url, params=None, token=token)
        return response.content

    async def _api(
        self,
        path: str,
        *,
        params: dict[str, Any],
        token: CancellationToken | None,
    ) -> Any:
        if not self.api_key:
            raise NotConfigured("ComicVine API key not configured")
        url = path if path.startswith("http") else f"{self.base_url}/{path.lstrip('/')}"
        query = {"api_key": self.api_key, "format": "json", **params}
        try:
            payload = await self.request(url, params=query, token=token)
        except FetchError as exc:
            if token is not None and token.cancelled and not isinstance(exc, Cancelled):
                raise Cancelled() from exc
            raise
        if not isinstance(payload, dict):
            raise DecodeError("ComicVine response is not a JSON object")
        error = payload.get("error")
        if error != "OK":
            raise DomainError(str(error))
        return payload.get("results")

    # -- endpoints -----------------------------------------------------------

    async def search(
        self,
        query: str,
        *,
        resources: tuple[str, ...] = ("issue", "volume"),
        limit: int = 10,
        token: CancellationToken | None = None,
    ) -> SearchResults:
        query = query.strip()
        if not query:
            raise ValueError("search query must not be empty")
        fields = ISSUE_SEARCH_FIELDS if resources == ("issue",) else f"{ISSUE_SEARCH_FIELDS},{VOLUME_SEARCH_FIELDS}"
        results = await self._api(
            "search/",
            params={
                "query": query,
                "resources": ",".join(resources),
                "field_list": _dedupe_fields(fields),
                "limit": limit,
            },
            token=token,
        )
        issues: list[IssueRecord] = []
        volumes: list[VolumeRecord] = []
        for item in results or []:
            if not isinstance(item, dict):
                continue
            kind = item.get("resource_type")
            if kind == "volume" or (kind is None and "volume" not in item and "start_year" in item):
                volumes.append(_validate(VolumeRecord, item))
            else:
                issues.append(_validate(IssueRecord, item))
        return SearchResults(issues=issues, volumes=volumes)

    async def get_issue(self, issue_id: int, *, token: CancellationToken | None = None) -> IssueRecord:
        results = await self._api(
            f"issue/{ISSUE_PREFIX}-{issue_id}/",
            params={"field_list": ISSUE_DETAIL_FIELDS},
            token=token,
        )
        return _validate(IssueRecord, results)

    async def get_volume(self, volume_id: int, *, token: CancellationToken | None = None) -> VolumeRecord:
        results = await self._api(
            f"volume/{VOLUME_PREFIX}-{volume_id}/",
            params={"field_list": VOLUME_DETAIL_FIELDS},
            token=token,
        )
        return _validate(VolumeRecord, results)

    async def list_volume_issues(
        self,
        volume_id: int,
        *,
        limit: int = 100,
        offset: int = 0,
        token: CancellationToken | None = None,
    ) -> list[IssueSummary]:
        results = await self._api(
            "issues/",
            params={
                "filter": f"volume:{volume_id}",
                "field_list": VOLUME_ISSUE_FIELDS,
                "sort": "issue_number:asc",
                "limit": limit,
                "offset": offset,
            },
            token=token,
        )
        return _validate_list(IssueSummary, results)

    async def get_person(
        self,
        person: int | str,
        *,
        token: CancellationToken | None = None,
    ) -> PersonRecord:
        """Fetch a person by numeric id or by the credit's `api_detail_url`."""
        path = person if isinstance(person, str) else f"person/{PERSON_PREFIX}-{person}/"
        results = await self._api(path, params={"field_list": PERSON_DETAIL_FIELDS}, token=token)
        return _validate(PersonRecord, results)


def _validate(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected {model.__name__} payload: {exc.error_count()} validation error(s)") from exc


def _validate_list(model: type[M], data: Any) -> list[M]:
    try:
        return TypeAdapter(list[model]).validate_python(data or [])
    except ValidationError as exc:
        raise DecodeError(f"Unexpected {model.__name__} list payload") from exc


def _dedupe_fields(fields: str) -> str:
    seen: list[str] = []
    for f in fields.split(","):
        if f and f not in seen:
            seen.append(f)
    return ",".join(seen)


def _redact(url: str) -> str:
    # never log the api key
    return url.split("?", 1)[0]
