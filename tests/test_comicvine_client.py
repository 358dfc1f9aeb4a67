from __future__ import annotations

import asyncio

import httpx
import pytest
from fakes import (
    BASE_URL,
    BYRNE_ID,
    ISSUE_ID,
    VOLUME_ID,
    FakeComicVine,
    envelope,
    issue_payload,
    make_client,
    person_payload,
    volume_payload,
)

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


@pytest.mark.asyncio
async def test_get_issue(fake: FakeComicVine) -> None:
    async with make_client(fake) as client:
        issue = await client.get_issue(ISSUE_ID)

    assert issue.id == ISSUE_ID
    assert issue.issue_number == "141"
    assert issue.volume.id == VOLUME_ID
    assert [c.name for c in issue.person_credits] == ["Chris Claremont", "John Byrne"]
    assert issue.story_arc_credits == []

    request = fake.requests[0]
    assert request.url.path == f"/api/issue/4000-{ISSUE_ID}/"
    assert request.url.params["api_key"] == "test-key"
    assert request.url.params["format"] == "json"
    assert "person_credits" in request.url.params["field_list"]


@pytest.mark.asyncio
async def test_get_volume_coerces_loose_fields(fake: FakeComicVine) -> None:
    async with make_client(fake) as client:
        volume = await client.get_volume(VOLUME_ID)

    assert volume.start_year == 1963
    assert volume.publisher_name == "Marvel"


@pytest.mark.asyncio
async def test_get_person_by_detail_url() -> None:
    fake = FakeComicVine()
    fake.add(
        f"/api/person/4040-{BYRNE_ID}/",
        envelope(person_payload(BYRNE_ID, "John Byrne", death={"date": "2099-01-01 00:00:00.000000", "timezone_type": 3})),
    )
    async with make_client(fake) as client:
        person = await client.get_person(f"{BASE_URL}/person/4040-{BYRNE_ID}/")

    assert person.name == "John Byrne"
    assert person.death == "2099-01-01 00:00:00.000000"
    assert fake.requests[0].url.params["api_key"] == "test-key"


@pytest.mark.asyncio
async def test_search_splits_issues_and_volumes() -> None:
    fake = FakeComicVine()
    fake.add(
        "/api/search/",
        envelope(
            [
                {**volume_payload(), "resource_type": "volume"},
                {"id": ISSUE_ID, "issue_number": "141", "resource_type": "issue", "volume": {"id": VOLUME_ID, "name": "Uncanny X-Men"}},
            ]
        ),
    )
    async with make_client(fake) as client:
        results = await client.search("  x-men ")

    assert [v.id for v in results.volumes] == [VOLUME_ID]
    assert [i.id for i in results.issues] == [ISSUE_ID]
    params = fake.requests[0].url.params
    assert params["query"] == "x-men"
    assert params["resources"] == "issue,volume"


@pytest.mark.asyncio
async def test_empty_search_is_rejected(fake: FakeComicVine) -> None:
    async with make_client(fake) as client:
        with pytest.raises(ValueError):
            await client.search("   ")
    assert fake.requests == []


@pytest.mark.asyncio
async def test_list_volume_issues() -> None:
    fake = FakeComicVine()
    fake.add("/api/issues/", envelope([{"id": 1, "issue_number": "1"}, {"id": 2, "issue_number": "2", "name": None}]))
    async with make_client(fake) as client:
        issues = await client.list_volume_issues(VOLUME_ID, limit=2, offset=4)

    assert [i.id for i in issues] == [1, 2]
    params = fake.requests[0].url.params
    assert params["filter"] == f"volume:{VOLUME_ID}"
    assert params["sort"] == "issue_number:asc"
    assert params["limit"] == "2"
    assert params["offset"] == "4"


@pytest.mark.asyncio
async def test_http_status_error() -> None:
    async with make_client(lambda request: httpx.Response(503, text="busy")) as client:
        with pytest.raises(HttpStatusError) as info:
            await client.get_issue(ISSUE_ID)
    assert info.value.code == 503
    assert str(info.value) == "API request failed: Status 503"
    assert "test-key" not in (info.value.url or "")


@pytest.mark.asyncio
async def test_malformed_json_is_decode_error() -> None:
    async with make_client(lambda request: httpx.Response(200, text="<html>not json</html>")) as client:
        with pytest.raises(DecodeError):
            await client.get_issue(ISSUE_ID)


@pytest.mark.asyncio
async def test_unexpected_shape_is_decode_error() -> None:
    async with make_client(lambda request: httpx.Response(200, json=envelope({"name": "no id"}))) as client:
        with pytest.raises(DecodeError):
            await client.get_issue(ISSUE_ID)


@pytest.mark.asyncio
async def test_envelope_error_is_domain_error() -> None:
    async with make_client(lambda request: httpx.Response(200, json=envelope([], error="Invalid API Key"))) as client:
        with pytest.raises(DomainError) as info:
            await client.get_issue(ISSUE_ID)
    assert info.value.message == "Invalid API Key"
    assert not isinstance(info.value, TransportError)


@pytest.mark.asyncio
async def test_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(TransportError):
            await client.get_issue(ISSUE_ID)


@pytest.mark.asyncio
async def test_missing_api_key_is_not_configured(fake: FakeComicVine) -> None:
    async with make_client(fake, api_key="") as client:
        with pytest.raises(NotConfigured):
            await client.get_issue(ISSUE_ID)
    assert fake.requests == []


@pytest.mark.asyncio
async def test_cancel_while_awaiting_network() -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200, json=envelope(issue_payload()))

    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.05, token.cancel)
    async with make_client(slow) as client:
        with pytest.raises(Cancelled) as info:
            await client.get_issue(ISSUE_ID, token=token)

    assert isinstance(info.value, FetchError)
    assert not isinstance(info.value, TransportError)


@pytest.mark.asyncio
async def test_download_returns_bytes(fake: FakeComicVine) -> None:
    async with make_client(fake) as client:
        data = await client.download("https://img.test/uploads/141.jpg")
    assert data.startswith(b"\xff\xd8")
