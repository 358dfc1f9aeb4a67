"""
ComicVine record models.

Only the fields the note engine consumes are modelled. The API is loosely
typed (numbers as strings, `null` instead of empty lists, nested objects
where a plain value is expected) so the field types coerce before validation.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _required_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _loose_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else None


def _date_text(value: Any) -> str | None:
    # person.death arrives as {"date": "...", "timezone_type": 3, "timezone": "..."}
    if isinstance(value, dict):
        value = value.get("date")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]
RequiredText = Annotated[str, BeforeValidator(_required_text)]
LooseInt = Annotated[int | None, BeforeValidator(_loose_int)]
DateText = Annotated[str | None, BeforeValidator(_date_text)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ImageRef(_Record):
    super_url: str | None = None
    medium_url: str | None = None
    small_url: str | None = None

    @property
    def best_url(self) -> str | None:
        return self.super_url or self.medium_url or self.small_url


class ResourceRef(_Record):
    id: int
    name: RequiredText = ""
    api_detail_url: str | None = None
    site_detail_url: str | None = None


class PersonCredit(ResourceRef):
    role: RequiredText = ""


class PublisherRef(_Record):
    id: int | None = None
    name: OptionalText = None


class IssueSummary(_Record):
    id: int
    issue_number: RequiredText = ""
    name: OptionalText = None
    cover_date: OptionalText = None


class IssueRecord(IssueSummary):
    store_date: OptionalText = None
    description: OptionalText = None
    deck: OptionalText = None
    image: ImageRef | None = None
    volume: ResourceRef | None = None
    person_credits: Annotated[list[PersonCredit], BeforeValidator(_none_to_list)] = []
    character_credits: Annotated[list[ResourceRef], BeforeValidator(_none_to_list)] = []
    story_arc_credits: Annotated[list[ResourceRef], BeforeValidator(_none_to_list)] = []
    site_detail_url: str | None = None
    api_detail_url: str | None = None


class VolumeRecord(_Record):
    id: int
    name: RequiredText = ""
    start_year: LooseInt = None
    publisher: PublisherRef | None = None
    count_of_issues: LooseInt = None
    description: OptionalText = None
    deck: OptionalText = None
    image: ImageRef | None = None
    site_detail_url: str | None = None

    @property
    def publisher_name(self) -> str:
        if self.publisher is not None and self.publisher.name:
            return self.publisher.name
        return "Unknown Publisher"


class PersonRecord(_Record):
    id: int
    name: RequiredText = ""
    deck: OptionalText = None
    description: OptionalText = None
    birth: DateText = None
    death: DateText = None
    image: ImageRef | None = None
    site_detail_url: str | None = None


class SearchResults(_Record):
    issues: list[IssueRecord] = []
    volumes: list[VolumeRecord] = []
