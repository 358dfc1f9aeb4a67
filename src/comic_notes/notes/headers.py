"""
Typed note headers, one model per entity kind.

Declared field order is the on-disk key order. `ACCUMULATING_FIELDS` names
the list fields that only ever grow (merged as a union); every other declared
field is a scalar that is written once and then left to the user.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

CREATED = "created"
MODIFIED = "modified"


class NoteHeader(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ACCUMULATING_FIELDS: ClassVar[tuple[str, ...]] = ()
    KEEP_NULL: ClassVar[tuple[str, ...]] = ()
    SECTION_COMMENTS: ClassVar[dict[str, str]] = {}

    def header_keys(self) -> list[str]:
        return [f.alias or name for name, f in type(self).model_fields.items()]

    def to_header(self) -> dict[str, Any]:
        """Header mapping with absent values dropped (except `KEEP_NULL` keys)."""
        keep = {type(self).model_fields[name].alias or name for name in self.KEEP_NULL}
        out: dict[str, Any] = {}
        for key, value in self.model_dump(by_alias=True).items():
            if value is None and key not in keep:
                continue
            if isinstance(value, (list, dict, str)) and not value and key not in keep:
                continue
            out[key] = value
        return out

    @classmethod
    def accumulating_keys(cls) -> set[str]:
        return {cls.model_fields[name].alias or name for name in cls.ACCUMULATING_FIELDS}

    @classmethod
    def comments_for(cls, header: Mapping[str, Any]) -> dict[str, str]:
        """Section comments keyed by the first present key of each section."""
        out: dict[str, str] = {}
        for keys, comment in _iter_sections(cls.SECTION_COMMENTS):
            for key in keys:
                if key in header:
                    out[key] = comment
                    break
        return out


def _iter_sections(sections: Mapping[str, str]) -> list[tuple[list[str], str]]:
    # keys are comma separated candidates: "volume,issueNumber" -> first present wins
    return [([k.strip() for k in spec.split(",")], comment) for spec, comment in sections.items()]


class IssueHeader(NoteHeader):
    KEEP_NULL = ("last_read",)
    SECTION_COMMENTS = {
        "volume,issueNumber,publisher": "Comic Metadata",
        "colorist,contributedTo,coverArtist,editedBy,inker,letterer,penciler,writtenBy": "Creators",
        "features": "Characters",
        "partOfStoryArc": "Story Arcs",
    }

    entity_type: str = "ComicIssue"
    title: str | None = None
    # reading tracker
    pages: int | None = None
    current_page: int | None = None
    percent_complete: int | None = None
    last_read: str | None = None
    type: str | None = None
    # metadata
    volume: str | None = None
    issue_number: str | None = None
    publisher: str | None = None
    publication_date: dict[str, Any] | None = None
    store_date: dict[str, Any] | None = None
    deck: str | None = None
    cover_url: str | None = None
    cover_image: str | None = None
    comic_vine_id: int | None = None
    comic_vine_url: str | None = None
    volume_start_year: int | None = None
    # creators, one key per ontology role
    colorist: list[str] = []
    contributed_to: list[str] = []
    cover_artist: list[str] = []
    edited_by: list[str] = []
    inker: list[str] = []
    letterer: list[str] = []
    penciler: list[str] = []
    written_by: list[str] = []
    features: list[str] = []
    part_of_story_arc: list[str] = []
    tags: list[str] = []

    def to_header(self) -> dict[str, Any]:
        header = super().to_header()
        # the null lastRead placeholder belongs to the reading tracker fields
        if self.pages is None and self.last_read is None:
            header.pop("lastRead", None)
        return header


class PersonHeader(NoteHeader):
    ACCUMULATING_FIELDS = ("roles", "credits", "tags")

    entity_type: str = "ComicCreator"
    name: str | None = None
    birth_date: dict[str, Any] | None = None
    death_date: dict[str, Any] | None = None
    deck: str | None = None
    comic_vine_id: int | None = None
    comic_vine_url: str | None = None
    roles: list[str] = []
    credits: list[str] = []
    tags: list[str] = []
    created: str | None = None
    modified: str | None = None


class RoleHeader(NoteHeader):
    ACCUMULATING_FIELDS = ("tags",)

    entity_type: str = "ComicRole"
    name: str | None = None
    sub_concept_of: str | None = None
    tags: list[str] = []
    created: str | None = None
    modified: str | None = None


class VolumeHeader(NoteHeader):
    ACCUMULATING_FIELDS = ("issues", "tags")

    entity_type: str = "ComicVolume"
    name: str | None = None
    publisher: str | None = None
    start_year: int | None = None
    issue_count: int | None = None
    comic_vine_id: int | None = None
    comic_vine_url: str | None = None
    issues: list[str] = []
    tags: list[str] = []
    created: str | None = None
    modified: str | None = None


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and not value)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def merge_header(
    existing: Mapping[str, Any],
    fresh: NoteHeader,
    *,
    now: str,
) -> tuple[dict[str, Any], bool]:
    """
    Merge freshly built header data into a header already on disk.

    - scalar fields: filled only when missing or empty on disk (first write wins)
    - accumulating fields: union, existing order first, no duplicates
    - keys the model does not declare are kept untouched after declared keys
    - `created` is set once; `modified` is refreshed only if anything changed

    Returns `(merged, changed)`.
    """
    fresh_values = fresh.to_header()
    accumulating = type(fresh).accumulating_keys()
    declared = fresh.header_keys()

    merged: dict[str, Any] = {}
    changed = False
    for key in declared:
        if key == MODIFIED:
            continue
        current = existing.get(key)
        if key in accumulating:
            items = _as_list(current)
            for item in _as_list(fresh_values.get(key)):
                if item not in items:
                    items.append(item)
                    changed = True
            if items:
                merged[key] = items
            continue
        if key in existing and not _is_absent(current):
            merged[key] = current
            continue
        if key == CREATED:
            merged[key] = now
            changed = True
            continue
        if key in fresh_values and not _is_absent(fresh_values[key]):
            merged[key] = fresh_values[key]
            changed = True
        elif key in existing:
            merged[key] = current

    if MODIFIED in declared:
        if changed or _is_absent(existing.get(MODIFIED)):
            merged[MODIFIED] = now
            changed = True
        else:
            merged[MODIFIED] = existing[MODIFIED]

    for key, value in existing.items():
        if key not in merged and key not in declared:
            merged[key] = value
    return merged, changed


def new_header(fresh: NoteHeader, *, now: str) -> dict[str, Any]:
    """Header mapping for a document that does not exist yet."""
    merged, _ = merge_header({}, fresh, now=now)
    return merged
