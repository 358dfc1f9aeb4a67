from __future__ import annotations

import pytest

from comic_notes.utils.roles import (
    FALLBACK_ONTOLOGY_KEY,
    ONTOLOGY_KEYS,
    canonicalize_role,
    parent_role,
    role_to_ontology_key,
    sort_roles,
    split_roles,
)


@pytest.mark.parametrize(
    "raw",
    ["writer", "  cover   artist ", "co-plotter", "CO-plotter", "mcGuinness inks", "", "Cover Artist"],
)
def test_canonicalize_role_is_idempotent(raw: str) -> None:
    once = canonicalize_role(raw)
    assert canonicalize_role(once) == once


def test_canonicalize_role_only_touches_first_letters() -> None:
    assert canonicalize_role("writer") == "Writer"
    assert canonicalize_role("  cover   artist ") == "Cover Artist"
    assert canonicalize_role("mcGuinness inks") == "McGuinness Inks"


def test_split_roles_discards_empty_segments() -> None:
    assert split_roles("writer, co-plotter") == ["Writer", "Co-plotter"]
    assert split_roles("penciler, , inker,") == ["Penciler", "Inker"]
    assert split_roles("penciler, Penciler") == ["Penciler"]
    assert split_roles(None) == []
    assert split_roles("") == []


@pytest.mark.parametrize(
    ("role", "key"),
    [
        ("Writer", "writtenBy"),
        ("Script", "writtenBy"),
        ("Editor", "editedBy"),
        ("Penciler", "penciler"),
        ("Penciller", "penciler"),
        ("Inker", "inker"),
        ("Colorist", "colorist"),
        ("Letterer", "letterer"),
        ("Cover Artist", "coverArtist"),
        ("Cover", "coverArtist"),
        ("Artist", "contributedTo"),
        ("Co-plotter", FALLBACK_ONTOLOGY_KEY),
        ("Production", FALLBACK_ONTOLOGY_KEY),
    ],
)
def test_role_to_ontology_key(role: str, key: str) -> None:
    assert role_to_ontology_key(role) == key
    assert role_to_ontology_key(role) in ONTOLOGY_KEYS


def test_sort_roles_uses_priority_then_alphabetical() -> None:
    roles = ["Letterer", "Zed", "Writer", "Cover Artist", "abc", "Penciler", "Editor"]
    assert sort_roles(roles) == ["Writer", "Penciler", "Letterer", "Editor", "Cover Artist", "abc", "Zed"]


def test_parent_role() -> None:
    assert parent_role("Penciler") == "Artist"
    assert parent_role("cover  artist") == "Artist"
    assert parent_role("Writer") is None
