from __future__ import annotations

import re

# canonical lowercase role -> header key used on issue notes
_ONTOLOGY_KEYS = {
    "writer": "writtenBy",
    "script": "writtenBy",
    "editor": "editedBy",
    "penciler": "penciler",
    "penciller": "penciler",
    "inker": "inker",
    "colorist": "colorist",
    "letterer": "letterer",
    "cover artist": "coverArtist",
    "cover": "coverArtist",
    "artist": "contributedTo",
}

FALLBACK_ONTOLOGY_KEY = "contributedTo"

# every value _ONTOLOGY_KEYS can produce, in header order
ONTOLOGY_KEYS = (
    "colorist",
    "contributedTo",
    "coverArtist",
    "editedBy",
    "inker",
    "letterer",
    "penciler",
    "writtenBy",
)

_ROLE_PRIORITY = {
    "writer": 0,
    "script": 1,
    "creator": 1,
    "penciler": 2,
    "artist": 3,
    "inker": 4,
    "colorist": 5,
    "letterer": 6,
    "editor": 7,
    "cover artist": 8,
}

# child role -> parent role concept
ROLE_PARENTS = {
    "penciler": "Artist",
    "penciller": "Artist",
    "inker": "Artist",
    "colorist": "Artist",
    "letterer": "Artist",
    "cover artist": "Artist",
    "script": "Writer",
    "plotter": "Writer",
    "assistant editor": "Editor",
}


def canonicalize_role(segment: str) -> str:
    """
    Capitalize each word of a single role segment.

    Only the first letter of a word changes; the rest is kept as given, and
    runs of whitespace collapse to one space. Idempotent.
    """
    words = segment.split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def split_roles(raw: str | None) -> list[str]:
    """Split a credit role string such as "writer, co-plotter" into canonical roles."""
    if not raw:
        return []
    out: list[str] = []
    for segment in raw.split(","):
        role = canonicalize_role(segment.strip())
        if role and role not in out:
            out.append(role)
    return out


def role_to_ontology_key(role: str) -> str:
    return _ONTOLOGY_KEYS.get(_key(role), FALLBACK_ONTOLOGY_KEY)


def role_sort_key(role: str) -> tuple[int, int, str]:
    rank = _ROLE_PRIORITY.get(_key(role))
    if rank is None:
        return (1, 0, role.casefold())
    return (0, rank, "")


def sort_roles(roles: list[str]) -> list[str]:
    return sorted(roles, key=role_sort_key)


def parent_role(role: str) -> str | None:
    return ROLE_PARENTS.get(_key(role))


def _key(role: str) -> str:
    return re.sub(r"\s+", " ", role).strip().lower()
