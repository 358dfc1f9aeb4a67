"""
Document store interface and vault folder layout.

Paths are vault-relative POSIX strings ("Comics/Creators/John Byrne.md").
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Protocol

from comic_notes.errors import InvalidNoteName
from comic_notes.settings import Settings
from comic_notes.utils.text import sanitize_filename

NOTE_SUFFIX = ".md"


@dataclass(frozen=True)
class Document:
    path: str

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def stem(self) -> str:
        return PurePosixPath(self.path).stem


class DocumentStore(Protocol):
    def exists(self, path: str) -> bool:
        ...

    def create(self, path: str, text: str) -> Document:
        """Create a new document; raises `DocumentExistsError` if one is there."""
        ...

    def modify(self, document: Document, text: str) -> None:
        ...

    def read(self, document: Document) -> str:
        ...

    def create_folder(self, path: str) -> None:
        ...

    def list_children(self, folder: str) -> list[Document]:
        """Notes directly inside `folder`, sorted by path. Missing folder -> []."""
        ...

    def get_cached_header(self, document: Document) -> dict[str, Any] | None:
        """Parsed header of `document`, or None if it has none or it cannot be read."""
        ...

    def write_binary(self, path: str, data: bytes) -> Document:
        ...


def join(*parts: str) -> str:
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    return str(PurePosixPath(*cleaned)) if cleaned else ""


def note_stem(name: str | None) -> str:
    """Sanitized file name stem for `name`; raises `InvalidNoteName` when nothing is left."""
    stem = sanitize_filename(name)
    if not stem:
        raise InvalidNoteName(name)
    return stem


@dataclass(frozen=True)
class VaultLayout:
    """Where each kind of note lives inside the vault."""

    comics: str = "Comics"
    creators: str = "Comics/Creators"
    roles: str = "Comics/Roles"
    volumes: str = "Comics/Volumes"
    covers: str = "Comics/Covers"

    @classmethod
    def from_settings(cls, settings: Settings) -> "VaultLayout":
        comics = settings.comics_folder
        return cls(
            comics=comics,
            creators=join(comics, settings.creators_folder),
            roles=join(comics, settings.roles_folder),
            volumes=join(comics, settings.volumes_folder),
            covers=join(comics, settings.covers_folder),
        )

    def issue_path(self, stem: str) -> str:
        return join(self.comics, f"{note_stem(stem)}{NOTE_SUFFIX}")

    def person_path(self, name: str) -> str:
        return join(self.creators, f"{note_stem(name)}{NOTE_SUFFIX}")

    def role_path(self, name: str) -> str:
        return join(self.roles, f"{note_stem(name)}{NOTE_SUFFIX}")

    def volume_path(self, name: str) -> str:
        return join(self.volumes, f"{note_stem(name)}{NOTE_SUFFIX}")

    def cover_path(self, stem: str, extension: str = "jpg") -> str:
        return join(self.covers, f"{note_stem(stem)}.{extension.lstrip('.')}")
