from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from comic_notes.errors import DocumentExistsError, InvalidNoteName
from comic_notes.settings import Settings
from comic_notes.vault.filesystem import FileSystemDocumentStore
from comic_notes.vault.store import Document, VaultLayout


def test_create_read_modify(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path)
    doc = store.create("Comics/Creators/John Byrne.md", "---\nname: John Byrne\n---\nbody\r\nline\n")

    assert doc == Document("Comics/Creators/John Byrne.md")
    assert doc.stem == "John Byrne"
    assert doc.name == "John Byrne.md"
    assert store.exists(doc.path)
    assert store.read(doc) == "---\nname: John Byrne\n---\nbody\r\nline\n"

    with pytest.raises(DocumentExistsError):
        store.create(doc.path, "again")

    store.modify(doc, "changed")
    assert store.read(doc) == "changed"


def test_modify_missing_document(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path)
    with pytest.raises(FileNotFoundError):
        store.modify(Document("Comics/missing.md"), "x")


def test_list_children_only_returns_notes(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path)
    store.create("Comics/Roles/Writer.md", "w")
    store.create("Comics/Roles/Artist.md", "a")
    store.write_binary("Comics/Roles/image.jpg", b"\x00")
    store.create_folder("Comics/Roles/Nested")

    assert [d.path for d in store.list_children("Comics/Roles")] == [
        "Comics/Roles/Artist.md",
        "Comics/Roles/Writer.md",
    ]
    assert store.list_children("Comics/Nowhere") == []


def test_cached_header_follows_writes(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path)
    doc = store.create("Comics/Volumes/X.md", "---\ncomicVineId: 1\n---\n")
    assert store.get_cached_header(doc) == {"comicVineId": 1}

    store.modify(doc, "---\ncomicVineId: 2\n---\n")
    assert store.get_cached_header(doc) == {"comicVineId": 2}

    # edited outside the store
    path = tmp_path / "Comics/Volumes/X.md"
    path.write_text("---\ncomicVineId: 333\n---\n", encoding="utf-8")
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000_000))
    assert store.get_cached_header(doc) == {"comicVineId": 333}


def test_unreadable_header_is_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store = FileSystemDocumentStore(tmp_path)
    doc = store.create("Comics/Creators/Broken.md", "---\nname: [oops\n---\nbody\n")
    with caplog.at_level(logging.WARNING, logger="comic_notes.vault.filesystem"):
        assert store.get_cached_header(doc) is None
    assert "Broken.md" in caplog.text
    assert store.get_cached_header(Document("Comics/Creators/none.md")) is None


def test_note_without_header(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path)
    doc = store.create("Comics/plain.md", "no header here\n")
    assert store.get_cached_header(doc) is None


def test_paths_stay_inside_the_vault(tmp_path: Path) -> None:
    store = FileSystemDocumentStore(tmp_path / "vault")
    with pytest.raises(ValueError):
        store.create("../outside.md", "x")
    with pytest.raises(ValueError):
        store.exists("/etc/passwd")


def test_layout_from_settings(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, vault_dir=tmp_path, comics_folder="/Library/Comics/", creators_folder="People")
    layout = VaultLayout.from_settings(settings)

    assert layout.comics == "Library/Comics"
    assert layout.creators == "Library/Comics/People"
    assert layout.roles == "Library/Comics/Roles"
    assert layout.person_path('John "JB" Byrne') == "Library/Comics/People/John JB Byrne.md"
    assert layout.issue_path("Uncanny X-Men 141") == "Library/Comics/Uncanny X-Men 141.md"
    assert layout.cover_path("Uncanny X-Men 141", ".png") == "Library/Comics/Covers/Uncanny X-Men 141.png"


@pytest.mark.parametrize("name", ["?", "", '<>:"/\\|?*'])
def test_layout_rejects_names_without_a_file_name(name: str) -> None:
    layout = VaultLayout()
    with pytest.raises(InvalidNoteName):
        layout.role_path(name)
    with pytest.raises(InvalidNoteName):
        layout.person_path(name)
