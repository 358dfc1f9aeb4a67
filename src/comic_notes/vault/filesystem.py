from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Any

from comic_notes.errors import DocumentExistsError, HeaderParseError
from comic_notes.notes.frontmatter import read_document
from comic_notes.vault.store import NOTE_SUFFIX, Document

logger = logging.getLogger(__name__)


class FileSystemDocumentStore:
    """
    Document store over a plain directory of markdown notes.

    Parsed headers are cached per path and re-read when the file's
    (mtime_ns, size) changes, or when the store itself writes the file.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._headers: dict[str, tuple[tuple[int, int], dict[str, Any] | None]] = {}

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"path escapes the vault: {path}")
        return self.root.joinpath(*rel.parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def create(self, path: str, text: str) -> Document:
        target = self._resolve(path)
        if target.exists():
            raise DocumentExistsError(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        _write_text(target, text)
        self._headers.pop(path, None)
        return Document(path)

    def modify(self, document: Document, text: str) -> None:
        target = self._resolve(document.path)
        if not target.exists():
            raise FileNotFoundError(document.path)
        _write_text(target, text)
        self._headers.pop(document.path, None)

    def read(self, document: Document) -> str:
        with self._resolve(document.path).open("r", encoding="utf-8", newline="") as fh:
            return fh.read()

    def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def list_children(self, folder: str) -> list[Document]:
        base = self._resolve(folder)
        if not base.is_dir():
            return []
        prefix = PurePosixPath(folder)
        return [
            Document(str(prefix / child.name))
            for child in sorted(base.iterdir())
            if child.is_file() and child.suffix == NOTE_SUFFIX
        ]

    def get_cached_header(self, document: Document) -> dict[str, Any] | None:
        target = self._resolve(document.path)
        try:
            st = target.stat()
        except FileNotFoundError:
            self._headers.pop(document.path, None)
            return None
        stamp = (st.st_mtime_ns, st.st_size)
        cached = self._headers.get(document.path)
        if cached is not None and cached[0] == stamp:
            return cached[1]

        try:
            header, _ = read_document(self.read(document), path=document.path)
        except HeaderParseError as exc:
            logger.warning("Skipping note with unreadable header: %s", exc)
            header = None
        else:
            header = header or None
        self._headers[document.path] = (stamp, header)
        return header

    def write_binary(self, path: str, data: bytes) -> Document:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return Document(path)


def _write_text(target: Path, text: str) -> None:
    with target.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)
