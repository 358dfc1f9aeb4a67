from __future__ import annotations

__all__ = [
    "Document",
    "DocumentStore",
    "FileSystemDocumentStore",
    "VaultLayout",
]

from comic_notes.vault.filesystem import FileSystemDocumentStore
from comic_notes.vault.store import Document, DocumentStore, VaultLayout
