from __future__ import annotations

__all__ = [
    "NoteDraft",
    "compose_document",
    "merge_header",
    "read_document",
    "render_header",
]

from comic_notes.notes.assembler import NoteDraft
from comic_notes.notes.frontmatter import compose_document, read_document, render_header
from comic_notes.notes.headers import merge_header
