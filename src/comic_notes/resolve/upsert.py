"""
Identity resolution and merge-or-create for creator, role and volume notes.

Each upsert walks the same states:

    SEARCHING -> FOUND | NOT_FOUND -> MERGING -> CREATED | UPDATED | UNCHANGED

Lookup prefers the stored ComicVine id and falls back to the note's file
name. Merging only touches the header (see `merge_header`); the body of an
existing note is written back verbatim, and nothing is written when the
merge changed nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from comic_notes.notes.assembler import NoteDraft, build_role_note
from comic_notes.notes.frontmatter import compose_document, read_document
from comic_notes.notes.headers import merge_header, new_header
from comic_notes.utils.roles import canonicalize_role, parent_role
from comic_notes.utils.text import sanitize_filename
from comic_notes.vault.store import Document, DocumentStore, VaultLayout

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    SEARCHING = "searching"
    FOUND = "found"
    NOT_FOUND = "not_found"
    MERGING = "merging"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


TERMINAL_STATES = frozenset({ResolutionState.CREATED, ResolutionState.UPDATED, ResolutionState.UNCHANGED})


@dataclass
class UpsertResult:
    kind: str
    name: str
    states: list[ResolutionState] = field(default_factory=list)
    document: Document | None = None

    @property
    def outcome(self) -> ResolutionState | None:
        if self.states and self.states[-1] in TERMINAL_STATES:
            return self.states[-1]
        return None

    @property
    def found(self) -> bool:
        return ResolutionState.FOUND in self.states


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _same_id(stored: Any, wanted: int | None) -> bool:
    if wanted is None or stored is None or isinstance(stored, bool):
        return False
    return str(stored).strip() == str(wanted)


class UpsertEngine:
    def __init__(
        self,
        store: DocumentStore,
        layout: VaultLayout,
        *,
        clock: Callable[[], datetime] = utc_now,
        role_parents: Callable[[str], str | None] = parent_role,
    ) -> None:
        self.store = store
        self.layout = layout
        self._clock = clock
        self._role_parents = role_parents

    def timestamp(self) -> str:
        return self._clock().isoformat(timespec="seconds")

    # -- lookup --------------------------------------------------------------

    def _find(
        self,
        folder: str,
        matches_header: Callable[[dict[str, Any]], bool],
        matches_stem: Callable[[str], bool],
    ) -> Document | None:
        children = self.store.list_children(folder)
        for doc in children:
            header = self.store.get_cached_header(doc)
            if header and matches_header(header):
                return doc
        for doc in children:
            if matches_stem(doc.stem):
                return doc
        return None

    def find_person(self, person_id: int | None, name: str) -> Document | None:
        stem = sanitize_filename(name)
        return self._find(
            self.layout.creators,
            lambda h: _same_id(h.get("comicVineId"), person_id),
            lambda s: bool(stem) and s == stem,
        )

    def find_volume(self, volume_id: int | None, name: str) -> Document | None:
        stem = sanitize_filename(name)
        return self._find(
            self.layout.volumes,
            lambda h: _same_id(h.get("comicVineId"), volume_id),
            lambda s: bool(stem) and s == stem,
        )

    def find_role(self, name: str) -> Document | None:
        wanted = canonicalize_role(name).casefold()
        stem = sanitize_filename(canonicalize_role(name)).casefold()
        return self._find(
            self.layout.roles,
            lambda h: isinstance(h.get("name"), str) and canonicalize_role(h["name"]).casefold() == wanted,
            lambda s: bool(stem) and s.casefold() == stem,
        )

    # -- upsert --------------------------------------------------------------

    def upsert_person(self, person_id: int | None, name: str, draft: NoteDraft) -> UpsertResult:
        result = UpsertResult(kind="person", name=name, states=[ResolutionState.SEARCHING])
        existing = self.find_person(person_id, name)
        return self._write(result, existing, lambda: self.layout.person_path(name), draft)

    def upsert_volume(self, volume_id: int | None, name: str, draft: NoteDraft) -> UpsertResult:
        result = UpsertResult(kind="volume", name=name, states=[ResolutionState.SEARCHING])
        existing = self.find_volume(volume_id, name)
        return self._write(result, existing, lambda: self.layout.volume_path(name), draft)

    def upsert_role(self, name: str, draft: NoteDraft) -> UpsertResult:
        result = UpsertResult(kind="role", name=name, states=[ResolutionState.SEARCHING])
        existing = self.find_role(name)
        return self._write(result, existing, lambda: self.layout.role_path(name), draft)

    def _write(
        self,
        result: UpsertResult,
        existing: Document | None,
        new_path: Callable[[], str],
        draft: NoteDraft,
    ) -> UpsertResult:
        result.states.append(ResolutionState.FOUND if existing else ResolutionState.NOT_FOUND)
        result.states.append(ResolutionState.MERGING)
        now = self.timestamp()
        comments_for = type(draft.header).comments_for

        if existing is None:
            header = new_header(draft.header, now=now)
            text = compose_document(header, draft.body, comments=comments_for(header))
            result.document = self.store.create(new_path(), text)
            result.states.append(ResolutionState.CREATED)
            logger.info("Created %s note %s", result.kind, result.document.path)
            return result

        result.document = existing
        current, body = read_document(self.store.read(existing), path=existing.path)
        merged, changed = merge_header(current, draft.header, now=now)
        if not changed:
            result.states.append(ResolutionState.UNCHANGED)
            logger.debug("%s note %s unchanged", result.kind.capitalize(), existing.path)
            return result
        self.store.modify(existing, compose_document(merged, body, comments=comments_for(merged)))
        result.states.append(ResolutionState.UPDATED)
        logger.info("Updated %s note %s", result.kind, existing.path)
        return result

    # -- roles ---------------------------------------------------------------

    def resolve_role(self, name: str) -> list[UpsertResult]:
        """
        Create or merge the role note for `name` and, first, its parent chain.

        Every role is visited at most once per call; a parent that is already
        being resolved further up the chain is linked but not followed again.
        Returns the results in write order (parents first).
        """
        results: list[UpsertResult] = []
        self._resolve_role(canonicalize_role(name), set(), results)
        return results

    def _resolve_role(self, name: str, visited: set[str], results: list[UpsertResult]) -> None:
        if not name:
            return
        if not sanitize_filename(name):
            logger.warning("Skipping role %r: no usable note file name", name)
            return
        key = name.casefold()
        if key in visited:
            logger.warning("Role hierarchy loops back to %s; not following it again", name)
            return
        visited.add(key)

        parent = self._role_parents(name)
        parent = canonicalize_role(parent) if parent else None
        if parent and parent.casefold() == key:
            parent = None
        if parent:
            self._resolve_role(parent, visited, results)
        results.append(self.upsert_role(name, build_role_note(name, parent=parent)))
