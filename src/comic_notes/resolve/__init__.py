from __future__ import annotations

__all__ = [
    "ResolutionState",
    "UpsertEngine",
    "UpsertResult",
]

from comic_notes.resolve.upsert import ResolutionState, UpsertEngine, UpsertResult
