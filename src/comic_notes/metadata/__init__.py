from __future__ import annotations

__all__ = [
    "ComicVineClient",
    "IssueRecord",
    "IssueSummary",
    "PersonCredit",
    "PersonRecord",
    "RateLimiter",
    "SearchResults",
    "VolumeRecord",
]

from comic_notes.metadata.comicvine_client import ComicVineClient
from comic_notes.metadata.models import IssueRecord, IssueSummary, PersonCredit, PersonRecord, SearchResults, VolumeRecord
from comic_notes.metadata.rate_limit import RateLimiter
