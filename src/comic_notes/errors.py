"""
Error taxonomy.

Fetch errors describe why a ComicVine request did not produce usable data.
Callers that process batches catch them per entity; a `Cancelled` error is
never swallowed and always wins over any error observed after cancellation.
"""

from __future__ import annotations


class ComicNotesError(RuntimeError):
    pass


class FetchError(ComicNotesError):
    """Base class for failures of a single outbound request."""


class TransportError(FetchError):
    pass


class HttpStatusError(FetchError):
    def __init__(self, code: int, url: str | None = None) -> None:
        self.code = code
        self.url = url
        super().__init__(f"API request failed: Status {code}")


class DecodeError(FetchError):
    pass


class DomainError(FetchError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"ComicVine API error: {message}")


class Cancelled(FetchError):
    def __init__(self, message: str = "Request aborted") -> None:
        super().__init__(message)


class NotConfigured(FetchError):
    pass


class HeaderParseError(ComicNotesError):
    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class DocumentExistsError(ComicNotesError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document already exists: {path}")


class InvalidNoteName(ComicNotesError):
    def __init__(self, name: str | None) -> None:
        self.name = name
        super().__init__(f"No usable note file name in {name!r}")
