from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

_YEAR_RE = re.compile(r"^(\d{4})$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

# non-ISO spellings seen in free-text biography fields
_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)

MIN_PLAUSIBLE_YEAR = 100


class PartialDate(BaseModel):
    """A date of unknown granularity; `value` keeps the raw text."""

    model_config = ConfigDict(frozen=True)

    value: str
    year: int | None = None
    month: int | None = None
    day: int | None = None

    def to_header(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def decompose_date(raw: Any) -> PartialDate | None:
    """
    Break a date string into year/month/day.

    - full date that parses with a plausible year -> value, year, month, day
    - bare "YYYY" or "YYYY-MM" -> only the parts present
    - anything else -> value only
    - None or blank -> None
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None

    full = _parse_full(value)
    if full is not None and full.year >= MIN_PLAUSIBLE_YEAR:
        return PartialDate(value=value, year=full.year, month=full.month, day=full.day)

    m = _YEAR_RE.match(value)
    if m:
        year = int(m.group(1))
        if year >= MIN_PLAUSIBLE_YEAR:
            return PartialDate(value=value, year=year)
        return PartialDate(value=value)

    m = _YEAR_MONTH_RE.match(value)
    if m:
        year = int(m.group(1))
        month = int(m.group(2))
        if year < MIN_PLAUSIBLE_YEAR:
            return PartialDate(value=value)
        if 1 <= month <= 12:
            return PartialDate(value=value, year=year, month=month)
        return PartialDate(value=value, year=year)

    return PartialDate(value=value)


def _parse_full(value: str) -> datetime | None:
    # "YYYY" and "YYYY-MM" must not be widened to a full date
    if _YEAR_RE.match(value) or _YEAR_MONTH_RE.match(value):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None
