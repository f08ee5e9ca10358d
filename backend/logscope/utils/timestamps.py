# logscope/utils/timestamps.py
"""
Strict timestamp recognition.

Only a handful of date-time grammars are accepted, tried in a fixed order:

    plain       2025-01-15 10:30:00[.123]
    iso8601     2025-01-15T10:30:00[.123][Z|+02:00]
    bracketed   [2025-01-15 10:30:00[.123]]

Audit-trail exports add the US style used by document management systems:

    us_datetime 6/3/2025 3:54:15 PM

Anything else returns None. There is deliberately no "try a generic parser"
fallback: loose parsing turns unrelated numbers into plausible dates. The
result is also rejected when its year falls outside the configured window.

All returned datetimes are naive UTC.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from dateutil import parser as dtparser

from logscope.core.config import settings


@dataclass(frozen=True)
class YearPolicy:
    """Inclusive window of years a recognized timestamp must fall into."""
    min_year: int
    max_year: int

    def accepts(self, dt: datetime) -> bool:
        return self.min_year <= dt.year <= self.max_year


def default_policy() -> YearPolicy:
    return YearPolicy(min_year=settings.MIN_YEAR, max_year=settings.MAX_YEAR)


# ----------------------------
# Grammar matchers
# ----------------------------
Matcher = Callable[[str], Optional[datetime]]

_PLAIN_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,6}))?$"
)
_ISO_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?(?:Z|[+-]\d{2}:?\d{2})?$"
)
_BRACKETED_RE = re.compile(r"^\[\s*(.+?)\s*\]$")
_US_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2}):(\d{2})\s*(AM|PM)?$",
    re.IGNORECASE,
)


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def match_plain(text: str) -> Optional[datetime]:
    m = _PLAIN_RE.match(text)
    if not m:
        return None
    year, month, day, hour, minute, second, fraction = m.groups()
    micro = int((fraction or "0").ljust(6, "0"))
    try:
        return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), micro)
    except ValueError:
        return None


def match_iso8601(text: str) -> Optional[datetime]:
    if not _ISO_RE.match(text):
        return None
    try:
        return _to_utc_naive(dtparser.isoparse(text))
    except (ValueError, OverflowError):
        return None


def match_bracketed(text: str) -> Optional[datetime]:
    m = _BRACKETED_RE.match(text)
    if not m:
        return None
    return match_plain(m.group(1))


def match_us_datetime(text: str) -> Optional[datetime]:
    m = _US_RE.match(text)
    if not m:
        return None
    month, day, year, hour, minute, second, meridiem = m.groups()
    h = int(hour)
    if meridiem:
        if not 1 <= h <= 12:
            return None
        h = h % 12 + (12 if meridiem.upper() == "PM" else 0)
    try:
        return datetime(int(year), int(month), int(day), h, int(minute), int(second))
    except ValueError:
        return None


# Ordered (name, matcher) pairs. First success wins.
LOG_GRAMMARS: Tuple[Tuple[str, Matcher], ...] = (
    ("plain", match_plain),
    ("iso8601", match_iso8601),
    ("bracketed", match_bracketed),
)

AUDIT_GRAMMARS: Tuple[Tuple[str, Matcher], ...] = (("us_datetime", match_us_datetime),) + LOG_GRAMMARS


def recognize(
    text: str | None,
    grammars: Tuple[Tuple[str, Matcher], ...] = LOG_GRAMMARS,
    policy: YearPolicy | None = None,
) -> Optional[datetime]:
    """
    Recognize `text` as a timestamp.

    Returns a naive UTC datetime, or None when no grammar matches or the year
    is outside the policy window. Callers must not substitute a default.
    """
    if not text or not isinstance(text, str):
        return None
    candidate = text.strip()
    if not candidate:
        return None

    policy = policy or default_policy()
    for _name, matcher in grammars:
        dt = matcher(candidate)
        if dt is not None:
            return dt if policy.accepts(dt) else None
    return None


def is_valid_timestamp(value: datetime | None, policy: YearPolicy | None = None) -> bool:
    """Shared validity rule for span computation and timeline binning."""
    if value is None:
        return False
    return (policy or default_policy()).accepts(value)


def format_timestamp(value: datetime | None) -> str:
    """Display/export form: `YYYY-MM-DD HH:MM:SS[.ffffff]`, or `N/A`."""
    if value is None:
        return "N/A"
    return value.isoformat(sep=" ")


def isoformat_z(dt: datetime) -> str:
    """Convert naive UTC datetime to ISO8601 with trailing 'Z'."""
    dt = _to_utc_naive(dt)
    return dt.isoformat() + "Z"
