# logscope/utils/parsers.py
"""
Log line classification and sequencing.

Free-form log text has no fixed schema, so every line goes through the same
cascade of small, named matchers:

1. Timestamp: the text before the first comma, else an anchored prefix
   (plain / ISO-8601 / bracketed). No match leaves the timestamp unset.
2. Source tag: the first bracketed token that is neither a severity word nor a
   date/time fragment.
3. Severity: `[LEVEL]`, then `LEVEL:`, then a bare level keyword, then keyword
   families inferred from the message content.
4. Message: the working text with the source bracket and level markers removed.

Each matcher returns None when it does not apply, and the first one that
succeeds wins. The order is the precedence.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from logscope.core.errors import EmptyInputError
from logscope.utils.timestamps import LOG_GRAMMARS, YearPolicy, default_policy, recognize

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"


# Most severe first. Used for zero-filled breakdowns so chart series stay stable.
SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.ERROR,
    Severity.WARN,
    Severity.INFO,
    Severity.DEBUG,
    Severity.TRACE,
)

SEVERITY_ALIASES = {
    "ERROR": Severity.ERROR,
    "ERR": Severity.ERROR,
    "FATAL": Severity.ERROR,
    "CRITICAL": Severity.ERROR,
    "WARN": Severity.WARN,
    "WARNING": Severity.WARN,
    "INFO": Severity.INFO,
    "DEBUG": Severity.DEBUG,
    "TRACE": Severity.TRACE,
}

# Inference fallback when no explicit marker exists. Checked in this order.
SEVERITY_KEYWORD_FAMILIES: Tuple[Tuple[Severity, Tuple[str, ...]], ...] = (
    (Severity.ERROR, ("error", "exception", "fail", "fatal", "critical", "panic", "abort", "crash")),
    (Severity.WARN, ("warn", "deprecated", "timeout", "retry")),
    (Severity.DEBUG, ("debug", "trace", "verbose")),
)


@dataclass(frozen=True)
class LogRecord:
    """One normalized log line. Immutable once created."""
    id: str
    timestamp: Optional[datetime]  # naive UTC; None when nothing was recognized
    severity: Severity
    message: str
    source_tag: Optional[str]
    raw: str


def is_severity_word(text: str) -> bool:
    return (text or "").strip().upper() in SEVERITY_ALIASES


def normalize_severity(text: str) -> Severity:
    return SEVERITY_ALIASES.get((text or "").strip().upper(), Severity.INFO)


def infer_severity(message: str) -> Severity:
    lowered = (message or "").lower()
    for severity, keywords in SEVERITY_KEYWORD_FAMILIES:
        if any(k in lowered for k in keywords):
            return severity
    return Severity.INFO


# ----------------------------
# Timestamp prefix matchers
# ----------------------------
PrefixMatch = Tuple[datetime, str]

_PLAIN_PREFIX_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?)(?:\s+(.*))?$"
)
_ISO_PREFIX_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?(?:Z|[+-]\d{2}:?\d{2})?)(?:\s+(.*))?$"
)
_BRACKETED_PREFIX_RE = re.compile(
    r"^(\[\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?\])\s*(.*)$"
)
_LEVEL_WORDS = r"ERROR|ERR|WARNING|WARN|INFO|DEBUG|TRACE|FATAL|CRITICAL"

# Python's logging module writes milliseconds after a comma: "10:30:00,123 INFO ..."
# The digits only count as milliseconds when an upper-case level word or " - "
# follows; otherwise they belong to the message ("10:30:00,500 errors in batch").
_COMMA_MILLIS_RE = re.compile(rf"^(\d{{3}})\s+(?:-\s+|(?=\[?(?:{_LEVEL_WORDS})\b))")


def _prefix_matcher(pattern: re.Pattern) -> Callable[[str, YearPolicy], Optional[PrefixMatch]]:
    def match(line: str, policy: YearPolicy) -> Optional[PrefixMatch]:
        m = pattern.match(line)
        if not m:
            return None
        ts = recognize(m.group(1), LOG_GRAMMARS, policy)
        if ts is None:
            return None
        return ts, (m.group(2) or "").strip()
    return match


def match_comma_prefix(line: str, policy: YearPolicy) -> Optional[PrefixMatch]:
    """`<timestamp>,<rest>`: the text before the first comma is the timestamp."""
    head, sep, rest = line.partition(",")
    if not sep:
        return None
    ts = recognize(head.strip(), LOG_GRAMMARS, policy)
    if ts is None:
        return None
    rest = rest.strip()
    millis = _COMMA_MILLIS_RE.match(rest)
    if millis and ts.microsecond == 0:
        ts = ts.replace(microsecond=int(millis.group(1)) * 1000)
        rest = rest[millis.end():]
    return ts, rest.strip()


TIMESTAMP_MATCHERS: Tuple[Tuple[str, Callable[[str, YearPolicy], Optional[PrefixMatch]]], ...] = (
    ("comma", match_comma_prefix),
    ("plain_prefix", _prefix_matcher(_PLAIN_PREFIX_RE)),
    ("iso_prefix", _prefix_matcher(_ISO_PREFIX_RE)),
    ("bracketed_prefix", _prefix_matcher(_BRACKETED_PREFIX_RE)),
)


# ----------------------------
# Source tag
# ----------------------------
_BRACKET_TOKEN_RE = re.compile(r"\[([^\]]+)\]")
_DATE_FRAGMENT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_MONTH_DAY_FRAGMENT_RE = re.compile(r"^\d{2}-\d{2}")
_TIME_FRAGMENT_RE = re.compile(r"^\d{2}:\d{2}:\d{2}")


def _looks_like_date_or_time(token: str) -> bool:
    return bool(
        _DATE_FRAGMENT_RE.match(token)
        or _MONTH_DAY_FRAGMENT_RE.match(token)
        or _TIME_FRAGMENT_RE.match(token)
    )


def extract_source_tag(message: str) -> Optional[str]:
    for m in _BRACKET_TOKEN_RE.finditer(message):
        token = m.group(1).strip()
        if token and not is_severity_word(token) and not _looks_like_date_or_time(token):
            return token
    return None


# ----------------------------
# Severity matchers
# ----------------------------
_BRACKETED_WORD_RE = re.compile(r"\[(\w+)\]")
_COLON_WORD_RE = re.compile(r"\b(\w+):(?:\s|$)")
_BARE_KEYWORD_RE = re.compile(r"\b(ERROR|WARNING|WARN|INFO|DEBUG|TRACE|FATAL|CRITICAL)\b", re.IGNORECASE)


def _first_severity(pattern: re.Pattern) -> Callable[[str], Optional[Severity]]:
    def match(message: str) -> Optional[Severity]:
        for m in pattern.finditer(message):
            if is_severity_word(m.group(1)):
                return normalize_severity(m.group(1))
        return None
    return match


SEVERITY_MATCHERS: Tuple[Tuple[str, Callable[[str], Optional[Severity]]], ...] = (
    ("bracketed_word", _first_severity(_BRACKETED_WORD_RE)),
    ("colon_prefix", _first_severity(_COLON_WORD_RE)),
    ("bare_keyword", _first_severity(_BARE_KEYWORD_RE)),
)


def detect_severity(message: str) -> Severity:
    for _name, matcher in SEVERITY_MATCHERS:
        found = matcher(message)
        if found is not None:
            return found
    return infer_severity(message)


# ----------------------------
# Message cleanup
# ----------------------------
_BRACKETED_LEVEL_RE = re.compile(rf"\[\s*(?:{_LEVEL_WORDS})\s*\]", re.IGNORECASE)
_COLON_LEVEL_RE = re.compile(rf"\b(?:{_LEVEL_WORDS}):\s*", re.IGNORECASE)


def clean_message(message: str, source_tag: Optional[str]) -> str:
    cleaned = message
    if source_tag:
        cleaned = re.sub(rf"\[\s*{re.escape(source_tag)}\s*\]", "", cleaned).strip()
    cleaned = _BRACKETED_LEVEL_RE.sub("", cleaned).strip()
    cleaned = _COLON_LEVEL_RE.sub("", cleaned).strip()
    return cleaned or message


# ----------------------------
# Classifier / sequencer
# ----------------------------
def record_id(ordinal: int) -> str:
    return f"log_{ordinal:06d}"


def classify_line(line: str, ordinal: int, policy: YearPolicy | None = None) -> Optional[LogRecord]:
    """
    Classify one line of log text.

    Returns None only for a blank line. The result is a pure function of
    (line, ordinal, policy).
    """
    if line is None or not line.strip():
        return None

    policy = policy or default_policy()
    stripped = line.strip()
    timestamp: Optional[datetime] = None
    working = stripped

    for _name, matcher in TIMESTAMP_MATCHERS:
        found = matcher(stripped, policy)
        if found is not None:
            timestamp, working = found
            break

    if timestamp is None:
        logger.debug("No valid timestamp found in log line: %.50s", stripped)

    source_tag = extract_source_tag(working)
    severity = detect_severity(working)
    message = clean_message(working, source_tag)

    return LogRecord(
        id=record_id(ordinal),
        timestamp=timestamp,
        severity=severity,
        message=message,
        source_tag=source_tag,
        raw=line,
    )


def sort_newest_first(records: Sequence) -> List:
    """
    Newest first; records without a timestamp keep their input order after
    every timestamped record.
    """
    timed = [r for r in records if r.timestamp is not None]
    untimed = [r for r in records if r.timestamp is None]
    timed.sort(key=lambda r: r.timestamp, reverse=True)
    return timed + untimed


def split_lines(content: str | bytes) -> List[str]:
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return (content or "").splitlines()


def parse_log_text(content: str | bytes, policy: YearPolicy | None = None) -> List[LogRecord]:
    """
    Classify every non-blank line of `content` and sort the result.

    Raises:
        EmptyInputError: if the content holds no non-blank line.
    """
    lines = [ln for ln in split_lines(content) if ln.strip()]
    if not lines:
        raise EmptyInputError("Empty file.")

    policy = policy or default_policy()
    records: List[LogRecord] = []
    for ordinal, line in enumerate(lines):
        record = classify_line(line, ordinal, policy)
        if record is not None:
            records.append(record)

    missing = sum(1 for r in records if r.timestamp is None)
    logger.info("Parsed %d log records (%d without timestamp)", len(records), missing)
    return sort_newest_first(records)
