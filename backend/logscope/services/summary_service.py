# logscope/services/summary_service.py
"""
Summary aggregation over a parsed record sequence.

What we compute (log records):
- per-severity counts (all five levels, zero-filled)
- a short list of critical records (ERROR, or alarming wording)
- the most frequent ERROR message patterns, with volatile parts normalized away
- the time span covered by valid timestamps

What we compute (audit records):
- per-category counts
- most active actors and most affected targets
- key events for investigation
- the same time span rule

When no record has a valid timestamp the span is SENTINEL_SPAN, a fixed
placeholder flagged `is_sentinel`, so charting code never receives an open or
"now"-based interval.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from logscope.core.config import Settings, settings as default_settings
from logscope.core.errors import EmptyInputError
from logscope.utils.audit_parsers import AuditCategory, AuditRecord, categorize_all, identify_key_events
from logscope.utils.parsers import SEVERITY_ORDER, LogRecord, Severity
from logscope.utils.timestamps import YearPolicy, is_valid_timestamp

CRITICAL_KEYWORDS: Tuple[str, ...] = (
    "critical",
    "fatal",
    "exception",
    "null pointer",
    "out of memory",
    "stack trace",
    "traceback",
    "panic",
    "abort",
)

# Volatile fragments removed before grouping error messages.
_EMBEDDED_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[\sT]\d{2}:\d{2}:\d{2}(?:\.\d+)?")
_EMBEDDED_MONTH_DAY_RE = re.compile(r"\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}")
_BRACKETED_RE = re.compile(r"\[[^\]]+\]")
_DIGIT_RUN_RE = re.compile(r"\b\d+\b")
PATTERN_NUMBER_PLACEHOLDER = "N"
MIN_PATTERN_KEY_LENGTH = 10


@dataclass(frozen=True)
class TimeSpan:
    start: datetime
    end: datetime
    is_sentinel: bool = False


SENTINEL_SPAN = TimeSpan(start=datetime(2025, 1, 1), end=datetime(2025, 1, 1), is_sentinel=True)


@dataclass(frozen=True)
class PatternCount:
    pattern: str
    count: int


@dataclass(frozen=True)
class LogSummary:
    total: int
    severity_counts: Dict[Severity, int]
    critical_records: Tuple[LogRecord, ...]
    top_patterns: Tuple[PatternCount, ...]
    time_span: TimeSpan

    @property
    def error_count(self) -> int:
        return self.severity_counts.get(Severity.ERROR, 0)

    @property
    def warning_count(self) -> int:
        return self.severity_counts.get(Severity.WARN, 0)

    @property
    def info_count(self) -> int:
        return self.severity_counts.get(Severity.INFO, 0)

    @property
    def debug_count(self) -> int:
        return self.severity_counts.get(Severity.DEBUG, 0)

    @property
    def trace_count(self) -> int:
        return self.severity_counts.get(Severity.TRACE, 0)


@dataclass(frozen=True)
class RankedName:
    name: str
    count: int


@dataclass(frozen=True)
class AuditSummary:
    total: int
    category_counts: Dict[AuditCategory, int]
    top_actors: Tuple[RankedName, ...]
    top_targets: Tuple[RankedName, ...]
    key_events: Tuple[AuditRecord, ...]
    time_span: TimeSpan


def _policy(cfg: Settings) -> YearPolicy:
    return YearPolicy(min_year=cfg.MIN_YEAR, max_year=cfg.MAX_YEAR)


def compute_time_span(timestamps: Iterable[Optional[datetime]], policy: YearPolicy) -> TimeSpan:
    valid = [t for t in timestamps if is_valid_timestamp(t, policy)]
    if not valid:
        return SENTINEL_SPAN
    return TimeSpan(start=min(valid), end=max(valid))


def is_critical(record: LogRecord) -> bool:
    if record.severity is Severity.ERROR:
        return True
    lowered = record.message.lower()
    return any(k in lowered for k in CRITICAL_KEYWORDS)


def normalize_pattern(message: str, max_length: int = 80) -> str:
    """Pattern key for grouping: timestamps, bracketed tokens and numbers removed."""
    key = _EMBEDDED_TIMESTAMP_RE.sub("", message)
    key = _EMBEDDED_MONTH_DAY_RE.sub("", key)
    key = _BRACKETED_RE.sub("", key)
    key = _DIGIT_RUN_RE.sub(PATTERN_NUMBER_PLACEHOLDER, key)
    key = key[:max_length].strip()
    if len(key) < MIN_PATTERN_KEY_LENGTH:
        key = message[:max_length]
    return key


def summarize(records: Sequence[LogRecord], cfg: Settings | None = None) -> LogSummary:
    """
    Reduce a record sequence to a LogSummary in a single pass.

    Raises:
        EmptyInputError: if `records` is empty.
    """
    cfg = cfg or default_settings
    if not records:
        raise EmptyInputError("No records to summarize.")

    counts: Counter = Counter()
    critical: List[LogRecord] = []
    patterns: Counter = Counter()

    for record in records:
        counts[record.severity] += 1
        if len(critical) < cfg.CRITICAL_RECORD_LIMIT and is_critical(record):
            critical.append(record)
        if record.severity is Severity.ERROR:
            patterns[normalize_pattern(record.message, cfg.PATTERN_KEY_LENGTH)] += 1

    # Counter.most_common keeps first-seen order among equal counts.
    top_patterns = tuple(
        PatternCount(pattern=p, count=c) for p, c in patterns.most_common(cfg.TOP_PATTERN_LIMIT)
    )

    return LogSummary(
        total=len(records),
        severity_counts={sev: int(counts.get(sev, 0)) for sev in SEVERITY_ORDER},
        critical_records=tuple(critical),
        top_patterns=top_patterns,
        time_span=compute_time_span((r.timestamp for r in records), _policy(cfg)),
    )


def summarize_audit(records: Sequence[AuditRecord], cfg: Settings | None = None) -> AuditSummary:
    """
    Audit-trail counterpart of `summarize`.

    Raises:
        EmptyInputError: if `records` is empty.
    """
    cfg = cfg or default_settings
    if not records:
        raise EmptyInputError("No records to summarize.")

    actors = Counter(r.actor for r in records if r.actor)
    targets = Counter(r.target for r in records if r.target)

    return AuditSummary(
        total=len(records),
        category_counts={c: len(group) for c, group in categorize_all(records).items()},
        top_actors=tuple(RankedName(n, c) for n, c in actors.most_common(cfg.TOP_ACTOR_LIMIT)),
        top_targets=tuple(RankedName(n, c) for n, c in targets.most_common(cfg.TOP_ACTOR_LIMIT)),
        key_events=tuple(identify_key_events(records, limit=cfg.KEY_EVENT_LIMIT)),
        time_span=compute_time_span((r.timestamp for r in records), _policy(cfg)),
    )
