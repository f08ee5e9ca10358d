# logscope/services/timeline_service.py
"""
Time-bucketed series for charting.

Flow:
1) Keep records with a valid timestamp (same rule as the summary span)
2) Stride-sample very large inputs (every k-th record, order preserved)
3) Floor the earliest timestamp to the bucket width and walk to the latest
4) Coarsen the width when the series would exceed the point budget
5) Tally per-series counts into every bucket, empty ones included

The emitted buckets are always contiguous and equally spaced by
`Timeline.interval`, so the chart x-axis can assume uniform spacing.

Sampled timelines are undercounts of the input, not estimates of it;
`Timeline.sampled` and `Timeline.sample_stride` say so.

Results are cached per (input fingerprint, interval) in an injected
TimelineCache. TimelineController layers the interactive state machine on top
(one state per width, stale-result suppression when the input changes).
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from logscope.core.config import Settings, settings as default_settings
from logscope.core.errors import CacheShapeMismatchError, EmptyInputError, StaleResultError
from logscope.core.executors import analysis_executor
from logscope.utils.audit_parsers import AuditCategory, AuditRecord
from logscope.utils.parsers import SEVERITY_ORDER, LogRecord
from logscope.utils.timestamps import YearPolicy, is_valid_timestamp

logger = logging.getLogger(__name__)

Record = Union[LogRecord, AuditRecord]

EPOCH = datetime(1970, 1, 1)
HOUR = timedelta(hours=1)
FINGERPRINT_SAMPLE_SIZE = 64


class TimelineStatus(str, Enum):
    READY = "ready"
    NO_CHARTABLE_DATA = "no_chartable_data"


@dataclass(frozen=True)
class TimelineBucket:
    """Counts for records in [start, start + interval)."""
    start: datetime
    total: int
    counts: Dict[str, int]


@dataclass(frozen=True)
class Timeline:
    status: TimelineStatus
    requested_interval: timedelta
    interval: timedelta
    buckets: Tuple[TimelineBucket, ...] = ()
    series: Tuple[str, ...] = ()
    valid_count: int = 0
    binned_count: int = 0
    sample_stride: int = 1

    @property
    def chartable(self) -> bool:
        return self.status is TimelineStatus.READY

    @property
    def sampled(self) -> bool:
        return self.sample_stride > 1

    @property
    def escalated(self) -> bool:
        return self.interval != self.requested_interval


# ----------------------------
# Pure binning
# ----------------------------
def floor_to_interval(dt: datetime, interval: timedelta) -> datetime:
    """Round down to the nearest multiple of `interval` since the epoch."""
    return EPOCH + ((dt - EPOCH) // interval) * interval


def _bucket_count(first: datetime, last: datetime, interval: timedelta) -> Tuple[datetime, int]:
    start = floor_to_interval(first, interval)
    return start, (last - start) // interval + 1


def stride_sample(items: Sequence, threshold: int) -> Tuple[List, int]:
    """Keep every k-th item, k = ceil(n / threshold). Returns (kept, k)."""
    n = len(items)
    if n <= threshold:
        return list(items), 1
    stride = math.ceil(n / threshold)
    return [item for idx, item in enumerate(items) if idx % stride == 0], stride


def choose_interval(
    first: datetime,
    last: datetime,
    requested: timedelta,
    max_points: int,
) -> Tuple[timedelta, datetime, int]:
    """
    Effective bucket width for [first, last] within the point budget.

    Sub-hour widths collapse to hourly first; anything still over budget is
    widened by the smallest whole multiple that fits.
    """
    interval = requested
    start, count = _bucket_count(first, last, interval)

    if count > max_points and interval < HOUR:
        interval = HOUR
        start, count = _bucket_count(first, last, interval)

    if count > max_points:
        base = interval
        multiple = math.ceil(count / max_points)
        while True:
            interval = base * multiple
            start, count = _bucket_count(first, last, interval)
            if count <= max_points:
                break
            multiple += 1

    return interval, start, count


def _series_for(records: Sequence[Record]) -> Tuple[str, ...]:
    if records and isinstance(records[0], AuditRecord):
        return tuple(c.value for c in AuditCategory)
    return tuple(s.value for s in SEVERITY_ORDER)


def series_key(record: Record) -> str:
    if isinstance(record, AuditRecord):
        return record.category.value
    return record.severity.value


def bin_records(records: Sequence[Record], interval: timedelta, cfg: Settings | None = None) -> Timeline:
    """
    Group records into contiguous fixed-width buckets.

    Raises:
        EmptyInputError: if `records` is empty.
        ValueError: if `interval` is not positive.
    """
    cfg = cfg or default_settings
    if not records:
        raise EmptyInputError("No records to bin.")
    if interval <= timedelta(0):
        raise ValueError(f"Bucket interval must be positive, got {interval}")

    policy = YearPolicy(min_year=cfg.MIN_YEAR, max_year=cfg.MAX_YEAR)
    series = _series_for(records)
    valid = [r for r in records if is_valid_timestamp(r.timestamp, policy)]

    if not valid:
        return Timeline(
            status=TimelineStatus.NO_CHARTABLE_DATA,
            requested_interval=interval,
            interval=interval,
            series=series,
        )

    binned, stride = stride_sample(valid, cfg.SAMPLING_THRESHOLD)
    if stride > 1:
        logger.info(
            "Applied sampling: reduced from %d to %d entries (stride %d)",
            len(valid), len(binned), stride,
        )

    first = min(r.timestamp for r in binned)
    last = max(r.timestamp for r in binned)
    effective, start, count = choose_interval(first, last, interval, cfg.MAX_TIMELINE_POINTS)
    if effective != interval:
        logger.info(
            "Bucket width %s would need too many points; using %s (%d buckets)",
            interval, effective, count,
        )

    totals = [0] * count
    tallies: Dict[str, List[int]] = {key: [0] * count for key in series}
    for record in binned:
        idx = (record.timestamp - start) // effective
        totals[idx] += 1
        tallies[series_key(record)][idx] += 1

    buckets = tuple(
        TimelineBucket(
            start=start + i * effective,
            total=totals[i],
            counts={key: tallies[key][i] for key in series},
        )
        for i in range(count)
    )

    return Timeline(
        status=TimelineStatus.READY,
        requested_interval=interval,
        interval=effective,
        buckets=buckets,
        series=series,
        valid_count=len(valid),
        binned_count=len(binned),
        sample_stride=stride,
    )


# ----------------------------
# Fingerprint / cache
# ----------------------------
def _stamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else "-"


def fingerprint(records: Sequence[Record]) -> str:
    """
    Cheap structural identity of an input sequence.

    Count, first/last id, first/last timestamp and raw text, plus a bounded
    stride sample of raw lines. Not cryptographic: it only has to keep two
    different uploads from sharing cache entries.
    """
    if not records:
        return "empty"

    first, last = records[0], records[-1]
    parts = [
        str(len(records)),
        type(first).__name__,
        first.id,
        last.id,
        _stamp(first.timestamp),
        _stamp(last.timestamp),
        first.raw,
        last.raw,
    ]
    step = max(1, len(records) // FINGERPRINT_SAMPLE_SIZE)
    for r in records[::step][:FINGERPRINT_SAMPLE_SIZE]:
        parts.append(r.raw)
        parts.append(_stamp(r.timestamp))

    digest = hashlib.blake2b(digest_size=16)
    for part in parts:
        digest.update(part.encode("utf-8", errors="replace"))
        digest.update(b"\x1f")
    return digest.hexdigest()


def _interval_key(interval: timedelta) -> int:
    return interval // timedelta(microseconds=1)


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    interval: timedelta
    timeline: Timeline


def _shape(timeline: Timeline) -> Tuple:
    first_start = timeline.buckets[0].start if timeline.buckets else None
    return (timeline.status, timeline.valid_count, timeline.interval, len(timeline.buckets), first_start)


class TimelineCache:
    """
    Timeline results keyed by (input fingerprint, requested interval).

    Writes are last-writer-wins: recomputing the same key yields the same
    shape, so no lock is needed. A write whose shape differs from the entry
    already stored means two inputs collided on one fingerprint and raises
    CacheShapeMismatchError.
    """

    def __init__(self, max_entries: int = 256):
        self._entries: Dict[Tuple[str, int], CacheEntry] = {}
        self._max_entries = max_entries
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, timedelta]) -> bool:
        fp, interval = key
        return (fp, _interval_key(interval)) in self._entries

    def get(self, fp: str, interval: timedelta) -> Optional[Timeline]:
        entry = self._entries.get((fp, _interval_key(interval)))
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.timeline

    def put(self, fp: str, interval: timedelta, timeline: Timeline) -> None:
        key = (fp, _interval_key(interval))
        existing = self._entries.get(key)
        if existing is not None and _shape(existing.timeline) != _shape(timeline):
            raise CacheShapeMismatchError(
                fp,
                interval,
                f"{_shape(existing.timeline)} != {_shape(timeline)}",
            )
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(fingerprint=fp, interval=interval, timeline=timeline)
        while len(self._entries) > self._max_entries:
            self._entries.pop(next(iter(self._entries)))

    def invalidate(self, fp: str) -> int:
        stale = [k for k in self._entries if k[0] == fp]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


def bin_cached(
    records: Sequence[Record],
    interval: timedelta,
    cache: TimelineCache,
    cfg: Settings | None = None,
) -> Timeline:
    """`bin_records` behind the cache."""
    fp = fingerprint(records)
    cached = cache.get(fp, interval)
    if cached is not None:
        return cached
    timeline = bin_records(records, interval, cfg)
    cache.put(fp, interval, timeline)
    return timeline


# ----------------------------
# Interactive controller
# ----------------------------
class BinnerState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    READY = "ready"


class TimelineController:
    """
    Per-input timeline state for an interactive view.

    Each bucket width has its own state. A width already in the cache goes
    straight to READY; otherwise it is computed (inline for small inputs, in
    the worker pool above LARGE_DATASET_THRESHOLD). Widths are independent and
    concurrent requests for one width share a single computation.

    Loading a new input while a computation is running makes that result
    stale: it is neither cached nor returned (StaleResultError).
    """

    def __init__(
        self,
        cache: TimelineCache,
        cfg: Settings | None = None,
        executor: Executor | None = None,
    ):
        self._cache = cache
        self._cfg = cfg or default_settings
        self._executor = executor
        self._records: Tuple[Record, ...] = ()
        self._fingerprint: Optional[str] = None
        self._states: Dict[int, BinnerState] = {}
        self._inflight: Dict[Tuple[str, int], asyncio.Task] = {}

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    def load(self, records: Sequence[Record]) -> None:
        self._records = tuple(records)
        self._fingerprint = fingerprint(self._records) if self._records else None
        self._states = {}

    def state(self, interval: timedelta) -> BinnerState:
        return self._states.get(_interval_key(interval), BinnerState.IDLE)

    async def request(self, interval: timedelta) -> Timeline:
        fp = self._fingerprint
        if fp is None:
            raise EmptyInputError("No input loaded.")

        key = _interval_key(interval)
        cached = self._cache.get(fp, interval)
        if cached is not None:
            self._states[key] = BinnerState.READY
            return cached

        task = self._inflight.get((fp, key))
        if task is None:
            self._states[key] = BinnerState.COMPUTING
            task = asyncio.create_task(self._compute(fp, self._records, interval))
            self._inflight[(fp, key)] = task
            task.add_done_callback(lambda _t, k=(fp, key): self._inflight.pop(k, None))
        return await asyncio.shield(task)

    async def _compute(self, fp: str, records: Tuple[Record, ...], interval: timedelta) -> Timeline:
        key = _interval_key(interval)

        if len(records) > self._cfg.LARGE_DATASET_THRESHOLD:
            loop = asyncio.get_running_loop()
            timeline = await loop.run_in_executor(
                self._executor or analysis_executor,
                bin_records,
                records,
                interval,
                self._cfg,
            )
        else:
            timeline = bin_records(records, interval, self._cfg)

        if fp != self._fingerprint:
            logger.warning("Discarding timeline computed for a replaced input (%s)", fp[:12])
            raise StaleResultError(fp, self._fingerprint)

        self._cache.put(fp, interval, timeline)
        self._states[key] = BinnerState.READY
        return timeline
