"""Tests for logscope/services/timeline_service.py"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

from logscope.core.config import Settings
from logscope.core.errors import CacheShapeMismatchError, EmptyInputError, StaleResultError
from logscope.services.timeline_service import (
    HOUR,
    BinnerState,
    TimelineCache,
    TimelineController,
    TimelineStatus,
    bin_cached,
    bin_records,
    fingerprint,
    floor_to_interval,
    stride_sample,
)
from logscope.utils.parsers import Severity

HALF_HOUR = timedelta(minutes=30)


class GatedExecutor(ThreadPoolExecutor):
    """Holds every submitted job until `gate` is set."""

    def __init__(self):
        super().__init__(max_workers=2)
        self.gate = threading.Event()
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1

        def gated():
            self.gate.wait(timeout=5)
            return fn(*args, **kwargs)

        return super().submit(gated)


def _assert_contiguous(timeline):
    starts = [b.start for b in timeline.buckets]
    for a, b in zip(starts, starts[1:]):
        assert b - a == timeline.interval


class TestBinRecords:
    def test_three_records_two_buckets(self, make_log_record):
        records = [
            make_log_record("2025-01-15 10:05:00"),
            make_log_record("2025-01-15 10:20:00", Severity.ERROR),
            make_log_record("2025-01-15 10:50:00"),
        ]
        timeline = bin_records(records, HALF_HOUR)
        assert timeline.status is TimelineStatus.READY
        assert [b.start for b in timeline.buckets] == [datetime(2025, 1, 15, 10), datetime(2025, 1, 15, 10, 30)]
        assert [b.total for b in timeline.buckets] == [2, 1]
        assert timeline.buckets[0].counts["ERROR"] == 1
        assert timeline.buckets[0].counts["INFO"] == 1

    def test_gaps_are_zero_filled(self, make_log_record):
        records = [make_log_record("2025-01-15 10:00:00"), make_log_record("2025-01-15 13:10:00")]
        timeline = bin_records(records, HALF_HOUR)
        assert len(timeline.buckets) == 7
        assert [b.total for b in timeline.buckets] == [1, 0, 0, 0, 0, 0, 1]
        _assert_contiguous(timeline)

    def test_every_bucket_has_every_series(self, make_log_record):
        timeline = bin_records([make_log_record("2025-01-15 10:00:00")], HALF_HOUR)
        assert set(timeline.buckets[0].counts) == {"ERROR", "WARN", "INFO", "DEBUG", "TRACE"}

    def test_coverage_of_valid_range(self, make_log_record):
        records = [make_log_record(datetime(2025, 1, 15, 8, 7) + timedelta(minutes=13 * i)) for i in range(40)]
        timeline = bin_records(records, timedelta(minutes=15))
        first, last = timeline.buckets[0], timeline.buckets[-1]
        assert first.start <= records[0].timestamp < first.start + timeline.interval
        assert last.start <= records[-1].timestamp < last.start + timeline.interval
        assert sum(b.total for b in timeline.buckets) == 40
        _assert_contiguous(timeline)

    def test_invalid_timestamps_excluded(self, make_log_record):
        records = [make_log_record(None), make_log_record(datetime(2012, 1, 1)), make_log_record("2025-01-15 10:00:00")]
        timeline = bin_records(records, HALF_HOUR)
        assert timeline.valid_count == 1
        assert sum(b.total for b in timeline.buckets) == 1

    def test_no_chartable_data(self, make_log_record):
        timeline = bin_records([make_log_record(None)], HALF_HOUR)
        assert timeline.status is TimelineStatus.NO_CHARTABLE_DATA
        assert not timeline.chartable
        assert timeline.buckets == ()

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            bin_records([], HALF_HOUR)

    def test_non_positive_interval_raises(self, make_log_record):
        with pytest.raises(ValueError):
            bin_records([make_log_record("2025-01-15 10:00:00")], timedelta(0))

    def test_audit_records_use_categories(self, make_audit_record):
        records = [
            make_audit_record("Deleted", ts="2025-06-03 15:00:00"),
            make_audit_record("Moved", ts="2025-06-03 15:10:00"),
        ]
        timeline = bin_records(records, HOUR)
        assert timeline.series == ("deletion", "movement", "checkinout", "replacement", "other")
        assert timeline.buckets[0].counts["deletion"] == 1
        assert timeline.buckets[0].counts["movement"] == 1


class TestSampling:
    def test_stride_sample(self):
        kept, stride = stride_sample(list(range(25)), 10)
        assert stride == 3
        assert kept == [0, 3, 6, 9, 12, 15, 18, 21, 24]

    def test_below_threshold_untouched(self):
        kept, stride = stride_sample([1, 2, 3], 10)
        assert (kept, stride) == ([1, 2, 3], 1)

    def test_sampling_bound(self, make_log_record):
        cfg = Settings(_env_file=None, SAMPLING_THRESHOLD=10)
        base = datetime(2025, 1, 15, 10)
        records = [make_log_record(base + timedelta(minutes=i)) for i in range(25)]
        timeline = bin_records(records, HOUR, cfg)
        assert timeline.sampled
        assert timeline.sample_stride == 3
        assert timeline.binned_count <= cfg.SAMPLING_THRESHOLD
        assert timeline.valid_count == 25
        assert sum(b.total for b in timeline.buckets) == timeline.binned_count


class TestEscalation:
    def test_sub_hour_collapses_to_hourly(self, make_log_record):
        cfg = Settings(_env_file=None, MAX_TIMELINE_POINTS=30)
        records = [make_log_record("2025-01-15 00:00:00"), make_log_record("2025-01-15 20:00:00")]
        timeline = bin_records(records, HALF_HOUR, cfg)
        assert timeline.interval == HOUR
        assert timeline.escalated
        assert timeline.requested_interval == HALF_HOUR
        assert len(timeline.buckets) == 21

    def test_widened_to_multiple_of_hour(self, make_log_record):
        cfg = Settings(_env_file=None, MAX_TIMELINE_POINTS=50)
        records = [make_log_record("2025-01-15 00:00:00"), make_log_record(datetime(2025, 1, 15) + timedelta(hours=100))]
        timeline = bin_records(records, HALF_HOUR, cfg)
        assert timeline.interval % HOUR == timedelta(0)
        assert len(timeline.buckets) <= 50
        assert sum(b.total for b in timeline.buckets) == 2
        _assert_contiguous(timeline)

    def test_floor_is_epoch_aligned(self):
        assert floor_to_interval(datetime(2025, 1, 15, 10, 47), timedelta(minutes=15)) == datetime(2025, 1, 15, 10, 45)


class TestFingerprint:
    def test_stable(self, make_log_record):
        records = [make_log_record("2025-01-15 10:00:00"), make_log_record(None)]
        assert fingerprint(records) == fingerprint(list(records))

    def test_differs_for_different_content(self, make_log_record):
        a = [make_log_record("2025-01-15 10:00:00", message="one")]
        b = [make_log_record("2025-01-15 10:00:00", message="two")]
        assert fingerprint(a) != fingerprint(b)


class TestTimelineCache:
    def test_hit_and_miss(self, make_log_record, cache):
        records = [make_log_record("2025-01-15 10:00:00")]
        first = bin_cached(records, HALF_HOUR, cache)
        second = bin_cached(records, HALF_HOUR, cache)
        assert second is first
        assert (cache.misses, cache.hits) == (1, 1)
        assert (fingerprint(records), HALF_HOUR) in cache

    def test_widths_are_separate_entries(self, make_log_record, cache):
        records = [make_log_record("2025-01-15 10:00:00")]
        bin_cached(records, HALF_HOUR, cache)
        bin_cached(records, HOUR, cache)
        assert len(cache) == 2

    def test_same_shape_rewrite_is_allowed(self, make_log_record, cache):
        records = [make_log_record("2025-01-15 10:00:00")]
        cache.put("fp", HOUR, bin_records(records, HOUR))
        cache.put("fp", HOUR, bin_records(records, HOUR))
        assert len(cache) == 1

    def test_shape_mismatch_raises(self, make_log_record, cache):
        one = [make_log_record("2025-01-15 10:00:00")]
        two = one + [make_log_record("2025-01-15 14:00:00")]
        cache.put("fp", HOUR, bin_records(one, HOUR))
        with pytest.raises(CacheShapeMismatchError) as exc_info:
            cache.put("fp", HOUR, bin_records(two, HOUR))
        assert exc_info.value.interval == HOUR

    def test_invalidate(self, make_log_record, cache):
        records = [make_log_record("2025-01-15 10:00:00")]
        bin_cached(records, HALF_HOUR, cache)
        bin_cached(records, HOUR, cache)
        assert cache.invalidate(fingerprint(records)) == 2
        assert len(cache) == 0

    def test_sub_second_widths_do_not_share_entries(self, make_log_record, cache):
        base = datetime(2025, 1, 15, 10)
        records = [make_log_record(base + timedelta(milliseconds=700 * i)) for i in range(10)]
        narrow = bin_cached(records, timedelta(milliseconds=1500), cache)
        wide = bin_cached(records, timedelta(milliseconds=1900), cache)
        assert narrow.interval == timedelta(milliseconds=1500)
        assert wide.interval == timedelta(milliseconds=1900)
        assert (cache.hits, cache.misses) == (0, 2)
        assert len(cache) == 2

    def test_bounded(self, make_log_record):
        cache = TimelineCache(max_entries=2)
        records = [make_log_record("2025-01-15 10:00:00")]
        for minutes in (15, 30, 60):
            bin_cached(records, timedelta(minutes=minutes), cache)
        assert len(cache) == 2
        assert (fingerprint(records), timedelta(minutes=15)) not in cache

    def test_clear_resets_counters(self, make_log_record, cache):
        bin_cached([make_log_record("2025-01-15 10:00:00")], HOUR, cache)
        cache.clear()
        assert len(cache) == 0
        assert (cache.hits, cache.misses) == (0, 0)


class TestTimelineController:
    @pytest.mark.asyncio
    async def test_idle_computing_ready(self, make_log_record, cache, cfg):
        controller = TimelineController(cache, cfg)
        controller.load([make_log_record("2025-01-15 10:00:00")])
        assert controller.state(HALF_HOUR) is BinnerState.IDLE
        timeline = await controller.request(HALF_HOUR)
        assert timeline.chartable
        assert controller.state(HALF_HOUR) is BinnerState.READY
        assert controller.state(HOUR) is BinnerState.IDLE

    @pytest.mark.asyncio
    async def test_cached_width_skips_recompute(self, make_log_record, cache, cfg):
        controller = TimelineController(cache, cfg)
        controller.load([make_log_record("2025-01-15 10:00:00")])
        first = await controller.request(HALF_HOUR)
        await controller.request(HOUR)
        again = await controller.request(HALF_HOUR)
        assert again is first
        assert cache.misses == 2
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_request_without_input_raises(self, cache, cfg):
        with pytest.raises(EmptyInputError):
            await TimelineController(cache, cfg).request(HOUR)

    @pytest.mark.asyncio
    async def test_large_input_uses_executor_and_shares_work(self, make_log_record, cache):
        cfg = Settings(_env_file=None, LARGE_DATASET_THRESHOLD=1)
        executor = GatedExecutor()
        controller = TimelineController(cache, cfg, executor=executor)
        controller.load([make_log_record("2025-01-15 10:00:00"), make_log_record("2025-01-15 11:00:00")])

        tasks = [asyncio.create_task(controller.request(HOUR)) for _ in range(3)]
        for _ in range(50):
            if controller.state(HOUR) is BinnerState.COMPUTING:
                break
            await asyncio.sleep(0.01)
        assert controller.state(HOUR) is BinnerState.COMPUTING

        executor.gate.set()
        results = await asyncio.gather(*tasks)
        assert all(r is results[0] for r in results)
        assert executor.submitted == 1
        assert controller.state(HOUR) is BinnerState.READY
        executor.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_widths_are_independent(self, make_log_record, cache):
        cfg = Settings(_env_file=None, LARGE_DATASET_THRESHOLD=1)
        executor = GatedExecutor()
        controller = TimelineController(cache, cfg, executor=executor)
        controller.load([make_log_record("2025-01-15 10:00:00"), make_log_record("2025-01-15 11:00:00")])

        tasks = [asyncio.create_task(controller.request(w)) for w in (HALF_HOUR, HOUR)]
        executor.gate.set()
        half, hourly = await asyncio.gather(*tasks)
        assert half.interval == HALF_HOUR
        assert hourly.interval == HOUR
        assert executor.submitted == 2
        executor.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_stale_result_is_discarded(self, make_log_record, cache):
        cfg = Settings(_env_file=None, LARGE_DATASET_THRESHOLD=1)
        executor = GatedExecutor()
        controller = TimelineController(cache, cfg, executor=executor)
        old = [make_log_record("2025-01-15 10:00:00"), make_log_record("2025-01-15 11:00:00")]
        controller.load(old)
        old_fp = controller.fingerprint

        task = asyncio.create_task(controller.request(HOUR))
        for _ in range(50):
            if controller.state(HOUR) is BinnerState.COMPUTING:
                break
            await asyncio.sleep(0.01)

        controller.load([make_log_record("2025-02-01 09:00:00"), make_log_record("2025-02-01 10:00:00")])
        executor.gate.set()

        with pytest.raises(StaleResultError):
            await task
        assert (old_fp, HOUR) not in cache
        assert controller.state(HOUR) is BinnerState.IDLE
        executor.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_load_before_task_starts_leaves_no_computing_state(self, make_log_record, cache):
        cfg = Settings(_env_file=None, LARGE_DATASET_THRESHOLD=1)
        executor = GatedExecutor()
        controller = TimelineController(cache, cfg, executor=executor)
        controller.load([make_log_record("2025-01-15 10:00:00"), make_log_record("2025-01-15 11:00:00")])

        task = asyncio.create_task(controller.request(HOUR))
        await asyncio.sleep(0)
        assert controller.state(HOUR) is BinnerState.COMPUTING

        controller.load([make_log_record("2025-02-01 09:00:00"), make_log_record("2025-02-01 10:00:00")])
        executor.gate.set()
        with pytest.raises(StaleResultError):
            await task
        assert controller.state(HOUR) is BinnerState.IDLE
        executor.shutdown(wait=True)
