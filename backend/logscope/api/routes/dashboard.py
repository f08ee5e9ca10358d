# logscope/api/routes/dashboard.py
"""
GET /dashboard

Chart data for one analysis.

Returns:
- breakdown: pie/bar chart (severity for logs, category for audit trails)
- buckets: stacked area/bar chart, one count per series per bucket

Design:
- Buckets are aligned to the epoch and contiguous from the first to the last
  valid timestamp; empty buckets are present with zero counts.
- Widths that would need too many points are coarsened; both the requested and
  the effective width are reported.
- Results are cached per (input fingerprint, bucket width).
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from logscope.core.config import settings
from logscope.schemas.dashboard import DashboardResponse, TimeBucket
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.timeline_service import series_key
from logscope.utils.timestamps import isoformat_z

router = APIRouter()


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    analysis_id: Optional[str] = Query(default=None, description="Defaults to the most recent upload of `kind`"),
    kind: Literal["log", "audit"] = Query(default="log"),
    bucket_minutes: float = Query(
        default=settings.DEFAULT_BUCKET_MINUTES,
        gt=0,
        le=7 * 24 * 60,
        description="Requested time bucket size in minutes",
    ),
    store: AnalysisStore = Depends(get_store),
):
    analysis = store.resolve(analysis_id, kind)
    timeline = await analysis.timeline.request(timedelta(minutes=bucket_minutes))

    counts = Counter(series_key(r) for r in analysis.records)
    breakdown = {key: int(counts.get(key, 0)) for key in timeline.series}

    return DashboardResponse(
        analysis_id=analysis.analysis_id,
        generated_at=isoformat_z(datetime.now(timezone.utc)),
        status=timeline.status.value,
        total_entries=len(analysis.records),
        valid_entries=timeline.valid_count,
        binned_entries=timeline.binned_count,
        sampled=timeline.sampled,
        sample_stride=timeline.sample_stride,
        requested_bucket_minutes=_minutes(timeline.requested_interval),
        bucket_minutes=_minutes(timeline.interval),
        breakdown=breakdown,
        series=list(timeline.series),
        buckets=[
            TimeBucket(bucket_start=isoformat_z(b.start), total=b.total, counts=dict(b.counts))
            for b in timeline.buckets
        ],
    )
