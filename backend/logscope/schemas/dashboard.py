# logscope/schemas/dashboard.py
"""
Dashboard response schemas.

These models define the stable contract for chart data consumed by the frontend.
Keep changes here intentional, because the UI will strongly depend on them.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class TimeBucket(BaseModel):
    """
    A single time bucket for time-series charts.

    Example:
      {"bucket_start": "2025-01-15T10:00:00Z", "total": 7, "counts": {"ERROR": 2, "WARN": 1, ...}}
    """
    bucket_start: str = Field(..., description="ISO8601 UTC timestamp representing the start of the bucket")
    total: int = Field(..., ge=0, description="Number of records in this bucket")
    counts: Dict[str, int] = Field(default_factory=dict, description="Per-series counts (severity or category)")


class DashboardResponse(BaseModel):
    """
    Primary dashboard endpoint response.

    `status` is "no_chartable_data" when the input has no valid timestamp; the
    bucket list is then empty and must not be read as "zero activity".
    When `sampled` is true the bucket counts cover every `sample_stride`-th record only.
    """
    analysis_id: str
    generated_at: str = Field(..., description="ISO8601 UTC timestamp when this payload was generated")
    status: str = Field(..., description="ready | no_chartable_data")
    total_entries: int = Field(..., ge=0, description="Records in the analysis")
    valid_entries: int = Field(..., ge=0, description="Records with a valid timestamp")
    binned_entries: int = Field(..., ge=0, description="Records counted into buckets (after sampling)")
    sampled: bool = False
    sample_stride: int = Field(default=1, ge=1)
    requested_bucket_minutes: float = Field(..., gt=0)
    bucket_minutes: float = Field(..., gt=0, description="Effective width after point-budget coarsening")
    breakdown: Dict[str, int] = Field(default_factory=dict, description="Counts over all records")
    series: List[str] = Field(default_factory=list, description="Keys present in every bucket's counts")
    buckets: List[TimeBucket] = Field(default_factory=list, description="Contiguous, equally spaced buckets")
