# logscope/schemas/summary.py
"""
Schemas for GET /summary.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field

from logscope.schemas.logs import LogItem


class PatternItem(BaseModel):
    """A recurring ERROR message pattern."""
    message: str = Field(..., description="Normalized message (numbers replaced by N)")
    count: int = Field(..., ge=1)


class TimeRange(BaseModel):
    start: str = Field(..., description="ISO8601 UTC timestamp")
    end: str = Field(..., description="ISO8601 UTC timestamp")
    is_placeholder: bool = Field(
        default=False,
        description="True when no entry had a valid timestamp and the range is a fixed placeholder",
    )


class SummaryResponse(BaseModel):
    """Dashboard cards and report body for one log analysis."""
    analysis_id: str
    total_entries: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    warning_count: int = Field(..., ge=0)
    info_count: int = Field(..., ge=0)
    debug_count: int = Field(..., ge=0)
    trace_count: int = Field(..., ge=0)
    severity_breakdown: Dict[str, int] = Field(default_factory=dict)
    critical_errors: List[LogItem] = Field(default_factory=list, description="At most 10, input order")
    top_errors: List[PatternItem] = Field(default_factory=list, description="Most frequent ERROR patterns")
    time_range: TimeRange
