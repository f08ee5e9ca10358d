# logscope/api/routes/summary.py
"""
GET /summary

Counts, critical shortlist, recurring error patterns and time range of a log
analysis. Purely deterministic; no assistant involvement.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from logscope.api.routes.logs import to_log_item
from logscope.schemas.summary import PatternItem, SummaryResponse, TimeRange
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.summary_service import TimeSpan, summarize
from logscope.utils.parsers import SEVERITY_ORDER
from logscope.utils.timestamps import isoformat_z

router = APIRouter()


def to_time_range(span: TimeSpan) -> TimeRange:
    return TimeRange(start=isoformat_z(span.start), end=isoformat_z(span.end), is_placeholder=span.is_sentinel)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    analysis_id: Optional[str] = Query(default=None, description="Defaults to the most recent log upload"),
    store: AnalysisStore = Depends(get_store),
):
    analysis = store.resolve(analysis_id, "log")
    summary = summarize(analysis.records)

    return SummaryResponse(
        analysis_id=analysis.analysis_id,
        total_entries=summary.total,
        error_count=summary.error_count,
        warning_count=summary.warning_count,
        info_count=summary.info_count,
        debug_count=summary.debug_count,
        trace_count=summary.trace_count,
        severity_breakdown={sev.value: summary.severity_counts[sev] for sev in SEVERITY_ORDER},
        critical_errors=[to_log_item(r) for r in summary.critical_records],
        top_errors=[PatternItem(message=p.pattern, count=p.count) for p in summary.top_patterns],
        time_range=to_time_range(summary.time_span),
    )
