# logscope/api/routes/report.py
"""
POST /report

Assemble report content for a log analysis. Rendering (PDF, HTML) happens
client-side; this endpoint decides what goes on the page.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from logscope.schemas.report import ReportRequest
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.report_service import Report, build_assistant_context, build_report
from logscope.services.summary_service import summarize

router = APIRouter()


@router.post("/report", response_model=Report)
async def create_report(
    payload: ReportRequest,
    store: AnalysisStore = Depends(get_store),
):
    analysis = store.resolve(payload.analysis_id, "log")
    return build_report(summarize(analysis.records), payload.title, payload.sections)


@router.get("/report/context")
async def report_context(
    analysis_id: Optional[str] = Query(default=None),
    store: AnalysisStore = Depends(get_store),
):
    """Numeric-only summary fields, safe to hand to an external writing assistant."""
    analysis = store.resolve(analysis_id, "log")
    return build_assistant_context(summarize(analysis.records))
