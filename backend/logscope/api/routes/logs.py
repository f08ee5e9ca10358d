# logscope/api/routes/logs.py
"""
GET /logs and GET /logs/export

Browse, filter and export the records of a log analysis.

Supported filters:
- severity
- source
- pagination (limit + offset)

When no analysis_id is given, the most recent log upload is used.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from logscope.schemas.logs import LogItem, LogsResponse
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.export_service import export_records_csv
from logscope.utils.parsers import LogRecord, normalize_severity
from logscope.utils.timestamps import isoformat_z

router = APIRouter()


def to_log_item(record: LogRecord) -> LogItem:
    return LogItem(
        log_id=record.id,
        timestamp=isoformat_z(record.timestamp) if record.timestamp else None,
        severity=record.severity.value,
        source=record.source_tag,
        message=record.message,
        raw=record.raw,
    )


def _filter(records, severity: Optional[str], source: Optional[str]) -> List[LogRecord]:
    selected = list(records)
    if severity:
        wanted = normalize_severity(severity)
        selected = [r for r in selected if r.severity is wanted]
    if source:
        selected = [r for r in selected if r.source_tag == source]
    return selected


@router.get("/logs", response_model=LogsResponse)
async def get_logs(
    analysis_id: Optional[str] = Query(default=None, description="Analysis to browse"),
    severity: Optional[str] = Query(default=None, description="Filter by severity"),
    source: Optional[str] = Query(default=None, description="Filter by source tag"),
    limit: int = Query(default=20, ge=1, le=500, description="Max results to return"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    store: AnalysisStore = Depends(get_store),
):
    """
    Retrieve records with optional filters.

    Example:
      /logs?severity=ERROR&source=db&limit=20
    """
    analysis = store.resolve(analysis_id, "log")
    matching = _filter(analysis.records, severity, source)

    filters_applied: Dict[str, str] = {}
    if severity:
        filters_applied["severity"] = normalize_severity(severity).value
    if source:
        filters_applied["source"] = source

    return LogsResponse(
        analysis_id=analysis.analysis_id,
        logs=[to_log_item(r) for r in matching[offset: offset + limit]],
        total=len(matching),
        filters_applied=filters_applied,
    )


@router.get("/logs/export")
async def export_logs(
    analysis_id: Optional[str] = Query(default=None),
    severity: Optional[str] = Query(default=None),
    source: Optional[str] = Query(default=None),
    store: AnalysisStore = Depends(get_store),
):
    """CSV download of the (filtered) records."""
    analysis = store.resolve(analysis_id, "log")
    body = export_records_csv(_filter(analysis.records, severity, source))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"content-disposition": 'attachment; filename="logs.csv"'},
    )
