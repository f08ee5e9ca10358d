# logscope/api/routes/ingest.py
"""
Upload endpoints.

Responsibilities:
- Accept log / audit exports
- Enforce the extension allow-list and size ceiling
- Flatten JSON logs into pseudo log lines
- Parse into records and register the analysis
- Return structured ingestion statistics
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from typing import Dict, Sequence

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from logscope.core.config import settings
from logscope.core.errors import EmptyInputError
from logscope.schemas.ingest import DateRange, UploadResponse
from logscope.services.analysis_store import Analysis, AnalysisStore, get_store
from logscope.services.summary_service import compute_time_span
from logscope.utils.audit_parsers import AuditCategory, parse_audit_text
from logscope.utils.json_flatten import flatten_json_logs
from logscope.utils.parsers import SEVERITY_ORDER, parse_log_text
from logscope.utils.timestamps import default_policy, isoformat_z

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> str:
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename.")

    ext = os.path.splitext(file.filename.lower())[1]
    if ext not in settings.ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type. Allowed: {', '.join(settings.ALLOWED_EXTENSIONS)}",
        )

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"Upload too large. Max is {settings.MAX_UPLOAD_MB} MB.")
    if not content.strip():
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")

    text = content.decode("utf-8", errors="replace")
    if ext == ".json":
        text = flatten_json_logs(text, file.filename)
    return text


def _upload_response(analysis: Analysis, breakdown: Dict[str, int]) -> UploadResponse:
    records: Sequence = analysis.records
    span = compute_time_span((r.timestamp for r in records), default_policy())
    date_range = None
    if not span.is_sentinel:
        date_range = DateRange(earliest=isoformat_z(span.start), latest=isoformat_z(span.end))

    return UploadResponse(
        status="success",
        analysis_id=analysis.analysis_id,
        kind=analysis.kind,
        filename=analysis.filename,
        entries_parsed=len(records),
        entries_without_timestamp=sum(1 for r in records if r.timestamp is None),
        date_range=date_range,
        breakdown=breakdown,
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_logs(
    file: UploadFile = File(...),
    store: AnalysisStore = Depends(get_store),
):
    """Upload and parse a log file (.log, .txt, .out, .json)."""
    text = await _read_upload(file)

    try:
        records = await run_in_threadpool(parse_log_text, text)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    analysis = store.add("log", file.filename, records)
    counts = Counter(r.severity for r in records)
    return _upload_response(analysis, {sev.value: int(counts.get(sev, 0)) for sev in SEVERITY_ORDER})


@router.post("/audit/upload", response_model=UploadResponse)
async def upload_audit_trail(
    file: UploadFile = File(...),
    store: AnalysisStore = Depends(get_store),
):
    """Upload and parse an audit-trail export (header row + delimited rows)."""
    text = await _read_upload(file)

    try:
        records = await run_in_threadpool(parse_audit_text, text)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    analysis = store.add("audit", file.filename, records)
    counts = Counter(r.category for r in records)
    return _upload_response(analysis, {c.value: int(counts.get(c, 0)) for c in AuditCategory})
