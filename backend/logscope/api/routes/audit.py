# logscope/api/routes/audit.py
"""
Audit-trail read endpoints.

GET /audit/summary  - category counts, most active users, most affected
                      resources, key events and time range
GET /audit/entries  - browse rows, filtered by category / actor / key events
"""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from logscope.api.routes.summary import to_time_range
from logscope.core.config import settings
from logscope.schemas.audit import AuditEntriesResponse, AuditItem, AuditSummaryResponse, RankedItem
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.summary_service import summarize_audit
from logscope.utils.audit_parsers import AuditCategory, AuditRecord, find_orphaned_checkouts, is_key_event
from logscope.utils.timestamps import isoformat_z

router = APIRouter(prefix="/audit")


def to_audit_item(record: AuditRecord, key_event: bool) -> AuditItem:
    return AuditItem(
        audit_id=record.id,
        timestamp=isoformat_z(record.timestamp) if record.timestamp else None,
        actor=record.actor,
        action=record.action,
        target=record.target,
        location=record.location,
        object_type=record.object_type,
        detail=record.detail,
        category=record.category.value,
        is_key_event=key_event,
    )


@router.get("/summary", response_model=AuditSummaryResponse)
async def audit_summary(
    analysis_id: Optional[str] = Query(default=None, description="Defaults to the most recent audit upload"),
    store: AnalysisStore = Depends(get_store),
):
    analysis = store.resolve(analysis_id, "audit")
    summary = summarize_audit(analysis.records, settings)

    return AuditSummaryResponse(
        analysis_id=analysis.analysis_id,
        total_entries=summary.total,
        category_counts={c.value: n for c, n in summary.category_counts.items()},
        most_active_users=[RankedItem(name=r.name, count=r.count) for r in summary.top_actors],
        most_affected_resources=[RankedItem(name=r.name, count=r.count) for r in summary.top_targets],
        key_events=[to_audit_item(r, True) for r in summary.key_events],
        time_range=to_time_range(summary.time_span),
    )


@router.get("/entries", response_model=AuditEntriesResponse)
async def audit_entries(
    analysis_id: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None, description="deletion | movement | checkinout | replacement | other"),
    actor: Optional[str] = Query(default=None, description="Exact actor name"),
    key_only: bool = Query(default=False, description="Only rows flagged as key events"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: AnalysisStore = Depends(get_store),
):
    analysis = store.resolve(analysis_id, "audit")
    orphaned = find_orphaned_checkouts(analysis.records)
    filters_applied: Dict[str, str] = {}

    rows = [(r, is_key_event(r, orphaned_checkout=r.id in orphaned)) for r in analysis.records]

    if category:
        try:
            wanted = AuditCategory(category.lower())
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown category: {category}")
        rows = [(r, k) for r, k in rows if r.category is wanted]
        filters_applied["category"] = wanted.value
    if actor:
        rows = [(r, k) for r, k in rows if r.actor == actor]
        filters_applied["actor"] = actor
    if key_only:
        rows = [(r, k) for r, k in rows if k]
        filters_applied["key_only"] = "true"

    return AuditEntriesResponse(
        analysis_id=analysis.analysis_id,
        entries=[to_audit_item(r, k) for r, k in rows[offset: offset + limit]],
        total=len(rows),
        filters_applied=filters_applied,
    )
