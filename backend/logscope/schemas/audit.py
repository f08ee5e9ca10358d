# logscope/schemas/audit.py
"""
Schemas for the audit-trail endpoints.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from logscope.schemas.summary import TimeRange


class AuditItem(BaseModel):
    """A single audit-trail record."""
    audit_id: str
    timestamp: Optional[str] = Field(default=None, description="ISO8601 UTC timestamp, null when unrecognized")
    actor: str
    action: str
    target: str
    location: str
    object_type: str
    detail: str
    category: str = Field(..., description="deletion | movement | checkinout | replacement | other")
    is_key_event: bool = False


class AuditEntriesResponse(BaseModel):
    analysis_id: str
    entries: List[AuditItem] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    filters_applied: Dict[str, str] = Field(default_factory=dict)


class RankedItem(BaseModel):
    name: str
    count: int = Field(..., ge=1)


class AuditSummaryResponse(BaseModel):
    """Investigation overview of an audit trail."""
    analysis_id: str
    total_entries: int = Field(..., ge=0)
    category_counts: Dict[str, int] = Field(default_factory=dict)
    most_active_users: List[RankedItem] = Field(default_factory=list)
    most_affected_resources: List[RankedItem] = Field(default_factory=list)
    key_events: List[AuditItem] = Field(default_factory=list, description="At most 50 records worth investigating")
    time_range: TimeRange
