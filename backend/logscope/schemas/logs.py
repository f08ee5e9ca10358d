# logscope/schemas/logs.py
"""
Schemas for GET /logs.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LogItem(BaseModel):
    """A single log record for browsing."""
    log_id: str = Field(..., description="Record identifier (e.g., log_000047)")
    timestamp: Optional[str] = Field(default=None, description="ISO8601 UTC timestamp, null when unrecognized")
    severity: str = Field(..., description="ERROR, WARN, INFO, DEBUG or TRACE")
    source: Optional[str] = Field(default=None, description="Bracketed source tag, if any")
    message: str = Field(..., description="Cleaned message")
    raw: str = Field(..., description="Original line")


class LogsResponse(BaseModel):
    """
    Response for browsing records with filters.

    Records are ordered newest first; records without a timestamp come last.
    """
    analysis_id: str
    logs: List[LogItem] = Field(default_factory=list, description="Log records")
    total: int = Field(..., ge=0, description="Total matching records before pagination")
    filters_applied: Dict[str, str] = Field(
        default_factory=dict,
        description="Echo of applied filters (for UI clarity)",
    )
