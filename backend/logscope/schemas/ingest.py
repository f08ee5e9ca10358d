# logscope/schemas/ingest.py
"""
Schemas for POST /upload and POST /audit/upload.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class DateRange(BaseModel):
    """Date range covered by the valid timestamps of an upload."""
    earliest: str = Field(..., description="ISO8601 UTC timestamp (earliest entry)")
    latest: str = Field(..., description="ISO8601 UTC timestamp (latest entry)")


class UploadResponse(BaseModel):
    """
    Response returned after a file has been parsed.

    Example:
    {
      "status": "success",
      "analysis_id": "analysis_1a2b3c4d",
      "kind": "log",
      "entries_parsed": 150,
      "entries_without_timestamp": 3,
      "date_range": {"earliest": "...Z", "latest": "...Z"},
      "breakdown": {"ERROR": 15, "WARN": 35, "INFO": 95, "DEBUG": 5, "TRACE": 0}
    }

    `date_range` is null when no entry carried a recognizable timestamp.
    """
    status: str = Field(..., description="Status string, typically 'success'")
    analysis_id: str = Field(..., description="Identifier used by the read endpoints")
    kind: str = Field(..., description="'log' or 'audit'")
    filename: str = Field(..., description="Original file name")
    entries_parsed: int = Field(..., ge=0, description="Number of records produced (one per non-blank line/row)")
    entries_without_timestamp: int = Field(..., ge=0, description="Records whose timestamp could not be recognized")
    date_range: Optional[DateRange] = Field(default=None, description="Span of valid timestamps")
    breakdown: Dict[str, int] = Field(
        default_factory=dict,
        description="Counts by severity (logs) or by category (audit trails)",
    )
