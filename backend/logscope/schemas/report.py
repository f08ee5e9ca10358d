# logscope/schemas/report.py
"""
Schemas for POST /report.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ReportRequest(BaseModel):
    analysis_id: Optional[str] = Field(default=None, description="Defaults to the most recent log analysis")
    title: str = Field(default="Log analysis report", max_length=200)
    sections: List[str] = Field(
        default_factory=list,
        description="Free-text sections appended verbatim (clipped to the configured budget)",
    )
