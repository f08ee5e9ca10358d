# logscope/services/report_service.py
"""
Report assembly for the PDF collaborator.

Two narrow interfaces:
- `build_assistant_context()` produces the only payload an external writing
  assistant ever sees: numeric summary fields. Never records, never messages.
- `build_report()` combines the summary with free-text sections (assistant
  output, analyst notes) appended verbatim within a character budget.

Page layout is the PDF collaborator's job; this module only decides content.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from logscope.core.config import Settings, settings as default_settings
from logscope.services.summary_service import LogSummary
from logscope.utils.parsers import SEVERITY_ORDER
from logscope.utils.timestamps import isoformat_z

SECTION_SEPARATOR = "\n\n---\n\n"
TRUNCATION_NOTICE = "\n\n[Content truncated due to length limits]"


class ReportPattern(BaseModel):
    pattern: str
    count: int = Field(..., ge=0)


class Report(BaseModel):
    """Content of a generated report, in reading order."""
    title: str
    generated_at: str = Field(..., description="ISO8601 UTC timestamp when the report was assembled")
    total_entries: int = Field(..., ge=0)
    severity_breakdown: Dict[str, int] = Field(default_factory=dict)
    time_range: Optional[Dict[str, str]] = Field(
        default=None,
        description="start/end of valid timestamps; None when the input had none",
    )
    critical_messages: List[str] = Field(default_factory=list)
    top_patterns: List[ReportPattern] = Field(default_factory=list)
    additional_details: Optional[str] = None
    additional_details_truncated: bool = False


def merge_additional_sections(sections: Sequence[str], limit: int) -> tuple[Optional[str], bool]:
    """
    Join free-text sections and clip them to `limit` characters.

    Returns (text, truncated). Empty input gives (None, False).
    """
    parts = [s for s in sections if s and s.strip()]
    if not parts:
        return None, False
    combined = SECTION_SEPARATOR.join(parts)
    if len(combined) > limit:
        return combined[:limit] + TRUNCATION_NOTICE, True
    return combined, False


def build_assistant_context(summary: LogSummary) -> Dict[str, Any]:
    """Numeric-only view of a summary for an external assistant prompt."""
    span = summary.time_span
    context: Dict[str, Any] = {
        "total_entries": summary.total,
        "error_count": summary.error_count,
        "warning_count": summary.warning_count,
        "info_count": summary.info_count,
        "debug_count": summary.debug_count,
        "trace_count": summary.trace_count,
        "critical_count": len(summary.critical_records),
        "pattern_counts": [p.count for p in summary.top_patterns],
        "has_time_range": not span.is_sentinel,
    }
    if not span.is_sentinel:
        context["time_range_hours"] = round((span.end - span.start).total_seconds() / 3600, 2)
    return context


def build_report(
    summary: LogSummary,
    title: str,
    sections: Sequence[str] = (),
    cfg: Settings | None = None,
    now: datetime | None = None,
) -> Report:
    cfg = cfg or default_settings
    details, truncated = merge_additional_sections(sections, cfg.ADDITIONAL_SECTIONS_MAX_CHARS)
    span = summary.time_span
    generated = now or datetime.now(timezone.utc).replace(microsecond=0)

    return Report(
        title=title.strip() or "Log analysis report",
        generated_at=isoformat_z(generated),
        total_entries=summary.total,
        severity_breakdown={sev.value: summary.severity_counts.get(sev, 0) for sev in SEVERITY_ORDER},
        time_range=None if span.is_sentinel else {"start": isoformat_z(span.start), "end": isoformat_z(span.end)},
        critical_messages=[r.message for r in summary.critical_records],
        top_patterns=[ReportPattern(pattern=p.pattern, count=p.count) for p in summary.top_patterns],
        additional_details=details,
        additional_details_truncated=truncated,
    )
