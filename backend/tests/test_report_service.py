"""Tests for logscope/services/report_service.py"""

from datetime import datetime, timezone

from logscope.core.config import Settings
from logscope.services.report_service import (
    TRUNCATION_NOTICE,
    build_assistant_context,
    build_report,
    merge_additional_sections,
)
from logscope.services.summary_service import summarize
from logscope.utils.parsers import Severity


class TestMergeSections:
    def test_empty(self):
        assert merge_additional_sections([], 100) == (None, False)
        assert merge_additional_sections(["", "   "], 100) == (None, False)

    def test_joined_verbatim(self):
        text, truncated = merge_additional_sections(["First", "Second"], 100)
        assert text == "First\n\n---\n\nSecond"
        assert not truncated

    def test_truncated_to_budget(self):
        text, truncated = merge_additional_sections(["x" * 500], 100)
        assert truncated
        assert text == "x" * 100 + TRUNCATION_NOTICE


class TestBuildReport:
    def test_contents(self, make_log_record):
        records = [
            make_log_record("2025-01-15 10:00:00", Severity.ERROR, "Disk failure on volume 2"),
            make_log_record("2025-01-15 11:00:00", Severity.INFO, "Started"),
        ]
        now = datetime(2025, 1, 16, 8, 0, tzinfo=timezone.utc)
        report = build_report(summarize(records), "Nightly", ["Analyst notes"], now=now)
        assert report.title == "Nightly"
        assert report.generated_at == "2025-01-16T08:00:00Z"
        assert report.total_entries == 2
        assert report.severity_breakdown == {"ERROR": 1, "WARN": 0, "INFO": 1, "DEBUG": 0, "TRACE": 0}
        assert report.time_range == {"start": "2025-01-15T10:00:00Z", "end": "2025-01-15T11:00:00Z"}
        assert report.critical_messages == ["Disk failure on volume 2"]
        assert report.top_patterns[0].pattern == "Disk failure on volume N"
        assert report.additional_details == "Analyst notes"

    def test_no_time_range_without_timestamps(self, make_log_record):
        report = build_report(summarize([make_log_record(None)]), "")
        assert report.time_range is None
        assert report.title == "Log analysis report"

    def test_budget_from_settings(self, make_log_record):
        cfg = Settings(_env_file=None, ADDITIONAL_SECTIONS_MAX_CHARS=100)
        report = build_report(summarize([make_log_record(None)]), "t", ["y" * 300], cfg=cfg)
        assert report.additional_details_truncated
        assert report.additional_details.startswith("y" * 100)


class TestAssistantContext:
    def test_numeric_only(self, make_log_record):
        records = [make_log_record("2025-01-15 10:00:00", Severity.ERROR, "secret customer data leaked")]
        context = build_assistant_context(summarize(records))
        assert context["error_count"] == 1
        assert "secret" not in repr(context)
        for value in context.values():
            assert isinstance(value, (int, float, bool, list))
