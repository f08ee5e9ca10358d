"""Tests for logscope/utils/timestamps.py"""

from datetime import datetime

import pytest

from logscope.utils.timestamps import (
    AUDIT_GRAMMARS,
    LOG_GRAMMARS,
    YearPolicy,
    format_timestamp,
    is_valid_timestamp,
    isoformat_z,
    recognize,
)

POLICY = YearPolicy(min_year=2020, max_year=2030)


class TestRecognize:
    def test_plain(self):
        assert recognize("2025-01-15 10:30:00", policy=POLICY) == datetime(2025, 1, 15, 10, 30)

    def test_plain_with_fraction(self):
        assert recognize("2025-01-15 10:30:00.123", policy=POLICY) == datetime(2025, 1, 15, 10, 30, 0, 123000)

    def test_iso_with_zulu(self):
        assert recognize("2025-01-15T10:30:00Z", policy=POLICY) == datetime(2025, 1, 15, 10, 30)

    def test_iso_offset_converted_to_utc(self):
        assert recognize("2025-01-15T12:30:00+02:00", policy=POLICY) == datetime(2025, 1, 15, 10, 30)

    def test_bracketed(self):
        assert recognize("[2025-01-15 10:30:00]", policy=POLICY) == datetime(2025, 1, 15, 10, 30)

    @pytest.mark.parametrize(
        "text",
        ["", "   ", None, "hello", "12345", "Jan 15 10:30:00", "2025-13-40 10:30:00", "2025-01-15"],
    )
    def test_rejects_non_timestamps(self, text):
        assert recognize(text, policy=POLICY) is None

    def test_year_outside_window_is_rejected(self):
        assert recognize("2019-12-31 23:59:59", policy=POLICY) is None
        assert recognize("2031-01-01 00:00:00", policy=POLICY) is None

    def test_year_window_is_inclusive(self):
        assert recognize("2020-01-01 00:00:00", policy=POLICY) is not None
        assert recognize("2030-12-31 23:59:59", policy=POLICY) is not None

    def test_custom_window(self):
        wide = YearPolicy(min_year=1990, max_year=2100)
        assert recognize("1999-05-01 08:00:00", policy=wide) == datetime(1999, 5, 1, 8)

    def test_us_datetime_only_in_audit_grammars(self):
        text = "6/3/2025 3:54:15 PM"
        assert recognize(text, LOG_GRAMMARS, POLICY) is None
        assert recognize(text, AUDIT_GRAMMARS, POLICY) == datetime(2025, 6, 3, 15, 54, 15)

    def test_us_datetime_midnight_and_noon(self):
        assert recognize("1/2/2025 12:00:00 AM", AUDIT_GRAMMARS, POLICY) == datetime(2025, 1, 2, 0, 0)
        assert recognize("1/2/2025 12:00:00 PM", AUDIT_GRAMMARS, POLICY) == datetime(2025, 1, 2, 12, 0)


class TestHelpers:
    def test_is_valid_timestamp(self):
        assert is_valid_timestamp(datetime(2025, 1, 1), POLICY)
        assert not is_valid_timestamp(datetime(2010, 1, 1), POLICY)
        assert not is_valid_timestamp(None, POLICY)

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2025, 1, 15, 10, 30)) == "2025-01-15 10:30:00"
        assert format_timestamp(None) == "N/A"

    def test_isoformat_z(self):
        assert isoformat_z(datetime(2025, 1, 15, 10, 30)) == "2025-01-15T10:30:00Z"
