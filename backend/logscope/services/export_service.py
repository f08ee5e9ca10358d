# logscope/services/export_service.py
"""
CSV export of a log record sequence, and the reader for that export.

Format:
    Timestamp,Level,Message
    2025-01-15 10:30:00,ERROR,[db] Connection timeout to database

The source tag, when present, is folded into the message as `[source] `.
Missing timestamps are written as `N/A` and read back as None.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from logscope.utils.parsers import LogRecord, Severity, normalize_severity
from logscope.utils.timestamps import LOG_GRAMMARS, YearPolicy, format_timestamp, recognize

EXPORT_HEADER = ("Timestamp", "Level", "Message")
MISSING_TIMESTAMP = "N/A"


@dataclass(frozen=True)
class ExportedRow:
    timestamp: Optional[datetime]
    severity: Severity
    message: str


def export_message(record: LogRecord) -> str:
    prefix = f"[{record.source_tag}] " if record.source_tag else ""
    return prefix + record.message


def export_records_csv(records: Iterable[LogRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for record in records:
        writer.writerow(
            (format_timestamp(record.timestamp), record.severity.value, export_message(record))
        )
    return buffer.getvalue()


def parse_exported_csv(text: str, policy: YearPolicy | None = None) -> List[ExportedRow]:
    """Read an export produced by `export_records_csv` back into rows."""
    reader = csv.reader(io.StringIO(text))
    rows: List[ExportedRow] = []
    for idx, fields in enumerate(reader):
        if idx == 0 and tuple(fields) == EXPORT_HEADER:
            continue
        if not fields:
            continue
        ts_raw, level, message = (fields + ["", "", ""])[:3]
        timestamp = None if ts_raw == MISSING_TIMESTAMP else recognize(ts_raw, LOG_GRAMMARS, policy)
        rows.append(ExportedRow(timestamp=timestamp, severity=normalize_severity(level), message=message))
    return rows
