# logscope/utils/audit_parsers.py
"""
Audit-trail export parsing.

Document management systems export their audit trail as delimited rows, for
example:

    Object Type,Object Name,Action Name,Date/Time,User Name,Object Description,Additional Data,Comments,Path,User Description
    Document,Q64157-CI0001.dwg,Checked Out,6/3/2025 3:54:15 PM,calum.kay,"Surface, LiDAR",,,/Civil/CAD,Kay

Column names vary between exports, so the header row is mapped onto the
fields we care about through aliases. Rows whose column count does not match
the header are still classified; missing columns are empty strings.

Two independent views are derived from a row:
- `category`: one bucket per row, decided from the action text
- `is_key_event`: a broader investigative flag that may overlap any category
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from logscope.core.errors import EmptyInputError
from logscope.utils.parsers import sort_newest_first, split_lines
from logscope.utils.timestamps import AUDIT_GRAMMARS, YearPolicy, default_policy, recognize

logger = logging.getLogger(__name__)


class AuditCategory(str, Enum):
    DELETION = "deletion"
    MOVEMENT = "movement"
    CHECKINOUT = "checkinout"
    REPLACEMENT = "replacement"
    OTHER = "other"


# Ordered: the first family with a matching term decides the category.
CATEGORY_RULES: Tuple[Tuple[AuditCategory, Tuple[str, ...]], ...] = (
    (AuditCategory.DELETION, ("delete", "purge", "remove")),
    (AuditCategory.MOVEMENT, ("move", "export", "copy", "sent to", "relocat")),
    (AuditCategory.CHECKINOUT, ("check", "free", "lock")),
    (AuditCategory.REPLACEMENT, ("replace", "version", "overwrite")),
)

KEY_ACTION_TERMS: Tuple[str, ...] = (
    "deleted",
    "purge",
    "moved",
    "exported",
    "sent to folder",
    "replaced",
    "freed",
    "version",
)
KEY_DETAIL_TERMS: Tuple[str, ...] = ("error", "failed", "corrupt", "missing")

DETAIL_SEPARATOR = " | "


# ----------------------------
# Categorization
# ----------------------------
def _match_category(text: str) -> AuditCategory:
    lowered = (text or "").lower()
    for category, terms in CATEGORY_RULES:
        if any(t in lowered for t in terms):
            return category
    return AuditCategory.OTHER


def categorize(action: str, detail: str = "") -> AuditCategory:
    """
    Category of an audit event. The action decides; the detail text is only
    consulted when the action alone says nothing.
    """
    category = _match_category(action)
    if category is AuditCategory.OTHER and detail:
        category = _match_category(detail)
    return category


# ----------------------------
# Records
# ----------------------------
@dataclass(frozen=True)
class AuditRecord:
    """One normalized audit-trail row."""
    id: str
    timestamp: Optional[datetime]
    actor: str
    action: str
    target: str
    location: str
    object_type: str
    detail: str
    raw: str

    @property
    def category(self) -> AuditCategory:
        return categorize(self.action, self.detail)


@dataclass(frozen=True)
class HeaderMap:
    """Column index of each field; None when the export has no such column."""
    timestamp: Optional[int] = None
    actor: Optional[int] = None
    action: Optional[int] = None
    target: Optional[int] = None
    location: Optional[int] = None
    object_type: Optional[int] = None
    detail_columns: Tuple[int, ...] = ()


# Positional layout of the common document-management export, used when the
# header row is not recognized.
DEFAULT_HEADER_MAP = HeaderMap(
    object_type=0,
    target=1,
    action=2,
    timestamp=3,
    actor=4,
    location=8,
    detail_columns=(5, 6, 7, 9),
)

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "timestamp": ("datetime", "timestamp", "date", "time", "eventtime"),
    "actor": ("username", "user", "actor", "performedby"),
    "action": ("actionname", "action", "event", "operation"),
    "target": ("objectname", "document", "resource", "target", "filename"),
    "location": ("path", "folder", "location"),
    "object_type": ("objecttype", "type", "application"),
}

# Fixed order: detail is always joined in this sequence.
DETAIL_ALIASES: Tuple[str, ...] = (
    "objectdescription",
    "additionaldata",
    "comments",
    "userdescription",
    "details",
    "detail",
    "description",
)


def _normalize_header(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def build_header_map(header_fields: Sequence[str]) -> HeaderMap:
    """
    Map header names onto record fields via case-insensitive aliases.

    Falls back to DEFAULT_HEADER_MAP when neither an action nor an actor
    column can be found.
    """
    positions: Dict[str, int] = {}
    for idx, name in enumerate(header_fields):
        positions.setdefault(_normalize_header(name), idx)

    resolved: Dict[str, Optional[int]] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        resolved[field_name] = next((positions[a] for a in aliases if a in positions), None)

    if resolved["action"] is None and resolved["actor"] is None:
        logger.info("Unrecognized audit header %r; using positional layout", list(header_fields)[:10])
        return DEFAULT_HEADER_MAP

    detail_columns = tuple(positions[a] for a in DETAIL_ALIASES if a in positions)
    return HeaderMap(detail_columns=detail_columns, **resolved)


# ----------------------------
# Row splitting / classification
# ----------------------------
def split_row(row: str, delimiter: str = ",") -> List[str]:
    """
    Split a delimited row. A double quote toggles "inside literal"; a delimiter
    inside quotes is part of the value. Quote characters are dropped.
    """
    values: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in row:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    values.append("".join(current).strip())
    return values


def detect_delimiter(header_row: str) -> str:
    return "\t" if "\t" in header_row else ","


def audit_record_id(ordinal: int) -> str:
    return f"audit_{ordinal:06d}"


def classify_row(
    row: str,
    header_map: HeaderMap,
    ordinal: int,
    delimiter: str = ",",
    policy: YearPolicy | None = None,
) -> Optional[AuditRecord]:
    """Classify one audit row. Returns None only for a blank row."""
    if row is None or not row.strip():
        return None

    values = split_row(row, delimiter)

    def column(idx: Optional[int]) -> str:
        if idx is None or idx >= len(values):
            return ""
        return values[idx]

    detail = DETAIL_SEPARATOR.join(
        part for part in (column(i) for i in header_map.detail_columns) if part
    )

    return AuditRecord(
        id=audit_record_id(ordinal),
        timestamp=recognize(column(header_map.timestamp), AUDIT_GRAMMARS, policy or default_policy()),
        actor=column(header_map.actor),
        action=column(header_map.action),
        target=column(header_map.target),
        location=column(header_map.location),
        object_type=column(header_map.object_type),
        detail=detail,
        raw=row,
    )


def parse_audit_text(content: str | bytes, policy: YearPolicy | None = None) -> List[AuditRecord]:
    """
    Parse a whole audit export: first non-blank line is the header.

    Raises:
        EmptyInputError: if the content holds no non-blank line.
    """
    lines = [ln for ln in split_lines(content) if ln.strip()]
    if not lines:
        raise EmptyInputError("Empty file.")

    header_row, data_rows = lines[0], lines[1:]
    delimiter = detect_delimiter(header_row)
    header_map = build_header_map(split_row(header_row, delimiter))

    policy = policy or default_policy()
    records: List[AuditRecord] = []
    for ordinal, row in enumerate(data_rows):
        record = classify_row(row, header_map, ordinal, delimiter, policy)
        if record is not None:
            records.append(record)

    logger.info("Parsed %d audit records", len(records))
    return sort_newest_first(records)


# ----------------------------
# Investigation views
# ----------------------------
def is_key_event(record: AuditRecord, orphaned_checkout: bool | None = None) -> bool:
    """
    True for rows worth investigating first.

    `orphaned_checkout` says whether a checkout has no matching check-in; when
    the caller does not know (None), a checkout counts as orphaned unless its
    own detail mentions the check-in.
    """
    action = record.action.lower()
    detail = record.detail.lower()

    if any(t in action for t in KEY_ACTION_TERMS):
        return True
    if any(t in detail for t in KEY_DETAIL_TERMS):
        return True
    if "checked out" in action:
        if orphaned_checkout is None:
            return "checked in" not in detail
        return orphaned_checkout
    return False


def find_orphaned_checkouts(records: Iterable[AuditRecord]) -> set[str]:
    """
    Ids of "checked out" rows with no "checked in" for the same target at or
    after them. Without timestamps to compare, any check-in of the target
    counts as a match.
    """
    records = list(records)
    checkins: Dict[str, List[Optional[datetime]]] = defaultdict(list)
    for r in records:
        if "checked in" in r.action.lower():
            checkins[r.target].append(r.timestamp)

    orphaned = set()
    for r in records:
        if "checked out" not in r.action.lower():
            continue
        if "checked in" in r.detail.lower():
            continue
        matched = any(
            ts is None or r.timestamp is None or ts >= r.timestamp
            for ts in checkins.get(r.target, ())
        )
        if not matched:
            orphaned.add(r.id)
    return orphaned


def identify_key_events(records: Sequence[AuditRecord], limit: int = 50) -> List[AuditRecord]:
    """Key events in input order, capped at `limit`."""
    orphaned = find_orphaned_checkouts(records)
    key_events = [r for r in records if is_key_event(r, orphaned_checkout=r.id in orphaned)]
    return key_events[:limit]


def categorize_all(records: Iterable[AuditRecord]) -> Dict[AuditCategory, List[AuditRecord]]:
    grouped: Dict[AuditCategory, List[AuditRecord]] = {c: [] for c in AuditCategory}
    for r in records:
        grouped[r.category].append(r)
    return grouped
