# logscope/utils/json_flatten.py
"""
Flatten JSON log exports into pseudo log lines before classification.

Accepted shapes: a list of entries, `{"logs": [...]}`, `{"entries": [...]}`,
or one entry object. Each entry becomes

    <timestamp> [LEVEL] [source] message

so the line classifier can treat it like any other text log. Content that is
not valid JSON is returned unchanged.
"""

from __future__ import annotations

from typing import Any, List, Optional

import orjson

TIMESTAMP_KEYS = ("timestamp", "time", "date", "@timestamp")
LEVEL_KEYS = ("level", "severity", "priority")
MESSAGE_KEYS = ("message", "msg", "text", "description")
SOURCE_KEYS = ("source", "component", "service", "logger")


def _first(entry: dict, keys: tuple) -> Any:
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return value
    return None


def format_entry(entry: Any, index: int) -> str:
    if not isinstance(entry, dict):
        return f"Entry {index + 1}: {entry}"

    parts: List[str] = []
    timestamp = _first(entry, TIMESTAMP_KEYS)
    level = _first(entry, LEVEL_KEYS) or "INFO"
    message = _first(entry, MESSAGE_KEYS)
    source = _first(entry, SOURCE_KEYS)

    if timestamp:
        parts.append(str(timestamp))
    parts.append(f"[{str(level).upper()}]")
    if source:
        parts.append(f"[{source}]")
    parts.append(str(message) if message is not None else orjson.dumps(entry).decode("utf-8"))
    return " ".join(parts)


def _entries(data: Any) -> Optional[list]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("logs", "entries"):
            if isinstance(data.get(key), list):
                return data[key]
        return [data]
    return None


def flatten_json_logs(text: str, filename: str = "upload.json") -> str:
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError:
        return text

    entries = _entries(data)
    lines = [format_entry(e, i) for i, e in enumerate(entries or [])]
    if not lines:
        return f"JSON Content from {filename}: {orjson.dumps(data).decode('utf-8')}"
    return "\n".join(lines)
