# logscope/core/errors.py
"""
Named failures raised by the analysis core.

Per-record problems (unrecognized timestamps, short CSV rows) are never errors;
they are represented in the records themselves. Only the conditions below are
allowed to reach a caller.
"""

from __future__ import annotations

from datetime import timedelta


class LogscopeError(Exception):
    """Base class for logscope errors."""
    pass


class EmptyInputError(LogscopeError, ValueError):
    """Raised when an input holds no non-blank line or no records at all."""
    pass


class CacheShapeMismatchError(LogscopeError, RuntimeError):
    """
    Raised when a cache write collides with an entry of a different shape
    under the same (fingerprint, interval) key.
    """

    def __init__(self, fingerprint: str, interval: timedelta, detail: str):
        self.fingerprint = fingerprint
        self.interval = interval
        super().__init__(
            f"Cache entry for fingerprint {fingerprint[:12]} at {interval} "
            f"does not match the new result: {detail}"
        )


class StaleResultError(LogscopeError):
    """Raised when a computation finished for an input that is no longer current."""

    def __init__(self, started_for: str, current: str | None):
        self.started_for = started_for
        self.current = current
        super().__init__(
            f"Result computed for input {started_for[:12]} discarded; "
            f"current input is {(current or 'none')[:12]}"
        )


class AnalysisNotFoundError(LogscopeError, KeyError):
    """Raised when an analysis id is unknown to the store."""

    def __init__(self, analysis_id: str):
        self.analysis_id = analysis_id
        super().__init__(analysis_id)

    def __str__(self) -> str:
        return f"Unknown analysis: {self.analysis_id}"
