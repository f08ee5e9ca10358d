# logscope/services/analysis_store.py
"""
In-memory registry of uploaded inputs.

Each upload becomes an Analysis: its immutable record sequence, the input
fingerprint, and a TimelineController bound to the process-wide TimelineCache.
Nothing is persisted; restarting the process forgets every analysis.

Routes reach the store through the `get_store()` dependency so tests can swap
in a fresh one.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Tuple, Union

from logscope.core.config import Settings, settings as default_settings
from logscope.core.errors import AnalysisNotFoundError
from logscope.services.timeline_service import TimelineCache, TimelineController
from logscope.utils.audit_parsers import AuditRecord
from logscope.utils.parsers import LogRecord

logger = logging.getLogger(__name__)

AnalysisKind = Literal["log", "audit"]


@dataclass
class Analysis:
    analysis_id: str
    kind: AnalysisKind
    filename: str
    records: Tuple[Union[LogRecord, AuditRecord], ...]
    fingerprint: str
    created_at: datetime
    timeline: TimelineController = field(repr=False)


class AnalysisStore:
    """Bounded, insertion-ordered map of analysis id -> Analysis."""

    def __init__(self, cache: TimelineCache | None = None, cfg: Settings | None = None, max_analyses: int = 32):
        self.cache = cache or TimelineCache()
        self._cfg = cfg or default_settings
        self._max = max_analyses
        self._items: "OrderedDict[str, Analysis]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def add(self, kind: AnalysisKind, filename: str, records) -> Analysis:
        records = tuple(records)
        controller = TimelineController(self.cache, self._cfg)
        controller.load(records)

        analysis = Analysis(
            analysis_id=f"analysis_{uuid.uuid4().hex[:8]}",
            kind=kind,
            filename=filename,
            records=records,
            fingerprint=controller.fingerprint,
            created_at=datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None),
            timeline=controller,
        )
        self._items[analysis.analysis_id] = analysis

        while len(self._items) > self._max:
            _, evicted = self._items.popitem(last=False)
            self.cache.invalidate(evicted.fingerprint)
            logger.info("Evicted analysis %s (%s)", evicted.analysis_id, evicted.filename)

        logger.info("Stored %s analysis %s with %d records", kind, analysis.analysis_id, len(records))
        return analysis

    def get(self, analysis_id: str, kind: AnalysisKind | None = None) -> Analysis:
        analysis = self._items.get(analysis_id)
        if analysis is None or (kind is not None and analysis.kind != kind):
            raise AnalysisNotFoundError(analysis_id)
        return analysis

    def latest(self, kind: AnalysisKind) -> Analysis:
        for analysis in reversed(self._items.values()):
            if analysis.kind == kind:
                return analysis
        raise AnalysisNotFoundError(f"latest {kind}")

    def resolve(self, analysis_id: str | None, kind: AnalysisKind) -> Analysis:
        """Explicit id, or the most recent analysis of that kind."""
        return self.get(analysis_id, kind) if analysis_id else self.latest(kind)


_store = AnalysisStore()


def get_store() -> AnalysisStore:
    """FastAPI dependency returning the process-wide store."""
    return _store
