"""Shared fixtures: fresh cache/store per test and record factories."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from logscope.core.config import Settings
from logscope.main import app
from logscope.services.analysis_store import AnalysisStore, get_store
from logscope.services.timeline_service import TimelineCache
from logscope.utils.audit_parsers import AuditRecord
from logscope.utils.parsers import LogRecord, Severity


@pytest.fixture
def cfg():
    return Settings(_env_file=None)


@pytest.fixture
def cache():
    return TimelineCache()


@pytest.fixture
def store(cache, cfg):
    return AnalysisStore(cache=cache, cfg=cfg)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_log_record():
    counter = {"n": 0}

    def _make(ts=None, severity=Severity.INFO, message="test message", source=None):
        counter["n"] += 1
        timestamp = datetime.strptime(ts, "%Y-%m-%d %H:%M:%S") if isinstance(ts, str) else ts
        raw = f"{ts or ''} [{severity.value}] {message} #{counter['n']}"
        return LogRecord(
            id=f"log_{counter['n']:06d}",
            timestamp=timestamp,
            severity=severity,
            message=message,
            source_tag=source,
            raw=raw,
        )

    return _make


@pytest.fixture
def make_audit_record():
    counter = {"n": 0}

    def _make(action, target="drawing.dwg", ts=None, actor="alice", detail=""):
        counter["n"] += 1
        timestamp = datetime.strptime(ts, "%Y-%m-%d %H:%M:%S") if isinstance(ts, str) else ts
        return AuditRecord(
            id=f"audit_{counter['n']:06d}",
            timestamp=timestamp,
            actor=actor,
            action=action,
            target=target,
            location="/Projects",
            object_type="Document",
            detail=detail,
            raw=f"Document,{target},{action},{ts},{actor}",
        )

    return _make
