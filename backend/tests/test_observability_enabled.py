from __future__ import annotations

import importlib
import os
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pulse.api.deps import get_registry
from pulse.db.deps import get_db
from pulse.db.models.planner_audit_log import PlannerAuditLog
from pulse.db.models.planner_preferences import PlannerPreferencesRecord
from pulse.observability import client as client_module
from pulse.services.audit.memory import MemoryAuditSink
from pulse.services.planner_registry import PlannerRegistry


class _DummyTrace:
    def __init__(self, metadata=None, **kwargs):
        self.metadata = metadata or {}

    def update(self, metadata=None, **kwargs):
        if metadata:
            self.metadata = metadata

    def end(self):
        pass


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.traces = []

    def trace(self, **kwargs):
        trace = _DummyTrace(metadata=kwargs.get("metadata"))
        self.traces.append(trace)
        return trace


@pytest.fixture()
def sqlite_override():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    PlannerPreferencesRecord.__table__.create(bind=engine)
    PlannerAuditLog.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return override_get_db


@pytest.mark.skipif("OPIK_API_KEY" not in os.environ, reason="OPIK_API_KEY env var required for Opik tests")
def test_app_runs_with_opik_enabled(monkeypatch, sqlite_override):
    api_key = os.environ["OPIK_API_KEY"]
    monkeypatch.setenv("OPIK_ENABLED", "true")
    monkeypatch.setenv("OPIK_PROJECT", "pulse-planner-test")
    monkeypatch.setenv("OPIK_API_KEY", api_key)

    import pulse.core.config as config_module
    import pulse.main as main_module

    importlib.reload(config_module)
    importlib.reload(client_module)
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    client_module.reset_opik_client()
    reloaded_main = importlib.reload(main_module)

    registry = PlannerRegistry(calendar_factory=lambda: None, audit_factory=lambda user_id: MemoryAuditSink())
    reloaded_main.app.dependency_overrides[get_db] = sqlite_override
    reloaded_main.app.dependency_overrides[get_registry] = lambda: registry

    with TestClient(reloaded_main.app) as test_client:
        assert test_client.get("/health").status_code == 200
        resp = test_client.post("/planner/rhythm-state", params={"user_id": str(uuid4())}, json={"state": "REFLECTIVE"})
        assert resp.status_code == 200

    reloaded_main.app.dependency_overrides.clear()

    monkeypatch.setenv("OPIK_ENABLED", "false")
    importlib.reload(config_module)
    importlib.reload(client_module)
    client_module.reset_opik_client()
    importlib.reload(main_module)
