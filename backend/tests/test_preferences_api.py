from __future__ import annotations

from datetime import datetime, timezone
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
from pulse.main import app
from pulse.planner.clock import FixedClock
from pulse.services.audit.memory import MemoryAuditSink
from pulse.services.planner_registry import PlannerRegistry


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    PlannerPreferencesRecord.__table__.create(bind=engine)
    PlannerAuditLog.__table__.create(bind=engine)

    registry = PlannerRegistry(
        clock_factory=lambda: FixedClock(datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)),
        calendar_factory=lambda: None,
        audit_factory=lambda user_id: MemoryAuditSink(),
    )

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, registry
    app.dependency_overrides.clear()


def test_defaults_for_new_user(client):
    test_client, session_factory, _ = client
    user_id = uuid4()

    response = test_client.get("/planner/preferences", params={"user_id": str(user_id)})

    assert response.status_code == 200
    body = response.json()
    assert body["config"]["focus_break_threshold"] == 90
    assert body["preferences"]["focus_break_threshold"] is None
    assert body["preferences"]["notifications_enabled"] is True
    with session_factory() as session:
        assert session.get(PlannerPreferencesRecord, user_id) is not None


def test_update_persists_and_reconfigures_planner(client):
    test_client, session_factory, registry = client
    user_id = uuid4()
    params = {"user_id": str(user_id)}

    response = test_client.put(
        "/planner/preferences",
        params=params,
        json={"focus_break_threshold": 45, "quiet_hours_enabled": True},
    )

    assert response.status_code == 200
    assert response.json()["config"]["focus_break_threshold"] == 45
    assert registry.get(user_id).config.focus_break_threshold == 45
    with session_factory() as session:
        record = session.get(PlannerPreferencesRecord, user_id)
        assert record.values["focus_break_threshold"] == 45
        assert record.values["quiet_hours_enabled"] is True

    follow_up = test_client.put("/planner/preferences", params=params, json={"friction_threshold": 5})
    assert follow_up.json()["preferences"]["focus_break_threshold"] == 45
    assert follow_up.json()["config"]["friction_threshold"] == 5


def test_null_resets_planner_field(client):
    test_client, _, _ = client
    params = {"user_id": str(uuid4())}
    test_client.put("/planner/preferences", params=params, json={"focus_break_threshold": 45})

    response = test_client.put(
        "/planner/preferences",
        params=params,
        json={"focus_break_threshold": None, "break_reminders": None},
    )

    assert response.status_code == 200
    assert response.json()["config"]["focus_break_threshold"] == 90
    assert response.json()["preferences"]["break_reminders"] is True


def test_invalid_working_hours_are_rejected_and_not_saved(client):
    test_client, session_factory, registry = client
    user_id = uuid4()
    params = {"user_id": str(user_id)}

    response = test_client.put(
        "/planner/preferences",
        params=params,
        json={"working_hours_start": 18, "working_hours_end": 8},
    )

    assert response.status_code == 422
    assert registry.get(user_id).config.working_hours_start == 9
    with session_factory() as session:
        assert session.get(PlannerPreferencesRecord, user_id).values == {}


def test_out_of_range_quiet_hours_are_rejected(client):
    test_client, _, _ = client
    response = test_client.put(
        "/planner/preferences",
        params={"user_id": str(uuid4())},
        json={"quiet_hours_start": 30},
    )
    assert response.status_code == 422


def test_unknown_fields_are_rejected(client):
    test_client, _, _ = client
    response = test_client.put(
        "/planner/preferences",
        params={"user_id": str(uuid4())},
        json={"focus_mode": "turbo"},
    )
    assert response.status_code == 422
