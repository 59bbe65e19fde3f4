from __future__ import annotations

from datetime import datetime, timedelta, timezone
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
from pulse.services.calendar.memory import InMemoryCalendarGateway
from pulse.services.planner_registry import PlannerRegistry


T0 = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


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

    clock = FixedClock(T0)
    registry = PlannerRegistry(
        clock_factory=lambda: clock,
        calendar_factory=InMemoryCalendarGateway,
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
        yield test_client, clock, registry
    app.dependency_overrides.clear()


def _check_in(check_in_id: str, minutes: int, **extra) -> dict:
    return {
        "id": check_in_id,
        "category": "Work",
        "task": check_in_id.title(),
        "slot": (T0 + timedelta(minutes=minutes)).isoformat(),
        "logged_at": T0.isoformat(),
        **extra,
    }


def _kinds(response) -> list[str]:
    return sorted(s["kind"] for s in response.json()["suggestions"])


def _focus_for(test_client: TestClient, clock: FixedClock, user_id, minutes: int):
    test_client.post("/planner/rhythm-state", params={"user_id": str(user_id)}, json={"state": "FOCUS"})
    clock.advance(minutes=minutes)
    return test_client.post(
        "/planner/rhythm-state",
        params={"user_id": str(user_id)},
        json={"state": "OPEN", "trigger": "session-ended"},
    )


def test_new_user_has_no_suggestions(client):
    test_client, _, registry = client
    user_id = uuid4()

    response = test_client.get("/planner/suggestions", params={"user_id": str(user_id)})

    assert response.status_code == 200
    assert response.json()["suggestions"] == []
    assert registry.get(user_id) is not None


def test_user_id_is_required(client):
    test_client, _, _ = client
    assert test_client.get("/planner/suggestions").status_code == 422


def test_overdue_check_ins_produce_friction_warning(client):
    test_client, _, _ = client
    user_id = uuid4()
    payload = {"check_ins": [_check_in("email", -60), _check_in("report", -45), _check_in("invoices", -30)]}

    response = test_client.put("/planner/check-ins", params={"user_id": str(user_id)}, json=payload)

    assert response.status_code == 200
    assert _kinds(response) == ["FOCUS_BLOCK", "FRICTION_WARNING"]
    high = test_client.get("/planner/suggestions", params={"user_id": str(user_id), "priority": "high"})
    assert _kinds(high) == ["FRICTION_WARNING"]


def test_invalid_check_in_payload_is_rejected(client):
    test_client, _, _ = client
    response = test_client.put(
        "/planner/check-ins",
        params={"user_id": str(uuid4())},
        json={"check_ins": [{"id": "x", "task": "No slot"}]},
    )
    assert response.status_code == 422


def test_leaving_focus_after_long_session_suggests_break(client):
    test_client, clock, _ = client
    user_id = uuid4()

    response = _focus_for(test_client, clock, user_id, 95)

    assert response.status_code == 200
    breaks = [s for s in response.json()["suggestions"] if s["kind"] == "BREAK_NEEDED"]
    assert breaks[0]["priority"] == "medium"
    assert breaks[0]["action"]["type"] == "create_event"


def test_dismiss_and_accept(client):
    test_client, _, _ = client
    user_id = uuid4()
    params = {"user_id": str(user_id)}
    suggestion = test_client.post("/planner/rhythm-state", params=params, json={"state": "REFLECTIVE"}).json()[
        "suggestions"
    ][0]

    assert test_client.post("/planner/suggestions/missing/dismiss", params=params).status_code == 404
    accepted = test_client.post(f"/planner/suggestions/{suggestion['id']}/accept", params=params)
    assert accepted.status_code == 200
    assert accepted.json()["suggestion"]["dismissed"] is True
    assert test_client.post(f"/planner/suggestions/{suggestion['id']}/dismiss", params=params).status_code == 404


def test_auto_scheduled_break_can_be_cancelled(client):
    test_client, clock, registry = client
    user_id = uuid4()
    params = {"user_id": str(user_id)}
    prefs = test_client.put(
        "/planner/preferences",
        params=params,
        json={"auto_schedule_breaks": True, "require_confirmation": False},
    )
    assert prefs.status_code == 200

    response = _focus_for(test_client, clock, user_id, 95)
    scheduled = [s for s in response.json()["suggestions"] if s["kind"] == "AUTO_SCHEDULED"]
    assert len(scheduled) == 1
    assert scheduled[0]["origin_kind"] == "BREAK_NEEDED"
    calendar = registry.get(user_id).calendar
    assert list(calendar.events) == [scheduled[0]["calendar_event_id"]]

    context = test_client.get("/planner/context", params=params).json()
    assert context["scheduled"] == {scheduled[0]["id"]: scheduled[0]["calendar_event_id"]}

    cancelled = test_client.post(f"/planner/suggestions/{scheduled[0]['id']}/cancel", params=params)
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled"] is True
    assert calendar.events == {}
    again = test_client.post(f"/planner/suggestions/{scheduled[0]['id']}/cancel", params=params)
    assert again.status_code == 404


def test_waves_round_trip(client):
    test_client, _, _ = client
    params = {"user_id": str(uuid4())}
    wave = {"id": "morning", "name": "Morning", "description": "", "color": "#fc0", "start_hour": 6, "end_hour": 12}

    assert test_client.put("/planner/waves", params=params, json={"waves": [wave]}).status_code == 200
    assert test_client.get("/planner/waves", params=params).json()["waves"] == [wave]


def test_calendar_refresh_and_context(client):
    test_client, _, _ = client
    params = {"user_id": str(uuid4())}

    refreshed = test_client.post("/planner/calendar/refresh", params=params)
    context = test_client.get("/planner/context", params=params, headers={"X-Request-Id": "req-ctx"})

    assert refreshed.json()["refreshed"] is True
    assert refreshed.json()["event_count"] == 0
    body = context.json()
    assert body["state"] == "OPEN"
    assert body["request_id"] == "req-ctx"
    assert body["context"].startswith("Rhythm Planner State:")


def test_event_drafts(client):
    test_client, _, _ = client
    params = {"user_id": str(uuid4())}

    break_draft = test_client.post("/planner/events/break", params=params, json={"label": "Report"})
    focus_draft = test_client.post("/planner/events/focus", params=params, json={"label": "Essay", "duration_minutes": 30})

    assert break_draft.status_code == 200
    assert break_draft.json()["description"] == "Recovery break after: Report"
    assert focus_draft.json()["summary"] == "🎯 Focus: Essay"
    start = datetime.fromisoformat(focus_draft.json()["start"])
    end = datetime.fromisoformat(focus_draft.json()["end"])
    assert end - start == timedelta(minutes=30)
