from __future__ import annotations

import logging
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pulse.core.context import planner_trigger, request_id_ctx_var
from pulse.db.models.planner_audit_log import PlannerAuditLog
from pulse.services.audit import factory
from pulse.services.audit.base import AuditCategory, AuditSeverity, AuditSink, safe_add_entry
from pulse.services.audit.database import DatabaseAuditSink
from pulse.services.audit.memory import LoggingAuditSink, MemoryAuditSink


def _session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    PlannerAuditLog.__table__.create(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def test_database_sink_writes_row_with_context() -> None:
    session_factory = _session_factory()
    user_id = uuid4()
    sink = DatabaseAuditSink(session_factory, user_id=user_id)

    token = request_id_ctx_var.set("req-42")
    try:
        with planner_trigger("tick"):
            sink.add_entry(AuditCategory.AI_SUGGESTION, AuditSeverity.WARNING, "Friction warning", {"overdue_count": 3})
    finally:
        request_id_ctx_var.reset(token)

    with session_factory() as session:
        row = session.scalars(select(PlannerAuditLog)).one()
    assert row.user_id == user_id
    assert row.category == "AI-suggestion"
    assert row.severity == "warning"
    assert row.metadata_json == {"overdue_count": 3, "request_id": "req-42", "trigger": "tick"}


def test_memory_sink_filters_by_category() -> None:
    sink = MemoryAuditSink()
    sink.add_entry(AuditCategory.SYSTEM_INIT, AuditSeverity.INFO, "init")
    sink.add_entry(AuditCategory.ERROR, AuditSeverity.ERROR, "boom", {"operation": "list"})

    assert [e.message for e in sink.by_category(AuditCategory.ERROR)] == ["boom"]
    assert sink.entries[0].metadata == {}


def test_logging_sink_uses_severity_level(caplog) -> None:
    with caplog.at_level(logging.INFO):
        LoggingAuditSink().add_entry(AuditCategory.ERROR, AuditSeverity.ERROR, "Calendar create failed")

    assert caplog.records[-1].levelno == logging.ERROR
    assert "Calendar create failed" in caplog.records[-1].getMessage()


def test_safe_add_entry_swallows_sink_failures(caplog) -> None:
    class _Broken(AuditSink):
        def add_entry(self, category, severity, message, metadata=None):
            raise RuntimeError("disk full")

    safe_add_entry(_Broken(), AuditCategory.ERROR, AuditSeverity.ERROR, "boom")
    safe_add_entry(None, AuditCategory.ERROR, AuditSeverity.ERROR, "ignored")

    assert any("rejected entry" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "kind, expected",
    [("memory", MemoryAuditSink), ("log", LoggingAuditSink), ("database", DatabaseAuditSink)],
)
def test_factory_selects_sink(monkeypatch, kind, expected) -> None:
    monkeypatch.setattr(factory.settings, "audit_sink", kind)
    assert isinstance(factory.get_audit_sink(uuid4()), expected)
