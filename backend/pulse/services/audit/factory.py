"""Audit sink factory."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pulse.core.config import settings
from pulse.services.audit.base import AuditSink
from pulse.services.audit.memory import LoggingAuditSink, MemoryAuditSink


def get_audit_sink(user_id: Optional[UUID] = None) -> AuditSink:
    kind = settings.audit_sink.lower()
    if kind == "memory":
        return MemoryAuditSink()
    if kind == "database":
        from pulse.db.session import SessionLocal
        from pulse.services.audit.database import DatabaseAuditSink

        return DatabaseAuditSink(SessionLocal, user_id=user_id)
    return LoggingAuditSink()
