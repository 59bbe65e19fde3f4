"""Audit sink backed by the planner_audit_log table."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from pulse.core.context import get_request_id, get_trigger
from pulse.db.models.planner_audit_log import PlannerAuditLog
from pulse.services.audit.base import AuditCategory, AuditSeverity, AuditSink


logger = logging.getLogger(__name__)


class DatabaseAuditSink(AuditSink):
    """Writes one row per entry in its own short-lived session."""

    def __init__(self, session_factory: Callable[[], Session], user_id: Optional[UUID] = None) -> None:
        self._session_factory = session_factory
        self._user_id = user_id

    def add_entry(
        self,
        category: AuditCategory,
        severity: AuditSeverity,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload = jsonable_encoder(metadata or {})
        payload.setdefault("request_id", get_request_id() or "")
        trigger = get_trigger()
        if trigger:
            payload.setdefault("trigger", trigger)
        session = self._session_factory()
        try:
            session.add(
                PlannerAuditLog(
                    user_id=self._user_id,
                    category=AuditCategory(category).value,
                    severity=AuditSeverity(severity).value,
                    message=message,
                    metadata_json=payload,
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
