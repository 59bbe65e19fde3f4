"""Audit sink interface."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


class AuditCategory(str, Enum):
    SYSTEM_INIT = "system-init"
    AI_SUGGESTION = "AI-suggestion"
    AI_INTERVENTION = "AI-intervention"
    AUTO_SCHEDULE = "auto-schedule"
    PROFILE_UPDATED = "profile-updated"
    ERROR = "error"


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class AuditEntry:
    category: AuditCategory
    severity: AuditSeverity
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditSink:
    """Append-only record of planner decisions and side effects."""

    def add_entry(
        self,
        category: AuditCategory,
        severity: AuditSeverity,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError


def safe_add_entry(
    sink: Optional[AuditSink],
    category: AuditCategory,
    severity: AuditSeverity,
    message: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Write to ``sink`` if there is one; audit failures are logged, never raised."""
    if sink is None:
        return
    try:
        sink.add_entry(category, severity, message, metadata or {})
    except Exception:
        logger.exception("Audit sink %s rejected entry %r", type(sink).__name__, message)
