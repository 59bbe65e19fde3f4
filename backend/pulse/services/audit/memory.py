"""Audit sinks that keep entries in process or only write them to the log."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pulse.services.audit.base import AuditCategory, AuditEntry, AuditSeverity, AuditSink


logger = logging.getLogger(__name__)

_LEVELS = {
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.SUCCESS: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
}


class MemoryAuditSink(AuditSink):
    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []

    def add_entry(
        self,
        category: AuditCategory,
        severity: AuditSeverity,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.entries.append(AuditEntry(category, severity, message, dict(metadata or {})))

    def by_category(self, category: AuditCategory) -> List[AuditEntry]:
        return [entry for entry in self.entries if entry.category == category]


class LoggingAuditSink(AuditSink):
    def add_entry(
        self,
        category: AuditCategory,
        severity: AuditSeverity,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.log(
            _LEVELS[AuditSeverity(severity)],
            "[audit:%s] %s %s",
            AuditCategory(category).value,
            message,
            metadata or {},
        )
