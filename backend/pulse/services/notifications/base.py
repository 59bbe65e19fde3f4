"""Notification service interface."""
from __future__ import annotations

from dataclasses import dataclass

from pulse.planner.models import PlannerSuggestion


@dataclass
class NotificationResult:
    status: str
    reason: str


class NotificationService:
    """Base interface for notification providers."""

    def notify_suggestion(
        self,
        *,
        user_id: str | None,
        suggestion: PlannerSuggestion,
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError
