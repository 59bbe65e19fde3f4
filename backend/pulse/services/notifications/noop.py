"""No-op notification provider (logs only)."""
from __future__ import annotations

import logging

from pulse.planner.models import PlannerSuggestion
from pulse.services.notifications.base import NotificationResult, NotificationService


logger = logging.getLogger(__name__)


class NoopNotificationService(NotificationService):
    def notify_suggestion(
        self,
        *,
        user_id: str | None,
        suggestion: PlannerSuggestion,
        request_id: str | None,
    ) -> NotificationResult:
        logger.info(
            "Notification queued (noop) user=%s kind=%s priority=%s suggestion=%s",
            user_id,
            suggestion.kind.value,
            suggestion.priority.value,
            suggestion.id,
        )
        return NotificationResult(status="noop", reason="notification provider is noop")
