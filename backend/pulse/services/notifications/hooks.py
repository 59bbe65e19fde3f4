"""Bridges planner suggestions to the notification provider."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable, Dict, List, Optional, Tuple

from pulse.core.config import settings
from pulse.core.context import get_request_id
from pulse.observability.metrics import log_metric
from pulse.observability.tracing import trace
from pulse.planner.clock import Clock
from pulse.planner.config import PlannerPreferences
from pulse.planner.models import PlannerSuggestion, SuggestionKind
from pulse.services.notifications.base import NotificationResult
from pulse.services.notifications.factory import get_notification_service


logger = logging.getLogger(__name__)

_KIND_TOGGLES = {
    SuggestionKind.ANCHOR_REMINDER: "anchor_reminders",
    SuggestionKind.BREAK_NEEDED: "break_reminders",
    SuggestionKind.FOCUS_BLOCK: "focus_alerts",
    SuggestionKind.FRICTION_WARNING: "friction_warnings",
    SuggestionKind.AUTO_SCHEDULED: "auto_scheduled_alerts",
}


def is_quiet_hours(preferences: PlannerPreferences, hour: int) -> bool:
    if not preferences.quiet_hours_enabled:
        return False
    start, end = preferences.quiet_hours_start, preferences.quiet_hours_end
    # Overnight ranges such as 22:00-07:00 wrap past midnight.
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def skip_reason(preferences: PlannerPreferences, suggestion: PlannerSuggestion, hour: int) -> Optional[str]:
    if not settings.notifications_enabled:
        return "notifications disabled"
    if not preferences.notifications_enabled:
        return "preferences disabled"
    toggle = _KIND_TOGGLES.get(suggestion.kind)
    if toggle and not getattr(preferences, toggle):
        return f"{toggle} disabled"
    if is_quiet_hours(preferences, hour):
        return "quiet hours"
    return None


class SuggestionNotifier:
    """Planner listener that offers each suggestion to the notification provider once.

    A suggestion that turns into AUTO_SCHEDULED counts as new, so the user
    hears about the commit as well as the proposal.
    """

    def __init__(
        self,
        *,
        user_id: str | None,
        preferences: Callable[[], PlannerPreferences],
        clock: Clock,
    ) -> None:
        self.user_id = user_id
        self._preferences = preferences
        self._clock = clock
        self.results: Dict[Tuple[str, SuggestionKind], NotificationResult] = {}

    def __call__(self, active: List[PlannerSuggestion]) -> None:
        live_ids = {s.id for s in active}
        self.results = {key: value for key, value in self.results.items() if key[0] in live_ids}
        for suggestion in active:
            key = (suggestion.id, suggestion.kind)
            if key in self.results:
                continue
            self.results[key] = self._notify(suggestion)

    def _notify(self, suggestion: PlannerSuggestion) -> NotificationResult:
        reason = skip_reason(self._preferences(), suggestion, self._clock.now().hour)
        if reason:
            log_metric("notifications.skipped", 1, metadata={"kind": suggestion.kind.value, "reason": reason})
            return NotificationResult(status="skipped", reason=reason)

        request_id = get_request_id()
        service = get_notification_service()
        start = perf_counter()
        with trace(
            "notifications.suggestion",
            metadata={
                "kind": suggestion.kind.value,
                "priority": suggestion.priority.value,
                "provider": settings.notifications_provider,
            },
            user_id=self.user_id,
            request_id=request_id,
        ) as notification_trace:
            try:
                result = service.notify_suggestion(user_id=self.user_id, suggestion=suggestion, request_id=request_id)
            except Exception as exc:
                logger.exception("Notification provider failed for suggestion %s", suggestion.id)
                result = NotificationResult(status="failed", reason=str(exc))
            if notification_trace:
                notification_trace.update(output={"status": result.status, "reason": result.reason})
        duration_ms = (perf_counter() - start) * 1000
        log_metric("notifications.sent", 1, metadata={"kind": suggestion.kind.value, "provider": settings.notifications_provider})
        log_metric("notifications.duration_ms", duration_ms, metadata={"kind": suggestion.kind.value})
        return result
