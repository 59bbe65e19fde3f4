"""Decides between surfacing a suggestion and committing it to the calendar."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Set

from pulse.planner.clock import Clock
from pulse.planner.config import PlannerConfig
from pulse.planner.errors import CalendarGatewayError, ConflictDetectedLateError, NoSlotAvailableError
from pulse.planner.models import (
    AutoScheduledAction,
    CalendarEvent,
    CreateEventAction,
    PlannerSuggestion,
    SuggestionKind,
)
from pulse.planner.slots import SlotFinder
from pulse.planner.store import SuggestionStore
from pulse.services.audit.base import AuditCategory, AuditSeverity, AuditSink, safe_add_entry
from pulse.services.calendar.base import CalendarGateway

logger = logging.getLogger(__name__)


class SchedulingPolicy:
    """Auto-schedules eligible suggestions and tracks the calendar events it created.

    Commits for one kind are serialised: while a create call for a kind is in
    flight, further commits of that kind are skipped. Right before calling the
    gateway the suggestion is re-checked for still being live and for its slot
    still being free.
    """

    def __init__(
        self,
        *,
        config: PlannerConfig,
        store: SuggestionStore,
        slot_finder: SlotFinder,
        clock: Clock,
        calendar: Optional[CalendarGateway] = None,
        audit: Optional[AuditSink] = None,
        on_event_created: Optional[Callable[[CalendarEvent], None]] = None,
        on_event_deleted: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.calendar = calendar
        self._store = store
        self._slot_finder = slot_finder
        self._clock = clock
        self._audit = audit
        self._on_event_created = on_event_created
        self._on_event_deleted = on_event_deleted
        self._event_ids: Dict[str, str] = {}
        self._in_flight: Set[SuggestionKind] = set()

    def event_id_for(self, suggestion_id: str) -> Optional[str]:
        return self._event_ids.get(suggestion_id)

    @property
    def scheduled_ids(self) -> Dict[str, str]:
        return dict(self._event_ids)

    def forget(self, suggestion_ids: Iterable[str]) -> None:
        """Drop event mappings for suggestions that left the store."""
        for suggestion_id in suggestion_ids:
            self._event_ids.pop(suggestion_id, None)

    def should_auto_schedule(self, suggestion: PlannerSuggestion) -> bool:
        return (
            self.calendar is not None
            and not self.config.require_confirmation
            and self.config.auto_schedule_enabled_for(suggestion.kind)
            and isinstance(suggestion.action, CreateEventAction)
        )

    async def maybe_auto_schedule(self, suggestion: PlannerSuggestion) -> bool:
        """Commit ``suggestion`` if policy allows. Returns True only after a successful create."""
        if not self.should_auto_schedule(suggestion):
            return False
        kind = suggestion.kind
        if kind in self._in_flight:
            logger.info("Auto-schedule for %s already in flight; leaving %s as a proposal", kind.value, suggestion.id)
            return False
        self._in_flight.add(kind)
        try:
            return await self._commit(suggestion)
        finally:
            self._in_flight.discard(kind)

    async def _commit(self, suggestion: PlannerSuggestion) -> bool:
        action = suggestion.action
        if not isinstance(action, CreateEventAction):
            return False
        origin = suggestion.kind
        try:
            start, end = self._resolve_interval(action)
            self._recheck(suggestion, start, end)
        except NoSlotAvailableError as exc:
            logger.warning("Auto-schedule skipped for %s: %s", suggestion.id, exc)
            self._audit_entry(AuditSeverity.WARNING, f"No slot available to auto-schedule {action.summary}", suggestion)
            return False
        except ConflictDetectedLateError as exc:
            logger.warning("Auto-schedule abandoned for %s: %s", suggestion.id, exc)
            self._audit_entry(
                AuditSeverity.WARNING,
                f"Slot for {action.summary} became unavailable; left as a proposal",
                suggestion,
                conflicts=list(exc.conflicts),
            )
            return False

        try:
            event = await self.calendar.create_event(
                summary=action.summary,
                description=action.description,
                start=start,
                end=end,
                color_id=action.color_id,
            )
        except Exception as exc:
            error = CalendarGatewayError("create", exc)
            logger.exception("Calendar create failed for suggestion %s", suggestion.id)
            safe_add_entry(
                self._audit,
                AuditCategory.ERROR,
                AuditSeverity.ERROR,
                str(error),
                {"suggestion_id": suggestion.id, "type": origin.value},
            )
            return False

        suggestion.origin_kind = origin
        suggestion.kind = SuggestionKind.AUTO_SCHEDULED
        suggestion.title = f"✅ Scheduled: {action.summary}"
        suggestion.description = f"Added to your calendar for {event.start:%H:%M}-{event.end:%H:%M}."
        suggestion.action = AutoScheduledAction(event_id=event.id, start=event.start, end=event.end)
        suggestion.calendar_event_id = event.id
        self._event_ids[suggestion.id] = event.id
        if self._on_event_created:
            self._on_event_created(event)

        self._audit_entry(
            AuditSeverity.SUCCESS,
            f"Auto-scheduled {action.summary} at {event.start:%H:%M}",
            suggestion,
            event_id=event.id,
            origin=origin.value,
        )
        self._store.mark_changed()
        return True

    def _resolve_interval(self, action: CreateEventAction):
        if action.start is not None and action.end is not None:
            return action.start, action.end
        slot = self._slot_finder.require_slot(action.duration_minutes, self._clock.now())
        return slot.start, slot.end

    def _recheck(self, suggestion: PlannerSuggestion, start, end) -> None:
        if not self._store.is_live(suggestion.id):
            raise ConflictDetectedLateError(("suggestion-retired",))
        slot = self._slot_finder.check_slot(start, end)
        if not slot.available:
            raise ConflictDetectedLateError(slot.conflicts)

    async def cancel(self, suggestion_id: str) -> bool:
        """Delete the calendar event behind an auto-scheduled suggestion.

        The suggestion stays in the store as cancelled until it expires, so the
        next pass does not propose and book the same kind again.
        """
        event_id = self._event_ids.get(suggestion_id)
        if event_id is None or self.calendar is None:
            return False
        try:
            await self.calendar.delete_event(event_id)
        except Exception as exc:
            error = CalendarGatewayError("delete", exc)
            logger.exception("Calendar delete failed for event %s", event_id)
            safe_add_entry(
                self._audit,
                AuditCategory.ERROR,
                AuditSeverity.ERROR,
                str(error),
                {"suggestion_id": suggestion_id, "event_id": event_id},
            )
            return False

        del self._event_ids[suggestion_id]
        if self._on_event_deleted:
            self._on_event_deleted(event_id)
        self._store.cancel(suggestion_id)
        safe_add_entry(
            self._audit,
            AuditCategory.AUTO_SCHEDULE,
            AuditSeverity.INFO,
            "Auto-scheduled event cancelled",
            {"suggestion_id": suggestion_id, "event_id": event_id},
        )
        return True

    def _audit_entry(self, severity: AuditSeverity, message: str, suggestion: PlannerSuggestion, **extra) -> None:
        metadata = {"suggestion_id": suggestion.id, "type": (suggestion.origin_kind or suggestion.kind).value}
        metadata.update(extra)
        safe_add_entry(self._audit, AuditCategory.AUTO_SCHEDULE, severity, message, metadata)
