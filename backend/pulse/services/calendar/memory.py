"""In-process calendar provider for local runs and tests."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from pulse.planner.clock import generate_id
from pulse.planner.models import CalendarEvent
from pulse.services.calendar.base import CalendarGateway


logger = logging.getLogger(__name__)


class InMemoryCalendarGateway(CalendarGateway):
    def __init__(self, events: Optional[List[CalendarEvent]] = None) -> None:
        self.events: Dict[str, CalendarEvent] = {event.id: event for event in events or []}
        # Operation name -> exception raised by the next call of that operation.
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        self.failures[operation] = error or RuntimeError(f"{operation} unavailable")

    def _check_failure(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.failures.pop(operation, None)
        if error is not None:
            raise error

    async def create_event(
        self,
        *,
        summary: str,
        description: Optional[str],
        start: datetime,
        end: datetime,
        color_id: Optional[str] = None,
    ) -> CalendarEvent:
        self._check_failure("create")
        event = CalendarEvent(
            id=f"evt-{generate_id()}",
            summary=summary,
            description=description,
            start=start,
            end=end,
            color_id=color_id or "1",
        )
        self.events[event.id] = event
        logger.debug("Created in-memory event %s (%s)", event.id, summary)
        return event

    async def list_events(self, time_min_iso: str, time_max_iso: str) -> List[CalendarEvent]:
        self._check_failure("list")
        time_min = datetime.fromisoformat(time_min_iso)
        time_max = datetime.fromisoformat(time_max_iso)
        matching = [e for e in self.events.values() if e.start < time_max and e.end > time_min]
        return sorted(matching, key=lambda e: e.start)

    async def delete_event(self, event_id: str) -> None:
        self._check_failure("delete")
        if self.events.pop(event_id, None) is None:
            raise KeyError(f"Unknown event {event_id}")
