"""Calendar gateway interface."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pulse.planner.models import CalendarEvent


class CalendarGateway:
    """Create/list/delete contract the planner relies on. Implementations may raise on any call."""

    async def create_event(
        self,
        *,
        summary: str,
        description: Optional[str],
        start: datetime,
        end: datetime,
        color_id: Optional[str] = None,
    ) -> CalendarEvent:
        raise NotImplementedError

    async def list_events(self, time_min_iso: str, time_max_iso: str) -> List[CalendarEvent]:
        raise NotImplementedError

    async def delete_event(self, event_id: str) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources, if any."""
