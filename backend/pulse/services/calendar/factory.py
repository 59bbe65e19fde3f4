"""Calendar gateway factory."""
from __future__ import annotations

import logging
from typing import Optional

from pulse.core.config import settings
from pulse.services.calendar.base import CalendarGateway
from pulse.services.calendar.memory import InMemoryCalendarGateway


logger = logging.getLogger(__name__)


def get_calendar_gateway() -> Optional[CalendarGateway]:
    provider = settings.calendar_provider.lower()
    if provider == "none":
        return None
    if provider == "google":
        if not settings.google_access_token:
            logger.warning("calendar_provider=google but GOOGLE_ACCESS_TOKEN is missing; calendar disabled")
            return None
        from pulse.services.calendar.google import GoogleCalendarGateway

        return GoogleCalendarGateway(
            access_token=settings.google_access_token,
            calendar_id=settings.google_calendar_id,
            timeout=settings.calendar_timeout_seconds,
            time_zone=settings.scheduler_timezone,
        )
    return InMemoryCalendarGateway()
