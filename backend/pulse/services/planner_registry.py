"""One planner engine per user, constructed with its collaborators."""
from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from pulse.core.config import settings
from pulse.planner.clock import Clock, SystemClock
from pulse.planner.config import PlannerConfig
from pulse.planner.engine import RhythmPlanner
from pulse.services.audit.base import AuditSink
from pulse.services.audit.factory import get_audit_sink
from pulse.services.calendar.base import CalendarGateway
from pulse.services.calendar.factory import get_calendar_gateway
from pulse.services.notifications.hooks import SuggestionNotifier
from pulse.services.preferences_service import load_preferences


logger = logging.getLogger(__name__)


class PlannerRegistry:
    def __init__(
        self,
        *,
        config: Optional[PlannerConfig] = None,
        clock_factory: Callable[[], Clock] | None = None,
        calendar_factory: Callable[[], Optional[CalendarGateway]] = get_calendar_gateway,
        audit_factory: Callable[[Optional[UUID]], AuditSink] = get_audit_sink,
    ) -> None:
        self._config = config
        self._clock_factory = clock_factory or (lambda: SystemClock(settings.scheduler_timezone))
        self._calendar_factory = calendar_factory
        self._audit_factory = audit_factory
        self._planners: Dict[UUID, RhythmPlanner] = {}
        self._notifiers: Dict[UUID, SuggestionNotifier] = {}
        self._lock = Lock()

    def get(self, user_id: UUID) -> Optional[RhythmPlanner]:
        return self._planners.get(user_id)

    def get_or_create(self, db: Session, user_id: UUID) -> RhythmPlanner:
        with self._lock:
            planner = self._planners.get(user_id)
            if planner is not None:
                return planner

            preferences = load_preferences(db, user_id)
            clock = self._clock_factory()
            planner = RhythmPlanner(
                self._config or PlannerConfig.from_settings(settings),
                clock=clock,
                calendar=self._calendar_factory(),
                audit=self._audit_factory(user_id),
                preferences=preferences,
                user_id=str(user_id),
            )
            notifier = SuggestionNotifier(user_id=str(user_id), preferences=lambda: planner.preferences, clock=clock)
            planner.subscribe(notifier)
            self._planners[user_id] = planner
            self._notifiers[user_id] = notifier
            logger.info("Planner created for user %s", user_id)
            return planner

    def notifier_for(self, user_id: UUID) -> Optional[SuggestionNotifier]:
        return self._notifiers.get(user_id)

    def items(self) -> List[tuple[UUID, RhythmPlanner]]:
        return list(self._planners.items())

    async def aclose(self) -> None:
        for user_id, planner in self.items():
            if planner.calendar is None:
                continue
            try:
                await planner.calendar.aclose()
            except Exception:
                logger.exception("Failed to close calendar gateway for user %s", user_id)
        self._planners.clear()
        self._notifiers.clear()


@lru_cache
def get_planner_registry() -> PlannerRegistry:
    return PlannerRegistry()
