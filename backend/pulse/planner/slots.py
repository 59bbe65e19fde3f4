"""Greedy first-fit search for a free slot inside working hours."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from pulse.planner.clock import Clock, at_hour, round_up
from pulse.planner.config import PlannerConfig
from pulse.planner.conflicts import ConflictDetector
from pulse.planner.errors import NoSlotAvailableError
from pulse.planner.models import TimeSlot

logger = logging.getLogger(__name__)

SLOT_ALIGNMENT_MINUTES = 5
FALLBACK_STEP = timedelta(minutes=15)


class SlotFinder:
    """Finds the first conflict-free interval of a given length.

    Each conflicting candidate is skipped by jumping past the latest
    conflicting end plus the configured gap, so the search is bounded by the
    number of commitments in the day. Not optimal under dense constraints.
    """

    def __init__(self, detector: Optional[ConflictDetector], config: PlannerConfig, clock: Clock) -> None:
        self.detector = detector
        self.config = config
        self.clock = clock

    def find_next_available_slot(self, duration_minutes: int, earliest: Optional[datetime] = None) -> Optional[TimeSlot]:
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        duration = timedelta(minutes=duration_minutes)
        earliest = earliest or self.clock.now()

        day_start = at_hour(earliest, self.config.working_hours_start)
        day_end = at_hour(earliest, self.config.working_hours_end)
        ceiling = day_end - duration

        candidate = max(round_up(earliest, SLOT_ALIGNMENT_MINUTES), day_start)
        gap = timedelta(minutes=self.config.minimum_event_gap)
        # Every jump advances at least one minute, so this caps pathological inputs.
        max_iterations = (self.config.working_hours_end - self.config.working_hours_start) * 60 + 1

        for _ in range(max_iterations):
            if candidate > ceiling:
                break
            end = candidate + duration
            if end > day_end:
                break
            conflicts = self.detector.find_conflicts(candidate, end) if self.detector else []
            if not conflicts:
                return TimeSlot(start=candidate, end=end, available=True)

            jump_to = max(conflict.end for conflict in conflicts) + gap
            if jump_to <= candidate:
                jump_to = candidate + FALLBACK_STEP
            logger.debug(
                "Slot %s-%s blocked by %s; retrying at %s",
                candidate.isoformat(),
                end.isoformat(),
                [conflict.id for conflict in conflicts],
                jump_to.isoformat(),
            )
            candidate = jump_to

        logger.debug("No %s-minute slot left before %s", duration_minutes, day_end.isoformat())
        return None

    def require_slot(self, duration_minutes: int, earliest: Optional[datetime] = None) -> TimeSlot:
        slot = self.find_next_available_slot(duration_minutes, earliest)
        if slot is None:
            raise NoSlotAvailableError(duration_minutes)
        return slot

    def check_slot(self, start: datetime, end: datetime) -> TimeSlot:
        conflicts = self.detector.find_conflicts(start, end) if self.detector else []
        return TimeSlot(
            start=start,
            end=end,
            available=not conflicts,
            conflicts=tuple(conflict.id for conflict in conflicts),
        )
