"""Conflict detection against cached calendar events and pending check-ins."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Sequence

from pulse.planner.clock import intervals_overlap
from pulse.planner.models import CalendarEvent, CheckIn

CHECK_IN_OCCUPANCY = timedelta(minutes=30)


@dataclass(frozen=True)
class Conflict:
    id: str
    start: datetime
    end: datetime
    source: Literal["calendar", "check_in"]


class ConflictDetector:
    """Tests candidate intervals against a snapshot of known commitments.

    Pending check-ins have no end time of their own, so each one occupies
    ``CHECK_IN_OCCUPANCY`` from its slot. Completed check-ins never conflict.
    """

    def __init__(self, events: Sequence[CalendarEvent] = (), check_ins: Sequence[CheckIn] = ()) -> None:
        self._events = tuple(events)
        self._check_ins = tuple(check_ins)

    def update(self, *, events: Sequence[CalendarEvent] | None = None, check_ins: Sequence[CheckIn] | None = None) -> None:
        if events is not None:
            self._events = tuple(events)
        if check_ins is not None:
            self._check_ins = tuple(check_ins)

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    def find_conflicts(self, start: datetime, end: datetime) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for event in self._events:
            if intervals_overlap(start, end, event.start, event.end):
                conflicts.append(Conflict(id=event.id, start=event.start, end=event.end, source="calendar"))
        for check_in in self._check_ins:
            if check_in.done:
                continue
            occupied_until = check_in.slot + CHECK_IN_OCCUPANCY
            if intervals_overlap(start, end, check_in.slot, occupied_until):
                conflicts.append(Conflict(id=check_in.id, start=check_in.slot, end=occupied_until, source="check_in"))
        return conflicts
