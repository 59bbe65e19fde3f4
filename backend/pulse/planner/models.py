"""Planner data model."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RhythmState(str, Enum):
    FOCUS = "FOCUS"
    OPEN = "OPEN"
    REFLECTIVE = "REFLECTIVE"
    RECOVERY = "RECOVERY"
    TRANSITION = "TRANSITION"


class SuggestionKind(str, Enum):
    BREAK_NEEDED = "BREAK_NEEDED"
    FOCUS_BLOCK = "FOCUS_BLOCK"
    SCHEDULE_ADJUSTMENT = "SCHEDULE_ADJUSTMENT"
    REFLECTION_REMINDER = "REFLECTION_REMINDER"
    ANCHOR_REMINDER = "ANCHOR_REMINDER"
    FRICTION_WARNING = "FRICTION_WARNING"
    AUTO_SCHEDULED = "AUTO_SCHEDULED"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class CheckIn(BaseModel):
    """A scheduled task occurrence logged by the user."""

    id: str
    category: str
    task: str
    wave_id: Optional[str] = None
    slot: datetime
    logged_at: datetime
    note: Optional[str] = None
    done: bool = False
    is_anchor: bool = False


class Wave(BaseModel):
    id: str
    name: str
    description: str = ""
    color: str
    start_hour: int = Field(ge=0, le=24)
    end_hour: int = Field(ge=0, le=24)


class CalendarEvent(BaseModel):
    id: str
    summary: str
    description: Optional[str] = None
    start: datetime
    end: datetime
    color_id: Optional[str] = None


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    available: bool = True
    conflicts: tuple[str, ...] = field(default_factory=tuple)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class CreateEventAction(BaseModel):
    """Intent to put an event on the calendar, optionally with a slot already chosen."""

    type: Literal["create_event"] = "create_event"
    summary: str
    description: str = ""
    duration_minutes: int
    color_id: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class NavigateAction(BaseModel):
    type: Literal["navigate"] = "navigate"
    section: Optional[str] = None
    anchor_id: Optional[str] = None


class AutoScheduledAction(BaseModel):
    type: Literal["auto_scheduled"] = "auto_scheduled"
    event_id: str
    start: datetime
    end: datetime


class SnoozeAction(BaseModel):
    type: Literal["snooze"] = "snooze"
    minutes: int = 10


class DismissAction(BaseModel):
    type: Literal["dismiss"] = "dismiss"


SuggestionAction = Annotated[
    Union[CreateEventAction, NavigateAction, AutoScheduledAction, SnoozeAction, DismissAction],
    Field(discriminator="type"),
]


class PlannerSuggestion(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    kind: SuggestionKind
    priority: Priority
    title: str
    description: str
    action: Optional[SuggestionAction] = None
    created_at: datetime
    expires_at: Optional[datetime] = None
    dismissed: bool = False
    # Set when the calendar event behind an auto-scheduled suggestion was deleted.
    cancelled: bool = False
    calendar_event_id: Optional[str] = None
    # Kind the suggestion was produced as; survives the rewrite to AUTO_SCHEDULED.
    origin_kind: Optional[SuggestionKind] = None

    @property
    def dedup_kind(self) -> SuggestionKind:
        return self.origin_kind or self.kind

    @property
    def anchor_id(self) -> Optional[str]:
        if isinstance(self.action, NavigateAction):
            return self.action.anchor_id
        return None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now
