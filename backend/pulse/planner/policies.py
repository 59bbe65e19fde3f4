"""Independent detectors that turn behavioural state and the task log into suggestions.

Policies only read the analysis context and return candidates; inserting them
into the store, auditing them and auto-scheduling them is the engine's job.
A policy that finds nothing to say returns an empty list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from pulse.planner.clock import generate_id, minutes_between, same_day
from pulse.planner.config import PlannerConfig
from pulse.planner.conflicts import CHECK_IN_OCCUPANCY, ConflictDetector
from pulse.planner.errors import NoSlotAvailableError
from pulse.planner.models import (
    CalendarEvent,
    CheckIn,
    CreateEventAction,
    NavigateAction,
    PlannerSuggestion,
    Priority,
    RhythmState,
    SuggestionKind,
    TimeSlot,
)
from pulse.planner.slots import SlotFinder
from pulse.planner.store import SuggestionStore
from pulse.services.audit.base import AuditSeverity

logger = logging.getLogger(__name__)

OVERDUE_GRACE = timedelta(minutes=15)
LONG_FOCUS_MINUTES = 120
JOURNAL_CATEGORY = "Journal"
RESCHEDULE_MINUTES = 30

BREAK_COLOR = "5"
FOCUS_COLOR = "7"
URGENT_COLOR = "11"


@dataclass
class AnalysisContext:
    now: datetime
    state: RhythmState
    config: PlannerConfig
    check_ins: Sequence[CheckIn]
    events: Sequence[CalendarEvent]
    store: SuggestionStore
    slot_finder: SlotFinder
    focus_started_at: Optional[datetime] = None
    # Set when the pass was triggered by leaving FOCUS.
    completed_focus_minutes: Optional[float] = None
    entered_reflective: bool = False
    # Receives audit-worthy outcomes that produce no suggestion.
    report: Optional[Callable[[AuditSeverity, str, Dict[str, Any]], None]] = None

    def todays_check_ins(self) -> List[CheckIn]:
        return [c for c in self.check_ins if same_day(self.now, c.slot)]


@dataclass
class Candidate:
    suggestion: PlannerSuggestion
    message: str
    severity: AuditSeverity = AuditSeverity.INFO
    metadata: Dict[str, Any] = field(default_factory=dict)


class AnalysisPolicy:
    name = "policy"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        raise NotImplementedError

    def _slot_or_none(self, ctx: AnalysisContext, duration_minutes: int, finder: SlotFinder | None = None) -> Optional[TimeSlot]:
        try:
            return (finder or ctx.slot_finder).require_slot(duration_minutes, ctx.now)
        except NoSlotAvailableError as exc:
            logger.warning("%s: %s", self.name, exc)
            if ctx.report is not None:
                ctx.report(
                    AuditSeverity.WARNING,
                    f"No slot available for {self.name} suggestion",
                    {"policy": self.name, "duration": duration_minutes, "reason": str(exc)},
                )
            return None


def _suggestion(ctx: AnalysisContext, **fields: Any) -> PlannerSuggestion:
    return PlannerSuggestion(id=generate_id(), created_at=ctx.now, **fields)


class BreakPolicy(AnalysisPolicy):
    """Suggest a break once a focus session runs past the threshold."""

    name = "extended-focus"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        if ctx.completed_focus_minutes is not None:
            focus_minutes = ctx.completed_focus_minutes
        elif ctx.state == RhythmState.FOCUS and ctx.focus_started_at is not None:
            focus_minutes = minutes_between(ctx.focus_started_at, ctx.now)
        else:
            return []

        if focus_minutes <= ctx.config.focus_break_threshold:
            return []
        if ctx.store.find_active(SuggestionKind.BREAK_NEEDED):
            return []

        duration = ctx.config.default_break_duration
        slot = self._slot_or_none(ctx, duration)
        if slot is None:
            return []

        rounded = round(focus_minutes)
        suggestion = _suggestion(
            ctx,
            kind=SuggestionKind.BREAK_NEEDED,
            priority=Priority.HIGH if focus_minutes > LONG_FOCUS_MINUTES else Priority.MEDIUM,
            title="💤 Time for a Break",
            description=(
                f"You've been focused for {rounded} minutes. "
                "A short break will help maintain your energy and clarity."
            ),
            action=CreateEventAction(
                summary="💤 Rhythm Break",
                description="Auto-suggested break to recharge after extended focus",
                duration_minutes=duration,
                color_id=BREAK_COLOR,
                start=slot.start,
                end=slot.end,
            ),
            expires_at=ctx.now + timedelta(minutes=30),
        )
        return [
            Candidate(
                suggestion,
                f"Break suggested after {rounded}min focus",
                metadata={"focus_duration": focus_minutes, "break_duration": duration},
            )
        ]


class AnchorReminderPolicy(AnalysisPolicy):
    """Remind about each undone anchor shortly before it starts."""

    name = "anchor-approaching"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        lead = ctx.config.anchor_reminder_lead_time
        candidates: List[Candidate] = []
        for anchor in ctx.todays_check_ins():
            if not anchor.is_anchor or anchor.done:
                continue
            minutes_until = minutes_between(ctx.now, anchor.slot)
            if not 0 < minutes_until <= lead:
                continue
            rounded = round(minutes_until)
            suggestion = _suggestion(
                ctx,
                kind=SuggestionKind.ANCHOR_REMINDER,
                priority=Priority.MEDIUM,
                title="⚓ Anchor Starting Soon",
                description=f'"{anchor.task}" starts in {rounded} minutes. Prepare to transition.',
                action=NavigateAction(anchor_id=anchor.id),
                expires_at=anchor.slot + timedelta(minutes=5),
            )
            if ctx.store.is_duplicate(suggestion):
                continue
            candidates.append(
                Candidate(
                    suggestion,
                    f"Anchor reminder: {anchor.task} in {rounded}min",
                    metadata={"task": anchor.task, "anchor_id": anchor.id, "minutes_until": rounded},
                )
            )
        return candidates


class FrictionPolicy(AnalysisPolicy):
    """Warn once when overdue items pile up, offering a short regroup slot."""

    name = "friction"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        cutoff = ctx.now - OVERDUE_GRACE
        overdue = [c for c in ctx.todays_check_ins() if not c.done and c.slot < cutoff]
        if len(overdue) < ctx.config.friction_threshold:
            return []
        if ctx.store.find_active(SuggestionKind.FRICTION_WARNING):
            return []

        duration = ctx.config.regroup_duration
        # The warning stands on its own; the regroup slot is a bonus.
        slot = self._slot_or_none(ctx, duration)
        suggestion = _suggestion(
            ctx,
            kind=SuggestionKind.FRICTION_WARNING,
            priority=Priority.HIGH,
            title="⚡ Schedule Friction Detected",
            description=(
                f"{len(overdue)} tasks are overdue. "
                "Consider rescheduling or taking a reset moment to regroup."
            ),
            action=CreateEventAction(
                summary="🛑 Regroup & Plan",
                description="Take a moment to review and adjust your schedule",
                duration_minutes=duration,
                color_id=URGENT_COLOR,
                start=slot.start if slot else None,
                end=slot.end if slot else None,
            ),
            expires_at=ctx.now + timedelta(minutes=60),
        )
        return [
            Candidate(
                suggestion,
                f"Friction warning: {len(overdue)} overdue tasks",
                severity=AuditSeverity.WARNING,
                metadata={"overdue_count": len(overdue), "overdue_ids": [c.id for c in overdue]},
            )
        ]


class FocusBlockPolicy(AnalysisPolicy):
    """Offer a focus block when the rest of an open working day is empty."""

    name = "idle-working-hours"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        if ctx.state != RhythmState.OPEN:
            return []
        if not ctx.config.working_hours_start <= ctx.now.hour < ctx.config.working_hours_end:
            return []
        if any(not c.done and c.slot > ctx.now for c in ctx.todays_check_ins()):
            return []
        if ctx.store.find_active(SuggestionKind.FOCUS_BLOCK):
            return []

        duration = ctx.config.default_focus_block_duration
        slot = self._slot_or_none(ctx, duration)
        if slot is None:
            return []

        suggestion = _suggestion(
            ctx,
            kind=SuggestionKind.FOCUS_BLOCK,
            priority=Priority.LOW,
            title="🎯 Open Time Available",
            description="You have unscheduled time. Consider adding a focus block for an important task.",
            action=CreateEventAction(
                summary="🎯 Focus Block",
                description="Dedicated focus time",
                duration_minutes=duration,
                color_id=FOCUS_COLOR,
                start=slot.start,
                end=slot.end,
            ),
            expires_at=ctx.now + timedelta(hours=2),
        )
        return [Candidate(suggestion, "Focus block suggested for open time", metadata={"duration": duration})]


class ReflectionPolicy(AnalysisPolicy):
    name = "reflection"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        if not ctx.entered_reflective:
            return []
        if ctx.store.find_active(SuggestionKind.REFLECTION_REMINDER):
            return []
        if any(c.category == JOURNAL_CATEGORY for c in ctx.todays_check_ins()):
            return []

        suggestion = _suggestion(
            ctx,
            kind=SuggestionKind.REFLECTION_REMINDER,
            priority=Priority.LOW,
            title="🌙 Evening Reflection",
            description=(
                "Take a few minutes to journal about your day. "
                "Reflection helps integrate learning and set intentions."
            ),
            action=NavigateAction(section="journal"),
            expires_at=ctx.now + timedelta(hours=3),
        )
        return [
            Candidate(
                suggestion,
                "Reflection reminder sent during reflective hours",
                metadata={"has_journaled_today": False},
            )
        ]


class ScheduleAdjustmentPolicy(AnalysisPolicy):
    """Propose a new time for a flexible task that is double-booked with a calendar event.

    Anchors are never moved.
    """

    name = "double-booking"

    def evaluate(self, ctx: AnalysisContext) -> List[Candidate]:
        if not ctx.events or ctx.store.find_active(SuggestionKind.SCHEDULE_ADJUSTMENT):
            return []
        calendar_only = ConflictDetector(events=ctx.events)
        for check_in in sorted(ctx.todays_check_ins(), key=lambda c: c.slot):
            if check_in.done or check_in.is_anchor or check_in.slot <= ctx.now:
                continue
            clashes = calendar_only.find_conflicts(check_in.slot, check_in.slot + CHECK_IN_OCCUPANCY)
            if not clashes:
                continue
            others = [c for c in ctx.check_ins if c.id != check_in.id]
            finder = SlotFinder(ConflictDetector(ctx.events, others), ctx.config, ctx.slot_finder.clock)
            slot = self._slot_or_none(ctx, RESCHEDULE_MINUTES, finder)
            if slot is None:
                return []
            suggestion = _suggestion(
                ctx,
                kind=SuggestionKind.SCHEDULE_ADJUSTMENT,
                priority=Priority.MEDIUM,
                title="↻ Schedule Conflict",
                description=(
                    f'"{check_in.task}" overlaps a calendar event. '
                    f"{slot.start:%H:%M} is the next free half hour."
                ),
                action=CreateEventAction(
                    summary=check_in.task,
                    description=f"Moved from {check_in.slot:%H:%M} to avoid a conflict",
                    duration_minutes=RESCHEDULE_MINUTES,
                    start=slot.start,
                    end=slot.end,
                ),
                expires_at=check_in.slot,
            )
            return [
                Candidate(
                    suggestion,
                    f"Schedule adjustment proposed for {check_in.task}",
                    metadata={"check_in_id": check_in.id, "conflicts": [c.id for c in clashes]},
                )
            ]
        return []


def default_policies() -> List[AnalysisPolicy]:
    return [
        BreakPolicy(),
        AnchorReminderPolicy(),
        FrictionPolicy(),
        FocusBlockPolicy(),
        ScheduleAdjustmentPolicy(),
        ReflectionPolicy(),
    ]
