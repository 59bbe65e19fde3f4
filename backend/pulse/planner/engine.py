"""Reactive planner engine.

One ``RhythmPlanner`` owns the state for one user: cached check-ins and
calendar events, the current rhythm state, the active suggestions and the
configuration. Every trigger (new check-ins, a rhythm-state transition, a
preference change, a periodic tick) runs the same analysis pass:

1. every analysis policy proposes candidates against a fresh context,
2. the store deduplicates and inserts them,
3. the scheduling policy commits eligible ones to the calendar,
4. expired suggestions are swept.

Expired suggestions are also swept before the policies run. Listeners hear
about the policy inserts once, before any calendar call suspends the pass,
and again after each commit.

Public methods never raise; failures are logged and written to the audit sink.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from pulse.core.context import planner_trigger
from pulse.observability.metrics import log_metric
from pulse.observability.tracing import trace
from pulse.planner.clock import Clock, SystemClock, at_hour, minutes_between, round_up
from pulse.planner.config import PlannerConfig, PlannerPreferences
from pulse.planner.conflicts import ConflictDetector
from pulse.planner.errors import CalendarGatewayError, ConfigurationError
from pulse.planner.models import (
    CalendarEvent,
    CheckIn,
    PlannerSuggestion,
    Priority,
    RhythmState,
    Wave,
)
from pulse.planner.policies import AnalysisContext, AnalysisPolicy, default_policies
from pulse.planner.scheduling import SchedulingPolicy
from pulse.planner.slots import SlotFinder
from pulse.planner.store import Listener, SuggestionStore
from pulse.services.audit.base import AuditCategory, AuditSeverity, AuditSink, safe_add_entry
from pulse.services.calendar.base import CalendarGateway

logger = logging.getLogger(__name__)


class RhythmPlanner:
    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        *,
        clock: Optional[Clock] = None,
        calendar: Optional[CalendarGateway] = None,
        audit: Optional[AuditSink] = None,
        policies: Optional[Sequence[AnalysisPolicy]] = None,
        preferences: Optional[PlannerPreferences] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self.user_id = user_id
        self._base_config = config or PlannerConfig()
        self.config = self._base_config
        self.preferences = preferences or PlannerPreferences()
        self.clock = clock or SystemClock()
        self.calendar = calendar
        self._audit = audit
        self._policies = list(policies) if policies is not None else default_policies()

        self._check_ins: List[CheckIn] = []
        self._waves: List[Wave] = []
        self._events: List[CalendarEvent] = []
        self.state = RhythmState.OPEN
        self.focus_started_at: Optional[datetime] = None

        if preferences is not None:
            try:
                self.config = self._base_config.apply_preferences(preferences)
            except ValidationError as exc:
                logger.warning("Stored preferences are invalid, using defaults: %s", exc)

        self._store = SuggestionStore(self.config.max_active_suggestions, audit=audit, clock=self.clock)
        self._detector = ConflictDetector()
        self._slot_finder = SlotFinder(self._detector, self.config, self.clock)
        self._scheduling = SchedulingPolicy(
            config=self.config,
            store=self._store,
            slot_finder=self._slot_finder,
            clock=self.clock,
            calendar=calendar,
            audit=audit,
            on_event_created=self._remember_event,
            on_event_deleted=self._forget_event,
        )

        self._audit_entry(
            AuditCategory.SYSTEM_INIT,
            AuditSeverity.INFO,
            "Rhythm planner initialized",
            {"config": self.config.model_dump(), "calendar": type(calendar).__name__ if calendar else None},
        )

    # -- triggers -------------------------------------------------------------------

    async def update_check_ins(self, check_ins: Sequence[CheckIn]) -> List[PlannerSuggestion]:
        with planner_trigger("check-ins"):
            self._check_ins = list(check_ins)
            self._detector.update(check_ins=self._check_ins)
            self._store.forget_anchors({c.id for c in self._check_ins if c.is_anchor})
            return await self._run_pass()

    def update_waves(self, waves: Sequence[Wave]) -> None:
        self._waves = list(waves)

    def get_waves(self) -> List[Wave]:
        return [wave.model_copy() for wave in self._waves]

    async def on_rhythm_state_change(self, new_state: RhythmState, trigger: str = "") -> List[PlannerSuggestion]:
        with planner_trigger(f"rhythm:{trigger or new_state.value.lower()}"):
            old_state = self.state
            self.state = new_state
            now = self.clock.now()
            completed_focus_minutes = None

            if new_state == RhythmState.FOCUS and old_state != RhythmState.FOCUS:
                self.focus_started_at = now
            if old_state == RhythmState.FOCUS and new_state != RhythmState.FOCUS and self.focus_started_at:
                completed_focus_minutes = minutes_between(self.focus_started_at, now)
                self.focus_started_at = None

            logger.info("Rhythm state %s -> %s", old_state.value, new_state.value)
            return await self._run_pass(
                completed_focus_minutes=completed_focus_minutes,
                entered_reflective=new_state == RhythmState.REFLECTIVE and old_state != RhythmState.REFLECTIVE,
            )

    async def update_preferences(self, preferences: PlannerPreferences) -> PlannerConfig:
        """Apply preferences and re-analyse. Invalid preferences keep the current config."""
        with planner_trigger("preferences"):
            try:
                config = self._derive_config(preferences)
            except ConfigurationError as exc:
                self._audit_entry(AuditCategory.ERROR, AuditSeverity.ERROR, str(exc), {"preferences": preferences.model_dump()})
                return self.config
            self.preferences = preferences
            self._apply_config(config)
            self._audit_entry(
                AuditCategory.PROFILE_UPDATED,
                AuditSeverity.INFO,
                "Planner preferences updated",
                {"config": config.model_dump()},
            )
            await self._run_pass()
            return self.config

    def _derive_config(self, preferences: PlannerPreferences) -> PlannerConfig:
        try:
            return self._base_config.apply_preferences(preferences)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid planner preferences: {exc.error_count()} problem(s)") from exc

    def validate_preferences(self, preferences: PlannerPreferences) -> PlannerConfig:
        """Return the config ``preferences`` would produce, raising ``ConfigurationError`` if invalid."""
        return self._derive_config(preferences)

    def _apply_config(self, config: PlannerConfig) -> None:
        self.config = config
        self._slot_finder.config = config
        self._scheduling.config = config
        self._store.resize(config.max_active_suggestions)

    async def refresh_calendar_events(self, days: int = 1) -> bool:
        """Replace the cached event snapshot from the gateway. Keeps the old snapshot on failure."""
        if self.calendar is None:
            return False
        with planner_trigger("calendar-refresh"):
            now = self.clock.now()
            time_min = at_hour(now, 0)
            time_max = time_min + timedelta(days=days)
            try:
                events = await self.calendar.list_events(time_min.isoformat(), time_max.isoformat())
            except Exception as exc:
                error = CalendarGatewayError("list", exc)
                logger.exception("Calendar refresh failed")
                self._audit_entry(AuditCategory.ERROR, AuditSeverity.ERROR, str(error), {"operation": "list"})
                return False
            self._events = list(events)
            self._detector.update(events=self._events)
            log_metric("planner.calendar.events", len(self._events), metadata={"user_id": self.user_id})
            return True

    def set_calendar_events(self, events: Sequence[CalendarEvent]) -> None:
        self._events = list(events)
        self._detector.update(events=self._events)

    async def tick(self) -> List[PlannerSuggestion]:
        with planner_trigger("tick"):
            return await self._run_pass()

    # -- analysis -------------------------------------------------------------------

    async def _run_pass(
        self,
        *,
        completed_focus_minutes: Optional[float] = None,
        entered_reflective: bool = False,
    ) -> List[PlannerSuggestion]:
        try:
            await self._analyse(completed_focus_minutes, entered_reflective)
        except Exception as exc:
            logger.exception("Analysis pass failed")
            self._audit_entry(AuditCategory.ERROR, AuditSeverity.ERROR, f"Analysis pass failed: {exc}", {})
        return self._store.active()

    async def _analyse(self, completed_focus_minutes: Optional[float], entered_reflective: bool) -> None:
        added: List[PlannerSuggestion] = []
        with trace("planner.analysis_pass", metadata={"state": self.state.value}, user_id=self.user_id):
            # Nothing inside the batch may await.
            with self._store.batch():
                now = self.clock.now()
                self._sweep(now)
                ctx = AnalysisContext(
                    now=now,
                    state=self.state,
                    config=self.config,
                    check_ins=tuple(self._check_ins),
                    events=tuple(self._events),
                    store=self._store,
                    slot_finder=self._slot_finder,
                    focus_started_at=self.focus_started_at,
                    completed_focus_minutes=completed_focus_minutes,
                    entered_reflective=entered_reflective,
                    report=self._report_policy,
                )
                for policy in self._policies:
                    added.extend(self._evaluate(policy, ctx))
            for suggestion in added:
                try:
                    await self._scheduling.maybe_auto_schedule(suggestion)
                except Exception:
                    logger.exception("Scheduling policy failed for %s", suggestion.id)
            self._sweep(self.clock.now())
        if added:
            log_metric("planner.suggestions.created", len(added), metadata={"user_id": self.user_id})

    def _sweep(self, now: datetime) -> None:
        removed = self._store.sweep_expired(now)
        self._scheduling.forget(s.id for s in removed)

    def _report_policy(self, severity: AuditSeverity, message: str, metadata: dict) -> None:
        self._audit_entry(AuditCategory.AI_SUGGESTION, severity, message, metadata)

    def _evaluate(self, policy: AnalysisPolicy, ctx: AnalysisContext) -> List[PlannerSuggestion]:
        try:
            candidates = policy.evaluate(ctx)
        except Exception as exc:
            logger.exception("Analysis policy %s failed", policy.name)
            self._audit_entry(
                AuditCategory.ERROR,
                AuditSeverity.ERROR,
                f"Analysis policy {policy.name} failed: {exc}",
                {"policy": policy.name},
            )
            return []

        added: List[PlannerSuggestion] = []
        for candidate in candidates:
            if not self._store.add(candidate.suggestion):
                continue
            added.append(candidate.suggestion)
            metadata = {"suggestion_id": candidate.suggestion.id, "policy": policy.name}
            metadata.update(candidate.metadata)
            self._audit_entry(AuditCategory.AI_SUGGESTION, candidate.severity, candidate.message, metadata)
        return added

    # -- suggestion lifecycle -------------------------------------------------------

    def dismiss_suggestion(self, suggestion_id: str) -> bool:
        return self._store.dismiss(suggestion_id) is not None

    def accept_suggestion(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        """Retire the suggestion and hand it back for the caller to act on."""
        suggestion = self._store.accept(suggestion_id)
        return suggestion.model_copy(deep=True) if suggestion else None

    async def cancel_auto_scheduled(self, suggestion_id: str) -> bool:
        with planner_trigger("cancel"):
            try:
                return await self._scheduling.cancel(suggestion_id)
            except Exception:
                logger.exception("Cancelling %s failed", suggestion_id)
                return False

    def get_suggestion(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        suggestion = self._store.get(suggestion_id)
        return suggestion.model_copy(deep=True) if suggestion else None

    def scheduled_event_id(self, suggestion_id: str) -> Optional[str]:
        return self._scheduling.event_id_for(suggestion_id)

    def get_active_suggestions(self) -> List[PlannerSuggestion]:
        return self._store.active()

    def get_suggestions_by_priority(self, priority: Priority) -> List[PlannerSuggestion]:
        return self._store.by_priority(priority)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._store.subscribe(listener)

    # -- event drafts ---------------------------------------------------------------

    def generate_break_event(self, after_task: Optional[str] = None) -> dict:
        """Draft a break starting five minutes from now, or at the next free slot after that."""
        earliest = self.clock.now() + timedelta(minutes=5)
        duration = self.config.default_break_duration
        start, end = self._draft_interval(earliest, duration)
        return {
            "summary": "💤 Rhythm Break",
            "description": f"Recovery break after: {after_task}" if after_task else "Auto-scheduled break to recharge",
            "start": start,
            "end": end,
            "color_id": "5",
        }

    def generate_focus_block(self, task_name: Optional[str] = None, duration_minutes: int = 50) -> dict:
        """Draft a focus block on the next quarter hour, or at the next free slot after that."""
        earliest = round_up(self.clock.now(), 15)
        start, end = self._draft_interval(earliest, duration_minutes)
        return {
            "summary": f"🎯 Focus: {task_name}" if task_name else "🎯 Focus Block",
            "description": "Dedicated focus time for deep work",
            "start": start,
            "end": end,
            "color_id": "7",
        }

    def _draft_interval(self, earliest: datetime, duration_minutes: int) -> tuple[datetime, datetime]:
        naive_end = earliest + timedelta(minutes=duration_minutes)
        if self._slot_finder.check_slot(earliest, naive_end).available:
            return earliest, naive_end
        slot = self._slot_finder.find_next_available_slot(duration_minutes, earliest)
        if slot is None:
            logger.warning("No free %s-minute slot for draft; keeping %s", duration_minutes, earliest.isoformat())
            return earliest, naive_end
        return slot.start, slot.end

    # -- introspection --------------------------------------------------------------

    def get_prompt_context(self) -> str:
        active = self.get_active_suggestions()
        lines = ["Rhythm Planner State:", f"- Rhythm state: {self.state.value}", f"- Active Suggestions: {len(active)}"]
        if active:
            ordered = sorted(active, key=lambda s: (s.priority.rank, s.created_at), reverse=True)
            lines.append(f"- Top Priority: {ordered[0].title}")
            lines.append(f"- Types: {', '.join(s.kind.value for s in active)}")
        if self.focus_started_at:
            lines.append(f"- Current focus duration: {round(minutes_between(self.focus_started_at, self.clock.now()))} minutes")
        return "\n".join(lines) + "\n"

    def snapshot(self) -> dict:
        return {
            "state": self.state,
            "focus_started_at": self.focus_started_at,
            "check_in_count": len(self._check_ins),
            "calendar_event_count": len(self._events),
            "scheduled": self._scheduling.scheduled_ids,
            "config": self.config,
        }

    # -- internals ------------------------------------------------------------------

    def _remember_event(self, event: CalendarEvent) -> None:
        self._events.append(event)
        self._detector.update(events=self._events)

    def _forget_event(self, event_id: str) -> None:
        self._events = [event for event in self._events if event.id != event_id]
        self._detector.update(events=self._events)

    def _audit_entry(self, category: AuditCategory, severity: AuditSeverity, message: str, metadata: dict) -> None:
        if self.user_id:
            metadata = {**metadata, "user_id": self.user_id}
        safe_add_entry(self._audit, category, severity, message, metadata)
