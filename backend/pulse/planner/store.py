"""Active suggestion collection: dedup, capacity eviction, expiry and listeners."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from pulse.planner.clock import Clock
from pulse.planner.models import PlannerSuggestion, Priority, SuggestionKind
from pulse.services.audit.base import AuditCategory, AuditSeverity, AuditSink, safe_add_entry

logger = logging.getLogger(__name__)

Listener = Callable[[List[PlannerSuggestion]], None]


class SuggestionStore:
    """Holds one user's suggestions.

    Without a clock nothing counts as expired until ``sweep_expired`` runs;
    with one, expired suggestions stop being active and stop blocking new
    suggestions of their kind as soon as their ``expires_at`` passes.
    Cancelled auto-scheduled suggestions stay hidden but keep blocking their
    original kind until they expire.
    """

    def __init__(self, max_active: int, audit: Optional[AuditSink] = None, clock: Optional[Clock] = None) -> None:
        self.max_active = max_active
        self._audit = audit
        self._clock = clock
        self._suggestions: list[PlannerSuggestion] = []
        self._listeners: list[Listener] = []
        # Anchors the user already acted on are not reminded about again.
        self._handled_anchor_ids: set[str] = set()
        self._batch_depth = 0
        self._dirty = False

    def __len__(self) -> int:
        return len(self._suggestions)

    def __contains__(self, suggestion_id: object) -> bool:
        return any(s.id == suggestion_id for s in self._suggestions)

    def _expired(self, suggestion: PlannerSuggestion) -> bool:
        return self._clock is not None and suggestion.is_expired(self._clock.now())

    def _is_live(self, suggestion: PlannerSuggestion) -> bool:
        return not suggestion.dismissed and not self._expired(suggestion)

    def is_live(self, suggestion_id: str) -> bool:
        suggestion = self.get(suggestion_id)
        return suggestion is not None and self._is_live(suggestion)

    def get(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        return next((s for s in self._suggestions if s.id == suggestion_id), None)

    def find_active(self, kind: SuggestionKind, *, anchor_id: str | None = None) -> Optional[PlannerSuggestion]:
        """Return the suggestion that blocks a new one of ``kind`` (and anchor)."""
        for suggestion in self._suggestions:
            if suggestion.dedup_kind != kind or self._expired(suggestion):
                continue
            if suggestion.dismissed and not suggestion.cancelled:
                continue
            if kind == SuggestionKind.ANCHOR_REMINDER and suggestion.anchor_id != anchor_id:
                continue
            return suggestion
        return None

    def is_duplicate(self, candidate: PlannerSuggestion) -> bool:
        anchor_id = candidate.anchor_id
        if candidate.dedup_kind == SuggestionKind.ANCHOR_REMINDER:
            if anchor_id in self._handled_anchor_ids:
                return True
            return self.find_active(SuggestionKind.ANCHOR_REMINDER, anchor_id=anchor_id) is not None
        return self.find_active(candidate.dedup_kind) is not None

    def add(self, suggestion: PlannerSuggestion) -> bool:
        """Insert unless an equivalent suggestion is active. Returns False when rejected or evicted."""
        if self.is_duplicate(suggestion):
            logger.debug("Skipping duplicate %s suggestion", suggestion.dedup_kind.value)
            return False
        self._suggestions.append(suggestion)
        self._enforce_capacity()
        self._changed()
        return suggestion.id in self

    def _enforce_capacity(self) -> None:
        if len(self._suggestions) <= self.max_active:
            return
        ranked = sorted(
            self._suggestions,
            key=lambda s: (not s.dismissed, s.priority.rank, s.created_at),
            reverse=True,
        )
        kept, evicted = ranked[: self.max_active], ranked[self.max_active :]
        kept_ids = {s.id for s in kept}
        self._suggestions = [s for s in self._suggestions if s.id in kept_ids]
        for suggestion in evicted:
            logger.info("Evicted %s suggestion %s (capacity %s)", suggestion.kind.value, suggestion.id, self.max_active)

    def resize(self, max_active: int) -> None:
        self.max_active = max_active
        before = len(self._suggestions)
        self._enforce_capacity()
        if len(self._suggestions) != before:
            self._changed()

    def sweep_expired(self, now: datetime) -> list[PlannerSuggestion]:
        """Drop expired suggestions and dismissed ones that no longer block, returning what was removed."""
        removed = [s for s in self._suggestions if s.is_expired(now) or (s.dismissed and not s.cancelled)]
        if removed:
            removed_ids = {s.id for s in removed}
            self._suggestions = [s for s in self._suggestions if s.id not in removed_ids]
            self._changed()
        return removed

    def remove(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        suggestion = self.get(suggestion_id)
        if suggestion is not None:
            self._suggestions.remove(suggestion)
            self._changed()
        return suggestion

    def dismiss(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        suggestion = self._retire(suggestion_id)
        if suggestion is None:
            return None
        safe_add_entry(
            self._audit,
            AuditCategory.AI_SUGGESTION,
            AuditSeverity.INFO,
            f"Suggestion dismissed: {suggestion.title}",
            {"type": suggestion.kind.value, "suggestion_id": suggestion.id},
        )
        return suggestion

    def accept(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        suggestion = self._retire(suggestion_id)
        if suggestion is None:
            return None
        safe_add_entry(
            self._audit,
            AuditCategory.AI_INTERVENTION,
            AuditSeverity.SUCCESS,
            f"Suggestion accepted: {suggestion.title}",
            {
                "type": suggestion.kind.value,
                "suggestion_id": suggestion.id,
                "action": suggestion.action.model_dump(mode="json") if suggestion.action else None,
            },
        )
        return suggestion

    def cancel(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        """Hide a suggestion whose calendar event was deleted, keeping it until it expires."""
        suggestion = self.get(suggestion_id)
        if suggestion is None:
            return None
        suggestion.dismissed = True
        suggestion.cancelled = True
        self._changed()
        return suggestion

    def _retire(self, suggestion_id: str) -> Optional[PlannerSuggestion]:
        suggestion = self.get(suggestion_id)
        if suggestion is None or not self._is_live(suggestion):
            return None
        suggestion.dismissed = True
        if suggestion.anchor_id:
            self._handled_anchor_ids.add(suggestion.anchor_id)
        self._changed()
        return suggestion

    def forget_anchors(self, keep: set[str]) -> None:
        """Drop handled-anchor bookkeeping for anchors no longer present."""
        self._handled_anchor_ids &= keep

    def active(self) -> list[PlannerSuggestion]:
        return [s.model_copy(deep=True) for s in self._suggestions if self._is_live(s)]

    def by_priority(self, priority: Priority) -> list[PlannerSuggestion]:
        return [s for s in self.active() if s.priority == priority]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mark_changed(self) -> None:
        """Signal an in-place mutation of a stored suggestion."""
        self._changed()

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce listener notifications for several mutations into one."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._notify()

    def _changed(self) -> None:
        if self._batch_depth:
            self._dirty = True
            return
        self._notify()

    def _notify(self) -> None:
        self._dirty = False
        for listener in list(self._listeners):
            try:
                listener(self.active())
            except Exception:
                logger.exception("Suggestion listener %r failed", listener)
