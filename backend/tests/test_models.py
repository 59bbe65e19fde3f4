from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from pulse.db.base import Base
from pulse.db import models  # noqa: F401  ensure models are loaded
from pulse.planner.models import (
    AutoScheduledAction,
    CreateEventAction,
    PlannerSuggestion,
    Priority,
    SuggestionAction,
    SuggestionKind,
    TimeSlot,
)


T0 = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def test_metadata_contains_planner_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    assert {"planner_preferences", "planner_audit_log"}.issubset(table_names)


def test_priority_ranks() -> None:
    assert Priority.LOW.rank < Priority.MEDIUM.rank < Priority.HIGH.rank


def test_action_union_uses_type_discriminator() -> None:
    adapter = TypeAdapter(SuggestionAction)

    action = adapter.validate_python({"type": "create_event", "summary": "Break", "duration_minutes": 15})

    assert isinstance(action, CreateEventAction)
    with pytest.raises(ValidationError):
        adapter.validate_python({"type": "teleport"})


def test_suggestion_assignment_is_validated() -> None:
    suggestion = PlannerSuggestion(
        id="s-1",
        kind=SuggestionKind.BREAK_NEEDED,
        priority=Priority.MEDIUM,
        title="Break",
        description="",
        created_at=T0,
    )

    suggestion.action = AutoScheduledAction(event_id="evt-1", start=T0, end=T0)
    with pytest.raises(ValidationError):
        suggestion.kind = "NAP"

    assert suggestion.dedup_kind == SuggestionKind.BREAK_NEEDED
    suggestion.origin_kind = SuggestionKind.BREAK_NEEDED
    suggestion.kind = SuggestionKind.AUTO_SCHEDULED
    assert suggestion.dedup_kind == SuggestionKind.BREAK_NEEDED
    assert not suggestion.is_expired(T0)


def test_time_slot_duration() -> None:
    slot = TimeSlot(start=T0, end=T0.replace(hour=11))
    assert slot.duration_minutes == 60
    assert slot.available
    assert slot.conflicts == ()
