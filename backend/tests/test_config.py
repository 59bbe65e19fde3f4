from __future__ import annotations

import pytest
from pydantic import ValidationError

from pulse.core.config import Settings
from pulse.planner.config import PlannerConfig, PlannerPreferences
from pulse.planner.models import SuggestionKind


def test_defaults() -> None:
    config = PlannerConfig()

    assert config.focus_break_threshold == 90
    assert config.default_break_duration == 15
    assert config.default_focus_block_duration == 50
    assert config.regroup_duration == 10
    assert config.anchor_reminder_lead_time == 15
    assert config.require_confirmation is True
    assert (config.working_hours_start, config.working_hours_end) == (9, 17)
    assert config.minimum_event_gap == 5
    assert config.friction_threshold == 3
    assert config.max_active_suggestions == 5


def test_config_is_frozen() -> None:
    config = PlannerConfig()
    with pytest.raises(ValidationError):
        config.focus_break_threshold = 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"working_hours_start": 17, "working_hours_end": 9},
        {"working_hours_start": 9, "working_hours_end": 9},
        {"working_hours_start": 9, "working_hours_end": 10, "default_focus_block_duration": 90},
        {"max_active_suggestions": 0},
        {"default_break_duration": -5},
    ],
)
def test_invalid_configs_are_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        PlannerConfig(**overrides)


def test_from_settings_reads_planner_fields() -> None:
    source = Settings(planner_focus_break_threshold=60, planner_auto_schedule_breaks=True)

    config = PlannerConfig.from_settings(source)

    assert config.focus_break_threshold == 60
    assert config.auto_schedule_breaks is True


def test_auto_schedule_flags_by_kind() -> None:
    config = PlannerConfig(auto_schedule_breaks=True, auto_schedule_regroup=True)

    assert config.auto_schedule_enabled_for(SuggestionKind.BREAK_NEEDED)
    assert config.auto_schedule_enabled_for(SuggestionKind.FRICTION_WARNING)
    assert not config.auto_schedule_enabled_for(SuggestionKind.FOCUS_BLOCK)
    assert not config.auto_schedule_enabled_for(SuggestionKind.ANCHOR_REMINDER)


def test_apply_preferences_layers_only_set_fields() -> None:
    base = PlannerConfig(friction_threshold=4)

    config = base.apply_preferences(PlannerPreferences(focus_break_threshold=30))

    assert config.focus_break_threshold == 30
    assert config.friction_threshold == 4
    assert base.focus_break_threshold == 90


def test_apply_preferences_validates_combination() -> None:
    with pytest.raises(ValidationError):
        PlannerConfig().apply_preferences(PlannerPreferences(working_hours_end=8))


def test_preferences_merge_and_reset() -> None:
    prefs = PlannerPreferences(focus_break_threshold=30, quiet_hours_enabled=True)

    merged = prefs.merged({"focus_break_threshold": None, "break_reminders": False})

    assert merged.focus_break_threshold is None
    assert merged.break_reminders is False
    assert merged.quiet_hours_enabled is True


def test_quiet_hour_bounds_are_validated() -> None:
    with pytest.raises(ValidationError):
        PlannerPreferences(quiet_hours_start=24)
