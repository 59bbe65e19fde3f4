"""Planner configuration and the user-facing preferences it is derived from."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pulse.core.config import Settings, settings as default_settings
from pulse.planner.models import SuggestionKind


class PlannerConfig(BaseModel):
    """Validated runtime configuration. Immutable; derive new values with ``apply_preferences``."""

    model_config = ConfigDict(frozen=True)

    focus_break_threshold: int = Field(90, ge=1, le=600)
    default_break_duration: int = Field(15, ge=1, le=240)
    default_focus_block_duration: int = Field(50, ge=5, le=480)
    regroup_duration: int = Field(10, ge=1, le=120)
    anchor_reminder_lead_time: int = Field(15, ge=1, le=240)
    auto_schedule_breaks: bool = False
    auto_schedule_focus_blocks: bool = False
    auto_schedule_regroup: bool = False
    require_confirmation: bool = True
    working_hours_start: int = Field(9, ge=0, le=23)
    working_hours_end: int = Field(17, ge=1, le=24)
    minimum_event_gap: int = Field(5, ge=0, le=120)
    friction_threshold: int = Field(3, ge=1, le=50)
    max_active_suggestions: int = Field(5, ge=1, le=50)

    @model_validator(mode="after")
    def _check_working_hours(self) -> "PlannerConfig":
        if self.working_hours_end <= self.working_hours_start:
            raise ValueError("working_hours_end must be later than working_hours_start")
        window = (self.working_hours_end - self.working_hours_start) * 60
        if self.default_focus_block_duration > window:
            raise ValueError("default_focus_block_duration does not fit inside working hours")
        return self

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "PlannerConfig":
        source = source or default_settings
        values = {name: getattr(source, f"planner_{name}") for name in cls.model_fields}
        return cls(**values)

    def auto_schedule_enabled_for(self, kind: SuggestionKind) -> bool:
        if kind == SuggestionKind.BREAK_NEEDED:
            return self.auto_schedule_breaks
        if kind == SuggestionKind.FOCUS_BLOCK:
            return self.auto_schedule_focus_blocks
        if kind == SuggestionKind.FRICTION_WARNING:
            return self.auto_schedule_regroup
        return False

    def apply_preferences(self, prefs: "PlannerPreferences") -> "PlannerConfig":
        """Return a new config with every preference that is set layered on top.

        Raises ``pydantic.ValidationError`` when the combination is invalid.
        """
        overrides = {
            name: value
            for name, value in prefs.model_dump(include=set(type(self).model_fields)).items()
            if value is not None
        }
        return type(self).model_validate({**self.model_dump(), **overrides})


class PlannerPreferences(BaseModel):
    """Flat persisted record of user choices. Unset fields fall back to the config defaults."""

    focus_break_threshold: Optional[int] = None
    default_break_duration: Optional[int] = None
    default_focus_block_duration: Optional[int] = None
    regroup_duration: Optional[int] = None
    anchor_reminder_lead_time: Optional[int] = None
    auto_schedule_breaks: Optional[bool] = None
    auto_schedule_focus_blocks: Optional[bool] = None
    auto_schedule_regroup: Optional[bool] = None
    require_confirmation: Optional[bool] = None
    working_hours_start: Optional[int] = None
    working_hours_end: Optional[int] = None
    minimum_event_gap: Optional[int] = None
    friction_threshold: Optional[int] = None
    max_active_suggestions: Optional[int] = None

    notifications_enabled: bool = True
    anchor_reminders: bool = True
    break_reminders: bool = True
    focus_alerts: bool = True
    friction_warnings: bool = True
    auto_scheduled_alerts: bool = True
    quiet_hours_enabled: bool = False
    quiet_hours_start: int = Field(22, ge=0, le=23)
    quiet_hours_end: int = Field(7, ge=0, le=23)

    def merged(self, updates: dict) -> "PlannerPreferences":
        return type(self).model_validate({**self.model_dump(), **updates})
