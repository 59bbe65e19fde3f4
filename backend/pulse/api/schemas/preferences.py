"""Schemas for planner preference endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from pulse.planner.config import PlannerConfig, PlannerPreferences


class PreferencesUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are changed."""

    model_config = ConfigDict(extra="forbid")

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
    notifications_enabled: Optional[bool] = None
    anchor_reminders: Optional[bool] = None
    break_reminders: Optional[bool] = None
    focus_alerts: Optional[bool] = None
    friction_warnings: Optional[bool] = None
    auto_scheduled_alerts: Optional[bool] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[int] = None
    quiet_hours_end: Optional[int] = None


class PreferencesResponse(BaseModel):
    user_id: UUID
    preferences: PlannerPreferences
    config: PlannerConfig
    request_id: str
