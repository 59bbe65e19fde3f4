"""Schemas for planner endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from pulse.planner.models import CheckIn, PlannerSuggestion, RhythmState, Wave


class CheckInsUpdateRequest(BaseModel):
    check_ins: List[CheckIn]


class WavesUpdateRequest(BaseModel):
    waves: List[Wave]


class WavesResponse(BaseModel):
    user_id: UUID
    waves: List[Wave]
    request_id: str


class RhythmStateRequest(BaseModel):
    state: RhythmState
    trigger: str = ""


class SuggestionListResponse(BaseModel):
    user_id: UUID
    suggestions: List[PlannerSuggestion]
    request_id: str


class SuggestionResponse(BaseModel):
    user_id: UUID
    suggestion: PlannerSuggestion
    request_id: str


class CancelResponse(BaseModel):
    user_id: UUID
    suggestion_id: str
    cancelled: bool
    request_id: str


class CalendarRefreshResponse(BaseModel):
    user_id: UUID
    refreshed: bool
    event_count: int
    request_id: str


class PlannerContextResponse(BaseModel):
    user_id: UUID
    state: RhythmState
    focus_started_at: Optional[datetime] = None
    scheduled: Dict[str, str]
    context: str
    request_id: str


class EventDraftRequest(BaseModel):
    label: Optional[str] = None
    duration_minutes: int = Field(50, ge=5, le=480)


class EventDraftResponse(BaseModel):
    summary: str
    description: str
    start: datetime
    end: datetime
    color_id: str
    request_id: str
