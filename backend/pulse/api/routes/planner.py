"""Planner endpoints: feed the engine and work with its suggestions."""
from __future__ import annotations

from time import perf_counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from pulse.api.deps import get_planner
from pulse.api.schemas.planner import (
    CalendarRefreshResponse,
    CancelResponse,
    CheckInsUpdateRequest,
    EventDraftRequest,
    EventDraftResponse,
    PlannerContextResponse,
    RhythmStateRequest,
    SuggestionListResponse,
    SuggestionResponse,
    WavesResponse,
    WavesUpdateRequest,
)
from pulse.observability.metrics import log_metric
from pulse.observability.tracing import trace
from pulse.planner.engine import RhythmPlanner
from pulse.planner.models import Priority

router = APIRouter(prefix="/planner", tags=["planner"])


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


@router.get("/suggestions", response_model=SuggestionListResponse)
def list_suggestions(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    priority: Optional[Priority] = Query(None, description="Only suggestions of this priority"),
    planner: RhythmPlanner = Depends(get_planner),
) -> SuggestionListResponse:
    request_id = _request_id(request)
    with trace("planner.suggestions.list", metadata={"priority": priority}, user_id=str(user_id), request_id=request_id):
        suggestions = planner.get_suggestions_by_priority(priority) if priority else planner.get_active_suggestions()

    log_metric("planner.suggestions.list.count", len(suggestions), metadata={"user_id": str(user_id)})
    return SuggestionListResponse(user_id=user_id, suggestions=suggestions, request_id=request_id or "")


@router.put("/check-ins", response_model=SuggestionListResponse)
async def update_check_ins(
    request: Request,
    payload: CheckInsUpdateRequest,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> SuggestionListResponse:
    request_id = _request_id(request)
    start = perf_counter()
    metadata = {"check_ins": len(payload.check_ins)}
    with trace("planner.check_ins.update", metadata=metadata, user_id=str(user_id), request_id=request_id):
        suggestions = await planner.update_check_ins(payload.check_ins)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("planner.check_ins.update.latency_ms", latency_ms, metadata={"user_id": str(user_id)})
    return SuggestionListResponse(user_id=user_id, suggestions=suggestions, request_id=request_id or "")


@router.put("/waves", response_model=WavesResponse)
def update_waves(
    request: Request,
    payload: WavesUpdateRequest,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> WavesResponse:
    planner.update_waves(payload.waves)
    return WavesResponse(user_id=user_id, waves=planner.get_waves(), request_id=_request_id(request) or "")


@router.get("/waves", response_model=WavesResponse)
def get_waves(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> WavesResponse:
    return WavesResponse(user_id=user_id, waves=planner.get_waves(), request_id=_request_id(request) or "")


@router.post("/rhythm-state", response_model=SuggestionListResponse)
async def change_rhythm_state(
    request: Request,
    payload: RhythmStateRequest,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> SuggestionListResponse:
    request_id = _request_id(request)
    start = perf_counter()
    metadata = {"state": payload.state.value, "trigger": payload.trigger}
    with trace("planner.rhythm_state.change", metadata=metadata, user_id=str(user_id), request_id=request_id):
        suggestions = await planner.on_rhythm_state_change(payload.state, payload.trigger)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("planner.rhythm_state.change.latency_ms", latency_ms, metadata={"user_id": str(user_id)})
    return SuggestionListResponse(user_id=user_id, suggestions=suggestions, request_id=request_id or "")


@router.post("/suggestions/{suggestion_id}/dismiss", response_model=SuggestionListResponse)
def dismiss_suggestion(
    suggestion_id: str,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> SuggestionListResponse:
    request_id = _request_id(request)
    with trace("planner.suggestions.dismiss", metadata={"suggestion_id": suggestion_id}, user_id=str(user_id), request_id=request_id):
        if not planner.dismiss_suggestion(suggestion_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Suggestion not found")

    log_metric("planner.suggestions.dismissed", 1, metadata={"user_id": str(user_id)})
    return SuggestionListResponse(
        user_id=user_id,
        suggestions=planner.get_active_suggestions(),
        request_id=request_id or "",
    )


@router.post("/suggestions/{suggestion_id}/accept", response_model=SuggestionResponse)
def accept_suggestion(
    suggestion_id: str,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> SuggestionResponse:
    request_id = _request_id(request)
    with trace("planner.suggestions.accept", metadata={"suggestion_id": suggestion_id}, user_id=str(user_id), request_id=request_id):
        suggestion = planner.accept_suggestion(suggestion_id)
        if suggestion is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Suggestion not found")

    log_metric("planner.suggestions.accepted", 1, metadata={"user_id": str(user_id), "kind": suggestion.kind.value})
    return SuggestionResponse(user_id=user_id, suggestion=suggestion, request_id=request_id or "")


@router.post("/suggestions/{suggestion_id}/cancel", response_model=CancelResponse)
async def cancel_auto_scheduled(
    suggestion_id: str,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> CancelResponse:
    request_id = _request_id(request)
    with trace("planner.suggestions.cancel", metadata={"suggestion_id": suggestion_id}, user_id=str(user_id), request_id=request_id):
        if planner.scheduled_event_id(suggestion_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No auto-scheduled event for suggestion")
        cancelled = await planner.cancel_auto_scheduled(suggestion_id)

    log_metric("planner.suggestions.cancelled", 1 if cancelled else 0, metadata={"user_id": str(user_id)})
    return CancelResponse(user_id=user_id, suggestion_id=suggestion_id, cancelled=cancelled, request_id=request_id or "")


@router.post("/calendar/refresh", response_model=CalendarRefreshResponse)
async def refresh_calendar(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    days: int = Query(1, ge=1, le=14),
    planner: RhythmPlanner = Depends(get_planner),
) -> CalendarRefreshResponse:
    request_id = _request_id(request)
    with trace("planner.calendar.refresh", metadata={"days": days}, user_id=str(user_id), request_id=request_id):
        refreshed = await planner.refresh_calendar_events(days=days)

    return CalendarRefreshResponse(
        user_id=user_id,
        refreshed=refreshed,
        event_count=planner.snapshot()["calendar_event_count"],
        request_id=request_id or "",
    )


@router.get("/context", response_model=PlannerContextResponse)
def planner_context(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    planner: RhythmPlanner = Depends(get_planner),
) -> PlannerContextResponse:
    snapshot = planner.snapshot()
    return PlannerContextResponse(
        user_id=user_id,
        state=snapshot["state"],
        focus_started_at=snapshot["focus_started_at"],
        scheduled=snapshot["scheduled"],
        context=planner.get_prompt_context(),
        request_id=_request_id(request) or "",
    )


@router.post("/events/break", response_model=EventDraftResponse)
def draft_break_event(
    request: Request,
    payload: EventDraftRequest,
    planner: RhythmPlanner = Depends(get_planner),
) -> EventDraftResponse:
    draft = planner.generate_break_event(after_task=payload.label)
    return EventDraftResponse(**draft, request_id=_request_id(request) or "")


@router.post("/events/focus", response_model=EventDraftResponse)
def draft_focus_block(
    request: Request,
    payload: EventDraftRequest,
    planner: RhythmPlanner = Depends(get_planner),
) -> EventDraftResponse:
    draft = planner.generate_focus_block(task_name=payload.label, duration_minutes=payload.duration_minutes)
    return EventDraftResponse(**draft, request_id=_request_id(request) or "")
