"""Planner preference endpoints."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from pulse.api.deps import get_planner
from pulse.api.schemas.preferences import PreferencesResponse, PreferencesUpdateRequest
from pulse.db.deps import get_db
from pulse.observability.metrics import log_metric
from pulse.observability.tracing import trace
from pulse.planner.config import PlannerConfig
from pulse.planner.engine import RhythmPlanner
from pulse.planner.errors import ConfigurationError
from pulse.services.preferences_service import load_preferences, merge_preferences, save_preferences

router = APIRouter(prefix="/planner", tags=["preferences"])


@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    planner: RhythmPlanner = Depends(get_planner),
) -> PreferencesResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("preferences.get", user_id=str(user_id), request_id=request_id):
        preferences = load_preferences(db, user_id)
    return PreferencesResponse(
        user_id=user_id,
        preferences=preferences,
        config=planner.config,
        request_id=request_id or "",
    )


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    request: Request,
    payload: PreferencesUpdateRequest,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    planner: RhythmPlanner = Depends(get_planner),
) -> PreferencesResponse:
    request_id = getattr(request.state, "request_id", None)
    # Nulls reset planner fields to their defaults; notification toggles always need a value.
    updates = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in PlannerConfig.model_fields
    }
    with trace("preferences.update", metadata={"fields": sorted(updates)}, user_id=str(user_id), request_id=request_id):
        try:
            preferences = merge_preferences(load_preferences(db, user_id), updates)
            planner.validate_preferences(preferences)
        except (ValidationError, ConfigurationError) as exc:
            log_metric("preferences.update.rejected", 1, metadata={"user_id": str(user_id)})
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        preferences = save_preferences(db, user_id, preferences)
        config = await planner.update_preferences(preferences)

    log_metric("preferences.update.success", 1, metadata={"user_id": str(user_id)})
    return PreferencesResponse(user_id=user_id, preferences=preferences, config=config, request_id=request_id or "")
