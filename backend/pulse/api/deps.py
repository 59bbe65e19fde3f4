"""Shared FastAPI dependencies for planner routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from pulse.db.deps import get_db
from pulse.planner.engine import RhythmPlanner
from pulse.services.planner_registry import PlannerRegistry, get_planner_registry


def get_registry() -> PlannerRegistry:
    return get_planner_registry()


def get_planner(
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    registry: PlannerRegistry = Depends(get_registry),
) -> RhythmPlanner:
    return registry.get_or_create(db, user_id)
