"""Persistence for per-user planner preferences."""
from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pulse.db.models.planner_preferences import PlannerPreferencesRecord
from pulse.planner.config import PlannerPreferences


logger = logging.getLogger(__name__)


def get_or_create_preferences(db: Session, user_id: UUID) -> PlannerPreferencesRecord:
    """Fetch the preferences row for a user, creating an empty one if needed."""
    record = db.get(PlannerPreferencesRecord, user_id)
    if record:
        return record

    record = PlannerPreferencesRecord(user_id=user_id, values={})
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.get(PlannerPreferencesRecord, user_id)
        if existing:
            return existing
        raise
    db.refresh(record)
    return record


def load_preferences(db: Session, user_id: UUID) -> PlannerPreferences:
    record = get_or_create_preferences(db, user_id)
    try:
        return PlannerPreferences.model_validate(record.values or {})
    except ValidationError:
        logger.warning("Discarding unreadable preferences for user %s", user_id)
        return PlannerPreferences()


def save_preferences(db: Session, user_id: UUID, preferences: PlannerPreferences) -> PlannerPreferences:
    record = get_or_create_preferences(db, user_id)
    record.values = preferences.model_dump(mode="json")
    db.add(record)
    db.commit()
    db.refresh(record)
    return PlannerPreferences.model_validate(record.values)


def merge_preferences(current: PlannerPreferences, updates: Dict[str, Any]) -> PlannerPreferences:
    """Layer a partial update over stored preferences. Explicit nulls reset a field to its default."""
    return current.merged(updates)
