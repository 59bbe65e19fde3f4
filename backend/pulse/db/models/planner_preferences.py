"""Persisted planner preferences, one flat record per user."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, func
from sqlalchemy.dialects.postgresql import UUID

from pulse.db.base import Base
from pulse.db.types import JSONDocument


class PlannerPreferencesRecord(Base):
    __tablename__ = "planner_preferences"

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    values = Column(JSONDocument, nullable=False, default=dict)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
