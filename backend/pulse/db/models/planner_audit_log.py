"""Planner audit log ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from pulse.db.base import Base
from pulse.db.types import JSONDocument


class PlannerAuditLog(Base):
    __tablename__ = "planner_audit_log"
    __table_args__ = (
        Index("ix_planner_audit_log_user_id", "user_id"),
        Index("ix_planner_audit_log_category", "category"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=True)
    category = Column(String(length=32), nullable=False)
    severity = Column(String(length=16), nullable=False)
    message = Column(Text, nullable=False)
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
