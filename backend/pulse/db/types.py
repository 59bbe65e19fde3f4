"""Database column type helpers."""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

# JSONB on Postgres, plain JSON everywhere else (SQLite in tests and local runs).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
