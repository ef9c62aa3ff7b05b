"""SQLAlchemy ORM models for execution state persistence.

The execution state table is the sole source of truth for resuming a
suspended dynamic execution, so its layout is a versioned contract: columns
may be added, never repurposed.

JSON columns use ``JSONB`` on PostgreSQL and plain ``JSON`` elsewhere (SQLite
in tests). Table names are prefixed with ``cv_`` to avoid collisions in shared
databases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class ExecutionStateRow(Base):
    """Row model for ``cv_execution_states``.

    Key fields:

    - ``plan``: the plan document, stored verbatim.
    - ``cursor``: index of the next plan group to run.
    - ``context``: serialized context snapshot.
    - ``results``: ordered result history.
    - ``version``: optimistic concurrency counter, bumped on every write.
    """

    __tablename__ = "cv_execution_states"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), index=True)
    cursor: Mapped[int] = mapped_column(Integer, default=0)

    plan: Mapped[Dict[str, Any]] = mapped_column(JsonType)
    context: Mapped[Dict[str, Any]] = mapped_column(JsonType)
    results: Mapped[List[Dict[str, Any]]] = mapped_column(JsonType)

    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    degraded: Mapped[bool] = mapped_column(Boolean, default=False)
    version: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
