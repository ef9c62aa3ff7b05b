"""SQLAlchemy async repository implementation.

Provides the SQL-backed ``ExecutionStateRepository`` (PostgreSQL via asyncpg
in production, SQLite via aiosqlite in tests).

Usage
-----

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (for tests/dev; production uses the
  Alembic migrations).
- Create a session factory with ``create_sessionmaker``.
- Build the repository with ``SqlExecutionStateRepository(session_factory)``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. Concurrent writers to the same record are serialized by conditional
``UPDATE ... WHERE version = :v`` (``save``) and
``UPDATE ... WHERE status = :expected`` (``transition``) statements, so no row
lock is held between calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import ContextSerializationError, EngineFailure, ExecutionNotFoundError, StaleExecutionStateError
from ..schemas.domain import AgentResult, ExecutionState, ExecutionStatus
from ..schemas.plan import Plan
from .interfaces import ExecutionStateRepository
from .models import Base, ExecutionStateRow


def normalize_db_url(db_url: str) -> str:
    """Rewrite ``postgres://``-style URLs to use the asyncpg driver."""
    return re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Postgres URLs are normalized so the async driver is used.
    """
    return create_async_engine(normalize_db_url(db_url), pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _row_values(state: ExecutionState) -> Dict[str, Any]:
    return {
        "status": state.status.value,
        "cursor": state.cursor,
        "plan": state.plan.model_dump(mode="json"),
        "context": state.context,
        "results": [r.model_dump(mode="json") for r in state.results],
        "error": state.error,
        "degraded": state.degraded,
    }


def _to_domain(row: ExecutionStateRow) -> ExecutionState:
    try:
        return ExecutionState(
            execution_id=row.id,
            plan=Plan.model_validate(row.plan),
            cursor=row.cursor,
            status=ExecutionStatus(row.status),
            context=dict(row.context or {}),
            results=[AgentResult.model_validate(r) for r in (row.results or [])],
            error=row.error,
            degraded=bool(row.degraded),
            version=row.version,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )
    except (TypeError, ValueError) as e:
        # pydantic.ValidationError is a ValueError.
        raise ContextSerializationError(f"corrupt execution record '{row.id}': {e}") from e


@dataclass(frozen=True)
class SqlExecutionStateRepository(ExecutionStateRepository):
    """SQL implementation of ``ExecutionStateRepository``.

    Driver errors are re-raised as ``EngineFailure`` so callers only deal
    with the engine's error taxonomy. Rows that no longer decode into an
    ``ExecutionState`` raise ``ContextSerializationError``.
    """

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, state: ExecutionState) -> ExecutionState:
        try:
            async with self.session_factory() as s:
                s.add(
                    ExecutionStateRow(
                        id=state.execution_id,
                        version=state.version,
                        created_at=state.created_at,
                        updated_at=state.updated_at,
                        **_row_values(state),
                    )
                )
                await s.commit()
        except SQLAlchemyError as e:
            raise EngineFailure(f"failed to create execution '{state.execution_id}': {e}") from e
        return state.model_copy(deep=True)

    async def get(self, execution_id: str) -> Optional[ExecutionState]:
        try:
            async with self.session_factory() as s:
                row = await s.get(ExecutionStateRow, execution_id)
                if row is None:
                    return None
                return _to_domain(row)
        except SQLAlchemyError as e:
            raise EngineFailure(f"failed to load execution '{execution_id}': {e}") from e

    async def save(self, state: ExecutionState) -> ExecutionState:
        now = _utc_now()
        stmt = (
            update(ExecutionStateRow)
            .where(ExecutionStateRow.id == state.execution_id)
            .where(ExecutionStateRow.version == state.version)
            .values(version=state.version + 1, updated_at=now, **_row_values(state))
        )
        try:
            async with self.session_factory() as s:
                result = await s.execute(stmt)
                if result.rowcount != 1:
                    await s.rollback()
                    exists = await s.get(ExecutionStateRow, state.execution_id)
                    if exists is None:
                        raise ExecutionNotFoundError(state.execution_id)
                    raise StaleExecutionStateError(state.execution_id, state.version)
                await s.commit()
        except SQLAlchemyError as e:
            raise EngineFailure(f"failed to save execution '{state.execution_id}': {e}") from e
        return state.model_copy(update={"version": state.version + 1, "updated_at": now}, deep=True)

    async def transition(self, execution_id: str, expected: ExecutionStatus, new: ExecutionStatus) -> bool:
        stmt = (
            update(ExecutionStateRow)
            .where(ExecutionStateRow.id == execution_id)
            .where(ExecutionStateRow.status == expected.value)
            .values(status=new.value, version=ExecutionStateRow.version + 1, updated_at=_utc_now())
        )
        try:
            async with self.session_factory() as s:
                result = await s.execute(stmt)
                await s.commit()
                return result.rowcount == 1
        except SQLAlchemyError as e:
            raise EngineFailure(f"failed to update execution '{execution_id}': {e}") from e

    async def list(
        self, status: Optional[ExecutionStatus] = None, limit: int = 100, offset: int = 0
    ) -> List[ExecutionState]:
        stmt = select(ExecutionStateRow)
        if status is not None:
            stmt = stmt.where(ExecutionStateRow.status == status.value)
        stmt = stmt.order_by(ExecutionStateRow.created_at.desc()).offset(offset).limit(limit)
        try:
            async with self.session_factory() as s:
                result = await s.execute(stmt)
                return [_to_domain(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise EngineFailure(f"failed to list executions: {e}") from e
