"""
Database Connection and Session Management.

This module sets up the asynchronous SQLAlchemy engine and session factory
used by the execution state store.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from conveyor_ai.agent_core.repos.models import Base
from conveyor_ai.agent_core.repos.sql import create_engine, create_sessionmaker
from conveyor_ai.server.core.config import settings

engine = create_engine(settings.database_url)
"""
engine:
    The global SQLAlchemy AsyncEngine instance, built from ``DATABASE_URL``.
"""

async_session_maker = create_sessionmaker(engine)
"""
async_session_maker:
    A global factory for new AsyncSession instances, bound to ``engine`` and
    configured to NOT expire on commit.
"""


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency generator for database sessions.

    Yields:
        AsyncSession: An asynchronous SQLAlchemy session.
    """
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    """
    Create the execution state tables if they do not exist.

    NOTE: In production, Alembic migrations should be used instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
