"""Execution state persistence: repository protocol plus SQL and in-memory implementations."""

from .interfaces import ExecutionStateRepository
from .memory import InMemoryExecutionStateRepository
from .sql import SqlExecutionStateRepository, create_all, create_engine, create_sessionmaker

__all__ = [
    "ExecutionStateRepository",
    "InMemoryExecutionStateRepository",
    "SqlExecutionStateRepository",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
