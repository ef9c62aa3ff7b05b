from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..errors import ExecutionNotFoundError, StaleExecutionStateError
from ..schemas.domain import ExecutionState, ExecutionStatus
from .interfaces import ExecutionStateRepository


class InMemoryExecutionStateRepository(ExecutionStateRepository):
    """Process-local ``ExecutionStateRepository``.

    Stores deep copies so callers can never mutate stored records. Used by
    unit tests and single-process deployments without a database.
    """

    def __init__(self) -> None:
        self._states: Dict[str, ExecutionState] = {}
        self._lock = asyncio.Lock()

    async def create(self, state: ExecutionState) -> ExecutionState:
        async with self._lock:
            if state.execution_id in self._states:
                raise ValueError(f"execution already exists: {state.execution_id}")
            self._states[state.execution_id] = state.model_copy(deep=True)
            return state.model_copy(deep=True)

    async def get(self, execution_id: str) -> Optional[ExecutionState]:
        stored = self._states.get(execution_id)
        return stored.model_copy(deep=True) if stored is not None else None

    async def save(self, state: ExecutionState) -> ExecutionState:
        async with self._lock:
            current = self._states.get(state.execution_id)
            if current is None:
                raise ExecutionNotFoundError(state.execution_id)
            if current.version != state.version:
                raise StaleExecutionStateError(state.execution_id, state.version)
            stored = state.model_copy(
                update={"version": state.version + 1, "updated_at": datetime.now(timezone.utc)}, deep=True
            )
            self._states[state.execution_id] = stored
            return stored.model_copy(deep=True)

    async def transition(self, execution_id: str, expected: ExecutionStatus, new: ExecutionStatus) -> bool:
        async with self._lock:
            current = self._states.get(execution_id)
            if current is None or current.status != expected:
                return False
            self._states[execution_id] = current.model_copy(
                update={"status": new, "version": current.version + 1, "updated_at": datetime.now(timezone.utc)},
                deep=True,
            )
            return True

    async def list(
        self, status: Optional[ExecutionStatus] = None, limit: int = 100, offset: int = 0
    ) -> List[ExecutionState]:
        states = [s for s in self._states.values() if status is None or s.status == status]
        states.sort(key=lambda s: s.created_at, reverse=True)
        return [s.model_copy(deep=True) for s in states[offset : offset + limit]]
