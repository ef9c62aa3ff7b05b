"""Repository interface contracts.

The executor and the review gateway depend on this Protocol instead of a
concrete persistence implementation.

Contract guidelines
-------------------

- All methods are async.
- Implementations must not leak sessions/transactions to callers; every
  method is its own unit of work and is durable when it returns.
- Records are never physically deleted; terminal executions are kept for
  audit.
- Writes to one record are serialized through the ``version`` counter
  (``save``) or a status compare-and-set (``transition``). Different records
  need no coordination.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..schemas.domain import ExecutionState, ExecutionStatus


class ExecutionStateRepository(Protocol):
    """Persist and query dynamic execution state records."""

    async def create(self, state: ExecutionState) -> ExecutionState:
        """
        Insert a new execution record.

        Returns:
            The stored copy of the record.
        """
        ...

    async def get(self, execution_id: str) -> Optional[ExecutionState]:
        """Return the record for ``execution_id``, or None."""
        ...

    async def save(self, state: ExecutionState) -> ExecutionState:
        """
        Overwrite a record if nobody else changed it since it was read.

        The write only succeeds when the stored ``version`` equals
        ``state.version``.

        Returns:
            The stored copy, with ``version`` incremented.

        Raises:
            StaleExecutionStateError: If the stored version differs.
            ExecutionNotFoundError: If the record does not exist.
        """
        ...

    async def transition(self, execution_id: str, expected: ExecutionStatus, new: ExecutionStatus) -> bool:
        """
        Atomically move a record from ``expected`` to ``new`` status.

        Returns:
            True if the record was in ``expected`` status and was updated,
            False otherwise (missing record or different status).
        """
        ...

    async def list(
        self, status: Optional[ExecutionStatus] = None, limit: int = 100, offset: int = 0
    ) -> List[ExecutionState]:
        """List records, newest first, optionally filtered by status."""
        ...
