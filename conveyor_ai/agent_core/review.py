"""Review/resume gateway.

Externally triggered decisions on executions that are paused for approval.

- ``approve`` flips ``pending_approval -> resumed_after_approval`` (the durable
  proof that approval happened) and schedules ``resume_execution`` in the
  background; the caller does not wait for the rest of the plan.
- ``reject`` flips ``pending_approval -> rejected``; nothing is scheduled.
- ``resume_pending`` reschedules approvals whose resume was lost to a
  process exit.

The status precondition is enforced by the repository's atomic
``transition``, so two concurrent approvals of the same execution cannot both
succeed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, List, Optional, Set

from .errors import ExecutionNotFoundError, ExecutionStateConflictError
from .repos.interfaces import ExecutionStateRepository
from .runtime.executor import PlanExecutor
from .schemas.domain import ExecutionStatus

logger = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, Any]], Any]


class ReviewService:
    """Approve or reject executions waiting on a human-in-the-loop gate."""

    def __init__(
        self,
        *,
        repository: ExecutionStateRepository,
        executor: PlanExecutor,
        spawn: Optional[Spawn] = None,
    ) -> None:
        """
        Args:
            repository: Execution state store shared with the executor.
            executor: Executor used to continue approved executions.
            spawn: Schedules the resume coroutine. Defaults to a tracked
                ``asyncio.create_task``.
        """
        self._repository = repository
        self._executor = executor
        self._spawn = spawn
        self._tasks: Set[asyncio.Task[Any]] = set()

    async def approve(self, execution_id: str) -> ExecutionStatus:
        """
        Approve a paused execution and schedule its resumption.

        Returns:
            The new status, ``resumed_after_approval``.

        Raises:
            ExecutionNotFoundError: If the execution does not exist.
            ExecutionStateConflictError: If it is not pending approval.
        """
        await self._transition(execution_id, ExecutionStatus.resumed_after_approval)
        logger.info("Execution %s approved; scheduling resume", execution_id)
        self._schedule(self._resume(execution_id))
        return ExecutionStatus.resumed_after_approval

    async def reject(self, execution_id: str) -> ExecutionStatus:
        """
        Reject a paused execution. Terminal.

        Raises:
            ExecutionNotFoundError: If the execution does not exist.
            ExecutionStateConflictError: If it is not pending approval.
        """
        await self._transition(execution_id, ExecutionStatus.rejected)
        logger.info("Execution %s rejected", execution_id)
        return ExecutionStatus.rejected

    async def resume_pending(self, page_size: int = 100) -> List[str]:
        """
        Schedule resumption of every execution left approved but not resumed.

        An approval survives a process exit in the ``resumed_after_approval``
        status even when its background resume never ran. Call this once at
        start-up; resuming is idempotent, so overlapping sweeps from several
        processes are harmless.

        Returns:
            The ids of the executions scheduled, newest first.
        """
        pending: List[str] = []
        offset = 0
        while True:
            page = await self._repository.list(
                status=ExecutionStatus.resumed_after_approval, limit=page_size, offset=offset
            )
            pending.extend(state.execution_id for state in page)
            if len(page) < page_size:
                break
            offset += page_size
        for execution_id in pending:
            self._schedule(self._resume(execution_id))
        if pending:
            logger.info("Scheduled %d approved execution(s) left unresumed", len(pending))
        return pending

    async def drain(self) -> None:
        """Wait for every scheduled resumption to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _transition(self, execution_id: str, new: ExecutionStatus) -> None:
        if await self._repository.transition(execution_id, ExecutionStatus.pending_approval, new):
            return
        current = await self._repository.get(execution_id)
        if current is None:
            raise ExecutionNotFoundError(execution_id)
        raise ExecutionStateConflictError(execution_id, current.status.value)

    async def _resume(self, execution_id: str) -> None:
        try:
            state = await self._executor.resume_execution(execution_id)
        except Exception:
            # Background task: the executor has already persisted the failure.
            logger.exception("Resuming execution %s failed", execution_id)
            return
        logger.info("Execution %s resumed to status %s", execution_id, state.status.value)

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._spawn is not None:
            self._spawn(coro)
            return
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
