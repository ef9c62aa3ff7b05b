"""High-level facade over both execution paths.

``ConveyorService`` gives applications one object to call:

- static path: ``invoke`` runs a named pipeline through ``StaticOrchestrator``.
- dynamic path: ``submit_plan`` / ``plan_and_submit`` start a ``PlanExecutor``
  run; ``approve`` / ``reject`` go through the ``ReviewService``.

The facade is intentionally thin and contains no execution semantics itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .agents.registry import AgentRegistry
from .pipelines.orchestrator import StaticOrchestrator
from .planning.planner import Planner
from .repos.interfaces import ExecutionStateRepository
from .review import ReviewService
from .runtime.executor import PlanExecutor
from .schemas.domain import AgentResult, ExecutionState, ExecutionStatus


@dataclass(frozen=True)
class ConveyorServiceDeps:
    """Dependency bundle for ``ConveyorService``."""

    registry: AgentRegistry
    repository: ExecutionStateRepository
    orchestrator: StaticOrchestrator
    executor: PlanExecutor
    planner: Planner
    review: ReviewService


class ConveyorService:
    """Run static pipelines and dynamic plans."""

    def __init__(self, *, deps: ConveyorServiceDeps) -> None:
        self._deps = deps

    @property
    def registry(self) -> AgentRegistry:
        return self._deps.registry

    @property
    def orchestrator(self) -> StaticOrchestrator:
        return self._deps.orchestrator

    @property
    def review(self) -> ReviewService:
        return self._deps.review

    async def invoke(self, pipeline_name: str, context: Optional[Mapping[str, Any]] = None) -> List[AgentResult]:
        return await self._deps.orchestrator.invoke(pipeline_name, context)

    async def submit_plan(self, plan: Any, context: Optional[Mapping[str, Any]] = None) -> ExecutionState:
        return await self._deps.executor.submit_plan(plan, context)

    async def plan_and_submit(self, goal: str, context: Optional[Mapping[str, Any]] = None) -> ExecutionState:
        """Ask the planner for a plan for ``goal`` and submit it."""
        plan = await self._deps.planner.create_plan(goal, context)
        return await self._deps.executor.submit_plan(plan, context)

    async def approve(self, execution_id: str) -> ExecutionStatus:
        return await self._deps.review.approve(execution_id)

    async def reject(self, execution_id: str) -> ExecutionStatus:
        return await self._deps.review.reject(execution_id)

    async def get_execution(self, execution_id: str) -> ExecutionState:
        return await self._deps.executor.get_execution(execution_id)

    async def list_executions(
        self, status: Optional[ExecutionStatus] = None, limit: int = 100, offset: int = 0
    ) -> List[ExecutionState]:
        return await self._deps.repository.list(status=status, limit=limit, offset=offset)
