"""Convenience factories for wiring the agent core.

Small helpers that build the default agent registry and pipeline catalog and
assemble a ``ConveyorService``. Deployments can pass their own registry,
catalog, repository or planner instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from .agents.builtin import builtin_agents
from .agents.registry import AgentRegistry
from .pipelines.catalog import Pipeline, PipelineCatalog, load_pipelines_file
from .pipelines.orchestrator import StaticOrchestrator
from .planning.planner import Planner, StructuredPlanner
from .repos.interfaces import ExecutionStateRepository
from .repos.memory import InMemoryExecutionStateRepository
from .review import ReviewService, Spawn
from .runtime.executor import PlanExecutor
from .runtime.models import ExecutorDeps, GroupFailurePolicy
from .service import ConveyorService, ConveyorServiceDeps

DEFAULT_PIPELINES = (
    Pipeline(
        name="text-analysis",
        description="Extract keywords from 'text', then summarize it.",
        agent_names=("keyword-extractor", "summarizer"),
    ),
    Pipeline(
        name="reviewed-summary",
        description="Summarize 'text' and record an approval request.",
        agent_names=("summarizer", "human-approval-gate"),
    ),
)


def build_default_registry(
    *,
    summarizer_model: Any | None = None,
    error_handler_model: Any | None = None,
    discover: bool = False,
) -> AgentRegistry:
    """Build an ``AgentRegistry`` holding the built-in agents.

    With ``discover=True`` agents published by installed distributions under
    the ``conveyor_ai.agents`` entry-point group are registered too.
    """
    reg = AgentRegistry()
    for agent in builtin_agents(summarizer_model=summarizer_model, error_handler_model=error_handler_model):
        reg.register_agent(agent)
    if discover:
        reg.discover()
    return reg


def build_default_catalog(pipelines_file: Optional[str | Path] = None) -> PipelineCatalog:
    """Build the pipeline catalog: built-in pipelines plus those in ``pipelines_file``."""
    pipelines = list(DEFAULT_PIPELINES)
    if pipelines_file:
        pipelines.extend(load_pipelines_file(pipelines_file))
    return PipelineCatalog(pipelines)


def build_conveyor_service(
    *,
    registry: Optional[AgentRegistry] = None,
    catalog: Optional[PipelineCatalog] = None,
    repository: Optional[ExecutionStateRepository] = None,
    planner: Optional[Planner] = None,
    failure_policy: GroupFailurePolicy = GroupFailurePolicy.halt,
    step_timeout_seconds: Optional[float] = None,
    remediator: Optional[str] = None,
    max_recovery_attempts: int = 2,
    spawn: Optional[Spawn] = None,
) -> ConveyorService:
    """Assemble a ``ConveyorService``; missing pieces get in-process defaults."""
    registry = registry if registry is not None else build_default_registry()
    catalog = catalog if catalog is not None else build_default_catalog()
    repository = repository if repository is not None else InMemoryExecutionStateRepository()
    planner = planner if planner is not None else StructuredPlanner(registry=registry)

    executor = PlanExecutor(
        deps=ExecutorDeps(
            repository=repository,
            registry=registry,
            failure_policy=failure_policy,
            step_timeout_seconds=step_timeout_seconds,
            remediator=remediator,
            max_recovery_attempts=max_recovery_attempts,
        )
    )
    return ConveyorService(
        deps=ConveyorServiceDeps(
            registry=registry,
            repository=repository,
            orchestrator=StaticOrchestrator(registry=registry, catalog=catalog),
            executor=executor,
            planner=planner,
            review=ReviewService(repository=repository, executor=executor, spawn=spawn),
        )
    )
