"""Agent execution core: contract, registry, orchestration and persistence.

This package contains the engine room of conveyor-ai.

Design overview
---------------

Two execution paths compose over the same agent contract and registry:

- Static pipelines (``pipelines.StaticOrchestrator``): a named, fixed list of
  agents run as one all-or-nothing fold within a single call. No persistence,
  no suspension.
- Dynamic plans (``runtime.PlanExecutor``): a caller-supplied ``Plan`` run
  group by group on LangGraph. Every group's outcome is persisted as an
  ``ExecutionState``; a step whose agent requires approval suspends the run
  until ``review.ReviewService`` approves or rejects it. Any process holding
  the same repository can continue the run.

Both paths thread an immutable ``AgentContext``: each executed agent's
``details`` are merged into a new context for the next agent.

Typical usage
-------------

Most applications use ``factory.build_conveyor_service`` and call the
resulting ``ConveyorService``.
"""

from .agents import Agent, AgentRegistry, BaseAgent
from .errors import (
    AgentNotFoundError,
    AgentRegistrationError,
    ConflictError,
    ConveyorError,
    EngineFailure,
    NotFoundError,
    PlanValidationError,
)
from .factory import build_conveyor_service, build_default_catalog, build_default_registry
from .schemas import (
    AgentContext,
    AgentDefinition,
    AgentResult,
    AgentResultStatus,
    ExecutionState,
    ExecutionStatus,
    Plan,
    PlanStep,
)
from .service import ConveyorService

__all__ = [
    "Agent",
    "AgentContext",
    "AgentDefinition",
    "AgentNotFoundError",
    "AgentRegistrationError",
    "AgentRegistry",
    "AgentResult",
    "AgentResultStatus",
    "BaseAgent",
    "ConflictError",
    "ConveyorError",
    "ConveyorService",
    "EngineFailure",
    "ExecutionState",
    "ExecutionStatus",
    "NotFoundError",
    "Plan",
    "PlanStep",
    "PlanValidationError",
    "build_conveyor_service",
    "build_default_catalog",
    "build_default_registry",
]
