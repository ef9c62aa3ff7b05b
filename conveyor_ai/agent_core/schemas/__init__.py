"""Domain schemas shared by the static and dynamic execution paths."""

from .base import BaseSchema, FrozenSchema
from .domain import (
    TERMINAL_STATUSES,
    AgentContext,
    AgentDefinition,
    AgentResult,
    AgentResultStatus,
    ExecutionState,
    ExecutionStatus,
    RemediationAction,
    RemediationPlan,
)
from .plan import Plan, PlanGroup, PlanStep

__all__ = [
    "BaseSchema",
    "FrozenSchema",
    "AgentContext",
    "AgentDefinition",
    "AgentResult",
    "AgentResultStatus",
    "ExecutionState",
    "ExecutionStatus",
    "RemediationAction",
    "RemediationPlan",
    "TERMINAL_STATUSES",
    "Plan",
    "PlanGroup",
    "PlanStep",
]
