"""Executor dependency bundle and LangGraph state types.

- ``ExecutorDeps`` collects the repository, registry and policies the plan
  executor needs.
- ``_GraphState`` is the state passed between LangGraph nodes. It only lives
  for one ``ainvoke``; between invocations the persisted ``ExecutionState`` is
  the single source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NotRequired, Optional, Required, TypedDict

from ..agents.registry import AgentRegistry
from ..errors import ConveyorError
from ..repos.interfaces import ExecutionStateRepository
from ..schemas.domain import ExecutionState


class GroupFailurePolicy(str, Enum):
    """What happens after a group in which some step returned FAILURE.

    - ``halt``: the group's results are persisted and the run becomes FAILED.
    - ``continue``: the run goes on to the next group and is marked degraded.
    """

    halt = "halt"
    continue_ = "continue"


@dataclass(frozen=True)
class ExecutorDeps:
    """Dependency bundle for ``PlanExecutor``.

    ``step_timeout_seconds`` bounds each agent invocation; ``None`` leaves
    timeouts to the agents' own collaborators.

    ``remediator`` names a registered agent consulted when a step fails. It
    receives ``failed_agent_name``, ``input_arguments`` and ``error_message``
    and answers with ``{"remediation_plan": RemediationPlan}``. A step is
    retried with fixed arguments at most ``max_recovery_attempts`` times.
    """

    repository: ExecutionStateRepository
    registry: AgentRegistry
    failure_policy: GroupFailurePolicy = GroupFailurePolicy.halt
    step_timeout_seconds: Optional[float] = None
    remediator: Optional[str] = None
    max_recovery_attempts: int = 2


class _GraphState(TypedDict):
    """LangGraph state for one executor invocation.

    Required keys:

    - ``execution``: the latest persisted ``ExecutionState``.

    Optional keys:

    - ``_outcome``: routing decision of the last ``execute_group`` run
      (``continue`` / ``pause`` / ``finish`` / ``fail``).
    - ``_error``: error that terminated the run; re-raised to the caller once
      the failure has been persisted.
    """

    execution: Required[ExecutionState]
    _outcome: NotRequired[str]
    _error: NotRequired[Optional[ConveyorError]]
