from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4

from pydantic import Field
from pydantic_core import PydanticSerializationError, to_jsonable_python

from ..errors import ContextSerializationError
from .base import BaseSchema, FrozenSchema
from .plan import Plan


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AgentResultStatus(str, Enum):
    success = "success"
    failure = "failure"


class ExecutionStatus(str, Enum):
    running = "running"
    pending_approval = "pending_approval"
    resumed_after_approval = "resumed_after_approval"
    completed = "completed"
    failed = "failed"
    rejected = "rejected"


TERMINAL_STATUSES = frozenset({ExecutionStatus.completed, ExecutionStatus.failed, ExecutionStatus.rejected})


class AgentContext(Mapping[str, Any]):
    """Immutable mapping of everything an execution has accumulated so far.

    A context is never changed in place. ``merge`` returns a new context equal
    to this one with the given keys added; later keys overwrite earlier ones.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Mapping[str, Any] = MappingProxyType(dict(data or {}))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"AgentContext({dict(self._data)!r})"

    def merge(self, updates: Optional[Mapping[str, Any]]) -> AgentContext:
        if not updates:
            return self
        payload = dict(self._data)
        payload.update(updates)
        return AgentContext(payload)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def to_snapshot(self) -> Dict[str, Any]:
        """Return a JSON-compatible copy suitable for persisting.

        Raises:
            ContextSerializationError: If a value cannot be represented as JSON.
        """
        try:
            return to_jsonable_python(dict(self._data))
        except PydanticSerializationError as e:
            raise ContextSerializationError(f"context is not serializable: {e}") from e

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> AgentContext:
        if snapshot is None:
            return cls()
        if not isinstance(snapshot, Mapping):
            raise ContextSerializationError(f"corrupt context snapshot: expected a mapping, got {type(snapshot).__name__}")
        return cls(snapshot)


class AgentResult(FrozenSchema):
    """Outcome of one agent invocation.

    ``details`` is merged into the next ``AgentContext``. ``execution_id`` is
    only set on the result of an approval-gated agent so the caller knows which
    execution to approve or reject.
    """

    agent_name: str
    status: AgentResultStatus
    summary: str
    details: Dict[str, Any] = Field(default_factory=dict)
    execution_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == AgentResultStatus.success

    @classmethod
    def success(cls, agent_name: str, summary: str, details: Optional[Dict[str, Any]] = None) -> AgentResult:
        return cls(agent_name=agent_name, status=AgentResultStatus.success, summary=summary, details=dict(details or {}))

    @classmethod
    def failure(cls, agent_name: str, summary: str, details: Optional[Dict[str, Any]] = None) -> AgentResult:
        return cls(agent_name=agent_name, status=AgentResultStatus.failure, summary=summary, details=dict(details or {}))


class AgentDefinition(BaseSchema):
    """Registration data for an agent.

    ``entry_point`` uses the ``"package.module:attribute"`` form. The attribute
    can be an agent instance, an agent class, or a zero-argument factory.
    """

    name: str
    description: str = ""
    entry_point: Optional[str] = None


class ExecutionState(BaseSchema):
    """Durable record of one dynamic-plan run.

    The record is the only thing a process needs to continue a suspended
    execution: the plan is stored verbatim, ``cursor`` points at the next
    group to run and ``context`` holds the serialized context snapshot.
    """

    execution_id: str = Field(default_factory=lambda: str(uuid4()))
    plan: Plan
    cursor: int = 0
    status: ExecutionStatus = ExecutionStatus.running
    context: Dict[str, Any] = Field(default_factory=dict)
    results: List[AgentResult] = Field(default_factory=list)

    error: Optional[str] = None
    degraded: bool = False
    version: int = 0

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class RemediationAction(str, Enum):
    retry_with_fix = "retry_with_fix"
    fail_gracefully = "fail_gracefully"


class RemediationPlan(FrozenSchema):
    """What an error-handling agent wants done with a failed plan step.

    ``retry_with_fix`` re-runs the step with ``modified_arguments`` in place of
    its declared arguments. ``fail_gracefully`` ends the run as FAILED
    regardless of the group failure policy.
    """

    action: RemediationAction
    modified_arguments: Dict[str, Any] = Field(default_factory=dict)
    justification: str = ""
