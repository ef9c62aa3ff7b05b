"""Error types for the agent core.

Defines the small hierarchy of exceptions the engine raises so that callers
(and the HTTP layer) can tell *what kind* of failure happened:

- ``NotFoundError``: unknown pipeline, execution or agent. Never retried.
- ``ConflictError``: an operation is not valid for the current execution
  status (e.g. approving a run that is not pending approval).
- ``PlanValidationError``: a plan document is structurally malformed.
- ``AgentRegistrationError``: an agent definition could not be loaded.
- ``EngineFailure``: storage or serialization problems. Fatal to the current
  operation; the execution is moved to ``failed`` when possible.
"""

from __future__ import annotations

from typing import Optional


class ConveyorError(Exception):
    """Base error for all agent core exceptions."""


class NotFoundError(ConveyorError):
    """Raised when a named resource does not exist."""


class PipelineNotFoundError(NotFoundError):
    """Raised when a static pipeline name is not in the catalog."""

    def __init__(self, pipeline_name: str) -> None:
        self.pipeline_name = pipeline_name
        super().__init__(f"Pipeline not found: '{pipeline_name}'")


class ExecutionNotFoundError(NotFoundError):
    """Raised when no execution state exists for an id."""

    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution not found: '{execution_id}'")


class AgentNotFoundError(NotFoundError):
    """Raised when a pipeline or plan references an agent the registry does not know.

    ``execution_id`` is set when the error terminated a dynamic execution, so
    the caller can still inspect the persisted (failed) state.
    """

    def __init__(self, agent_name: str, *, execution_id: Optional[str] = None) -> None:
        self.agent_name = agent_name
        self.execution_id = execution_id
        super().__init__(f"Agent not found: '{agent_name}'")


class ConflictError(ConveyorError):
    """Raised when an operation conflicts with the current state of a resource."""


class ExecutionStateConflictError(ConflictError):
    """Raised when approve/reject is called on an execution that is not pending approval."""

    def __init__(self, execution_id: str, status: str) -> None:
        self.execution_id = execution_id
        self.status = status
        super().__init__(f"Execution '{execution_id}' is not pending approval (status={status})")


class PlanValidationError(ConveyorError):
    """Raised when a plan document is not structurally well-formed."""


class AgentRegistrationError(ConveyorError):
    """Raised when an agent definition cannot be loaded into the registry."""

    def __init__(self, agent_name: str, message: str) -> None:
        self.agent_name = agent_name
        super().__init__(f"Failed to register agent '{agent_name}': {message}")


class EngineFailure(ConveyorError):
    """Raised for unrecoverable engine-side problems (storage, serialization)."""


class StaleExecutionStateError(EngineFailure):
    """Raised when a save lost an optimistic concurrency race on an execution record."""

    def __init__(self, execution_id: str, expected_version: int) -> None:
        self.execution_id = execution_id
        self.expected_version = expected_version
        super().__init__(f"Execution '{execution_id}' was modified concurrently (expected version {expected_version})")


class ContextSerializationError(EngineFailure):
    """Raised when an agent context snapshot cannot be serialized or restored."""
