"""Agent protocol and convenience base class.

An agent is the capability unit every execution path composes over. The
static orchestrator and the plan executor both resolve agents by name through
``AgentRegistry`` and call them with the current ``AgentContext``.

Agents should:

- be stateless across invocations (long-lived state belongs to the
  collaborators they depend on),
- keep ``can_handle`` a pure predicate over the context,
- report expected problems as a ``failure`` ``AgentResult`` and leave
  exceptions for the unexpected.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..schemas.domain import AgentContext, AgentResult


@runtime_checkable
class Agent(Protocol):
    """Protocol for agent implementations."""

    name: str
    description: str

    def can_handle(self, context: AgentContext) -> bool: ...

    async def execute(self, context: AgentContext) -> AgentResult: ...

    def requires_approval(self) -> bool: ...


class BaseAgent:
    """Defaults for the optional parts of the ``Agent`` protocol.

    Subclasses set ``name`` and implement ``execute``.
    """

    name: str = ""
    description: str = ""

    def can_handle(self, context: AgentContext) -> bool:
        return True

    async def execute(self, context: AgentContext) -> AgentResult:
        raise NotImplementedError

    def requires_approval(self) -> bool:
        return False
