"""Goal-to-plan planning.

The executor treats plans as opaque data; this module is the collaborator that
produces them from a natural-language goal.

- ``model=None``: deterministic fallback emitting a single ``summarizer`` step
  (or an empty plan when no summarizer is registered). Useful for tests and
  deployments that avoid LLM calls.
- ``model!=None``: a Pydantic AI agent returns a list of ``PlanStep`` objects,
  constrained to the agents listed in the registry catalog.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Optional, Protocol

from pydantic_ai import Agent

from ..agents.registry import AgentRegistry
from ..schemas.plan import Plan, PlanStep

logger = logging.getLogger(__name__)

FALLBACK_AGENT = "summarizer"


class Planner(Protocol):
    async def create_plan(self, goal: str, context_hints: Optional[Mapping[str, Any]] = None) -> Plan: ...


class StructuredPlanner:
    """Planner producing a structured ``Plan`` from a goal."""

    def __init__(self, *, registry: AgentRegistry, model: Any | None = None) -> None:
        self._registry = registry
        self._model = model

    async def create_plan(self, goal: str, context_hints: Optional[Mapping[str, Any]] = None) -> Plan:
        """
        Generate a plan for ``goal``.

        Args:
            goal: The user goal or task description.
            context_hints: Known context keys, passed to the model as hints.

        Returns:
            A structurally validated ``Plan``.
        """
        if self._model is None:
            if not self._registry.has(FALLBACK_AGENT):
                logger.debug("No planner model and no '%s' agent; returning an empty plan", FALLBACK_AGENT)
                return Plan()
            return Plan(steps=[PlanStep(agent_name=FALLBACK_AGENT, arguments={"text": goal})])

        agent: Agent = Agent(
            self._model,
            output_type=List[PlanStep],
            system_prompt=(
                "You are a planner for an agent execution engine. "
                "Return a minimal ordered list of steps as JSON. "
                "Only use agent names from the provided catalog. "
                "Steps that may run concurrently can share a 'group' id."
            ),
        )
        hints = json.dumps(sorted(context_hints or {}))
        result = await agent.run(
            (
                f"Available agents: {self._registry.describe_as_json()}\n"
                f"Known context keys: {hints}\n"
                f"goal={goal}\n"
            )
        )
        steps = result.output
        logger.debug("Planner produced %d steps for goal %r", len(steps), goal)
        return Plan.from_document([s.model_dump() for s in steps])
