from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from ..agents.base import Agent
from ..agents.registry import AgentRegistry
from ..errors import AgentNotFoundError
from ..schemas.domain import AgentContext, AgentResult
from .catalog import PipelineCatalog

logger = logging.getLogger(__name__)


class StaticOrchestrator:
    """
    Runs a named static pipeline end-to-end within one call.

    The run is a sequential fold over the pipeline's agents carrying a
    ``(context, results)`` pair:

    - ``can_handle(context)`` false: the agent is skipped, nothing is recorded.
    - otherwise the agent's result is appended and its ``details`` are merged
      into the context seen by the next agent.

    There is no persistence and no suspension; approval-requiring agents run
    like any other. An exception from an agent aborts the call and no partial
    results are returned.
    """

    def __init__(self, *, registry: AgentRegistry, catalog: PipelineCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    @property
    def catalog(self) -> PipelineCatalog:
        return self._catalog

    def available_pipelines(self) -> List[str]:
        return self._catalog.names()

    def _resolve(self, agent_names: tuple[str, ...]) -> List[Agent]:
        agents: List[Agent] = []
        for name in agent_names:
            agent = self._registry.get(name)
            if agent is None:
                raise AgentNotFoundError(name)
            agents.append(agent)
        return agents

    async def invoke(
        self, pipeline_name: str, initial_context: Optional[Mapping[str, Any]] = None
    ) -> List[AgentResult]:
        """
        Execute the pipeline ``pipeline_name``.

        Args:
            pipeline_name: Name of a pipeline in the catalog.
            initial_context: Starting context values.

        Returns:
            Results of the agents that ran, in pipeline order.

        Raises:
            PipelineNotFoundError: If the pipeline is unknown. No agent runs.
            AgentNotFoundError: If the pipeline names an unregistered agent.
                No agent runs.
        """
        pipeline = self._catalog.get(pipeline_name)
        agents = self._resolve(pipeline.agent_names)

        context = initial_context if isinstance(initial_context, AgentContext) else AgentContext(initial_context)
        results: List[AgentResult] = []
        logger.info("Invoking pipeline '%s' with %d agents", pipeline.name, len(agents))
        for agent in agents:
            if not agent.can_handle(context):
                logger.debug("Pipeline '%s': skipping agent '%s'", pipeline.name, agent.name)
                continue
            result = await agent.execute(context)
            results.append(result)
            context = context.merge(result.details)
        logger.info("Pipeline '%s' finished with %d results", pipeline.name, len(results))
        return results
