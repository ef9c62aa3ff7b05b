from __future__ import annotations

from typing import Optional

from conveyor_ai.agent_core.factory import build_conveyor_service, build_default_catalog, build_default_registry
from conveyor_ai.agent_core.planning.planner import StructuredPlanner
from conveyor_ai.agent_core.repos.sql import SqlExecutionStateRepository
from conveyor_ai.agent_core.service import ConveyorService
from conveyor_ai.core.logging_config import get_logger
from conveyor_ai.server.core.config import settings
from conveyor_ai.server.core.database import async_session_maker

logger = get_logger(__name__)


def build_service_from_settings() -> ConveyorService:
    """
    Wire a ``ConveyorService`` from application settings.

    The execution state store is the SQL repository bound to the global
    session factory, so any server process can resume any execution.
    """
    registry = build_default_registry(
        summarizer_model=settings.summarizer_model,
        error_handler_model=settings.error_handler_model,
        discover=settings.discover_agents,
    )
    service = build_conveyor_service(
        registry=registry,
        catalog=build_default_catalog(settings.pipelines_file),
        repository=SqlExecutionStateRepository(session_factory=async_session_maker),
        planner=StructuredPlanner(registry=registry, model=settings.planner_model),
        failure_policy=settings.group_failure_policy,
        step_timeout_seconds=settings.step_timeout_seconds,
        remediator=settings.remediator_agent,
        max_recovery_attempts=settings.max_recovery_attempts,
    )
    logger.info(
        "Conveyor service ready: %d agents, %d pipelines",
        len(registry),
        len(service.orchestrator.available_pipelines()),
    )
    return service


# Global singleton
_service: Optional[ConveyorService] = None


def get_orchestrator() -> ConveyorService:
    global _service
    if _service is None:
        _service = build_service_from_settings()
    return _service
