"""
Conveyor Service Dependency.

Provides the singleton ``ConveyorService`` to API endpoints.
"""

from typing import Annotated

from fastapi import Depends

from conveyor_ai.agent_core.service import ConveyorService
from conveyor_ai.server.services.orchestrator import get_orchestrator

OrchestratorDep = Annotated[ConveyorService, Depends(get_orchestrator)]
