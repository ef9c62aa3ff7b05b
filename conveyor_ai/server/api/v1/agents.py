"""
Agent Registry Endpoints.

Inspect the agent registry and add or remove agents at runtime without a
restart.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Response, status

from conveyor_ai.agent_core.agents.loader import ensure_entry_point_allowed
from conveyor_ai.agent_core.schemas.domain import AgentDefinition
from conveyor_ai.server.core.config import settings
from conveyor_ai.server.schemas import AgentCreate, AgentRead
from conveyor_ai.server.services.deps import OrchestratorDep

router = APIRouter()


@router.get(
    "",
    response_model=List[AgentRead],
    summary="List Agents",
    description="List the agents currently registered.",
)
async def list_agents(orchestrator: OrchestratorDep):
    return [AgentRead(**d.model_dump()) for d in orchestrator.registry.definitions()]


@router.post(
    "",
    response_model=AgentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register Agent",
    description=(
        "Register (or replace) an agent from an importable entry point. Operator-only: the entry point module "
        "must match CONVEYOR_AI_AGENT_MODULE_ALLOWLIST."
    ),
    responses={400: {"description": "The agent could not be loaded or its module is not allowed"}},
)
async def register_agent(body: AgentCreate, orchestrator: OrchestratorDep):
    """
    Register an agent.

    Load failures are reported to the caller; a bad definition is never
    silently dropped. Modules outside the allow-list are refused before
    anything is imported.
    """
    definition = AgentDefinition(name=body.name, description=body.description, entry_point=body.entry_point)
    ensure_entry_point_allowed(definition, settings.agent_module_allowlist)
    orchestrator.registry.register(definition)
    return AgentRead(**definition.model_dump())


@router.delete(
    "/{agent_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unregister Agent",
    responses={404: {"description": "Agent not registered"}},
)
async def unregister_agent(agent_name: str, orchestrator: OrchestratorDep):
    if not orchestrator.registry.unregister(agent_name):
        raise HTTPException(status_code=404, detail=f"Agent not found: '{agent_name}'")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
