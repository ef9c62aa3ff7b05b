"""
Dynamic Execution Endpoints.

Submit plans, plan-and-submit goals, and inspect persisted execution state.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from conveyor_ai.agent_core.schemas.domain import ExecutionStatus
from conveyor_ai.server.schemas import ExecutionCreate, ExecutionPlanRequest, ExecutionRead
from conveyor_ai.server.services.deps import OrchestratorDep

router = APIRouter()


@router.post(
    "",
    response_model=ExecutionRead,
    summary="Submit Plan",
    description=(
        "Start a dynamic execution of the given plan. Returns once the plan completes, fails, "
        "or pauses for approval."
    ),
    responses={
        404: {"description": "The plan names an unregistered agent (the failed execution is persisted)"},
        422: {"description": "Malformed plan"},
    },
)
async def submit_plan(body: ExecutionCreate, orchestrator: OrchestratorDep):
    state = await orchestrator.submit_plan(body.plan, body.context)
    return ExecutionRead.from_state(state)


@router.post(
    "/plan",
    response_model=ExecutionRead,
    summary="Plan and Submit",
    description="Ask the planner for a plan for the goal, then submit it.",
)
async def plan_and_submit(body: ExecutionPlanRequest, orchestrator: OrchestratorDep):
    state = await orchestrator.plan_and_submit(body.goal, body.context)
    return ExecutionRead.from_state(state)


@router.get(
    "",
    response_model=List[ExecutionRead],
    summary="List Executions",
    description="List executions, newest first, optionally filtered by status.",
)
async def list_executions(
    orchestrator: OrchestratorDep,
    status: Optional[ExecutionStatus] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    states = await orchestrator.list_executions(status=status, limit=limit, offset=offset)
    return [ExecutionRead.from_state(s) for s in states]


@router.get(
    "/{execution_id}",
    response_model=ExecutionRead,
    summary="Get Execution",
    responses={404: {"description": "Execution not found"}},
)
async def get_execution(execution_id: str, orchestrator: OrchestratorDep):
    state = await orchestrator.get_execution(execution_id)
    return ExecutionRead.from_state(state)
