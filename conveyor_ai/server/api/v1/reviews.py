"""
Review Endpoints.

Human-in-the-loop decisions on executions paused at an approval gate.
"""

from fastapi import APIRouter, status

from conveyor_ai.server.schemas import ReviewAccepted
from conveyor_ai.server.services.deps import OrchestratorDep

router = APIRouter()

_RESPONSES = {
    404: {"description": "Execution not found"},
    409: {"description": "Execution is not pending approval"},
}


@router.post(
    "/{execution_id}/approve",
    response_model=ReviewAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Approve Execution",
    description="Approve a paused execution. The rest of the plan runs in the background.",
    responses=_RESPONSES,
)
async def approve(execution_id: str, orchestrator: OrchestratorDep):
    new_status = await orchestrator.approve(execution_id)
    return ReviewAccepted(execution_id=execution_id, status=new_status)


@router.post(
    "/{execution_id}/reject",
    response_model=ReviewAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Reject Execution",
    description="Reject a paused execution. Terminal; no further step runs.",
    responses=_RESPONSES,
)
async def reject(execution_id: str, orchestrator: OrchestratorDep):
    new_status = await orchestrator.reject(execution_id)
    return ReviewAccepted(execution_id=execution_id, status=new_status)
