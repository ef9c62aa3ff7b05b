"""
Static Pipeline Endpoints.

List the static pipeline catalog and run a pipeline end-to-end in one request.
"""

from typing import List

from fastapi import APIRouter

from conveyor_ai.server.schemas import PipelineInvoke, PipelineInvokeResponse, PipelineRead
from conveyor_ai.server.services.deps import OrchestratorDep

router = APIRouter()


@router.get(
    "",
    response_model=List[PipelineRead],
    summary="List Pipelines",
    description="List the static pipelines known to the server.",
)
async def list_pipelines(orchestrator: OrchestratorDep):
    catalog = orchestrator.orchestrator.catalog
    return [PipelineRead(name=p.name, description=p.description, agents=list(p.agent_names)) for p in catalog]


@router.post(
    "/{pipeline_name}/invoke",
    response_model=PipelineInvokeResponse,
    summary="Invoke Pipeline",
    description="Run a static pipeline with the given initial context and return every produced result.",
    response_description="Results in pipeline order; skipped agents are omitted.",
    responses={404: {"description": "Unknown pipeline or agent"}},
)
async def invoke_pipeline(pipeline_name: str, body: PipelineInvoke, orchestrator: OrchestratorDep):
    """
    Invoke a pipeline.

    The call is all-or-nothing: if an agent raises, no partial results are
    returned and the error surfaces as a server error.
    """
    results = await orchestrator.invoke(pipeline_name, body.context)
    return PipelineInvokeResponse(pipeline=pipeline_name, results=results)
