"""
API Schemas.

Pydantic models used for API request bodies and responses. These schemas
define the interface contract between HTTP clients and the server.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from conveyor_ai.agent_core.schemas.domain import AgentResult, ExecutionState, ExecutionStatus


class PipelineInvoke(BaseModel):
    """Request body for running a static pipeline."""

    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Initial context for the pipeline.",
        examples=[{"text": "Quarterly revenue grew while churn fell."}],
    )


class PipelineInvokeResponse(BaseModel):
    pipeline: str
    results: List[AgentResult]


class PipelineRead(BaseModel):
    name: str
    description: str
    agents: List[str]


class AgentRead(BaseModel):
    name: str
    description: str
    entry_point: Optional[str] = None


class AgentCreate(BaseModel):
    """Request body for registering an agent from an importable reference."""

    name: str = Field(..., min_length=1, description="Unique agent name.")
    description: str = Field(default="", description="Human readable description fed to the planner.")
    entry_point: Optional[str] = Field(
        default=None,
        description="'package.module:attribute' reference to an agent instance, class or factory. "
        "Omit to update the description of an already registered agent.",
        examples=["my_agents.fetch:FetchDataAgent"],
    )


class ExecutionCreate(BaseModel):
    """Request body for submitting a dynamic plan."""

    plan: Any = Field(
        ...,
        description="Plan document: a list of steps, or an object with 'steps' or 'plan'.",
        examples=[[{"agent_name": "summarizer"}, {"agent_name": "human-approval-gate"}]],
    )
    context: Dict[str, Any] = Field(default_factory=dict, description="Initial execution context.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "plan": {
                    "steps": [
                        {"agent_name": "keyword-extractor", "group": "analyze"},
                        {"agent_name": "summarizer", "group": "analyze"},
                        {"agent_name": "human-approval-gate"},
                    ]
                },
                "context": {"text": "Ship the new billing flow to all tenants."},
            }
        }
    )


class ExecutionPlanRequest(BaseModel):
    """Request body for planning a goal and submitting the resulting plan."""

    goal: str = Field(..., min_length=1, description="What the execution should achieve.")
    context: Dict[str, Any] = Field(default_factory=dict, description="Initial execution context.")


class ExecutionRead(BaseModel):
    """Summary of an execution as returned to callers."""

    execution_id: str
    status: ExecutionStatus
    cursor: int
    results: List[AgentResult]
    context: Dict[str, Any]
    error: Optional[str] = None
    degraded: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_state(cls, state: ExecutionState) -> "ExecutionRead":
        return cls(
            execution_id=state.execution_id,
            status=state.status,
            cursor=state.cursor,
            results=list(state.results),
            context=dict(state.context),
            error=state.error,
            degraded=state.degraded,
            created_at=state.created_at,
            updated_at=state.updated_at,
        )


class ReviewAccepted(BaseModel):
    execution_id: str
    status: ExecutionStatus
