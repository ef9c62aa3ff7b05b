"""Conveyor-AI.

This package runs sequences of autonomous *agents* (capability-bearing units of
work, usually a thin wrapper around a generative model call or a deterministic
analysis routine) and threads a shared, growing context between them.

High-level architecture
-----------------------

Two execution paths share one data model:

- **Static pipelines**: named, fixed, ordered lists of agents executed end to
  end in one request lifetime by ``StaticOrchestrator``. No persistence, no
  suspension.
- **Dynamic plans**: caller- or planner-supplied plans executed group by group
  by ``PlanExecutor``. Every transition is persisted as an ``ExecutionState``
  so a run that stops for human approval can be resumed later, from any
  process, without re-running completed groups.

Core subpackages
----------------

- ``conveyor_ai.agent_core``: agent contract and registry, pipelines, plan
  schema and planner, the LangGraph-based executor, the execution state store
  and the review (approve/reject) gateway.
- ``conveyor_ai.server``: the FastAPI application exposing these operations.
- ``conveyor_ai.core``: logging and monitoring configuration.
"""
