"""LangGraph dynamic plan executor.

``PlanExecutor`` runs a ``Plan`` group by group against the ``AgentRegistry``
and persists an ``ExecutionState`` after every group.

Execution model
---------------

- The executor runs a LangGraph state machine
  (``start -> execute_group -> continue | pause | finish | fail``).
- Each ``execute_group`` iteration runs exactly one plan group, the one at
  ``cursor``. Members of a group run concurrently; the group settles when all
  of them have finished. Results are recorded in declaration order.
- The context is rebuilt from the persisted snapshot before every group, so a
  run continued in another process behaves exactly like one that never
  stopped.

Step outcomes
-------------

- ``can_handle`` false: the step is skipped and leaves no trace.
- An exception, a timeout or a return value that is not an ``AgentResult``
  becomes a FAILURE result for that step. Whether a FAILURE stops the run is
  decided by ``GroupFailurePolicy``.
- With a ``remediator`` configured, a FAILURE is first shown to that agent.
  Its ``RemediationPlan`` either retries the step with fixed arguments
  (bounded by ``max_recovery_attempts``) or ends the run as FAILED.
- Any other error escaping a group marks the run FAILED before it is
  re-raised, so no record is left in ``running``.
- An unknown agent name fails the run (persisted) and raises
  ``AgentNotFoundError``.

Pause/resume
------------

When an agent that just ran requires approval, the group's results are
persisted with status ``pending_approval`` and the cursor left on the group.
The review gateway flips the record to ``resumed_after_approval``;
``resume_execution`` then moves the cursor past the gate and continues.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from langgraph.graph import END, StateGraph

from ...core.monitoring import log_error, log_execution_event
from ..agents.base import Agent
from ..errors import AgentNotFoundError, ExecutionNotFoundError, StaleExecutionStateError
from ..schemas.domain import (
    AgentContext,
    AgentResult,
    ExecutionState,
    ExecutionStatus,
    RemediationAction,
    RemediationPlan,
)
from ..schemas.plan import Plan, PlanStep
from .models import ExecutorDeps, GroupFailurePolicy, _GraphState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _StepOutcome:
    """Settled outcome of one plan step.

    ``step`` carries the arguments the agent actually ran with, which differ
    from the declared ones after a remediation retry.
    """

    step: PlanStep
    result: AgentResult
    gated: bool = False
    abort: bool = False


class PlanExecutor:
    """Execute dynamic plans with durable suspension on approval gates."""

    def __init__(self, *, deps: ExecutorDeps) -> None:
        """
        Initialize the PlanExecutor.

        Args:
            deps: Repository, registry and execution policies.
        """
        self._deps = deps
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("execute_group", self._node_execute_group)
        g.add_node("pause", self._node_pause)
        g.add_node("finish", self._node_finish)
        g.add_node("fail", self._node_fail)

        g.set_entry_point("start")
        g.add_edge("start", "execute_group")
        g.add_conditional_edges(
            "execute_group",
            self._route_after_group,
            {
                "continue": "execute_group",
                "pause": "pause",
                "finish": "finish",
                "fail": "fail",
            },
        )
        g.add_edge("pause", END)
        g.add_edge("finish", END)
        g.add_edge("fail", END)
        return g.compile()

    async def submit_plan(self, plan: Any, initial_context: Optional[Mapping[str, Any]] = None) -> ExecutionState:
        """
        Persist a new execution for ``plan`` and run it.

        Runs until the plan completes, fails, or pauses on an approval gate.

        Args:
            plan: A ``Plan`` or a plan document (see ``Plan.from_document``).
            initial_context: Starting context values.

        Returns:
            The persisted execution state after this run.

        Raises:
            PlanValidationError: If the plan document is malformed.
            AgentNotFoundError: If the plan names an unregistered agent. The
                failed execution is persisted first.
            EngineFailure: On storage or context serialization problems.
        """
        plan = Plan.from_document(plan)
        snapshot = AgentContext(initial_context).to_snapshot()
        state = await self._deps.repository.create(ExecutionState(plan=plan, context=snapshot))
        logger.info("Submitted execution %s with %d steps", state.execution_id, len(plan.steps))
        log_execution_event("submitted", state.execution_id, steps=len(plan.steps))
        return await self._run(state)

    async def resume_execution(self, execution_id: str) -> ExecutionState:
        """
        Continue an approved execution past its gate.

        Only acts on executions in ``resumed_after_approval``; for any other
        status (including a duplicate call that lost the race) this is a
        no-op returning the current record.

        Raises:
            ExecutionNotFoundError: If no such execution exists.
        """
        state = await self.get_execution(execution_id)
        if state.status != ExecutionStatus.resumed_after_approval:
            logger.info("Ignoring resume of execution %s in status %s", execution_id, state.status.value)
            return state

        try:
            state = await self._deps.repository.save(
                state.model_copy(update={"status": ExecutionStatus.running, "cursor": state.cursor + 1})
            )
        except StaleExecutionStateError:
            logger.info("Execution %s was resumed concurrently; ignoring duplicate resume", execution_id)
            return await self.get_execution(execution_id)

        log_execution_event("resumed", execution_id, cursor=state.cursor)
        return await self._run(state)

    async def get_execution(self, execution_id: str) -> ExecutionState:
        """
        Load an execution record.

        Raises:
            ExecutionNotFoundError: If no such execution exists.
        """
        state = await self._deps.repository.get(execution_id)
        if state is None:
            raise ExecutionNotFoundError(execution_id)
        return state

    async def _run(self, state: ExecutionState) -> ExecutionState:
        graph_state: _GraphState = {"execution": state}
        limit = 2 * len(state.plan.groups()) + 10
        try:
            final = await self._graph.ainvoke(graph_state, config={"recursion_limit": limit})
        except Exception as e:
            await self._mark_failed(state.execution_id, e)
            raise
        error = final.get("_error")
        if error is not None:
            raise error
        return final["execution"]

    async def _mark_failed(self, execution_id: str, exc: Exception) -> None:
        """Best-effort move of an execution to FAILED after an error escaped the graph.

        The triggering error is always re-raised by the caller, so a failure to
        record it here is only logged.
        """
        message = f"{type(exc).__name__}: {exc}"
        try:
            current = await self._deps.repository.get(execution_id)
            if current is None or current.is_terminal:
                return
            await self._deps.repository.save(
                current.model_copy(update={"status": ExecutionStatus.failed, "error": message})
            )
            logger.error("Execution %s failed: %s", execution_id, message)
        except Exception as e:
            logger.error("Could not record failure of execution %s: %s", execution_id, e)
        log_error(type(exc).__name__, message, {"execution_id": execution_id})

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Graph entry node. Currently a no-op."""
        return state

    async def _node_execute_group(self, state: _GraphState) -> _GraphState:
        """Run the group at ``cursor`` and persist its outcome."""
        execution = state["execution"]
        groups = execution.plan.groups()
        repo = self._deps.repository

        if execution.cursor >= len(groups):
            execution = await repo.save(execution.model_copy(update={"status": ExecutionStatus.completed}))
            return {"execution": execution, "_outcome": "finish"}

        group_index = execution.cursor
        group = groups[group_index]
        agents: List[Agent] = []
        for step in group:
            agent = self._deps.registry.get(step.agent_name)
            if agent is None:
                error = AgentNotFoundError(step.agent_name, execution_id=execution.execution_id)
                return {"execution": execution, "_outcome": "fail", "_error": error}
            agents.append(agent)

        context = AgentContext.from_snapshot(execution.context)
        outcomes: Sequence[Optional[_StepOutcome]] = await asyncio.gather(
            *(self._run_step(step, agent, context) for step, agent in zip(group, agents))
        )

        results: List[AgentResult] = []
        gated = False
        aborted = False
        for outcome in outcomes:
            if outcome is None:
                continue
            result = outcome.result
            context = context.merge(outcome.step.arguments).merge(result.details)
            if outcome.gated:
                gated = True
                result = result.model_copy(update={"execution_id": execution.execution_id})
            aborted = aborted or outcome.abort
            results.append(result)

        failed = any(not r.ok for r in results)
        halt = aborted or (failed and self._deps.failure_policy == GroupFailurePolicy.halt)
        update: dict[str, Any] = {
            "context": context.to_snapshot(),
            "results": [*execution.results, *results],
            "degraded": execution.degraded or (failed and not halt),
        }
        if halt:
            failed_names = ", ".join(r.agent_name for r in results if not r.ok)
            reason = "remediation gave up" if aborted else "step failure"
            update.update(status=ExecutionStatus.failed, error=f"{reason} in group {group_index}: {failed_names}")
            outcome_name = "finish"
        elif gated:
            update.update(status=ExecutionStatus.pending_approval)
            outcome_name = "pause"
        elif execution.cursor + 1 >= len(groups):
            update.update(status=ExecutionStatus.completed, cursor=execution.cursor + 1)
            outcome_name = "finish"
        else:
            update.update(cursor=execution.cursor + 1)
            outcome_name = "continue"

        execution = await repo.save(execution.model_copy(update=update))
        logger.debug(
            "Execution %s: group %d settled with %d results (%s)",
            execution.execution_id,
            group_index,
            len(results),
            outcome_name,
        )
        return {"execution": execution, "_outcome": outcome_name}

    async def _run_step(self, step: PlanStep, agent: Agent, context: AgentContext) -> Optional[_StepOutcome]:
        """Run one step, consulting the remediator when it fails.

        Returns None when the step is skipped.
        """
        attempts = 0
        while True:
            outcome = await self._invoke(step, agent, context)
            if outcome is None or outcome.result.ok:
                return outcome
            if self._deps.remediator is None or attempts >= self._deps.max_recovery_attempts:
                return outcome

            remediation = await self._remediate(step, outcome.result)
            if remediation is None:
                return outcome
            if remediation.action == RemediationAction.fail_gracefully:
                logger.warning(
                    "Remediation for agent '%s': fail gracefully (%s)", agent.name, remediation.justification
                )
                summary = f"{outcome.result.summary}; remediation: fail gracefully ({remediation.justification})"
                return _StepOutcome(step=step, result=outcome.result.model_copy(update={"summary": summary}), abort=True)

            attempts += 1
            logger.info("Remediation for agent '%s': retry %d with fixed arguments", agent.name, attempts)
            step = step.model_copy(update={"arguments": dict(remediation.modified_arguments)})

    async def _invoke(self, step: PlanStep, agent: Agent, context: AgentContext) -> Optional[_StepOutcome]:
        """Invoke one agent once; never raises for agent-side errors."""
        step_context = context.merge(step.arguments)
        gated = False
        try:
            if not agent.can_handle(step_context):
                logger.debug("Skipping agent '%s'", agent.name)
                return None
            call = agent.execute(step_context)
            timeout = self._deps.step_timeout_seconds
            result = await (asyncio.wait_for(call, timeout) if timeout is not None else call)
            if not isinstance(result, AgentResult):
                logger.warning("Agent '%s' returned %s instead of an AgentResult", agent.name, type(result).__name__)
                result = AgentResult.failure(agent.name, f"invalid result type: {type(result).__name__}")
            else:
                gated = bool(agent.requires_approval())
        except asyncio.TimeoutError:
            logger.warning("Agent '%s' timed out after %ss", agent.name, self._deps.step_timeout_seconds)
            result = AgentResult.failure(agent.name, f"timed out after {self._deps.step_timeout_seconds}s")
        except Exception as e:
            logger.warning("Agent '%s' raised %s: %s", agent.name, type(e).__name__, e)
            result = AgentResult.failure(agent.name, f"{type(e).__name__}: {e}")
        return _StepOutcome(step=step, result=result, gated=gated)

    async def _remediate(self, step: PlanStep, failure: AgentResult) -> Optional[RemediationPlan]:
        """Ask the remediator agent what to do about a failed step.

        Returns None when no usable plan comes back; the failure then stands.
        """
        name = self._deps.remediator
        remediator = self._deps.registry.get(name) if name else None
        if remediator is None:
            logger.warning("Remediator agent '%s' is not registered", name)
            return None

        error_context = AgentContext(
            {
                "failed_agent_name": step.agent_name,
                "input_arguments": dict(step.arguments),
                "error_message": failure.summary,
            }
        )
        try:
            if not remediator.can_handle(error_context):
                return None
            result = await remediator.execute(error_context)
            return RemediationPlan.model_validate(result.details["remediation_plan"])
        except Exception as e:
            logger.warning("Remediator '%s' produced no usable plan: %s: %s", name, type(e).__name__, e)
            return None

    async def _node_pause(self, state: _GraphState) -> _GraphState:
        """Pause node.

        The state is already persisted as ``pending_approval``; the graph ends
        here and the caller gets control back.
        """
        execution = state["execution"]
        logger.info("Execution %s paused for approval at group %d", execution.execution_id, execution.cursor)
        log_execution_event("paused", execution.execution_id, cursor=execution.cursor)
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Finish node for COMPLETED and policy-halted FAILED runs."""
        execution = state["execution"]
        logger.info("Execution %s finished with status %s", execution.execution_id, execution.status.value)
        log_execution_event(
            execution.status.value, execution.execution_id, results=len(execution.results), degraded=execution.degraded
        )
        return state

    async def _node_fail(self, state: _GraphState) -> _GraphState:
        """Persist a FAILED status for a run that hit an unrecoverable error."""
        execution = state["execution"]
        error = state.get("_error")
        message = str(error) if error is not None else "execution failed"
        execution = await self._deps.repository.save(
            execution.model_copy(update={"status": ExecutionStatus.failed, "error": message})
        )
        logger.warning("Execution %s failed: %s", execution.execution_id, message)
        log_error(type(error).__name__ if error is not None else "ExecutionFailure", message, {"execution_id": execution.execution_id})
        return {"execution": execution}

    def _route_after_group(self, state: _GraphState) -> str:
        """Route to continue/pause/finish/fail after a group."""
        return str(state.get("_outcome") or "finish")
