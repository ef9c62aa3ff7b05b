from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest

from conveyor_ai.agent_core.agents.base import BaseAgent
from conveyor_ai.agent_core.agents.builtin import ErrorHandlerAgent
from conveyor_ai.agent_core.agents.registry import AgentRegistry
from conveyor_ai.agent_core.errors import (
    AgentNotFoundError,
    ContextSerializationError,
    ExecutionNotFoundError,
    PlanValidationError,
)
from conveyor_ai.agent_core.repos.memory import InMemoryExecutionStateRepository
from conveyor_ai.agent_core.runtime.executor import PlanExecutor
from conveyor_ai.agent_core.runtime.models import ExecutorDeps, GroupFailurePolicy
from conveyor_ai.agent_core.schemas.domain import (
    AgentContext,
    AgentResult,
    AgentResultStatus,
    ExecutionState,
    ExecutionStatus,
)
from conveyor_ai.agent_core.schemas.plan import Plan, PlanStep

pytestmark = pytest.mark.asyncio


@dataclass(frozen=True)
class _EmitAgent(BaseAgent):
    """Emits ``{key: value}``; records the contexts it saw."""

    name: str = "emit"
    key: str = "out"
    value: Any = None
    gate: bool = False
    delay: float = 0.0
    seen: List[Dict[str, Any]] = field(default_factory=list, compare=False)

    async def execute(self, context: AgentContext) -> AgentResult:
        self.seen.append(context.to_dict())
        if self.delay:
            await asyncio.sleep(self.delay)
        return AgentResult.success(self.name, "ok", {self.key: self.value if self.value is not None else self.name})

    def requires_approval(self) -> bool:
        return self.gate


@dataclass(frozen=True)
class _FailAgent(BaseAgent):
    name: str = "fail"

    async def execute(self, context: AgentContext) -> AgentResult:
        return AgentResult.failure(self.name, "could not do it")


@dataclass(frozen=True)
class _RaiseAgent(BaseAgent):
    name: str = "raise"

    async def execute(self, context: AgentContext) -> AgentResult:
        raise RuntimeError("kaboom")


@dataclass(frozen=True)
class _SkipAgent(BaseAgent):
    name: str = "skip"

    def can_handle(self, context: AgentContext) -> bool:
        return False

    async def execute(self, context: AgentContext) -> AgentResult:  # pragma: no cover - never called
        raise AssertionError("should have been skipped")


def _executor(*agents: BaseAgent, repo=None, **deps_kwargs) -> PlanExecutor:
    reg = AgentRegistry()
    for a in agents:
        reg.register_agent(a)
    return PlanExecutor(
        deps=ExecutorDeps(repository=repo or InMemoryExecutionStateRepository(), registry=reg, **deps_kwargs)
    )


def _plan(*steps: PlanStep) -> Plan:
    return Plan(steps=list(steps))


async def _approve(repo: InMemoryExecutionStateRepository, execution_id: str) -> None:
    assert await repo.transition(
        execution_id, ExecutionStatus.pending_approval, ExecutionStatus.resumed_after_approval
    )


async def test_plan_without_gates_completes_in_one_call():
    a, b = _EmitAgent(name="a", key="x"), _EmitAgent(name="b", key="y")
    ex = _executor(a, b)

    state = await ex.submit_plan(_plan(PlanStep(agent_name="a"), PlanStep(agent_name="b")), {"seed": 1})

    assert state.status == ExecutionStatus.completed
    assert state.cursor == 2
    assert [r.agent_name for r in state.results] == ["a", "b"]
    assert state.context == {"seed": 1, "x": "a", "y": "b"}
    assert b.seen == [{"seed": 1, "x": "a"}]
    assert all(r.execution_id is None for r in state.results)


async def test_empty_plan_completes_immediately():
    state = await _executor().submit_plan([], {"k": "v"})
    assert state.status == ExecutionStatus.completed
    assert state.results == []
    assert state.context == {"k": "v"}


async def test_gate_pauses_and_approval_resumes_to_completion():
    repo = InMemoryExecutionStateRepository()
    fetch = _EmitAgent(name="fetch", key="data")
    gate = _EmitAgent(name="gate", key="approval_request", gate=True)
    deploy = _EmitAgent(name="deploy", key="deployed", value=True)
    ex = _executor(fetch, gate, deploy, repo=repo)
    plan = _plan(PlanStep(agent_name="fetch"), PlanStep(agent_name="gate"), PlanStep(agent_name="deploy"))

    paused = await ex.submit_plan(plan)

    assert paused.status == ExecutionStatus.pending_approval
    assert paused.cursor == 1
    assert [r.agent_name for r in paused.results] == ["fetch", "gate"]
    assert paused.results[-1].execution_id == paused.execution_id
    assert "execution_id" not in paused.results[-1].details
    assert deploy.seen == []

    await _approve(repo, paused.execution_id)
    done = await ex.resume_execution(paused.execution_id)

    assert done.status == ExecutionStatus.completed
    assert [r.agent_name for r in done.results] == ["fetch", "gate", "deploy"]
    assert deploy.seen == [{"data": "fetch", "approval_request": "gate"}]


async def test_resume_in_a_fresh_executor_matches_an_uninterrupted_run():
    repo = InMemoryExecutionStateRepository()

    def agents(gate: bool):
        return (
            _EmitAgent(name="fetch", key="data"),
            _EmitAgent(name="check", key="checked", gate=gate),
            _EmitAgent(name="report", key="report"),
        )

    plan = _plan(PlanStep(agent_name="fetch"), PlanStep(agent_name="check"), PlanStep(agent_name="report"))

    paused = await _executor(*agents(True), repo=repo).submit_plan(plan, {"q": 1})
    await _approve(repo, paused.execution_id)
    resumed = await _executor(*agents(True), repo=repo).resume_execution(paused.execution_id)

    straight = await _executor(*agents(False)).submit_plan(plan, {"q": 1})

    assert resumed.context == straight.context
    assert [(r.agent_name, r.details) for r in resumed.results] == [(r.agent_name, r.details) for r in straight.results]


async def test_gate_as_last_step_completes_on_resume():
    repo = InMemoryExecutionStateRepository()
    ex = _executor(_EmitAgent(name="gate", gate=True), repo=repo)

    paused = await ex.submit_plan([{"agent_name": "gate"}])
    await _approve(repo, paused.execution_id)
    done = await ex.resume_execution(paused.execution_id)

    assert done.status == ExecutionStatus.completed
    assert len(done.results) == 1


async def test_resume_is_a_noop_unless_resumed_after_approval():
    repo = InMemoryExecutionStateRepository()
    after = _EmitAgent(name="after")
    ex = _executor(_EmitAgent(name="gate", gate=True), after, repo=repo)
    paused = await ex.submit_plan(_plan(PlanStep(agent_name="gate"), PlanStep(agent_name="after")))

    untouched = await ex.resume_execution(paused.execution_id)
    assert untouched.status == ExecutionStatus.pending_approval
    assert after.seen == []

    await _approve(repo, paused.execution_id)
    first = await ex.resume_execution(paused.execution_id)
    second = await ex.resume_execution(paused.execution_id)

    assert first.status == second.status == ExecutionStatus.completed
    assert len(after.seen) == 1
    assert second.results == first.results


async def test_concurrent_resumes_run_the_rest_of_the_plan_once():
    repo = InMemoryExecutionStateRepository()
    after = _EmitAgent(name="after")
    ex = _executor(_EmitAgent(name="gate", gate=True), after, repo=repo)
    paused = await ex.submit_plan(_plan(PlanStep(agent_name="gate"), PlanStep(agent_name="after")))
    await _approve(repo, paused.execution_id)

    await asyncio.gather(*(ex.resume_execution(paused.execution_id) for _ in range(3)))

    final = await ex.get_execution(paused.execution_id)
    assert final.status == ExecutionStatus.completed
    assert len(after.seen) == 1


async def test_rejected_execution_is_terminal():
    repo = InMemoryExecutionStateRepository()
    after = _EmitAgent(name="after")
    ex = _executor(_EmitAgent(name="gate", gate=True), after, repo=repo)
    paused = await ex.submit_plan(_plan(PlanStep(agent_name="gate"), PlanStep(agent_name="after")))

    assert await repo.transition(paused.execution_id, ExecutionStatus.pending_approval, ExecutionStatus.rejected)
    state = await ex.resume_execution(paused.execution_id)

    assert state.status == ExecutionStatus.rejected
    assert state.is_terminal
    assert after.seen == []


async def test_resume_unknown_execution_raises_not_found():
    with pytest.raises(ExecutionNotFoundError):
        await _executor().resume_execution("does-not-exist")


async def test_halt_policy_fails_after_the_group_settles():
    after = _EmitAgent(name="after")
    sibling = _EmitAgent(name="sibling", key="s")
    ex = _executor(_FailAgent(), sibling, after)
    plan = _plan(
        PlanStep(agent_name="fail", group="g"),
        PlanStep(agent_name="sibling", group="g"),
        PlanStep(agent_name="after"),
    )

    state = await ex.submit_plan(plan)

    assert state.status == ExecutionStatus.failed
    assert [r.agent_name for r in state.results] == ["fail", "sibling"]
    assert "fail" in (state.error or "")
    assert after.seen == []
    assert state.degraded is False


async def test_continue_policy_keeps_going_and_marks_degraded():
    after = _EmitAgent(name="after")
    ex = _executor(_FailAgent(), after, failure_policy=GroupFailurePolicy.continue_)

    state = await ex.submit_plan(_plan(PlanStep(agent_name="fail"), PlanStep(agent_name="after")))

    assert state.status == ExecutionStatus.completed
    assert state.degraded is True
    assert [r.status for r in state.results] == [AgentResultStatus.failure, AgentResultStatus.success]
    assert len(after.seen) == 1


async def test_agent_exception_becomes_failure_result():
    state = await _executor(_RaiseAgent()).submit_plan([{"agent_name": "raise"}])

    assert state.status == ExecutionStatus.failed
    assert state.results[0].status == AgentResultStatus.failure
    assert "kaboom" in state.results[0].summary


async def test_step_timeout_becomes_failure_result():
    slow = _EmitAgent(name="slow", delay=1.0)
    state = await _executor(slow, step_timeout_seconds=0.01).submit_plan([{"agent_name": "slow"}])

    assert state.status == ExecutionStatus.failed
    assert state.results[0].status == AgentResultStatus.failure
    assert "timed out" in state.results[0].summary


async def test_unknown_agent_persists_failed_state_and_raises():
    repo = InMemoryExecutionStateRepository()
    first = _EmitAgent(name="first")
    ex = _executor(first, repo=repo)

    with pytest.raises(AgentNotFoundError) as ei:
        await ex.submit_plan(_plan(PlanStep(agent_name="first"), PlanStep(agent_name="ghost")))

    assert ei.value.agent_name == "ghost"
    stored = await ex.get_execution(ei.value.execution_id)
    assert stored.status == ExecutionStatus.failed
    assert [r.agent_name for r in stored.results] == ["first"]
    assert "ghost" in (stored.error or "")


async def test_skipped_steps_leave_no_trace():
    state = await _executor(_SkipAgent(), _EmitAgent(name="a")).submit_plan(
        _plan(PlanStep(agent_name="skip", arguments={"ignored": True}), PlanStep(agent_name="a"))
    )

    assert [r.agent_name for r in state.results] == ["a"]
    assert "ignored" not in state.context


async def test_parallel_group_runs_concurrently_and_records_declaration_order():
    slow = _EmitAgent(name="slow", key="s", delay=0.05)
    fast = _EmitAgent(name="fast", key="f")
    ex = _executor(slow, fast)
    plan = _plan(PlanStep(agent_name="slow", group="g"), PlanStep(agent_name="fast", group="g"))

    state = await ex.submit_plan(plan, {"seed": 0})

    assert [r.agent_name for r in state.results] == ["slow", "fast"]
    # group members see the context as it was before the group
    assert slow.seen == [{"seed": 0}]
    assert fast.seen == [{"seed": 0}]
    assert state.context == {"seed": 0, "s": "slow", "f": "fast"}


async def test_step_arguments_are_merged_into_context():
    a = _EmitAgent(name="a")
    state = await _executor(a).submit_plan([{"agent_name": "a", "arguments": {"text": "hello"}}])

    assert a.seen == [{"text": "hello"}]
    assert state.context == {"text": "hello", "out": "a"}


async def test_gate_inside_parallel_group_pauses_after_group_settles():
    gate = _EmitAgent(name="gate", key="g", gate=True)
    sibling = _EmitAgent(name="sibling", key="s", delay=0.02)
    state = await _executor(gate, sibling).submit_plan(
        _plan(PlanStep(agent_name="gate", group="p"), PlanStep(agent_name="sibling", group="p"))
    )

    assert state.status == ExecutionStatus.pending_approval
    assert [r.agent_name for r in state.results] == ["gate", "sibling"]
    assert state.results[0].execution_id == state.execution_id
    assert state.results[1].execution_id is None


async def test_malformed_plan_raises_before_anything_is_persisted():
    repo = InMemoryExecutionStateRepository()
    with pytest.raises(PlanValidationError):
        await _executor(repo=repo).submit_plan({"steps": [{"agent_name": ""}]})
    assert await repo.list() == []


async def test_unserializable_initial_context_is_rejected():
    with pytest.raises(ContextSerializationError):
        await _executor().submit_plan([], {"bad": object()})


@dataclass(frozen=True)
class _NoResultAgent(BaseAgent):
    name: str = "no-result"

    async def execute(self, context: AgentContext) -> AgentResult:
        return None  # type: ignore[return-value]


@dataclass(frozen=True)
class _BrokenGateAgent(BaseAgent):
    name: str = "broken-gate"

    async def execute(self, context: AgentContext) -> AgentResult:
        return AgentResult.success(self.name, "ok", {"ran": True})

    def requires_approval(self) -> bool:
        raise RuntimeError("approval backend unavailable")


class _SaveFailsOnceRepository(InMemoryExecutionStateRepository):
    """Raises a non-storage error from the first ``save`` only."""

    def __init__(self) -> None:
        super().__init__()
        self.save_calls = 0

    async def save(self, state: ExecutionState) -> ExecutionState:
        self.save_calls += 1
        if self.save_calls == 1:
            raise RuntimeError("disk on fire")
        return await super().save(state)


async def test_raising_requires_approval_becomes_failure_result():
    state = await _executor(_BrokenGateAgent()).submit_plan([{"agent_name": "broken-gate"}])

    assert state.status == ExecutionStatus.failed
    assert state.results[0].status == AgentResultStatus.failure
    assert "approval backend unavailable" in state.results[0].summary
    assert state.results[0].execution_id is None


async def test_non_result_return_value_becomes_failure_result():
    after = _EmitAgent(name="after")
    state = await _executor(_NoResultAgent(), after).submit_plan(
        _plan(PlanStep(agent_name="no-result"), PlanStep(agent_name="after"))
    )

    assert state.status == ExecutionStatus.failed
    assert state.results[0].summary == "invalid result type: NoneType"
    assert after.seen == []


async def test_unexpected_storage_error_marks_execution_failed_and_propagates():
    repo = _SaveFailsOnceRepository()
    ex = _executor(_EmitAgent(name="a"), repo=repo)

    with pytest.raises(RuntimeError, match="disk on fire"):
        await ex.submit_plan([{"agent_name": "a"}])

    [stored] = await repo.list()
    assert stored.status == ExecutionStatus.failed
    assert stored.error == "RuntimeError: disk on fire"


@dataclass(frozen=True)
class _NeedsFixAgent(BaseAgent):
    """Fails unless the context carries ``fixed``."""

    name: str = "needs-fix"
    seen: List[Dict[str, Any]] = field(default_factory=list, compare=False)

    async def execute(self, context: AgentContext) -> AgentResult:
        self.seen.append(context.to_dict())
        if not context.get("fixed"):
            return AgentResult.failure(self.name, "missing fix")
        return AgentResult.success(self.name, "ok", {"done": True})


@dataclass(frozen=True)
class _Remediator(BaseAgent):
    """Answers every failure with the same remediation plan."""

    name: str = "fixer"
    plan: Dict[str, Any] = field(default_factory=dict, compare=False)
    seen: List[Dict[str, Any]] = field(default_factory=list, compare=False)

    async def execute(self, context: AgentContext) -> AgentResult:
        self.seen.append(context.to_dict())
        return AgentResult.success(self.name, "plan", {"remediation_plan": self.plan})


async def test_remediator_retries_step_with_fixed_arguments():
    flaky = _NeedsFixAgent()
    fixer = _Remediator(plan={"action": "retry_with_fix", "modified_arguments": {"text": "x", "fixed": True}})
    ex = _executor(flaky, fixer, remediator="fixer")

    state = await ex.submit_plan([{"agent_name": "needs-fix", "arguments": {"text": "x"}}])

    assert state.status == ExecutionStatus.completed
    assert [r.status for r in state.results] == [AgentResultStatus.success]
    assert state.context == {"text": "x", "fixed": True, "done": True}
    assert flaky.seen == [{"text": "x"}, {"text": "x", "fixed": True}]
    assert fixer.seen == [
        {"failed_agent_name": "needs-fix", "input_arguments": {"text": "x"}, "error_message": "missing fix"}
    ]


async def test_remediation_retries_are_bounded():
    flaky = _NeedsFixAgent()
    fixer = _Remediator(plan={"action": "retry_with_fix", "modified_arguments": {"fixed": False}})
    ex = _executor(flaky, fixer, remediator="fixer", max_recovery_attempts=2)

    state = await ex.submit_plan([{"agent_name": "needs-fix"}])

    assert state.status == ExecutionStatus.failed
    assert len(flaky.seen) == 3
    assert len(fixer.seen) == 2
    assert state.error == "step failure in group 0: needs-fix"


async def test_fail_gracefully_ends_run_even_under_continue_policy():
    after = _EmitAgent(name="after")
    fixer = _Remediator(plan={"action": "fail_gracefully", "justification": "input is unusable"})
    ex = _executor(
        _NeedsFixAgent(), fixer, after, remediator="fixer", failure_policy=GroupFailurePolicy.continue_
    )

    state = await ex.submit_plan(_plan(PlanStep(agent_name="needs-fix"), PlanStep(agent_name="after")))

    assert state.status == ExecutionStatus.failed
    assert state.error == "remediation gave up in group 0: needs-fix"
    assert state.results[0].summary == "missing fix; remediation: fail gracefully (input is unusable)"
    assert after.seen == []


@pytest.mark.parametrize(
    "remediator, agents",
    [
        ("nobody", []),
        ("fixer", [_Remediator(plan={"action": "shrug"})]),
    ],
    ids=["unregistered", "unusable-plan"],
)
async def test_failure_stands_when_remediation_is_unavailable(remediator, agents):
    flaky = _NeedsFixAgent()
    ex = _executor(flaky, *agents, remediator=remediator)

    state = await ex.submit_plan([{"agent_name": "needs-fix"}])

    assert state.status == ExecutionStatus.failed
    assert state.results[0].summary == "missing fix"
    assert len(flaky.seen) == 1


async def test_builtin_error_handler_without_model_fails_gracefully():
    ex = _executor(_NeedsFixAgent(), ErrorHandlerAgent(), remediator="error-handler")

    state = await ex.submit_plan([{"agent_name": "needs-fix"}])

    assert state.status == ExecutionStatus.failed
    assert state.error == "remediation gave up in group 0: needs-fix"
    assert "no remediation model configured" in state.results[0].summary


async def test_successful_steps_never_consult_the_remediator():
    fixer = _Remediator(plan={"action": "fail_gracefully"})
    state = await _executor(_EmitAgent(name="a"), fixer, remediator="fixer").submit_plan([{"agent_name": "a"}])

    assert state.status == ExecutionStatus.completed
    assert fixer.seen == []
