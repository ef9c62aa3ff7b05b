from __future__ import annotations

from types import SimpleNamespace

import pytest

from conveyor_ai.agent_core.agents import builtin as builtin_mod
from conveyor_ai.agent_core.agents.builtin import (
    ErrorHandlerAgent,
    HumanApprovalGateAgent,
    KeywordExtractorAgent,
    SummarizerAgent,
    builtin_agents,
)
from conveyor_ai.agent_core.schemas.domain import AgentContext, RemediationAction, RemediationPlan

pytestmark = pytest.mark.asyncio


async def test_keyword_extractor_ranks_by_frequency():
    agent = KeywordExtractorAgent(max_keywords=2)
    ctx = AgentContext({"text": "Billing billing outage. The billing outage hit checkout."})

    result = await agent.execute(ctx)

    assert result.ok
    assert result.details == {"keywords": ["billing", "outage"]}


async def test_keyword_extractor_and_summarizer_need_text():
    empty = AgentContext({"text": "   "})
    assert KeywordExtractorAgent().can_handle(empty) is False
    assert SummarizerAgent().can_handle(empty) is False
    assert SummarizerAgent().can_handle(AgentContext({"text": "hi"})) is True


async def test_summarizer_without_model_truncates():
    agent = SummarizerAgent(max_chars=5)
    result = await agent.execute(AgentContext({"text": "abcdefghij"}))
    assert result.details == {"summary": "abcde"}


async def test_summarizer_with_model_uses_pydantic_ai(monkeypatch: pytest.MonkeyPatch):
    calls = []

    class _FakeModelAgent:
        def __init__(self, model, **kwargs):
            calls.append((model, kwargs))

        async def run(self, prompt):
            return SimpleNamespace(output=f"summary of {prompt}")

    monkeypatch.setattr(builtin_mod, "ModelAgent", _FakeModelAgent)

    result = await SummarizerAgent(model="test-model").execute(AgentContext({"text": "the text"}))

    assert result.details == {"summary": "summary of the text"}
    assert calls[0][0] == "test-model"


async def test_human_approval_gate():
    agent = HumanApprovalGateAgent()
    result = await agent.execute(AgentContext({"summary": "deploy v2"}))

    assert agent.requires_approval() is True
    assert agent.can_handle(AgentContext()) is True
    assert result.ok and result.details == {"approval_request": "deploy v2"}


async def test_builtin_agents_have_unique_names():
    names = [a.name for a in builtin_agents()]
    assert sorted(names) == ["error-handler", "human-approval-gate", "keyword-extractor", "summarizer"]


FAILED_STEP = {
    "failed_agent_name": "summarizer",
    "input_arguments": {"text": ""},
    "error_message": "cannot summarize empty text",
}


async def test_error_handler_needs_failure_context():
    agent = ErrorHandlerAgent()
    assert agent.can_handle(AgentContext(FAILED_STEP)) is True
    assert agent.can_handle(AgentContext({"failed_agent_name": "summarizer"})) is False
    assert agent.requires_approval() is False


async def test_error_handler_without_model_fails_gracefully():
    result = await ErrorHandlerAgent().execute(AgentContext(FAILED_STEP))

    plan = RemediationPlan.model_validate(result.details["remediation_plan"])
    assert result.ok
    assert plan.action is RemediationAction.fail_gracefully
    assert plan.modified_arguments == {}
    assert "cannot summarize empty text" in plan.justification


async def test_error_handler_with_model_returns_structured_plan(monkeypatch: pytest.MonkeyPatch):
    calls = []

    class _FakeModelAgent:
        def __init__(self, model, **kwargs):
            calls.append((model, kwargs))

        async def run(self, prompt):
            calls.append(prompt)
            return SimpleNamespace(
                output=RemediationPlan(
                    action=RemediationAction.retry_with_fix,
                    modified_arguments={"text": "fallback text"},
                    justification="empty input",
                )
            )

    monkeypatch.setattr(builtin_mod, "ModelAgent", _FakeModelAgent)

    result = await ErrorHandlerAgent(model="test-model").execute(AgentContext(FAILED_STEP))

    assert result.details == {
        "remediation_plan": {
            "action": "retry_with_fix",
            "modified_arguments": {"text": "fallback text"},
            "justification": "empty input",
        }
    }
    assert calls[0][0] == "test-model"
    assert calls[0][1]["output_type"] is RemediationPlan
    assert "error_message=cannot summarize empty text" in calls[1]
