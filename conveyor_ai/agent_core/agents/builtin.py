from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, List

from pydantic_ai import Agent as ModelAgent

from ..schemas.domain import AgentContext, AgentResult, RemediationAction, RemediationPlan
from .base import BaseAgent

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[A-Za-z][A-Za-z0-9_-]{2,}")
_STOPWORDS = frozenset(
    """
    the and for are but not you all any can her was one our out has have had him his how its may new now old see
    two who did get let put say she too use that this with from they will would there their what when which while
    your into than then them these those been were also such only over more most some very just about after before
    """.split()
)


@dataclass(frozen=True)
class KeywordExtractorAgent(BaseAgent):
    """
    Deterministic keyword extraction over ``context["text"]``.

    Emits ``{"keywords": [...]}`` with the most frequent non-stopword terms,
    most frequent first and ties broken by first appearance.
    """

    name: str = "keyword-extractor"
    description: str = "Extracts the most frequent keywords from 'text'."
    max_keywords: int = 5

    def can_handle(self, context: AgentContext) -> bool:
        return bool(str(context.get("text") or "").strip())

    async def execute(self, context: AgentContext) -> AgentResult:
        words = [w.lower() for w in _WORD.findall(str(context.get("text") or ""))]
        counts = Counter(w for w in words if w not in _STOPWORDS)
        keywords = [w for w, _ in counts.most_common(self.max_keywords)]
        return AgentResult.success(self.name, f"extracted {len(keywords)} keywords", {"keywords": keywords})


@dataclass(frozen=True)
class SummarizerAgent(BaseAgent):
    """
    Summarize ``context["text"]``.

    With ``model`` set the summary comes from a Pydantic AI agent. With no
    model it is a deterministic truncation, which keeps tests and offline
    deployments free of LLM calls.
    """

    name: str = "summarizer"
    description: str = "Summarizes 'text' into 'summary'."
    model: Any | None = None
    max_chars: int = 200

    def can_handle(self, context: AgentContext) -> bool:
        return bool(str(context.get("text") or "").strip())

    async def execute(self, context: AgentContext) -> AgentResult:
        text = str(context.get("text") or "")
        if self.model is None:
            summary = text[: self.max_chars]
        else:
            agent: ModelAgent = ModelAgent(
                self.model,
                output_type=str,
                system_prompt="Summarize the user's text in at most three sentences.",
            )
            result = await agent.run(text)
            summary = str(result.output)
        return AgentResult.success(self.name, "summarized text", {"summary": summary})


@dataclass(frozen=True)
class HumanApprovalGateAgent(BaseAgent):
    """
    Human-in-the-loop gate.

    Always succeeds and always demands approval, so a dynamic execution pauses
    right after it. Records what it is asking approval for under
    ``approval_request``.
    """

    name: str = "human-approval-gate"
    description: str = "Pauses the execution until a reviewer approves or rejects it."

    async def execute(self, context: AgentContext) -> AgentResult:
        subject = context.get("approval_subject") or context.get("summary") or "continue execution"
        return AgentResult.success(self.name, "awaiting human approval", {"approval_request": str(subject)})

    def requires_approval(self) -> bool:
        return True


@dataclass(frozen=True)
class ErrorHandlerAgent(BaseAgent):
    """
    Diagnose a failed plan step and propose a ``RemediationPlan``.

    The executor calls it with ``failed_agent_name``, ``input_arguments`` and
    ``error_message`` when it is configured as the remediator. With ``model``
    set a Pydantic AI agent decides between retrying with fixed arguments and
    failing gracefully. With no model it always fails gracefully.
    """

    name: str = "error-handler"
    description: str = "Diagnoses a failed step and proposes a fix or a graceful stop."
    model: Any | None = None

    def can_handle(self, context: AgentContext) -> bool:
        return "failed_agent_name" in context and "error_message" in context

    async def execute(self, context: AgentContext) -> AgentResult:
        if self.model is None:
            plan = RemediationPlan(
                action=RemediationAction.fail_gracefully,
                justification=f"no remediation model configured; last error: {context.get('error_message')}",
            )
        else:
            agent: ModelAgent = ModelAgent(
                self.model,
                output_type=RemediationPlan,
                system_prompt=(
                    "You diagnose failed steps of an agent pipeline. "
                    "Answer 'retry_with_fix' with corrected 'modified_arguments' when the arguments caused the "
                    "error, otherwise 'fail_gracefully'. Always give a short justification."
                ),
            )
            result = await agent.run(
                (
                    f"failed_agent_name={context.get('failed_agent_name')}\n"
                    f"input_arguments={json.dumps(context.get('input_arguments') or {}, default=str)}\n"
                    f"error_message={context.get('error_message')}\n"
                )
            )
            plan = result.output
        logger.info("Remediation plan for '%s': %s", context.get("failed_agent_name"), plan.action.value)
        details = {"remediation_plan": plan.model_dump(mode="json")}
        return AgentResult.success(self.name, f"remediation: {plan.action.value}", details)


def builtin_agents(
    *, summarizer_model: Any | None = None, error_handler_model: Any | None = None
) -> List[BaseAgent]:
    """Instances of every built-in agent."""
    return [
        KeywordExtractorAgent(),
        SummarizerAgent(model=summarizer_model),
        HumanApprovalGateAgent(),
        ErrorHandlerAgent(model=error_handler_model),
    ]

