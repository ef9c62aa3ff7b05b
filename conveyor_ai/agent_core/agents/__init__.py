"""Agent contract, registry and built-in agents."""

from .base import Agent, BaseAgent
from .builtin import (
    ErrorHandlerAgent,
    HumanApprovalGateAgent,
    KeywordExtractorAgent,
    SummarizerAgent,
    builtin_agents,
)
from .loader import AGENT_ENTRY_POINT_GROUP, ensure_entry_point_allowed, load_agent
from .registry import AgentRegistry

__all__ = [
    "AGENT_ENTRY_POINT_GROUP",
    "Agent",
    "AgentRegistry",
    "BaseAgent",
    "ErrorHandlerAgent",
    "HumanApprovalGateAgent",
    "KeywordExtractorAgent",
    "SummarizerAgent",
    "builtin_agents",
    "ensure_entry_point_allowed",
    "load_agent",
]
