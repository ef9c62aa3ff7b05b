from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from importlib import metadata
from typing import List

import pytest

from conveyor_ai.agent_core.agents import loader as loader_mod
from conveyor_ai.agent_core.agents.base import Agent, BaseAgent
from conveyor_ai.agent_core.agents.builtin import SummarizerAgent
from conveyor_ai.agent_core.agents.registry import AgentRegistry
from conveyor_ai.agent_core.errors import AgentRegistrationError
from conveyor_ai.agent_core.schemas.domain import AgentContext, AgentDefinition, AgentResult


@dataclass(frozen=True)
class _NamedAgent(BaseAgent):
    name: str = "named"
    description: str = "a test agent"

    async def execute(self, context: AgentContext) -> AgentResult:
        return AgentResult.success(self.name, "ok")


SUMMARIZER_REF = "conveyor_ai.agent_core.agents.builtin:SummarizerAgent"


def test_register_agent_and_get():
    reg = AgentRegistry()
    agent = _NamedAgent()
    reg.register_agent(agent)

    assert reg.get("named") is agent
    assert reg.has("named")
    assert "named" in reg
    assert len(reg) == 1


def test_get_missing_returns_none():
    reg = AgentRegistry()
    assert reg.get("nope") is None
    assert not reg.has("nope")


def test_register_agent_replaces_existing_name():
    reg = AgentRegistry()
    first, second = _NamedAgent(), _NamedAgent(description="second")
    reg.register_agent(first)
    reg.register_agent(second)

    assert reg.get("named") is second
    assert len(reg) == 1


def test_register_agent_rejects_non_agent_and_empty_name():
    reg = AgentRegistry()
    with pytest.raises(AgentRegistrationError):
        reg.register_agent(object())  # type: ignore[arg-type]
    with pytest.raises(AgentRegistrationError):
        reg.register_agent(_NamedAgent(name=""))


def test_unregister():
    reg = AgentRegistry()
    reg.register_agent(_NamedAgent())

    assert reg.unregister("named") is True
    assert reg.get("named") is None
    assert reg.unregister("named") is False


def test_register_definition_loads_from_entry_point():
    reg = AgentRegistry()
    agent = reg.register(AgentDefinition(name="summarizer", description="sum", entry_point=SUMMARIZER_REF))

    assert isinstance(agent, SummarizerAgent)
    assert isinstance(agent, Agent)
    assert reg.get("summarizer") is agent
    assert reg.definitions() == [AgentDefinition(name="summarizer", description="sum", entry_point=SUMMARIZER_REF)]


def test_register_definition_without_entry_point_reuses_instance():
    reg = AgentRegistry()
    agent = _NamedAgent()
    reg.register_agent(agent)

    reused = reg.register(AgentDefinition(name="named", description="updated"))

    assert reused is agent
    assert reg.definitions()[0].description == "updated"


def test_register_definition_without_entry_point_or_instance_fails():
    with pytest.raises(AgentRegistrationError):
        AgentRegistry().register(AgentDefinition(name="ghost"))


@pytest.mark.parametrize(
    "definition",
    [
        AgentDefinition(name="x", entry_point="no_such_module_for_tests:Thing"),
        AgentDefinition(name="x", entry_point="conveyor_ai.agent_core.agents.builtin:NoSuchAttr"),
        AgentDefinition(name="x", entry_point="conveyor_ai.agent_core.agents.builtin:builtin_agents"),
        AgentDefinition(name="not-the-summarizer", entry_point=SUMMARIZER_REF),
    ],
    ids=["missing-module", "missing-attribute", "not-an-agent", "name-mismatch"],
)
def test_register_bad_definition_fails_loudly_and_registers_nothing(definition):
    reg = AgentRegistry()
    with pytest.raises(AgentRegistrationError):
        reg.register(definition)
    assert reg.get(definition.name) is None
    assert len(reg) == 0


def test_describe_as_json_lists_name_and_description_sorted():
    reg = AgentRegistry()
    reg.register_agent(_NamedAgent(name="b", description="second"))
    reg.register_agent(_NamedAgent(name="a", description="first"))

    assert json.loads(reg.describe_as_json()) == [
        {"name": "a", "description": "first"},
        {"name": "b", "description": "second"},
    ]
    assert reg.names() == ["a", "b"]


def test_discover_registers_published_agents(monkeypatch: pytest.MonkeyPatch):
    published = [metadata.EntryPoint(name="summarizer", value=SUMMARIZER_REF, group="conveyor_ai.agents")]
    monkeypatch.setattr(loader_mod, "_iter_entry_points", lambda group: published)

    reg = AgentRegistry()
    loaded = reg.discover()

    assert loaded == ["summarizer"]
    assert isinstance(reg.get("summarizer"), SummarizerAgent)
    assert reg.definitions()[0].description == SummarizerAgent().description


def test_lookups_are_safe_during_concurrent_registration():
    reg = AgentRegistry()
    reg.register_agent(_NamedAgent(name="stable"))
    errors: List[BaseException] = []
    stop = threading.Event()

    def reader() -> None:
        try:
            while not stop.is_set():
                assert reg.get("stable") is not None
                reg.definitions()
        except BaseException as e:  # pragma: no cover - only on failure
            errors.append(e)

    def writer(idx: int) -> None:
        for i in range(200):
            name = f"w{idx}-{i}"
            reg.register_agent(_NamedAgent(name=name))
            reg.unregister(name)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    writers = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
    for t in readers + writers:
        t.start()
    for t in writers:
        t.join()
    stop.set()
    for t in readers:
        t.join()

    assert errors == []
    assert reg.names() == ["stable"]


@pytest.mark.parametrize(
    "entry_point, allowed",
    [
        (SUMMARIZER_REF, ["conveyor_ai."]),
        (SUMMARIZER_REF, ["conveyor_ai"]),
        ("conveyor_ai:thing", ["conveyor_ai."]),
        ("os:getcwd", ["*"]),
    ],
    ids=["dotted-prefix", "bare-prefix", "package-itself", "wildcard"],
)
def test_entry_point_inside_allow_list_is_accepted(entry_point, allowed):
    loader_mod.ensure_entry_point_allowed(AgentDefinition(name="x", entry_point=entry_point), allowed)


@pytest.mark.parametrize(
    "entry_point, allowed",
    [
        ("os:getcwd", ["conveyor_ai."]),
        ("conveyor_ai_evil.mod:Agent", ["conveyor_ai."]),
        (SUMMARIZER_REF, []),
    ],
    ids=["other-package", "shared-name-prefix", "empty-list"],
)
def test_entry_point_outside_allow_list_is_refused(entry_point, allowed):
    with pytest.raises(AgentRegistrationError, match="allow-list"):
        loader_mod.ensure_entry_point_allowed(AgentDefinition(name="x", entry_point=entry_point), allowed)


def test_allow_list_ignores_definitions_without_entry_point():
    loader_mod.ensure_entry_point_allowed(AgentDefinition(name="x"), [])
