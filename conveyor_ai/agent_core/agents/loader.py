"""Agent loader utilities.

Turns an ``AgentDefinition`` into a live agent instance.

Two sources of agents are supported:

* An explicit ``entry_point`` on the definition, written in the usual
  ``"package.module:attribute"`` form. It is resolved with the same machinery
  Python uses for packaging entry points.
* External packages that publish agents under the ``conveyor_ai.agents``
  entry-point group. ``iter_published_definitions`` lists them so the
  registry can load them at start-up.

The referenced attribute may be an agent instance, an agent class, or a
zero-argument factory returning an agent.
"""

from __future__ import annotations

import inspect
import logging
from importlib import metadata
from typing import Any, Iterable, List, Sequence

from ..errors import AgentRegistrationError
from ..schemas.domain import AgentDefinition
from .base import Agent

_LOGGER = logging.getLogger(__name__)

AGENT_ENTRY_POINT_GROUP = "conveyor_ai.agents"


def _iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    """Return installed entry points for ``group``.

    Also used as an indirection point in tests so discovery can be controlled
    without relying on the real environment.
    """
    return metadata.entry_points().select(group=group)


def _instantiate(obj: Any) -> Any:
    if isinstance(obj, Agent) and not inspect.isclass(obj):
        return obj
    if callable(obj):
        return obj()
    return obj


def ensure_entry_point_allowed(definition: AgentDefinition, allowed_prefixes: Sequence[str]) -> None:
    """
    Refuse entry points whose module is outside ``allowed_prefixes``.

    A prefix matches the module itself or any submodule (``"pkg."`` and
    ``"pkg"`` both cover ``pkg.agents``). ``"*"`` allows any module.

    Raises:
        AgentRegistrationError: If the module is not allowed. Nothing is
            imported in that case.
    """
    if not definition.entry_point or "*" in allowed_prefixes:
        return
    module = definition.entry_point.partition(":")[0].strip()
    for prefix in allowed_prefixes:
        base = prefix.rstrip(".")
        if base and (module == base or module.startswith(base + ".")):
            return
    raise AgentRegistrationError(definition.name, f"module '{module}' is not in the agent module allow-list")


def load_agent(definition: AgentDefinition) -> Agent:
    """
    Load the agent referenced by ``definition.entry_point``.

    Args:
        definition: The agent definition. ``entry_point`` must be set.

    Returns:
        The constructed agent instance.

    Raises:
        AgentRegistrationError: If the reference cannot be imported, does not
            produce an object satisfying the ``Agent`` protocol, or produces an
            agent whose ``name`` differs from the definition's name.
    """
    if not definition.entry_point:
        raise AgentRegistrationError(definition.name, "definition has no entry_point")

    ep = metadata.EntryPoint(name=definition.name, value=definition.entry_point, group=AGENT_ENTRY_POINT_GROUP)
    try:
        target = ep.load()
    except (ImportError, AttributeError, ValueError) as e:
        raise AgentRegistrationError(definition.name, f"cannot import '{definition.entry_point}': {e}") from e

    try:
        agent = _instantiate(target)
    except Exception as e:
        raise AgentRegistrationError(definition.name, f"construction failed: {e}") from e

    if not isinstance(agent, Agent):
        raise AgentRegistrationError(definition.name, f"'{definition.entry_point}' is not an agent")
    if agent.name != definition.name:
        raise AgentRegistrationError(
            definition.name, f"loaded agent is named '{agent.name}', expected '{definition.name}'"
        )
    _LOGGER.debug("Loaded agent '%s' from %s", definition.name, definition.entry_point)
    return agent


def iter_published_definitions(group: str = AGENT_ENTRY_POINT_GROUP) -> List[AgentDefinition]:
    """
    List agent definitions published by installed distributions.

    Each entry point's name becomes the agent name; its value becomes the
    definition's ``entry_point``.
    """
    out: List[AgentDefinition] = []
    for ep in _iter_entry_points(group):
        out.append(AgentDefinition(name=ep.name, entry_point=ep.value))
    return out
