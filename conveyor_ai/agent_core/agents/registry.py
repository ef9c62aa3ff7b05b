from __future__ import annotations

import json
import logging
import threading
from typing import Dict, List, Mapping, Optional, Tuple

from ..errors import AgentRegistrationError
from ..schemas.domain import AgentDefinition
from .base import Agent
from .loader import AGENT_ENTRY_POINT_GROUP, iter_published_definitions, load_agent

logger = logging.getLogger(__name__)

_Entry = Tuple[AgentDefinition, Agent]


class AgentRegistry:
    """
    Registry of live agent instances keyed by agent name.

    Both the static orchestrator and the plan executor resolve agents through
    this registry. A name maps to at most one agent.

    The backing table is copy-on-write: writers build a new dict under a lock
    and swap it in, readers take whatever table is current without locking.
    Lookups are therefore safe while agents are being registered or removed.
    """

    def __init__(self) -> None:
        """Initialize an empty agent registry."""
        self._entries: Mapping[str, _Entry] = {}
        self._write_lock = threading.Lock()

    def _swap(self, name: str, entry: Optional[_Entry]) -> bool:
        with self._write_lock:
            table: Dict[str, _Entry] = dict(self._entries)
            existed = name in table
            if entry is None:
                table.pop(name, None)
            else:
                table[name] = entry
            self._entries = table
            return existed

    def register(self, definition: AgentDefinition) -> Agent:
        """
        Add or replace the agent registered under ``definition.name``.

        With an ``entry_point`` the agent is loaded from it. Without one the
        already registered instance is re-used and only its definition is
        updated.

        Args:
            definition: The agent definition to register.

        Returns:
            The live agent instance now registered under the name.

        Raises:
            AgentRegistrationError: If the agent cannot be loaded, or there is
                no entry point and nothing is registered under the name yet.
        """
        if definition.entry_point:
            agent = load_agent(definition)
        else:
            current = self._entries.get(definition.name)
            if current is None:
                raise AgentRegistrationError(definition.name, "no entry_point and no existing instance to re-use")
            agent = current[1]
        replaced = self._swap(definition.name, (definition, agent))
        logger.info("%s agent '%s'", "Replaced" if replaced else "Registered", definition.name)
        return agent

    def register_agent(self, agent: Agent) -> None:
        """
        Register an already constructed agent instance.

        Raises:
            AgentRegistrationError: If ``agent`` does not satisfy the agent
                protocol or has an empty name.
        """
        name = getattr(agent, "name", "")
        if not isinstance(agent, Agent):
            raise AgentRegistrationError(str(name or agent), "object does not implement the agent protocol")
        if not name:
            raise AgentRegistrationError(repr(agent), "agent name must not be empty")
        definition = AgentDefinition(name=name, description=agent.description or "")
        replaced = self._swap(name, (definition, agent))
        logger.info("%s agent '%s'", "Replaced" if replaced else "Registered", name)

    def unregister(self, name: str) -> bool:
        """
        Remove the agent registered under ``name``.

        Returns:
            True if an agent was removed, False if the name was unknown.
        """
        removed = self._swap(name, None)
        if removed:
            logger.info("Unregistered agent '%s'", name)
        return removed

    def get(self, name: str) -> Optional[Agent]:
        """Return the agent registered under ``name``, or None."""
        entry = self._entries.get(name)
        return entry[1] if entry is not None else None

    def has(self, name: str) -> bool:
        return name in self._entries

    def names(self) -> List[str]:
        return sorted(self._entries)

    def definitions(self) -> List[AgentDefinition]:
        table = self._entries
        return [table[name][0] for name in sorted(table)]

    def describe_as_json(self) -> str:
        """Agent catalog as JSON (``[{"name", "description"}]``), the form fed to planners."""
        catalog = [{"name": d.name, "description": d.description} for d in self.definitions()]
        return json.dumps(catalog)

    def discover(self, group: str = AGENT_ENTRY_POINT_GROUP) -> List[str]:
        """
        Register every agent published under the entry-point ``group``.

        Returns:
            Names of the agents registered.

        Raises:
            AgentRegistrationError: If a published agent fails to load.
        """
        loaded: List[str] = []
        for definition in iter_published_definitions(group):
            agent = self.register(definition)
            if agent.description and not definition.description:
                self._swap(definition.name, (definition.model_copy(update={"description": agent.description}), agent))
            loaded.append(definition.name)
        return loaded

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
