"""Agent Catalog - read-only view over the persisted agent definitions.

The catalog is an immutable snapshot taken at the start of an orchestration
cycle. It feeds the planner and resolves step targets by ID or name.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from nexus.models import Agent, Capability


class AgentCatalog:
    """Immutable snapshot of the available agents."""

    def __init__(self, agents: Iterable[Agent] = ()) -> None:
        self._agents: tuple[Agent, ...] = tuple(agents)

    @classmethod
    def empty(cls) -> AgentCatalog:
        """Return a catalog with no agents."""
        return cls(())

    def resolve(self, reference: str) -> Agent | None:
        """Find the agent whose ID or name equals the reference.

        IDs take precedence over names when both could match.

        Args:
            reference: Agent ID, agent name, or a generic capability placeholder.

        Returns:
            The matching agent, or None for generic execution.
        """
        for agent in self._agents:
            if agent.id == reference:
                return agent
        for agent in self._agents:
            if agent.name == reference:
                return agent
        return None

    def with_capability(self, capability: Capability | str) -> list[Agent]:
        """List the agents that declare a capability."""
        return [agent for agent in self._agents if agent.has_capability(capability)]

    def entries(self) -> list[dict[str, Any]]:
        """Return the catalog in the shape sent to the planner."""
        return [agent.to_catalog_entry() for agent in self._agents]

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, reference: object) -> bool:
        return isinstance(reference, str) and self.resolve(reference) is not None
