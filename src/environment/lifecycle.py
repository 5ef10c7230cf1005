"""
Agent Lifecycle Module
======================

Removal bookkeeping for enemy agents.

Each agent moves through ACTIVE → PENDING_REMOVAL → REMOVED. Collaborators
mark agents for removal; once per tick the registry sweeps pending agents
and hands them to the host's deletion callback. Marking or deleting an
agent that is already removed is a no-op.

Author: Enemy DRL Team
"""

import logging
from enum import Enum
from typing import Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)


class Lifecycle(Enum):
    ACTIVE = "active"
    PENDING_REMOVAL = "pending_removal"
    REMOVED = "removed"


class RemovalRegistry:
    """
    Single authority over agent lifecycle states.

    Example:
        >>> registry = RemovalRegistry()
        >>> registry.register("enemy_0")
        >>> registry.mark_for_removal("enemy_0")
        >>> registry.sweep(host.destroy)
        ['enemy_0']
    """

    def __init__(self):
        self._states: Dict[Hashable, Lifecycle] = {}

    def register(self, agent_id: Hashable):
        """Register a new agent as ACTIVE."""
        if agent_id in self._states and self._states[agent_id] != Lifecycle.REMOVED:
            raise ValueError(f"Agent {agent_id!r} is already registered")
        self._states[agent_id] = Lifecycle.ACTIVE

    def state(self, agent_id: Hashable) -> Lifecycle:
        return self._states.get(agent_id, Lifecycle.REMOVED)

    def is_active(self, agent_id: Hashable) -> bool:
        return self.state(agent_id) == Lifecycle.ACTIVE

    def mark_for_removal(self, agent_id: Hashable) -> bool:
        """
        Flag an active agent for removal at the next sweep.

        Returns:
            True if the agent moved to PENDING_REMOVAL
        """
        if self.state(agent_id) != Lifecycle.ACTIVE:
            return False
        self._states[agent_id] = Lifecycle.PENDING_REMOVAL
        return True

    def remove(self, agent_id: Hashable, delete: Callable[[Hashable], None]) -> bool:
        """
        Remove one agent immediately.

        Returns:
            False if the agent was already removed
        """
        if self.state(agent_id) == Lifecycle.REMOVED:
            return False
        delete(agent_id)
        self._states[agent_id] = Lifecycle.REMOVED
        return True

    def pending(self) -> List[Hashable]:
        return [a for a, s in self._states.items() if s == Lifecycle.PENDING_REMOVAL]

    def active(self) -> List[Hashable]:
        return [a for a, s in self._states.items() if s == Lifecycle.ACTIVE]

    def sweep(self, delete: Callable[[Hashable], None]) -> List[Hashable]:
        """
        Hand every pending agent to the deletion callback.

        Args:
            delete: Host deletion mechanism, called once per removed agent

        Returns:
            Agent ids removed by this sweep
        """
        removed = []
        for agent_id in self.pending():
            delete(agent_id)
            self._states[agent_id] = Lifecycle.REMOVED
            removed.append(agent_id)
        if removed:
            logger.debug("Removed %d agent(s): %s", len(removed), removed)
        return removed
