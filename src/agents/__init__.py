"""
Agents Module
=============

Acting side of the learning core.
    - replay_buffer: Append-only transition store with proximity-filtered sampling
    - action_selector: Per-agent state and masked epsilon-greedy selection
"""

from .replay_buffer import (
    Transition,
    ReplayBuffer,
    verify_replay_buffer,
)
from .action_selector import (
    EnemyAgent,
    AgentDecision,
    ActionSelector,
    greedy_action,
)

__all__ = [
    # Buffer
    "Transition",
    "ReplayBuffer",
    "verify_replay_buffer",
    # Selection
    "EnemyAgent",
    "AgentDecision",
    "ActionSelector",
    "greedy_action",
]
