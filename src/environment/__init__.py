"""
Environment Module
==================

Host-facing vocabulary for enemy agents.
    - action_space: Nine discrete actions, availability masks, cooldowns
    - observation: Normalized observation builder
    - lifecycle: ACTIVE -> PENDING_REMOVAL -> REMOVED bookkeeping
    - arena: Reference duel arena used by the CLI and smoke tests
"""

from .action_space import (
    EnemyAction,
    ActionMask,
    Cooldowns,
    ActionHandler,
    NUM_ACTIONS,
    GATED_ACTIONS,
)
from .observation import ObservationBuilder, PLAYER_DISTANCE_INDEX
from .lifecycle import Lifecycle, RemovalRegistry
from .arena import DuelArena, ArenaEnemy

__all__ = [
    "EnemyAction",
    "ActionMask",
    "Cooldowns",
    "ActionHandler",
    "NUM_ACTIONS",
    "GATED_ACTIONS",
    "ObservationBuilder",
    "PLAYER_DISTANCE_INDEX",
    "Lifecycle",
    "RemovalRegistry",
    "DuelArena",
    "ArenaEnemy",
]
