"""
Action Space Handler Module
===========================

Discrete action vocabulary for enemy agents, availability masks and
cooldown gating.

Action Space:
    Discrete(9): forward, backward, step_right, step_left,
                 dash, block, heal, jump, stay

The last five actions are gated: they are only selectable while their
cooldown timer is <= 0.

Author: Enemy DRL Team
"""

import numpy as np
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import List, Optional, Sequence

try:
    from gymnasium import spaces
    HAS_GYMNASIUM = True
except ImportError:
    HAS_GYMNASIUM = False


class EnemyAction(IntEnum):
    """Discrete enemy actions, indexed as the network output layer."""
    FORWARD = 0
    BACKWARD = 1
    STEP_RIGHT = 2
    STEP_LEFT = 3
    DASH = 4
    BLOCK = 5
    HEAL = 6
    JUMP = 7
    STAY = 8


NUM_ACTIONS = len(EnemyAction)

GATED_ACTIONS = (
    EnemyAction.DASH,
    EnemyAction.BLOCK,
    EnemyAction.HEAL,
    EnemyAction.JUMP,
    EnemyAction.STAY,
)


@dataclass
class ActionMask:
    """Per-agent availability flags, one per action."""

    can_forward: bool = True
    can_backward: bool = True
    can_step_right: bool = True
    can_step_left: bool = True
    can_dash: bool = True
    can_block: bool = True
    can_heal: bool = True
    can_jump: bool = True
    can_stay: bool = True

    def to_array(self) -> np.ndarray:
        """Boolean array of shape (9,), ordered as EnemyAction."""
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=bool)

    @classmethod
    def from_array(cls, flags: Sequence[bool]) -> "ActionMask":
        flags = list(flags)
        if len(flags) != NUM_ACTIONS:
            raise ValueError(f"Expected {NUM_ACTIONS} flags, got {len(flags)}")
        return cls(*(bool(f) for f in flags))

    @classmethod
    def none(cls) -> "ActionMask":
        return cls.from_array([False] * NUM_ACTIONS)


@dataclass
class Cooldowns:
    """Per-agent cooldown timers for the gated actions."""

    dash: float = 0.0
    block: float = 0.0
    heal: float = 0.0
    jump: float = 0.0
    stay: float = 0.0

    def timer_for(self, action: int) -> Optional[float]:
        """Timer of a gated action, None for ungated actions."""
        action = EnemyAction(action)
        if action not in GATED_ACTIONS:
            return None
        return getattr(self, action.name.lower())

    def start(self, action: int, duration: float):
        """Set the cooldown of a gated action."""
        action = EnemyAction(action)
        if action in GATED_ACTIONS:
            setattr(self, action.name.lower(), duration)

    def tick(self, dt: float):
        """Count every timer down by dt."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) - dt)

    def to_array(self) -> np.ndarray:
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=np.float64)


class ActionHandler:
    """
    Evaluates which actions an agent may take this decision.

    Example:
        >>> handler = ActionHandler()
        >>> handler.valid_actions(ActionMask(), Cooldowns(dash=0.5))
        [0, 1, 2, 3, 5, 6, 7, 8]
    """

    ACTION_NAMES = {a.value: a.name.lower() for a in EnemyAction}

    def __init__(self, num_actions: int = NUM_ACTIONS):
        self.num_actions = num_actions

    def is_action_possible(
        self,
        mask: ActionMask,
        cooldowns: Cooldowns,
        action: int
    ) -> bool:
        """
        Mask bit set and, for gated actions, cooldown expired.

        Args:
            mask: Availability flags
            cooldowns: Cooldown timers
            action: Action index in [0, 8]
        """
        if not 0 <= action < self.num_actions:
            return False
        if not mask.to_array()[action]:
            return False
        timer = cooldowns.timer_for(action)
        return timer is None or timer <= 0

    def valid_actions(self, mask: ActionMask, cooldowns: Cooldowns) -> List[int]:
        """Selectable action indices in ascending order."""
        flags = mask.to_array()
        timers = cooldowns.to_array()
        valid = []
        for action in range(self.num_actions):
            if not flags[action]:
                continue
            if action >= EnemyAction.DASH and timers[action - EnemyAction.DASH] > 0:
                continue
            valid.append(action)
        return valid

    def get_action_space(self) -> "spaces.Discrete":
        """Gymnasium action space for a single agent."""
        if not HAS_GYMNASIUM:
            raise ImportError("gymnasium required for action space")
        return spaces.Discrete(self.num_actions)

    def get_observation_space(
        self,
        input_size: int,
        low: float = -np.inf,
        high: float = np.inf
    ) -> "spaces.Box":
        """Gymnasium observation space for a single agent."""
        if not HAS_GYMNASIUM:
            raise ImportError("gymnasium required for observation space")
        return spaces.Box(low=low, high=high, shape=(input_size,), dtype=np.float64)

    def get_action_name(self, action: int) -> str:
        return self.ACTION_NAMES.get(int(action), "unknown")
