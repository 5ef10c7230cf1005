"""
Action Selector Module
======================

Epsilon-greedy action selection over masked, cooldown-gated actions.

Per decision (only when the agent is not busy):
    1. Valid set = mask bit set AND (ungated OR cooldown <= 0)
    2. Explore with probability epsilon (uniform over the valid set),
       otherwise exploit (argmax Q over the valid set, ties → lowest index)
    3. Record the transition, reset the reward accumulator, decay epsilon,
       and mark the agent busy for the decision duration

All agents read the same online parameters; each agent owns its epsilon,
timers and reward accumulator.

Author: Enemy DRL Team
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from environment.action_space import (
    ActionHandler,
    ActionMask,
    Cooldowns,
    EnemyAction,
    NUM_ACTIONS,
)
from network.parameters import QNetwork
from .replay_buffer import ReplayBuffer, Transition

logger = logging.getLogger(__name__)


@dataclass
class EnemyAgent:
    """
    Per-agent learning state.

    Attributes:
        agent_id: Host identifier
        epsilon: Current exploration rate
        busy: True while the previous decision is still executing
        action_timer: Remaining busy time
        previous_observation: Observation at the previous decision
        accumulated_reward: Reward earned since the previous decision
        chosen_action: Last chosen action (for movement/animation)
        number_of_steps: Decisions taken, capped at max_step_count
        cooldowns: Timers of the gated actions
    """

    agent_id: object
    epsilon: float = 1.0
    busy: bool = False
    action_timer: float = 0.0
    previous_observation: Optional[np.ndarray] = None
    accumulated_reward: float = 0.0
    chosen_action: Optional[int] = None
    number_of_steps: int = 0
    cooldowns: Cooldowns = field(default_factory=Cooldowns)

    def add_reward(self, reward: float):
        self.accumulated_reward += reward

    def advance(self, dt: float):
        """Count timers down; the agent is free once its action timer expires."""
        self.cooldowns.tick(dt)
        if self.busy:
            self.action_timer -= dt
            if self.action_timer <= 0:
                self.action_timer = 0.0
                self.busy = False


@dataclass
class AgentDecision:
    """Result handed back to the host for one agent and tick."""

    busy: bool
    action: Optional[int]
    epsilon: float


class ActionSelector:
    """
    Epsilon-greedy policy shared by all enemy agents.

    Attributes:
        network: Shared Q-network (read-only here)
        buffer: Replay buffer receiving one transition per decision
        epsilon_decay: Linear decay per decision
        epsilon_min: Decay floor
        decision_duration: Busy time after each decision
        empty_mask_fallback: "uniform" or "stay"

    Example:
        >>> selector = ActionSelector(network, buffer, seed=123)
        >>> decision = selector.decide(agent, obs, ActionMask(), Cooldowns())
    """

    def __init__(
        self,
        network: QNetwork,
        buffer: ReplayBuffer,
        epsilon_decay: float = 0.001,
        epsilon_min: float = 0.01,
        decision_duration: float = 1.0,
        max_step_count: int = 100,
        empty_mask_fallback: str = "uniform",
        seed: Optional[int] = None
    ):
        """
        Initialize action selector.

        Args:
            network: Shared Q-network
            buffer: Shared replay buffer
            epsilon_decay: Epsilon decrement per decision
            epsilon_min: Epsilon floor
            decision_duration: Busy time after a decision
            max_step_count: Cap on the per-agent decision counter
            empty_mask_fallback: Policy when no action is valid
            seed: Random seed
        """
        if empty_mask_fallback not in ("uniform", "stay"):
            raise ValueError(f"Unknown empty_mask_fallback {empty_mask_fallback!r}")

        self.network = network
        self.buffer = buffer
        self.epsilon_decay = epsilon_decay
        self.epsilon_min = epsilon_min
        self.decision_duration = decision_duration
        self.max_step_count = max_step_count
        self.empty_mask_fallback = empty_mask_fallback

        self.handler = ActionHandler()
        self.rng = np.random.default_rng(seed)

        # Statistics
        self.total_decisions = 0
        self.fallback_count = 0

    def select_action(
        self,
        epsilon: float,
        q_values: np.ndarray,
        mask: ActionMask,
        cooldowns: Cooldowns
    ) -> Tuple[int, float]:
        """
        Pick an action for the given Q-values.

        Args:
            epsilon: Exploration rate
            q_values: Online Q-values, shape (9,)
            mask: Availability flags
            cooldowns: Cooldown timers

        Returns:
            Tuple of (action, Q-value of that action)
        """
        valid = self.handler.valid_actions(mask, cooldowns)

        if self.rng.random() < epsilon or not valid:
            if valid:
                action = valid[int(self.rng.integers(0, len(valid)))]
            else:
                action = self._fallback_action()
        else:
            action = greedy_action(q_values, valid)

        return action, float(q_values[action])

    def _fallback_action(self) -> int:
        self.fallback_count += 1
        if self.empty_mask_fallback == "stay":
            action = int(EnemyAction.STAY)
        else:
            action = int(self.rng.integers(0, NUM_ACTIONS))
        logger.debug("No valid action, falling back to %d", action)
        return action

    def decay_epsilon(self, epsilon: float) -> float:
        return max(epsilon - self.epsilon_decay, self.epsilon_min)

    def decide(
        self,
        agent: EnemyAgent,
        observation: np.ndarray,
        mask: ActionMask,
        cooldowns: Optional[Cooldowns] = None,
        q_values: Optional[np.ndarray] = None
    ) -> AgentDecision:
        """
        Run one decision for an agent, if it is free.

        Args:
            agent: Agent state (mutated)
            observation: Current observation
            mask: Availability flags
            cooldowns: Cooldown timers (agent's own timers if None)
            q_values: Precomputed online Q-values for observation (evaluated
                here if None)

        Returns:
            AgentDecision; action is None when the agent was busy
        """
        if agent.busy:
            return AgentDecision(busy=True, action=None, epsilon=agent.epsilon)

        if cooldowns is None:
            cooldowns = agent.cooldowns

        observation = np.array(observation, dtype=np.float64)
        if q_values is None:
            q_values = self.network.q_values(observation)
        action, _ = self.select_action(agent.epsilon, q_values, mask, cooldowns)

        # First decision has no predecessor: the state is its own successor
        previous = agent.previous_observation
        if previous is None:
            previous = observation

        self.buffer.add(Transition(
            state=previous,
            action=action,
            reward=agent.accumulated_reward,
            next_state=observation,
            done=False
        ))

        agent.accumulated_reward = 0.0
        agent.previous_observation = observation
        agent.chosen_action = action
        agent.number_of_steps = min(agent.number_of_steps + 1, self.max_step_count)
        agent.epsilon = self.decay_epsilon(agent.epsilon)
        agent.busy = True
        agent.action_timer = self.decision_duration

        self.total_decisions += 1

        return AgentDecision(busy=True, action=action, epsilon=agent.epsilon)


def greedy_action(q_values: np.ndarray, valid_actions: Sequence[int]) -> int:
    """
    Argmax of Q restricted to valid actions, ties broken by lowest index.

    Args:
        q_values: Q-values, shape (9,)
        valid_actions: Non-empty ascending list of action indices
    """
    best_action = valid_actions[0]
    best_value = q_values[best_action]
    for action in valid_actions[1:]:
        if q_values[action] > best_value:
            best_value = q_values[action]
            best_action = action
    return int(best_action)
