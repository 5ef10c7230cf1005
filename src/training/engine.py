"""
Engine Module
=============

Per-tick orchestration of the enemy learning core.

Tick phases, strictly ordered:
1. SELECTION: the observations of every active agent that is not busy
   go through the shared online network in one batched evaluation; each
   agent picks an action from its row and one transition per decision is
   appended to the replay buffer. No parameter writes happen here.
2. TRAINING: the trainer advances its step counter and may update the
   online parameters, sync the target and clear the buffer.
3. REMOVAL: agents marked for removal are swept and handed to the host.

The engine owns the shared QNetwork explicitly and tears it down in close().

Author: Enemy DRL Team
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, List, Mapping, Optional

from agents.action_selector import ActionSelector, AgentDecision, EnemyAgent
from agents.replay_buffer import ReplayBuffer
from environment.action_space import ActionMask, Cooldowns
from environment.lifecycle import RemovalRegistry
from network.parameters import NetworkParameters, QNetwork

from .config import DrlConfig
from .metrics import MetricsLogger
from .trainer import Trainer, TrainingPassResult

logger = logging.getLogger(__name__)


@dataclass
class AgentTickInput:
    """
    What the host supplies for one agent on one tick.

    Attributes:
        observation: Current observation vector
        mask: Availability flags
        cooldowns: Cooldown timers (agent's own timers if None)
        reward: Reward earned since the previous tick
        busy: Overrides the agent's busy flag when not None
    """

    observation: np.ndarray
    mask: ActionMask = field(default_factory=ActionMask)
    cooldowns: Optional[Cooldowns] = None
    reward: float = 0.0
    busy: Optional[bool] = None


class DrlEngine:
    """
    Learning core consumed by a per-tick host loop.

    Attributes:
        config: Engine configuration
        network: Shared online/target Q-network
        buffer: Shared replay buffer
        selector: Epsilon-greedy action selector
        trainer: Periodic Q-learning trainer
        registry: Agent lifecycle authority
        agents: Per-agent learning state

    Example:
        >>> with DrlEngine(get_default_config()) as engine:
        ...     engine.add_agent("enemy_0")
        ...     decisions = engine.tick({"enemy_0": AgentTickInput(obs)})
        ...     engine.advance(dt=0.1)
    """

    def __init__(
        self,
        config: DrlConfig = None,
        parameters: Optional[NetworkParameters] = None,
        metrics: Optional[MetricsLogger] = None,
        on_remove: Optional[Callable[[Hashable], None]] = None
    ):
        """
        Initialize engine.

        Args:
            config: Engine configuration (uses defaults if None)
            parameters: Explicit initial online weights (seeded random if None)
            metrics: Optional metrics logger for the trainer
            on_remove: Host deletion callback for swept agents

        Raises:
            ValueError: On invalid configuration or parameter shapes
        """
        self.config = config or DrlConfig()
        self.config.validate()

        net_cfg = self.config.network
        if parameters is None:
            parameters = NetworkParameters.random(
                net_cfg.input_size,
                net_cfg.hidden_size,
                net_cfg.output_size,
                scale=net_cfg.init_scale,
                seed=self.config.seed
            )
        expected = (net_cfg.input_size, net_cfg.hidden_size, net_cfg.output_size)
        if parameters.shape != expected:
            raise ValueError(
                f"Initial parameters have shape {parameters.shape}, "
                f"config expects {expected}"
            )

        self.network = QNetwork(parameters, backend=net_cfg.backend)

        rep_cfg = self.config.replay
        self.buffer = ReplayBuffer(
            high_water_mark=rep_cfg.high_water_mark,
            proximity_threshold=rep_cfg.proximity_threshold,
            distance_index=rep_cfg.distance_feature_index
        )

        exp_cfg = self.config.exploration
        self.selector = ActionSelector(
            self.network,
            self.buffer,
            epsilon_decay=exp_cfg.epsilon_decay,
            epsilon_min=exp_cfg.epsilon_min,
            decision_duration=exp_cfg.decision_duration,
            max_step_count=exp_cfg.max_step_count,
            empty_mask_fallback=exp_cfg.empty_mask_fallback,
            seed=self.config.seed
        )

        self.trainer = Trainer(
            self.network,
            self.buffer,
            self.config,
            metrics=metrics,
            seed=self.config.seed
        )

        self.metrics = metrics
        self.registry = RemovalRegistry()
        self.agents: Dict[Hashable, EnemyAgent] = {}
        self.on_remove = on_remove

        self.tick_count = 0
        self.last_training_result: Optional[TrainingPassResult] = None

    # =========================================================================
    # AGENTS
    # =========================================================================

    def add_agent(self, agent_id: Hashable, epsilon: Optional[float] = None) -> EnemyAgent:
        """
        Register a new agent with fresh epsilon and timers.

        Args:
            agent_id: Host identifier
            epsilon: Initial epsilon (config initial_epsilon if None)

        Raises:
            ValueError: If epsilon lies outside [epsilon_min, 1] or the id is live
        """
        exp_cfg = self.config.exploration
        if epsilon is None:
            epsilon = exp_cfg.initial_epsilon
        if not exp_cfg.epsilon_min <= epsilon <= 1.0:
            raise ValueError(
                f"epsilon must be in [{exp_cfg.epsilon_min}, 1], got {epsilon}"
            )
        self.registry.register(agent_id)
        agent = EnemyAgent(agent_id=agent_id, epsilon=epsilon)
        self.agents[agent_id] = agent
        return agent

    def mark_for_removal(self, agent_id: Hashable) -> bool:
        """Flag an agent; it is removed at the end of the next tick."""
        return self.registry.mark_for_removal(agent_id)

    def remove_agent(self, agent_id: Hashable) -> bool:
        """
        Remove an agent immediately, outside the tick sweep.

        Returns:
            True if the agent was active or pending and is now removed
        """
        return self.registry.remove(agent_id, self._delete)

    def _delete(self, agent_id: Hashable):
        self.agents.pop(agent_id, None)
        if self.on_remove is not None:
            self.on_remove(agent_id)

    # =========================================================================
    # TICK
    # =========================================================================

    def tick(self, inputs: Mapping[Hashable, AgentTickInput]) -> Dict[Hashable, AgentDecision]:
        """
        Run one full tick: selection, training, removal.

        Args:
            inputs: Per-agent tick inputs; unknown or inactive agents are ignored

        Returns:
            Per-agent decisions for the agents that were processed
        """
        decisions: Dict[Hashable, AgentDecision] = {}

        # Selection phase: one batched Q evaluation for every free agent
        ready = []
        for agent_id, tick_input in inputs.items():
            if not self.registry.is_active(agent_id):
                continue
            agent = self.agents[agent_id]
            agent.add_reward(tick_input.reward)
            if tick_input.busy is not None:
                agent.busy = tick_input.busy
            ready.append((agent_id, agent, tick_input))

        free = [tick_input.observation for _, agent, tick_input in ready if not agent.busy]
        q_rows = iter(self.network.batch_q_values(np.stack(free)) if free else ())

        for agent_id, agent, tick_input in ready:
            q_values = None if agent.busy else next(q_rows)
            decisions[agent_id] = self.selector.decide(
                agent,
                tick_input.observation,
                tick_input.mask,
                tick_input.cooldowns,
                q_values=q_values
            )

        # Training phase
        result = self.trainer.step()
        if result is not None:
            self.last_training_result = result
            if self.metrics is not None and self.trainer.total_passes % self.config.log_interval == 0:
                self.metrics.print_stats(prefix=f"[Tick {self.trainer.total_ticks}] ")

        # Removal sweep
        self.registry.sweep(self._delete)

        self.tick_count += 1
        return decisions

    def advance(self, dt: float):
        """Count down busy and cooldown timers of every agent."""
        for agent in self.agents.values():
            agent.advance(dt)

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    @property
    def loss_metric(self) -> float:
        """Loss of the latest training pass, rounded to 2 decimals."""
        return self.trainer.loss_metric

    def active_agents(self) -> List[Hashable]:
        return self.registry.active()

    def stats(self) -> Dict[str, float]:
        stats = self.trainer.get_stats()
        stats.update({
            "tick_count": self.tick_count,
            "active_agents": len(self.registry.active()),
            "total_decisions": self.selector.total_decisions,
            "fallback_count": self.selector.fallback_count,
            "mean_epsilon": float(np.mean([a.epsilon for a in self.agents.values()]))
            if self.agents else 0.0
        })
        return stats

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def close(self):
        """Tear down the shared network and close the metrics logger."""
        self.network.close()
        if self.metrics is not None:
            self.metrics.close()
        logger.debug("Engine closed after %d ticks", self.tick_count)

    def __enter__(self) -> "DrlEngine":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
