"""
Test Suite for Action Selector Module
=====================================

Tests for src/agents/action_selector.py

Author: Enemy DRL Team
"""

import pytest
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from agents.action_selector import (
    ActionSelector,
    AgentDecision,
    EnemyAgent,
    greedy_action,
)
from agents.replay_buffer import ReplayBuffer
from environment.action_space import ActionMask, Cooldowns, EnemyAction
from network.parameters import NetworkParameters, QNetwork


def make_selector(seed=0, **kwargs):
    network = QNetwork(NetworkParameters.random(8, 16, seed=seed))
    buffer = ReplayBuffer()
    return ActionSelector(network, buffer, seed=seed, **kwargs), network, buffer


def make_observation(rng, distance=0.3):
    obs = rng.random(8)
    obs[0] = distance
    return obs


class TestGreedyAction:
    """Tests for greedy_action."""

    def test_argmax_over_valid(self):
        """Test argmax is restricted to the valid set."""
        q = np.array([9.0, 1.0, 2.0, 3.0, 0.0, 0.0, 0.0, 0.0, 0.0])

        assert greedy_action(q, [1, 2, 3]) == 3

    def test_ties_lowest_index(self):
        """Test ties resolve to the lowest valid index."""
        q = np.array([0.0, 5.0, 5.0, 1.0, 5.0, 0.0, 0.0, 0.0, 0.0])

        assert greedy_action(q, [1, 2, 4]) == 1
        assert greedy_action(q, [2, 4]) == 2


class TestSelectAction:
    """Tests for ActionSelector.select_action."""

    def test_greedy_when_epsilon_zero(self):
        """Test epsilon 0 always exploits."""
        selector, _, _ = make_selector()
        q = np.arange(9, dtype=np.float64)

        for _ in range(20):
            action, value = selector.select_action(0.0, q, ActionMask(), Cooldowns())
            assert action == 8
            assert value == 8.0

    def test_greedy_respects_mask(self):
        """Test exploitation never picks a masked action."""
        selector, _, _ = make_selector()
        q = np.arange(9, dtype=np.float64)
        mask = ActionMask(can_stay=False, can_jump=False)

        action, _ = selector.select_action(0.0, q, mask, Cooldowns())

        assert action == EnemyAction.HEAL

    def test_greedy_respects_cooldown(self):
        """Test exploitation never picks an action on cooldown."""
        selector, _, _ = make_selector()
        q = np.arange(9, dtype=np.float64)

        action, _ = selector.select_action(0.0, q, ActionMask(), Cooldowns(stay=0.3))

        assert action == EnemyAction.JUMP

    def test_explore_stays_in_valid_set(self):
        """Test random actions come from the valid set only."""
        selector, _, _ = make_selector(seed=4)
        q = np.zeros(9)
        mask = ActionMask(can_forward=False, can_backward=False, can_heal=False)
        cooldowns = Cooldowns(dash=1.0, block=1.0)
        allowed = {2, 3, 7, 8}

        seen = set()
        for _ in range(200):
            action, _ = selector.select_action(1.0, q, mask, cooldowns)
            seen.add(action)

        assert seen <= allowed
        assert seen == allowed

    def test_empty_mask_uniform_fallback(self):
        """Test uniform fallback draws from all nine actions."""
        selector, _, _ = make_selector(seed=5, empty_mask_fallback="uniform")
        q = np.zeros(9)

        seen = set()
        for _ in range(300):
            action, _ = selector.select_action(0.0, q, ActionMask.none(), Cooldowns())
            seen.add(action)

        assert seen == set(range(9))
        assert selector.fallback_count == 300

    def test_empty_mask_stay_fallback(self):
        """Test stay fallback always picks STAY."""
        selector, _, _ = make_selector(empty_mask_fallback="stay")
        q = np.zeros(9)

        for _ in range(10):
            action, _ = selector.select_action(1.0, q, ActionMask.none(), Cooldowns())
            assert action == EnemyAction.STAY

    def test_unknown_fallback_rejected(self):
        """Test unknown fallback policy raises."""
        with pytest.raises(ValueError):
            make_selector(empty_mask_fallback="random")


class TestDecide:
    """Tests for per-agent decisions."""

    def test_decision_appends_one_transition(self):
        """Test each decision adds exactly one transition."""
        selector, _, buffer = make_selector()
        agent = EnemyAgent("enemy_0")
        rng = np.random.default_rng(0)

        decision = selector.decide(agent, make_observation(rng), ActionMask())

        assert isinstance(decision, AgentDecision)
        assert decision.busy
        assert 0 <= decision.action < 9
        assert len(buffer) == 1

    def test_precomputed_q_values_used(self):
        """Test Q-values handed in by the caller drive the greedy choice."""
        selector, _, buffer = make_selector()
        agent = EnemyAgent("enemy_0", epsilon=0.0)
        q = np.zeros(9)
        q[EnemyAction.STEP_LEFT] = 5.0

        decision = selector.decide(agent, np.zeros(8), ActionMask(), q_values=q)

        assert decision.action == EnemyAction.STEP_LEFT
        assert buffer[0].action == EnemyAction.STEP_LEFT

    def test_busy_agent_is_noop(self):
        """Test busy agents neither decide nor append."""
        selector, _, buffer = make_selector()
        agent = EnemyAgent("enemy_0", busy=True, action_timer=0.5)

        decision = selector.decide(agent, np.zeros(8), ActionMask())

        assert decision.action is None
        assert decision.busy
        assert len(buffer) == 0
        assert agent.epsilon == 1.0

    def test_busy_for_decision_duration(self):
        """Test the agent stays busy until its timer expires."""
        selector, _, buffer = make_selector(decision_duration=1.0)
        agent = EnemyAgent("enemy_0")
        rng = np.random.default_rng(0)

        selector.decide(agent, make_observation(rng), ActionMask())
        agent.advance(0.5)
        assert agent.busy
        assert selector.decide(agent, make_observation(rng), ActionMask()).action is None

        agent.advance(0.5)
        assert not agent.busy
        assert selector.decide(agent, make_observation(rng), ActionMask()).action is not None
        assert len(buffer) == 2

    def test_transition_chaining(self):
        """Test state is the previous observation and reward is the accumulator."""
        selector, _, buffer = make_selector()
        agent = EnemyAgent("enemy_0")
        rng = np.random.default_rng(0)
        obs1 = make_observation(rng)
        obs2 = make_observation(rng)

        selector.decide(agent, obs1, ActionMask())
        first_action = agent.chosen_action
        agent.add_reward(0.5)
        agent.add_reward(0.25)
        agent.advance(1.0)
        selector.decide(agent, obs2, ActionMask())

        first, second = buffer[0], buffer[1]
        assert np.array_equal(first.state, obs1)
        assert np.array_equal(first.next_state, obs1)
        assert first.reward == 0.0
        assert np.array_equal(second.state, obs1)
        assert np.array_equal(second.next_state, obs2)
        assert second.reward == pytest.approx(0.75)
        assert second.done is False
        assert first.action == first_action
        assert agent.accumulated_reward == 0.0

    def test_epsilon_decay(self):
        """Test epsilon after N decisions is max(1 - 0.001 N, 0.01)."""
        selector, _, _ = make_selector()
        agent = EnemyAgent("enemy_0", epsilon=1.0)
        rng = np.random.default_rng(0)

        for n in range(1, 1101):
            selector.decide(agent, make_observation(rng), ActionMask())
            agent.advance(1.0)
            if n in (1, 10, 500, 989, 990, 1100):
                assert agent.epsilon == pytest.approx(max(1.0 - 0.001 * n, 0.01), abs=1e-9)

        assert agent.epsilon >= 0.01

    def test_buffer_grows_by_decisions(self):
        """Test K decisions across agents give K new transitions."""
        selector, _, buffer = make_selector()
        agents = [EnemyAgent(f"enemy_{i}") for i in range(3)]
        rng = np.random.default_rng(0)

        k = 0
        for _ in range(5):
            for agent in agents:
                if selector.decide(agent, make_observation(rng), ActionMask()).action is not None:
                    k += 1
            for agent in agents:
                agent.advance(0.5)

        assert len(buffer) == k
        assert selector.total_decisions == k

    def test_step_count_capped(self):
        """Test the per-agent decision counter saturates."""
        selector, _, _ = make_selector(max_step_count=3)
        agent = EnemyAgent("enemy_0")

        for _ in range(5):
            selector.decide(agent, np.zeros(8), ActionMask())
            agent.advance(1.0)

        assert agent.number_of_steps == 3

    def test_uses_agent_cooldowns_by_default(self):
        """Test the agent's own cooldown timers gate actions."""
        selector, _, _ = make_selector()
        agent = EnemyAgent("enemy_0", epsilon=1.0)
        agent.cooldowns = Cooldowns(dash=100.0, block=100.0, heal=100.0, jump=100.0, stay=100.0)

        for _ in range(30):
            decision = selector.decide(agent, np.zeros(8), ActionMask())
            agent.advance(1.0)
            assert decision.action < EnemyAction.DASH

    def test_does_not_write_parameters(self):
        """Test selection leaves online and target untouched."""
        selector, network, _ = make_selector()
        before = network.online.copy()
        agent = EnemyAgent("enemy_0")

        for _ in range(10):
            selector.decide(agent, np.zeros(8), ActionMask())
            agent.advance(1.0)

        assert network.online.equals(before)
        assert network.target.equals(before)
