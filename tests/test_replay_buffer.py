"""
Test Suite for Replay Buffer Module
===================================

Tests for src/agents/replay_buffer.py

Author: Enemy DRL Team
"""

import pytest
import numpy as np
import sys
import os
from dataclasses import FrozenInstanceError

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from agents.replay_buffer import (
    Transition,
    ReplayBuffer,
    verify_replay_buffer,
)


def make_state(distance: float, dim: int = 8) -> np.ndarray:
    state = np.zeros(dim)
    state[0] = distance
    return state


class TestTransition:
    """Tests for Transition records."""

    def test_snapshot_not_aliased(self):
        """Test later mutation of the source array does not leak in."""
        state = make_state(0.3)
        transition = Transition(state, 2, 1.0, state)

        state[0] = 0.99

        assert transition.state[0] == pytest.approx(0.3)
        assert transition.next_state[0] == pytest.approx(0.3)

    def test_read_only(self):
        """Test stored arrays cannot be written."""
        transition = Transition(make_state(0.3), 2, 1.0, make_state(0.4))

        with pytest.raises(ValueError):
            transition.state[0] = 1.0

    def test_frozen(self):
        """Test fields cannot be reassigned."""
        transition = Transition(make_state(0.3), 2, 1.0, make_state(0.4))

        with pytest.raises(FrozenInstanceError):
            transition.action = 5

    def test_field_types(self):
        """Test fields are cast to their canonical types."""
        transition = Transition([0.1, 0.2], np.int64(4), 1, [0.3, 0.4], 0)

        assert isinstance(transition.action, int)
        assert isinstance(transition.reward, float)
        assert transition.done is False
        assert transition.state.dtype == np.float64


class TestReplayBuffer:
    """Tests for ReplayBuffer."""

    def test_append_grows_by_one(self):
        """Test each add increases length by exactly one."""
        buffer = ReplayBuffer()

        for i in range(5):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))
            assert len(buffer) == i + 1

    def test_no_eviction_before_clear(self):
        """Test the buffer grows past any FIFO size until cleared."""
        buffer = ReplayBuffer(high_water_mark=16)

        for _ in range(20):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        assert len(buffer) == 20
        assert buffer.is_full

    def test_is_full_at_high_water_mark(self):
        """Test is_full flips exactly at the high-water mark."""
        buffer = ReplayBuffer(high_water_mark=4)

        for _ in range(3):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))
        assert not buffer.is_full

        buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))
        assert buffer.is_full

    def test_clear(self):
        """Test clear empties the buffer and bumps the generation."""
        buffer = ReplayBuffer()
        for _ in range(10):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        buffer.clear()

        assert len(buffer) == 0
        assert buffer.generation == 1

    def test_invalid_high_water_mark(self):
        """Test non-positive high-water mark raises."""
        with pytest.raises(ValueError):
            ReplayBuffer(high_water_mark=0)

    def test_accepts_inclusive_threshold(self):
        """Test a distance exactly at the threshold is accepted."""
        buffer = ReplayBuffer(proximity_threshold=0.5)

        assert buffer.accepts(Transition(make_state(0.5), 0, 0.0, make_state(0.5)))
        assert not buffer.accepts(Transition(make_state(0.51), 0, 0.0, make_state(0.5)))


class TestSampling:
    """Tests for proximity-filtered minibatch sampling."""

    def test_filtered_batch_is_short(self):
        """Test 40 transitions with 10 near ones yield exactly 10."""
        buffer = ReplayBuffer()
        for i in range(40):
            distance = 0.3 if i < 10 else 0.8
            buffer.push(make_state(distance), i % 9, 0.0, make_state(distance))

        batch = buffer.sample_minibatch(32, np.random.default_rng(0))

        assert len(batch) == 10
        assert all(t.state[0] <= 0.5 for t in batch)

    def test_batch_capped_at_request(self):
        """Test at most batch_size transitions are returned."""
        buffer = ReplayBuffer()
        for _ in range(100):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        batch = buffer.sample_minibatch(32, np.random.default_rng(0))

        assert len(batch) == 32

    def test_batch_capped_at_length(self):
        """Test small buffers return at most len(buffer) transitions."""
        buffer = ReplayBuffer()
        for _ in range(5):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        batch = buffer.sample_minibatch(32, np.random.default_rng(0))

        assert len(batch) == 5

    def test_without_replacement(self):
        """Test no transition appears twice in one minibatch."""
        buffer = ReplayBuffer()
        for i in range(64):
            buffer.push(make_state(0.1), 0, float(i), make_state(0.1))

        batch = buffer.sample_minibatch(32, np.random.default_rng(1))
        rewards = [t.reward for t in batch]

        assert len(set(rewards)) == len(rewards)

    def test_empty_buffer(self):
        """Test sampling an empty buffer gives an empty batch."""
        buffer = ReplayBuffer()

        assert buffer.sample_minibatch(32, np.random.default_rng(0)) == []

    def test_shuffle_is_permutation(self):
        """Test Fisher-Yates output is a permutation of all indices."""
        buffer = ReplayBuffer()
        for _ in range(50):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        perm = buffer.shuffled_indices(np.random.default_rng(3))

        assert sorted(perm.tolist()) == list(range(50))

    def test_shuffle_seeded(self):
        """Test equal seeds give equal permutations."""
        buffer = ReplayBuffer()
        for _ in range(50):
            buffer.push(make_state(0.1), 0, 0.0, make_state(0.1))

        p1 = buffer.shuffled_indices(np.random.default_rng(9))
        p2 = buffer.shuffled_indices(np.random.default_rng(9))

        assert np.array_equal(p1, p2)

    def test_verify_replay_buffer(self):
        """Test module verification routine passes."""
        results = verify_replay_buffer()

        assert all(r["pass"] for r in results.values())
