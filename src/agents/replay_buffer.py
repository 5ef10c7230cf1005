"""
Replay Buffer Module
====================

Experience buffer shared by every enemy agent.

Stores:
    - States (observation at the previous decision)
    - Actions
    - Rewards accumulated between decisions
    - Next states (observation at the current decision)
    - Dones

The buffer grows append-only until it reaches its high-water mark, at
which point the trainer clears it entirely (no FIFO eviction).

Sampling:
    Fisher–Yates shuffle of all indices, then a scan that keeps only
    transitions whose state lies close to the player, stopping once the
    minibatch is full or the shuffled order is exhausted.

Author: Enemy DRL Team
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from environment.observation import PLAYER_DISTANCE_INDEX


@dataclass(frozen=True)
class Transition:
    """
    Immutable experience record.

    Observations are copied on construction and the copies are made
    read-only, so later mutation of the caller's arrays never leaks in.
    """

    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    done: bool = False

    def __post_init__(self):
        state = np.array(self.state, dtype=np.float64)
        next_state = np.array(self.next_state, dtype=np.float64)
        state.setflags(write=False)
        next_state.setflags(write=False)
        object.__setattr__(self, "state", state)
        object.__setattr__(self, "next_state", next_state)
        object.__setattr__(self, "action", int(self.action))
        object.__setattr__(self, "reward", float(self.reward))
        object.__setattr__(self, "done", bool(self.done))


class ReplayBuffer:
    """
    Append-only replay buffer with a capacity-triggered clear.

    Attributes:
        high_water_mark: Length at which the buffer is due for clearing
        proximity_threshold: Max distance feature accepted by the sampler
        distance_index: Observation index of the distance feature

    Example:
        >>> buffer = ReplayBuffer(high_water_mark=512)
        >>> buffer.add(Transition(obs, 3, 0.5, next_obs))
        >>> batch = buffer.sample_minibatch(32, rng)
    """

    def __init__(
        self,
        high_water_mark: int = 512,
        proximity_threshold: float = 0.5,
        distance_index: int = PLAYER_DISTANCE_INDEX
    ):
        """
        Initialize replay buffer.

        Args:
            high_water_mark: Length that triggers a clear + target sync
            proximity_threshold: Sampling predicate threshold (inclusive)
            distance_index: Index of the distance feature in a state
        """
        if high_water_mark <= 0:
            raise ValueError(f"high_water_mark must be positive, got {high_water_mark}")

        self.high_water_mark = high_water_mark
        self.proximity_threshold = proximity_threshold
        self.distance_index = distance_index

        self._transitions: List[Transition] = []

        # Number of clears so far
        self.generation = 0

    def add(self, transition: Transition):
        """Append a transition."""
        self._transitions.append(transition)

    def push(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        done: bool = False
    ) -> Transition:
        """Build a Transition snapshot and append it."""
        transition = Transition(state, action, reward, next_state, done)
        self.add(transition)
        return transition

    def clear(self):
        """Discard every stored transition."""
        self._transitions.clear()
        self.generation += 1

    @property
    def is_full(self) -> bool:
        """True once the high-water mark is reached."""
        return len(self._transitions) >= self.high_water_mark

    def accepts(self, transition: Transition) -> bool:
        """Sampling predicate: state is close enough to the player."""
        return transition.state[self.distance_index] <= self.proximity_threshold

    def shuffled_indices(self, rng: np.random.Generator) -> np.ndarray:
        """
        In-place Fisher–Yates permutation of all buffer indices.

        Args:
            rng: Random generator (consumes len(buffer) - 1 draws)
        """
        indices = np.arange(len(self._transitions))
        for i in range(len(indices) - 1, 0, -1):
            j = int(rng.integers(0, i + 1))
            indices[i], indices[j] = indices[j], indices[i]
        return indices

    def sample_minibatch(
        self,
        batch_size: int,
        rng: np.random.Generator
    ) -> List[Transition]:
        """
        Sample without replacement, keeping only accepted transitions.

        Args:
            batch_size: Requested size; capped at the buffer length
            rng: Random generator

        Returns:
            Up to min(len(buffer), batch_size) transitions. Fewer are
            returned when not enough transitions satisfy the predicate.
        """
        target_size = min(len(self._transitions), batch_size)
        batch: List[Transition] = []

        for index in self.shuffled_indices(rng):
            if len(batch) >= target_size:
                break
            transition = self._transitions[index]
            if self.accepts(transition):
                batch.append(transition)

        return batch

    def __len__(self) -> int:
        """Return number of stored transitions."""
        return len(self._transitions)

    def __getitem__(self, index: int) -> Transition:
        return self._transitions[index]


# =============================================================================
# VERIFICATION
# =============================================================================

def verify_replay_buffer(seed: Optional[int] = 0) -> dict:
    """Run verification tests."""
    results = {}
    rng = np.random.default_rng(seed)

    # Test 1: Append growth
    buffer = ReplayBuffer(high_water_mark=512)
    for i in range(40):
        state = np.zeros(8)
        state[0] = 0.1 if i < 10 else 0.9
        buffer.push(state, i % 9, 1.0, state)
    results["test_add"] = {
        "size": len(buffer),
        "pass": len(buffer) == 40
    }

    # Test 2: Proximity-filtered minibatch is smaller than requested
    batch = buffer.sample_minibatch(32, rng)
    results["test_filtered_sample"] = {
        "batch_size": len(batch),
        "pass": len(batch) == 10 and all(t.state[0] <= 0.5 for t in batch)
    }

    # Test 3: Shuffle is a permutation
    perm = buffer.shuffled_indices(rng)
    results["test_permutation"] = {
        "pass": sorted(perm.tolist()) == list(range(40))
    }

    # Test 4: Clear
    buffer.clear()
    results["test_clear"] = {
        "size_after_clear": len(buffer),
        "generation": buffer.generation,
        "pass": len(buffer) == 0 and buffer.generation == 1
    }

    return results


if __name__ == "__main__":
    print("=" * 60)
    print("Replay Buffer Verification")
    print("=" * 60)

    results = verify_replay_buffer()

    all_passed = True
    for test_name, result in results.items():
        print(f"\n{test_name}:")
        for k, v in result.items():
            print(f"  {k}: {v}")
        if not result.get("pass", False):
            all_passed = False

    print("\n" + "=" * 60)
    print("PASSED" if all_passed else "FAILED")
    print("=" * 60)
