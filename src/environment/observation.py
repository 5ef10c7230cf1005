"""
Observation Builder Module
==========================

Builds the normalized observation vector for each enemy agent.

Observation Vector (per enemy e, player p):
    [0] player_distance: ||p - e||_2 / arena_radius
    [1] direction_x: (p_x - e_x) / ||p - e||_2
    [2] direction_z: (p_z - e_z) / ||p - e||_2
    [3] enemy_health: health_e / max_health
    [4] player_health: health_p / max_health
    [5] player_attacking: 1[player is attacking]
    [6] enemy_blocking: 1[enemy is blocking]
    [7] edge_distance: (arena_radius - ||e||_2) / arena_radius

Feature 0 is the distance-like feature the replay sampler filters on.
Distances are clipped to [0, 1], directions lie in [-1, 1].

Author: Enemy DRL Team
"""

import numpy as np
from typing import Tuple


PLAYER_DISTANCE_INDEX = 0


class ObservationBuilder:
    """
    Builds observation vectors for enemy agents.

    Attributes:
        arena_radius: Arena radius used for distance normalization
        max_health: Health value mapped to 1.0
        obs_dim: Dimensionality of observation (8)

    Example:
        >>> builder = ObservationBuilder(arena_radius=20.0)
        >>> obs = builder.build(enemy_pos, player_pos, 80.0, 100.0)
        >>> print(obs.shape)  # (8,)
    """

    OBS_DIM = 8
    FEATURE_NAMES = (
        "player_distance",
        "direction_x",
        "direction_z",
        "enemy_health",
        "player_health",
        "player_attacking",
        "enemy_blocking",
        "edge_distance",
    )

    def __init__(
        self,
        arena_radius: float = 20.0,
        max_health: float = 100.0,
        distance_clip: float = 1.0
    ):
        """
        Initialize observation builder.

        Args:
            arena_radius: Arena radius for normalization
            max_health: Maximum health for normalization
            distance_clip: Maximum normalized distance (default 1.0)
        """
        self.arena_radius = arena_radius
        self.max_health = max_health
        self.distance_clip = distance_clip
        self.obs_dim = self.OBS_DIM

    def build(
        self,
        enemy_position: np.ndarray,
        player_position: np.ndarray,
        enemy_health: float,
        player_health: float,
        player_attacking: bool = False,
        enemy_blocking: bool = False
    ) -> np.ndarray:
        """
        Build the observation of one enemy.

        Args:
            enemy_position: Enemy (x, z) position
            player_position: Player (x, z) position
            enemy_health: Current enemy health
            player_health: Current player health
            player_attacking: Whether the player is mid-attack
            enemy_blocking: Whether the enemy is blocking

        Returns:
            Observation vector, shape (8,)
        """
        enemy_position = np.asarray(enemy_position, dtype=np.float64)
        player_position = np.asarray(player_position, dtype=np.float64)

        distance, direction = self._distance_and_direction(
            enemy_position, player_position
        )
        edge = self.arena_radius - float(np.linalg.norm(enemy_position))

        return np.array([
            np.clip(distance / self.arena_radius, 0, self.distance_clip),
            direction[0],
            direction[1],
            np.clip(enemy_health / self.max_health, 0, 1.0),
            np.clip(player_health / self.max_health, 0, 1.0),
            float(player_attacking),
            float(enemy_blocking),
            np.clip(edge / self.arena_radius, 0, self.distance_clip)
        ], dtype=np.float64)

    def _distance_and_direction(
        self,
        enemy_position: np.ndarray,
        player_position: np.ndarray
    ) -> Tuple[float, np.ndarray]:
        delta = player_position - enemy_position
        distance = float(np.linalg.norm(delta))
        if distance < 1e-10:
            return 0.0, np.zeros(2)
        return distance, delta / distance

    @staticmethod
    def player_distance(observation: np.ndarray) -> float:
        """Normalized player distance stored in an observation."""
        return float(observation[PLAYER_DISTANCE_INDEX])
