"""
Duel Arena Module
=================

Minimal host simulation for the enemy learning engine.

Enemies stand on a circular plane around a single player. Each tick the
host builds per-enemy observations, masks and cooldowns, applies the
actions the engine chose, and accumulates rewards:

    +hit_reward      enemy is within attack range of the player
    -hurt_penalty    player attack lands (not blocking, not jumping)
    -idle_penalty    every tick otherwise
    -death_penalty   enemy health reaches zero

Dead enemies are reported so the host loop can mark them for removal;
the arena respawns replacements under fresh ids.

Author: Enemy DRL Team
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .action_space import ActionHandler, ActionMask, Cooldowns, EnemyAction
from .observation import ObservationBuilder


# Cooldown durations started when a gated action is taken
DEFAULT_COOLDOWNS = {
    EnemyAction.DASH: 3.0,
    EnemyAction.BLOCK: 2.0,
    EnemyAction.HEAL: 5.0,
    EnemyAction.JUMP: 2.0,
    EnemyAction.STAY: 0.5,
}


@dataclass
class ArenaEnemy:
    """Host-side state of one enemy."""

    enemy_id: str
    position: np.ndarray
    health: float = 100.0
    blocking: bool = False
    jumping: bool = False
    pending_reward: float = 0.0
    cooldowns: Cooldowns = field(default_factory=Cooldowns)


class DuelArena:
    """
    Player-versus-enemies arena used as a reference host.

    Attributes:
        arena_radius: Radius of the circular arena
        enemies: Live enemies by id
        player_position: Player (x, z) position
        player_health: Player health
        action_space: Gymnasium Discrete(9)
        observation_space: Gymnasium Box of the observation shape

    Example:
        >>> arena = DuelArena(num_enemies=4, seed=123)
        >>> observations = arena.reset()
        >>> arena.apply_actions({"enemy_0": EnemyAction.FORWARD})
        >>> arena.step(dt=0.1)
    """

    def __init__(
        self,
        num_enemies: int = 4,
        arena_radius: float = 20.0,
        enemy_speed: float = 2.0,
        player_speed: float = 5.0,
        dash_multiplier: float = 3.0,
        attack_range: float = 2.0,
        enemy_damage: float = 5.0,
        player_damage: float = 10.0,
        player_attack_prob: float = 0.2,
        heal_amount: float = 20.0,
        max_health: float = 100.0,
        hit_reward: float = 1.0,
        hurt_penalty: float = 1.0,
        idle_penalty: float = 0.01,
        death_penalty: float = 5.0,
        respawn: bool = True,
        seed: Optional[int] = None
    ):
        """
        Initialize arena.

        Args:
            num_enemies: Enemies alive at any time
            arena_radius: Arena radius
            enemy_speed: Enemy move distance per time unit
            player_speed: Player move distance per time unit
            dash_multiplier: Dash distance relative to a normal move
            attack_range: Distance at which enemies hit and get hit
            enemy_damage: Damage an enemy deals per time unit in range
            player_damage: Damage of one player attack
            player_attack_prob: Chance the player attacks on a step
            heal_amount: Health restored by HEAL
            max_health: Enemy and player maximum health
            hit_reward: Reward per time unit in range
            hurt_penalty: Penalty per player hit taken
            idle_penalty: Penalty per step out of range
            death_penalty: Penalty when an enemy dies
            respawn: Spawn a replacement for each dead enemy
            seed: Random seed
        """
        self.num_enemies = num_enemies
        self.arena_radius = arena_radius
        self.enemy_speed = enemy_speed
        self.player_speed = player_speed
        self.dash_multiplier = dash_multiplier
        self.attack_range = attack_range
        self.enemy_damage = enemy_damage
        self.player_damage = player_damage
        self.player_attack_prob = player_attack_prob
        self.heal_amount = heal_amount
        self.max_health = max_health
        self.hit_reward = hit_reward
        self.hurt_penalty = hurt_penalty
        self.idle_penalty = idle_penalty
        self.death_penalty = death_penalty
        self.respawn = respawn

        self.rng = np.random.default_rng(seed)
        self.builder = ObservationBuilder(arena_radius=arena_radius, max_health=max_health)
        self.handler = ActionHandler()

        self.action_space = self.handler.get_action_space()
        self.observation_space = self.handler.get_observation_space(
            self.builder.obs_dim, low=-1.0, high=1.0
        )

        self.enemies: Dict[str, ArenaEnemy] = {}
        self.player_position = np.zeros(2)
        self.player_health = max_health
        self.player_attacking = False
        self.time = 0.0
        self._next_id = 0
        self.total_spawned = 0
        self.total_deaths = 0

    # =========================================================================
    # SETUP
    # =========================================================================

    def reset(self) -> Dict[str, np.ndarray]:
        """Respawn all enemies and return their observations."""
        self.enemies = {}
        self.player_position = np.zeros(2)
        self.player_health = self.max_health
        self.player_attacking = False
        self.time = 0.0
        for _ in range(self.num_enemies):
            self.spawn_enemy()
        return self.observations()

    def spawn_enemy(self) -> str:
        """Spawn an enemy on a random point of the arena and return its id."""
        enemy_id = f"enemy_{self._next_id}"
        self._next_id += 1

        angle = self.rng.uniform(0, 2 * np.pi)
        radius = self.rng.uniform(0.3, 0.9) * self.arena_radius
        position = radius * np.array([np.cos(angle), np.sin(angle)])

        self.enemies[enemy_id] = ArenaEnemy(
            enemy_id=enemy_id,
            position=position,
            health=self.max_health
        )
        self.total_spawned += 1
        return enemy_id

    def remove_enemy(self, enemy_id: str):
        """Host deletion callback; removing an unknown id is a no-op."""
        self.enemies.pop(enemy_id, None)

    # =========================================================================
    # PER-TICK INPUTS
    # =========================================================================

    def observation(self, enemy_id: str) -> np.ndarray:
        enemy = self.enemies[enemy_id]
        return self.builder.build(
            enemy.position,
            self.player_position,
            enemy.health,
            self.player_health,
            player_attacking=self.player_attacking,
            enemy_blocking=enemy.blocking
        )

    def observations(self) -> Dict[str, np.ndarray]:
        return {enemy_id: self.observation(enemy_id) for enemy_id in self.enemies}

    def action_mask(self, enemy_id: str) -> ActionMask:
        """Availability flags from geometry and health."""
        enemy = self.enemies[enemy_id]
        distance = float(np.linalg.norm(self.player_position - enemy.position))
        edge = self.arena_radius - float(np.linalg.norm(enemy.position))

        return ActionMask(
            can_forward=distance > self.attack_range * 0.5,
            can_backward=edge > self.enemy_speed,
            can_dash=distance > self.attack_range,
            can_heal=enemy.health < self.max_health,
        )

    def cooldowns(self, enemy_id: str) -> Cooldowns:
        return self.enemies[enemy_id].cooldowns

    def collect_reward(self, enemy_id: str) -> float:
        """Reward accumulated since the last call, then reset."""
        enemy = self.enemies[enemy_id]
        reward = enemy.pending_reward
        enemy.pending_reward = 0.0
        return reward

    # =========================================================================
    # DYNAMICS
    # =========================================================================

    def apply_actions(self, actions: Dict[str, int]):
        """Apply the chosen actions; None entries and unknown ids are ignored."""
        for enemy_id, action in actions.items():
            if action is None or enemy_id not in self.enemies:
                continue
            self._apply_action(self.enemies[enemy_id], EnemyAction(action))

    def _apply_action(self, enemy: ArenaEnemy, action: EnemyAction):
        to_player = self.player_position - enemy.position
        distance = float(np.linalg.norm(to_player))
        forward = to_player / distance if distance > 1e-10 else np.zeros(2)
        right = np.array([forward[1], -forward[0]])

        enemy.blocking = False
        enemy.jumping = False

        if action == EnemyAction.FORWARD:
            enemy.position = enemy.position + self.enemy_speed * forward
        elif action == EnemyAction.BACKWARD:
            enemy.position = enemy.position - self.enemy_speed * forward
        elif action == EnemyAction.STEP_RIGHT:
            enemy.position = enemy.position + self.enemy_speed * right
        elif action == EnemyAction.STEP_LEFT:
            enemy.position = enemy.position - self.enemy_speed * right
        elif action == EnemyAction.DASH:
            enemy.position = enemy.position + self.dash_multiplier * self.enemy_speed * forward
        elif action == EnemyAction.BLOCK:
            enemy.blocking = True
        elif action == EnemyAction.HEAL:
            enemy.health = min(enemy.health + self.heal_amount, self.max_health)
        elif action == EnemyAction.JUMP:
            enemy.jumping = True

        if action in DEFAULT_COOLDOWNS:
            enemy.cooldowns.start(action, DEFAULT_COOLDOWNS[action])

        enemy.position = self._clamp_to_arena(enemy.position)

    def _clamp_to_arena(self, position: np.ndarray) -> np.ndarray:
        norm = float(np.linalg.norm(position))
        if norm > self.arena_radius:
            return position * (self.arena_radius / norm)
        return position

    def step(self, dt: float) -> List[str]:
        """
        Advance the arena by dt time units.

        Args:
            dt: Elapsed time

        Returns:
            Ids of enemies that died this step
        """
        self.time += dt

        # Player wanders and occasionally attacks
        heading = self.rng.uniform(0, 2 * np.pi)
        self.player_position = self._clamp_to_arena(
            self.player_position
            + self.player_speed * dt * np.array([np.cos(heading), np.sin(heading)])
        )
        self.player_attacking = bool(self.rng.random() < self.player_attack_prob)

        dead = []
        for enemy in self.enemies.values():
            if enemy.health <= 0:
                continue
            enemy.cooldowns.tick(dt)
            distance = float(np.linalg.norm(self.player_position - enemy.position))

            if distance <= self.attack_range:
                enemy.pending_reward += self.hit_reward * dt
                self.player_health = max(self.player_health - self.enemy_damage * dt, 0.0)
                if self.player_attacking and not (enemy.blocking or enemy.jumping):
                    enemy.health -= self.player_damage
                    enemy.pending_reward -= self.hurt_penalty
            else:
                enemy.pending_reward -= self.idle_penalty

            if enemy.health <= 0:
                enemy.pending_reward -= self.death_penalty
                dead.append(enemy.enemy_id)

        self.total_deaths += len(dead)

        if self.player_health <= 0:
            self.player_health = self.max_health

        return dead
