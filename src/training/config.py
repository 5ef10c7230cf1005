"""
Training Configuration Module
=============================

Centralized configuration for the enemy learning engine.

Author: Enemy DRL Team
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any
import json
from pathlib import Path


UPDATE_RULES = ("l2", "plain")
INPUT_GRADIENTS = ("corrected", "legacy")
EMPTY_MASK_FALLBACKS = ("uniform", "stay")
BACKENDS = ("numpy", "torch")


@dataclass
class NetworkConfig:
    """Q-network topology and initialisation."""

    input_size: int = 8             # Observation dimensionality
    hidden_size: int = 16           # Hidden layer size
    output_size: int = 9            # One Q-value per discrete action
    init_scale: float = 0.1         # Uniform init half-width
    backend: str = "numpy"          # Batched Q evaluation: "numpy" or "torch"


@dataclass
class ExplorationConfig:
    """Epsilon-greedy policy configuration."""

    initial_epsilon: float = 1.0    # Epsilon for a freshly spawned agent
    epsilon_decay: float = 0.001    # Linear decay per decision
    epsilon_min: float = 0.01       # Decay floor
    decision_duration: float = 1.0  # Busy time after each decision
    max_step_count: int = 100       # Cap on the per-agent decision counter
    empty_mask_fallback: str = "uniform"  # "uniform" over all actions or "stay"


@dataclass
class ReplayConfig:
    """Replay buffer and sampling configuration."""

    high_water_mark: int = 512      # Clear + target sync at this length
    minibatch_size: int = 32        # Max transitions per training pass
    min_buffer_size: int = 32       # Skip training below this length
    proximity_threshold: float = 0.5  # Max player distance accepted by sampler
    distance_feature_index: int = 0   # Observation index of player distance


@dataclass
class LearningConfig:
    """Q-learning update configuration."""

    discount_factor: float = 0.95   # Gamma for the TD target
    learning_rate: float = 0.001    # SGD step size
    training_interval: int = 30     # Train every N ticks

    update_rule: str = "l2"         # "l2" (regularized) or "plain" (earlier variant)
    gradient_clip: float = 1.0      # Clip for the "l2" rule
    legacy_gradient_clip: float = 0.5  # Clip for the "plain" rule
    weight_decay: float = 1e-4      # L2 coefficient, "l2" rule only

    input_gradient: str = "corrected"  # "corrected" (input feature) or "legacy"
    mask_terminal_bootstrap: bool = False  # Drop gamma * max(Q') when done
    loss_ema_decay: float = 0.99    # Decay of the loss moving average

    @property
    def effective_clip(self) -> float:
        return self.gradient_clip if self.update_rule == "l2" else self.legacy_gradient_clip


@dataclass
class DrlConfig:
    """Complete engine configuration."""

    # Sub-configs
    network: NetworkConfig = field(default_factory=NetworkConfig)
    exploration: ExplorationConfig = field(default_factory=ExplorationConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)

    # Reproducibility
    seed: int = 123

    # Logging
    log_interval: int = 10          # Print every N training passes
    experiment_name: str = "enemy_drl"
    output_dir: str = "outputs"
    enable_debug_logging: bool = False

    def validate(self):
        """
        Check option ranges and combinations.

        Raises:
            ValueError: On the first invalid option
        """
        net = self.network
        if net.input_size <= 0 or net.hidden_size <= 0:
            raise ValueError("input_size and hidden_size must be positive")
        if net.output_size != 9:
            raise ValueError(f"output_size must be 9, got {net.output_size}")
        if net.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {net.backend!r}")

        exp = self.exploration
        if not 0.0 <= exp.epsilon_min <= exp.initial_epsilon <= 1.0:
            raise ValueError(
                "Expected 0 <= epsilon_min <= initial_epsilon <= 1, got "
                f"{exp.epsilon_min}, {exp.initial_epsilon}"
            )
        if exp.epsilon_decay < 0:
            raise ValueError("epsilon_decay must be non-negative")
        if exp.empty_mask_fallback not in EMPTY_MASK_FALLBACKS:
            raise ValueError(
                f"empty_mask_fallback must be one of {EMPTY_MASK_FALLBACKS}, "
                f"got {exp.empty_mask_fallback!r}"
            )

        rep = self.replay
        if rep.minibatch_size <= 0 or rep.min_buffer_size <= 0:
            raise ValueError("minibatch_size and min_buffer_size must be positive")
        if rep.high_water_mark < rep.min_buffer_size:
            raise ValueError("high_water_mark must be >= min_buffer_size")
        if not 0 <= rep.distance_feature_index < net.input_size:
            raise ValueError(
                f"distance_feature_index {rep.distance_feature_index} outside "
                f"observation of size {net.input_size}"
            )

        lrn = self.learning
        if not 0.0 <= lrn.discount_factor <= 1.0:
            raise ValueError("discount_factor must be in [0, 1]")
        if lrn.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        if lrn.training_interval <= 0:
            raise ValueError("training_interval must be positive")
        if lrn.update_rule not in UPDATE_RULES:
            raise ValueError(
                f"update_rule must be one of {UPDATE_RULES}, got {lrn.update_rule!r}"
            )
        if lrn.input_gradient not in INPUT_GRADIENTS:
            raise ValueError(
                f"input_gradient must be one of {INPUT_GRADIENTS}, "
                f"got {lrn.input_gradient!r}"
            )
        if lrn.gradient_clip <= 0 or lrn.legacy_gradient_clip <= 0:
            raise ValueError("gradient clip thresholds must be positive")
        if lrn.weight_decay < 0:
            raise ValueError("weight_decay must be non-negative")
        if not 0.0 <= lrn.loss_ema_decay < 1.0:
            raise ValueError("loss_ema_decay must be in [0, 1)")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "network": asdict(self.network),
            "exploration": asdict(self.exploration),
            "replay": asdict(self.replay),
            "learning": asdict(self.learning),
            "seed": self.seed,
            "log_interval": self.log_interval,
            "experiment_name": self.experiment_name,
            "output_dir": self.output_dir,
            "enable_debug_logging": self.enable_debug_logging
        }

    def save(self, path: str):
        """Save configuration to JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrlConfig":
        config = cls()

        for section in ("network", "exploration", "replay", "learning"):
            if section in data:
                sub = getattr(config, section)
                for k, v in data[section].items():
                    if hasattr(sub, k):
                        setattr(sub, k, v)

        for k in ["seed", "log_interval", "experiment_name", "output_dir",
                  "enable_debug_logging"]:
            if k in data:
                setattr(config, k, data[k])

        return config

    @classmethod
    def load(cls, path: str) -> "DrlConfig":
        """Load configuration from JSON."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


# =============================================================================
# PRESETS
# =============================================================================

def get_default_config() -> DrlConfig:
    """Regularized update with the corrected input gradient."""
    return DrlConfig()


def get_debug_config() -> DrlConfig:
    """Small, fast config for debugging."""
    config = DrlConfig()
    config.network.hidden_size = 8
    config.exploration.epsilon_decay = 0.01
    config.replay.high_water_mark = 128
    config.learning.training_interval = 5
    config.log_interval = 1
    config.enable_debug_logging = True
    return config


def get_legacy_config() -> DrlConfig:
    """
    Reproduces the earliest shipped behaviour: plain SGD with the 0.5 clip
    and the input-weight gradient that multiplies by a weight value.
    """
    config = DrlConfig()
    config.learning.update_rule = "plain"
    config.learning.input_gradient = "legacy"
    return config
