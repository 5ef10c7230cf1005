"""
Training Module
===============

On-line training infrastructure for the enemy learning core.

Components:
    - config: Hyperparameter configuration and presets
    - metrics: Logging and metrics tracking
    - trainer: Periodic Q-learning updates and target syncs
    - engine: Per-tick orchestration (selection, training, removal)

Example:
    >>> from training import DrlEngine, AgentTickInput, get_default_config
    >>> engine = DrlEngine(get_default_config())
    >>> engine.add_agent("enemy_0")
    >>> decisions = engine.tick({"enemy_0": AgentTickInput(observation)})
"""

from .config import (
    DrlConfig,
    NetworkConfig,
    ExplorationConfig,
    ReplayConfig,
    LearningConfig,
    get_default_config,
    get_debug_config,
    get_legacy_config
)

from .metrics import (
    MetricsLogger,
    RollingStats
)

from .trainer import (
    Trainer,
    TrainingPassResult,
    compute_td_target,
    build_target_vector,
    compute_gradients
)

from .engine import DrlEngine, AgentTickInput

__all__ = [
    # Config
    "DrlConfig",
    "NetworkConfig",
    "ExplorationConfig",
    "ReplayConfig",
    "LearningConfig",
    "get_default_config",
    "get_debug_config",
    "get_legacy_config",
    # Metrics
    "MetricsLogger",
    "RollingStats",
    # Trainer
    "Trainer",
    "TrainingPassResult",
    "compute_td_target",
    "build_target_vector",
    "compute_gradients",
    # Engine
    "DrlEngine",
    "AgentTickInput"
]
