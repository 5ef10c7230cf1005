"""
Enemy DRL Engine
================

On-line deep Q-learning core for real-time game enemies: a small shared
Q-network, a proximity-filtered replay buffer, epsilon-greedy action
selection over masked, cooldown-gated actions, and a periodic trainer
with hard target syncs.

Modules:
    - network: Q-network parameters and forward pass (NumPy, PyTorch mirror)
    - environment: Action vocabulary, observations, agent lifecycle, reference arena
    - agents: Replay buffer and epsilon-greedy action selector
    - training: Configuration, trainer, engine orchestration and metrics
    - visualization: Loss curves
"""

__version__ = "0.1.0"
__author__ = "Enemy DRL Team"
