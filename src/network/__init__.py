"""
Network Module
==============

One-hidden-layer Q-network shared by every enemy agent.
    - parameters: online/target parameter bundles and the shared QNetwork
    - forward: stateless forward pass (with and without intermediates)
    - torch_qnet: PyTorch mirror for batched evaluation and gradient checks
"""

from .parameters import NetworkParameters, QNetwork, NUM_ACTIONS
from .forward import (
    sigmoid,
    forward_pass,
    forward_pass_with_intermediate,
    verify_forward,
)
from .torch_qnet import HAS_TORCH, batch_q_values

__all__ = [
    "NetworkParameters",
    "QNetwork",
    "NUM_ACTIONS",
    "sigmoid",
    "forward_pass",
    "forward_pass_with_intermediate",
    "verify_forward",
    "HAS_TORCH",
    "batch_q_values",
]
