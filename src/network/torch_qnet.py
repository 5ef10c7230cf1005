"""
Torch Q-Network Module
======================

PyTorch mirror of the hand-written Q-network.

Used for batched Q-value evaluation over many agents at once and as an
autograd reference for the manual backward pass in the Trainer.

Architecture:
    FC(input_size→hidden_size) → Sigmoid → FC(hidden_size→9)

Author: Enemy DRL Team
"""

import numpy as np
from typing import Tuple

try:
    import torch
    import torch.nn as nn
    HAS_TORCH = True
except ImportError:
    HAS_TORCH = False

from .parameters import NetworkParameters


if HAS_TORCH:

    class TorchQNetwork(nn.Module):
        """
        Q-network as an nn.Module with weights loaded from NetworkParameters.

        nn.Linear stores weights as (out_features, in_features), so the
        parameter matrices are transposed on the way in and out.

        Example:
            >>> net = TorchQNetwork.from_parameters(params)
            >>> q = net(torch.randn(32, params.input_size))
            >>> print(q.shape)  # (32, 9)
        """

        def __init__(self, input_size: int, hidden_size: int, output_size: int = 9):
            super().__init__()

            self.input_size = input_size
            self.hidden_size = hidden_size
            self.output_size = output_size

            self.hidden = nn.Linear(input_size, hidden_size)
            self.output = nn.Linear(hidden_size, output_size)

        def forward(self, obs: torch.Tensor) -> torch.Tensor:
            """
            Args:
                obs: Observations, shape (batch, input_size) or (input_size,)

            Returns:
                Q-values, shape (batch, output_size) or (output_size,)
            """
            return self.output(torch.sigmoid(self.hidden(obs)))

        def forward_with_intermediate(
            self,
            obs: torch.Tensor
        ) -> Tuple[torch.Tensor, torch.Tensor]:
            hidden = torch.sigmoid(self.hidden(obs))
            return hidden, self.output(hidden)

        @classmethod
        def from_parameters(cls, parameters: NetworkParameters) -> "TorchQNetwork":
            """Build a float64 module holding a copy of the given parameters."""
            net = cls(*parameters.shape).double()
            with torch.no_grad():
                net.hidden.weight.copy_(torch.from_numpy(parameters.input_weights.T))
                net.hidden.bias.copy_(torch.from_numpy(parameters.hidden_biases))
                net.output.weight.copy_(torch.from_numpy(parameters.hidden_weights.T))
                net.output.bias.copy_(torch.from_numpy(parameters.output_biases))
            return net

        def to_parameters(self) -> NetworkParameters:
            """Copy the module weights back into a NetworkParameters bundle."""
            with torch.no_grad():
                return NetworkParameters(
                    input_weights=self.hidden.weight.detach().cpu().numpy().T.copy(),
                    hidden_weights=self.output.weight.detach().cpu().numpy().T.copy(),
                    hidden_biases=self.hidden.bias.detach().cpu().numpy().copy(),
                    output_biases=self.output.bias.detach().cpu().numpy().copy()
                )


def batch_q_values(parameters: NetworkParameters, observations: np.ndarray) -> np.ndarray:
    """
    Evaluate Q-values for a batch of observations with torch.

    Args:
        parameters: Network parameters
        observations: Observations, shape (batch, input_size)

    Returns:
        Q-values, shape (batch, output_size)
    """
    if not HAS_TORCH:
        raise ImportError("PyTorch is required for batched Q evaluation")

    net = TorchQNetwork.from_parameters(parameters)
    with torch.no_grad():
        obs_tensor = torch.from_numpy(np.asarray(observations, dtype=np.float64))
        q = net(obs_tensor)
    return q.numpy()
