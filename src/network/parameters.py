"""
Network Parameters Module
=========================

Parameter bundles for the one-hidden-layer Q-network and the shared
QNetwork resource that owns the online and target copies.

Layout:
    input_weights:  (input_size, hidden_size)
    hidden_weights: (hidden_size, output_size)
    hidden_biases:  (hidden_size,)
    output_biases:  (output_size,)

The online parameters have exactly one writer (the Trainer). The target
parameters are only written by the hard sync step.

Author: Enemy DRL Team
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


NUM_ACTIONS = 9


@dataclass
class NetworkParameters:
    """
    Weights and biases of a single network copy.

    Attributes:
        input_weights: Input -> hidden weights, shape (input_size, hidden_size)
        hidden_weights: Hidden -> output weights, shape (hidden_size, output_size)
        hidden_biases: Hidden layer biases, shape (hidden_size,)
        output_biases: Output layer biases, shape (output_size,)

    Example:
        >>> params = NetworkParameters.uniform(4, 4, 9, weight=0.1)
        >>> params.shape
        (4, 4, 9)
    """

    input_weights: np.ndarray
    hidden_weights: np.ndarray
    hidden_biases: np.ndarray
    output_biases: np.ndarray

    def __post_init__(self):
        self.input_weights = np.array(self.input_weights, dtype=np.float64)
        self.hidden_weights = np.array(self.hidden_weights, dtype=np.float64)
        self.hidden_biases = np.array(self.hidden_biases, dtype=np.float64)
        self.output_biases = np.array(self.output_biases, dtype=np.float64)
        self.validate()

    @property
    def input_size(self) -> int:
        return self.input_weights.shape[0]

    @property
    def hidden_size(self) -> int:
        return self.input_weights.shape[1]

    @property
    def output_size(self) -> int:
        return self.hidden_weights.shape[1]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """(input_size, hidden_size, output_size)."""
        return self.input_size, self.hidden_size, self.output_size

    def validate(self):
        """
        Check internal shape consistency.

        Raises:
            ValueError: If any array disagrees with the layer sizes
        """
        if self.input_weights.ndim != 2:
            raise ValueError(
                f"input_weights must be 2-D, got shape {self.input_weights.shape}"
            )
        if self.hidden_weights.ndim != 2:
            raise ValueError(
                f"hidden_weights must be 2-D, got shape {self.hidden_weights.shape}"
            )

        input_size, hidden_size = self.input_weights.shape
        if self.hidden_weights.shape[0] != hidden_size:
            raise ValueError(
                f"hidden_weights has {self.hidden_weights.shape[0]} rows, "
                f"expected hidden_size={hidden_size}"
            )
        output_size = self.hidden_weights.shape[1]
        if self.hidden_biases.shape != (hidden_size,):
            raise ValueError(
                f"hidden_biases shape {self.hidden_biases.shape} != ({hidden_size},)"
            )
        if self.output_biases.shape != (output_size,):
            raise ValueError(
                f"output_biases shape {self.output_biases.shape} != ({output_size},)"
            )

    def copy(self) -> "NetworkParameters":
        """Deep copy of all four arrays."""
        return NetworkParameters(
            input_weights=self.input_weights.copy(),
            hidden_weights=self.hidden_weights.copy(),
            hidden_biases=self.hidden_biases.copy(),
            output_biases=self.output_biases.copy()
        )

    def copy_from(self, source: "NetworkParameters"):
        """
        Element-wise hard copy of source into this bundle, in place.

        Args:
            source: Parameters with identical shapes
        """
        if source.shape != self.shape:
            raise ValueError(
                f"Cannot copy parameters of shape {source.shape} into {self.shape}"
            )
        np.copyto(self.input_weights, source.input_weights)
        np.copyto(self.hidden_weights, source.hidden_weights)
        np.copyto(self.hidden_biases, source.hidden_biases)
        np.copyto(self.output_biases, source.output_biases)

    def equals(self, other: "NetworkParameters") -> bool:
        """Exact element-wise equality."""
        return (
            self.shape == other.shape
            and np.array_equal(self.input_weights, other.input_weights)
            and np.array_equal(self.hidden_weights, other.hidden_weights)
            and np.array_equal(self.hidden_biases, other.hidden_biases)
            and np.array_equal(self.output_biases, other.output_biases)
        )

    def is_finite(self) -> bool:
        return bool(
            np.all(np.isfinite(self.input_weights))
            and np.all(np.isfinite(self.hidden_weights))
            and np.all(np.isfinite(self.hidden_biases))
            and np.all(np.isfinite(self.output_biases))
        )

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def uniform(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int = NUM_ACTIONS,
        weight: float = 0.1,
        bias: float = 0.0
    ) -> "NetworkParameters":
        """
        Constant-valued parameters (explicit initial weights).

        Args:
            input_size: Observation dimensionality
            hidden_size: Hidden layer size
            output_size: Number of actions
            weight: Value for every weight
            bias: Value for every bias
        """
        return cls(
            input_weights=np.full((input_size, hidden_size), weight),
            hidden_weights=np.full((hidden_size, output_size), weight),
            hidden_biases=np.full(hidden_size, bias),
            output_biases=np.full(output_size, bias)
        )

    @classmethod
    def random(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int = NUM_ACTIONS,
        scale: float = 0.1,
        seed: Optional[int] = None
    ) -> "NetworkParameters":
        """
        Seeded uniform initialisation in [-scale, scale], zero biases.

        Args:
            input_size: Observation dimensionality
            hidden_size: Hidden layer size
            output_size: Number of actions
            scale: Half-width of the uniform weight range
            seed: Random seed
        """
        rng = np.random.default_rng(seed)
        return cls(
            input_weights=rng.uniform(-scale, scale, (input_size, hidden_size)),
            hidden_weights=rng.uniform(-scale, scale, (hidden_size, output_size)),
            hidden_biases=np.zeros(hidden_size),
            output_biases=np.zeros(output_size)
        )


class QNetwork:
    """
    Shared network resource: online parameters plus lagged target copy.

    Constructed once by the host, handed by reference to the ActionSelector
    (reader) and the Trainer (writer), and torn down with close().

    Attributes:
        online: Trainable parameters
        target: Lagged copy used for bootstrapping
        sync_count: Number of hard target syncs performed

    Example:
        >>> with QNetwork(NetworkParameters.random(8, 16, seed=0)) as net:
        ...     q = net.q_values(obs)
    """

    def __init__(
        self,
        online: NetworkParameters,
        target: Optional[NetworkParameters] = None,
        backend: str = "numpy"
    ):
        """
        Initialize the shared network.

        Args:
            online: Initial online parameters
            target: Initial target parameters (copy of online if None)
            backend: "numpy" or "torch", used by batch_q_values

        Raises:
            ValueError: If online and target shapes differ, the output
                layer does not match the action count, or the backend
                is unknown
        """
        if backend not in ("numpy", "torch"):
            raise ValueError(f"Unknown backend {backend!r}")
        if online.output_size != NUM_ACTIONS:
            raise ValueError(
                f"output_size must be {NUM_ACTIONS}, got {online.output_size}"
            )
        if target is None:
            target = online.copy()
        elif target.shape != online.shape:
            raise ValueError(
                f"Online {online.shape} and target {target.shape} parameter "
                f"shapes differ"
            )

        self._online = online
        self._target = target
        self.backend = backend
        self._closed = False
        self.sync_count = 0

    @property
    def online(self) -> NetworkParameters:
        self._check_open()
        return self._online

    @property
    def target(self) -> NetworkParameters:
        self._check_open()
        return self._target

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self._online.shape

    @property
    def closed(self) -> bool:
        return self._closed

    def q_values(self, observation: np.ndarray) -> np.ndarray:
        """Q-values of the online network for one observation."""
        from .forward import forward_pass
        return forward_pass(self.online, observation)

    def batch_q_values(self, observations: np.ndarray) -> np.ndarray:
        """
        Q-values of the online network for a stack of observations.

        Args:
            observations: Shape (batch, input_size)

        Returns:
            Q-values, shape (batch, output_size)
        """
        observations = np.asarray(observations, dtype=np.float64)
        if self.backend == "torch":
            from .torch_qnet import batch_q_values
            return batch_q_values(self.online, observations)

        from .forward import forward_pass
        q = np.empty((len(observations), self.shape[2]))
        for row, observation in enumerate(observations):
            q[row] = forward_pass(self.online, observation)
        return q

    def sync_target(self):
        """Hard copy of the online parameters into the target parameters."""
        self.target.copy_from(self.online)
        self.sync_count += 1
        logger.debug("Target network synced (sync #%d)", self.sync_count)

    def close(self):
        """Tear down the shared resource. Further access raises RuntimeError."""
        self._closed = True

    def _check_open(self):
        if self._closed:
            raise RuntimeError("QNetwork has been closed")

    def __enter__(self) -> "QNetwork":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
