"""
Trainer Module
==============

Periodic Q-learning updates of the shared online network.

Once per tick:
1. Increment the step counter
2. Every `training_interval` ticks, if the buffer holds at least
   `min_buffer_size` transitions, run a training pass
3. Independently, once the buffer reaches its high-water mark, hard-sync
   the target network, clear the buffer and reset the step counter

Training pass, per sampled transition:
    q, h     = online(s)                       (with hidden activations)
    q'       = target(s')
    y        = r + γ · max(q')
    t        = q with t[a] := y                (only the taken action moves)
    g_out    = clip(q - t)
    g_hid    = clip((W_h · g_out) ⊙ h ⊙ (1 - h))
    SGD with L2 weight decay on all four parameter arrays

Samples whose targets, gradients or updated parameters are not finite are
skipped; the shared parameters are never overwritten with NaN/Inf.

Author: Enemy DRL Team
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Dict, Tuple

from agents.replay_buffer import ReplayBuffer, Transition
from network.forward import forward_pass, forward_pass_with_intermediate
from network.parameters import NetworkParameters, QNetwork

from .config import DrlConfig, LearningConfig
from .metrics import MetricsLogger

logger = logging.getLogger(__name__)


@dataclass
class TrainingPassResult:
    """Outcome of one training pass."""
    tick: int
    loss: float
    loss_ema: float
    batch_size: int
    skipped_samples: int


def compute_td_target(
    reward: float,
    next_q_values: np.ndarray,
    discount_factor: float,
    done: bool = False,
    mask_terminal: bool = False
) -> float:
    """
    One-step TD target r + γ · max(q').

    The done flag only removes the bootstrap term when mask_terminal is set.
    """
    if done and mask_terminal:
        return float(reward)
    return float(reward + discount_factor * np.max(next_q_values))


def build_target_vector(q_values: np.ndarray, action: int, target_q: float) -> np.ndarray:
    """Copy of q_values with only the taken action replaced by the TD target."""
    targets = q_values.copy()
    targets[action] = target_q
    return targets


def compute_gradients(
    parameters: NetworkParameters,
    hidden: np.ndarray,
    q_values: np.ndarray,
    targets: np.ndarray,
    clip: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Output and hidden-layer error signals, both clipped to [-clip, clip].

    The hidden signal is backpropagated from the unclipped output error.

    Args:
        parameters: Online parameters (hidden_weights are read)
        hidden: Hidden activations from the forward pass
        q_values: Online Q-values
        targets: Target vector
        clip: Clip threshold

    Returns:
        Tuple of (output_gradients, hidden_gradients)
    """
    output_gradients = q_values - targets
    error = parameters.hidden_weights @ output_gradients
    hidden_gradients = error * hidden * (1.0 - hidden)

    return (
        np.clip(output_gradients, -clip, clip),
        np.clip(hidden_gradients, -clip, clip)
    )


class Trainer:
    """
    Sole writer of the online parameters and of the buffer's cleared state.

    Attributes:
        network: Shared Q-network
        buffer: Shared replay buffer
        config: Learning hyperparameters
        step_counter: Ticks since the last target sync
        loss_metric: Loss of the latest training pass, 2 decimals
        loss_ema: Exponential moving average of the loss

    Example:
        >>> trainer = Trainer(network, buffer, config)
        >>> for tick in range(1000):
        ...     # selection phase appends to the buffer
        ...     trainer.step()
        >>> print(trainer.loss_metric)
    """

    def __init__(
        self,
        network: QNetwork,
        buffer: ReplayBuffer,
        config: DrlConfig = None,
        metrics: Optional[MetricsLogger] = None,
        seed: int = None
    ):
        """
        Initialize trainer.

        Args:
            network: Shared Q-network
            buffer: Shared replay buffer
            config: Engine configuration (uses defaults if None)
            metrics: Optional metrics logger
            seed: Random seed for minibatch sampling (uses config.seed if None)
        """
        self.config = config or DrlConfig()
        self.config.validate()

        self.network = network
        self.buffer = buffer
        self.metrics = metrics

        self.learning: LearningConfig = self.config.learning
        self.minibatch_size = self.config.replay.minibatch_size
        self.min_buffer_size = self.config.replay.min_buffer_size

        self.seed = seed if seed is not None else self.config.seed
        self.rng = np.random.default_rng(self.seed)

        # Training state
        self.step_counter = 0
        self.total_ticks = 0
        self.total_passes = 0
        self.total_skipped = 0
        self.loss_metric = 0.0
        self.loss_ema = 0.0
        self.cumulative_loss = 0.0

    # =========================================================================
    # TICK
    # =========================================================================

    def step(self) -> Optional[TrainingPassResult]:
        """
        Run the training phase of one tick.

        Returns:
            TrainingPassResult if a training pass ran this tick, else None
        """
        self.step_counter += 1
        self.total_ticks += 1

        result = None
        if (self.step_counter % self.learning.training_interval == 0
                and len(self.buffer) >= self.min_buffer_size):
            result = self.training_pass()

        if self.buffer.is_full:
            self.sync_target()

        return result

    def sync_target(self):
        """Hard target sync, buffer clear and step-counter reset."""
        cleared = len(self.buffer)
        self.network.sync_target()
        self.buffer.clear()
        self.step_counter = 0

        logger.info(
            "Target synced after %d ticks; cleared %d transitions (loss=%.2f, ema=%.4f)",
            self.total_ticks, cleared, self.loss_metric, self.loss_ema
        )
        if self.metrics is not None:
            self.metrics.log_target_sync(self.total_ticks, cleared)

    # =========================================================================
    # TRAINING PASS
    # =========================================================================

    def training_pass(self) -> TrainingPassResult:
        """
        Sample a minibatch and apply one SGD update per transition.

        Returns:
            TrainingPassResult with the rounded loss
        """
        batch = self.buffer.sample_minibatch(self.minibatch_size, self.rng)

        total_loss = 0.0
        skipped = 0
        for transition in batch:
            loss = self.train_on_transition(transition)
            if loss is None:
                skipped += 1
                continue
            total_loss += loss / len(batch)

        self.loss_metric = round(total_loss, 2)
        decay = self.learning.loss_ema_decay
        self.loss_ema = decay * self.loss_ema + (1.0 - decay) * total_loss
        self.cumulative_loss += total_loss
        self.total_passes += 1
        self.total_skipped += skipped

        result = TrainingPassResult(
            tick=self.total_ticks,
            loss=self.loss_metric,
            loss_ema=self.loss_ema,
            batch_size=len(batch),
            skipped_samples=skipped
        )

        if self.metrics is not None:
            self.metrics.log_training_pass(
                tick=result.tick,
                loss=result.loss,
                loss_ema=result.loss_ema,
                batch_size=result.batch_size,
                skipped_samples=result.skipped_samples,
                buffer_length=len(self.buffer)
            )

        return result

    def train_on_transition(self, transition: Transition) -> Optional[float]:
        """
        One semi-gradient update from a single transition.

        Args:
            transition: Sampled experience

        Returns:
            Squared error summed over actions, or None if the update was
            skipped because of non-finite values
        """
        online = self.network.online
        target_params = self.network.target

        hidden, q_values = forward_pass_with_intermediate(online, transition.state)
        next_q_values = forward_pass(target_params, transition.next_state)

        target_q = compute_td_target(
            transition.reward,
            next_q_values,
            self.learning.discount_factor,
            done=transition.done,
            mask_terminal=self.learning.mask_terminal_bootstrap
        )
        targets = build_target_vector(q_values, transition.action, target_q)

        clip = self.learning.effective_clip
        output_gradients, hidden_gradients = compute_gradients(
            online, hidden, q_values, targets, clip
        )

        if not (np.all(np.isfinite(targets))
                and np.all(np.isfinite(output_gradients))
                and np.all(np.isfinite(hidden_gradients))):
            logger.warning(
                "Non-finite target or gradient for action %d, skipping sample",
                transition.action
            )
            return None

        updated = online.copy()
        self.apply_update(
            updated,
            transition.state,
            hidden,
            output_gradients,
            hidden_gradients
        )
        if not updated.is_finite():
            logger.warning(
                "Update for action %d produced non-finite parameters, skipping sample",
                transition.action
            )
            return None

        online.copy_from(updated)
        return float(np.sum((q_values - targets) ** 2))

    # =========================================================================
    # PARAMETER UPDATES
    # =========================================================================

    def apply_update(
        self,
        parameters: NetworkParameters,
        observation: np.ndarray,
        hidden: np.ndarray,
        output_gradients: np.ndarray,
        hidden_gradients: np.ndarray
    ):
        """Apply the configured update rule to parameters, in place."""
        if self.learning.update_rule == "l2":
            clip = self.learning.gradient_clip
            decay = self.learning.weight_decay
        else:
            clip = None
            decay = 0.0

        lr = self.learning.learning_rate

        self._update_input_weights(
            parameters, observation, hidden_gradients, lr, clip, decay
        )

        grad = np.outer(hidden, output_gradients)
        if clip is not None:
            grad = np.clip(grad, -clip, clip)
        parameters.hidden_weights -= lr * (grad + decay * parameters.hidden_weights)

        parameters.output_biases -= lr * output_gradients
        parameters.hidden_biases -= lr * hidden_gradients

    def _update_input_weights(
        self,
        parameters: NetworkParameters,
        observation: np.ndarray,
        hidden_gradients: np.ndarray,
        lr: float,
        clip: Optional[float],
        decay: float
    ):
        W = parameters.input_weights

        if self.learning.input_gradient == "corrected":
            grad = np.outer(observation, hidden_gradients)
            if clip is not None:
                grad = np.clip(grad, -clip, clip)
            W -= lr * (grad + decay * W)
            return

        # Legacy rule: the multiplicand for input i is the weight feeding
        # hidden unit 0 from input i. Column 0 is updated first from its own
        # old values; later columns read the already-updated column 0.
        for j in range(W.shape[1]):
            grad = hidden_gradients[j] * W[:, 0]
            if clip is not None:
                grad = np.clip(grad, -clip, clip)
            W[:, j] = W[:, j] - lr * (grad + decay * W[:, j])

    # =========================================================================
    # STATS
    # =========================================================================

    def get_stats(self) -> Dict[str, float]:
        """Current training statistics."""
        return {
            "loss": self.loss_metric,
            "loss_ema": self.loss_ema,
            "cumulative_loss": self.cumulative_loss,
            "step_counter": self.step_counter,
            "total_ticks": self.total_ticks,
            "total_passes": self.total_passes,
            "total_skipped": self.total_skipped,
            "target_syncs": self.network.sync_count,
            "buffer_length": len(self.buffer)
        }
