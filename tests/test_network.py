"""
Test Suite for Network Module
=============================

Tests for src/network/ (parameters, forward pass, torch mirror).

Author: Enemy DRL Team
"""

import pytest
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from network.parameters import NetworkParameters, QNetwork, NUM_ACTIONS
from network.forward import (
    sigmoid,
    forward_pass,
    forward_pass_with_intermediate,
    verify_forward,
)

try:
    import torch
    HAS_TORCH = True
except ImportError:
    HAS_TORCH = False


class TestNetworkParameters:
    """Tests for NetworkParameters."""

    def test_uniform_shapes(self):
        """Test constant initialisation shapes."""
        params = NetworkParameters.uniform(4, 6, weight=0.1)

        assert params.input_weights.shape == (4, 6)
        assert params.hidden_weights.shape == (6, NUM_ACTIONS)
        assert params.hidden_biases.shape == (6,)
        assert params.output_biases.shape == (NUM_ACTIONS,)
        assert params.shape == (4, 6, 9)

    def test_random_is_seeded(self):
        """Test same seed gives identical parameters."""
        p1 = NetworkParameters.random(8, 16, seed=123)
        p2 = NetworkParameters.random(8, 16, seed=123)
        p3 = NetworkParameters.random(8, 16, seed=124)

        assert p1.equals(p2)
        assert not p1.equals(p3)

    def test_random_within_scale(self):
        """Test random weights lie in [-scale, scale] with zero biases."""
        params = NetworkParameters.random(8, 16, scale=0.2, seed=0)

        assert np.all(np.abs(params.input_weights) <= 0.2)
        assert np.all(np.abs(params.hidden_weights) <= 0.2)
        assert np.all(params.hidden_biases == 0)
        assert np.all(params.output_biases == 0)

    def test_bad_shape_rejected(self):
        """Test mismatched array shapes raise ValueError."""
        with pytest.raises(ValueError):
            NetworkParameters(
                input_weights=np.zeros((4, 5)),
                hidden_weights=np.zeros((6, 9)),
                hidden_biases=np.zeros(5),
                output_biases=np.zeros(9)
            )

    def test_copy_is_independent(self):
        """Test copy() does not share storage."""
        params = NetworkParameters.uniform(4, 4)
        clone = params.copy()

        clone.input_weights[0, 0] = 5.0

        assert params.input_weights[0, 0] == pytest.approx(0.1)
        assert not params.equals(clone)

    def test_copy_from_shape_mismatch(self):
        """Test copy_from rejects parameters of another shape."""
        params = NetworkParameters.uniform(4, 4)
        other = NetworkParameters.uniform(4, 5)

        with pytest.raises(ValueError):
            params.copy_from(other)

    def test_is_finite(self):
        """Test non-finite detection."""
        params = NetworkParameters.uniform(4, 4)
        assert params.is_finite()

        params.output_biases[3] = np.nan
        assert not params.is_finite()


class TestForwardPass:
    """Tests for the forward pass."""

    def test_constant_weights_hidden(self):
        """Test all-0.1 weights and 0.5 inputs give sigmoid(0.2) exactly."""
        params = NetworkParameters.uniform(4, 4, weight=0.1, bias=0.0)
        obs = np.array([0.5, 0.5, 0.5, 0.5])

        hidden, _ = forward_pass_with_intermediate(params, obs)

        expected = 1.0 / (1.0 + np.exp(-0.2))
        np.testing.assert_allclose(hidden, np.full(4, expected), rtol=0, atol=1e-15)

    def test_output_is_linear(self):
        """Test Q-values are raw linear outputs (no activation)."""
        params = NetworkParameters.random(4, 4, seed=1)
        params.output_biases[:] = -3.0
        obs = np.ones(4)

        hidden, q = forward_pass_with_intermediate(params, obs)

        np.testing.assert_allclose(q, hidden @ params.hidden_weights - 3.0)
        assert np.all(q < 0)

    def test_output_shape(self):
        """Test one Q-value per action."""
        params = NetworkParameters.random(8, 16, seed=2)
        q = forward_pass(params, np.zeros(8))

        assert q.shape == (NUM_ACTIONS,)

    def test_deterministic(self):
        """Test identical inputs give bit-identical outputs."""
        params = NetworkParameters.random(8, 16, seed=3)
        obs = np.random.default_rng(0).random(8)

        assert np.array_equal(forward_pass(params, obs), forward_pass(params, obs))

    def test_input_shape_mismatch(self):
        """Test wrong observation length raises ValueError."""
        params = NetworkParameters.random(8, 16, seed=3)

        with pytest.raises(ValueError):
            forward_pass(params, np.zeros(7))

    def test_sigmoid_range(self):
        """Test sigmoid stays in (0, 1) and is 0.5 at zero."""
        x = np.linspace(-20, 20, 101)
        y = sigmoid(x)

        assert np.all(y > 0) and np.all(y < 1)
        assert sigmoid(np.array(0.0)) == pytest.approx(0.5)

    def test_verify_forward(self):
        """Test module verification routine passes."""
        results = verify_forward()

        assert all(r["pass"] for r in results.values())


class TestQNetwork:
    """Tests for the shared QNetwork resource."""

    def test_target_starts_as_copy(self):
        """Test target defaults to an independent copy of online."""
        net = QNetwork(NetworkParameters.random(8, 16, seed=0))

        assert net.target.equals(net.online)
        assert net.target is not net.online

    def test_sync_target(self):
        """Test hard sync copies online into target."""
        net = QNetwork(NetworkParameters.random(8, 16, seed=0))
        net.online.hidden_weights += 1.0

        assert not net.target.equals(net.online)
        net.sync_target()

        assert net.target.equals(net.online)
        assert net.sync_count == 1

    def test_sync_does_not_alias(self):
        """Test later online writes do not leak into the target."""
        net = QNetwork(NetworkParameters.random(8, 16, seed=0))
        net.sync_target()
        net.online.output_biases[0] = 42.0

        assert net.target.output_biases[0] == 0.0

    def test_wrong_output_size(self):
        """Test output layer must have 9 units."""
        with pytest.raises(ValueError):
            QNetwork(NetworkParameters.random(8, 16, output_size=4, seed=0))

    def test_target_shape_mismatch(self):
        """Test online/target shape mismatch raises."""
        with pytest.raises(ValueError):
            QNetwork(
                NetworkParameters.random(8, 16, seed=0),
                NetworkParameters.random(8, 12, seed=0)
            )

    def test_close(self):
        """Test access after close raises RuntimeError."""
        with QNetwork(NetworkParameters.random(8, 16, seed=0)) as net:
            net.q_values(np.zeros(8))

        assert net.closed
        with pytest.raises(RuntimeError):
            net.q_values(np.zeros(8))

    def test_batch_matches_single(self):
        """Test batched Q-values equal per-observation Q-values row by row."""
        net = QNetwork(NetworkParameters.random(8, 16, seed=3))
        obs = np.random.default_rng(1).random((4, 8))

        q = net.batch_q_values(obs)

        assert q.shape == (4, NUM_ACTIONS)
        for row, o in zip(q, obs):
            assert np.array_equal(row, net.q_values(o))

    def test_unknown_backend(self):
        """Test an unknown backend is rejected at construction."""
        with pytest.raises(ValueError):
            QNetwork(NetworkParameters.random(8, 16, seed=0), backend="jax")

    def test_torch_module_loaded_with_package(self):
        """Test importing the package makes the torch evaluator available."""
        import network

        assert "network.torch_qnet" in sys.modules
        assert callable(network.batch_q_values)

        assert net.closed
        with pytest.raises(RuntimeError):
            net.q_values(np.zeros(8))


@pytest.mark.skipif(not HAS_TORCH, reason="PyTorch not installed")
class TestTorchQNetwork:
    """Tests for the PyTorch mirror."""

    def test_matches_numpy_forward(self):
        """Test torch and NumPy Q-values agree."""
        from network.torch_qnet import batch_q_values

        params = NetworkParameters.random(8, 16, seed=11)
        obs = np.random.default_rng(0).random((5, 8))

        q_torch = batch_q_values(params, obs)
        q_numpy = np.stack([forward_pass(params, o) for o in obs])

        np.testing.assert_allclose(q_torch, q_numpy, rtol=1e-12, atol=1e-12)

    def test_parameter_round_trip(self):
        """Test from_parameters/to_parameters preserve values."""
        from network.torch_qnet import TorchQNetwork

        params = NetworkParameters.random(8, 16, seed=12)
        net = TorchQNetwork.from_parameters(params)

        assert net.to_parameters().equals(params)

    def test_intermediate_hidden(self):
        """Test hidden activations agree with the NumPy forward pass."""
        from network.torch_qnet import TorchQNetwork

        params = NetworkParameters.uniform(4, 4, weight=0.1)
        net = TorchQNetwork.from_parameters(params)
        hidden, _ = net.forward_with_intermediate(torch.full((4,), 0.5, dtype=torch.float64))

        expected, _ = forward_pass_with_intermediate(params, np.full(4, 0.5))
        np.testing.assert_allclose(hidden.detach().numpy(), expected)

    def test_torch_backend_batch(self):
        """Test the torch backend agrees with the NumPy backend."""
        params = NetworkParameters.random(8, 16, seed=13)
        obs = np.random.default_rng(2).random((6, 8))

        q_torch = QNetwork(params, backend="torch").batch_q_values(obs)
        q_numpy = QNetwork(params, backend="numpy").batch_q_values(obs)

        np.testing.assert_allclose(q_torch, q_numpy, rtol=1e-12, atol=1e-12)
