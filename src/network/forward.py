"""
Forward Pass Module
===================

Stateless forward computation of the Q-network.

Architecture:
    hidden = sigmoid(x @ W_in + b_h)
    q      = hidden @ W_h + b_o        (linear output, raw Q-values)

Both functions are pure: identical parameters and input always give
bit-identical outputs.

Author: Enemy DRL Team
"""

import numpy as np
from typing import Tuple

from .parameters import NetworkParameters


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic activation."""
    return 1.0 / (1.0 + np.exp(-x))


def forward_pass_with_intermediate(
    parameters: NetworkParameters,
    observation: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Forward pass returning hidden activations and Q-values.

    Args:
        parameters: Network parameters to evaluate
        observation: Input vector, shape (input_size,)

    Returns:
        Tuple of:
            - hidden: Hidden activations, shape (hidden_size,)
            - q_values: Raw Q-values, shape (output_size,)
    """
    x = np.asarray(observation, dtype=np.float64)
    if x.shape != (parameters.input_size,):
        raise ValueError(
            f"Observation shape {x.shape} does not match "
            f"input_size={parameters.input_size}"
        )

    hidden = sigmoid(x @ parameters.input_weights + parameters.hidden_biases)
    q_values = hidden @ parameters.hidden_weights + parameters.output_biases

    return hidden, q_values


def forward_pass(
    parameters: NetworkParameters,
    observation: np.ndarray
) -> np.ndarray:
    """
    Forward pass returning Q-values only.

    Args:
        parameters: Network parameters to evaluate
        observation: Input vector, shape (input_size,)

    Returns:
        Q-values, shape (output_size,)
    """
    _, q_values = forward_pass_with_intermediate(parameters, observation)
    return q_values


# =============================================================================
# VERIFICATION
# =============================================================================

def verify_forward() -> dict:
    """Run verification tests."""
    results = {}

    # Test 1: Constant weights give sigmoid(0.2) in every hidden unit
    params = NetworkParameters.uniform(4, 4, weight=0.1, bias=0.0)
    hidden, q = forward_pass_with_intermediate(params, np.full(4, 0.5))
    expected_hidden = 1.0 / (1.0 + np.exp(-0.2))
    results["test_constant_hidden"] = {
        "hidden": hidden.tolist(),
        "expected": expected_hidden,
        "pass": bool(np.allclose(hidden, expected_hidden, rtol=0, atol=1e-15))
    }

    # Test 2: Output is linear in hidden
    expected_q = 4 * 0.1 * expected_hidden
    results["test_linear_output"] = {
        "q": q.tolist(),
        "pass": q.shape == (9,) and bool(np.allclose(q, expected_q))
    }

    # Test 3: Determinism
    params = NetworkParameters.random(8, 16, seed=7)
    obs = np.random.default_rng(1).random(8)
    q1 = forward_pass(params, obs)
    q2 = forward_pass(params, obs)
    results["test_deterministic"] = {
        "pass": bool(np.array_equal(q1, q2))
    }

    return results


if __name__ == "__main__":
    print("=" * 60)
    print("Forward Pass Verification")
    print("=" * 60)

    results = verify_forward()

    all_passed = True
    for test_name, result in results.items():
        print(f"\n{test_name}:")
        for k, v in result.items():
            print(f"  {k}: {v}")
        if not result.get("pass", False):
            all_passed = False

    print("\n" + "=" * 60)
    print("PASSED" if all_passed else "FAILED")
    print("=" * 60)
