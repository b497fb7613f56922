# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Gate math for the LSTM cell.

Currently implemented:
- sigmoid: input, forget and output gates
- tanh: candidate activation and cell squashing
- softmax: classifier output, raw or max-shifted
- cross_entropy: per-step loss used for reporting

Derivatives are written in terms of the activation *output*, which is what
the trajectory cache stores.
"""

import numpy as np


def sigmoid(x: np.ndarray) -> np.ndarray:
    """
    Logistic function 1 / (1 + e^-x).

    Args:
        x: Pre-activation values of any shape.

    Returns:
        Element-wise sigmoid, same shape as x.
    """
    return 1.0 / (1.0 + np.exp(-x))


def sigmoid_backward(y: np.ndarray) -> np.ndarray:
    """
    Derivative of sigmoid expressed through its output: y * (1 - y).

    Args:
        y: sigmoid(x), as produced by the forward pass.

    Returns:
        d sigmoid / dx, same shape as y.
    """
    return y * (1.0 - y)


def tanh(x: np.ndarray) -> np.ndarray:
    """Hyperbolic tangent, element-wise."""
    return np.tanh(x)


def tanh_backward(y: np.ndarray) -> np.ndarray:
    """Derivative of tanh expressed through its output: 1 - y^2."""
    return 1.0 - y**2


def softmax(x: np.ndarray, stable: bool = False) -> np.ndarray:
    """
    Softmax over a 1-D logit vector.

    The default path exponentiates the raw logits, exp(x) / sum(exp(x)),
    which keeps results identical to previously trained parameter files.
    It overflows once a logit exceeds ~709, so pass ``stable=True`` to
    subtract max(x) first. Both paths agree wherever the raw one is finite.

    Args:
        x: Logits, shape (V,).
        stable: Shift logits by their maximum before exponentiating.

    Returns:
        Probabilities, shape (V,), non-negative and summing to 1.
    """
    if stable:
        x = x - x.max()
    e = np.exp(x)
    return e / e.sum()


def cross_entropy(probs: np.ndarray, label: int) -> float:
    """
    Negative log-likelihood of the true class: -log(probs[label]).

    Reporting only; the backward pass uses the softmax/cross-entropy
    shortcut (probs - one_hot) directly.
    """
    return float(-np.log(probs[label]))


# Registry for easy lookup by name
ACTIVATIONS = {
    "sigmoid": (sigmoid, sigmoid_backward),
    "tanh": (tanh, tanh_backward),
}


def get_activation(name: str):
    """
    Get activation function and its derivative by name.

    Args:
        name: One of 'sigmoid', 'tanh'.

    Returns:
        Tuple of (forward_fn, backward_fn).

    Raises:
        KeyError: If activation name is not recognized.
    """
    if name not in ACTIVATIONS:
        raise KeyError(f"Unknown activation: {name}. Available: {list(ACTIVATIONS.keys())}")
    return ACTIVATIONS[name]
