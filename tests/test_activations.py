# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import math

import numpy as np
import pytest

from charlstm.activations import (
    cross_entropy,
    get_activation,
    sigmoid,
    sigmoid_backward,
    softmax,
    tanh_backward,
)


def test_sigmoid_values():
    x = np.array([-2.0, 0.0, 3.0])
    expected = np.array([1 / (1 + math.exp(2.0)), 0.5, 1 / (1 + math.exp(-3.0))])
    assert np.allclose(sigmoid(x), expected)
    assert np.allclose(sigmoid(x) + sigmoid(-x), 1.0)


@pytest.mark.parametrize("name", ["sigmoid", "tanh"])
def test_derivatives_match_finite_differences(name):
    fwd, bwd = get_activation(name)
    x = np.linspace(-3.0, 3.0, 13)
    eps = 1e-6
    numeric = (fwd(x + eps) - fwd(x - eps)) / (2 * eps)
    assert np.allclose(bwd(fwd(x)), numeric, atol=1e-8)


def test_backward_helpers_take_activation_output():
    y = np.array([0.25, 0.5])
    assert np.allclose(sigmoid_backward(y), [0.1875, 0.25])
    assert np.allclose(tanh_backward(y), [0.9375, 0.75])


@pytest.mark.parametrize("stable", [False, True])
def test_softmax_is_a_distribution(stable):
    rng = np.random.default_rng(3)
    p = softmax(rng.normal(size=10) * 5.0, stable=stable)
    assert np.all(p >= 0.0)
    assert math.isclose(p.sum(), 1.0, rel_tol=1e-12)


def test_stable_softmax_agrees_with_raw_in_range():
    z = np.array([-4.0, 0.5, 2.0, 7.5])
    assert np.allclose(softmax(z), softmax(z, stable=True), rtol=1e-12)


def test_stable_softmax_handles_large_logits():
    p = softmax(np.array([1000.0, 0.0]), stable=True)
    assert np.allclose(p, [1.0, 0.0])


def test_cross_entropy():
    p = np.array([0.1, 0.7, 0.2])
    assert math.isclose(cross_entropy(p, 1), -math.log(0.7))


def test_unknown_activation():
    with pytest.raises(KeyError):
        get_activation("relu")
