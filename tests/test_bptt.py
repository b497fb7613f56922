# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np
import pytest

from charlstm.bptt import (
    apply_update,
    backward,
    clip_gradients,
    compute_gradients,
    window_loss,
)
from charlstm.cell import LSTMState, forward
from charlstm.errors import MalformedCacheError
from charlstm.params import PARAMETER_NAMES, ParameterStore
from charlstm.trajectory import FIELDS, TrajectoryCache

logger = logging.getLogger(__name__)


def run_window(store, inputs, labels):
    """Forward sweep from a zero state, filling a fresh cache."""
    V = store.vocab_size
    cache = TrajectoryCache()
    state = LSTMState.zeros(store.hidden_size)
    for i, y in zip(inputs, labels):
        x = np.zeros(V)
        x[i] = 1.0
        step = forward(store, x, state)
        cache.append(step, x, y)
        state = step.state
    return cache


def total_loss(store, inputs, labels):
    cache = run_window(store, inputs, labels)
    return window_loss(cache) * len(cache)


def snapshot(cache):
    return {name: [np.array(v, copy=True) for v in getattr(cache, name)] for name in FIELDS}


# ----- gradient correctness -----


def test_gradients_match_finite_differences():
    """With lookback covering the window, BPTT is the exact gradient of the summed loss."""
    H, V = 3, 4
    store = ParameterStore(H, V, seed=5)
    inputs = [0, 2, 1, 3, 2]
    labels = [2, 1, 3, 2, 0]

    grads = compute_gradients(store, run_window(store, inputs, labels), lookback=len(inputs))

    eps = 1e-6
    for name in PARAMETER_NAMES:
        value = store[name]
        numeric = np.zeros_like(value)
        for idx in np.ndindex(value.shape):
            orig = value[idx]
            value[idx] = orig + eps
            plus = total_loss(store, inputs, labels)
            value[idx] = orig - eps
            minus = total_loss(store, inputs, labels)
            value[idx] = orig
            numeric[idx] = (plus - minus) / (2 * eps)
        logger.debug(f"{name}: max abs err {np.abs(numeric - grads[name]).max():.3e}")
        assert np.allclose(grads[name], numeric, rtol=1e-5, atol=1e-7), name


def test_zero_lookback_gives_zero_gradient():
    store = ParameterStore(3, 3, seed=0)
    grads = compute_gradients(store, run_window(store, [0, 1, 2], [1, 2, 0]), lookback=0)
    assert all(not g.any() for g in grads.values())


def test_lookback_of_one_only_uses_last_step():
    store = ParameterStore(3, 3, seed=0)
    cache = run_window(store, [0, 1, 2, 0], [1, 2, 0, 1])
    grads = compute_gradients(store, cache, lookback=1)

    d_y = cache.probs[-1].copy()
    d_y[cache.labels[-1]] -= 1.0
    assert np.allclose(grads["Wy"], np.outer(d_y, cache.hidden[-1]))
    assert np.allclose(grads["by"], d_y)


def test_steps_outside_lookback_are_ignored():
    """Steps older than the lookback (and its one-step state boundary) never matter."""
    store = ParameterStore(4, 3, seed=9)
    inputs, labels = [0, 1, 2, 0, 1, 2], [1, 2, 0, 1, 2, 0]
    cache = run_window(store, inputs, labels)
    reference = compute_gradients(store, cache, lookback=2)

    rng = np.random.default_rng(0)
    for t in range(3):  # window is 6 long, steps 4 and 5 are visited, step 3 feeds state
        cache.probs[t] = rng.dirichlet(np.ones(3))
        cache.hidden[t] = rng.normal(size=4)
        cache.cell[t] = rng.normal(size=4)
        cache.labels[t] = int(rng.integers(0, 3))
    grads = compute_gradients(store, cache, lookback=2)
    assert all(np.array_equal(grads[n], reference[n]) for n in PARAMETER_NAMES)


def test_history_is_newest_first():
    store = ParameterStore(2, 3, seed=1)
    cache = run_window(store, [0, 1, 2, 1], [1, 2, 1, 0])
    _, history = compute_gradients(store, cache, lookback=3, return_history=True)
    assert [h["t"] for h in history] == [3, 2, 1]


# ----- forget gate of the next step -----


def _forget_coupling_history(forget_next):
    H, V = 3, 3
    store = ParameterStore(H, V, seed=21)
    cache = run_window(store, [0, 1, 2], [1, 2, 0])
    cache.forget_gate[2] = np.full(H, forget_next)
    _, history = compute_gradients(store, cache, lookback=3, return_history=True)
    by_t = {h["t"]: h for h in history}
    local = by_t[1]["d_hidden"] * cache.output_gate[1] * (1.0 - np.tanh(cache.cell[1]) ** 2)
    return local, by_t[1]["d_cell"], by_t[2]["d_cell"]


def test_closed_forget_gate_blocks_carried_cell_gradient():
    local, d_cell, _ = _forget_coupling_history(0.0)
    assert np.array_equal(d_cell, local)


def test_open_forget_gate_passes_carried_cell_gradient():
    local, d_cell, d_cell_next = _forget_coupling_history(1.0)
    assert np.any(d_cell_next != 0.0)
    assert np.allclose(d_cell, local + d_cell_next)


# ----- window boundary -----


def test_first_step_has_no_forget_or_recurrent_contribution():
    H, V = 3, 4
    store = ParameterStore(H, V, seed=2)
    rng = np.random.default_rng(7)
    cache = run_window(store, [1], [3])
    # arbitrary cache contents must not matter at t = 0
    cache.cell[0] = rng.normal(size=H) * 5.0
    cache.hidden[0] = rng.normal(size=H) * 5.0
    cache.forget_gate[0] = rng.uniform(size=H)

    grads, history = compute_gradients(store, cache, lookback=1, return_history=True)
    assert np.array_equal(history[0]["delta_f"], np.zeros(H))
    for g in "aifo":
        assert np.array_equal(grads[f"R{g}"], np.zeros((H, H)))
    assert not grads["Wf"].any() and not grads["bf"].any()
    assert grads["Wa"].any() and grads["Wo"].any()


def test_first_step_forget_delta_zero_in_longer_window():
    store = ParameterStore(3, 3, seed=8)
    cache = run_window(store, [0, 1, 2, 1], [1, 2, 1, 0])
    _, history = compute_gradients(store, cache, lookback=4, return_history=True)
    assert history[-1]["t"] == 0
    assert np.array_equal(history[-1]["delta_f"], np.zeros(3))
    assert history[-2]["delta_f"].any()


# ----- clipping and update -----


def test_clip_gradients_bounds_and_identity():
    rng = np.random.default_rng(0)
    grads = {"A": rng.normal(size=(5, 5)) * 30.0, "b": rng.normal(size=7) * 30.0}
    original = {k: v.copy() for k, v in grads.items()}
    clip_gradients(grads)
    for k, g in grads.items():
        assert np.all(g <= 10.0) and np.all(g >= -10.0)
        inside = np.abs(original[k]) <= 10.0
        assert np.array_equal(g[inside], original[k][inside])
        assert np.array_equal(g[~inside], np.sign(original[k][~inside]) * 10.0)


def test_clip_gradients_custom_threshold():
    grads = {"g": np.array([-3.0, 0.5, 2.5])}
    clip_gradients(grads, threshold=1.0)
    assert np.array_equal(grads["g"], [-1.0, 0.5, 1.0])


def test_apply_update_in_place():
    store = ParameterStore(2, 2, seed=0)
    arrays = {n: store[n] for n in PARAMETER_NAMES}
    before = {n: v.copy() for n, v in store.items()}
    grads = {n: np.ones_like(v) for n, v in store.items()}
    apply_update(store, grads, learning_rate=0.5)
    for n in PARAMETER_NAMES:
        assert store[n] is arrays[n]
        assert np.allclose(store[n], before[n] - 0.5)


def test_backward_is_one_clipped_descent_step():
    store = ParameterStore(4, 3, seed=3)
    cache = run_window(store, [0, 1, 2, 0, 1], [1, 2, 0, 1, 2])
    expected = store.copy()
    grads = clip_gradients(compute_gradients(expected, cache, lookback=3), 10.0)
    apply_update(expected, grads, 0.2)

    backward(store, cache, lookback=3, learning_rate=0.2)
    for n in PARAMETER_NAMES:
        assert np.allclose(store[n], expected[n], rtol=0, atol=1e-15)


def test_backward_does_not_mutate_cache():
    store = ParameterStore(3, 3, seed=4)
    cache = run_window(store, [0, 1, 2], [1, 2, 0])
    before = snapshot(cache)
    backward(store, cache, lookback=3, learning_rate=0.1)
    after = snapshot(cache)
    for name in FIELDS:
        assert all(np.array_equal(a, b) for a, b in zip(before[name], after[name])), name


# ----- malformed caches -----


def test_mismatched_lengths_fail_fast():
    store = ParameterStore(3, 3, seed=0)
    cache = run_window(store, [0, 1, 2], [1, 2, 0])
    cache.labels.pop()
    before = {n: v.copy() for n, v in store.items()}
    with pytest.raises(MalformedCacheError):
        backward(store, cache, lookback=3, learning_rate=0.1)
    assert all(np.array_equal(before[n], v) for n, v in store.items())


def test_wrong_vector_width_fails():
    store = ParameterStore(3, 3, seed=0)
    cache = run_window(store, [0, 1], [1, 2])
    cache.hidden[1] = np.zeros(4)
    with pytest.raises(MalformedCacheError):
        compute_gradients(store, cache, lookback=2)


def test_label_out_of_range_fails():
    store = ParameterStore(3, 3, seed=0)
    cache = run_window(store, [0, 1], [1, 2])
    cache.labels[0] = 3
    with pytest.raises(MalformedCacheError):
        compute_gradients(store, cache, lookback=2)


def test_negative_lookback():
    store = ParameterStore(2, 2, seed=0)
    with pytest.raises(ValueError):
        compute_gradients(store, run_window(store, [0], [1]), lookback=-1)


# ----- end to end -----


def test_two_symbol_window_loss_decreases():
    """Vocabulary {a, b}, H = 2, literal weights, one 4-step window 'abab' -> 'baba'."""
    tensors = {
        "Wa": [[0.2, -0.1], [0.05, 0.3]],
        "Wi": [[0.1, 0.4], [-0.3, 0.2]],
        "Wf": [[0.5, -0.2], [0.1, 0.1]],
        "Wo": [[-0.1, 0.3], [0.2, -0.4]],
        "Ra": [[0.1, 0.0], [0.0, 0.1]],
        "Ri": [[0.05, -0.05], [0.1, 0.0]],
        "Rf": [[0.0, 0.2], [-0.1, 0.05]],
        "Ro": [[0.1, 0.1], [-0.05, 0.2]],
        "ba": [0.0, 0.1],
        "bi": [0.1, -0.1],
        "bf": [0.3, 0.3],
        "bo": [-0.2, 0.0],
        "Wy": [[0.3, -0.2], [-0.1, 0.4]],
        "by": [0.05, -0.05],
    }
    store = ParameterStore(2, 2, tensors={k: np.array(v) for k, v in tensors.items()})
    a, b = 0, 1
    inputs, labels = [a, b, a, b], [b, a, b, a]

    cache = run_window(store, inputs, labels)
    loss_before = window_loss(cache)
    backward(store, cache, lookback=4, learning_rate=0.1)
    loss_after = window_loss(run_window(store, inputs, labels))
    logger.debug(f"loss {loss_before:.6f} -> {loss_after:.6f}")
    assert loss_after < loss_before
