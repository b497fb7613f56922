# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Truncated backpropagation through time for the LSTM cell.

Walking a window backwards from its last step, each step t contributes

    d_y     = p_t - onehot(label_t)
    d_h     = Wy^T d_y + d_h_carry
    d_c     = d_h * o_t * (1 - tanh(c_t)^2)  [+ d_c_carry * f_{t+1}]
    delta_a = d_c * i_t * (1 - a_t^2)
    delta_i = d_c * a_t * i_t (1 - i_t)
    delta_f = d_c * c_{t-1} * f_t (1 - f_t)        (zero at t = 0)
    delta_o = d_h * tanh(c_t) * o_t (1 - o_t)
    d_h_carry = sum_g R_g^T delta_g

and accumulates outer products into the gradient of every tensor. Only the
last ``lookback`` steps are visited. Gradients are clipped element-wise and
applied with plain gradient descent once the whole window is processed.
"""

import logging
from typing import Dict, List, Tuple, Union

import numpy as np

from .activations import cross_entropy, get_activation, tanh_backward
from .cell import GATE_ACTIVATIONS
from .params import GATES, ParameterStore
from .trajectory import TrajectoryCache

logger = logging.getLogger(__name__)

CLIP_THRESHOLD: float = 10.0

Gradients = Dict[str, np.ndarray]


def window_loss(cache: TrajectoryCache) -> float:
    """Mean per-step cross-entropy over a window (0.0 for an empty one)."""
    if cache.is_empty:
        return 0.0
    total = sum(cross_entropy(p, y) for p, y in zip(cache.probs, cache.labels))
    return total / len(cache)


def compute_gradients(
    params: ParameterStore,
    cache: TrajectoryCache,
    lookback: int,
    return_history: bool = False,
) -> Union[Gradients, Tuple[Gradients, List[Dict[str, np.ndarray]]]]:
    """
    Accumulate unclipped gradients for every parameter over a window.

    Parameters
    ----------
    params : ParameterStore
        Weights the window was computed with (read only).
    cache : TrajectoryCache
        Forward snapshots of the window (read only).
    lookback : int
        Number of most recent steps that receive a gradient.
    return_history : bool
        If True, also return per-step intermediates, newest step first.

    Returns
    -------
    grads : dict[str, ndarray]
        One accumulator per tensor, same shapes as the store.
    history : list[dict], optional
        For every visited step: ``t``, ``d_hidden``, ``d_cell`` and the four
        gate deltas ``delta_a`` .. ``delta_o``.

    Raises
    ------
    MalformedCacheError
        If the cache is inconsistent or does not match the store.
    ValueError
        If lookback is negative.
    """
    if lookback < 0:
        raise ValueError(f"lookback must be non-negative, got {lookback}")
    cache.validate(params)

    H = params.hidden_size
    grads = params.zeros_like()
    history: List[Dict[str, np.ndarray]] = []
    backward_fn = {g: get_activation(name)[1] for g, name in GATE_ACTIVATIONS.items()}

    T = len(cache)
    stop = max(0, T - lookback)
    d_h_carry = np.zeros(H)
    d_c = np.zeros(H)

    for t in range(T - 1, stop - 1, -1):
        a_t = cache.candidate[t]
        i_t = cache.input_gate[t]
        f_t = cache.forget_gate[t]
        o_t = cache.output_gate[t]
        c_t = cache.cell[t]
        h_t = cache.hidden[t]
        x_t = cache.inputs[t]

        # softmax + cross-entropy
        d_y = cache.probs[t].copy()
        d_y[cache.labels[t]] -= 1.0

        grads["Wy"] += np.outer(d_y, h_t)
        grads["by"] += d_y

        d_h = params.Wy.T @ d_y + d_h_carry

        tanh_c = np.tanh(c_t)
        if t + 1 < T:
            d_c = d_h * o_t * tanh_backward(tanh_c) + d_c * cache.forget_gate[t + 1]
        else:
            d_c = d_h * o_t * tanh_backward(tanh_c)

        deltas = {
            "a": d_c * i_t * backward_fn["a"](a_t),
            "i": d_c * a_t * backward_fn["i"](i_t),
            "f": d_c * cache.cell[t - 1] * backward_fn["f"](f_t) if t > 0 else np.zeros(H),
            "o": d_h * tanh_c * backward_fn["o"](o_t),
        }

        d_h_carry = sum(params[f"R{g}"].T @ deltas[g] for g in GATES)

        for g in GATES:
            grads[f"W{g}"] += np.outer(deltas[g], x_t)
            # no previous hidden state inside the window at t = 0
            if t > 0:
                grads[f"R{g}"] += np.outer(deltas[g], cache.hidden[t - 1])
            grads[f"b{g}"] += deltas[g]

        if return_history:
            record = {"t": t, "d_hidden": d_h, "d_cell": d_c}
            record.update({f"delta_{g}": deltas[g] for g in GATES})
            history.append(record)

    if return_history:
        return grads, history
    return grads


def clip_gradients(grads: Gradients, threshold: float = CLIP_THRESHOLD) -> Gradients:
    """Clamp every accumulator element-wise to [-threshold, threshold], in place."""
    for g in grads.values():
        np.clip(g, -threshold, threshold, out=g)
    return grads


def apply_update(params: ParameterStore, grads: Gradients, learning_rate: float) -> None:
    """Plain gradient descent: p -= learning_rate * g for every tensor, in place."""
    for name, value in params.items():
        value -= learning_rate * grads[name]


def backward(
    params: ParameterStore,
    cache: TrajectoryCache,
    lookback: int,
    learning_rate: float,
    clip_threshold: float = CLIP_THRESHOLD,
) -> None:
    """
    One truncated-BPTT update of ``params`` from a full window.

    The cache is left untouched. ``params`` is modified only after every
    gradient has been accumulated and clipped.

    Args:
        params: Store to update in place.
        cache: Forward snapshots of the window.
        lookback: Number of most recent steps that receive a gradient.
        learning_rate: Step size of the descent update.
        clip_threshold: Element-wise gradient bound.
    """
    grads = compute_gradients(params, cache, lookback)
    clip_gradients(grads, clip_threshold)
    apply_update(params, grads, learning_rate)
    if logger.isEnabledFor(logging.DEBUG):
        peak = max(float(np.abs(g).max()) for g in grads.values())
        logger.debug("bptt: T=%d lookback=%d max|g|=%.4g", len(cache), lookback, peak)
