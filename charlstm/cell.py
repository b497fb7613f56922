# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Forward pass of one LSTM step followed by the softmax classifier.

    a_t = tanh(Wa x + Ra h_{t-1} + ba)          candidate
    i_t = sigmoid(Wi x + Ri h_{t-1} + bi)       input gate
    f_t = sigmoid(Wf x + Rf h_{t-1} + bf)       forget gate
    o_t = sigmoid(Wo x + Ro h_{t-1} + bo)       output gate
    c_t = a_t * i_t + f_t * c_{t-1}
    h_t = tanh(c_t) * o_t
    p_t = softmax(Wy h_t + by)

Recurrent state is passed in and returned explicitly; nothing is kept on
the parameter store between calls.
"""

from dataclasses import dataclass

import numpy as np

from .activations import get_activation, softmax
from .params import ParameterStore

GATE_ACTIVATIONS = {
    "a": "tanh",
    "i": "sigmoid",
    "f": "sigmoid",
    "o": "sigmoid",
}


@dataclass
class LSTMState:
    """Cell and hidden vectors carried from one step to the next."""

    cell: np.ndarray
    hidden: np.ndarray

    @classmethod
    def zeros(cls, hidden_size: int) -> "LSTMState":
        return cls(np.zeros(hidden_size), np.zeros(hidden_size))


@dataclass
class StepOutput:
    """Everything one forward step produces (all vectors of length H, probs of length V)."""

    candidate: np.ndarray
    input_gate: np.ndarray
    forget_gate: np.ndarray
    output_gate: np.ndarray
    cell: np.ndarray
    hidden: np.ndarray
    probs: np.ndarray

    @property
    def state(self) -> LSTMState:
        return LSTMState(self.cell, self.hidden)


def gate(params: ParameterStore, g: str, x: np.ndarray, h_prev: np.ndarray) -> np.ndarray:
    """Activation of gate g: act(W_g x + R_g h_prev + b_g)."""
    act, _ = get_activation(GATE_ACTIVATIONS[g])
    pre = params[f"W{g}"] @ x + params[f"R{g}"] @ h_prev + params[f"b{g}"]
    return act(pre)


def forward(
    params: ParameterStore,
    x: np.ndarray,
    state: LSTMState,
    stable_softmax: bool = False,
) -> StepOutput:
    """
    Run one time step.

    Args:
        params: Weights to read (never modified).
        x: One-hot input, shape (V,).
        state: Previous cell/hidden state, each shape (H,).
        stable_softmax: Use the max-shifted softmax.

    Returns:
        StepOutput with the four gate activations, new state and the
        predicted next-symbol distribution.

    Raises:
        ValueError: If x or state do not match the store's dimensions.
    """
    H, V = params.hidden_size, params.vocab_size
    if x.shape != (V,):
        raise ValueError(f"Input has shape {x.shape}, expected ({V},)")
    if state.cell.shape != (H,) or state.hidden.shape != (H,):
        raise ValueError(
            f"State has shapes cell={state.cell.shape}, hidden={state.hidden.shape}, expected ({H},)"
        )

    a_t = gate(params, "a", x, state.hidden)
    i_t = gate(params, "i", x, state.hidden)
    f_t = gate(params, "f", x, state.hidden)
    o_t = gate(params, "o", x, state.hidden)

    c_t = a_t * i_t + f_t * state.cell
    h_t = np.tanh(c_t) * o_t

    y_t = params.Wy @ h_t + params.by
    p_t = softmax(y_t, stable=stable_softmax)

    return StepOutput(
        candidate=a_t,
        input_gate=i_t,
        forget_gate=f_t,
        output_gate=o_t,
        cell=c_t,
        hidden=h_t,
        probs=p_t,
    )
