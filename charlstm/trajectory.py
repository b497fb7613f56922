# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Trajectory cache for truncated backpropagation through time.

The forward sweep over a training window appends one snapshot per step;
the backward sweep then reads the whole window in reverse. Unlike a KV
cache used at inference time, nothing here is pre-allocated: a window may
end early at the end of the corpus, so the per-field lists just grow.
"""

from typing import List, Optional

import numpy as np

from .cell import StepOutput
from .errors import MalformedCacheError
from .params import ParameterStore

FIELDS = (
    "candidate",
    "input_gate",
    "forget_gate",
    "output_gate",
    "hidden",
    "cell",
    "inputs",
    "probs",
    "labels",
)


class TrajectoryCache:
    """
    Per-step forward snapshots for one window.

    Attributes:
        candidate, input_gate, forget_gate, output_gate: Gate activations (H,).
        hidden, cell: State after each step (H,).
        inputs: One-hot inputs (V,).
        probs: Predicted next-symbol distributions (V,).
        labels: Index of the true next symbol.
    """

    def __init__(self) -> None:
        self.candidate: List[np.ndarray] = []
        self.input_gate: List[np.ndarray] = []
        self.forget_gate: List[np.ndarray] = []
        self.output_gate: List[np.ndarray] = []
        self.hidden: List[np.ndarray] = []
        self.cell: List[np.ndarray] = []
        self.inputs: List[np.ndarray] = []
        self.probs: List[np.ndarray] = []
        self.labels: List[int] = []

    def append(self, step: StepOutput, x: np.ndarray, label: int) -> None:
        """
        Record one forward step.

        Args:
            step: Output of ``cell.forward`` for this step.
            x: The one-hot input that produced it.
            label: Index of the symbol that actually came next.
        """
        self.candidate.append(step.candidate)
        self.input_gate.append(step.input_gate)
        self.forget_gate.append(step.forget_gate)
        self.output_gate.append(step.output_gate)
        self.hidden.append(step.hidden)
        self.cell.append(step.cell)
        self.inputs.append(x)
        self.probs.append(step.probs)
        self.labels.append(int(label))

    def __len__(self) -> int:
        return len(self.inputs)

    @property
    def is_empty(self) -> bool:
        """Check if cache is empty."""
        return len(self) == 0

    def reset(self) -> None:
        """Drop all snapshots (start of a new window)."""
        for name in FIELDS:
            getattr(self, name).clear()

    def validate(self, params: Optional[ParameterStore] = None) -> None:
        """
        Check the cache is usable by the backward pass.

        Args:
            params: If given, also check vector widths against H and V.

        Raises:
            MalformedCacheError: Per-field lengths disagree, a label is out of
                range, or a vector has the wrong width.
        """
        lengths = {name: len(getattr(self, name)) for name in FIELDS}
        if len(set(lengths.values())) > 1:
            raise MalformedCacheError(f"Trajectory fields have mismatched lengths: {lengths}")
        if params is None:
            return

        H, V = params.hidden_size, params.vocab_size
        expected = {
            "candidate": H,
            "input_gate": H,
            "forget_gate": H,
            "output_gate": H,
            "hidden": H,
            "cell": H,
            "inputs": V,
            "probs": V,
        }
        for name, width in expected.items():
            for t, vec in enumerate(getattr(self, name)):
                if np.shape(vec) != (width,):
                    raise MalformedCacheError(
                        f"{name}[{t}] has shape {np.shape(vec)}, expected ({width},)"
                    )
        for t, label in enumerate(self.labels):
            if not 0 <= label < V:
                raise MalformedCacheError(f"labels[{t}] = {label} is outside [0, {V})")
