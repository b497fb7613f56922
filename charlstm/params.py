# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Parameter store for a single LSTM cell plus its softmax classifier.

Tensor names use a two-letter code, the second letter naming the gate:

    a  candidate activation (tanh)
    i  input gate           (sigmoid)
    f  forget gate          (sigmoid)
    o  output gate          (sigmoid)
    y  classifier projection

W* map the one-hot input (H, V), R* map the previous hidden state (H, H),
b* are the gate biases (H,), Wy is the projection (V, H) and by its bias (V,).
"""

from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from .errors import ConfigurationError

GATES: Tuple[str, ...] = ("a", "i", "f", "o")

# Fixed order used when writing parameter files.
PARAMETER_NAMES: Tuple[str, ...] = (
    "Wa", "Wi", "Wf", "Wo",
    "Ra", "Ri", "Rf", "Ro",
    "ba", "bi", "bf", "bo",
    "Wy", "by",
)


def parameter_shapes(hidden_size: int, vocab_size: int) -> Dict[str, Tuple[int, ...]]:
    """Expected shape of every tensor for the given H and V."""
    shapes: Dict[str, Tuple[int, ...]] = {}
    for g in GATES:
        shapes[f"W{g}"] = (hidden_size, vocab_size)
        shapes[f"R{g}"] = (hidden_size, hidden_size)
        shapes[f"b{g}"] = (hidden_size,)
    shapes["Wy"] = (vocab_size, hidden_size)
    shapes["by"] = (vocab_size,)
    return {name: shapes[name] for name in PARAMETER_NAMES}


class ParameterStore:
    """
    All weights and biases of the model.

    Tensors are plain float64 attributes (``store.Wa``, ``store.by``, ...).
    Updates happen in place so shapes and array identities never change
    after construction.

    Attributes:
        hidden_size: H.
        vocab_size: V.
    """

    def __init__(
        self,
        hidden_size: int,
        vocab_size: int,
        seed: Optional[int] = None,
        tensors: Optional[Dict[str, np.ndarray]] = None,
    ) -> None:
        """
        Args:
            hidden_size: Hidden state width H.
            vocab_size: Alphabet size V (input and output width).
            seed: RNG seed for reproducible init. Ignored when tensors is given.
            tensors: Explicit values for all fourteen tensors.

        Raises:
            ConfigurationError: Non-positive sizes, or tensors with a missing,
                unknown or mis-shaped entry.
        """
        if hidden_size < 1 or vocab_size < 1:
            raise ConfigurationError(
                f"hidden_size and vocab_size must be positive, got H={hidden_size}, V={vocab_size}"
            )
        self.hidden_size = hidden_size
        self.vocab_size = vocab_size
        shapes = parameter_shapes(hidden_size, vocab_size)

        if tensors is None:
            rng = np.random.default_rng(seed)
            for name, shape in shapes.items():
                setattr(self, name, rng.uniform(-1.0, 1.0, size=shape))
            return

        missing = [n for n in PARAMETER_NAMES if n not in tensors]
        unknown = [n for n in tensors if n not in shapes]
        if missing or unknown:
            raise ConfigurationError(f"Bad tensor set: missing={missing}, unknown={unknown}")
        for name, shape in shapes.items():
            value = np.array(tensors[name], dtype=np.float64)
            if value.shape != shape:
                raise ConfigurationError(
                    f"Tensor {name} has shape {value.shape}, expected {shape} "
                    f"for H={hidden_size}, V={vocab_size}"
                )
            setattr(self, name, value)

    def __getitem__(self, name: str) -> np.ndarray:
        if name not in PARAMETER_NAMES:
            raise KeyError(f"Unknown parameter: {name}. Available: {list(PARAMETER_NAMES)}")
        return getattr(self, name)

    def __iter__(self) -> Iterator[str]:
        return iter(PARAMETER_NAMES)

    def items(self) -> Iterator[Tuple[str, np.ndarray]]:
        for name in PARAMETER_NAMES:
            yield name, getattr(self, name)

    def zeros_like(self) -> Dict[str, np.ndarray]:
        """Fresh zero gradient accumulators, one per tensor."""
        return {name: np.zeros_like(value) for name, value in self.items()}

    def copy(self) -> "ParameterStore":
        """Independent deep copy (e.g. a snapshot for a parallel worker)."""
        return ParameterStore(
            self.hidden_size,
            self.vocab_size,
            tensors={name: value.copy() for name, value in self.items()},
        )

    @property
    def shapes(self) -> Dict[str, Tuple[int, ...]]:
        return parameter_shapes(self.hidden_size, self.vocab_size)

    @property
    def num_parameters(self) -> int:
        return sum(value.size for _, value in self.items())
