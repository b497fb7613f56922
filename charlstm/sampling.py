# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Next-symbol selection policies for generation.

Currently implemented:
- argmax: always the most probable symbol (deterministic)
- weighted: a draw from the predicted distribution
"""

from typing import Callable, Optional

import numpy as np

Sampler = Callable[[np.ndarray, Optional[np.random.Generator]], int]


def argmax(probs: np.ndarray, rng: Optional[np.random.Generator] = None) -> int:
    """
    Index of the largest probability. Ties go to the lowest index.

    Args:
        probs: Distribution over the vocabulary, shape (V,).
        rng: Unused; accepted so every sampler has the same signature.
    """
    return int(np.argmax(probs))


def weighted(probs: np.ndarray, rng: Optional[np.random.Generator] = None) -> int:
    """
    Draw an index with probability probs[i].

    Args:
        probs: Distribution over the vocabulary, shape (V,).
        rng: Generator to draw from; a fresh unseeded one if None.
    """
    rng = np.random.default_rng() if rng is None else rng
    p = probs / probs.sum()  # choice() needs an exact sum of 1
    return int(rng.choice(p.size, p=p))


# Registry for easy lookup by name
SAMPLERS = {
    "argmax": argmax,
    "weighted": weighted,
}


def get_sampler(name: str) -> Sampler:
    """
    Get a sampling policy by name.

    Raises:
        KeyError: If the policy name is not recognized.
    """
    if name not in SAMPLERS:
        raise KeyError(f"Unknown sampling policy: {name}. Available: {list(SAMPLERS.keys())}")
    return SAMPLERS[name]
