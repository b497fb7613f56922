# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Text generation by feeding a sliding seed window through the model.
"""

from typing import Optional, Union

import numpy as np

from .model import CharLSTM
from .sampling import Sampler, get_sampler


def generate(
    model: CharLSTM,
    seed: str,
    length: int,
    sampler: Optional[Union[str, Sampler]] = None,
    rng: Optional[np.random.Generator] = None,
) -> str:
    """
    Autoregressive generation.

    For each new symbol: reset the state, feed the whole current window,
    pick the next symbol from the last distribution, append it to the output
    and slide the window forward by one (drop oldest, append newest). The
    window keeps the seed's length; the state is rebuilt from scratch for
    every symbol rather than carried over.

    Parameters
    ----------
    model : CharLSTM
        Trained model (read only).
    seed : str
        Initial window; every symbol must be in the vocabulary.
    length : int
        Number of symbols to generate.
    sampler : str | callable | None
        Policy name or callable; ``model.config.sampling`` if None.
    rng : np.random.Generator | None
        Randomness for stochastic policies; seeded from ``model.config.seed``
        if None.

    Returns
    -------
    str
        seed followed by the generated symbols.
    """
    if not seed:
        raise ValueError("seed must contain at least one symbol")
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    # fail before generating anything if the seed has foreign symbols
    model.vocab.encode(seed)

    if sampler is None:
        sampler = model.config.sampling
    if isinstance(sampler, str):
        sampler = get_sampler(sampler)
    if rng is None:
        rng = np.random.default_rng(model.config.seed)

    window = seed
    output = [seed]
    for _ in range(length):
        state = model.reset()
        for symbol in window:
            step = model.feedforward(symbol, state)
            state = step.state
        nxt = model.vocab.symbol(sampler(step.probs, rng))
        output.append(nxt)
        window = window[1:] + nxt
    return "".join(output)
