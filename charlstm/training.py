# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Training driver: slide a window over the corpus, one forward sweep and one
truncated-BPTT update per window.
"""

import logging
import time
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from .model import CharLSTM

logger = logging.getLogger(__name__)

EpochCallback = Callable[[int, float], None]


def iter_windows(text: str, num_steps: int, stride: int = 1) -> Iterator[Tuple[str, str]]:
    """
    Yield (inputs, labels) training windows over ``text``.

    Window k starts at k * stride and holds up to ``num_steps`` consecutive
    (symbol, next symbol) pairs. The first window that runs into the end of
    the corpus is shortened and is the last one yielded.

    Raises:
        ValueError: If text has fewer than two symbols or num_steps/stride < 1.
    """
    if num_steps < 1 or stride < 1:
        raise ValueError(f"num_steps and stride must be >= 1, got {num_steps}, {stride}")
    L = len(text)
    if L < 2:
        raise ValueError("Training text needs at least two symbols")
    for start in range(0, L - 1, stride):
        n = min(num_steps, L - 1 - start)
        yield text[start : start + n], text[start + 1 : start + n + 1]
        if n < num_steps:
            break


def train(
    model: CharLSTM,
    text: str,
    epochs: Optional[int] = None,
    stride: int = 1,
    on_epoch_end: Optional[EpochCallback] = None,
) -> List[float]:
    """
    Train ``model`` in place on ``text``.

    Args:
        model: Model to update.
        text: Training corpus; every symbol must be in ``model.vocab``.
        epochs: Passes over the corpus; ``model.config.epochs`` if None.
        stride: Offset between the starts of consecutive windows.
        on_epoch_end: Called as ``on_epoch_end(epoch, mean_loss)`` after every
            epoch (epoch counts from 1), e.g. to checkpoint the parameters.

    Returns:
        Mean window loss of every epoch.
    """
    config = model.config
    epochs = config.epochs if epochs is None else epochs
    model.vocab.encode(text)  # unknown symbols fail here, not mid-epoch

    history: List[float] = []
    iteration = 0
    t0 = time.time()
    for epoch in range(1, epochs + 1):
        losses = []
        for inputs, labels in iter_windows(text, config.num_steps, stride):
            cache, loss = model.run_window(inputs, labels)
            model.backpropagate(cache)
            losses.append(loss)
            if iteration % config.log_every == 0:
                logger.info("iter %8d  loss %.4f", iteration, loss)
            iteration += 1

        mean_loss = float(np.mean(losses))
        history.append(mean_loss)
        logger.info("epoch %d/%d  loss %.4f  (%.1fs)", epoch, epochs, mean_loss, time.time() - t0)
        if on_epoch_end is not None:
            on_epoch_end(epoch, mean_loss)
    return history
