# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
CharLSTM: the parameter store bound to a vocabulary and hyper-parameters.

This is the surface the training and generation drivers talk to:
reset / feedforward per character, run_window + backpropagate per window,
save / load of the parameters.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from . import bptt
from .cell import LSTMState, StepOutput, forward
from .config import ModelConfig
from .errors import ConfigurationError
from .params import ParameterStore
from .persistence import load_parameters, save_parameters
from .trajectory import TrajectoryCache
from .vocab import Vocabulary


class CharLSTM:
    """
    Character-level LSTM language model.

    Attributes:
        vocab: Symbol <-> index mapping; fixes V.
        config: Hyper-parameters; fixes H.
        params: The weights, updated in place by ``backpropagate``.
    """

    def __init__(
        self,
        vocab: Vocabulary,
        config: ModelConfig,
        params: Optional[ParameterStore] = None,
    ) -> None:
        """
        Args:
            vocab: Vocabulary the model predicts over.
            config: Hyper-parameters.
            params: Existing weights. Initialised from ``config.seed`` if None.

        Raises:
            ConfigurationError: If params was built for a different H or V.
        """
        self.vocab = vocab
        self.config = config
        if params is None:
            params = ParameterStore(config.hidden_size, len(vocab), seed=config.seed)
        elif (params.hidden_size, params.vocab_size) != (config.hidden_size, len(vocab)):
            raise ConfigurationError(
                f"Parameters are H={params.hidden_size}, V={params.vocab_size}; "
                f"model expects H={config.hidden_size}, V={len(vocab)}"
            )
        self.params = params

    def reset(self) -> LSTMState:
        """Zero recurrent state for the start of a window or generation run."""
        return LSTMState.zeros(self.config.hidden_size)

    def feedforward(self, x: Union[str, np.ndarray], state: LSTMState) -> StepOutput:
        """
        One forward step.

        Args:
            x: A symbol from the vocabulary, or its one-hot vector.
            state: State returned by the previous step (or ``reset``).
        """
        if isinstance(x, str):
            x = self.vocab.one_hot(x)
        return forward(self.params, x, state, stable_softmax=self.config.stable_softmax)

    def run_window(self, inputs: Sequence[str], labels: Sequence[str]) -> Tuple[TrajectoryCache, float]:
        """
        Forward sweep over a window from a fresh state.

        Args:
            inputs: Symbols fed to the model, one per step.
            labels: The symbol that follows each input.

        Returns:
            The filled trajectory cache and the mean cross-entropy loss.
        """
        if len(inputs) != len(labels):
            raise ValueError(f"{len(inputs)} inputs but {len(labels)} labels")
        cache = TrajectoryCache()
        state = self.reset()
        for symbol, label in zip(inputs, labels):
            x = self.vocab.one_hot(symbol)
            step = self.feedforward(x, state)
            cache.append(step, x, self.vocab.index(label))
            state = step.state
        return cache, bptt.window_loss(cache)

    def backpropagate(self, cache: TrajectoryCache) -> None:
        """One truncated-BPTT gradient-descent step from a filled cache."""
        bptt.backward(
            self.params,
            cache,
            lookback=self.config.lookback,
            learning_rate=self.config.learning_rate,
            clip_threshold=self.config.clip_threshold,
        )

    def save(self, path: Union[str, Path]) -> None:
        save_parameters(self.params, path)

    @classmethod
    def load(cls, path: Union[str, Path], vocab: Vocabulary, config: ModelConfig) -> "CharLSTM":
        """Rebuild a model from a parameter file; shapes are checked against vocab and config."""
        return cls(vocab, config, load_parameters(path, config.hidden_size, len(vocab)))
