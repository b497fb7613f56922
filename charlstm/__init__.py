# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
charlstm
========

A character-level LSTM language model in plain NumPy, trained with
truncated backpropagation through time and hand-written gradients.

Public API
~~~~~~~~~~
- Model
    - `CharLSTM`, `ModelConfig`, `Vocabulary`
- Engines
    - `forward`, `LSTMState`, `StepOutput`
    - `TrajectoryCache`
    - `backward`, `compute_gradients`, `clip_gradients`, `apply_update`
- Drivers
    - `train`, `iter_windows`, `generate`
- Persistence
    - `save_parameters`, `load_parameters`, `save_metadata`, `load_metadata`

Everything else lives in sub-modules and is **not** considered part of the
stable interface.

Example
-------
>>> import charlstm as cl
>>> text = "abababab"
>>> model = cl.CharLSTM(cl.Vocabulary.from_text(text), cl.ModelConfig(hidden_size=8, seed=0))
>>> history = cl.train(model, text, epochs=2)
>>> cl.generate(model, "ab", 4)[:2]
'ab'
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from .bptt import apply_update, backward, clip_gradients, compute_gradients, window_loss
from .cell import LSTMState, StepOutput, forward
from .config import ModelConfig
from .errors import ConfigurationError, MalformedCacheError, ResourceError
from .generation import generate
from .model import CharLSTM
from .params import PARAMETER_NAMES, ParameterStore
from .persistence import load_metadata, load_parameters, save_metadata, save_parameters
from .sampling import get_sampler
from .trajectory import TrajectoryCache
from .training import iter_windows, train
from .vocab import Vocabulary

__all__ = [
    "CharLSTM",
    "ModelConfig",
    "Vocabulary",
    "ParameterStore",
    "PARAMETER_NAMES",
    "forward",
    "LSTMState",
    "StepOutput",
    "TrajectoryCache",
    "backward",
    "compute_gradients",
    "clip_gradients",
    "apply_update",
    "window_loss",
    "train",
    "iter_windows",
    "generate",
    "get_sampler",
    "save_parameters",
    "load_parameters",
    "save_metadata",
    "load_metadata",
    "ConfigurationError",
    "ResourceError",
    "MalformedCacheError",
]

# ---------------------------------------------------------------------
# Version string (helps "pip show charlstm")
# ---------------------------------------------------------------------
try:  # installed via pip / build backend
    __version__ = _pkg_version(__name__)
except PackageNotFoundError:  # running from a checkout
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------
# Library logging stays silent unless the application configures it.
# ---------------------------------------------------------------------
import logging as _logging

_logging.getLogger(__name__).addHandler(_logging.NullHandler())
