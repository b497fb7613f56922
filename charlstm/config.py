# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Hyper-parameters, fixed for the lifetime of a parameter store.
"""

import json
import numbers
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import ConfigurationError, ResourceError
from .sampling import SAMPLERS


def _check_type(name, value, kind) -> None:
    # bool is an int subclass but never a valid count or rate
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ConfigurationError(f"{name} must be {kind.__name__}, got {value!r}")


@dataclass(frozen=True)
class ModelConfig:
    """
    Attributes:
        hidden_size: LSTM state width H.
        learning_rate: Gradient-descent step size.
        epochs: Passes over the training corpus.
        num_steps: Time steps per training window.
        lookback: Most recent steps of a window that receive a gradient.
        clip_threshold: Element-wise gradient bound.
        stable_softmax: Use the max-shifted softmax instead of the raw one.
        sampling: Next-symbol policy for generation ('argmax' or 'weighted').
        seed: RNG seed for initialisation and weighted sampling.
        log_every: Log the window loss every this many training iterations.
    """

    hidden_size: int = 100
    learning_rate: float = 0.1
    epochs: int = 10
    num_steps: int = 25
    lookback: int = 25
    clip_threshold: float = 10.0
    stable_softmax: bool = False
    sampling: str = "argmax"
    seed: Optional[int] = None
    log_every: int = 1000

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError on the first out-of-range value."""
        for name in ("hidden_size", "epochs", "num_steps", "lookback", "log_every"):
            _check_type(name, getattr(self, name), int)
        for name in ("learning_rate", "clip_threshold"):
            _check_type(name, getattr(self, name), numbers.Real)
        if not isinstance(self.stable_softmax, bool):
            raise ConfigurationError(f"stable_softmax must be a bool, got {self.stable_softmax!r}")
        if not isinstance(self.sampling, str):
            raise ConfigurationError(f"sampling must be a string, got {self.sampling!r}")
        if self.seed is not None:
            _check_type("seed", self.seed, int)
        for name in ("hidden_size", "epochs", "num_steps", "log_every"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.lookback < 0:
            raise ConfigurationError(f"lookback must be >= 0, got {self.lookback}")
        if self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be > 0, got {self.learning_rate}")
        if self.clip_threshold <= 0:
            raise ConfigurationError(f"clip_threshold must be > 0, got {self.clip_threshold}")
        if self.sampling not in SAMPLERS:
            raise ConfigurationError(
                f"Unknown sampling policy: {self.sampling}. Available: {list(SAMPLERS.keys())}"
            )

    def replace(self, **overrides) -> "ModelConfig":
        """Copy with some fields changed; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "ModelConfig":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config must be a JSON object, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ModelConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise ResourceError(f"Unable to open config file {path}") from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    def save_json(self, path: Union[str, Path]) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as exc:
            raise ResourceError(f"Unable to write config file {path}") from exc
