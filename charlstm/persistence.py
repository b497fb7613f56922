# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Parameter file format.

One line per tensor, row-major values, tab separated, CRLF terminated:

    Wa\t0.12\t-0.53\t...\t\r\n

Lines are written in the fixed order of ``PARAMETER_NAMES`` and matched by
name on load. Loading is strict: every tensor must appear exactly once with
exactly rows * cols values, otherwise nothing is loaded.

A JSON sidecar (``<state file>.meta.json``) keeps the vocabulary and the
hyper-parameters, which the parameter file itself does not record.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Tuple, Union

import numpy as np

from .config import ModelConfig
from .errors import ConfigurationError, ResourceError
from .params import PARAMETER_NAMES, ParameterStore, parameter_shapes
from .vocab import Vocabulary

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _format_line(name: str, value: np.ndarray) -> str:
    # repr() is the shortest string that round-trips a float64 exactly
    fields = [name] + [repr(float(v)) for v in value.ravel(order="C")]
    return "\t".join(fields) + "\t\r\n"


def save_parameters(params: ParameterStore, path: PathLike) -> None:
    """
    Write all fourteen tensors to ``path``.

    Raises:
        ResourceError: If the file cannot be written.
    """
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            for name, value in params.items():
                f.write(_format_line(name, value))
    except OSError as exc:
        raise ResourceError(f"Unable to open {path}") from exc
    logger.info("saved %d parameters to %s", params.num_parameters, path)


def _parse_line(line: str, lineno: int, path: PathLike) -> Tuple[str, np.ndarray]:
    fields = line.split()
    name, raw = fields[0], fields[1:]
    try:
        values = np.array([float(v) for v in raw], dtype=np.float64)
    except ValueError as exc:
        raise ConfigurationError(f"{path}:{lineno}: non-numeric value in {name}") from exc
    return name, values


def load_parameters(path: PathLike, hidden_size: int, vocab_size: int) -> ParameterStore:
    """
    Read a parameter file written by ``save_parameters``.

    Args:
        path: File to read.
        hidden_size: H the caller is configured for.
        vocab_size: V of the caller's vocabulary.

    Returns:
        A new ParameterStore.

    Raises:
        ResourceError: If the file is missing or unreadable.
        ConfigurationError: Unknown or duplicated tensor names, missing
            tensors, non-numeric values, or a value count that does not
            match H and V.
    """
    shapes = parameter_shapes(hidden_size, vocab_size)
    tensors: Dict[str, np.ndarray] = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as exc:
        raise ResourceError(f"Unable to open file {path}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{path} is not a text parameter file: {exc}") from exc

    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        name, values = _parse_line(line, lineno, path)
        if name not in shapes:
            raise ConfigurationError(f"{path}:{lineno}: unknown tensor name {name!r}")
        if name in tensors:
            raise ConfigurationError(f"{path}:{lineno}: tensor {name} appears twice")
        shape = shapes[name]
        expected = int(np.prod(shape))
        if values.size != expected:
            raise ConfigurationError(
                f"{path}:{lineno}: tensor {name} has {values.size} values, expected "
                f"{expected} for shape {shape} (H={hidden_size}, V={vocab_size})"
            )
        tensors[name] = values.reshape(shape)

    missing = [n for n in PARAMETER_NAMES if n not in tensors]
    if missing:
        raise ConfigurationError(f"{path}: missing tensors {missing}")

    logger.info("loaded parameters from %s (H=%d, V=%d)", path, hidden_size, vocab_size)
    return ParameterStore(hidden_size, vocab_size, tensors=tensors)


def metadata_path(state_file: PathLike) -> Path:
    """Sidecar path for a parameter file: ``weights.txt`` -> ``weights.txt.meta.json``."""
    state_file = Path(state_file)
    return state_file.with_name(state_file.name + ".meta.json")


def save_metadata(path: PathLike, vocab: Vocabulary, config: ModelConfig) -> None:
    """Write the vocabulary and hyper-parameters as JSON."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"vocab": vocab.save(), "config": config.to_dict()}, f)
    except OSError as exc:
        raise ResourceError(f"Unable to open {path}") from exc
    logger.debug("saved metadata to %s", path)


def load_metadata(path: PathLike) -> Tuple[Vocabulary, ModelConfig]:
    """
    Read a sidecar written by ``save_metadata``.

    Raises:
        ResourceError: If the file is missing or unreadable.
        ConfigurationError: If its content is not a valid sidecar.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            meta = json.load(f)
    except OSError as exc:
        raise ResourceError(f"Unable to open file {path}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
    try:
        vocab = Vocabulary.load(meta["vocab"])
        raw_config = meta["config"]
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"{path} is not a valid metadata file: {exc}") from exc
    return vocab, ModelConfig.from_dict(raw_config)
