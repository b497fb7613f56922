#!/usr/bin/env python3
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Train a character-level LSTM on a text file, or generate text from one.

    python char_lstm.py --train data/input.txt --epochs 5 --state-file weights.txt
    python char_lstm.py --generate --state-file weights.txt --seed-text "Japan is " --length 200
"""

import argparse
import logging
import pathlib
import sys

from charlstm import CharLSTM, ModelConfig, Vocabulary, generate, train
from charlstm.errors import ConfigurationError, ResourceError
from charlstm.persistence import load_metadata, metadata_path, save_metadata

logger = logging.getLogger("char_lstm")

DEFAULT_SEED_TEXT = "Japan is a sovereign island nation in East Asia "


def load_text(path) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as exc:
        raise ResourceError(f"{path} not found") from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{path} is not UTF-8 text: {exc}") from exc


def build_config(args, base=None) -> ModelConfig:
    """Flags given on the command line override ``base`` (or --config, or the defaults)."""
    if base is None:
        base = ModelConfig.from_json(args.config) if args.config else ModelConfig()
    return base.replace(
        hidden_size=args.hidden_size,
        learning_rate=args.learning_rate,
        epochs=args.epochs,
        num_steps=args.steps,
        lookback=args.lookback,
        sampling=args.sampling,
        seed=args.seed,
        log_every=args.log_every,
    )


# ---------- training ----------
def run_train(args):
    text = load_text(args.train)
    state_file = pathlib.Path(args.state_file)
    meta_file = metadata_path(state_file)

    if args.resume:
        if args.config:
            raise ConfigurationError("--config cannot be combined with --resume")
        vocab, saved = load_metadata(meta_file)
        config = build_config(args, base=saved)
        if saved.hidden_size != config.hidden_size:
            raise ConfigurationError(
                f"{meta_file} was trained with hidden_size={saved.hidden_size}, "
                f"got {config.hidden_size}"
            )
        model = CharLSTM.load(state_file, vocab, config)
        logger.info("resumed from %s", state_file)
    else:
        config = build_config(args)
        vocab = Vocabulary.from_text(text)
        model = CharLSTM(vocab, config)
    logger.info(
        "vocab %d  hidden %d  params %d", len(vocab), config.hidden_size, model.params.num_parameters
    )

    def checkpoint(epoch, loss):
        model.save(state_file)
        save_metadata(meta_file, vocab, config)
        logger.info("epoch %d: state saved to %s (loss %.4f)", epoch, state_file, loss)

    train(model, text, on_epoch_end=checkpoint)


# ---------- generation ----------
def run_generate(args):
    state_file = pathlib.Path(args.state_file)
    vocab, saved = load_metadata(metadata_path(state_file))
    config = saved.replace(sampling=args.sampling, seed=args.seed)
    model = CharLSTM.load(state_file, vocab, config)
    print(generate(model, args.seed_text, args.length))


def main(argv=None):
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("--train", type=str, metavar="FILE", help="training corpus")
    ap.add_argument("--generate", action="store_true")
    ap.add_argument("--resume", action="store_true", help="continue from --state-file")
    ap.add_argument("--state-file", type=str, default="./weights.txt")
    ap.add_argument("--config", type=str, help="JSON file with ModelConfig fields")
    ap.add_argument("--hidden-size", type=int)
    ap.add_argument("--learning-rate", type=float)
    ap.add_argument("--epochs", type=int)
    ap.add_argument("--steps", type=int, help="time steps per window")
    ap.add_argument("--lookback", type=int, help="BPTT truncation length")
    ap.add_argument("--sampling", choices=["argmax", "weighted"])
    ap.add_argument("--seed", type=int)
    ap.add_argument("--log-every", type=int)
    ap.add_argument("--seed-text", type=str, default=DEFAULT_SEED_TEXT)
    ap.add_argument("--length", type=int, default=200)
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(message)s")

    if not args.train and not args.generate:
        print("Nothing to do. Pass --train and/or --generate.")
        return 1
    try:
        if args.train:
            run_train(args)
        if args.generate:
            run_generate(args)
    except (ConfigurationError, ResourceError, KeyError) as exc:
        logger.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
