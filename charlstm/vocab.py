# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Character vocabulary and one-hot encoding.

Indices are assigned in order of first appearance in the corpus, so the same
training text always yields the same V and the same index for every symbol.
A Vocabulary is handed explicitly to every model; there is no module-level
symbol table.
"""

from typing import Dict, Iterable, List, Sequence

import numpy as np


class Vocabulary:
    """
    Bidirectional symbol <-> index mapping over a dense range [0, V).

    Attributes:
        stoi: Symbol-to-index mapping.
        itos: Index-to-symbol mapping.
    """

    def __init__(self, symbols: Sequence[str]):
        """
        Args:
            symbols: Distinct symbols; position in the sequence is the index.

        Raises:
            ValueError: If symbols is empty or contains duplicates.
        """
        symbols = list(symbols)
        if not symbols:
            raise ValueError("Vocabulary needs at least one symbol")
        if len(set(symbols)) != len(symbols):
            raise ValueError("Vocabulary symbols must be unique")
        self.stoi: Dict[str, int] = {ch: i for i, ch in enumerate(symbols)}
        self.itos: Dict[int, str] = {i: ch for ch, i in self.stoi.items()}

    @classmethod
    def from_text(cls, text: str) -> "Vocabulary":
        """Build a vocabulary from a corpus, first-seen order."""
        return cls(list(dict.fromkeys(text)))

    def index(self, symbol: str) -> int:
        """Index of a symbol; KeyError if it is not in the vocabulary."""
        try:
            return self.stoi[symbol]
        except KeyError:
            raise KeyError(f"Symbol {symbol!r} is not in the vocabulary") from None

    def symbol(self, index: int) -> str:
        """Symbol at an index; KeyError if out of range."""
        try:
            return self.itos[int(index)]
        except KeyError:
            raise KeyError(f"Index {index} is outside [0, {len(self)})") from None

    def one_hot(self, symbol: str) -> np.ndarray:
        """Vector of length V with a single 1.0 at the symbol's index."""
        v = np.zeros(len(self))
        v[self.index(symbol)] = 1.0
        return v

    def encode(self, text: str) -> np.ndarray:
        """Encode text to indices (int64). Unknown symbols raise KeyError."""
        return np.array([self.index(ch) for ch in text], dtype=np.int64)

    def decode(self, ids: Iterable[int]) -> str:
        """Decode indices back to text."""
        return "".join(self.symbol(i) for i in ids)

    @property
    def symbols(self) -> List[str]:
        return [self.itos[i] for i in range(len(self))]

    def __len__(self) -> int:
        return len(self.stoi)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self.stoi

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Vocabulary) and self.stoi == other.stoi

    def save(self) -> Dict:
        """
        Export vocabulary state for serialization.

        Returns:
            Dict with 'stoi' and 'itos' mappings (JSON-friendly keys).
        """
        return {
            "stoi": self.stoi,
            "itos": {str(k): v for k, v in self.itos.items()},  # JSON needs str keys
        }

    @classmethod
    def load(cls, data: Dict) -> "Vocabulary":
        """
        Load vocabulary from serialized state.

        Args:
            data: Dict with an 'itos' mapping (str or int keys).

        Raises:
            ValueError: If the indices are not exactly 0..V-1.
        """
        itos = {int(k): v for k, v in data["itos"].items()}
        if sorted(itos) != list(range(len(itos))):
            raise ValueError("Vocabulary indices must be dense from 0")
        return cls([itos[i] for i in range(len(itos))])
