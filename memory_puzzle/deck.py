# memory_puzzle/deck.py
from __future__ import annotations

import random
from collections import Counter
from typing import List, Optional, Sequence, TypeVar

from .difficulty import DifficultyConfig
from .errors import ConfigurationError

T = TypeVar("T")


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly permuted copy (Fisher-Yates). The input is left alone."""
    rnd = rng if rng is not None else random
    out = list(sequence)
    for i in range(len(out) - 1, 0, -1):
        j = rnd.randrange(i + 1)
        out[i], out[j] = out[j], out[i]
    return out


def build_deck(config: DifficultyConfig, rng: Optional[random.Random] = None) -> List[str]:
    if config.pairs > len(config.pool):
        raise ConfigurationError(
            f"{config.key.value}: cannot draw {config.pairs} pairs from {len(config.pool)} symbols"
        )
    picks = shuffle(config.pool, rng)[: config.pairs]
    doubled = [symbol for symbol in picks for _ in range(2)]
    return shuffle(doubled, rng)


def check_deck(deck: Sequence[str]) -> None:
    if len(deck) % 2 != 0:
        raise ValueError("deck length must be even")
    for symbol, n in Counter(deck).items():
        if n != 2:
            raise ValueError(f"symbol {symbol!r} appears {n} times, expected 2")
