# memory_puzzle/difficulty.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple, Union

from .errors import ConfigurationError, UnknownDifficultyError


class Difficulty(str, Enum):
    CHILL = "chill"
    ZEST = "zest"
    INFERNO = "inferno"


@dataclass(frozen=True)
class DifficultyConfig:
    key: Difficulty
    emoji: str
    pairs: int
    columns: int
    pool: Tuple[str, ...]

    @property
    def card_count(self) -> int:
        return self.pairs * 2

    @property
    def rows(self) -> int:
        return -(-self.card_count // self.columns)


DifficultyLike = Union[Difficulty, str]

DIFFICULTIES: Dict[Difficulty, DifficultyConfig] = {
    Difficulty.CHILL: DifficultyConfig(
        key=Difficulty.CHILL,
        emoji="🙂",
        pairs=6,
        columns=4,
        pool=("🍉", "🍋", "🍇", "🍊", "🍓", "🍍", "🥝", "🍒", "🍑", "🍈"),
    ),
    Difficulty.ZEST: DifficultyConfig(
        key=Difficulty.ZEST,
        emoji="🥶",
        pairs=8,
        columns=4,
        pool=("💎", "🔷", "🔹", "🔵", "🌀", "💠", "🔮", "🪬", "🔭", "🧿"),
    ),
    Difficulty.INFERNO: DifficultyConfig(
        key=Difficulty.INFERNO,
        emoji="💀",
        pairs=12,
        columns=6,
        pool=(
            "🔵", "🔹", "🔘", "⚫️", "⚪️", "🔴", "🟠", "🟡", "🟢", "🟣", "🔷", "🔶",
            "🟦", "🟥", "🟧", "🟪", "🔳", "🔲", "◼️", "◻️", "▪️", "▫️", "◽️", "◾️",
        ),
    ),
}

DEFAULT_DIFFICULTY = Difficulty.CHILL


def validate_registry(table: Mapping[Difficulty, DifficultyConfig]) -> None:
    if not table:
        raise ConfigurationError("difficulty table is empty")
    for key, config in table.items():
        if config.key != key:
            raise ConfigurationError(f"{key.value}: entry is keyed under the wrong name {config.key!r}")
        if config.pairs <= 0 or config.columns <= 0:
            raise ConfigurationError(f"{key.value}: pairs and columns must be positive")
        if len(set(config.pool)) != len(config.pool):
            raise ConfigurationError(f"{key.value}: symbol pool has duplicates")
        if config.pairs > len(config.pool):
            raise ConfigurationError(
                f"{key.value}: {config.pairs} pairs requested but pool only has {len(config.pool)} symbols"
            )


def resolve(key: DifficultyLike) -> Difficulty:
    if isinstance(key, Difficulty):
        return key
    try:
        return Difficulty(str(key).strip().lower())
    except ValueError:
        raise UnknownDifficultyError(key) from None


def get_config(key: DifficultyLike) -> DifficultyConfig:
    return DIFFICULTIES[resolve(key)]


# checked once when the module loads, not per call
validate_registry(DIFFICULTIES)
