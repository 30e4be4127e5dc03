import random

import pytest

from memory_puzzle.scheduler import ManualScheduler
from memory_puzzle.session import PuzzleSession

# deck[i] and deck[i + 6] are the pairs; neighbours never match
RIGGED_CHILL = ["🍉", "🍋", "🍇", "🍊", "🍓", "🍍"] * 2


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def session(scheduler):
    return PuzzleSession("chill", scheduler=scheduler, rng=random.Random(7))


@pytest.fixture
def rigged(scheduler):
    return PuzzleSession("chill", scheduler=scheduler, deck=RIGGED_CHILL)
