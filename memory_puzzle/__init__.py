# memory_puzzle/__init__.py
"""Timed memory-matching puzzle engine."""
from .board import Board, CardFace, Cell, Feedback
from .clock import Clock
from .deck import build_deck, check_deck, shuffle
from .difficulty import DEFAULT_DIFFICULTY, DIFFICULTIES, Difficulty, DifficultyConfig, get_config
from .errors import ConfigurationError, ConfirmationRequired, PuzzleError, SessionNotFound, UnknownDifficultyError
from .formatting import to_clock_string, to_ordinal_digits
from .scheduler import AsyncioScheduler, ManualScheduler, ThreadingScheduler
from .session import BestTimes, PuzzleSession, PuzzleSummary, RevealResult, is_solved
from .settings import DEFAULT_TIMINGS, Timings
from .solver import AutoSolver, SolveResult, SolveStatus, pick_next_pair, solve

__all__ = [
    "AsyncioScheduler", "AutoSolver", "BestTimes", "Board", "CardFace", "Cell", "Clock",
    "ConfigurationError", "ConfirmationRequired", "DEFAULT_DIFFICULTY", "DEFAULT_TIMINGS",
    "DIFFICULTIES", "Difficulty", "DifficultyConfig", "Feedback", "ManualScheduler",
    "PuzzleError", "PuzzleSession", "PuzzleSummary", "RevealResult", "SessionNotFound",
    "SolveResult", "SolveStatus", "ThreadingScheduler", "Timings", "UnknownDifficultyError",
    "build_deck", "check_deck", "get_config", "is_solved", "pick_next_pair", "shuffle",
    "solve", "to_clock_string", "to_ordinal_digits",
]
