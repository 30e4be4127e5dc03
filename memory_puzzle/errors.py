# memory_puzzle/errors.py
from __future__ import annotations


class PuzzleError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PuzzleError):
    """Startup-time problem with the difficulty table or timings. Fatal."""


class UnknownDifficultyError(PuzzleError, ValueError):
    def __init__(self, key: object):
        super().__init__(f"unknown difficulty: {key!r}")
        self.key = key


class SessionNotFound(PuzzleError, KeyError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"no session with id {self.session_id!r}"


class ConfirmationRequired(PuzzleError):
    """Switching difficulty would discard a game in progress."""
