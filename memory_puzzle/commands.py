# memory_puzzle/commands.py
from __future__ import annotations
from typing import Any, Dict, List, Optional

from .board import CardFace
from .difficulty import DIFFICULTIES, DEFAULT_DIFFICULTY, DifficultyLike, resolve
from .errors import ConfirmationRequired
from .formatting import to_clock_string, to_ordinal_digits
from .scheduler import Scheduler
from .session import PuzzleSession, RevealResult
from .settings import Timings
from .solver import SolveResult


def new_game(
    difficulty: DifficultyLike = DEFAULT_DIFFICULTY,
    scheduler: Optional[Scheduler] = None,
    timings: Optional[Timings] = None,
) -> PuzzleSession:
    return PuzzleSession(difficulty, scheduler=scheduler, timings=timings)


def list_difficulties() -> List[Dict[str, Any]]:
    return [
        {"key": c.key.value, "emoji": c.emoji, "pairs": c.pairs, "columns": c.columns, "cards": c.card_count}
        for c in DIFFICULTIES.values()
    ]


def snapshot(session: PuzzleSession) -> Dict[str, Any]:
    """
    JSON-serializable view of a session for API responses.
    Symbols of hidden cards are never included.
    """
    s = session.summary()
    cards = []
    for index, cell in enumerate(session.cells()):
        row, col = session.board.position(index)
        entry: Dict[str, Any] = {
            "index": index,
            "row": row,
            "col": col,
            "state": cell.face.value,
            "feedback": cell.feedback.value,
        }
        if cell.face is not CardFace.HIDDEN:
            entry["symbol"] = cell.symbol
        cards.append(entry)

    return {
        "status": "ok",
        "difficulty": s.difficulty.value,
        "emoji": session.config.emoji,
        "columns": s.columns,
        "moves": s.moves,
        "matches": s.matches,
        "pairs": s.pairs,
        "elapsed_ms": s.elapsed_ms,
        "best_ms": s.best_ms,
        "best_times": session.best_times.as_dict(),
        "victory": s.victory,
        "locked": s.locked,
        "labels": {
            "timer": f"⏱️{to_clock_string(s.elapsed_ms)}",
            "moves": f"🔄{to_ordinal_digits(s.moves, 2)} 🎯{to_ordinal_digits(s.matches, 2)}",
            "best": f"🏆⏱️{to_clock_string(s.best_ms or 0)}",
        },
        "cards": cards,
    }


def pick(session: PuzzleSession, index: int) -> Dict[str, Any]:
    """Reveal one card and report what the turn did."""
    outcome = session.reveal(index)
    result: Dict[str, Any] = {"status": "ok", "index": index, "result": outcome.value}
    if outcome is not RevealResult.REJECTED:
        result["symbol"] = session.deck[index]
    s = session.summary()
    result.update({"moves": s.moves, "matches": s.matches, "locked": s.locked, "victory": s.victory})
    if outcome is RevealResult.MISMATCH:
        result["hide_after_ms"] = session.timings.mismatch_reset_ms
    return result


def reset(session: PuzzleSession, difficulty: Optional[DifficultyLike] = None, confirm: bool = False) -> Dict[str, Any]:
    """Restart the session. Changing difficulty mid-game needs confirm=True."""
    level = session.difficulty if difficulty is None else resolve(difficulty)
    if level is not session.difficulty and session.has_active_progress and not confirm:
        raise ConfirmationRequired(
            f"switching from {session.difficulty.value} to {level.value} discards the current game"
        )
    session.reset(level)
    return snapshot(session)


def solve_report(session: PuzzleSession, result: SolveResult) -> Dict[str, Any]:
    out = snapshot(session)
    out["solver"] = {
        "status": result.status.value,
        "iterations": result.iterations,
        "moves": result.moves,
        "elapsed_ms": result.elapsed_ms,
    }
    return out
