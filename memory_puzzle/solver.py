# memory_puzzle/solver.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .session import PuzzleSession, RevealResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SolveStatus(str, Enum):
    SOLVED = "solved"
    ALREADY_SOLVED = "already_solved"
    EXHAUSTED = "exhausted"        # nothing left to pair, yet not solved
    GUARD_LIMIT = "guard_limit"    # iteration bound hit


@dataclass(frozen=True)
class SolveResult:
    status: SolveStatus
    iterations: int
    moves: int
    elapsed_ms: int

    @property
    def solved(self) -> bool:
        return self.status in (SolveStatus.SOLVED, SolveStatus.ALREADY_SOLVED)


def pick_next_pair(session: PuzzleSession) -> Optional[Tuple[int, int]]:
    """First symbol (left to right) that still has two unmatched positions."""
    matched = session.matched
    buckets: Dict[str, List[int]] = {}
    for index, symbol in enumerate(session.deck):
        if index in matched:
            continue
        group = buckets.setdefault(symbol, [])
        group.append(index)
    for group in buckets.values():
        if len(group) >= 2:
            return group[0], group[1]
    return None


class AutoSolver:
    """
    Drives a session to completion through the same reveal() real input uses.

    Each loop iteration either waits out a lock or plays one pair:
    reveal(first), pause, reveal(second), pause for post-match pacing.
    """

    def __init__(
        self,
        session: PuzzleSession,
        sleep: Optional[Sleep] = None,
        max_iterations: Optional[int] = None,
    ):
        self.session = session
        self._sleep: Sleep = sleep if sleep is not None else session.scheduler.sleep
        timings = session.timings
        self.max_iterations = max_iterations if max_iterations is not None else timings.solver_max_iterations
        self.on_pair: Optional[Callable[[int, int, RevealResult], None]] = None

    async def run(self) -> SolveResult:
        session = self.session
        timings = session.timings
        if session.victory:
            return self._result(SolveStatus.ALREADY_SOLVED, 0)

        iterations = 0
        while not session.victory:
            if iterations >= self.max_iterations:
                logger.warning("solver gave up after %d iterations", iterations)
                return self._result(SolveStatus.GUARD_LIMIT, iterations)
            iterations += 1

            if session.locked:
                await self._sleep(timings.mismatch_reset_ms)
                continue

            pair = pick_next_pair(session)
            if pair is None:
                logger.warning("solver found no pair on an unsolved %s board", session.difficulty.value)
                return self._result(SolveStatus.EXHAUSTED, iterations)

            first, second = pair
            session.reveal(first)
            await self._sleep(timings.solver_reveal_gap_ms)
            outcome = session.reveal(second)
            if self.on_pair is not None:
                self.on_pair(first, second, outcome)
            await self._sleep(timings.after_match_ms)

        return self._result(SolveStatus.SOLVED, iterations)

    def _result(self, status: SolveStatus, iterations: int) -> SolveResult:
        summary = self.session.summary()
        return SolveResult(status=status, iterations=iterations, moves=summary.moves, elapsed_ms=summary.elapsed_ms)


def solve(session: PuzzleSession, sleep: Optional[Sleep] = None, max_iterations: Optional[int] = None) -> SolveResult:
    """Blocking entry point: run the solver to completion or bounded failure."""
    return asyncio.run(AutoSolver(session, sleep=sleep, max_iterations=max_iterations).run())
