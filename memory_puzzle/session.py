# memory_puzzle/session.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import Callable, Collection, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .board import Board, Cell, Feedback
from .clock import Clock
from .deck import build_deck, check_deck
from .difficulty import DEFAULT_DIFFICULTY, Difficulty, DifficultyConfig, DifficultyLike, get_config, resolve
from .scheduler import AsyncioScheduler, Callback, Handle, Scheduler
from .settings import DEFAULT_TIMINGS, Timings

logger = logging.getLogger(__name__)


class RevealResult(str, Enum):
    REJECTED = "rejected"   # locked, solved, or position already up
    REVEALED = "revealed"   # first card of a turn
    MATCH = "match"
    MISMATCH = "mismatch"
    ABORTED = "aborted"     # turn dropped by the inconsistent-state guard


@dataclass(frozen=True)
class PuzzleSummary:
    difficulty: Difficulty
    elapsed_ms: int
    moves: int
    matches: int
    pairs: int
    best_ms: Optional[int]
    victory: bool
    locked: bool
    cards: int
    columns: int


VictoryListener = Callable[[PuzzleSummary], None]


class BestTimes:
    """Best completion time per difficulty. Entries are added or lowered, never removed."""

    def __init__(self) -> None:
        self._times: Dict[Difficulty, int] = {}

    def get(self, difficulty: DifficultyLike) -> Optional[int]:
        return self._times.get(resolve(difficulty))

    def record(self, difficulty: DifficultyLike, duration_ms: int) -> bool:
        key = resolve(difficulty)
        previous = self._times.get(key)
        if previous is None or duration_ms < previous:
            self._times[key] = duration_ms
            return True
        return False

    def as_dict(self) -> Dict[str, int]:
        return {key.value: ms for key, ms in self._times.items()}

    def __contains__(self, difficulty: object) -> bool:
        try:
            return resolve(difficulty) in self._times  # type: ignore[arg-type]
        except ValueError:
            return False


def is_solved(matched: Collection[int], deck: Sequence[str]) -> bool:
    return len(matched) == len(deck)


class PuzzleSession:
    """
    One live puzzle: deck, flip buffer, matched set, counters, lock, clock, best times.

    Rep:
      - len(flipped) in {0, 1, 2}; flipped and matched are disjoint
      - len(matched) is even; victory == (len(matched) == len(deck))
      - while locked, flipped holds exactly the pending mismatched pair
    Safety:
      - every public mutation and every delayed callback runs under one RLock, so a
        threaded host still sees a single logical context
      - delayed callbacks carry the generation they were scheduled in; reset() bumps
        the generation, turning anything still outstanding into a no-op
    """

    def __init__(
        self,
        difficulty: DifficultyLike = DEFAULT_DIFFICULTY,
        scheduler: Optional[Scheduler] = None,
        timings: Optional[Timings] = None,
        rng: Optional[random.Random] = None,
        deck: Optional[Sequence[str]] = None,
    ):
        self.timings = timings or DEFAULT_TIMINGS
        self.scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.clock = Clock(now=self.scheduler.now)
        self.best_times = BestTimes()
        self._rng = rng
        self._lock = RLock()
        self._generation = 0
        self._handles: Set[Handle] = set()
        self._listeners: List[VictoryListener] = []
        self._ticking = False
        self._last_seen = self.scheduler.now()
        self._start(resolve(difficulty), deck)

    # ------------------------------- state -------------------------------
    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def config(self) -> DifficultyConfig:
        return self._config

    @property
    def deck(self) -> Tuple[str, ...]:
        return self._deck

    @property
    def matched(self) -> FrozenSet[int]:
        return frozenset(self._matched)

    @property
    def flipped(self) -> Tuple[int, ...]:
        return tuple(self._flipped)

    @property
    def moves(self) -> int:
        return self._moves

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def victory(self) -> bool:
        return self._victory

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_active_progress(self) -> bool:
        return bool(self._moves or self._matched or self._flipped or self.clock.running or self.clock.elapsed_ms)

    @property
    def ticking(self) -> bool:
        return self._ticking

    def summary(self) -> PuzzleSummary:
        with self._lock:
            self._touch()
            return PuzzleSummary(
                difficulty=self._difficulty,
                elapsed_ms=self.clock.elapsed_ms,
                moves=self._moves,
                matches=len(self._matched) // 2,
                pairs=self._config.pairs,
                best_ms=self.best_times.get(self._difficulty),
                victory=self._victory,
                locked=self._locked,
                cards=len(self._deck),
                columns=self._config.columns,
            )

    def cells(self) -> List[Cell]:
        return self.board.cells()

    def add_victory_listener(self, listener: VictoryListener) -> None:
        self._listeners.append(listener)

    # ------------------------------ commands ------------------------------
    def reveal(self, index: int) -> RevealResult:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValueError(f"card index must be an int, got {index!r}")
        with self._lock:
            if not (0 <= index < len(self._deck)):
                raise ValueError("invalid card index")
            if self._locked or self._victory:
                return RevealResult.REJECTED
            if index in self._flipped or index in self._matched:
                return RevealResult.REJECTED

            saved = self._save_turn()
            try:
                self._touch()
                return self._play(index)
            except Exception:
                # a failed scheduler must not leave a half-played turn behind
                self._restore_turn(saved)
                raise

    def reset(self, difficulty: Optional[DifficultyLike] = None) -> None:
        """Start over, always with a fresh shuffle. Best times are kept."""
        with self._lock:
            level = self._difficulty if difficulty is None else resolve(difficulty)
            self._invalidate_pending()
            self._start(level, None)
            logger.info("session reset to %s (generation %d)", level.value, self._generation)

    def close(self) -> None:
        """Drop every pending callback. The session stays readable."""
        with self._lock:
            self._invalidate_pending()

    # ------------------------------ internals ------------------------------
    def _play(self, index: int) -> RevealResult:
        if not self.clock.running:
            self.clock.start()
            self._resume_ticker()

        self._flipped.append(index)
        self.board.flip_up(index)
        if len(self._flipped) < 2:
            return RevealResult.REVEALED

        self._moves += 1
        first, second = self._flipped
        first_symbol, second_symbol = self._deck[first], self._deck[second]
        if not first_symbol or not second_symbol:
            return self._abort_turn(first, second)
        if first_symbol == second_symbol:
            self._resolve_match(first, second)
            return RevealResult.MATCH
        self._queue_mismatch_reset(first, second)
        return RevealResult.MISMATCH

    def _save_turn(self) -> Tuple:
        return (
            list(self._flipped), set(self._matched), self._moves, self._locked, self._victory,
            self.clock.running_since, self.clock.elapsed_ms, self.board.cells(),
            set(self._handles), self._ticking, self._last_seen,
        )

    def _restore_turn(self, saved: Tuple) -> None:
        (flipped, matched, moves, locked, victory, running_since, elapsed_ms, cells,
         handles, ticking, last_seen) = saved
        for handle in self._handles - handles:
            handle.cancel()
        self._handles = handles
        self._flipped, self._matched, self._moves = flipped, matched, moves
        self._locked, self._victory = locked, victory
        self.clock.running_since, self.clock.elapsed_ms = running_since, elapsed_ms
        self.board.restore(cells)
        self._ticking, self._last_seen = ticking, last_seen

    def _start(self, level: Difficulty, deck: Optional[Sequence[str]]) -> None:
        config = get_config(level)
        if deck is None:
            cards = build_deck(config, self._rng)
        else:
            cards = list(deck)
            check_deck(cards)
            if len(cards) != config.card_count:
                raise ValueError(f"{level.value} needs {config.card_count} cards, got {len(cards)}")
        self._difficulty = level
        self._config = config
        self._deck: Tuple[str, ...] = tuple(cards)
        self._matched: Set[int] = set()
        self._flipped: List[int] = []
        self._moves = 0
        self._locked = False
        self._victory = False
        self.clock.clear()
        self.board = Board(self._deck, config.columns)

    def _invalidate_pending(self) -> None:
        self.clock.stop()
        self._ticking = False
        self._generation += 1
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

    def _schedule(self, delay_ms: float, callback: Callback) -> None:
        generation = self._generation
        holder: List[Handle] = []

        def run() -> None:
            with self._lock:
                if holder:
                    self._handles.discard(holder[0])
                if generation != self._generation:
                    return
                callback()

        handle = self.scheduler.call_later(delay_ms, run)
        holder.append(handle)
        self._handles.add(handle)

    def _touch(self) -> None:
        self._last_seen = self.scheduler.now()
        if self.clock.running and not self._ticking:
            self._resume_ticker()

    def _resume_ticker(self) -> None:
        # keeps the anchor; only the display refresh restarts
        self.clock.resume()
        self.clock.tick()
        self._schedule(self.timings.tick_ms, self._tick)
        self._ticking = True

    def _tick(self) -> None:
        idle = self.scheduler.now() - self._last_seen >= self.timings.tick_idle_ms
        if not self.clock.running or idle:
            self._ticking = False
            return
        self.clock.tick()
        self._schedule(self.timings.tick_ms, self._tick)

    def _pulse(self, indices: Tuple[int, int], mood: Feedback, duration_ms: int) -> None:
        # cosmetic only: never touches flipped/locked
        self._schedule(self.timings.flip_ms, lambda: self.board.set_feedback(indices, mood))
        self._schedule(self.timings.flip_ms + duration_ms, lambda: self._clear_pulse(indices, mood))

    def _clear_pulse(self, indices: Tuple[int, int], mood: Feedback) -> None:
        stale = [idx for idx in indices if self.board.peek(idx).feedback is mood]
        self.board.clear_feedback(stale)

    def _resolve_match(self, first: int, second: int) -> None:
        self._matched.update((first, second))
        self._flipped.clear()
        self.board.mark_matched(first, second)
        self._pulse((first, second), Feedback.GOOD, self.timings.good_pulse_ms)
        logger.debug("match %d/%d (%s) after %d moves", first, second, self._deck[first], self._moves)
        if is_solved(self._matched, self._deck) and not self._victory:
            self._handle_win()

    def _queue_mismatch_reset(self, first: int, second: int) -> None:
        self._locked = True
        self._pulse((first, second), Feedback.BAD, self.timings.bad_pulse_ms)
        self._schedule(self.timings.mismatch_reset_ms, lambda: self._finish_mismatch(first, second))
        logger.debug("mismatch %d/%d, locked for %dms", first, second, self.timings.mismatch_reset_ms)

    def _finish_mismatch(self, first: int, second: int) -> None:
        self.board.flip_down(first)
        self.board.flip_down(second)
        self._flipped.clear()
        self._locked = False

    def _abort_turn(self, first: int, second: int) -> RevealResult:
        logger.warning("dropping turn %d/%d: missing symbol in deck", first, second)
        self._flipped.clear()
        self._locked = False
        self.board.flip_down(first)
        self.board.flip_down(second)
        return RevealResult.ABORTED

    def _handle_win(self) -> None:
        self._victory = True
        duration = self.clock.stop()
        improved = self.best_times.record(self._difficulty, duration)
        logger.info(
            "%s solved in %dms with %d moves%s",
            self._difficulty.value, duration, self._moves, " (new best)" if improved else "",
        )
        summary = self.summary()
        for listener in list(self._listeners):
            try:
                listener(summary)
            except Exception:
                logger.exception("victory listener failed")
