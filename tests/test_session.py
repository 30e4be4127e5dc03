# tests/test_session.py
import random
import time

import pytest

from memory_puzzle.board import CardFace, Feedback
from memory_puzzle.difficulty import Difficulty
from memory_puzzle.scheduler import ManualScheduler
from memory_puzzle.session import BestTimes, PuzzleSession, RevealResult, is_solved
from memory_puzzle.settings import Timings
from memory_puzzle.solver import pick_next_pair

from conftest import RIGGED_CHILL


def play_out(session, scheduler, step_ms):
    """Solve by hand, advancing virtual time after every pair."""
    while not session.victory:
        first, second = pick_next_pair(session)
        assert session.reveal(first) is RevealResult.REVEALED
        session.reveal(second)
        scheduler.advance(step_ms)


def check_invariants(session):
    flipped, matched = session.flipped, session.matched
    assert len(flipped) in (0, 1, 2)
    assert not set(flipped) & matched
    assert len(matched) % 2 == 0
    assert session.victory == (len(matched) == len(session.deck))
    if session.locked:
        assert len(flipped) == 2


def test_first_reveal_starts_clock(rigged, scheduler):
    assert not rigged.clock.running
    assert rigged.reveal(3) is RevealResult.REVEALED
    assert rigged.flipped == (3,)
    assert rigged.moves == 0
    assert rigged.clock.running
    assert rigged.board.peek(3).face is CardFace.REVEALED
    scheduler.advance(1200)
    assert rigged.clock.elapsed_ms == 1200

def test_match_resolves_immediately(rigged, scheduler):
    rigged.reveal(2)
    assert rigged.reveal(8) is RevealResult.MATCH
    assert rigged.moves == 1
    assert rigged.matched == {2, 8}
    assert rigged.flipped == ()
    assert not rigged.locked
    assert rigged.board.peek(8).face is CardFace.MATCHED
    # a new turn can start straight away
    assert rigged.reveal(0) is RevealResult.REVEALED

def test_good_pulse_is_transient(rigged, scheduler):
    rigged.reveal(0)
    rigged.reveal(6)
    assert rigged.board.peek(0).feedback is Feedback.NONE
    scheduler.advance(rigged.timings.flip_ms)
    assert rigged.board.peek(0).feedback is Feedback.GOOD
    scheduler.advance(rigged.timings.good_pulse_ms)
    assert rigged.board.peek(0).feedback is Feedback.NONE
    assert rigged.board.peek(0).face is CardFace.MATCHED

def test_mismatch_locks_until_full_window(rigged, scheduler):
    t = rigged.timings
    rigged.reveal(0)
    assert rigged.reveal(1) is RevealResult.MISMATCH
    assert rigged.moves == 1
    assert rigged.locked
    assert rigged.reveal(2) is RevealResult.REJECTED
    assert rigged.flipped == (0, 1)

    scheduler.advance(t.flip_ms)
    assert rigged.board.peek(0).feedback is Feedback.BAD
    assert rigged.locked

    scheduler.advance(t.bad_pulse_ms)
    # marker gone, input still blocked
    assert rigged.board.peek(1).feedback is Feedback.NONE
    assert rigged.locked
    assert rigged.reveal(5) is RevealResult.REJECTED

    scheduler.advance(t.mismatch_reset_ms - t.flip_ms - t.bad_pulse_ms - 1)
    assert rigged.locked

    scheduler.advance(1)
    assert not rigged.locked
    assert rigged.flipped == ()
    assert rigged.matched == frozenset()
    assert rigged.moves == 1
    assert rigged.board.peek(0).face is CardFace.HIDDEN
    assert rigged.board.peek(1).face is CardFace.HIDDEN
    assert rigged.reveal(1) is RevealResult.REVEALED
    assert rigged.reveal(0) is RevealResult.MISMATCH

def test_rejected_reveals_do_not_count(rigged):
    rigged.reveal(4)
    assert rigged.reveal(4) is RevealResult.REJECTED
    assert rigged.moves == 0
    rigged.reveal(10)
    assert rigged.moves == 1
    assert rigged.reveal(4) is RevealResult.REJECTED
    assert rigged.reveal(10) is RevealResult.REJECTED
    assert rigged.moves == 1

def test_bad_index_raises(rigged):
    with pytest.raises(ValueError):
        rigged.reveal(12)
    with pytest.raises(ValueError):
        rigged.reveal(-1)
    with pytest.raises(ValueError):
        rigged.reveal(True)
    with pytest.raises(ValueError):
        rigged.reveal("3")

def test_victory_stops_clock_and_records_best(rigged, scheduler):
    seen = []
    rigged.add_victory_listener(seen.append)
    for i in range(6):
        rigged.reveal(i)
        scheduler.advance(500)
        rigged.reveal(i + 6)
        assert rigged.victory == (i == 5)
        scheduler.advance(500)
    assert rigged.moves == 6
    assert not rigged.clock.running
    # clock started at the first reveal and stopped at the last one
    assert rigged.clock.elapsed_ms == 5500
    assert rigged.best_times.get("chill") == 5500
    assert len(seen) == 1 and seen[0].best_ms == 5500 and seen[0].victory
    assert rigged.reveal(0) is RevealResult.REJECTED
    scheduler.advance(10_000)
    assert rigged.clock.elapsed_ms == 5500

def test_listener_errors_are_contained(rigged):
    def boom(summary):
        raise RuntimeError("confetti cannon jammed")

    calls = []
    rigged.add_victory_listener(boom)
    rigged.add_victory_listener(calls.append)
    for i in range(6):
        rigged.reveal(i)
        rigged.reveal(i + 6)
    assert rigged.victory
    assert len(calls) == 1

def test_best_time_only_improves(session, scheduler):
    play_out(session, scheduler, 2000)
    assert session.best_times.get("chill") == 10_000

    session.reset()
    play_out(session, scheduler, 4000)
    assert session.best_times.get("chill") == 10_000

    session.reset()
    play_out(session, scheduler, 1000)
    assert session.best_times.get("chill") == 5_000

def test_reset_to_other_difficulty_mid_game(session, scheduler):
    play_out(session, scheduler, 1000)
    session.reset()
    first, second = pick_next_pair(session)
    session.reveal(first)
    session.reveal(second)
    session.reveal(next(i for i in range(12) if i not in session.matched))
    scheduler.advance(3000)
    assert session.has_active_progress

    session.reset("zest")
    assert session.difficulty is Difficulty.ZEST
    assert len(session.deck) == 16
    assert session.moves == 0
    assert session.matched == frozenset()
    assert session.flipped == ()
    assert not session.locked and not session.victory
    assert not session.clock.running and session.clock.elapsed_ms == 0
    assert not session.has_active_progress
    assert session.best_times.get("chill") == 5_000
    assert session.best_times.get("zest") is None
    assert all(c.face is CardFace.HIDDEN for c in session.cells())

def test_reset_always_reshuffles(session):
    decks = set()
    for _ in range(5):
        session.reset()
        decks.add(session.deck)
    assert len(decks) > 1
    assert session.difficulty is Difficulty.CHILL

def test_stale_mismatch_timer_is_ignored(rigged, scheduler):
    rigged.reveal(0)
    rigged.reveal(1)
    assert rigged.locked
    generation = rigged.generation

    rigged.reset()
    assert rigged.generation == generation + 1
    assert not rigged.locked
    rigged.reveal(5)
    scheduler.advance(rigged.timings.mismatch_reset_ms * 2)
    assert rigged.flipped == (5,)
    assert rigged.board.peek(5).face is CardFace.REVEALED
    assert rigged.board.peek(0).feedback is Feedback.NONE

def test_inconsistent_symbols_abort_the_turn(scheduler):
    deck = [""] + RIGGED_CHILL[1:6] + [""] + RIGGED_CHILL[7:]
    s = PuzzleSession("chill", scheduler=scheduler, deck=deck)
    s.reveal(0)
    assert s.reveal(6) is RevealResult.ABORTED
    assert s.moves == 1
    assert s.flipped == ()
    assert not s.locked
    assert s.matched == frozenset()
    assert s.board.peek(0).face is CardFace.HIDDEN
    assert s.reveal(1) is RevealResult.REVEALED

def test_injected_deck_is_checked(scheduler):
    with pytest.raises(ValueError):
        PuzzleSession("chill", scheduler=scheduler, deck=["a", "a", "b", "b"])
    with pytest.raises(ValueError):
        PuzzleSession("chill", scheduler=scheduler, deck=["a"] * 12)

def test_sessions_share_nothing(scheduler):
    a = PuzzleSession("chill", scheduler=scheduler, deck=RIGGED_CHILL)
    b = PuzzleSession("chill", scheduler=scheduler, deck=RIGGED_CHILL)
    a.reveal(0)
    a.reveal(1)
    assert a.locked and not b.locked
    assert b.reveal(0) is RevealResult.REVEALED
    assert b.reveal(6) is RevealResult.MATCH
    assert a.matched == frozenset() and b.matched == {0, 6}
    assert a.best_times is not b.best_times

def test_close_drops_pending_callbacks(rigged, scheduler):
    rigged.reveal(0)
    rigged.reveal(1)
    assert scheduler.pending() > 0
    rigged.close()
    assert scheduler.pending() == 0
    assert not rigged.clock.running

@pytest.mark.parametrize("seed", range(15))
def test_invariants_hold_under_random_input(seed):
    rng = random.Random(seed)
    scheduler = ManualScheduler()
    s = PuzzleSession(rng.choice(list(Difficulty)), scheduler=scheduler, rng=rng)
    for _ in range(400):
        before = s.moves
        outcome = s.reveal(rng.randrange(len(s.deck)))
        if outcome in (RevealResult.MATCH, RevealResult.MISMATCH):
            assert s.moves == before + 1
        else:
            assert s.moves == before
        check_invariants(s)
        scheduler.advance(rng.choice([0, 100, 700, 1600]))
        check_invariants(s)
        if s.victory:
            break

def test_summary_and_helpers(rigged):
    rigged.reveal(0)
    rigged.reveal(6)
    s = rigged.summary()
    assert (s.moves, s.matches, s.pairs, s.cards, s.columns) == (1, 1, 6, 12, 4)
    assert s.best_ms is None and not s.victory
    assert is_solved({0, 1}, ["x", "x"])
    assert not is_solved({0, 1}, ["x", "x", "y", "y"])

def test_best_times_record():
    bt = BestTimes()
    assert "chill" not in bt
    assert bt.record("chill", 900)
    assert not bt.record(Difficulty.CHILL, 900)
    assert bt.record("chill", 800)
    assert bt.as_dict() == {"chill": 800}
    assert "chill" in bt and "bogus" not in bt

class FlakyScheduler(ManualScheduler):
    """Refuses to schedule once `allowed` callbacks have been queued."""

    def __init__(self, allowed):
        super().__init__()
        self.allowed = allowed

    def call_later(self, delay_ms, callback):
        if self.allowed <= 0:
            raise RuntimeError("scheduler unavailable")
        self.allowed -= 1
        return super().call_later(delay_ms, callback)


def test_default_scheduler_works_without_event_loop():
    timings = Timings(flip_ms=5, mismatch_pause_ms=5, match_pause_ms=1, bad_pulse_ms=1,
                      good_pulse_ms=1, tick_ms=5, solver_gap_ms=1)
    s = PuzzleSession("chill", timings=timings, deck=RIGGED_CHILL)
    assert s.reveal(0) is RevealResult.REVEALED
    assert s.clock.running and s.flipped == (0,)
    assert s.reveal(1) is RevealResult.MISMATCH
    assert s.locked

    deadline = time.monotonic() + 2
    while s.locked and time.monotonic() < deadline:
        time.sleep(0.005)
    assert not s.locked
    assert s.flipped == ()
    assert s.board.peek(0).face is CardFace.HIDDEN
    assert s.reveal(0) is RevealResult.REVEALED
    s.close()

def test_failed_first_reveal_leaves_no_trace():
    scheduler = FlakyScheduler(allowed=0)
    s = PuzzleSession("chill", scheduler=scheduler, deck=RIGGED_CHILL)
    with pytest.raises(RuntimeError):
        s.reveal(0)
    assert not s.clock.running
    assert s.flipped == ()
    assert not s.ticking
    assert s.board.peek(0).face is CardFace.HIDDEN
    assert scheduler.pending() == 0

    scheduler.allowed = 10
    assert s.reveal(0) is RevealResult.REVEALED
    assert s.clock.running

def test_failed_mismatch_rolls_back_the_turn():
    scheduler = FlakyScheduler(allowed=1)
    s = PuzzleSession("chill", scheduler=scheduler, deck=RIGGED_CHILL)
    assert s.reveal(0) is RevealResult.REVEALED
    with pytest.raises(RuntimeError):
        s.reveal(1)
    assert s.flipped == (0,)
    assert s.moves == 0
    assert not s.locked
    assert s.board.peek(1).face is CardFace.HIDDEN
    assert scheduler.pending() == 1

    scheduler.allowed = 10
    assert s.reveal(1) is RevealResult.MISMATCH
    scheduler.advance(s.timings.mismatch_reset_ms)
    assert not s.locked
    assert s.flipped == ()

def test_display_ticks_pause_when_idle_and_resume_on_read(rigged, scheduler):
    t = rigged.timings
    rigged.reveal(0)
    assert rigged.ticking
    scheduler.advance(t.tick_idle_ms + t.tick_ms)
    assert not rigged.ticking
    assert scheduler.pending() == 0
    assert rigged.clock.running
    anchor = rigged.clock.running_since

    summary = rigged.summary()
    assert rigged.ticking
    assert scheduler.pending() == 1
    assert rigged.clock.running_since == anchor
    assert summary.elapsed_ms == t.tick_idle_ms + t.tick_ms
