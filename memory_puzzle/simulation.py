# memory_puzzle/simulation.py
# Concurrent demo: several independent sessions played at once on one event loop.

from __future__ import annotations

import argparse
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from .board import CardFace
from .difficulty import DEFAULT_DIFFICULTY, Difficulty
from .formatting import to_clock_string
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .session import PuzzleSession, PuzzleSummary, RevealResult
from .solver import AutoSolver

COLORS = ["\x1b[31m", "\x1b[32m", "\x1b[33m", "\x1b[34m"]  # red/green/yellow/blue
RESET = "\x1b[0m"


@dataclass
class Stats:
    total_reveals: int = 0
    matches: int = 0
    mismatches: int = 0
    rejected: int = 0
    wins: int = 0


# ----- tiny helpers -----

def make_scheduler(fast: bool) -> Scheduler:
    return ManualScheduler() if fast else AsyncioScheduler()


def hidden_positions(session: PuzzleSession) -> List[int]:
    return [i for i, cell in enumerate(session.cells()) if cell.face is CardFace.HIDDEN]


# ----- players -----

async def random_player(session: PuzzleSession, name: str, color: str, stats: Stats, tries: int,
                        rng: random.Random) -> None:
    """Reveals random hidden cards like an impatient human, mistakes included."""
    sleep = session.scheduler.sleep
    for jj in range(tries):
        if session.victory:
            break
        await sleep(50 + rng.random() * 250)

        choices = hidden_positions(session)
        if not choices:
            await sleep(session.timings.flip_ms)
            continue
        index = rng.choice(choices)
        outcome = session.reveal(index)
        stats.total_reveals += 1

        if outcome is RevealResult.REJECTED:
            stats.rejected += 1
            print(f"{color}[{name}] Attempt {jj+1}: card {index} rejected (locked){RESET}")
        elif outcome is RevealResult.MATCH:
            stats.matches += 1
            print(f"{color}[{name}] Attempt {jj+1}: MATCH on {session.deck[index]}{RESET}")
        elif outcome is RevealResult.MISMATCH:
            stats.mismatches += 1
            print(f"{color}[{name}] Attempt {jj+1}: no match, cards flip back{RESET}")

    if not session.victory:
        # hand the rest over to the solver so every session finishes
        print(f"{color}[{name}] Out of attempts, solver takes over{RESET}")
        await AutoSolver(session).run()


async def solver_player(session: PuzzleSession, name: str, color: str, stats: Stats) -> None:
    solver = AutoSolver(session)

    def report(first: int, second: int, outcome: RevealResult) -> None:
        stats.total_reveals += 2
        if outcome is RevealResult.MATCH:
            stats.matches += 1
        print(f"{color}[{name}] Solver paired {first} and {second}: {outcome.value}{RESET}")

    solver.on_pair = report
    result = await solver.run()
    print(f"{color}[{name}] Solver finished: {result.status.value} after {result.iterations} iterations{RESET}")


# ----- main concurrent simulation -----

async def simulation_main(players: int = 4, difficulty: str = DEFAULT_DIFFICULTY.value, tries: int = 30,
                          fast: bool = False, seed: Optional[int] = None) -> Stats:
    print("MEMORY PUZZLE - CONCURRENT SIMULATION")
    rng = random.Random(seed)
    stats = Stats()
    sessions: List[PuzzleSession] = []

    async def player(player_number: int) -> None:
        name = f"player{player_number}"
        color = COLORS[player_number % len(COLORS)]
        session = PuzzleSession(difficulty, scheduler=make_scheduler(fast), rng=random.Random(rng.random()))
        sessions.append(session)

        def celebrate(summary: PuzzleSummary) -> None:
            stats.wins += 1
            print(f"{color}[{name}] SOLVED {summary.difficulty.value} in "
                  f"{to_clock_string(summary.elapsed_ms)} with {summary.moves} moves{RESET}")

        session.add_victory_listener(celebrate)
        print(f"{color}[{name}] Starting on a {session.config.rows}x{session.config.columns} board...{RESET}")

        # even players use the solver, odd players guess
        if player_number % 2 == 0:
            await solver_player(session, name, color, stats)
        else:
            await random_player(session, name, color, stats, tries, rng)

    await asyncio.gather(*(player(i) for i in range(players)))

    print("SIMULATION COMPLETE")
    print(f"Total reveals: {stats.total_reveals}")
    print(f"Matches: {stats.matches}")
    print(f"Mismatches: {stats.mismatches}")
    print(f"Rejected while locked: {stats.rejected}")
    print(f"Sessions solved: {stats.wins}/{players}")
    for i, session in enumerate(sessions):
        print(f"\nFinal board {i}:")
        print(session.board.render())
    return stats


# ----- focused scenario -----

async def reset_during_mismatch_scenario() -> None:
    print("SCENARIO: reset while a mismatch is still on the table")
    scheduler = ManualScheduler()
    session = PuzzleSession("chill", scheduler=scheduler)
    first = 0
    second = next(i for i, s in enumerate(session.deck) if s != session.deck[first])
    session.reveal(first)
    session.reveal(second)
    print(f"[System] mismatch on {first}/{second}, locked={session.locked}")

    session.reset("zest")
    scheduler.advance(session.timings.mismatch_reset_ms)
    if session.locked or session.flipped:
        raise RuntimeError("stale mismatch timer touched the new session")
    print(f"[System] new {session.difficulty.value} board with {len(session.deck)} cards, untouched by the old timer\n")


async def run_all(args: argparse.Namespace) -> None:
    try:
        await simulation_main(args.players, args.difficulty, args.tries, args.fast, args.seed)
        await reset_during_mismatch_scenario()
        print("ALL SCENARIOS PASSED")
    except Exception as e:
        print("\nSCENARIO FAILED:", e)
        raise


def main() -> None:
    ap = argparse.ArgumentParser(description="run several memory puzzle sessions concurrently")
    ap.add_argument("--players", type=int, default=4)
    ap.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=DEFAULT_DIFFICULTY.value)
    ap.add_argument("--tries", type=int, default=30)
    ap.add_argument("--fast", action="store_true", help="virtual time instead of real delays")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    a = ap.parse_args()
    logging.basicConfig(level=logging.DEBUG if a.verbose else logging.WARNING)
    asyncio.run(run_all(a))


if __name__ == "__main__":
    main()
