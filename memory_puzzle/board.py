# memory_puzzle/board.py
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from threading import RLock
from typing import List, Sequence, Tuple

Coord = Tuple[int, int]  # (row, col)


class CardFace(str, Enum):
    HIDDEN = "hidden"
    REVEALED = "revealed"
    MATCHED = "matched"


class Feedback(str, Enum):
    NONE = "none"
    GOOD = "good"
    BAD = "bad"


@dataclass(frozen=True)
class Cell:
    symbol: str
    face: CardFace = CardFace.HIDDEN
    feedback: Feedback = Feedback.NONE


class Board:
    """
    Per-position display projection of a puzzle session.

    Rep:
      - one cell per deck position, laid out row-major over `columns`
      - a matched cell never goes back to hidden
    Safety:
      - guarded by an internal lock; written by the session only, never read
        back by it to make decisions
    """

    def __init__(self, symbols: Sequence[str], columns: int):
        if columns <= 0:
            raise ValueError("columns must be positive")
        self._columns = columns
        self._lock = RLock()
        self._cells: List[Cell] = [Cell(symbol=s) for s in symbols]
        self._check_rep()

    def _check_rep(self) -> None:
        for cell in self._cells:
            assert isinstance(cell.face, CardFace)
            assert isinstance(cell.feedback, Feedback)

    def __len__(self) -> int:
        return len(self._cells)

    def size(self) -> Tuple[int, int]:
        rows = -(-len(self._cells) // self._columns)
        return (rows, self._columns)

    def position(self, index: int) -> Coord:
        self._validate_index(index)
        return divmod(index, self._columns)

    def peek(self, index: int) -> Cell:
        with self._lock:
            self._validate_index(index)
            return self._cells[index]

    def cells(self) -> List[Cell]:
        with self._lock:
            return list(self._cells)

    def flip_up(self, index: int) -> str:
        with self._lock:
            self._validate_index(index)
            cell = self._cells[index]
            if cell.face is CardFace.MATCHED:
                raise ValueError("cannot flip a matched card")
            self._cells[index] = replace(cell, face=CardFace.REVEALED)
            return cell.symbol

    def flip_down(self, index: int) -> None:
        with self._lock:
            self._validate_index(index)
            cell = self._cells[index]
            if cell.face is CardFace.MATCHED:
                raise ValueError("cannot flip down a matched card")
            self._cells[index] = replace(cell, face=CardFace.HIDDEN, feedback=Feedback.NONE)
            self._check_rep()

    def mark_matched(self, first: int, second: int) -> None:
        with self._lock:
            self._validate_index(first)
            self._validate_index(second)
            for idx in (first, second):
                self._cells[idx] = replace(self._cells[idx], face=CardFace.MATCHED)
            self._check_rep()

    def set_feedback(self, indices: Sequence[int], mood: Feedback) -> None:
        with self._lock:
            for idx in indices:
                self._validate_index(idx)
                self._cells[idx] = replace(self._cells[idx], feedback=mood)

    def clear_feedback(self, indices: Sequence[int]) -> None:
        self.set_feedback(indices, Feedback.NONE)

    def restore(self, cells: Sequence[Cell]) -> None:
        with self._lock:
            if len(cells) != len(self._cells):
                raise ValueError("cell count mismatch")
            self._cells = list(cells)
            self._check_rep()

    def render(self) -> str:
        """Text grid; hidden cards show as ❔."""
        rows, cols = self.size()
        lines = []
        with self._lock:
            for r in range(rows):
                row = self._cells[r * cols:(r + 1) * cols]
                lines.append(" ".join("❔" if c.face is CardFace.HIDDEN else c.symbol for c in row))
        return "\n".join(lines)

    def _validate_index(self, index: int) -> None:
        if not (0 <= index < len(self._cells)):
            raise ValueError("invalid card index")
