# memory_puzzle/clock.py
from __future__ import annotations

import time
from typing import Callable, Optional


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class Clock:
    """
    Elapsed-time tracker.

    Rep:
      - running_since is None  => stopped, elapsed_ms is the frozen duration
      - running_since not None => running, elapsed_ms is only a display cache
    The recorded duration always comes from stop(), never from accumulated ticks.
    """

    def __init__(self, now: Callable[[], float] = monotonic_ms):
        self._now = now
        self.elapsed_ms: int = 0
        self.running_since: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.running_since is not None

    def start(self) -> None:
        if self.running:
            return
        self.running_since = self._now()
        self.elapsed_ms = 0

    def resume(self) -> None:
        """Re-arm the anchor without zeroing the display value."""
        if self.running_since is None:
            self.running_since = self._now()

    def tick(self) -> int:
        if self.running_since is not None:
            self.elapsed_ms = self._since(self.running_since)
        return self.elapsed_ms

    def stop(self) -> int:
        if self.running_since is not None:
            self.elapsed_ms = self._since(self.running_since)
        self.running_since = None
        return self.elapsed_ms

    def clear(self) -> None:
        self.running_since = None
        self.elapsed_ms = 0

    def _since(self, anchor: float) -> int:
        return max(0, int(self._now() - anchor))
