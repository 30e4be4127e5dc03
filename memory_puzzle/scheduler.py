# memory_puzzle/scheduler.py
from __future__ import annotations

import asyncio
import heapq
import itertools
import threading
from typing import Callable, List, Optional, Protocol, Tuple

from .clock import monotonic_ms

Callback = Callable[[], None]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Where the session's delayed callbacks run. All delays are in milliseconds."""

    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callback) -> Handle: ...

    async def sleep(self, delay_ms: float) -> None: ...


def _thread_timer(delay_ms: float, callback: Callback) -> threading.Timer:
    timer = threading.Timer(max(0.0, delay_ms) / 1000.0, callback)
    timer.daemon = True
    timer.start()
    return timer


class AsyncioScheduler:
    """
    Callbacks run on the event loop: the bound one, else the running one.
    With neither (plain synchronous callers) they fall back to a timer thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> float:
        return monotonic_ms()

    def call_later(self, delay_ms: float, callback: Callback) -> Handle:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return _thread_timer(delay_ms, callback)
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


class ThreadingScheduler:
    """One daemon timer thread per callback; the session lock serialises them."""

    def now(self) -> float:
        return monotonic_ms()

    def call_later(self, delay_ms: float, callback: Callback) -> threading.Timer:
        return _thread_timer(delay_ms, callback)

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


class _ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual time. Nothing happens until advance() (or sleep()) moves the clock;
    due callbacks then run in due-time order, ties in scheduling order.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle, Callback]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callback) -> _ManualHandle:
        handle = _ManualHandle()
        due = self._now + max(0.0, delay_ms)
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, delay_ms: float) -> None:
        target = self._now + max(0.0, delay_ms)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if not handle.cancelled:
                callback()
        self._now = target

    async def sleep(self, delay_ms: float) -> None:
        self.advance(delay_ms)
        # still yield so other tasks on a real loop get a turn
        await asyncio.sleep(0)
