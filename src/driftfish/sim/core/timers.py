from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional, Protocol

Callback = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Timers(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callback) -> Cancellable: ...


class TimerHandle:
    __slots__ = ("when", "_callback", "_cancelled", "_fired")

    def __init__(self, when: float, callback: Callback):
        self.when = when
        self._callback: Optional[Callback] = callback
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        if self._fired:
            return
        self._cancelled = True
        self._callback = None

    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._fired

    def _run(self) -> None:
        callback = self._callback
        self._fired = True
        self._callback = None
        if callback is not None:
            callback()


class ManualTimers:
    """Virtual millisecond clock for headless runs and tests.

    Timers fire in due-time order (FIFO for equal due times) while the clock is
    advanced. A callback that schedules another timer falling inside the same
    window sees it fire before ``advance`` returns, and ``now()`` reads the due
    time of whichever timer is currently running.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: List[tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, float(delay_ms)), callback)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    def advance(self, delta_ms: float) -> int:
        return self.advance_to(self._now + max(0.0, float(delta_ms)))

    def advance_to(self, target_ms: float) -> int:
        fired = 0
        while self._queue and self._queue[0][0] <= target_ms:
            when, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now = max(self._now, when)
            handle._run()
            fired += 1
        self._now = max(self._now, float(target_ms))
        return fired

    def pending(self) -> List[TimerHandle]:
        return [handle for _, _, handle in sorted(self._queue) if handle.active]

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()


class AsyncioTimers:
    """Timers on an asyncio event loop.

    The loop is looked up on first use so the adapter can be built before the
    loop starts. ``now()`` uses the monotonic clock the default loop uses.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def now(self) -> float:
        if self._loop is not None:
            return self._loop.time() * 1000.0
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_ms)) / 1000.0, callback)
