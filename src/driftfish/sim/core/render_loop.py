from __future__ import annotations

from typing import Callable, Generic, TypeVar

from ..systems.kinematics import clamp_dt

T = TypeVar("T")


class RenderLoop(Generic[T]):
    """Per-frame driver: turns frame timestamps into clamped tick deltas.

    Re-arming is left to the host (an asyncio task in the web app, a plain loop
    in headless runs); every call to :meth:`frame` is one tick.
    """

    def __init__(self, step: Callable[[float, float], T], start_ms: float = 0.0):
        self._step = step
        self._last = float(start_ms)
        self.frames = 0

    @property
    def last_ms(self) -> float:
        return self._last

    def frame(self, now_ms: float) -> T:
        dt = clamp_dt(now_ms - self._last)
        self._last = float(now_ms)
        self.frames += 1
        return self._step(dt, now_ms)

    def restart(self, start_ms: float) -> None:
        self._last = float(start_ms)
