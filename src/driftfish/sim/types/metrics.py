from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FrameMetrics:
    frame: int
    time_ms: float
    dt_ms: float
    population: int
    spawned: int
    removed: int
    max_concurrent: int
    spawn_pending: bool
    paused: bool
    tick_duration_ms: float = 0.0
