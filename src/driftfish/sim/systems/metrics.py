from __future__ import annotations

from typing import TYPE_CHECKING

from ..types.metrics import FrameMetrics

if TYPE_CHECKING:
    from ..core.simulation import Simulation


def create_metrics(
    sim: "Simulation",
    frame: int,
    now_ms: float,
    dt_ms: float,
    spawned: int,
    removed: int,
    duration_ms: float,
) -> FrameMetrics:
    return FrameMetrics(
        frame=frame,
        time_ms=now_ms,
        dt_ms=dt_ms,
        population=sim.registry.size(),
        spawned=spawned,
        removed=removed,
        max_concurrent=sim.get_max_concurrent(),
        spawn_pending=sim.scheduler.pending,
        paused=sim.paused,
        tick_duration_ms=duration_ms,
    )
