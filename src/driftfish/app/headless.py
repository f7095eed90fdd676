from __future__ import annotations

import argparse
import csv
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..config import FishConfig
from ..logging_config import configure_logging
from ..sim.core.simulation import Simulation
from ..sim.core.timers import ManualTimers
from ..sim.types.metrics import FrameMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "frame",
    "time_ms",
    "dt_ms",
    "population",
    "spawned",
    "removed",
    "max_concurrent",
    "spawn_pending",
    "tick_ms",
]


def _format_row(metrics: FrameMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.frame,
        f"{metrics.time_ms:.3f}",
        f"{metrics.dt_ms:.3f}",
        metrics.population,
        metrics.spawned,
        metrics.removed,
        metrics.max_concurrent,
        int(metrics.spawn_pending),
        f"{tick_ms:.3f}",
    ]


def _population_stats(values: list[int]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0}
    return {
        "min": float(min(values)),
        "max": float(max(values)),
        "avg": float(sum(values) / len(values)),
    }


def run_headless(
    frames: int,
    seed: Optional[int],
    log_path: Optional[Path],
    width: float = 1280,
    height: float = 800,
    frame_ms: float = 1000.0 / 60.0,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config: Optional[FishConfig] = None,
) -> list[FrameMetrics]:
    config = config or FishConfig()
    if seed is not None:
        config = replace(config, seed=seed)
    timers = ManualTimers()
    sim = Simulation(config, timers, width, height)
    sim.start()

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    history: list[FrameMetrics] = []
    try:
        for _ in range(frames):
            timers.advance(frame_ms)
            metrics = sim.frame(timers.now())
            history.append(metrics)
            if writer:
                tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    populations = [m.population for m in history]
    logger.info(
        "Ran %d frames: spawned=%d removed=%d peak=%d",
        frames,
        sim.spawned,
        sim.removed,
        max(populations, default=0),
    )

    if summary_path:
        summary = {
            "frames": frames,
            "seed": sim.config.seed,
            "frame_ms": frame_ms,
            "viewport": {"width": sim.viewport.current.width, "height": sim.viewport.current.height},
            "max_concurrent": sim.get_max_concurrent(),
            "population": _population_stats(populations),
            "spawned": sim.spawned,
            "removed": sim.removed,
            "pointer_repulsion": sim.config.repulsion_enabled,
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    sim.shutdown()
    return history


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless drifting-fish simulation")
    parser.add_argument("--frames", type=int, default=3600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--width", type=float, default=1280)
    parser.add_argument("--height", type=float, default=800)
    parser.add_argument("--frame-ms", type=float, default=1000.0 / 60.0)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with fish settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-frame metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()
    configure_logging(level=args.log_level, include_uvicorn=False)
    config = FishConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.frames,
        args.seed,
        args.log,
        width=args.width,
        height=args.height,
        frame_ms=args.frame_ms,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config=config,
    )


if __name__ == "__main__":
    main()
