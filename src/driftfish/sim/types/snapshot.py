from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import FrameMetrics


@dataclass(slots=True)
class FrameSnapshot:
    frame: int
    viewport: "SnapshotViewport"
    metrics: FrameMetrics
    sprites: List[Dict[str, Any]]


@dataclass(slots=True)
class SnapshotViewport:
    width: float
    height: float
