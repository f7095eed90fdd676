from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

SMALL_VIEWPORT_THRESHOLD = 700
BACKOFF_MIN_MS = 600.0
BACKOFF_MAX_MS = 1500.0
SPAWN_OFFSET_MIN = 40
SPAWN_OFFSET_MAX = 320
WRAP_OFFSET_MIN = 40
WRAP_OFFSET_MAX = 200
EXIT_MARGIN = 120.0
WRAP_MARGIN = 320.0
MAX_FRAME_DT_MS = 40.0
PHASE_RATE = 0.002
MIN_BOB_AMPLITUDE = 4.0
DETACH_DELAY_MS = 700.0
RESIZE_DEBOUNCE_MS = 220.0
BURST_BASE_MS = 200.0
BURST_STEP_MS = 450.0
BURST_JITTER_MS = 700.0
DENSITY_PRESETS: Dict[str, int] = {"low": 1, "normal": 3, "high": 6}
POINTER_SENTINEL = (-1e9, -1e9)


@dataclass(frozen=True)
class FishConfig:
    sprite_url: str = "img/poisson.gif"
    min_size: int = 150
    max_size: int = 350
    min_speed: float = 0.055
    max_speed: float = 0.105
    opacity: float = 1.0
    vertical_margin: float = 0.0
    jitter_y: float = 12.0
    z_index: int = 0
    sprite_filter: str = "saturate(1.10) contrast(1.18)"
    fade_in_ms: float = 650.0
    spawn_min_delay: float = 100.0
    spawn_max_delay: float = 2000.0
    initial_burst: int = 4
    max_concurrent: int = 10
    adapt_max_on_small: int = 2
    # Pointer repulsion is off unless both are set.
    mouse_radius: Optional[float] = None
    mouse_force: Optional[float] = None
    seed: Optional[int] = None

    @property
    def repulsion_enabled(self) -> bool:
        return self.mouse_radius is not None and self.mouse_force is not None and self.mouse_radius > 0

    @property
    def mid_size(self) -> float:
        return (self.min_size + self.max_size) / 2

    @staticmethod
    def from_yaml(path: Path) -> "FishConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    fish: FishConfig = field(default_factory=lambda: FishConfig(mouse_radius=160.0, mouse_force=0.35))
    frame_interval_ms: float = 1000.0 / 60.0
    broadcast_interval: int = 1
    viewport_width: int = 1280
    viewport_height: int = 800

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_app_config(data)


# camelCase names from the browser script configuration.
_ALIASES = {
    "fishURL": "sprite_url",
    "fishUrl": "sprite_url",
    "minSize": "min_size",
    "maxSize": "max_size",
    "minSpeed": "min_speed",
    "maxSpeed": "max_speed",
    "verticalMargin": "vertical_margin",
    "jitterY": "jitter_y",
    "zIndexFish": "z_index",
    "spawnMinDelay": "spawn_min_delay",
    "spawnMaxDelay": "spawn_max_delay",
    "initialBurst": "initial_burst",
    "maxConcurrent": "max_concurrent",
    "adaptMaxOnSmall": "adapt_max_on_small",
    "mouseRadius": "mouse_radius",
    "mouseForce": "mouse_force",
}

_FISH_FIELDS = {f.name for f in fields(FishConfig)}
_APP_FIELDS = {f.name for f in fields(AppConfig)}
_INT_FIELDS = {"min_size", "max_size", "z_index", "initial_burst", "max_concurrent", "adapt_max_on_small"}


def _ordered(low: float, high: float) -> tuple[float, float]:
    return (low, high) if low <= high else (high, low)


def normalize_config(config: FishConfig) -> FishConfig:
    min_size, max_size = _ordered(max(1, int(config.min_size)), max(1, int(config.max_size)))
    min_speed, max_speed = _ordered(float(config.min_speed), float(config.max_speed))
    min_speed = max(1e-6, min_speed)
    max_speed = max(min_speed, max_speed)
    spawn_min, spawn_max = _ordered(max(0.0, float(config.spawn_min_delay)), max(0.0, float(config.spawn_max_delay)))
    return replace(
        config,
        min_size=min_size,
        max_size=max_size,
        min_speed=min_speed,
        max_speed=max_speed,
        opacity=max(0.0, min(1.0, float(config.opacity))),
        vertical_margin=max(0.0, min(0.49, float(config.vertical_margin))),
        jitter_y=max(MIN_BOB_AMPLITUDE, float(config.jitter_y)),
        spawn_min_delay=spawn_min,
        spawn_max_delay=spawn_max,
        initial_burst=max(0, int(config.initial_burst)),
        max_concurrent=max(1, int(config.max_concurrent)),
        adapt_max_on_small=max(1, int(config.adapt_max_on_small)),
    )


def load_config(raw: Mapping[str, Any]) -> FishConfig:
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _ALIASES.get(key, key)
        if name not in _FISH_FIELDS:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        if name in _INT_FIELDS:
            value = int(round(float(value)))
        values[name] = value
    return normalize_config(FishConfig(**values))


def load_app_config(raw: Mapping[str, Any]) -> AppConfig:
    defaults = AppConfig()
    fish_raw = raw.get("fish")
    fish = load_config(fish_raw) if isinstance(fish_raw, Mapping) else defaults.fish
    app_values: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "fish":
            continue
        if key not in _APP_FIELDS:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        app_values[key] = value
    return AppConfig(fish=fish, **app_values)
