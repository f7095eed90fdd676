from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Dict, Union

from ...config import DENSITY_PRESETS, DETACH_DELAY_MS, FishConfig, normalize_config
from ...render.sprites import SpriteLayer
from ...rng import SimRng
from ..systems import kinematics, metrics as metrics_system
from ..systems.spawning import SpawnScheduler
from ..types.metrics import FrameMetrics
from ..types.snapshot import FrameSnapshot, SnapshotViewport
from .fish import Fish
from .registry import Registry
from .render_loop import RenderLoop
from .timers import Cancellable, Timers
from .viewport import PointerTracker, ViewportMonitor

logger = logging.getLogger(__name__)

DensityLevel = Union[int, float, str]


class Simulation:
    """The whole drifting-fish scene as one object.

    Owns the registry, the spawn scheduler and its timers, the viewport and
    pointer inputs, the sprite layer and the deferred sprite detachments. Outer
    layers drive it through :meth:`frame` and the control methods only.
    """

    def __init__(self, config: FishConfig, timers: Timers, width: float, height: float):
        self.config = normalize_config(config)
        self.timers = timers
        self.rng = SimRng(self.config.seed)
        self.registry = Registry()
        self.sprites = SpriteLayer()
        self.viewport = ViewportMonitor(timers, width, height, on_resize=self.reset)
        self.pointer = PointerTracker()
        self.scheduler = SpawnScheduler(self)
        self.loop: RenderLoop[FrameMetrics] = RenderLoop(self._step, timers.now())
        self.paused = False
        self.spawned = 0
        self.removed = 0
        self.resets = 0
        self._spawned_mark = 0
        self._removed_mark = 0
        self._fading: Dict[int, tuple[Fish, Cancellable]] = {}
        self._ticking = False
        self._reset_deferred = False
        self._restart_on_resume = False
        self._last_metrics: FrameMetrics | None = None

    @property
    def fading(self) -> int:
        return len(self._fading)

    def get_max_concurrent(self) -> int:
        return self.scheduler.get_max_concurrent()

    def start(self) -> int:
        burst = self.scheduler.start_flow()
        logger.info(
            "Flow started: burst=%d capacity=%d viewport=%.0fx%.0f",
            burst,
            self.get_max_concurrent(),
            self.viewport.current.width,
            self.viewport.current.height,
        )
        return burst

    def frame(self, now_ms: float) -> FrameMetrics:
        return self.loop.frame(now_ms)

    def _step(self, dt: float, now_ms: float) -> FrameMetrics:
        started = perf_counter()
        viewport = self.viewport.current
        pointer = self.pointer.position
        self._ticking = True
        try:
            for fish in self.registry.snapshot():
                if not fish.alive or fish not in self.registry:
                    continue
                if kinematics.step_fish(fish, dt, viewport, pointer, self.config, self.rng):
                    self.retire(fish)
        finally:
            self._ticking = False
        if self._reset_deferred:
            self._reset_deferred = False
            self.reset()
        duration_ms = (perf_counter() - started) * 1000.0
        self._last_metrics = metrics_system.create_metrics(
            self,
            self.loop.frames,
            now_ms,
            dt,
            self.spawned - self._spawned_mark,
            self.removed - self._removed_mark,
            duration_ms,
        )
        self._spawned_mark = self.spawned
        self._removed_mark = self.removed
        return self._last_metrics

    def retire(self, fish: Fish) -> None:
        if not fish.retire():
            return
        self.registry.remove(fish)
        self.removed += 1
        if fish.sprite is not None:
            fish.sprite.fade_to(0.0)
        handle = self.timers.call_later(DETACH_DELAY_MS, lambda: self._detach(fish.id))
        self._fading[fish.id] = (fish, handle)
        logger.debug("Fish %d left the viewport", fish.id)
        if not self.paused and not self.scheduler.pending:
            self.scheduler.schedule_next()

    def _detach(self, fish_id: int) -> None:
        entry = self._fading.pop(fish_id, None)
        if entry is not None:
            entry[0].release_sprite()

    def _release_fading(self) -> None:
        for fish, handle in list(self._fading.values()):
            handle.cancel()
            fish.release_sprite()
        self._fading.clear()

    def on_resize(
        self,
        client_width: float,
        client_height: float,
        inner_width: float = 0.0,
        inner_height: float = 0.0,
    ) -> None:
        self.viewport.notify_resize(client_width, client_height, inner_width, inner_height)

    def reset(self) -> None:
        if self._ticking:
            self._reset_deferred = True
            return
        self.scheduler.cancel()
        self._release_fading()
        for fish in self.registry.clear():
            fish.alive = False
            fish.release_sprite()
        self.resets += 1
        logger.info(
            "Reset for viewport %.0fx%.0f", self.viewport.current.width, self.viewport.current.height
        )
        if self.paused:
            self._restart_on_resume = True
            return
        self.start()

    def pause(self) -> None:
        self.scheduler.cancel()
        for fish in self.registry.snapshot():
            if fish.sprite is not None:
                fish.sprite.set_visible(False)
        if not self.paused:
            logger.info("Paused with %d fish", self.registry.size())
        self.paused = True

    def resume(self) -> None:
        for fish in self.registry.snapshot():
            if fish.sprite is not None:
                fish.sprite.set_visible(True)
        was_paused = self.paused
        self.paused = False
        if self._restart_on_resume:
            self._restart_on_resume = False
            self.start()
        elif not self.scheduler.pending:
            self.scheduler.schedule_next()
        if was_paused:
            logger.info("Resumed with %d fish", self.registry.size())

    def set_opacity(self, opacity: float) -> None:
        for fish in self.registry.snapshot():
            if fish.sprite is not None:
                fish.sprite.fade_to(opacity)

    def set_density(self, level: DensityLevel) -> None:
        if isinstance(level, bool):
            logger.warning("Ignoring density level %r", level)
            return
        if isinstance(level, (int, float)):
            value = max(1, int(round(level)))
        elif isinstance(level, str) and level.strip().lower() in DENSITY_PRESETS:
            value = DENSITY_PRESETS[level.strip().lower()]
        else:
            logger.warning("Ignoring density level %r", level)
            return
        self.config = replace(self.config, max_concurrent=value)
        logger.info("Density set to %d", value)

    def observe_pointer(self, x: float, y: float) -> None:
        self.pointer.observe(x, y)

    def forget_pointer(self) -> None:
        self.pointer.forget()

    def snapshot(self) -> FrameSnapshot:
        metrics = self._last_metrics or metrics_system.create_metrics(
            self, self.loop.frames, self.loop.last_ms, 0.0, 0, 0, 0.0
        )
        viewport = self.viewport.current
        return FrameSnapshot(
            frame=self.loop.frames,
            viewport=SnapshotViewport(width=viewport.width, height=viewport.height),
            metrics=metrics,
            sprites=self.sprites.to_payload(),
        )

    def shutdown(self) -> None:
        self.scheduler.cancel()
        self.viewport.cancel()
        self._release_fading()
        for fish in self.registry.clear():
            fish.alive = False
            fish.release_sprite()
        self.sprites.detach_all()
