from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from ...config import (
    BACKOFF_MAX_MS,
    BACKOFF_MIN_MS,
    BURST_BASE_MS,
    BURST_JITTER_MS,
    BURST_STEP_MS,
    MIN_BOB_AMPLITUDE,
    SMALL_VIEWPORT_THRESHOLD,
    SPAWN_OFFSET_MAX,
    SPAWN_OFFSET_MIN,
    FishConfig,
)
from ..core.fish import Fish
from ..core.timers import Cancellable

if TYPE_CHECKING:
    from ..core.simulation import Simulation
    from ..core.viewport import Viewport

logger = logging.getLogger(__name__)


def get_max_concurrent(config: FishConfig, viewport: "Viewport") -> int:
    if viewport.min_dimension < SMALL_VIEWPORT_THRESHOLD:
        return max(1, config.adapt_max_on_small)
    return config.max_concurrent


class SpawnScheduler:
    """Decides when new fish enter the viewport.

    Owns a single spawn/backoff timer plus the staggered timers of the opening
    burst. Arming the spawn timer always cancels the previous one, so there is
    never more than one decision chain running.
    """

    def __init__(self, sim: "Simulation"):
        self._sim = sim
        self._timer: Cancellable | None = None
        self._burst: List[Cancellable] = []
        self._next_id = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def burst_pending(self) -> int:
        return len(self._burst)

    def get_max_concurrent(self) -> int:
        return get_max_concurrent(self._sim.config, self._sim.viewport.current)

    def has_capacity(self) -> bool:
        return self._sim.registry.size() < self.get_max_concurrent()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for handle in self._burst:
            handle.cancel()
        self._burst.clear()

    def schedule_next(self) -> None:
        rng = self._sim.rng
        if not self.has_capacity():
            backoff = rng.next_range(BACKOFF_MIN_MS, BACKOFF_MAX_MS)
            logger.debug("At capacity (%d), retrying in %.0f ms", self.get_max_concurrent(), backoff)
            self._arm(backoff, self.schedule_next)
            return
        config = self._sim.config
        delay = rng.next_range(config.spawn_min_delay, config.spawn_max_delay)
        self._arm(delay, self._spawn_and_continue)

    def start_flow(self) -> int:
        self.cancel()
        rng = self._sim.rng
        burst = max(1, min(self._sim.config.initial_burst, self.get_max_concurrent()))
        for index in range(burst):
            delay = BURST_BASE_MS + index * BURST_STEP_MS + rng.next_range(0.0, BURST_JITTER_MS)
            self._arm_burst(delay)
        self.schedule_next()
        return burst

    def spawn(self) -> Fish:
        sim = self._sim
        config = sim.config
        rng = sim.rng
        viewport = sim.viewport.current
        top, bottom = viewport.vertical_band(config.vertical_margin)

        size = rng.next_int(config.min_size, config.max_size)
        speed_scale = size / config.mid_size
        fish = Fish(
            id=self._next_id,
            x=viewport.width + rng.next_below(SPAWN_OFFSET_MIN, SPAWN_OFFSET_MAX),
            y=rng.next_range(top, bottom),
            size=size,
            speed=rng.next_range(config.min_speed, config.max_speed) * speed_scale,
            phase=rng.next_phase(),
            bob_amplitude=rng.next_range(MIN_BOB_AMPLITUDE, config.jitter_y),
            speed_scale=speed_scale,
        )
        fish.render_y = fish.y
        self._next_id += 1

        fish.sprite = sim.sprites.create(
            fish.id,
            config.sprite_url,
            size,
            fish.x,
            fish.y,
            z_index=config.z_index,
            filter=config.sprite_filter,
            transition_ms=config.fade_in_ms,
        )
        if sim.paused:
            fish.sprite.set_visible(False)
        sim.registry.add(fish)
        sim.spawned += 1
        fish.sprite.fade_to(config.opacity)
        logger.debug("Spawned fish %d (size=%d, speed=%.4f)", fish.id, size, fish.speed)
        return fish

    def _spawn_if_room(self) -> Optional[Fish]:
        if not self.has_capacity():
            return None
        return self.spawn()

    def _spawn_and_continue(self) -> None:
        self._spawn_if_room()
        self.schedule_next()

    def _arm(self, delay_ms: float, callback) -> None:
        if self._timer is not None:
            self._timer.cancel()

        def fire() -> None:
            self._timer = None
            callback()

        self._timer = self._sim.timers.call_later(delay_ms, fire)

    def _arm_burst(self, delay_ms: float) -> None:
        handle: Cancellable | None = None

        def fire() -> None:
            if handle in self._burst:
                self._burst.remove(handle)
            self._spawn_if_room()

        handle = self._sim.timers.call_later(delay_ms, fire)
        self._burst.append(handle)
