from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ...config import (
    EXIT_MARGIN,
    MAX_FRAME_DT_MS,
    PHASE_RATE,
    WRAP_MARGIN,
    WRAP_OFFSET_MAX,
    WRAP_OFFSET_MIN,
    FishConfig,
)
from ..core.fish import Fish, FishState
from ..utils.math2d import _clamp_value

if TYPE_CHECKING:
    from ...rng import SimRng
    from ..core.viewport import Viewport


def clamp_dt(delta_ms: float) -> float:
    return _clamp_value(delta_ms, 0.0, MAX_FRAME_DT_MS)


def exit_threshold(fish: Fish) -> float:
    return -(fish.size + EXIT_MARGIN)


def repulsion_offset(center: Vector2, pointer: Vector2, radius: float, force: float, dt: float) -> Vector2:
    """Displacement pushing ``center`` away from ``pointer`` for one tick.

    Strength falls off linearly from ``force * dt`` at the pointer to zero at
    ``radius``. A pointer exactly on the center has no direction and is ignored.
    """
    offset = center - pointer
    dist = offset.length()
    if dist <= 0.0 or dist >= radius:
        return Vector2()
    push = (1.0 - dist / radius) * force * dt
    return offset * (push / dist)


def drift(fish: Fish, dt: float) -> None:
    fish.x -= fish.speed * dt


def bob(fish: Fish, dt: float, top: float, bottom: float) -> None:
    fish.phase += dt * PHASE_RATE
    offset = math.sin(fish.phase) * fish.bob_amplitude
    fish.render_y = _clamp_value(fish.y + offset, top, bottom)


def repel(fish: Fish, dt: float, pointer: Vector2, config: FishConfig, top: float, bottom: float) -> None:
    half = fish.size / 2
    center = Vector2(fish.x + half, fish.render_y + half)
    push = repulsion_offset(center, pointer, config.mouse_radius, config.mouse_force, dt)
    if push.x == 0.0 and push.y == 0.0:
        return
    fish.x += push.x
    fish.y = _clamp_value(fish.y + push.y, top, bottom)
    fish.render_y = _clamp_value(fish.render_y + push.y, top, bottom)


def step_fish(
    fish: Fish,
    dt: float,
    viewport: "Viewport",
    pointer: Vector2,
    config: FishConfig,
    rng: "SimRng",
) -> bool:
    """Advance one live fish by ``dt`` milliseconds.

    Returns True once the fish has left through the exit edge; the caller is
    responsible for retiring it. Fish that are no longer alive are untouched.
    """
    if not fish.alive:
        return False
    if fish.state is FishState.SPAWNING:
        fish.state = FishState.ACTIVE

    top, bottom = viewport.vertical_band(config.vertical_margin)
    drift(fish, dt)
    bob(fish, dt, top, bottom)
    if config.repulsion_enabled:
        repel(fish, dt, pointer, config, top, bottom)

    # Drift only moves left; this catches positions set from outside.
    if fish.x > viewport.width + fish.size + WRAP_MARGIN:
        fish.x = -(fish.size + rng.next_int(WRAP_OFFSET_MIN, WRAP_OFFSET_MAX))

    if fish.sprite is not None:
        fish.sprite.move(fish.x, fish.render_y)

    return fish.x < exit_threshold(fish)
