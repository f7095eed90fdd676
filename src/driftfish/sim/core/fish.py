from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ...render.sprites import Sprite


class FishState(str, Enum):
    SPAWNING = "Spawning"
    ACTIVE = "Active"
    FADING_OUT = "FadingOut"
    REMOVED = "Removed"


@dataclass(slots=True)
class Fish:
    id: int
    x: float
    y: float
    size: int
    speed: float
    phase: float
    bob_amplitude: float
    speed_scale: float = 1.0
    render_y: float = 0.0
    state: FishState = FishState.SPAWNING
    alive: bool = True
    sprite: Optional["Sprite"] = None

    def retire(self) -> bool:
        if not self.alive:
            return False
        self.alive = False
        self.state = FishState.FADING_OUT
        return True

    def release_sprite(self) -> None:
        sprite = self.sprite
        self.sprite = None
        self.state = FishState.REMOVED
        if sprite is not None:
            sprite.detach()
