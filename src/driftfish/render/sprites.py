"""In-memory render surface.

Each live fish owns one :class:`Sprite` record describing how the client should
draw it: absolutely positioned, mirrored so the artwork faces left, never
intercepting pointer events and layered behind foreground content. The layer
does no drawing itself; frames are serialised and pushed to the browser.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Sprite:
    fish_id: int
    src: str
    width: int
    left: int
    top: int
    z_index: int = 0
    filter: str = ""
    transition_ms: float = 0.0
    opacity: float = 0.0
    visible: bool = True
    mirrored: bool = True
    pointer_events: bool = False
    attached: bool = True
    layer: Optional["SpriteLayer"] = None

    def move(self, left: float, top: float) -> None:
        if not self.attached:
            return
        self.left = int(round(left))
        self.top = int(round(top))

    def fade_to(self, opacity: float) -> None:
        if not self.attached:
            return
        self.opacity = max(0.0, min(1.0, float(opacity)))

    def set_visible(self, visible: bool) -> None:
        if not self.attached:
            return
        self.visible = visible

    def detach(self) -> None:
        if not self.attached:
            return
        self.attached = False
        if self.layer is not None:
            self.layer._forget(self)
            self.layer = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.fish_id,
            "src": self.src,
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "opacity": self.opacity,
            "display": "block" if self.visible else "none",
            "transform": "scaleX(-1)" if self.mirrored else "none",
            "pointerEvents": "auto" if self.pointer_events else "none",
            "zIndex": self.z_index,
            "filter": self.filter,
            "transitionMs": self.transition_ms,
        }


class SpriteLayer:
    def __init__(self) -> None:
        self._sprites: Dict[int, Sprite] = {}

    def create(
        self,
        fish_id: int,
        src: str,
        width: int,
        left: float,
        top: float,
        z_index: int = 0,
        filter: str = "",
        transition_ms: float = 0.0,
    ) -> Sprite:
        sprite = Sprite(
            fish_id=fish_id,
            src=src,
            width=int(width),
            left=int(round(left)),
            top=int(round(top)),
            z_index=z_index,
            filter=filter,
            transition_ms=transition_ms,
            layer=self,
        )
        self._sprites[fish_id] = sprite
        return sprite

    def get(self, fish_id: int) -> Optional[Sprite]:
        return self._sprites.get(fish_id)

    def sprites(self) -> List[Sprite]:
        return list(self._sprites.values())

    def __len__(self) -> int:
        return len(self._sprites)

    def detach_all(self) -> int:
        sprites = self.sprites()
        for sprite in sprites:
            sprite.detach()
        return len(sprites)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [sprite.to_dict() for sprite in self._sprites.values()]

    def _forget(self, sprite: Sprite) -> None:
        if self._sprites.get(sprite.fish_id) is sprite:
            del self._sprites[sprite.fish_id]
