from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pygame.math import Vector2

from ...config import POINTER_SENTINEL, RESIZE_DEBOUNCE_MS
from .timers import Cancellable, Timers

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Viewport:
    width: float
    height: float

    @property
    def min_dimension(self) -> float:
        return min(self.width, self.height)

    def vertical_band(self, margin: float) -> tuple[float, float]:
        return self.height * margin, self.height * (1 - margin)


class ViewportMonitor:
    """Tracks the effective viewport size and debounces resize bursts.

    The effective size is the larger of the document and window metrics, since
    the two can disagree (scrollbars, mobile toolbars). A resize notification
    only records the new size; ``on_resize`` runs once the events have been
    quiet for the debounce window.
    """

    def __init__(
        self,
        timers: Timers,
        width: float,
        height: float,
        on_resize: Optional[Callable[[], None]] = None,
        debounce_ms: float = RESIZE_DEBOUNCE_MS,
    ):
        self._timers = timers
        self._viewport = Viewport(float(width), float(height))
        self._debounce_ms = debounce_ms
        self._debounce: Cancellable | None = None
        self.on_resize = on_resize

    @property
    def current(self) -> Viewport:
        return self._viewport

    @property
    def resize_pending(self) -> bool:
        return self._debounce is not None

    def measure(
        self,
        client_width: float,
        client_height: float,
        inner_width: float = 0.0,
        inner_height: float = 0.0,
    ) -> Viewport:
        width = max(float(client_width), float(inner_width or 0.0), 0.0)
        height = max(float(client_height), float(inner_height or 0.0), 0.0)
        self._viewport = Viewport(width, height)
        return self._viewport

    def notify_resize(
        self,
        client_width: float,
        client_height: float,
        inner_width: float = 0.0,
        inner_height: float = 0.0,
    ) -> None:
        self.measure(client_width, client_height, inner_width, inner_height)
        self.cancel()
        self._debounce = self._timers.call_later(self._debounce_ms, self._fire)

    def cancel(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _fire(self) -> None:
        self._debounce = None
        logger.debug("Viewport settled at %.0fx%.0f", self._viewport.width, self._viewport.height)
        if self.on_resize is not None:
            self.on_resize()


class PointerTracker:
    def __init__(self) -> None:
        self._position = Vector2(POINTER_SENTINEL)
        self._seen = False

    @property
    def position(self) -> Vector2:
        return Vector2(self._position)

    @property
    def has_position(self) -> bool:
        return self._seen

    def observe(self, x: float, y: float) -> None:
        self._position = Vector2(float(x), float(y))
        self._seen = True

    def forget(self) -> None:
        self._position = Vector2(POINTER_SENTINEL)
        self._seen = False
