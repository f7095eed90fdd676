from __future__ import annotations

import math
import random
from typing import Optional


class SimRng:
    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def next_range(self, low: float, high: float) -> float:
        """Uniform draw in ``[low, high)``; collapses to ``low`` when the range is empty."""
        if high <= low:
            return low
        return low + self._random.random() * (high - low)

    def next_int(self, low: int, high: int) -> int:
        """Integer draw in ``[low, high]`` inclusive."""
        if high <= low:
            return low
        return self._random.randint(low, high)

    def next_below(self, low: int, high: int) -> int:
        """Integer draw in ``[low, high)``."""
        if high <= low:
            return low
        return self._random.randrange(low, high)

    def next_phase(self) -> float:
        return self._random.random() * 2 * math.pi
