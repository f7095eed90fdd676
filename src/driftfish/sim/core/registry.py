from __future__ import annotations

from typing import Dict, Iterator, List

from .fish import Fish


class Registry:
    """Live set of simulated fish, insertion ordered.

    Iteration always walks a copy, so fish can be added or removed while a
    tick is looping over the registry.
    """

    def __init__(self) -> None:
        self._fish: Dict[int, Fish] = {}

    def add(self, fish: Fish) -> None:
        self._fish[fish.id] = fish

    def remove(self, fish: Fish) -> bool:
        return self._fish.pop(fish.id, None) is not None

    def __contains__(self, fish: object) -> bool:
        return isinstance(fish, Fish) and self._fish.get(fish.id) is fish

    def __len__(self) -> int:
        return len(self._fish)

    def __iter__(self) -> Iterator[Fish]:
        return iter(self.snapshot())

    def size(self) -> int:
        return len(self._fish)

    def snapshot(self) -> List[Fish]:
        return list(self._fish.values())

    def clear(self) -> List[Fish]:
        removed = list(self._fish.values())
        self._fish.clear()
        return removed
