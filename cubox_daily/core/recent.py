"""
Bounded recent-id window used as a short-horizon dedup guard.

This is deliberately approximate: ids older than the window can be emitted
again if the source re-surfaces them. The watermark covers the long horizon.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Iterator

DEFAULT_CAPACITY = 200


class RecentIds:
    """Fixed-capacity ordered set with FIFO eviction.

    Ids are kept in insertion order, most recent last. Adding an id that is
    already present does not move it.
    """

    def __init__(self, ids: Iterable[str] = (), capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()
        for item in ids:
            self.add(item)

    def add(self, item: str) -> None:
        if item in self._ids:
            return
        self._ids[item] = None
        while len(self._ids) > self.capacity:
            self._ids.popitem(last=False)

    def copy(self) -> "RecentIds":
        return RecentIds(self._ids, capacity=self.capacity)

    def to_list(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, item: object) -> bool:
        return item in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)
