"""Fixed-capacity ring buffer of fee history points"""

from typing import Iterator, List, Optional

from feepulse.models import HistoryPoint

DEFAULT_CAPACITY = 72  # 6 hours at one point every 5 minutes


class FeeHistory:
    """Circular buffer that overwrites the oldest point once full.

    While filling, points are appended to slots 0..count-1 and the cursor
    stays at 0. Once full, each push overwrites the slot under the cursor
    (the oldest point) and advances it, so chronological order always
    starts at the cursor.

    Not thread safe on its own; the monitor context guards it.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._points: List[Optional[HistoryPoint]] = [None] * capacity
        self._count = 0
        self._cursor = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def size(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def is_full(self) -> bool:
        return self._count == self._capacity

    def push(self, point: HistoryPoint) -> None:
        if self._count < self._capacity:
            self._points[self._count] = point
            self._count += 1
        else:
            self._points[self._cursor] = point
            self._cursor = (self._cursor + 1) % self._capacity

    def iterate(self) -> List[HistoryPoint]:
        """Points ordered oldest to newest"""
        if self._count < self._capacity:
            return list(self._points[:self._count])
        return [self._points[(self._cursor + i) % self._capacity] for i in range(self._capacity)]

    def __iter__(self) -> Iterator[HistoryPoint]:
        return iter(self.iterate())

    def latest(self) -> Optional[HistoryPoint]:
        if self._count == 0:
            return None
        if self._count < self._capacity:
            return self._points[self._count - 1]
        return self._points[(self._cursor - 1) % self._capacity]

    def clear(self) -> None:
        self._points = [None] * self._capacity
        self._count = 0
        self._cursor = 0
