from __future__ import annotations

from collections import deque

DEFAULT_HISTORY_CAPACITY = 50


class PriceHistory:
    """Sliding window of the most recent round prices, oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._prices: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._prices.maxlen or 0

    def record(self, price: float) -> None:
        self._prices.append(float(price))

    def snapshot(self) -> list[float]:
        return list(self._prices)

    def __len__(self) -> int:
        return len(self._prices)
