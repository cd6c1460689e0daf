"""Bounded rolling price history per asset."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

from .models import HistoryPoint, PriceStats

DEFAULT_CAPACITY = 1440  # 24 hours of one-minute points
DAY_SECONDS = 24 * 3600.0


class HistoryStore:
    """Fixed-capacity FIFO series of HistoryPoints, one per key.

    Writer: the poll tasks of SubscriptionMultiplexer.
    Readers: the history endpoint.

    Points closer than ``sample_interval`` seconds to the previous one are
    skipped. A full series spans at least ``capacity * sample_interval``.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        sample_interval: float = 0.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if sample_interval < 0:
            raise ValueError("sample_interval must not be negative")
        self._capacity = capacity
        self._sample_interval = sample_interval
        self._clock = clock
        self._series: dict[str, deque[HistoryPoint]] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def sample_interval(self) -> float:
        return self._sample_interval

    def record(self, key: str, symbol: str, price: float) -> HistoryPoint | None:
        """Append a point stamped with the current time.

        Returns None without recording when the price is not positive or the
        previous point is younger than the sample interval. Timestamps never
        go backwards within a series, even if the clock does.
        """
        if not price > 0:
            return None
        series = self._series.get(key)
        if series is None:
            series = self._series[key] = deque(maxlen=self._capacity)

        now = self._clock()
        if series:
            last = series[-1].timestamp
            if now < last:
                now = last
            if now - last < self._sample_interval:
                return None

        point = HistoryPoint(timestamp=now, price=price, symbol=symbol)
        series.append(point)  # deque(maxlen) evicts the oldest point
        return point

    def query(self, key: str, window: float = DAY_SECONDS) -> list[HistoryPoint]:
        """Points no older than ``window`` seconds, oldest first."""
        series = self._series.get(key)
        if not series:
            return []
        cutoff = self._clock() - window
        return [p for p in series if p.timestamp >= cutoff]

    def stats(self, key: str, window: float = DAY_SECONDS) -> PriceStats:
        points = self.query(key, window)
        if not points:
            return PriceStats()

        prices = [p.price for p in points]
        opening = points[0].price
        change = points[-1].price - opening
        return PriceStats(
            high=max(prices),
            low=min(prices),
            change=change,
            change_percent=change / opening * 100,
        )

    def clear(self, key: str | None = None) -> None:
        """Drop one key's series, or every series when ``key`` is None."""
        if key is None:
            self._series.clear()
        else:
            self._series.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def __contains__(self, key: str) -> bool:
        return key in self._series
