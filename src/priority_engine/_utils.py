"""Shared utilities for the scoring engine."""

import math
from collections.abc import Iterator
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Any
from typing import TypeVar

T = TypeVar("T")


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positives.

    Python's round() is banker's rounding; scores need round(82.5) == 83.

    Example:
        >>> round_half_up(82.5)
        83
        >>> round_half_up(64.0)
        64
    """
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most size items."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


@dataclass
class ScoringMetrics:
    """
    Counters for engine activity.

    Example:
        metrics = ScoringMetrics()
        metrics.increment("cache_hits")
        metrics.get_count("cache_hits")  # 1
        metrics.hit_rate()  # 1.0
    """

    _counters: dict[str, int] = field(default_factory=dict)
    _start_time: datetime = field(default_factory=datetime.now)

    def increment(self, name: str, by: int = 1) -> None:
        """Increment a counter."""
        self._counters[name] = self._counters.get(name, 0) + by

    def get_count(self, name: str) -> int:
        """Get counter value (0 if not set)."""
        return self._counters.get(name, 0)

    def hit_rate(self) -> float:
        """Cache hits over all cache lookups (0 if none)."""
        hits = self.get_count("cache_hits")
        total = hits + self.get_count("cache_misses")
        return hits / total if total > 0 else 0.0

    def summary(self) -> dict[str, Any]:
        """Get all counters plus derived values."""
        return {
            "counters": dict(self._counters),
            "cache_hit_rate": self.hit_rate(),
            "elapsed_seconds": (
                datetime.now() - self._start_time
            ).total_seconds(),
        }

    def reset(self) -> None:
        """Reset all counters."""
        self._counters.clear()
        self._start_time = datetime.now()
