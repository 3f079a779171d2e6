"""Per-tier cache statistics.

Tracks ``hit`` / ``miss`` / ``error`` counts for named tiers.  Errors are
counted separately from misses so a disk tier that keeps failing can be told
apart from one that is merely cold, even though the loader treats both as a
fall-through to the next tier.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    """Immutable snapshot of one tier's counters."""

    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate as a float in [0.0, 1.0]; 0.0 when no lookups."""
        if self.total == 0:
            return 0.0
        return self.hits / self.total


class CacheStatsCollector:
    """Thread-safe collector shared by the tiers of one loader session.

    Usage::

        stats = CacheStatsCollector()
        stats.record_hit("memory")
        stats.record_error("disk")
        print(stats.get("disk").errors)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: Counter[str] = Counter()
        self._misses: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()

    def record_hit(self, tier: str) -> None:
        with self._lock:
            self._hits[tier] += 1

    def record_miss(self, tier: str) -> None:
        with self._lock:
            self._misses[tier] += 1

    def record_error(self, tier: str) -> None:
        """Record a failed lookup; it also counts as a miss for the hit rate."""
        with self._lock:
            self._errors[tier] += 1
            self._misses[tier] += 1

    def get(self, tier: str) -> CacheStats:
        with self._lock:
            return self._snapshot(tier)

    def all(self) -> dict[str, CacheStats]:
        """Return snapshots for every tier that has recorded data."""
        with self._lock:
            names = set(self._hits) | set(self._misses) | set(self._errors)
            return {name: self._snapshot(name) for name in sorted(names)}

    def reset(self, tier: str | None = None) -> None:
        """Reset counters.  If *tier* is ``None``, reset all."""
        with self._lock:
            counters = (self._hits, self._misses, self._errors)
            for counter in counters:
                if tier is None:
                    counter.clear()
                else:
                    counter.pop(tier, None)

    def _snapshot(self, tier: str) -> CacheStats:
        return CacheStats(
            hits=self._hits[tier],
            misses=self._misses[tier],
            errors=self._errors[tier],
        )
