"""Contadores hit/miss por nivel de caché.

Niveles usados por `AssetFetcher`: ``memory`` y ``disk``; las descargas se
cuentan aparte con `record_fetch`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    """Snapshot inmutable de un nivel."""

    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Tasa en [0.0, 1.0]; 0.0 sin requests."""
        if self.total == 0:
            return 0.0
        return self.hits / self.total


class CacheStatsCollector:
    """Colector thread-safe de contadores por nivel."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: dict[str, int] = {}
        self._misses: dict[str, int] = {}
        self._fetches = 0
        self._failures = 0

    def record_hit(self, tier: str) -> None:
        with self._lock:
            self._hits[tier] = self._hits.get(tier, 0) + 1

    def record_miss(self, tier: str) -> None:
        with self._lock:
            self._misses[tier] = self._misses.get(tier, 0) + 1

    def record_fetch(self, *, ok: bool) -> None:
        with self._lock:
            self._fetches += 1
            if not ok:
                self._failures += 1

    @property
    def fetches(self) -> int:
        with self._lock:
            return self._fetches

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def get(self, tier: str) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits.get(tier, 0),
                misses=self._misses.get(tier, 0),
            )

    def all(self) -> dict[str, CacheStats]:
        with self._lock:
            names = set(self._hits) | set(self._misses)
            return {
                name: CacheStats(
                    hits=self._hits.get(name, 0),
                    misses=self._misses.get(name, 0),
                )
                for name in sorted(names)
            }

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._misses.clear()
            self._fetches = 0
            self._failures = 0
