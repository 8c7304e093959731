"""In-memory per-source cache that classifies entries as fresh or stale."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: Any
    fetched_at: float


class TTLCache:
    """Key -> last successful payload.

    Entries are never dropped for age; once stale they are still served by
    ``get_stale`` until a newer success overwrites them.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._store: dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._clock = clock
        self._hits = 0
        self._stale_hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> tuple[Any | None, bool]:
        """Return ``(value, is_fresh)``; ``(None, False)`` when absent."""
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None, False
        fresh = (self._clock() - entry.fetched_at) < self._ttl
        if fresh:
            self._hits += 1
        else:
            self._misses += 1
        return entry.value, fresh

    def peek(self, key: str) -> tuple[Any | None, bool]:
        """Like ``get`` but leaves the hit/miss counters alone."""
        entry = self._store.get(key)
        if entry is None:
            return None, False
        return entry.value, (self._clock() - entry.fetched_at) < self._ttl

    def put(self, key: str, value: Any) -> None:
        if value is None:
            raise ValueError("refusing to cache None")
        self._store[key] = CacheEntry(key=key, value=value, fetched_at=self._clock())

    def get_stale(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        self._stale_hits += 1
        return entry.value

    def entry(self, key: str) -> CacheEntry | None:
        return self._store.get(key)

    def age(self, key: str) -> float | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        return self._clock() - entry.fetched_at

    def invalidate(self, key: str):
        self._store.pop(key, None)

    def clear(self):
        self._store.clear()
        self._hits = 0
        self._stale_hits = 0
        self._misses = 0

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._store),
            "ttl_s": self._ttl,
            "hits": self._hits,
            "stale_hits": self._stale_hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / max(total, 1) * 100, 1),
        }
