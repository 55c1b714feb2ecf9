"""
app/core/cache.py
═══════════════════════════════════════════════════════════════════════════
Atomic in-memory version cache.
  • One entry per (platform, preview) key, created on first successful fetch
  • Only put() writes version / fetched_at → failed fetches never touch them
  • mark_refreshing() is a compare-and-set under a threading lock
    → at most one refresh in flight per key
  • get() hands out snapshots, callers never hold a live entry
═══════════════════════════════════════════════════════════════════════════
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, NamedTuple, Optional

from app.core.config import channel_name


class CacheKey(NamedTuple):
    platform: str
    preview:  bool

    @property
    def label(self) -> str:
        return f"{self.platform}/{channel_name(self.preview)}"


@dataclass
class CacheEntry:
    version:    str
    fetched_at: float
    refreshing: bool = False


class VersionCache:
    """In-memory store for the latest version per key.

    ``clock`` must be monotonic; it is injectable so tests can move time.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock   = clock
        self._store:   dict[CacheKey, CacheEntry] = {}
        # refresh claims for keys that have no entry yet
        self._claims:  set[CacheKey] = set()
        self._lock    = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Snapshot of the entry, or None if the key was never fetched."""
        with self._lock:
            e = self._store.get(key)
            return replace(e) if e else None

    def put(self, key: CacheKey, version: str) -> None:
        """Store a freshly fetched version. Called on successful fetch only."""
        with self._lock:
            self._store[key] = CacheEntry(version=version, fetched_at=self._clock())
            self._claims.discard(key)

    def mark_refreshing(self, key: CacheKey) -> bool:
        """Claim the refresh for ``key``. True means the caller owns it."""
        with self._lock:
            e = self._store.get(key)
            if e is None:
                if key in self._claims:
                    return False
                self._claims.add(key)
                return True
            if e.refreshing:
                return False
            e.refreshing = True
            return True

    def clear_refreshing(self, key: CacheKey) -> None:
        with self._lock:
            e = self._store.get(key)
            if e:
                e.refreshing = False
            self._claims.discard(key)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self.ttl_seconds

    def age(self, key: CacheKey) -> Optional[float]:
        """Seconds since last successful write, or None."""
        with self._lock:
            e = self._store.get(key)
            return round(self._clock() - e.fetched_at, 1) if e else None

    def snapshot(self) -> dict[CacheKey, CacheEntry]:
        with self._lock:
            return {k: replace(e) for k, e in self._store.items()}
