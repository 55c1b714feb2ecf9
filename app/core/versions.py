"""
app/core/versions.py
Version lookup service — the only thing routers talk to.

  cache hit (fresh)  → stored version, nothing else
  cache hit (stale)  → stored version now, background refresh kicked off
  cache miss         → fetch while the caller waits; failure goes to the caller

Concurrent misses for the same key share a single fetch.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable

from app.core.cache import CacheKey, VersionCache
from app.core.config import CACHE_DURATION_S, CHANNELS, VALID_BDS_TYPES
from app.core.refresh import Fetcher, RefreshCoordinator

log = logging.getLogger("versions")


class VersionService:

    def __init__(
        self,
        fetcher: Fetcher,
        ttl_seconds: float = CACHE_DURATION_S,
        platforms: Iterable[str] = VALID_BDS_TYPES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.platforms = tuple(platforms)
        self.cache     = VersionCache(ttl_seconds, clock=clock)
        self.refresher = RefreshCoordinator(self.cache, fetcher)
        self._fetcher  = fetcher
        self._misses:  dict[CacheKey, asyncio.Task] = {}

    @property
    def keys(self) -> list[CacheKey]:
        """Every (platform, preview) pair the service tracks."""
        return [CacheKey(p, c) for p in self.platforms for c in CHANNELS]

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher

    def key_for(self, platform: str, preview: bool) -> CacheKey:
        if platform not in self.platforms:
            raise ValueError(f"Unknown platform '{platform}' — expected one of {', '.join(self.platforms)}")
        return CacheKey(platform, bool(preview))

    async def lookup(self, platform: str, preview: bool) -> str:
        """
        Latest version for (platform, preview).
        Raises whatever the fetcher raises, but only when nothing is cached.
        """
        key   = self.key_for(platform, preview)
        entry = self.cache.get(key)
        if entry is not None:
            self.refresher.ensure_fresh(key)
            log.debug(f"Cache hit for {key.label}: {entry.version}")
            return entry.version
        return await self._fetch_miss(key)

    async def _fetch_miss(self, key: CacheKey) -> str:
        task = self._misses.get(key)
        if task is None:
            log.info(f"Cache miss for {key.label} — fetching")
            task = asyncio.create_task(self._fetch_and_store(key), name=f"miss:{key.label}")
            self._misses[key] = task
            task.add_done_callback(lambda t: self._forget_miss(key, t))
        else:
            log.info(f"Cache miss for {key.label} — joining in-flight fetch")
        # shield: a disconnecting caller must not cancel the fetch other callers wait on
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: CacheKey) -> str:
        version = await self._fetcher(key.platform, key.preview)
        self.cache.put(key, version)
        log.info(f"Fetched {key.label}: {version}")
        return version

    def _forget_miss(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._misses.get(key) is task:
            del self._misses[key]
        if not task.cancelled() and task.exception() is not None:
            log.warning(f"Fetch for {key.label} failed: {task.exception()}")

    def status(self) -> dict:
        """Cached / version per key plus the TTL. Pure read."""
        entries: dict[str, dict] = {}
        for key in self.keys:
            e = self.cache.get(key)
            entries[key.label] = {
                "cached":  e is not None,
                "version": e.version if e else None,
            }
        return {"ttl_seconds": self.cache.ttl_seconds, "entries": entries}

    def health(self) -> dict[str, dict]:
        """Per-key age and refresh flag — changes over time, unlike status()."""
        out: dict[str, dict] = {}
        for key in self.keys:
            e = self.cache.get(key)
            out[key.label] = {
                "age_s":      self.cache.age(key),
                "refreshing": bool(e and e.refreshing),
            }
        return out

    async def close(self) -> None:
        await self.refresher.cancel_all()
        tasks = list(self._misses.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
