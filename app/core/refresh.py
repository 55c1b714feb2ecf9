"""
app/core/refresh.py
═══════════════════════════════════════════════════════════════════════════════
Background refresh with strict guarantees:

  1. Fresh entry → nothing happens
  2. Stale or missing entry → ONE refresh per key (VersionCache.mark_refreshing)
  3. Refresh runs as a detached asyncio task, the caller never waits for it
  4. Failed refresh → keep last valid version, clear the flag, log it
  5. Every task is referenced until done and has a done-callback, so nothing
     dies unobserved
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.core.cache import CacheKey, VersionCache

log = logging.getLogger("refresh")

Fetcher = Callable[[str, bool], Awaitable[str]]


class RefreshCoordinator:

    def __init__(self, cache: VersionCache, fetcher: Fetcher):
        self._cache   = cache
        self._fetcher = fetcher
        self._tasks:  dict[asyncio.Task, CacheKey] = {}
        # tasks whose coroutine got as far as the fetch
        self._started: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def ensure_fresh(self, key: CacheKey) -> Optional[asyncio.Task]:
        """
        Launch a background refresh for ``key`` if its entry is missing or stale.
        Returns the spawned task, or None when the entry is fresh or another
        refresh already owns the key. Must be called from the event loop.
        """
        entry = self._cache.get(key)
        if entry is not None and self._cache.is_fresh(entry):
            return None

        if not self._cache.mark_refreshing(key):
            log.debug(f"Refresh already in flight for {key.label} — skipping")
            return None

        log.info(f"Refreshing {key.label} in background ({'stale' if entry else 'missing'})")
        task = asyncio.create_task(self._refresh(key), name=f"refresh:{key.label}")
        self._tasks[task] = key
        task.add_done_callback(self._on_done)
        return task

    async def _refresh(self, key: CacheKey) -> None:
        self._started.add(asyncio.current_task())
        try:
            version = await self._fetcher(key.platform, key.preview)
        except Exception as ex:
            log.error(f"Background refresh failed for {key.label}: {ex}")
            # Cache not written → previous valid version stays
        else:
            self._cache.put(key, version)
            log.info(f"Refreshed {key.label}: {version}")
        finally:
            self._cache.clear_refreshing(key)

    def _on_done(self, task: asyncio.Task) -> None:
        key = self._tasks.pop(task, None)
        started = task in self._started
        self._started.discard(task)
        if task.cancelled():
            # cancelled before it ran → _refresh's finally never cleared the flag.
            # Once it ran, the flag may already belong to a newer refresh.
            if key is not None and not started:
                self._cache.clear_refreshing(key)
            log.warning(f"{task.get_name()} cancelled")
            return
        ex = task.exception()
        if ex is not None:
            log.error(f"{task.get_name()} crashed: {ex!r}")

    async def drain(self) -> None:
        """Wait for every in-flight refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
