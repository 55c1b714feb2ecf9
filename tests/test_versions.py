"""
Tests for the version lookup service: hit, stale-serve and miss paths.
"""

import asyncio

import pytest

from app.core.cache import CacheKey
from app.scrapers.minecraft import SourceUnavailable

WIN = CacheKey("win", False)


class TestLookupMiss:

    @pytest.mark.asyncio
    async def test_miss_fetches_once_and_caches(self, service, fetcher):
        assert await service.lookup("win", False) == "1.0.0.0"
        assert fetcher.calls == [("win", False)]

        status = service.status()
        assert status["entries"]["win/stable"] == {"cached": True, "version": "1.0.0.0"}

    @pytest.mark.asyncio
    async def test_miss_failure_propagates(self, service, fetcher):
        fetcher.script("linux", True, SourceUnavailable("no link"))

        with pytest.raises(SourceUnavailable, match="no link"):
            await service.lookup("linux", True)

        assert service.status()["entries"]["linux/preview"] == {"cached": False, "version": None}

    @pytest.mark.asyncio
    async def test_miss_retries_after_failure(self, service, fetcher):
        fetcher.script("win", False, SourceUnavailable("down"), "1.2.3.4")

        with pytest.raises(SourceUnavailable):
            await service.lookup("win", False)
        assert await service.lookup("win", False) == "1.2.3.4"
        assert fetcher.calls_for("win", False) == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, service, fetcher):
        fetcher.gate = asyncio.Event()

        first = asyncio.create_task(service.lookup("win", False))
        second = asyncio.create_task(service.lookup("win", False))
        await asyncio.sleep(0.01)
        fetcher.gate.set()

        assert await asyncio.gather(first, second) == ["1.0.0.0", "1.0.0.0"]
        assert fetcher.calls_for("win", False) == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_failure(self, service, fetcher):
        fetcher.gate = asyncio.Event()
        fetcher.script("win", False, SourceUnavailable("down"))

        first = asyncio.create_task(service.lookup("win", False))
        second = asyncio.create_task(service.lookup("win", False))
        await asyncio.sleep(0.01)
        fetcher.gate.set()

        results = await asyncio.gather(first, second, return_exceptions=True)
        assert all(isinstance(r, SourceUnavailable) for r in results)
        assert fetcher.calls_for("win", False) == 1

    @pytest.mark.asyncio
    async def test_unknown_platform_rejected(self, service, fetcher):
        with pytest.raises(ValueError):
            await service.lookup("mac", False)
        assert fetcher.calls == []


class TestLookupHit:

    @pytest.mark.asyncio
    async def test_fresh_hit_does_not_fetch(self, service, fetcher):
        service.cache.put(WIN, "1.0.0.0")

        assert await service.lookup("win", False) == "1.0.0.0"
        await service.refresher.drain()
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_stale_hit_serves_old_version_without_blocking(self, service, fetcher, clock):
        service.cache.put(WIN, "1.0.0.0")
        clock.advance(1.0)
        fetcher.gate = asyncio.Event()
        fetcher.script("win", False, "1.0.0.1")

        # fetcher is held, so these would hang if lookup waited on the refresh
        assert await asyncio.wait_for(service.lookup("win", False), timeout=1) == "1.0.0.0"
        assert await asyncio.wait_for(service.lookup("win", False), timeout=1) == "1.0.0.0"

        await asyncio.sleep(0)
        assert fetcher.calls_for("win", False) == 1

        fetcher.gate.set()
        await service.refresher.drain()
        assert fetcher.calls_for("win", False) == 1
        assert await service.lookup("win", False) == "1.0.0.1"

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_serving_old_version(self, service, fetcher, clock):
        service.cache.put(WIN, "1.0.0.0")
        clock.advance(3.0)
        fetcher.script("win", False, SourceUnavailable("timeout"))

        assert await service.lookup("win", False) == "1.0.0.0"
        await service.refresher.drain()

        assert await service.lookup("win", False) == "1.0.0.0"
        assert service.status()["entries"]["win/stable"] == {"cached": True, "version": "1.0.0.0"}
        await service.refresher.drain()

        # flag was cleared: the second stale lookup launched exactly one new refresh
        assert fetcher.calls_for("win", False) == 2
        assert service.cache.get(WIN).refreshing is False


class TestStatus:

    def test_status_lists_every_key(self, service):
        status = service.status()
        assert status["ttl_seconds"] == 1.0
        assert set(status["entries"]) == {"win/stable", "win/preview", "linux/stable", "linux/preview"}
        assert all(v == {"cached": False, "version": None} for v in status["entries"].values())

    def test_status_is_idempotent(self, service, clock):
        service.cache.put(WIN, "1.0.0.0")
        first = service.status()
        clock.advance(10)
        assert service.status() == first
        assert service.status() == first

    def test_health_reports_age(self, service, clock):
        service.cache.put(WIN, "1.0.0.0")
        clock.advance(7)
        health = service.health()
        assert health["win/stable"] == {"age_s": 7.0, "refreshing": False}
        assert health["linux/stable"] == {"age_s": None, "refreshing": False}


class TestScenario:

    @pytest.mark.asyncio
    async def test_miss_hit_stale_refresh(self, service, fetcher, clock):
        fetcher.script("win", False, "1.0.0.0", "1.0.0.1")

        # absent → blocking fetch
        assert await service.lookup("win", False) == "1.0.0.0"
        assert fetcher.calls_for("win", False) == 1

        # within TTL → served from cache, no fetch
        assert await service.lookup("win", False) == "1.0.0.0"
        await service.refresher.drain()
        assert fetcher.calls_for("win", False) == 1

        # TTL elapsed → old value now, one background fetch
        clock.advance(1.0)
        assert await service.lookup("win", False) == "1.0.0.0"
        await service.refresher.drain()
        assert fetcher.calls_for("win", False) == 2

        assert await service.lookup("win", False) == "1.0.0.1"


class TestClose:

    @pytest.mark.asyncio
    async def test_close_cancels_and_awaits_pending_miss(self, service, fetcher):
        fetcher.gate = asyncio.Event()

        waiter = asyncio.create_task(service.lookup("win", False))
        await asyncio.sleep(0.01)
        assert fetcher.calls_for("win", False) == 1

        await service.close()

        assert service._misses == {}
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert service.status()["entries"]["win/stable"]["cached"] is False

    @pytest.mark.asyncio
    async def test_close_cancels_background_refresh(self, service, fetcher, clock):
        service.cache.put(WIN, "1.0.0.0")
        clock.advance(2.0)
        fetcher.gate = asyncio.Event()

        assert await service.lookup("win", False) == "1.0.0.0"
        await asyncio.sleep(0)
        await service.close()

        assert service.refresher.in_flight == 0
        assert service.cache.get(WIN).refreshing is False
