"""
Pytest configuration and fixtures.
"""

import asyncio
from typing import Optional, Union

import pytest

from app.core.cache import VersionCache
from app.core.versions import VersionService


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeFetcher:
    """
    Scripted stand-in for the minecraft.net fetcher.

    Results are consumed in order per key; the last one repeats.
    Set ``gate`` to an asyncio.Event to hold every call until it is set.
    """

    def __init__(self, default: str = "1.0.0.0"):
        self.default = default
        self.calls: list[tuple[str, bool]] = []
        self.results: dict[tuple[str, bool], list[Union[str, Exception]]] = {}
        self.gate: Optional[asyncio.Event] = None

    def script(self, platform: str, preview: bool, *results: Union[str, Exception]) -> None:
        self.results[(platform, preview)] = list(results)

    def calls_for(self, platform: str, preview: bool) -> int:
        return self.calls.count((platform, preview))

    async def __call__(self, platform: str, preview: bool) -> str:
        self.calls.append((platform, preview))
        if self.gate is not None:
            await self.gate.wait()
        queue = self.results.get((platform, preview)) or [self.default]
        res = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(res, Exception):
            raise res
        return res


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def cache(clock) -> VersionCache:
    return VersionCache(ttl_seconds=1.0, clock=clock)


@pytest.fixture
def service(fetcher, clock) -> VersionService:
    """Isolated service: TTL of 1 second on the fake clock."""
    return VersionService(fetcher, ttl_seconds=1.0, platforms=("win", "linux"), clock=clock)
