"""
app/core/warmup.py
═══════════════════════════════════════════════════════════════════════════════
Startup cache warm-up.

  • Every (platform, preview) key is fetched concurrently
  • One failing key never stops the others, and never stops startup
  • Keys that fail here just take the cache-miss path on first request
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
import time
from typing import Optional

from app.core.versions import VersionService

log = logging.getLogger("warmup")


async def warm_up(service: VersionService) -> dict[str, Optional[str]]:
    """Populate all known keys. Returns label → version (None if it failed)."""
    keys = service.keys
    log.info(f"Warming cache for {len(keys)} keys: {', '.join(k.label for k in keys)}")
    t0 = time.time()

    results = await asyncio.gather(
        *(service.fetcher(k.platform, k.preview) for k in keys),
        return_exceptions=True,
    )

    summary: dict[str, Optional[str]] = {}
    for key, res in zip(keys, results):
        if isinstance(res, BaseException):
            log.error(f"Warm-up failed for {key.label}: {res}")
            summary[key.label] = None
            continue
        service.cache.put(key, res)
        summary[key.label] = res
        log.info(f"Warm-up: {key.label} = {res}")

    ok = sum(1 for v in summary.values() if v is not None)
    log.info(f"Warm-up complete in {time.time() - t0:.1f}s ({ok}/{len(keys)} cached)")
    return summary
