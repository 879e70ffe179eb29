"""Periodically evict expired geo-cache entries."""
import asyncio
import logging

from cotravel.services.geo_cache import GeoCache

logger = logging.getLogger(__name__)

CHECK_INTERVAL_SECONDS = 60


def run_cache_sweep_once(cache: GeoCache) -> int:
    removed = cache.sweep()
    if removed:
        logger.debug("geo cache sweep removed %d entries", removed)
    return removed


async def run_cache_sweep_loop(cache: GeoCache, interval: float = CHECK_INTERVAL_SECONDS) -> None:
    while True:
        try:
            run_cache_sweep_once(cache)
        except Exception:
            logger.exception("geo cache sweep failed")
        await asyncio.sleep(interval)
