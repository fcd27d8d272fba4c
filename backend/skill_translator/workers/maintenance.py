"""
Periodic cache maintenance.

Runs inside the serving process as a single asyncio task: once a day, at the
configured local hour, expired cache entries are purged. Failures are logged
and the loop keeps going.
"""

import asyncio
from datetime import datetime, timedelta

from skill_translator.core.logging import get_logger
from skill_translator.services.cache_store import CacheStore

logger = get_logger(__name__)


def seconds_until_hour(hour: int, now: datetime | None = None) -> float:
    """Seconds from ``now`` (local time) until the next occurrence of ``hour``:00."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def cleanup_expired_entries(cache: CacheStore) -> dict:
    """
    Purge cache entries past their maximum age.

    Returns:
        dict: Cleanup results
    """
    logger.info("Starting cache cleanup")

    try:
        deleted = await cache.purge(expired_only=True)
    except Exception as e:
        logger.error(f"Cache cleanup failed: {e}", exc_info=True)
        return {"status": "failed", "deleted_count": 0, "error": str(e)}

    logger.info(f"Cache cleanup completed, {deleted} entries removed")
    return {"status": "success", "deleted_count": deleted}


async def run_daily_cleanup(cache: CacheStore, hour: int) -> None:
    """Run cleanup every day at ``hour`` local time until cancelled."""
    while True:
        delay = seconds_until_hour(hour)
        logger.info(f"Next cache cleanup in {delay / 3600:.1f} hours")
        await asyncio.sleep(delay)
        await cleanup_expired_entries(cache)


def start_maintenance(cache: CacheStore, hour: int) -> asyncio.Task:
    """Schedule the daily cleanup loop on the running event loop."""
    return asyncio.create_task(run_daily_cleanup(cache, hour), name="cache-maintenance")


async def stop_maintenance(task: asyncio.Task | None) -> None:
    """Cancel the cleanup loop and wait for it to finish."""
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    logger.info("Cache maintenance stopped")
