"""Admissions Analytics — Scheduler Jobs.

APScheduler interval job that keeps the active campus list warm and drops
expired lookup cache entries.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from admissions.config import settings
from admissions.core.logging import get_logger
from admissions.core.lookup_cache import LookupCache
from admissions.database import engine
from admissions.services.campus_service import CampusService

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def refresh_caches_job(campus_cache: LookupCache, lookup_cache: LookupCache) -> None:
    """Reload active campuses and purge expired lookups.

    Runs on the event loop, the same thread the request handlers use the
    lookup cache from.
    """
    logger.info("Scheduled cache refresh starting...")
    try:
        with Session(engine) as session:
            campuses = CampusService(session, campus_cache).refresh()
        purged = lookup_cache.purge_expired()
        logger.info(
            f"Cache refresh complete. {len(campuses)} active campuses, "
            f"{purged} expired lookups purged"
        )
    except Exception as e:
        logger.error(f"Scheduled cache refresh failed: {e}")


def start_scheduler(campus_cache: LookupCache, lookup_cache: LookupCache) -> None:
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        refresh_caches_job,
        "interval",
        minutes=settings.campus_refresh_minutes,
        args=[campus_cache, lookup_cache],
        id="refresh_caches",
        replace_existing=True,
        misfire_grace_time=600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Cache refresh every {settings.campus_refresh_minutes} minutes"
    )


def stop_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
