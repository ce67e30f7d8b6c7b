"""
Background Scheduler
====================
Runs one recurring job:

  ingest_calendar — on startup and on INGEST_CRON (Sundays 00:00 by default)
      • downloads the iCal feed and normalizes it with Gemini
      • overwrites <DATA_DIR>/structured_events.json
      • invalidates the in-memory event cache

Disabled entirely when SKIP_PARSE is set.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging
from datetime import datetime, timezone

from signage.config import Settings
from signage.services.event_cache import EventCache
from signage.services.ingestion import ingest

logger = logging.getLogger(__name__)


def create_scheduler(settings: Settings, cache: EventCache) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    if settings.skip_parse:
        logger.info("SKIP_PARSE set — calendar ingestion disabled.")
        return scheduler

    scheduler.add_job(
        ingest_calendar,
        trigger=CronTrigger.from_crontab(settings.ingest_cron, timezone=settings.timezone),
        args=[settings, cache],
        id="ingest_calendar",
        name=f"Ingest calendar feed ({settings.ingest_cron})",
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),  # run immediately on startup
    )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler):
    scheduler.start()
    logger.info(f"Scheduler started — {len(scheduler.get_jobs())} job(s).")


def stop_scheduler(scheduler: AsyncIOScheduler):
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped.")


# ──────────────────────────────────────────────
# Job: calendar ingestion
# ──────────────────────────────────────────────

async def ingest_calendar(settings: Settings, cache: EventCache):
    logger.info("─── ingest_calendar started ───")
    try:
        result = await ingest(settings, cache)
        logger.info(
            f"Ingestion done — {result.original_event_count} feed events, "
            f"{result.structured_event_count} structured events."
        )
    except Exception as e:
        logger.error(f"Calendar ingestion failed, keeping previous events: {e}", exc_info=True)
    logger.info("─── ingest_calendar done ───")
