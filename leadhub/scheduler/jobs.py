"""LeadHub — Scheduler Jobs.

APScheduler daily jobs: spend/structure ingestion at `sync_hour` and
lead sync at `lead_sync_hour`.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from leadhub.config import settings
from leadhub.core.errors import SyncAlreadyRunning
from leadhub.core.logging import get_logger
from leadhub.sync.runner import run_ingestion, run_lead_sync

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def daily_ingestion_job():
    """Run a full spend and structure sync."""
    logger.info("Scheduled ingestion starting...")
    try:
        progress = await run_ingestion()
        logger.info(
            f"Scheduled ingestion complete. Accounts: {progress.accounts_processed}, "
            f"daily rows: {progress.daily_rows_written}"
        )
    except SyncAlreadyRunning:
        logger.warning("Scheduled ingestion skipped: a sync is already running")
    except Exception as e:
        logger.error(f"Scheduled ingestion failed: {e}")


async def daily_lead_sync_job():
    """Pull new leads from every form."""
    logger.info("Scheduled lead sync starting...")
    try:
        progress = await run_lead_sync()
        logger.info(
            f"Scheduled lead sync complete. Inserted: {progress.total_inserted}, "
            f"duplicates: {progress.total_skipped}"
        )
    except SyncAlreadyRunning:
        logger.warning("Scheduled lead sync skipped: a lead sync is already running")
    except Exception as e:
        logger.error(f"Scheduled lead sync failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_ingestion_job,
        "cron",
        hour=settings.sync_hour,
        minute=0,
        id="daily_ingestion",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        daily_lead_sync_job,
        "cron",
        hour=settings.lead_sync_hour,
        minute=0,
        id="daily_lead_sync",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Ingestion at {settings.sync_hour}:00 UTC, "
        f"lead sync at {settings.lead_sync_hour}:00 UTC"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
