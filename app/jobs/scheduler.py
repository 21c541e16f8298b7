"""
APScheduler Configuration

Background jobs run in-process on the application's event loop.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,
}

scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone='UTC'
)


async def run_low_stock_check():
    """Scheduler entry point; a failed run is logged and retried on the next tick."""
    from app.jobs.inventory_jobs import check_low_stock

    try:
        await check_low_stock()
    except Exception as e:
        logger.error(f"Job 'low_stock_check' failed: {e}", exc_info=True)


def start_scheduler():
    """Start the background job scheduler."""
    if scheduler.running:
        return

    scheduler.add_job(
        run_low_stock_check,
        'interval',
        minutes=settings.LOW_STOCK_CHECK_INTERVAL_MINUTES,
        id='low_stock_check',
        name='Low stock scan',
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Background scheduler started "
        f"(low stock check every {settings.LOW_STOCK_CHECK_INTERVAL_MINUTES} min)"
    )


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
