"""
Scheduled Tasks for SuperClaw

Periodic background work:
1. Monthly usage reset - zero messages_this_month for paid tiers

Uses APScheduler for in-process scheduling. For production deployments
with multiple workers, set enable_scheduler=False and call
POST /api/cron/usage-reset from an external scheduler instead.
"""

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from superclaw.agent.structured_logging import scheduler_log
from superclaw.config import settings
from superclaw.db import async_session_maker
from superclaw.services.usage_service import get_usage_service

logger = logging.getLogger("superclaw.scheduler")

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def run_monthly_usage_reset(session_factory=None) -> int:
    """Reset monthly counters for every non-FREE user. Returns the number reset."""
    scheduler_log.info("Starting scheduled usage reset...")

    async with (session_factory or async_session_maker)() as db:
        count = await get_usage_service(db).reset_all_non_free()

    scheduler_log.info(f"Usage reset complete: {count} users", data={"reset_count": count})
    return count


def setup_scheduler(
    reset_day: Optional[int] = None,
    reset_hour: Optional[int] = None,
) -> AsyncIOScheduler:
    """
    Set up the APScheduler with the usage reset job.

    Args:
        reset_day: Day of month for the reset (default: settings.usage_reset_day)
        reset_hour: Hour of day, UTC (default: settings.usage_reset_hour)

    Returns:
        Configured scheduler instance
    """
    global scheduler

    day = reset_day if reset_day is not None else settings.usage_reset_day
    hour = reset_hour if reset_hour is not None else settings.usage_reset_hour

    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        run_monthly_usage_reset,
        trigger=CronTrigger(day=day, hour=hour, minute=0, timezone="UTC"),
        id="monthly_usage_reset",
        name="Monthly Usage Reset",
        replace_existing=True,
    )

    logger.info(f"Scheduler configured: usage reset on day {day} at {hour:02d}:00 UTC")
    return scheduler


def start_scheduler():
    """Start the scheduler if not already running."""
    global scheduler

    if scheduler is None:
        scheduler = setup_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Usage reset scheduler started")


def stop_scheduler():
    """Stop the scheduler if running."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("Usage reset scheduler stopped")
    scheduler = None


# Run the reset manually: python -m superclaw.scripts.scheduled_tasks
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_monthly_usage_reset())
