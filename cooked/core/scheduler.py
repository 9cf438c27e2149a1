"""Scheduler for the automated pact jobs (reminders, auto-fold, weekly recap)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from cooked.core.config import settings
from cooked.core.scheduler_tracker import retry_job_with_backoff
from cooked.services.auto_fold_service import auto_fold_missed_check_ins
from cooked.services.recap_service import generate_weekly_recaps
from cooked.services.reminder_service import send_check_in_reminders


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")

# Tracker names of the scheduled jobs, reported by the scheduler health endpoint
JOB_NAMES = ("check_in_reminder", "missed_check_in_auto_fold", "weekly_recap")


async def run_check_in_reminders() -> None:
    """Scheduled entry point for check-in reminders."""
    summary = await send_check_in_reminders()
    logger.info("Scheduled reminders: %d sent, %d failed", summary.reminders_sent, summary.failed)


async def run_auto_fold() -> None:
    """Scheduled entry point for the auto-fold run.

    Per-candidate errors are part of the summary, not a job failure.
    """
    summary = await auto_fold_missed_check_ins()
    logger.info(
        "Scheduled auto-fold for %s: %d folds, %d errors",
        summary.folded_for_date,
        summary.folds_created,
        summary.errors_count,
    )


async def run_weekly_recap() -> None:
    """Scheduled entry point for weekly recap generation."""
    summary = await generate_weekly_recaps()
    logger.info("Scheduled recap for week %s: %d created, %d updated", summary.week_start, summary.created, summary.updated)


def start_scheduler() -> None:
    """Register the jobs from the configured crontab expressions and start the scheduler.

    All expressions are evaluated in UTC. Call during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    for index, expr in enumerate(settings.reminder_crons):
        scheduler.add_job(
            retry_job_with_backoff,
            args=[run_check_in_reminders, "check_in_reminder"],
            trigger=CronTrigger.from_crontab(expr, timezone="UTC"),
            id=f"check_in_reminder_{index}",
            name=f"Send Check-in Reminders ({expr})",
            replace_existing=True,
        )
        logger.info("Scheduled check-in reminder job: %s", expr)

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_auto_fold, "missed_check_in_auto_fold"],
        trigger=CronTrigger.from_crontab(settings.auto_fold_cron, timezone="UTC"),
        id="missed_check_in_auto_fold",
        name="Auto-fold Missed Check-ins",
        replace_existing=True,
    )
    logger.info("Scheduled auto-fold job: %s", settings.auto_fold_cron)

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_weekly_recap, "weekly_recap"],
        trigger=CronTrigger.from_crontab(settings.weekly_recap_cron, timezone="UTC"),
        id="weekly_recap",
        name="Generate Weekly Recaps",
        replace_existing=True,
    )
    logger.info("Scheduled weekly recap job: %s", settings.weekly_recap_cron)

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
