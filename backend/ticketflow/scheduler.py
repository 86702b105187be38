"""Job scheduler using APScheduler."""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ticketflow.config import Settings
from ticketflow.payouts import payout_batch_job

logger = logging.getLogger(__name__)


def build_scheduler(settings: Settings) -> BlockingScheduler:
    """Create a scheduler with the payout batch registered."""
    scheduler = BlockingScheduler(timezone="UTC")

    scheduler.add_job(
        payout_batch_job,
        IntervalTrigger(minutes=settings.scheduler.payout_batch_minutes),
        id="payout-batch",
        name="Payouts: Creator Batch",
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"Registered job: Payout Batch (every {settings.scheduler.payout_batch_minutes} min)"
    )
    return scheduler


def start_scheduler(settings: Settings) -> None:
    """Start the APScheduler with configured jobs."""
    scheduler = build_scheduler(settings)

    try:
        logger.info("✓ Scheduler starting...")
        logger.info(f"✓ {len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
