"""Repeat sweeps on an interval using APScheduler."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent

from bionet_ping.scanner.models import SweepOptions

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep"

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def _job_listener(event: JobExecutionEvent) -> None:
    """Listen for job execution events."""
    if event.exception:
        logger.error(
            "Job %s failed with exception: %s",
            event.job_id,
            event.exception,
        )
    else:
        logger.info("Job %s finished; next sweep at %s", event.job_id, get_next_run() or "n/a")


def create_scheduler(event_loop: Optional[asyncio.AbstractEventLoop] = None) -> AsyncIOScheduler:
    """Create and configure the scheduler.

    Jobs are kept in memory only; nothing is persisted between runs.
    """
    job_defaults = {
        "coalesce": True,  # Combine missed runs into one
        "max_instances": 1,  # Never overlap two sweeps
        "misfire_grace_time": 300,
    }

    return AsyncIOScheduler(
        job_defaults=job_defaults,
        timezone="UTC",
        event_loop=event_loop or asyncio.get_running_loop(),
    )


def start_scheduler(options: SweepOptions, interval_minutes: int) -> AsyncIOScheduler:
    """Start sweeping every ``interval_minutes``, beginning immediately."""
    global scheduler

    # Import here to avoid circular imports
    from bionet_ping.scanner.sweep import run_sweep_job

    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    scheduler = create_scheduler()
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        run_sweep_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[options],
        id=SWEEP_JOB_ID,
        name="Bionet Liveness Sweep",
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True,
    )
    logger.info("Scheduled sweep every %d minutes", interval_minutes)

    scheduler.start()
    return scheduler


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
    scheduler = None


def get_next_run() -> Optional[str]:
    """ISO timestamp of the next scheduled sweep, if any."""
    if not scheduler:
        return None
    job = scheduler.get_job(SWEEP_JOB_ID)
    if job is None or job.next_run_time is None:
        return None
    return job.next_run_time.isoformat()


async def run_forever(options: SweepOptions, interval_minutes: int) -> None:
    """Run scheduled sweeps until cancelled."""
    start_scheduler(options, interval_minutes)
    try:
        await asyncio.Event().wait()
    finally:
        shutdown_scheduler()
