import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

PERIODIC_SYNC_JOB_ID = "periodic_sync"


class SyncScheduler:
    """Manages the recurring sync timer"""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        self._jobs: Dict[str, Any] = {}
        self._paused = False

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    @property
    def paused(self) -> bool:
        return self._paused

    def start(self) -> None:
        """Start the scheduler, or resume it after ``pause()``"""
        if not self.scheduler.running:
            self.scheduler.start()
            self._paused = False
            logger.info("Sync scheduler started")
        elif self._paused:
            self.scheduler.resume()
            self._paused = False
            logger.info("Sync scheduler resumed")

    def pause(self) -> None:
        """Stop firing jobs; jobs already running are not touched"""
        if self.scheduler.running and not self._paused:
            self.scheduler.pause()
            self._paused = True
            logger.info("Sync scheduler paused")

    def shutdown(self) -> None:
        """Shutdown the scheduler without waiting for running jobs"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Sync scheduler stopped")
        self._jobs = {}
        self._paused = False

    def schedule_periodic_sync(
        self,
        func: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        job_id: str = PERIODIC_SYNC_JOB_ID,
        misfire_grace_time: int = 10,
    ) -> str:
        """
        Run ``func`` every ``interval_seconds``.

        Args:
            func: Coroutine function to run on each tick
            interval_seconds: Timer period in seconds
            job_id: Unique job identifier
            misfire_grace_time: Seconds a late tick may still run

        Returns:
            Job ID
        """
        if interval_seconds <= 0:
            raise ValueError("Sync interval must be positive")

        # Remove existing job if any
        if job_id in self._jobs:
            self.scheduler.remove_job(job_id)

        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=misfire_grace_time,
        )

        self._jobs[job_id] = job
        logger.info(f"Scheduled sync check every {interval_seconds} seconds")

        return job_id

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a scheduled job

        Args:
            job_id: Job ID to cancel

        Returns:
            True if job was cancelled
        """
        if job_id in self._jobs:
            self.scheduler.remove_job(job_id)
            del self._jobs[job_id]
            logger.info(f"Cancelled scheduled job: {job_id}")
            return True
        return False

    def get_scheduled_jobs(self) -> Dict[str, Any]:
        """Get information about scheduled jobs"""
        jobs_info = {}

        for job_id, job in self._jobs.items():
            next_run = job.next_run_time
            jobs_info[job_id] = {
                "id": job_id,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
                "active": next_run is not None,
            }

        return jobs_info
