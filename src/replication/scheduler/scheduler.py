"""
APScheduler-based replication scheduler.

Runs replication periodically on an interval or a cron schedule. A run never
overlaps the previous one: while a replication is still copying, the next
trigger is skipped and logged instead of starting a second copy against the
same tables.
"""

import logging
from typing import Any, Callable, Dict, List

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
    JobEvent,
)
from apscheduler.job import Job
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

CRON_FIELDS = "minute hour day month day_of_week"


def parse_cron_expression(cron_expression: str) -> CronTrigger:
    """
    Build a CronTrigger from a 5-field crontab expression

    Raises:
        ValueError: If the expression does not have exactly 5 fields, or a
            field is out of range
    """
    if len(cron_expression.split()) != 5:
        raise ValueError(f"Cron expression must have 5 parts: {CRON_FIELDS}")

    return CronTrigger.from_crontab(cron_expression)


class ReplicationScheduler:
    """
    Scheduler for periodic replication runs

    Args:
        misfire_grace_time: Seconds a run may start late (after a long
            previous run or a paused process) before it is skipped
    """

    def __init__(self, misfire_grace_time: int = 300):
        self.misfire_grace_time = misfire_grace_time
        self.scheduler = BlockingScheduler()
        self.scheduler.add_listener(
            self._on_job_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES,
        )
        self._jobs: Dict[str, Job] = {}

    @property
    def jobs(self) -> List[Job]:
        return list(self._jobs.values())

    def _on_job_event(self, event: JobEvent) -> None:
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.warning(
                f"Skipping run of '{event.job_id}': previous replication is still running"
            )
        elif event.code == EVENT_JOB_MISSED:
            logger.warning(
                f"Run of '{event.job_id}' scheduled for {event.scheduled_run_time} was missed"
            )
        elif event.code == EVENT_JOB_ERROR:
            logger.error(f"Scheduled replication '{event.job_id}' failed: {event.exception}")
        else:
            logger.info(f"Scheduled replication '{event.job_id}' finished")

    def _schedule(self, job_func: Callable, trigger: BaseTrigger, job_id: str,
                  kwargs: Dict[str, Any]) -> Job:
        job = self.scheduler.add_job(
            job_func,
            trigger=trigger,
            id=job_id,
            kwargs=kwargs,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_time,
        )
        self._jobs[job_id] = job
        return job

    def add_interval_job(
        self,
        job_func: Callable,
        interval_seconds: int,
        job_id: str,
        **kwargs
    ) -> Job:
        """
        Run ``job_func(**kwargs)`` every ``interval_seconds``

        Raises:
            ValueError: If the interval is not positive
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {interval_seconds}")

        job = self._schedule(job_func, IntervalTrigger(seconds=interval_seconds), job_id, kwargs)
        logger.info(f"Scheduled '{job_id}' every {interval_seconds}s")
        return job

    def add_cron_job(
        self,
        job_func: Callable,
        cron_expression: str,
        job_id: str,
        **kwargs
    ) -> Job:
        """
        Run ``job_func(**kwargs)`` on a crontab schedule

        Example cron expressions:
            "0 */6 * * *"  - Every 6 hours
            "0 2 * * *"    - Daily at 02:00
            "*/30 * * * *" - Every 30 minutes
        """
        job = self._schedule(job_func, parse_cron_expression(cron_expression), job_id, kwargs)
        logger.info(f"Scheduled '{job_id}' with cron '{cron_expression}'")
        return job

    def remove_job(self, job_id: str) -> None:
        self.scheduler.remove_job(job_id)
        self._jobs.pop(job_id, None)
        logger.info(f"Removed job '{job_id}'")

    def start(self) -> None:
        """Block and run scheduled replications until interrupted."""
        logger.info(f"Starting replication scheduler with {len(self._jobs)} job(s)")

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler interrupted")
            self.stop()

    def stop(self) -> None:
        if self.scheduler.running:
            # waits for a running replication to complete
            self.scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")

    def list_jobs(self) -> List[Dict[str, Any]]:
        """Describe each scheduled job (id, callable name, next run, trigger)."""
        described = []
        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, "next_run_time", None)
            described.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run_time.isoformat() if next_run_time else None,
                "trigger": str(job.trigger),
            })
        return described
