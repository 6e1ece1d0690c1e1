from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)


class JobScheduler:
    """Runs named job functions on crontab cadences in a background thread."""

    def __init__(self, scheduler: Optional[BaseScheduler] = None, timezone: str = "UTC") -> None:
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self.timezone = timezone

    def add_cron_job(self, name: str, func: Callable[[], Any], cron_expression: str) -> None:
        """Register ``func`` under ``name`` using a five-field crontab expression."""
        trigger = CronTrigger.from_crontab(cron_expression, timezone=self.timezone)
        self.scheduler.add_job(
            func,
            trigger,
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled {name} with cron '{cron_expression}'", extra={"job": name})

    def job_names(self) -> list[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def get_next_run_time(self, name: str) -> Optional[str]:
        """Get the next run time for a scheduled job."""
        job = self.scheduler.get_job(name)
        next_run = getattr(job, "next_run_time", None) if job else None
        return next_run.isoformat() if next_run else None

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    def start(self) -> None:
        logger.info("Starting scheduler")
        self.scheduler.start()
        logger.info("Scheduler started successfully")

    def shutdown(self) -> None:
        if self.scheduler.running:
            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")
