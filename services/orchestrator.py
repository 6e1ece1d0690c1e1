"""Scheduling and execution of the per-station ingestion jobs."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, Optional, Sequence

from datastore.containers import EntityKind
from datastore.timeseries_store import TimeSeriesStoreClient, build_default_store
from models.records import Station
from services.collector import TideDataCollector, build_default_collector
from services.rate_limiter import FixedDelayRateLimiter, NoDelayRateLimiter, RateLimiter
from services.scheduler import JobScheduler
from services.stations import StationRegistry, build_default_registry
from settings import get_settings

logger = logging.getLogger(__name__)

BOOTSTRAP_RECENT_DAYS = 7
BOOTSTRAP_MONTHLY_YEARS = 5
REFRESH_MONTHLY_YEARS = 1

LATEST_JOB_NAME = "latest_water_levels"
MONTHLY_JOB_NAME = "monthly_means"


class JobKind(str, Enum):
    bootstrap = "bootstrap"
    latest_water_levels = "latest_water_levels"
    monthly_means = "monthly_means"


class TickStatus(str, Enum):
    completed = "completed"
    busy = "busy"


@dataclass
class TickReport:
    """Outcome of a single bootstrap or tick run."""

    job: JobKind
    trigger: str
    status: TickStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    stations_attempted: int = 0
    stations_failed: int = 0
    records_stored: int = 0


StationStep = Callable[[Station], int]


class IngestionOrchestrator:
    """Runs bootstrap, latest-water-level and monthly-mean jobs over the registry.

    Stations are processed one at a time in registry order with a rate-limit
    pause between them. A failure for one station is logged and the run moves
    on. Each job kind admits a single concurrent run; a second caller gets a
    ``busy`` report back instead of waiting.
    """

    def __init__(
        self,
        registry: StationRegistry,
        collector: TideDataCollector,
        store: TimeSeriesStoreClient,
        rate_limiters: Optional[Dict[JobKind, RateLimiter]] = None,
    ) -> None:
        self.registry = registry
        self.collector = collector
        self.store = store
        self.rate_limiters: Dict[JobKind, RateLimiter] = {
            kind: NoDelayRateLimiter() for kind in JobKind
        }
        self.rate_limiters.update(rate_limiters or {})
        self._locks: Dict[JobKind, Lock] = {kind: Lock() for kind in JobKind}
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bootstrap")
        self._bootstrap_future: Optional[Future[TickReport]] = None

    def start_bootstrap(self) -> Future[TickReport]:
        """Run :meth:`bootstrap` on the background worker."""
        future = self.executor.submit(self.bootstrap)
        self._bootstrap_future = future
        return future

    def bootstrap(self) -> TickReport:
        """Load station metadata and seed recent and long-term history."""

        def step(station: Station) -> int:
            stored = 0
            recent = self.collector.fetch_recent(station.station_id, BOOTSTRAP_RECENT_DAYS)
            if recent and self.store.write_batch(EntityKind.water_level, recent):
                stored += len(recent)
            monthly = self.collector.fetch_monthly_means(
                station.station_id, BOOTSTRAP_MONTHLY_YEARS
            )
            if monthly and self.store.write_batch(EntityKind.monthly_mean, monthly):
                stored += len(monthly)
            return stored

        def before() -> int:
            stations = self.registry.list_stations()
            if stations and self.store.write_batch(EntityKind.station, stations):
                return len(stations)
            return 0

        return self._run(JobKind.bootstrap, "startup", step, before=before)

    def run_latest_water_levels(self, trigger: str = "scheduled") -> TickReport:
        def step(station: Station) -> int:
            readings = self.collector.fetch_latest(station.station_id)
            if readings and self.store.write_batch(EntityKind.water_level, readings):
                return len(readings)
            return 0

        return self._run(JobKind.latest_water_levels, trigger, step)

    def run_monthly_means(self, trigger: str = "scheduled") -> TickReport:
        def step(station: Station) -> int:
            means = self.collector.fetch_monthly_means(station.station_id, REFRESH_MONTHLY_YEARS)
            if means and self.store.write_batch(EntityKind.monthly_mean, means):
                return len(means)
            return 0

        return self._run(JobKind.monthly_means, trigger, step)

    def trigger_latest_water_levels(self) -> TickReport:
        return self.run_latest_water_levels(trigger="manual")

    def trigger_monthly_means(self) -> TickReport:
        return self.run_monthly_means(trigger="manual")

    def register_jobs(
        self,
        scheduler: JobScheduler,
        water_level_cron: str,
        monthly_mean_cron: str,
    ) -> None:
        scheduler.add_cron_job(LATEST_JOB_NAME, self.run_latest_water_levels, water_level_cron)
        scheduler.add_cron_job(MONTHLY_JOB_NAME, self.run_monthly_means, monthly_mean_cron)

    def is_running(self, kind: JobKind) -> bool:
        return self._locks[kind].locked()

    def shutdown(self) -> None:
        """Stop the bootstrap worker without waiting for it to finish."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _run(
        self,
        kind: JobKind,
        trigger: str,
        step: StationStep,
        before: Optional[Callable[[], int]] = None,
    ) -> TickReport:
        log_extra = {"job": kind.value, "trigger": trigger}
        report = TickReport(
            job=kind,
            trigger=trigger,
            status=TickStatus.completed,
            started_at=datetime.now(timezone.utc),
        )

        lock = self._locks[kind]
        if not lock.acquire(blocking=False):
            logger.warning("Job already running, skipping", extra=log_extra)
            report.status = TickStatus.busy
            report.finished_at = report.started_at
            return report

        start_time = time.perf_counter()
        try:
            logger.info("Job started", extra=log_extra)
            if before is not None:
                try:
                    report.records_stored += before()
                except Exception as exc:  # noqa: BLE001 - never abort the station loop
                    logger.error("Job preparation failed", extra={**log_extra, "reason": str(exc)})
            self._run_stations(kind, report, step, self.registry.active_stations())
        finally:
            lock.release()

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Job finished",
            extra={
                **log_extra,
                "record_count": report.records_stored,
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return report

    def _run_stations(
        self,
        kind: JobKind,
        report: TickReport,
        step: StationStep,
        stations: Sequence[Station],
    ) -> None:
        limiter = self.rate_limiters[kind]
        for index, station in enumerate(stations):
            report.stations_attempted += 1
            try:
                report.records_stored += step(station)
            except Exception as exc:  # noqa: BLE001 - one station must not block the rest
                report.stations_failed += 1
                logger.error(
                    "Station ingestion failed",
                    extra={"job": kind.value, "station_id": station.station_id, "reason": str(exc)},
                )
            if index < len(stations) - 1:
                limiter.wait()


@lru_cache
def build_default_orchestrator() -> IngestionOrchestrator:
    settings = get_settings()
    return IngestionOrchestrator(
        registry=build_default_registry(),
        collector=build_default_collector(),
        store=build_default_store(),
        rate_limiters={
            JobKind.bootstrap: FixedDelayRateLimiter(settings.bootstrap_delay),
            JobKind.latest_water_levels: FixedDelayRateLimiter(settings.latest_delay),
            JobKind.monthly_means: FixedDelayRateLimiter(settings.monthly_delay),
        },
    )
