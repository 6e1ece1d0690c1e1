from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.timeseries_store import build_default_store
from logging_config import configure_logging
from services.collector import build_default_collector
from services.monitor import build_default_monitor
from services.orchestrator import build_default_orchestrator
from services.scheduler import JobScheduler
from services.stations import build_default_registry
from settings import get_settings

logger = logging.getLogger(__name__)

_FACTORIES = (
    build_default_monitor,
    build_default_orchestrator,
    build_default_store,
    build_default_collector,
    build_default_registry,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    monitor = build_default_monitor()
    scheduler = JobScheduler()
    app.state.scheduler = scheduler

    logger.info(f"Starting coastal monitor with {len(monitor.registry)} stations")
    if settings.scheduler_enabled:
        monitor.orchestrator.register_jobs(
            scheduler,
            water_level_cron=settings.water_level_cron,
            monthly_mean_cron=settings.monthly_mean_cron,
        )
        scheduler.start()
    if settings.bootstrap_enabled:
        monitor.orchestrator.start_bootstrap()

    try:
        yield
    finally:
        scheduler.shutdown()
        monitor.close()
        for factory in _FACTORIES:
            factory.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Coastal Tide Monitor",
        description="Collects NOAA tide station data into a GridDB time-series store.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
