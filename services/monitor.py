"""Read and trigger surface consumed by the HTTP layer."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from app.schemas import (
    DashboardResponse,
    DashboardStation,
    LevelSummaryOut,
    MonthlyMeanPoint,
    MonthlyTrendResponse,
    StationInfo,
    TrendSummaryOut,
    TriggerResponse,
    TriggerStatus,
    WaterLevelPoint,
    WaterLevelResponse,
)
from datastore.containers import EntityKind, parse_store_timestamp
from datastore.timeseries_store import TimeSeriesStoreClient, build_default_store
from models.records import Station
from services.aggregator import Aggregator
from services.collector import years_before
from services.errors import TideMonitorError
from services.orchestrator import (
    IngestionOrchestrator,
    TickReport,
    TickStatus,
    build_default_orchestrator,
)
from services.stations import StationRegistry, build_default_registry

logger = logging.getLogger(__name__)

DASHBOARD_LEVEL_HOURS = 1
DASHBOARD_TREND_YEARS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _station_info(station: Station) -> StationInfo:
    return StationInfo(
        station_id=station.station_id,
        name=station.name,
        state=station.state,
        latitude=station.latitude,
        longitude=station.longitude,
        region=station.region,
        is_active=station.is_active,
    )


def _water_level_point(row: Dict[str, Any]) -> WaterLevelPoint:
    return WaterLevelPoint(
        station_id=row.get("station_id"),
        station_name=row.get("station_name"),
        timestamp=parse_store_timestamp(row.get("timestamp")),
        water_level=row.get("water_level"),
        datum=row.get("datum"),
        latitude=row.get("latitude"),
        longitude=row.get("longitude"),
        flags=row.get("flags") or "",
    )


def _monthly_mean_point(row: Dict[str, Any]) -> MonthlyMeanPoint:
    month = parse_store_timestamp(row.get("month"))
    return MonthlyMeanPoint(
        station_id=row.get("station_id"),
        station_name=row.get("station_name"),
        month=month.date() if month else None,
        mean_sea_level=row.get("mean_sea_level"),
        year=row.get("year"),
        month_number=row.get("month_number"),
        latitude=row.get("latitude"),
        longitude=row.get("longitude"),
    )


class CoastalMonitorService:
    """Facade over the registry, store and orchestrator.

    Every method returns a response model; failures are reported inside the
    payload and never raised to the caller.
    """

    def __init__(
        self,
        registry: StationRegistry,
        store: TimeSeriesStoreClient,
        orchestrator: IngestionOrchestrator,
        aggregator: Optional[Aggregator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self.store = store
        self.orchestrator = orchestrator
        self.aggregator = aggregator or Aggregator()
        self._clock = clock

    def list_stations(self) -> List[StationInfo]:
        return [_station_info(station) for station in self.registry.list_stations()]

    def get_latest_water_levels(self, station_id: str, hours: int = 24) -> WaterLevelResponse:
        since = self._clock() - timedelta(hours=hours)
        try:
            rows = self.store.query(EntityKind.water_level, station_id=station_id, since=since)
            results = [_water_level_point(row) for row in rows]
        except (TideMonitorError, ValidationError) as exc:
            logger.error(
                "Failed to query water levels",
                extra={"station_id": station_id, "reason": str(exc)},
            )
            return WaterLevelResponse(station_id=station_id, hours=hours, error=str(exc))
        return WaterLevelResponse(station_id=station_id, hours=hours, results=results)

    def get_monthly_trends(self, station_id: str, years: int = 10) -> MonthlyTrendResponse:
        now = self._clock()
        since = datetime.combine(
            years_before(now.date(), years), datetime.min.time(), tzinfo=timezone.utc
        )
        try:
            rows = self.store.query(EntityKind.monthly_mean, station_id=station_id, since=since)
            results = [_monthly_mean_point(row) for row in rows]
        except (TideMonitorError, ValidationError) as exc:
            logger.error(
                "Failed to query monthly trends",
                extra={"station_id": station_id, "reason": str(exc)},
            )
            return MonthlyTrendResponse(station_id=station_id, years=years, error=str(exc))
        return MonthlyTrendResponse(station_id=station_id, years=years, results=results)

    def get_dashboard_data(self) -> DashboardResponse:
        cards: List[DashboardStation] = []
        for station in self.registry.list_stations():
            card = DashboardStation(station=_station_info(station))

            levels = self.get_latest_water_levels(station.station_id, DASHBOARD_LEVEL_HOURS)
            if levels.error:
                card.errors.append(levels.error)
            else:
                summary = self.aggregator.summarize_levels(
                    (point.timestamp.isoformat(), point.water_level) for point in levels.results
                )
                card.latest_water_level = LevelSummaryOut(**vars(summary))

            trends = self.get_monthly_trends(station.station_id, DASHBOARD_TREND_YEARS)
            if trends.error:
                card.errors.append(trends.error)
            else:
                trend = self.aggregator.sea_level_trend(
                    (point.month, point.mean_sea_level) for point in trends.results
                )
                card.monthly_trend = TrendSummaryOut(**vars(trend))

            cards.append(card)

        return DashboardResponse(
            stations=cards,
            total_stations=len(cards),
            last_updated=self._clock(),
        )

    def trigger_latest_water_level_tick(self) -> TriggerResponse:
        return self._trigger(
            "latest water level collection", self.orchestrator.trigger_latest_water_levels
        )

    def trigger_monthly_mean_tick(self) -> TriggerResponse:
        return self._trigger(
            "monthly mean update", self.orchestrator.trigger_monthly_means
        )

    def _trigger(self, description: str, run: Callable[[], TickReport]) -> TriggerResponse:
        try:
            report = run()
        except Exception as exc:  # noqa: BLE001 - surfaced as an error envelope
            logger.error(f"Manual {description} failed", extra={"reason": str(exc)})
            return TriggerResponse(
                status=TriggerStatus.error,
                job=description,
                message=f"Failed to run {description}: {exc}",
                timestamp=self._clock(),
            )

        if report.status is TickStatus.busy:
            return TriggerResponse(
                status=TriggerStatus.busy,
                job=report.job.value,
                message=f"A {description} is already running; skipped.",
                timestamp=self._clock(),
            )

        return TriggerResponse(
            status=TriggerStatus.success,
            job=report.job.value,
            message=f"{description.capitalize()} triggered successfully",
            timestamp=self._clock(),
            records_stored=report.records_stored,
            stations_attempted=report.stations_attempted,
            stations_failed=report.stations_failed,
        )

    def close(self) -> None:
        self.orchestrator.shutdown()
        self.orchestrator.collector.close()
        self.store.close()


@lru_cache
def build_default_monitor() -> CoastalMonitorService:
    """Factory that wires the monitor with default collaborators."""
    return CoastalMonitorService(
        registry=build_default_registry(),
        store=build_default_store(),
        orchestrator=build_default_orchestrator(),
    )
