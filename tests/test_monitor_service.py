from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, List

import pytest

from app.schemas import TriggerStatus
from conftest import FakeGridDB, build_store
from datastore.containers import EntityKind
from models.records import MonthlyMean, WaterLevelReading
from services.monitor import CoastalMonitorService
from services.orchestrator import JobKind, TickReport, TickStatus
from services.stations import StationRegistry

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
STATIONS = "8518750,The Battery,NY,40.7,-74.0,true,Northeast;8443970,Boston,MA,42.35,-71.05,false"


class FakeCollector:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeOrchestrator:
    def __init__(self, status: TickStatus = TickStatus.completed, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.collector = FakeCollector()
        self.calls: List[str] = []
        self.shut_down = False

    def _report(self, job: JobKind) -> TickReport:
        if self.error is not None:
            raise self.error
        report = TickReport(job=job, trigger="manual", status=self.status, started_at=NOW, finished_at=NOW)
        if self.status is TickStatus.completed:
            report.stations_attempted = 2
            report.stations_failed = 1
            report.records_stored = 5
        return report

    def trigger_latest_water_levels(self) -> TickReport:
        self.calls.append("latest")
        return self._report(JobKind.latest_water_levels)

    def trigger_monthly_means(self) -> TickReport:
        self.calls.append("monthly")
        return self._report(JobKind.monthly_means)

    def shutdown(self) -> None:
        self.shut_down = True


def _reading(station_id: str, moment: datetime, level: float) -> WaterLevelReading:
    return WaterLevelReading(
        station_id=station_id,
        station_name="The Battery",
        timestamp=moment,
        level=level,
        datum="MLLW",
        latitude=40.7,
        longitude=-74.0,
    )


def _mean(station_id: str, year: int, month: int, level: float) -> MonthlyMean:
    return MonthlyMean(
        station_id=station_id,
        station_name="The Battery",
        month=date(year, month, 1),
        mean_sea_level=level,
        year=year,
        month_number=month,
        latitude=40.7,
        longitude=-74.0,
    )


@pytest.fixture()
def service(fake_griddb: FakeGridDB) -> CoastalMonitorService:
    return CoastalMonitorService(
        registry=StationRegistry.from_config(STATIONS),
        store=build_store(fake_griddb),
        orchestrator=FakeOrchestrator(),  # type: ignore[arg-type]
        clock=lambda: NOW,
    )


def test_list_stations_includes_inactive(service: CoastalMonitorService) -> None:
    stations = service.list_stations()

    assert [station.station_id for station in stations] == ["8518750", "8443970"]
    assert stations[0].region == "Northeast"
    assert stations[1].is_active is False


def test_latest_water_levels_respects_hour_window(service: CoastalMonitorService) -> None:
    service.store.write_batch(
        EntityKind.water_level,
        [
            _reading("8518750", NOW - timedelta(hours=30), 0.4),
            _reading("8518750", NOW - timedelta(hours=2), 0.9),
            _reading("8518750", NOW - timedelta(minutes=30), 1.1),
            _reading("8443970", NOW - timedelta(minutes=30), 2.0),
        ],
    )

    response = service.get_latest_water_levels("8518750", hours=24)

    assert response.error is None
    assert [point.water_level for point in response.results] == [0.9, 1.1]
    assert response.results[0].timestamp == NOW - timedelta(hours=2)


def test_latest_water_levels_reports_store_failure(
    service: CoastalMonitorService, fake_griddb: FakeGridDB
) -> None:
    fake_griddb.fail_queries = True

    response = service.get_latest_water_levels("8518750")

    assert response.results == []
    assert response.error is not None and "503" in response.error


def test_monthly_trends_respects_year_window(service: CoastalMonitorService) -> None:
    service.store.write_batch(
        EntityKind.monthly_mean,
        [
            _mean("8518750", 2010, 1, 0.9),
            _mean("8518750", 2022, 6, 1.05),
            _mean("8518750", 2023, 6, 1.07),
        ],
    )

    response = service.get_monthly_trends("8518750", years=10)

    assert response.error is None
    assert [point.month for point in response.results] == [date(2022, 6, 1), date(2023, 6, 1)]
    assert response.results[1].month_number == 6


def test_dashboard_summarizes_each_station(service: CoastalMonitorService) -> None:
    service.store.write_batch(
        EntityKind.water_level,
        [
            _reading("8518750", NOW - timedelta(minutes=40), 1.0),
            _reading("8518750", NOW - timedelta(minutes=10), 1.4),
        ],
    )
    service.store.write_batch(
        EntityKind.monthly_mean,
        [_mean("8518750", 2023, 1, 1.0), _mean("8518750", 2024, 1, 1.012)],
    )

    dashboard = service.get_dashboard_data()

    assert dashboard.total_stations == 2
    assert dashboard.last_updated == NOW
    battery = dashboard.stations[0]
    assert battery.errors == []
    assert battery.latest_water_level.row_count == 2
    assert battery.latest_water_level.latest_level == 1.4
    assert battery.latest_water_level.mean_level == pytest.approx(1.2)
    assert battery.monthly_trend.month_count == 2
    assert battery.monthly_trend.mm_per_year == pytest.approx(12.0)
    boston = dashboard.stations[1]
    assert boston.latest_water_level.row_count == 0
    assert boston.monthly_trend.mm_per_year is None


def test_dashboard_collects_errors_per_station(
    service: CoastalMonitorService, fake_griddb: FakeGridDB
) -> None:
    fake_griddb.fail_queries = True

    dashboard = service.get_dashboard_data()

    assert all(len(card.errors) == 2 for card in dashboard.stations)


def test_trigger_success_reports_counts(service: CoastalMonitorService) -> None:
    response = service.trigger_latest_water_level_tick()

    assert response.status is TriggerStatus.success
    assert response.job == "latest_water_levels"
    assert response.message == "Latest water level collection triggered successfully"
    assert (response.records_stored, response.stations_attempted, response.stations_failed) == (5, 2, 1)
    assert response.timestamp == NOW


def test_trigger_busy(fake_griddb: FakeGridDB) -> None:
    service = CoastalMonitorService(
        registry=StationRegistry.from_config(STATIONS),
        store=build_store(fake_griddb),
        orchestrator=FakeOrchestrator(status=TickStatus.busy),  # type: ignore[arg-type]
        clock=lambda: NOW,
    )

    response = service.trigger_monthly_mean_tick()

    assert response.status is TriggerStatus.busy
    assert response.job == "monthly_means"
    assert response.records_stored == 0


def test_trigger_error_is_wrapped(fake_griddb: FakeGridDB) -> None:
    service = CoastalMonitorService(
        registry=StationRegistry.from_config(STATIONS),
        store=build_store(fake_griddb),
        orchestrator=FakeOrchestrator(error=RuntimeError("scheduler gone")),  # type: ignore[arg-type]
        clock=lambda: NOW,
    )

    response = service.trigger_monthly_mean_tick()

    assert response.status is TriggerStatus.error
    assert "scheduler gone" in response.message


def test_close_releases_collaborators(service: CoastalMonitorService) -> None:
    orchestrator: Any = service.orchestrator

    service.close()

    assert orchestrator.shut_down is True
    assert orchestrator.collector.closed is True
