"""Client for the NOAA CO-OPS data API.

Maps provider payloads into :class:`WaterLevelReading` and
:class:`MonthlyMean` records. Every public fetch swallows upstream and payload
failures at the call boundary and returns an empty list instead, so an empty
result means "nothing new", not "nothing exists".
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

from datastore.station_cache import StationCache
from models.records import MonthlyMean, WaterLevelReading
from services.errors import MalformedPayloadError, TideMonitorError, UpstreamUnavailableError
from services.stations import build_default_registry
from settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DATE_PARAM_FORMAT = "%Y%m%d"
_POINT_TIME_FORMAT = "%Y-%m-%d %H:%M"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def years_before(value: date, years: int) -> date:
    """Same calendar day ``years`` earlier, clamping Feb 29 to Feb 28."""
    try:
        return value.replace(year=value.year - years)
    except ValueError:
        return value.replace(year=value.year - years, day=28)


class TideDataCollector:

    WATER_LEVEL_PRODUCT = "water_level"
    MONTHLY_MEAN_PRODUCT = "monthly_mean"

    def __init__(
        self,
        base_url: str,
        cache: StationCache,
        application: str = "CoastalTideMonitor",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
        water_level_datum: str = "MLLW",
        monthly_mean_datum: str = "MSL",
    ) -> None:
        self.base_url = base_url
        self.cache = cache
        self.application = application
        self.timeout = timeout
        self.water_level_datum = water_level_datum
        self.monthly_mean_datum = monthly_mean_datum
        self._clock = clock
        self._client = httpx.Client(
            timeout=timeout,
            headers={
                "User-Agent": "coastal-tide-monitor/0.1.0",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch_latest(self, station_id: str) -> List[WaterLevelReading]:
        """Most recent water level reading set for a station."""
        params = self._base_params(station_id, self.WATER_LEVEL_PRODUCT, self.water_level_datum)
        params["date"] = "latest"
        return self._collect(
            "latest water level",
            station_id,
            params,
            self._parse_water_levels,
        )

    def fetch_recent(self, station_id: str, window_days: int) -> List[WaterLevelReading]:
        """Water levels for ``[today - window_days, today]``."""
        end = self._today()
        params = self._base_params(station_id, self.WATER_LEVEL_PRODUCT, self.water_level_datum)
        params.update(self._date_range(end - timedelta(days=window_days), end))
        return self._collect(
            "recent water level",
            station_id,
            params,
            self._parse_water_levels,
        )

    def fetch_monthly_means(self, station_id: str, window_years: int) -> List[MonthlyMean]:
        """Monthly mean sea level for ``[today - window_years, today]``."""
        end = self._today()
        params = self._base_params(station_id, self.MONTHLY_MEAN_PRODUCT, self.monthly_mean_datum)
        params.update(self._date_range(years_before(end, window_years), end))
        return self._collect(
            "monthly mean",
            station_id,
            params,
            self._parse_monthly_means,
        )

    def _collect(
        self,
        description: str,
        station_id: str,
        params: Dict[str, str],
        parse: Callable[[Dict[str, Any], str], List[T]],
    ) -> List[T]:
        try:
            payload = self._request(params)
            records = parse(payload, station_id)
        except TideMonitorError as exc:
            logger.error(
                f"Failed to fetch {description} data",
                extra={"station_id": station_id, "reason": str(exc)},
            )
            return []

        logger.info(
            f"Fetched {description} data",
            extra={"station_id": station_id, "record_count": len(records)},
        )
        return records

    def _request(self, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self._client.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError(f"Request timeout after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                f"HTTP error {exc.response.status_code} from tide provider"
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(f"Network error: {exc}") from exc

        body = response.text
        if not body.strip():
            return {}
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError(f"Invalid JSON response: {exc}") from exc
        if not isinstance(payload, dict):
            raise MalformedPayloadError("Expected a JSON object from the tide provider")
        return payload

    def _parse_water_levels(
        self, payload: Dict[str, Any], station_id: str
    ) -> List[WaterLevelReading]:
        points = self._data_points(payload, station_id)
        if not points:
            return []

        station = self.cache.get_or_insert(station_id)
        readings: List[WaterLevelReading] = []
        for index, point in enumerate(points):
            try:
                timestamp = datetime.strptime(point["t"], _POINT_TIME_FORMAT)
                level = float(point["v"])
                if not math.isfinite(level):
                    raise ValueError(f"non-finite level {point['v']!r}")
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedPayloadError(
                    f"Invalid water level point at index {index}: {point!r}"
                ) from exc
            readings.append(
                WaterLevelReading(
                    station_id=station_id,
                    station_name=station.name,
                    timestamp=timestamp.replace(tzinfo=timezone.utc),
                    level=level,
                    datum=self.water_level_datum,
                    latitude=station.latitude,
                    longitude=station.longitude,
                    flags=str(point.get("f") or ""),
                )
            )
        return readings

    def _parse_monthly_means(
        self, payload: Dict[str, Any], station_id: str
    ) -> List[MonthlyMean]:
        points = self._data_points(payload, station_id)
        if not points:
            return []

        station = self.cache.get_or_insert(station_id)
        means: List[MonthlyMean] = []
        for index, point in enumerate(points):
            try:
                year = int(point["year"])
                month_number = int(point["month"])
                mean_level = float(point["MSL"])
                if not math.isfinite(mean_level):
                    raise ValueError(f"non-finite mean sea level {point['MSL']!r}")
                month = date(year, month_number, 1)
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedPayloadError(
                    f"Invalid monthly mean point at index {index}: {point!r}"
                ) from exc
            means.append(
                MonthlyMean(
                    station_id=station_id,
                    station_name=station.name,
                    month=month,
                    mean_sea_level=mean_level,
                    year=year,
                    month_number=month_number,
                    latitude=station.latitude,
                    longitude=station.longitude,
                )
            )
        return means

    @staticmethod
    def _data_points(payload: Dict[str, Any], station_id: str) -> List[Any]:
        if "error" in payload:
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning(
                "Tide provider returned an error",
                extra={"station_id": station_id, "reason": message},
            )
            return []

        points = payload.get("data")
        if points is None:
            return []
        if not isinstance(points, list):
            raise MalformedPayloadError("Expected 'data' to be a list")
        return points

    def _base_params(self, station_id: str, product: str, datum: str) -> Dict[str, str]:
        return {
            "product": product,
            "application": self.application,
            "station": station_id,
            "datum": datum,
            "time_zone": "gmt",
            "units": "metric",
            "format": "json",
        }

    @staticmethod
    def _date_range(begin: date, end: date) -> Dict[str, str]:
        return {
            "begin_date": begin.strftime(_DATE_PARAM_FORMAT),
            "end_date": end.strftime(_DATE_PARAM_FORMAT),
        }

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()


@lru_cache
def build_default_collector() -> TideDataCollector:
    settings = get_settings()
    cache = StationCache(build_default_registry().list_stations())
    return TideDataCollector(
        base_url=settings.noaa_base_url,
        cache=cache,
        application=settings.noaa_application,
        timeout=settings.http_timeout,
    )
