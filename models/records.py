"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional


def format_store_timestamp(value: datetime) -> str:
    """Render a UTC instant the way the time-series store expects it."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True, slots=True)
class Station:
    """A monitored tide station loaded from configuration."""

    station_id: str
    name: str
    state: str
    latitude: float
    longitude: float
    region: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class WaterLevelReading:
    """A single water level observation, in meters, for one station."""

    station_id: str
    station_name: str
    timestamp: datetime
    level: float
    datum: str
    latitude: float
    longitude: float
    flags: str = ""

    @property
    def record_key(self) -> str:
        return f"{self.station_id}@{format_store_timestamp(self.timestamp)}"


@dataclass(frozen=True, slots=True)
class MonthlyMean:
    """Monthly mean sea level, in meters, for one station."""

    station_id: str
    station_name: str
    month: date
    mean_sea_level: float
    year: int
    month_number: int
    latitude: float
    longitude: float

    @property
    def record_key(self) -> str:
        return f"{self.station_id}@{self.year:04d}-{self.month_number:02d}"
