"""Static registry of monitored stations."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from models.records import Station
from settings import get_settings

logger = logging.getLogger(__name__)

_MIN_FIELDS = 6


def parse_stations(config: str) -> list[Station]:
    """Parse ``id,name,state,lat,lon,active[,region]`` entries separated by ``;``.

    Entries with fewer than six fields are dropped without complaint. An empty
    or entirely malformed configuration yields an empty list.
    """
    stations: list[Station] = []
    for entry in config.split(";"):
        parts = [part.strip() for part in entry.split(",")]
        if len(parts) < _MIN_FIELDS:
            continue

        try:
            latitude = float(parts[3])
            longitude = float(parts[4])
        except ValueError:
            logger.warning(
                "Skipping station entry with invalid coordinates",
                extra={"station_id": parts[0], "reason": entry.strip()},
            )
            continue

        region = parts[6] if len(parts) > _MIN_FIELDS and parts[6] else None
        stations.append(
            Station(
                station_id=parts[0],
                name=parts[1],
                state=parts[2],
                latitude=latitude,
                longitude=longitude,
                region=region,
                is_active=parts[5].lower() == "true",
            )
        )
    return stations


class StationRegistry:

    def __init__(self, stations: list[Station]) -> None:
        self._stations = tuple(stations)
        self._by_id = {station.station_id: station for station in self._stations}

    @classmethod
    def from_config(cls, config: str) -> "StationRegistry":
        return cls(parse_stations(config))

    def list_stations(self) -> list[Station]:
        return list(self._stations)

    def active_stations(self) -> list[Station]:
        return [station for station in self._stations if station.is_active]

    def get(self, station_id: str) -> Optional[Station]:
        return self._by_id.get(station_id)

    def __len__(self) -> int:
        return len(self._stations)


@lru_cache
def build_default_registry(config: Optional[str] = None) -> StationRegistry:
    settings = get_settings()
    return StationRegistry.from_config(settings.stations if config is None else config)
