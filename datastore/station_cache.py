from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Iterable, Optional

from models.records import Station

PLACEHOLDER_LATITUDE = 40.0
PLACEHOLDER_LONGITUDE = -74.0


def placeholder_station(station_id: str) -> Station:
    """Stand-in used to enrich records for ids missing from configuration."""
    return Station(
        station_id=station_id,
        name=f"Station {station_id}",
        state="",
        latitude=PLACEHOLDER_LATITUDE,
        longitude=PLACEHOLDER_LONGITUDE,
    )


class StationCache:
    """Thread-safe mapping from station id to the station used for enrichment."""

    def __init__(self, stations: Optional[Iterable[Station]] = None) -> None:
        self._items: Dict[str, Station] = {}
        self._lock = Lock()
        for station in stations or ():
            self._items.setdefault(station.station_id, station)

    def get(self, station_id: str) -> Optional[Station]:
        with self._lock:
            return self._items.get(station_id)

    def insert_if_absent(self, station: Station) -> Station:
        """Store ``station`` unless the id is known; return whichever is cached."""

        with self._lock:
            return self._items.setdefault(station.station_id, station)

    def get_or_insert(
        self,
        station_id: str,
        factory: Callable[[str], Station] = placeholder_station,
    ) -> Station:
        with self._lock:
            cached = self._items.get(station_id)
            if cached is not None:
                return cached
            station = factory(station_id)
            self._items[station_id] = station
            return station

    def __contains__(self, station_id: object) -> bool:
        with self._lock:
            return station_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
