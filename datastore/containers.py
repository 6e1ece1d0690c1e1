"""Column layouts for the time-series store containers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.records import MonthlyMean, Station, WaterLevelReading, format_store_timestamp


class EntityKind(str, Enum):
    """Logical tables kept in the store, one per record type."""

    water_level = "water_level"
    monthly_mean = "monthly_mean"
    station = "station"


@dataclass(frozen=True)
class Column:
    name: str
    type: str

    def to_payload(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "index": []}


@dataclass(frozen=True)
class ContainerLayout:
    """Fixed column order for a container; the first column is the rowkey."""

    kind: EntityKind
    columns: Tuple[Column, ...]
    time_column: Optional[str]

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def schema_payload(self, container_name: str) -> Dict[str, Any]:
        return {
            "container_name": container_name,
            "container_type": "COLLECTION",
            "rowkey": True,
            "columns": [column.to_payload() for column in self.columns],
        }


WATER_LEVEL_LAYOUT = ContainerLayout(
    kind=EntityKind.water_level,
    columns=(
        Column("record_key", "STRING"),
        Column("timestamp", "TIMESTAMP"),
        Column("station_id", "STRING"),
        Column("station_name", "STRING"),
        Column("water_level", "DOUBLE"),
        Column("datum", "STRING"),
        Column("latitude", "DOUBLE"),
        Column("longitude", "DOUBLE"),
        Column("flags", "STRING"),
    ),
    time_column="timestamp",
)

MONTHLY_MEAN_LAYOUT = ContainerLayout(
    kind=EntityKind.monthly_mean,
    columns=(
        Column("record_key", "STRING"),
        Column("month", "TIMESTAMP"),
        Column("station_id", "STRING"),
        Column("station_name", "STRING"),
        Column("mean_sea_level", "DOUBLE"),
        Column("year", "INTEGER"),
        Column("month_number", "INTEGER"),
        Column("latitude", "DOUBLE"),
        Column("longitude", "DOUBLE"),
    ),
    time_column="month",
)

STATION_LAYOUT = ContainerLayout(
    kind=EntityKind.station,
    columns=(
        Column("station_id", "STRING"),
        Column("station_name", "STRING"),
        Column("state", "STRING"),
        Column("latitude", "DOUBLE"),
        Column("longitude", "DOUBLE"),
        Column("region", "STRING"),
        Column("is_active", "BOOL"),
        Column("last_updated", "TIMESTAMP"),
    ),
    time_column=None,
)

LAYOUTS: Dict[EntityKind, ContainerLayout] = {
    EntityKind.water_level: WATER_LEVEL_LAYOUT,
    EntityKind.monthly_mean: MONTHLY_MEAN_LAYOUT,
    EntityKind.station: STATION_LAYOUT,
}


def water_level_row(reading: WaterLevelReading) -> List[Any]:
    return [
        reading.record_key,
        format_store_timestamp(reading.timestamp),
        reading.station_id,
        reading.station_name,
        reading.level,
        reading.datum,
        reading.latitude,
        reading.longitude,
        reading.flags or "",
    ]


def monthly_mean_row(mean: MonthlyMean) -> List[Any]:
    month_start = datetime.combine(mean.month, time.min, tzinfo=timezone.utc)
    return [
        mean.record_key,
        format_store_timestamp(month_start),
        mean.station_id,
        mean.station_name,
        mean.mean_sea_level,
        mean.year,
        mean.month_number,
        mean.latitude,
        mean.longitude,
    ]


def station_row(station: Station, last_updated: Optional[datetime] = None) -> List[Any]:
    updated = last_updated or datetime.now(timezone.utc)
    return [
        station.station_id,
        station.name,
        station.state,
        station.latitude,
        station.longitude,
        station.region or "",
        station.is_active,
        format_store_timestamp(updated),
    ]


ROW_SERIALIZERS: Dict[EntityKind, Callable[[Any], List[Any]]] = {
    EntityKind.water_level: water_level_row,
    EntityKind.monthly_mean: monthly_mean_row,
    EntityKind.station: station_row,
}


def parse_store_timestamp(value: Any) -> Optional[datetime]:
    """Parse a TIMESTAMP cell returned by the store; ``None`` when unusable."""

    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate:
        return None
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
