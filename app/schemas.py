"""Pydantic schemas for the monitor's read and trigger surface."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TriggerStatus(str, Enum):
    """Whether a manual trigger call could be carried out."""

    success = "success"
    busy = "busy"
    error = "error"


class StationInfo(BaseModel):
    """A configured monitoring station."""

    station_id: str
    name: str
    state: str
    latitude: float
    longitude: float
    region: Optional[str] = None
    is_active: bool = True


class WaterLevelPoint(BaseModel):
    station_id: str
    station_name: str
    timestamp: datetime
    water_level: float = Field(..., description="Water level in meters relative to the datum.")
    datum: str
    latitude: float
    longitude: float
    flags: str = ""


class MonthlyMeanPoint(BaseModel):
    station_id: str
    station_name: str
    month: date
    mean_sea_level: float = Field(..., description="Monthly mean sea level in meters.")
    year: int
    month_number: int = Field(..., ge=1, le=12)
    latitude: float
    longitude: float


class WaterLevelResponse(BaseModel):
    """Water levels for one station over the last ``hours`` hours."""

    station_id: str
    hours: int
    results: List[WaterLevelPoint] = Field(default_factory=list)
    error: Optional[str] = None


class MonthlyTrendResponse(BaseModel):
    """Monthly means for one station over the last ``years`` years."""

    station_id: str
    years: int
    results: List[MonthlyMeanPoint] = Field(default_factory=list)
    error: Optional[str] = None


class LevelSummaryOut(BaseModel):
    row_count: int = Field(0, ge=0)
    min_level: Optional[float] = None
    max_level: Optional[float] = None
    mean_level: Optional[float] = None
    latest_level: Optional[float] = None
    latest_timestamp: Optional[datetime] = None


class TrendSummaryOut(BaseModel):
    month_count: int = Field(0, ge=0)
    first_month: Optional[date] = None
    last_month: Optional[date] = None
    mm_per_year: Optional[float] = Field(
        default=None, description="Least-squares sea level trend in millimeters per year."
    )


class DashboardStation(BaseModel):
    station: StationInfo
    latest_water_level: LevelSummaryOut = Field(default_factory=LevelSummaryOut)
    monthly_trend: TrendSummaryOut = Field(default_factory=TrendSummaryOut)
    errors: List[str] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """Per-station overview used by the dashboard landing page."""

    stations: List[DashboardStation] = Field(default_factory=list)
    total_stations: int = Field(0, ge=0)
    last_updated: datetime


class TriggerResponse(BaseModel):
    """Envelope returned by manual job triggers.

    ``success`` only means the tick ran; individual stations may still have
    failed. Confirm landed data through the read endpoints.
    """

    status: TriggerStatus
    job: str
    message: str
    timestamp: datetime
    records_stored: int = Field(0, ge=0)
    stations_attempted: int = Field(0, ge=0)
    stations_failed: int = Field(0, ge=0)
