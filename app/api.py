"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.schemas import (
    DashboardResponse,
    MonthlyTrendResponse,
    StationInfo,
    TriggerResponse,
    TriggerStatus,
    WaterLevelResponse,
)
from services.monitor import CoastalMonitorService, build_default_monitor

router = APIRouter()

_TRIGGER_STATUS_CODES = {
    TriggerStatus.success: status.HTTP_200_OK,
    TriggerStatus.busy: status.HTTP_409_CONFLICT,
    TriggerStatus.error: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_monitor() -> CoastalMonitorService:
    return build_default_monitor()


def _trigger_response(payload: TriggerResponse) -> JSONResponse:
    return JSONResponse(
        status_code=_TRIGGER_STATUS_CODES[payload.status],
        content=payload.model_dump(mode="json"),
    )


@router.get(
    "/api/stations",
    response_model=List[StationInfo],
    summary="List the configured monitoring stations.",
)
async def list_stations(
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> List[StationInfo]:
    return monitor.list_stations()


@router.get(
    "/api/water-levels/{station_id}",
    response_model=WaterLevelResponse,
    summary="Water levels stored for a station over the last N hours.",
)
def get_water_levels(
    station_id: str,
    hours: int = Query(24, ge=1, le=24 * 31),
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> Union[WaterLevelResponse, JSONResponse]:
    payload = monitor.get_latest_water_levels(station_id, hours)
    if payload.error:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=payload.model_dump(mode="json"),
        )
    return payload


@router.get(
    "/api/monthly-trends/{station_id}",
    response_model=MonthlyTrendResponse,
    summary="Monthly mean sea level stored for a station over the last N years.",
)
def get_monthly_trends(
    station_id: str,
    years: int = Query(10, ge=1, le=100),
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> Union[MonthlyTrendResponse, JSONResponse]:
    payload = monitor.get_monthly_trends(station_id, years)
    if payload.error:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=payload.model_dump(mode="json"),
        )
    return payload


@router.get(
    "/api/dashboard-data",
    response_model=DashboardResponse,
    summary="Latest level and sea level trend for every station.",
)
def get_dashboard_data(
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> DashboardResponse:
    return monitor.get_dashboard_data()


@router.post(
    "/api/trigger-collection",
    response_model=TriggerResponse,
    summary="Run the latest water level collection now.",
)
def trigger_collection(
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> JSONResponse:
    return _trigger_response(monitor.trigger_latest_water_level_tick())


@router.post(
    "/api/trigger-monthly-update",
    response_model=TriggerResponse,
    summary="Run the monthly mean refresh now.",
)
def trigger_monthly_update(
    monitor: CoastalMonitorService = Depends(get_monitor),
) -> JSONResponse:
    return _trigger_response(monitor.trigger_monthly_mean_tick())


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /api/stations and /api/dashboard-data."}
