from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_NOAA_BASE_URL_ENV = "NOAA_API_BASE_URL"
_NOAA_APPLICATION_ENV = "NOAA_APPLICATION"
_STATIONS_ENV = "NOAA_STATIONS"
_GRIDDB_URL_ENV = "GRIDDB_REST_URL"
_GRIDDB_API_KEY_ENV = "GRIDDB_API_KEY"
_GRIDDB_AUTH_SCHEME_ENV = "GRIDDB_AUTH_SCHEME"
_WATER_LEVEL_CONTAINER_ENV = "GRIDDB_CONTAINER_WATER_LEVEL"
_MONTHLY_MEAN_CONTAINER_ENV = "GRIDDB_CONTAINER_MONTHLY_MEAN"
_STATIONS_CONTAINER_ENV = "GRIDDB_CONTAINER_STATIONS"
_QUERY_LIMIT_ENV = "GRIDDB_QUERY_LIMIT"
_HTTP_TIMEOUT_ENV = "HTTP_TIMEOUT_SECONDS"
_WATER_LEVEL_CRON_ENV = "SCHEDULER_WATER_LEVEL_CRON"
_MONTHLY_MEAN_CRON_ENV = "SCHEDULER_MONTHLY_MEAN_CRON"
_SCHEDULER_ENABLED_ENV = "SCHEDULER_ENABLED"
_BOOTSTRAP_ENABLED_ENV = "BOOTSTRAP_ENABLED"
_BOOTSTRAP_DELAY_ENV = "BOOTSTRAP_DELAY_SECONDS"
_LATEST_DELAY_ENV = "LATEST_DELAY_SECONDS"
_MONTHLY_DELAY_ENV = "MONTHLY_DELAY_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_STATIONS = ";".join(
    [
        "8518750,The Battery,NY,40.7006,-74.0142,true,Northeast",
        "8443970,Boston,MA,42.3548,-71.0534,true,Northeast",
        "8658120,Wilmington,NC,34.2275,-77.9536,true,Southeast",
        "8724580,Key West,FL,24.5508,-81.8081,true,Southeast",
        "9414290,San Francisco,CA,37.8063,-122.4659,true,West Coast",
        "9447130,Seattle,WA,47.6026,-122.3393,true,Northwest",
    ]
)


@dataclass(frozen=True)
class Settings:
    noaa_base_url: str
    noaa_application: str
    stations: str
    griddb_url: str
    griddb_api_key: str
    griddb_auth_scheme: str
    water_level_container: str
    monthly_mean_container: str
    stations_container: str
    query_limit: int
    http_timeout: float
    water_level_cron: str
    monthly_mean_cron: str
    scheduler_enabled: bool
    bootstrap_enabled: bool
    bootstrap_delay: float
    latest_delay: float
    monthly_delay: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_seconds(name: str, default: float) -> float:
    """Zero is allowed so rate limiting can be switched off."""
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    timeout = _read_seconds(_HTTP_TIMEOUT_ENV, 30.0)
    return Settings(
        noaa_base_url=_read_str_env(
            _NOAA_BASE_URL_ENV,
            "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter",
        ),
        noaa_application=_read_str_env(_NOAA_APPLICATION_ENV, "CoastalTideMonitor"),
        stations=_read_str_env(_STATIONS_ENV, DEFAULT_STATIONS),
        griddb_url=_read_str_env(
            _GRIDDB_URL_ENV, "http://localhost:8080/griddb/v2/cluster/dbs/public"
        ).rstrip("/"),
        griddb_api_key=_read_str_env(_GRIDDB_API_KEY_ENV, ""),
        griddb_auth_scheme=_read_str_env(_GRIDDB_AUTH_SCHEME_ENV, "Basic"),
        water_level_container=_read_str_env(_WATER_LEVEL_CONTAINER_ENV, "water_levels"),
        monthly_mean_container=_read_str_env(_MONTHLY_MEAN_CONTAINER_ENV, "monthly_means"),
        stations_container=_read_str_env(_STATIONS_CONTAINER_ENV, "stations"),
        query_limit=_read_positive_int(_QUERY_LIMIT_ENV, 20000),
        http_timeout=timeout if timeout > 0 else 30.0,
        water_level_cron=_read_str_env(_WATER_LEVEL_CRON_ENV, "*/15 * * * *"),
        monthly_mean_cron=_read_str_env(_MONTHLY_MEAN_CRON_ENV, "0 2 * * *"),
        scheduler_enabled=_read_bool(_SCHEDULER_ENABLED_ENV, True),
        bootstrap_enabled=_read_bool(_BOOTSTRAP_ENABLED_ENV, True),
        bootstrap_delay=_read_seconds(_BOOTSTRAP_DELAY_ENV, 2.0),
        latest_delay=_read_seconds(_LATEST_DELAY_ENV, 1.0),
        monthly_delay=_read_seconds(_MONTHLY_DELAY_ENV, 2.0),
        log_level=_read_log_level("INFO"),
    )
