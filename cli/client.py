from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the coastal monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_stations(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/stations")

    def get_water_levels(self, station_id: str, hours: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/water-levels/{station_id}", params={"hours": hours})

    def get_monthly_trends(self, station_id: str, years: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/monthly-trends/{station_id}", params={"years": years})

    def trigger_collection(self) -> Dict[str, Any]:
        return self._request("POST", "/api/trigger-collection", allow_statuses={409})

    def trigger_monthly_update(self) -> Dict[str, Any]:
        return self._request("POST", "/api/trigger-monthly-update", allow_statuses={409})

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        allow_statuses: set[int] | None = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, params=params)
            if response.status_code not in (allow_statuses or set()):
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("message") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
