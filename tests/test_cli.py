from __future__ import annotations

from typing import Any, Dict, List, Tuple

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.calls: List[Tuple[str, Any]] = []
        self.trigger_payload: Dict[str, Any] = {
            "status": "success",
            "job": "latest_water_levels",
            "message": "Latest water level collection triggered successfully",
            "timestamp": "2024-03-15T12:00:00Z",
            "records_stored": 12,
            "stations_attempted": 6,
            "stations_failed": 1,
        }
        self.closed = False

    def list_stations(self) -> List[Dict[str, Any]]:
        self.calls.append(("stations", None))
        return [
            {
                "station_id": "8518750",
                "name": "The Battery",
                "state": "NY",
                "latitude": 40.7006,
                "longitude": -74.0142,
                "is_active": True,
            },
            {
                "station_id": "8443970",
                "name": "Boston",
                "state": "MA",
                "latitude": 42.3548,
                "longitude": -71.0534,
                "is_active": False,
            },
        ]

    def get_water_levels(self, station_id: str, hours: int) -> Dict[str, Any]:
        self.calls.append(("levels", (station_id, hours)))
        return {
            "station_id": station_id,
            "hours": hours,
            "results": [
                {
                    "timestamp": "2024-03-15T11:54:00Z",
                    "water_level": 1.2341,
                    "datum": "MLLW",
                    "flags": "0,0,0,0",
                }
            ],
            "error": None,
        }

    def get_monthly_trends(self, station_id: str, years: int) -> Dict[str, Any]:
        self.calls.append(("trends", (station_id, years)))
        return {"station_id": station_id, "years": years, "results": [], "error": None}

    def trigger_collection(self) -> Dict[str, Any]:
        self.calls.append(("collect", None))
        return self.trigger_payload

    def trigger_monthly_update(self) -> Dict[str, Any]:
        self.calls.append(("refresh", None))
        return {**self.trigger_payload, "status": "busy", "job": "monthly_means", "message": "busy"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_stations_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["stations"])

    assert result.exit_code == 0
    assert "8518750: The Battery, NY" in result.stdout
    assert "Boston, MA [42.3548, -71.0534] (inactive)" in result.stdout
    assert stub.closed is True


def test_levels_command_passes_window(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["levels", "8518750", "--hours", "6"])

    assert result.exit_code == 0
    assert stub.calls == [("levels", ("8518750", 6))]
    assert "1.234 m MLLW flags=0,0,0,0" in result.stdout


def test_trends_command_with_empty_window(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["trends", "8518750"])

    assert result.exit_code == 0
    assert stub.calls == [("trends", ("8518750", 10))]
    assert "No monthly means stored" in result.stdout


def test_collect_command_uses_base_url_option(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://monitor.test/", "collect"])

    assert result.exit_code == 0
    assert stub.config.base_url == "http://monitor.test"
    assert "Triggering collection on http://monitor.test" in result.stdout
    assert "records_stored: 12" in result.stdout
    assert "stations_failed: 1" in result.stdout


def test_refresh_monthly_reports_busy(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["refresh-monthly"])

    assert result.exit_code == 0
    assert "status: busy" in result.stdout
    assert stub.calls == [("refresh", None)]


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://env.test/")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")

    config = load_config()

    assert config == CLIConfig(base_url="http://env.test", timeout=120.0)
    assert load_config(base_url="http://flag.test", timeout=5).timeout == 5


def _client_with(handler) -> ApiClient:
    client = ApiClient(CLIConfig(base_url="http://monitor.test"))
    client._client = httpx.Client(
        base_url="http://monitor.test", transport=httpx.MockTransport(handler)
    )
    return client


def test_api_client_accepts_conflict_for_triggers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"status": "busy", "message": "already running"})

    client = _client_with(handler)

    assert client.trigger_collection()["status"] == "busy"


def test_api_client_exits_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"station_id": "8518750", "error": "store unavailable"})

    client = _client_with(handler)

    with pytest.raises(typer.Exit):
        client.get_water_levels("8518750", 24)


def test_api_client_exits_when_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client_with(handler)

    with pytest.raises(typer.Exit):
        client.list_stations()
