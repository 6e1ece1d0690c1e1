from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_monthly_trends, render_stations, render_trigger, render_water_levels


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the coastal tide monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for a response; manual collections can take minutes.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("stations")
def stations_command(ctx: typer.Context) -> None:
    """List configured stations."""
    state = _get_state(ctx)
    render_stations(state.client.list_stations())


@app.command("levels")
def levels_command(
    ctx: typer.Context,
    station_id: str = typer.Argument(..., help="NOAA station id, e.g. 8518750."),
    hours: int = typer.Option(24, "--hours", min=1, help="Size of the window in hours."),
) -> None:
    """Show stored water levels for a station."""
    state = _get_state(ctx)
    render_water_levels(state.client.get_water_levels(station_id, hours))


@app.command("trends")
def trends_command(
    ctx: typer.Context,
    station_id: str = typer.Argument(..., help="NOAA station id, e.g. 8518750."),
    years: int = typer.Option(10, "--years", min=1, help="Size of the window in years."),
) -> None:
    """Show stored monthly mean sea levels for a station."""
    state = _get_state(ctx)
    render_monthly_trends(state.client.get_monthly_trends(station_id, years))


@app.command("collect")
def collect_command(ctx: typer.Context) -> None:
    """Trigger the latest water level collection."""
    state = _get_state(ctx)
    typer.echo(f"Triggering collection on {state.config.base_url} ...")
    render_trigger(state.client.trigger_collection())


@app.command("refresh-monthly")
def refresh_monthly_command(ctx: typer.Context) -> None:
    """Trigger the monthly mean refresh."""
    state = _get_state(ctx)
    typer.echo(f"Triggering monthly refresh on {state.config.base_url} ...")
    render_trigger(state.client.trigger_monthly_update())
