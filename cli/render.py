from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_stations(stations: List[Dict[str, Any]]) -> None:
    echo_heading("Stations")
    if not stations:
        typer.echo("No stations configured.")
        return
    for station in stations:
        active = "" if station.get("is_active", True) else " (inactive)"
        typer.echo(
            f"  - {station.get('station_id')}: {station.get('name')}, {station.get('state')} "
            f"[{station.get('latitude')}, {station.get('longitude')}]{active}"
        )


def render_water_levels(payload: Dict[str, Any]) -> None:
    echo_heading(f"Water levels for {payload.get('station_id')} (last {payload.get('hours')}h)")
    results = payload.get("results") or []
    if not results:
        typer.echo("No readings stored for this window.")
        return
    for point in results:
        flags = f" flags={point['flags']}" if point.get("flags") else ""
        typer.echo(
            f"  {point.get('timestamp')}  {point.get('water_level'):.3f} m {point.get('datum')}{flags}"
        )


def render_monthly_trends(payload: Dict[str, Any]) -> None:
    echo_heading(f"Monthly means for {payload.get('station_id')} (last {payload.get('years')}y)")
    results = payload.get("results") or []
    if not results:
        typer.echo("No monthly means stored for this window.")
        return
    for point in results:
        typer.echo(
            f"  {point.get('year')}-{int(point.get('month_number')):02d}  "
            f"{point.get('mean_sea_level'):.3f} m"
        )


def render_trigger(payload: Dict[str, Any]) -> None:
    status = payload.get("status")
    color = typer.colors.GREEN if status == "success" else typer.colors.YELLOW
    typer.secho(payload.get("message", ""), fg=color)
    echo_key_values(
        [
            ("status", status),
            ("job", payload.get("job")),
            ("records_stored", payload.get("records_stored")),
            ("stations_attempted", payload.get("stations_attempted")),
            ("stations_failed", payload.get("stations_failed")),
            ("timestamp", payload.get("timestamp")),
        ]
    )
