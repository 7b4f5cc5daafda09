"""CLI commands for computing viewpoint group metrics.

``metrics show`` runs all four metrics for one group against the selected
backend and prints a summary, or the full dashboard as JSON.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from sway_metrics.lib.data_source import DataSourceKind
    from sway_metrics.schemas.metrics import DashboardResponse

metrics_app = typer.Typer()

_TOP_N = 5


@metrics_app.command("show")
def show(
    viewpoint_group_id: Annotated[str, typer.Argument(help="Viewpoint group UUID")],
    data_source: Annotated[
        str | None,
        typer.Option("--data-source", "-s", help="Backend: relational or graph (default from DATA_SOURCE)"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the full dashboard as JSON")] = False,
) -> None:
    """Compute and print all metrics for a viewpoint group."""
    from sway_metrics.lib.data_source import parse_data_source
    from sway_metrics.services.dashboard_service import is_valid_group_id

    if not is_valid_group_id(viewpoint_group_id):
        typer.echo(f"Invalid viewpoint group ID: {viewpoint_group_id}", err=True)
        raise typer.Exit(code=1)
    try:
        kind = parse_data_source(data_source) if data_source is not None else None
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    dashboard = asyncio.run(_show_impl(viewpoint_group_id, kind))
    if as_json:
        typer.echo(dashboard.model_dump_json(by_alias=True, exclude_none=True, indent=2))
    else:
        typer.echo(format_dashboard(viewpoint_group_id, dashboard))


async def _show_impl(viewpoint_group_id: str, data_source: DataSourceKind | None) -> DashboardResponse:
    """Async implementation of the show command."""
    from sway_metrics.core.config import get_settings
    from sway_metrics.core.database import dispose_engine, init_engine
    from sway_metrics.services.dashboard_service import get_dashboard

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        return await get_dashboard(viewpoint_group_id, data_source, settings=settings)
    finally:
        await dispose_engine()


def format_dashboard(viewpoint_group_id: str, dashboard: DashboardResponse) -> str:
    """Render a plain-text summary of the four metrics."""
    sway = dashboard.sway_score
    electoral = dashboard.electoral_influence
    growth = dashboard.growth_over_time
    network = dashboard.network_reach

    lines = [
        f"Viewpoint group: {viewpoint_group_id}",
        "",
        "Sway score",
        f"  Verified voters: {sway.count}",
        f"  Total supporters: {sway.total_supporters}",
        "",
        "Electoral influence",
        f"  Jurisdictions: {len(electoral.by_jurisdiction)}",
        f"  Races: {len(electoral.by_race)}",
        f"  Upcoming elections: {len(electoral.upcoming_elections)}",
    ]
    for entry in electoral.by_jurisdiction[:_TOP_N]:
        state = f" ({entry.state})" if entry.state else ""
        lines.append(f"    {entry.jurisdiction_name or entry.jurisdiction_id}{state}: {entry.supporter_count}")
    for election in electoral.upcoming_elections[:_TOP_N]:
        lines.append(
            f"    {election.poll_date} {election.election_name or election.election_id}: "
            f"{election.total_supporters} supporters in {len(election.races)} races"
        )

    rate = f"{growth.growth_rate}%" if growth.growth_rate is not None else "n/a"
    lines += [
        "",
        "Growth over time",
        f"  Data points: {len(growth.data_points)}",
        f"  Total growth: {growth.total_growth}",
        f"  Growth rate: {rate}",
    ]
    if growth.data_points:
        lines.append(f"  First: {growth.data_points[0].date}  Last: {growth.data_points[-1].date}")

    lines += [
        "",
        "Network reach",
        f"  Network leaders: {len(network.network_leaders)}",
        f"  Total downstream reach: {network.total_downstream_reach}",
    ]
    for leader in network.network_leaders[:_TOP_N]:
        lines.append(
            f"    {leader.display_name or leader.profile_id} -> "
            f"{leader.viewpoint_group_title or leader.viewpoint_group_id}: {leader.downstream_verified_voters}"
        )
    return "\n".join(lines)
