"""CLI commands for viewpoint group listing."""

import asyncio
from typing import Annotated

import typer

from sway_metrics.schemas.metrics import ViewpointGroupSummary

groups_app = typer.Typer()


@groups_app.command("list")
def list_groups(
    data_source: Annotated[
        str | None,
        typer.Option("--data-source", "-s", help="Backend: relational or graph (listing always uses relational)"),
    ] = None,
) -> None:
    """List viewpoint groups that have supporters."""
    groups = asyncio.run(_list_impl(data_source))
    if not groups:
        typer.echo("No viewpoint groups with supporters found.")
        return
    for group in groups:
        typer.echo(f"{group.id}  {group.title}")
    typer.echo(f"\n{len(groups)} groups")


async def _list_impl(data_source: str | None) -> list[ViewpointGroupSummary]:
    """Async implementation of the list command."""
    from sway_metrics.core.config import get_settings
    from sway_metrics.core.database import dispose_engine, init_engine
    from sway_metrics.services.dashboard_service import get_viewpoint_groups

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        return await get_viewpoint_groups(data_source, settings=settings)
    finally:
        await dispose_engine()
