"""Typer CLI root application with serve command."""

import typer

from sway_metrics.core.config import get_settings
from sway_metrics.core.logging import setup_logging

app = typer.Typer(name="sway-metrics", help="Viewpoint group influence metrics CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=settings.log_json)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the metrics API server."""
    import uvicorn

    uvicorn.run(
        "sway_metrics.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from sway_metrics.cli.groups_cmd import groups_app
    from sway_metrics.cli.metrics_cmd import metrics_app

    app.add_typer(metrics_app, name="metrics", help="Compute metrics for a viewpoint group")
    app.add_typer(groups_app, name="groups", help="Viewpoint group listing commands")


_register_subcommands()
