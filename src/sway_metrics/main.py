"""FastAPI application factory.

Creates the FastAPI app with lifespan management and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from sway_metrics import __version__
from sway_metrics.core.config import get_settings
from sway_metrics.core.database import dispose_engine, init_engine
from sway_metrics.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir, json_logs=settings.log_json)
    init_engine(settings.database_url, schema=settings.database_schema)
    logger.info("Sway metrics API started (default data source: {})", settings.data_source)

    yield

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Sway Metrics API",
        description="Influence metrics for viewpoint groups: sway score, electoral influence, growth, network reach",
        version=__version__,
        lifespan=lifespan,
    )

    from sway_metrics.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
