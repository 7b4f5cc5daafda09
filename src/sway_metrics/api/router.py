"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from sway_metrics.api.middleware import setup_cors
from sway_metrics.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from sway_metrics.api.v1.viewpoint_groups import viewpoint_groups_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(viewpoint_groups_router)
    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app."""
    setup_cors(app, settings)
