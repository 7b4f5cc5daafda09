"""FastAPI dependencies for request validation and backend selection."""

from fastapi import HTTPException, Path, Query, status

from sway_metrics.lib.data_source import DataSourceKind, parse_data_source
from sway_metrics.services.dashboard_service import is_valid_group_id


def get_viewpoint_group_id(
    viewpoint_group_id: str = Path(description="Viewpoint group UUID"),
) -> str:
    """Reject malformed group ids before any backend is touched."""
    if not is_valid_group_id(viewpoint_group_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid viewpoint group ID format",
        )
    return viewpoint_group_id


def get_data_source_kind(
    data_source: str | None = Query(
        None,
        description="Backend to read from: relational or graph (legacy: supabase, sway_api)",
    ),
) -> DataSourceKind | None:
    """Parse the optional backend selector; None defers to the configured default."""
    if data_source is None:
        return None
    try:
        return parse_data_source(data_source)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
