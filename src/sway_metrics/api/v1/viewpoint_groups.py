"""Viewpoint group metrics API endpoints.

Read-only.  The metric services never raise, so every well-formed request
gets a 200 with a possibly empty result; only malformed group ids and
unknown backend selectors are rejected (400).
"""

from fastapi import APIRouter, Depends

from sway_metrics.core.config import Settings, get_settings
from sway_metrics.core.dependencies import get_data_source_kind, get_viewpoint_group_id
from sway_metrics.lib.data_source import DataSourceKind
from sway_metrics.schemas.metrics import (
    DashboardResponse,
    ElectoralInfluenceResult,
    GrowthOverTimeResult,
    NetworkReachResult,
    SwayScoreResult,
    ViewpointGroupSummary,
)
from sway_metrics.services.dashboard_service import (
    get_dashboard,
    get_electoral_influence,
    get_growth_over_time,
    get_network_reach,
    get_sway_score,
    get_viewpoint_groups,
)

viewpoint_groups_router = APIRouter(prefix="/viewpoint-groups", tags=["viewpoint-groups"])


@viewpoint_groups_router.get(
    "",
    response_model=list[ViewpointGroupSummary],
)
async def list_groups(
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> list[ViewpointGroupSummary]:
    """List viewpoint groups that have at least one supporter."""
    return await get_viewpoint_groups(data_source, settings=settings)


@viewpoint_groups_router.get(
    "/{viewpoint_group_id}/dashboard",
    response_model=DashboardResponse,
    response_model_exclude_none=True,
)
async def read_dashboard(
    viewpoint_group_id: str = Depends(get_viewpoint_group_id),
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> DashboardResponse:
    """All four metrics for one viewpoint group."""
    return await get_dashboard(viewpoint_group_id, data_source, settings=settings)


@viewpoint_groups_router.get(
    "/{viewpoint_group_id}/sway-score",
    response_model=SwayScoreResult,
)
async def read_sway_score(
    viewpoint_group_id: str = Depends(get_viewpoint_group_id),
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> SwayScoreResult:
    return await get_sway_score(viewpoint_group_id, data_source, settings=settings)


@viewpoint_groups_router.get(
    "/{viewpoint_group_id}/electoral-influence",
    response_model=ElectoralInfluenceResult,
    response_model_exclude_none=True,
)
async def read_electoral_influence(
    viewpoint_group_id: str = Depends(get_viewpoint_group_id),
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> ElectoralInfluenceResult:
    return await get_electoral_influence(viewpoint_group_id, data_source, settings=settings)


@viewpoint_groups_router.get(
    "/{viewpoint_group_id}/growth-over-time",
    response_model=GrowthOverTimeResult,
    response_model_exclude_none=True,
)
async def read_growth_over_time(
    viewpoint_group_id: str = Depends(get_viewpoint_group_id),
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> GrowthOverTimeResult:
    return await get_growth_over_time(viewpoint_group_id, data_source, settings=settings)


@viewpoint_groups_router.get(
    "/{viewpoint_group_id}/network-reach",
    response_model=NetworkReachResult,
    response_model_exclude_none=True,
)
async def read_network_reach(
    viewpoint_group_id: str = Depends(get_viewpoint_group_id),
    data_source: DataSourceKind | None = Depends(get_data_source_kind),
    settings: Settings = Depends(get_settings),
) -> NetworkReachResult:
    return await get_network_reach(viewpoint_group_id, data_source, settings=settings)
