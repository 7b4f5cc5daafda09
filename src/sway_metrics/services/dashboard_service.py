"""Dashboard service — backend selection and never-failing metric entry points.

Every ``get_*`` coroutine here resolves to a well-formed result: malformed
group ids, backend misconfiguration, store failures and timeouts all come
back as the metric's zero value and are logged.  Only cancellation
propagates to the caller.
"""

import asyncio
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import date
from typing import TypeVar

from loguru import logger

from sway_metrics.core.config import Settings, get_settings
from sway_metrics.core.database import get_session_factory
from sway_metrics.lib.data_source import BaseDataSource, DataSourceKind, get_data_source, parse_data_source
from sway_metrics.lib.sway_graph import SwayGraphClient
from sway_metrics.schemas.metrics import (
    DashboardResponse,
    ElectoralInfluenceResult,
    GrowthOverTimeResult,
    NetworkReachResult,
    SwayScoreResult,
    ViewpointGroupSummary,
)
from sway_metrics.services.electoral_influence_service import compute_electoral_influence
from sway_metrics.services.growth_service import compute_growth_over_time
from sway_metrics.services.network_reach_service import compute_network_reach
from sway_metrics.services.sway_score_service import compute_sway_score
from sway_metrics.services.viewpoint_group_service import list_viewpoint_groups

R = TypeVar("R")

_GROUP_ID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_valid_group_id(value: str | None) -> bool:
    """Return True if ``value`` is a well-formed viewpoint group id (a UUID string)."""
    return bool(value) and _GROUP_ID_RE.match(value) is not None


def resolve_data_source(data_source: str | DataSourceKind | None, settings: Settings) -> DataSourceKind:
    """Pick the backend: the explicit selector wins over the configured default.

    Raises:
        ValueError: If either selector is not recognized.
    """
    return parse_data_source(data_source, default=parse_data_source(settings.data_source))


def build_data_source(kind: DataSourceKind, settings: Settings) -> BaseDataSource:
    """Construct the data source for ``kind`` from settings.

    Raises:
        ValueError: If the graph backend is selected without ``sway_api_url``.
        RuntimeError: If the relational backend is selected before the
            database engine is initialized.
    """
    common = {"batch_size": settings.fetch_batch_size, "concurrency": settings.fetch_concurrency}
    if kind is DataSourceKind.GRAPH:
        if not settings.sway_api_url:
            msg = "SWAY_API_URL must be set to use the graph data source"
            raise ValueError(msg)
        client = SwayGraphClient(settings.sway_api_url, jwt=settings.sway_jwt, timeout=settings.sway_api_timeout)
        return get_data_source(kind, client=client, **common)
    return get_data_source(kind, session_factory=get_session_factory(), **common)


@asynccontextmanager
async def open_data_source(kind: DataSourceKind, settings: Settings) -> AsyncIterator[BaseDataSource]:
    """Build a data source and close it on exit."""
    source = build_data_source(kind, settings)
    try:
        yield source
    finally:
        await source.close()


async def _run_metric(
    metric: str,
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None,
    settings: Settings | None,
    source: BaseDataSource | None,
    compute: Callable[[BaseDataSource, Settings], Awaitable[R]],
    zero: Callable[[], R],
) -> R:
    if not is_valid_group_id(viewpoint_group_id):
        logger.warning("{}: rejecting malformed viewpoint group id {!r}", metric, viewpoint_group_id)
        return zero()

    timeout = None
    try:
        settings = settings or get_settings()
        timeout = settings.metric_timeout_seconds
        async with asyncio.timeout(timeout):
            if source is not None:
                return await compute(source, settings)
            kind = resolve_data_source(data_source, settings)
            async with open_data_source(kind, settings) as opened:
                return await compute(opened, settings)
    except TimeoutError:
        logger.warning("{} for {} timed out after {}s", metric, viewpoint_group_id, timeout)
    except Exception:
        logger.exception("{} for {} failed", metric, viewpoint_group_id)
    return zero()


async def get_sway_score(
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
) -> SwayScoreResult:
    """Verified-supporter count of a group; zero counts on any failure."""
    return await _run_metric(
        "Sway score",
        viewpoint_group_id,
        data_source,
        settings,
        source,
        lambda src, _: compute_sway_score(src, viewpoint_group_id),
        SwayScoreResult,
    )


async def get_electoral_influence(
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
    today: date | None = None,
) -> ElectoralInfluenceResult:
    """Electoral influence of a group; empty lists on any failure."""
    return await _run_metric(
        "Electoral influence",
        viewpoint_group_id,
        data_source,
        settings,
        source,
        lambda src, _: compute_electoral_influence(src, viewpoint_group_id, today=today),
        ElectoralInfluenceResult,
    )


async def get_growth_over_time(
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
) -> GrowthOverTimeResult:
    """Cumulative verified-supporter series of a group; empty on any failure."""
    return await _run_metric(
        "Growth over time",
        viewpoint_group_id,
        data_source,
        settings,
        source,
        lambda src, _: compute_growth_over_time(src, viewpoint_group_id),
        GrowthOverTimeResult,
    )


async def get_network_reach(
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
) -> NetworkReachResult:
    """Network leaders among a group's supporters; empty on any failure."""
    return await _run_metric(
        "Network reach",
        viewpoint_group_id,
        data_source,
        settings,
        source,
        lambda src, cfg: compute_network_reach(
            src, viewpoint_group_id, concurrency=cfg.network_reach_concurrency
        ),
        NetworkReachResult,
    )


def _empty_dashboard() -> DashboardResponse:
    return DashboardResponse(
        sway_score=SwayScoreResult(),
        electoral_influence=ElectoralInfluenceResult(),
        growth_over_time=GrowthOverTimeResult(),
        network_reach=NetworkReachResult(),
    )


async def get_dashboard(
    viewpoint_group_id: str,
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
    today: date | None = None,
) -> DashboardResponse:
    """All four metrics of a group, computed concurrently over one data source.

    Each metric degrades on its own; a failure in one never empties the
    others.
    """
    if not is_valid_group_id(viewpoint_group_id):
        logger.warning("Dashboard: rejecting malformed viewpoint group id {!r}", viewpoint_group_id)
        return _empty_dashboard()

    if source is None:
        try:
            settings = settings or get_settings()
            opened = build_data_source(resolve_data_source(data_source, settings), settings)
        except Exception:
            logger.exception("Dashboard for {}: data source unavailable", viewpoint_group_id)
            return _empty_dashboard()
        try:
            return await get_dashboard(viewpoint_group_id, settings=settings, source=opened, today=today)
        finally:
            await opened.close()

    settings = settings or get_settings()
    async with asyncio.TaskGroup() as group:
        sway_score = group.create_task(get_sway_score(viewpoint_group_id, settings=settings, source=source))
        electoral_influence = group.create_task(
            get_electoral_influence(viewpoint_group_id, settings=settings, source=source, today=today)
        )
        growth_over_time = group.create_task(get_growth_over_time(viewpoint_group_id, settings=settings, source=source))
        network_reach = group.create_task(get_network_reach(viewpoint_group_id, settings=settings, source=source))
    return DashboardResponse(
        sway_score=sway_score.result(),
        electoral_influence=electoral_influence.result(),
        growth_over_time=growth_over_time.result(),
        network_reach=network_reach.result(),
    )


async def get_viewpoint_groups(
    data_source: str | DataSourceKind | None = None,
    *,
    settings: Settings | None = None,
    source: BaseDataSource | None = None,
) -> list[ViewpointGroupSummary]:
    """Groups with supporters, sorted by title; empty on any failure.

    Listing is only implemented by the relational store, so a graph
    selection is served from it too.
    """
    try:
        if source is not None:
            return await list_viewpoint_groups(source)

        settings = settings or get_settings()
        kind = resolve_data_source(data_source, settings)
        if kind is DataSourceKind.GRAPH:
            logger.warning("Viewpoint group listing is not implemented for the graph API; using the relational store")
            kind = DataSourceKind.RELATIONAL
        async with open_data_source(kind, settings) as opened:
            return await list_viewpoint_groups(opened)
    except NotImplementedError as exc:
        logger.warning("Viewpoint group listing unavailable: {}", exc)
    except Exception:
        logger.exception("Viewpoint group listing failed")
    return []
