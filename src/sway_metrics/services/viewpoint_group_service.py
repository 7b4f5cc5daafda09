"""Viewpoint group service — listing of groups that have supporters."""

from loguru import logger

from sway_metrics.lib.data_source import BaseDataSource
from sway_metrics.schemas.metrics import ViewpointGroupSummary

PLACEHOLDER_TITLES = frozenset({"untitled group"})


async def list_viewpoint_groups(source: BaseDataSource) -> list[ViewpointGroupSummary]:
    """List groups with at least one supporter, sorted by title.

    Groups with a blank or placeholder title are left out.

    Raises:
        NotImplementedError: If ``source`` cannot list groups.
    """
    result = await source.list_groups_with_supporters()
    if not result.ok:
        logger.error("Viewpoint group listing incomplete ({} rows kept): {}", len(result.rows), result.error)

    groups = []
    for group in result.rows:
        title = (group.title or "").strip()
        if not title or title.casefold() in PLACEHOLDER_TITLES:
            continue
        groups.append(ViewpointGroupSummary(id=group.id, title=title))
    return sorted(groups, key=lambda g: g.title.casefold())
