"""Sway score service — verified-voter count among a group's supporters."""

from loguru import logger

from sway_metrics.lib.data_source import BaseDataSource
from sway_metrics.schemas.metrics import SwayScoreResult
from sway_metrics.services.supporter_service import resolve_supporters


async def compute_sway_score(source: BaseDataSource, viewpoint_group_id: str) -> SwayScoreResult:
    """Count a group's verified supporters.

    Uses the backend's precomputed summary when it publishes one, and
    otherwise resolves supporters row by row.

    Args:
        source: Backend to read from.
        viewpoint_group_id: Group to score.

    Returns:
        SwayScoreResult; zero counts when the group has no supporters or
        resolution failed.
    """
    summary = await source.fetch_supporter_summary(viewpoint_group_id)
    if summary is not None:
        return SwayScoreResult(count=summary.verified_count, total_supporters=summary.total_count)

    resolution = await resolve_supporters(source, viewpoint_group_id)
    if not resolution.ok:
        logger.error("Sway score for {} unavailable: {}", viewpoint_group_id, resolution.error)
        return SwayScoreResult()

    return SwayScoreResult(count=resolution.verified_count, total_supporters=resolution.total_supporters)
