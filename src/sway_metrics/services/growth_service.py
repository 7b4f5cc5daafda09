"""Growth service — cumulative verified supporters per calendar day."""

from collections.abc import Iterable
from datetime import UTC, date, datetime

from loguru import logger

from sway_metrics.lib.data_source import BaseDataSource, MembershipRecord, ProfileRecord, VerificationRecord
from sway_metrics.schemas.metrics import GrowthOverTimeDataPoint, GrowthOverTimeResult
from sway_metrics.services.supporter_service import resolve_supporters

# Rates at or beyond this magnitude come from a tiny first day and are not shown
MAX_DISPLAY_GROWTH_RATE = 1000.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def effective_dates(
    relations: Iterable[MembershipRecord],
    profiles: Iterable[ProfileRecord],
    verifications: Iterable[VerificationRecord],
) -> list[date]:
    """UTC day on which each verified voter is counted as acquired.

    That is the earlier of the verification time and the person's first
    supporter relation to the group.  When only one of the two is known it
    is used; a voter with neither is skipped.
    """
    person_by_profile = {p.id: p.person_id for p in profiles if p.person_id}
    joined: dict[str, datetime] = {}
    for relation in relations:
        person_id = person_by_profile.get(relation.profile_id)
        if person_id is None or relation.created_at is None:
            continue
        created = _as_utc(relation.created_at)
        if person_id not in joined or created < joined[person_id]:
            joined[person_id] = created

    days = []
    for verification in verifications:
        candidates = [joined[verification.person_id]] if verification.person_id in joined else []
        if verification.created_at is not None:
            candidates.append(_as_utc(verification.created_at))
        if candidates:
            days.append(min(candidates).date())
    return days


def build_growth_series(days: Iterable[date]) -> GrowthOverTimeResult:
    """Bucket effective days into a cumulative, date-ascending series.

    Args:
        days: One entry per verified voter.

    Returns:
        GrowthOverTimeResult.  ``total_growth`` is the final cumulative
        count.  ``growth_rate`` compares the last and first points and is
        omitted when the first point is zero or the rate is implausibly
        large.
    """
    buckets: dict[date, int] = {}
    for day in days:
        buckets[day] = buckets.get(day, 0) + 1
    if not buckets:
        return GrowthOverTimeResult()

    points = []
    cumulative = 0
    for day in sorted(buckets):
        added = buckets[day]
        cumulative += added
        points.append(
            GrowthOverTimeDataPoint(
                date=day.isoformat(),
                cumulative_count=cumulative,
                period_change=added or None,
            )
        )

    first = points[0].cumulative_count
    last = points[-1].cumulative_count
    growth_rate = None
    if first > 0:
        rate = round((last - first) / first * 100, 2)
        if abs(rate) < MAX_DISPLAY_GROWTH_RATE:
            growth_rate = rate

    return GrowthOverTimeResult(data_points=points, total_growth=last, growth_rate=growth_rate)


async def compute_growth_over_time(source: BaseDataSource, viewpoint_group_id: str) -> GrowthOverTimeResult:
    """Cumulative verified-supporter counts of a group by day.

    Args:
        source: Backend to read from.
        viewpoint_group_id: Group to analyze.

    Returns:
        GrowthOverTimeResult; empty when the group has no verified
        supporters or resolution failed.
    """
    resolution = await resolve_supporters(source, viewpoint_group_id)
    if not resolution.ok:
        logger.error("Growth over time for {} unavailable: {}", viewpoint_group_id, resolution.error)
        return GrowthOverTimeResult()

    days = effective_dates(resolution.relations, resolution.profiles, resolution.verifications)
    return build_growth_series(days)
