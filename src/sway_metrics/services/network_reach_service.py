"""Network reach service — verified voters reachable through supporters who lead other groups."""

import asyncio

from loguru import logger

from sway_metrics.lib.batching import build_index, unique_ids
from sway_metrics.lib.data_source import BaseDataSource, GroupRecord, MembershipRecord, ProfileRecord
from sway_metrics.models.viewpoint_group import MembershipType
from sway_metrics.schemas.metrics import NetworkLeader, NetworkReachResult
from sway_metrics.services.supporter_service import SupporterResolution, resolve_supporters

NETWORK_LEADER_TYPES: tuple[str, ...] = (MembershipType.LEADER.value, MembershipType.ADMINISTRATOR.value)


def distinct_leader_pairs(relations: list[MembershipRecord]) -> list[MembershipRecord]:
    """First relation per (profile, group) pair, in discovery order."""
    seen: set[tuple[str, str]] = set()
    pairs = []
    for relation in relations:
        key = (relation.profile_id, relation.viewpoint_group_id)
        if key in seen:
            continue
        seen.add(key)
        pairs.append(relation)
    return pairs


async def _resolve_downstream(
    source: BaseDataSource,
    group_ids: list[str],
    concurrency: int,
) -> dict[str, SupporterResolution]:
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def resolve_one(group_id: str) -> SupporterResolution:
        async with semaphore:
            return await resolve_supporters(source, group_id)

    async with asyncio.TaskGroup() as group:
        tasks = {group_id: group.create_task(resolve_one(group_id)) for group_id in group_ids}
    return {group_id: task.result() for group_id, task in tasks.items()}


def build_network_leaders(
    pairs: list[MembershipRecord],
    profiles: dict[str, ProfileRecord],
    groups: dict[str, GroupRecord],
    downstream: dict[str, SupporterResolution],
) -> NetworkReachResult:
    """Assemble one leader entry per pair and the undeduplicated reach total."""
    leaders = []
    for pair in pairs:
        profile = profiles.get(pair.profile_id)
        group = groups.get(pair.viewpoint_group_id)
        resolution = downstream.get(pair.viewpoint_group_id)
        resolved = resolution is not None and resolution.ok
        leaders.append(
            NetworkLeader(
                profile_id=pair.profile_id,
                display_name=profile.display_name if profile else None,
                viewpoint_group_id=pair.viewpoint_group_id,
                viewpoint_group_title=group.title if group else None,
                downstream_verified_voters=resolution.verified_count if resolved else 0,
                supporter_count=resolution.total_supporters if resolved else None,
            )
        )
    leaders.sort(key=lambda leader: leader.downstream_verified_voters, reverse=True)
    return NetworkReachResult(
        network_leaders=leaders,
        total_downstream_reach=sum(leader.downstream_verified_voters for leader in leaders),
    )


async def compute_network_reach(
    source: BaseDataSource,
    viewpoint_group_id: str,
    *,
    concurrency: int = 4,
) -> NetworkReachResult:
    """Find supporters of a group who lead other groups and count those groups' verified voters.

    The downstream groups are resolved one level deep only; their own
    network leaders are not followed.  A voter reachable through several
    leaders is counted once per leader.

    Args:
        source: Backend to read from.
        viewpoint_group_id: Group whose supporters are inspected.
        concurrency: Maximum downstream groups resolved at once.

    Returns:
        NetworkReachResult sorted by downstream verified voters; empty when
        no supporter leads another group or the lookup failed.
    """
    supporters = await source.fetch_supporter_relations(viewpoint_group_id)
    if not supporters.ok:
        logger.error("Network reach for {} unavailable: {}", viewpoint_group_id, supporters.error)
        return NetworkReachResult()
    profile_ids = unique_ids(r.profile_id for r in supporters.rows)
    if not profile_ids:
        return NetworkReachResult()

    leader_relations = await source.fetch_leader_relations(profile_ids, NETWORK_LEADER_TYPES, viewpoint_group_id)
    if not leader_relations.ok:
        logger.error(
            "Network reach for {}: leader relations unavailable: {}", viewpoint_group_id, leader_relations.error
        )
        return NetworkReachResult()

    pairs = [r for r in distinct_leader_pairs(leader_relations.rows) if r.viewpoint_group_id != viewpoint_group_id]
    if not pairs:
        return NetworkReachResult()

    group_ids = unique_ids(p.viewpoint_group_id for p in pairs)
    async with asyncio.TaskGroup() as group:
        profiles_task = group.create_task(source.fetch_profiles(unique_ids(p.profile_id for p in pairs)))
        groups_task = group.create_task(source.fetch_groups(group_ids))
        downstream_task = group.create_task(_resolve_downstream(source, group_ids, concurrency))
    profiles_result = profiles_task.result()
    groups_result = groups_task.result()
    downstream = downstream_task.result()
    for step, fetched in (("profiles", profiles_result), ("group titles", groups_result)):
        if not fetched.ok:
            logger.warning("Network reach for {}: {} incomplete: {}", viewpoint_group_id, step, fetched.error)

    failed = [group_id for group_id, resolution in downstream.items() if not resolution.ok]
    if failed:
        logger.warning("Network reach for {}: {} downstream groups unresolved", viewpoint_group_id, len(failed))

    result = build_network_leaders(
        pairs,
        build_index(profiles_result.rows, lambda p: p.id),
        build_index(groups_result.rows, lambda g: g.id),
        downstream,
    )
    logger.debug(
        "Group {}: {} network leaders, {} downstream verified voters",
        viewpoint_group_id,
        len(result.network_leaders),
        result.total_downstream_reach,
    )
    return result
