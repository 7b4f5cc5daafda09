"""Supporter resolution — group -> supporter profiles -> persons -> verified voters.

Shared by every metric.  Network reach runs it once per downstream group.
"""

from dataclasses import dataclass, field

from loguru import logger

from sway_metrics.lib.batching import FetchError, unique_ids
from sway_metrics.lib.data_source import BaseDataSource, MembershipRecord, ProfileRecord, VerificationRecord


@dataclass
class SupporterResolution:
    """Rows collected while resolving a group's verified supporters.

    When ``error`` is set the hop named by it failed and the remaining
    fields hold only what was read before the failure.
    """

    viewpoint_group_id: str
    relations: list[MembershipRecord] = field(default_factory=list)
    profiles: list[ProfileRecord] = field(default_factory=list)
    verifications: list[VerificationRecord] = field(default_factory=list)
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total_supporters(self) -> int:
        """Supporter relations found, before any verification filtering."""
        return len(self.relations)

    @property
    def verified_count(self) -> int:
        return len(self.verifications)


async def resolve_supporters(source: BaseDataSource, viewpoint_group_id: str) -> SupporterResolution:
    """Resolve a group's supporters down to their fully verified voter records.

    Profiles without a person are dropped silently.  A person with several
    fully verified records contributes each of them.

    Args:
        source: Backend to read from.
        viewpoint_group_id: Group whose supporters are resolved.

    Returns:
        SupporterResolution; check ``ok`` before trusting the counts.
    """
    resolution = SupporterResolution(viewpoint_group_id=viewpoint_group_id)

    relations = await source.fetch_supporter_relations(viewpoint_group_id)
    if not relations.ok:
        logger.error("Supporter relations for {} could not be read: {}", viewpoint_group_id, relations.error)
        resolution.error = relations.error
        return resolution
    resolution.relations = relations.rows
    if not relations.rows:
        return resolution

    profiles = await source.fetch_profiles(unique_ids(r.profile_id for r in relations.rows))
    resolution.profiles = profiles.rows
    if not profiles.ok:
        logger.error("Supporter profiles for {} could not be read: {}", viewpoint_group_id, profiles.error)
        resolution.error = profiles.error
        return resolution

    person_ids = unique_ids(p.person_id for p in profiles.rows)
    if not person_ids:
        return resolution

    verifications = await source.fetch_verified_verifications(person_ids)
    resolution.verifications = verifications.rows
    if not verifications.ok:
        logger.error("Voter verifications for {} could not be read: {}", viewpoint_group_id, verifications.error)
        resolution.error = verifications.error
        return resolution

    logger.debug(
        "Group {}: {} supporter relations, {} persons, {} verified voters",
        viewpoint_group_id,
        resolution.total_supporters,
        len(person_ids),
        resolution.verified_count,
    )
    return resolution
