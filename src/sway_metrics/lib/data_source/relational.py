"""Relational-store data source backed by SQLAlchemy.

Each query opens its own short-lived session from the shared factory, so
chunks dispatched concurrently never share an AsyncSession while still
drawing on one connection pool.
"""

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy import Select, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sway_metrics.lib.batching import FetchError, FetchResult
from sway_metrics.lib.data_source.base import BaseDataSource
from sway_metrics.lib.data_source.records import (
    BallotItemRecord,
    ElectionRecord,
    GroupRecord,
    JurisdictionRecord,
    MembershipRecord,
    OfficeRecord,
    OfficeTermRecord,
    ProfileRecord,
    RaceRecord,
    RegistrationRecord,
    VerificationRecord,
)
from sway_metrics.models import (
    BallotItem,
    Election,
    Jurisdiction,
    MembershipType,
    Office,
    OfficeTerm,
    Profile,
    ProfileViewpointGroupRel,
    Race,
    ViewpointGroup,
    VoterVerification,
    VoterVerificationJurisdictionRel,
)

T = TypeVar("T")

_MEMBERSHIP_COLUMNS = (
    ProfileViewpointGroupRel.id,
    ProfileViewpointGroupRel.profile_id,
    ProfileViewpointGroupRel.viewpoint_group_id,
    ProfileViewpointGroupRel.type,
    ProfileViewpointGroupRel.created_at,
)


def _membership(row: Any) -> MembershipRecord:
    return MembershipRecord(
        id=row.id,
        profile_id=row.profile_id,
        viewpoint_group_id=row.viewpoint_group_id,
        type=row.type,
        created_at=row.created_at,
    )


class RelationalDataSource(BaseDataSource):
    """Reads metric inputs from the relational store.

    Args:
        session_factory: Factory producing async sessions bound to the store.
        batch_size: Maximum identifiers per IN-list query.
        concurrency: Maximum chunk queries in flight for one fetch.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        batch_size: int = 100,
        concurrency: int = 1,
    ) -> None:
        super().__init__(batch_size=batch_size, concurrency=concurrency)
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return "relational"

    # ------------------------------------------------------------------
    # Membership relations
    # ------------------------------------------------------------------

    async def fetch_supporter_relations(self, viewpoint_group_id: str) -> FetchResult[MembershipRecord]:
        stmt = select(*_MEMBERSHIP_COLUMNS).where(
            ProfileViewpointGroupRel.viewpoint_group_id == viewpoint_group_id,
            ProfileViewpointGroupRel.type == MembershipType.SUPPORTER.value,
        )
        return await self._single(stmt, "profile_viewpoint_group_rels", _membership)

    async def fetch_leader_relations(
        self,
        profile_ids: Sequence[str],
        types: Sequence[str],
        exclude_group_id: str,
    ) -> FetchResult[MembershipRecord]:
        async def _chunk(chunk: list[str]) -> list[MembershipRecord]:
            stmt = select(*_MEMBERSHIP_COLUMNS).where(
                ProfileViewpointGroupRel.profile_id.in_(chunk),
                ProfileViewpointGroupRel.type.in_(list(types)),
                ProfileViewpointGroupRel.viewpoint_group_id != exclude_group_id,
            )
            return await self._select(stmt, "profile_viewpoint_group_rels", _membership)

        return await self._batched(profile_ids, _chunk)

    # ------------------------------------------------------------------
    # Supporter identity chain
    # ------------------------------------------------------------------

    async def fetch_profiles(self, profile_ids: Sequence[str]) -> FetchResult[ProfileRecord]:
        def _map(row: Any) -> ProfileRecord:
            return ProfileRecord(
                id=row.id,
                person_id=row.person_id,
                display_name=row.display_name_long or row.display_name_short,
                location=row.location,
            )

        async def _chunk(chunk: list[str]) -> list[ProfileRecord]:
            stmt = select(
                Profile.id,
                Profile.person_id,
                Profile.display_name_long,
                Profile.display_name_short,
                Profile.location,
            ).where(Profile.id.in_(chunk))
            return await self._select(stmt, "profiles", _map)

        return await self._batched(profile_ids, _chunk)

    async def fetch_verified_verifications(self, person_ids: Sequence[str]) -> FetchResult[VerificationRecord]:
        def _map(row: Any) -> VerificationRecord:
            return VerificationRecord(id=row.id, person_id=row.person_id, created_at=row.created_at)

        async def _chunk(chunk: list[str]) -> list[VerificationRecord]:
            stmt = select(VoterVerification.id, VoterVerification.person_id, VoterVerification.created_at).where(
                VoterVerification.person_id.in_(chunk),
                VoterVerification.is_fully_verified.is_(True),
            )
            return await self._select(stmt, "voter_verifications", _map)

        return await self._batched(person_ids, _chunk)

    async def fetch_registrations(
        self, verifications: Sequence[VerificationRecord]
    ) -> FetchResult[RegistrationRecord]:
        def _map(row: Any) -> RegistrationRecord:
            return RegistrationRecord(
                voter_verification_id=row.voter_verification_id,
                jurisdiction_id=row.jurisdiction_id,
            )

        async def _chunk(chunk: list[str]) -> list[RegistrationRecord]:
            stmt = select(
                VoterVerificationJurisdictionRel.voter_verification_id,
                VoterVerificationJurisdictionRel.jurisdiction_id,
            ).where(VoterVerificationJurisdictionRel.voter_verification_id.in_(chunk))
            return await self._select(stmt, "voter_verification_jurisdiction_rels", _map)

        return await self._batched([v.id for v in verifications], _chunk)

    # ------------------------------------------------------------------
    # Jurisdiction / ballot chain
    # ------------------------------------------------------------------

    async def fetch_jurisdictions(self, jurisdiction_ids: Sequence[str]) -> FetchResult[JurisdictionRecord]:
        def _map(row: Any) -> JurisdictionRecord:
            return JurisdictionRecord(id=row.id, name=row.name, state=row.state)

        async def _chunk(chunk: list[str]) -> list[JurisdictionRecord]:
            stmt = select(Jurisdiction.id, Jurisdiction.name, Jurisdiction.state).where(Jurisdiction.id.in_(chunk))
            return await self._select(stmt, "jurisdictions", _map)

        return await self._batched(jurisdiction_ids, _chunk)

    async def fetch_ballot_items(self, jurisdiction_ids: Sequence[str]) -> FetchResult[BallotItemRecord]:
        def _map(row: Any) -> BallotItemRecord:
            return BallotItemRecord(id=row.id, election_id=row.election_id, jurisdiction_id=row.jurisdiction_id)

        async def _chunk(chunk: list[str]) -> list[BallotItemRecord]:
            stmt = select(BallotItem.id, BallotItem.election_id, BallotItem.jurisdiction_id).where(
                BallotItem.jurisdiction_id.in_(chunk)
            )
            return await self._select(stmt, "ballot_items", _map)

        return await self._batched(jurisdiction_ids, _chunk)

    async def fetch_races(self, ballot_item_ids: Sequence[str]) -> FetchResult[RaceRecord]:
        def _map(row: Any) -> RaceRecord:
            return RaceRecord(id=row.id, ballot_item_id=row.ballot_item_id, office_term_id=row.office_term_id)

        async def _chunk(chunk: list[str]) -> list[RaceRecord]:
            stmt = select(Race.id, Race.ballot_item_id, Race.office_term_id).where(Race.ballot_item_id.in_(chunk))
            return await self._select(stmt, "races", _map)

        return await self._batched(ballot_item_ids, _chunk)

    async def fetch_office_terms(self, office_term_ids: Sequence[str]) -> FetchResult[OfficeTermRecord]:
        async def _chunk(chunk: list[str]) -> list[OfficeTermRecord]:
            stmt = select(OfficeTerm.id, OfficeTerm.office_id).where(OfficeTerm.id.in_(chunk))
            return await self._select(stmt, "office_terms", lambda r: OfficeTermRecord(id=r.id, office_id=r.office_id))

        return await self._batched(office_term_ids, _chunk)

    async def fetch_offices(self, office_ids: Sequence[str]) -> FetchResult[OfficeRecord]:
        async def _chunk(chunk: list[str]) -> list[OfficeRecord]:
            stmt = select(Office.id, Office.name).where(Office.id.in_(chunk))
            return await self._select(stmt, "offices", lambda r: OfficeRecord(id=r.id, name=r.name))

        return await self._batched(office_ids, _chunk)

    async def fetch_elections(self, election_ids: Sequence[str]) -> FetchResult[ElectionRecord]:
        def _map(row: Any) -> ElectionRecord:
            return ElectionRecord(id=row.id, name=row.name, poll_date=row.poll_date)

        async def _chunk(chunk: list[str]) -> list[ElectionRecord]:
            stmt = select(Election.id, Election.name, Election.poll_date).where(Election.id.in_(chunk))
            return await self._select(stmt, "elections", _map)

        return await self._batched(election_ids, _chunk)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def fetch_groups(self, group_ids: Sequence[str]) -> FetchResult[GroupRecord]:
        async def _chunk(chunk: list[str]) -> list[GroupRecord]:
            stmt = select(ViewpointGroup.id, ViewpointGroup.title).where(ViewpointGroup.id.in_(chunk))
            return await self._select(stmt, "viewpoint_groups", lambda r: GroupRecord(id=r.id, title=r.title))

        return await self._batched(group_ids, _chunk)

    async def list_groups_with_supporters(self) -> FetchResult[GroupRecord]:
        has_supporter = exists().where(
            ProfileViewpointGroupRel.viewpoint_group_id == ViewpointGroup.id,
            ProfileViewpointGroupRel.type == MembershipType.SUPPORTER.value,
        )
        stmt = select(ViewpointGroup.id, ViewpointGroup.title).where(has_supporter)
        return await self._single(stmt, "viewpoint_groups", lambda r: GroupRecord(id=r.id, title=r.title))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _select(self, stmt: Select, table: str, mapper: Callable[[Any], T]) -> list[T]:
        """Execute a column select and map each row, wrapping store errors."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [mapper(row) for row in result.all()]
        except SQLAlchemyError as exc:
            message = next(iter(str(exc).splitlines()), type(exc).__name__)
            raise FetchError(self.name, message, table=table) from exc

    async def _single(self, stmt: Select, table: str, mapper: Callable[[Any], T]) -> FetchResult[T]:
        """Run an unchunked query, reporting failure through the result."""
        try:
            return FetchResult(rows=await self._select(stmt, table, mapper))
        except FetchError as exc:
            logger.error("Relational query on {} failed: {}", table, exc)
            return FetchResult(error=exc)
