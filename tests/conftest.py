"""Shared test fixtures: settings, an on-disk SQLite store, and an in-memory data source."""

import uuid
from collections import Counter
from collections.abc import AsyncGenerator, Sequence
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from sway_metrics.core.config import Settings
from sway_metrics.lib.batching import FetchError, FetchResult
from sway_metrics.lib.data_source import (
    BallotItemRecord,
    BaseDataSource,
    ElectionRecord,
    GroupRecord,
    JurisdictionRecord,
    MembershipRecord,
    OfficeRecord,
    OfficeTermRecord,
    ProfileRecord,
    RaceRecord,
    RegistrationRecord,
    SupporterSummary,
    VerificationRecord,
)
from sway_metrics.models import (
    BallotItem,
    Election,
    Jurisdiction,
    Office,
    OfficeTerm,
    Person,
    Profile,
    ProfileViewpointGroupRel,
    Race,
    ViewpointGroup,
    VoterVerification,
    VoterVerificationJurisdictionRel,
)
from sway_metrics.models.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class InMemoryDataSource(BaseDataSource):
    """Data source over plain lists, with builder helpers and failure injection.

    ``fail`` maps a fetch method name to the error it should report.
    ``calls`` counts invocations per method.
    """

    def __init__(
        self,
        batch_size: int = 100,
        concurrency: int = 1,
        *,
        summary: SupporterSummary | None = None,
    ) -> None:
        super().__init__(batch_size=batch_size, concurrency=concurrency)
        self.summary = summary
        self.fail: dict[str, FetchError] = {}
        self.calls: Counter[str] = Counter()
        self.closed = False

        self.groups: list[GroupRecord] = []
        self.relations: list[MembershipRecord] = []
        self.profiles: list[ProfileRecord] = []
        self.verifications: list[tuple[VerificationRecord, bool]] = []
        self.registrations: list[RegistrationRecord] = []
        self.jurisdictions: list[JurisdictionRecord] = []
        self.ballot_items: list[BallotItemRecord] = []
        self.races: list[RaceRecord] = []
        self.office_terms: list[OfficeTermRecord] = []
        self.offices: list[OfficeRecord] = []
        self.elections: list[ElectionRecord] = []

    @property
    def name(self) -> str:
        return "memory"

    # Builders

    def add_group(self, title: str | None = "Group") -> str:
        group_id = new_id()
        self.groups.append(GroupRecord(id=group_id, title=title))
        return group_id

    def add_profile(self, *, person: bool = True, display_name: str | None = None, location: str | None = None) -> str:
        profile_id = new_id()
        self.profiles.append(
            ProfileRecord(
                id=profile_id,
                person_id=new_id() if person else None,
                display_name=display_name,
                location=location,
            )
        )
        return profile_id

    def person_of(self, profile_id: str) -> str | None:
        return next(p.person_id for p in self.profiles if p.id == profile_id)

    def add_membership(
        self,
        profile_id: str,
        group_id: str,
        type_: str = "supporter",
        created_at: datetime | None = None,
    ) -> None:
        self.relations.append(
            MembershipRecord(
                id=new_id(),
                profile_id=profile_id,
                viewpoint_group_id=group_id,
                type=type_,
                created_at=created_at,
            )
        )

    def add_verification(self, person_id: str, *, verified: bool = True, created_at: datetime | None = None) -> str:
        verification_id = new_id()
        self.verifications.append(
            (VerificationRecord(id=verification_id, person_id=person_id, created_at=created_at), verified)
        )
        return verification_id

    def add_supporter(
        self,
        group_id: str,
        *,
        verified: bool | None = True,
        joined_at: datetime | None = None,
        verified_at: datetime | None = None,
        display_name: str | None = None,
        location: str | None = None,
    ) -> str:
        """Add a supporter profile; ``verified=None`` gives the person no verification at all."""
        profile_id = self.add_profile(display_name=display_name, location=location)
        self.add_membership(profile_id, group_id, created_at=joined_at)
        if verified is not None:
            self.add_verification(self.person_of(profile_id), verified=verified, created_at=verified_at)
        return profile_id

    def verification_of(self, profile_id: str) -> str:
        person_id = self.person_of(profile_id)
        return next(v.id for v, _ in self.verifications if v.person_id == person_id)

    def add_jurisdiction(self, name: str | None = "Jurisdiction", state: str | None = None) -> str:
        jurisdiction_id = new_id()
        self.jurisdictions.append(JurisdictionRecord(id=jurisdiction_id, name=name, state=state))
        return jurisdiction_id

    def register(self, verification_id: str, jurisdiction_id: str) -> None:
        self.registrations.append(
            RegistrationRecord(voter_verification_id=verification_id, jurisdiction_id=jurisdiction_id)
        )

    def add_election(self, name: str | None = "Election", poll_date: date | None = None) -> str:
        election_id = new_id()
        self.elections.append(ElectionRecord(id=election_id, name=name, poll_date=poll_date))
        return election_id

    def add_race(self, jurisdiction_id: str, election_id: str, office_name: str | None = "Office") -> str:
        office_id, term_id, ballot_item_id, race_id = new_id(), new_id(), new_id(), new_id()
        self.offices.append(OfficeRecord(id=office_id, name=office_name))
        self.office_terms.append(OfficeTermRecord(id=term_id, office_id=office_id))
        self.ballot_items.append(
            BallotItemRecord(id=ballot_item_id, election_id=election_id, jurisdiction_id=jurisdiction_id)
        )
        self.races.append(RaceRecord(id=race_id, ballot_item_id=ballot_item_id, office_term_id=term_id))
        return race_id

    # Fetches

    def _failed(self, method: str) -> FetchResult | None:
        self.calls[method] += 1
        error = self.fail.get(method)
        return FetchResult(error=error) if error is not None else None

    async def _filter(self, method: str, ids: Sequence[str], rows: list, key) -> FetchResult:
        failed = self._failed(method)
        if failed is not None:
            return failed

        async def _chunk(chunk: list[str]) -> list:
            wanted = set(chunk)
            return [row for row in rows if key(row) in wanted]

        return await self._batched(ids, _chunk)

    async def fetch_supporter_relations(self, viewpoint_group_id: str) -> FetchResult[MembershipRecord]:
        failed = self._failed("fetch_supporter_relations")
        if failed is not None:
            return failed
        return FetchResult(
            rows=[r for r in self.relations if r.viewpoint_group_id == viewpoint_group_id and r.type == "supporter"]
        )

    async def fetch_leader_relations(
        self,
        profile_ids: Sequence[str],
        types: Sequence[str],
        exclude_group_id: str,
    ) -> FetchResult[MembershipRecord]:
        rows = [r for r in self.relations if r.type in types and r.viewpoint_group_id != exclude_group_id]
        return await self._filter("fetch_leader_relations", profile_ids, rows, lambda r: r.profile_id)

    async def fetch_profiles(self, profile_ids: Sequence[str]) -> FetchResult[ProfileRecord]:
        return await self._filter("fetch_profiles", profile_ids, self.profiles, lambda p: p.id)

    async def fetch_verified_verifications(self, person_ids: Sequence[str]) -> FetchResult[VerificationRecord]:
        rows = [v for v, verified in self.verifications if verified]
        return await self._filter("fetch_verified_verifications", person_ids, rows, lambda v: v.person_id)

    async def fetch_registrations(
        self, verifications: Sequence[VerificationRecord]
    ) -> FetchResult[RegistrationRecord]:
        return await self._filter(
            "fetch_registrations",
            [v.id for v in verifications],
            self.registrations,
            lambda r: r.voter_verification_id,
        )

    async def fetch_jurisdictions(self, jurisdiction_ids: Sequence[str]) -> FetchResult[JurisdictionRecord]:
        return await self._filter("fetch_jurisdictions", jurisdiction_ids, self.jurisdictions, lambda j: j.id)

    async def fetch_ballot_items(self, jurisdiction_ids: Sequence[str]) -> FetchResult[BallotItemRecord]:
        return await self._filter(
            "fetch_ballot_items", jurisdiction_ids, self.ballot_items, lambda b: b.jurisdiction_id
        )

    async def fetch_races(self, ballot_item_ids: Sequence[str]) -> FetchResult[RaceRecord]:
        return await self._filter("fetch_races", ballot_item_ids, self.races, lambda r: r.ballot_item_id)

    async def fetch_office_terms(self, office_term_ids: Sequence[str]) -> FetchResult[OfficeTermRecord]:
        return await self._filter("fetch_office_terms", office_term_ids, self.office_terms, lambda t: t.id)

    async def fetch_offices(self, office_ids: Sequence[str]) -> FetchResult[OfficeRecord]:
        return await self._filter("fetch_offices", office_ids, self.offices, lambda o: o.id)

    async def fetch_elections(self, election_ids: Sequence[str]) -> FetchResult[ElectionRecord]:
        return await self._filter("fetch_elections", election_ids, self.elections, lambda e: e.id)

    async def fetch_groups(self, group_ids: Sequence[str]) -> FetchResult[GroupRecord]:
        return await self._filter("fetch_groups", group_ids, self.groups, lambda g: g.id)

    async def fetch_supporter_summary(self, viewpoint_group_id: str) -> SupporterSummary | None:
        self.calls["fetch_supporter_summary"] += 1
        return self.summary

    async def list_groups_with_supporters(self) -> FetchResult[GroupRecord]:
        failed = self._failed("list_groups_with_supporters")
        if failed is not None:
            return failed
        with_supporters = {r.viewpoint_group_id for r in self.relations if r.type == "supporter"}
        return FetchResult(rows=[g for g in self.groups if g.id in with_supporters])

    async def close(self) -> None:
        self.closed = True


async def persist_dataset(source: InMemoryDataSource, session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Write an in-memory dataset into the relational store."""
    fallback = datetime(2024, 1, 1, tzinfo=UTC)
    async with session_factory() as session:
        session.add_all(ViewpointGroup(id=g.id, title=g.title) for g in source.groups)
        session.add_all(Person(id=p.person_id) for p in source.profiles if p.person_id)
        session.add_all(
            Profile(id=p.id, person_id=p.person_id, display_name_long=p.display_name, location=p.location)
            for p in source.profiles
        )
        session.add_all(
            ProfileViewpointGroupRel(
                id=r.id,
                profile_id=r.profile_id,
                viewpoint_group_id=r.viewpoint_group_id,
                type=r.type,
                created_at=r.created_at or fallback,
            )
            for r in source.relations
        )
        session.add_all(
            VoterVerification(
                id=v.id,
                person_id=v.person_id,
                is_fully_verified=verified,
                created_at=v.created_at or fallback,
            )
            for v, verified in source.verifications
        )
        session.add_all(
            Jurisdiction(id=j.id, name=j.name, state=j.state, level="state") for j in source.jurisdictions
        )
        session.add_all(
            VoterVerificationJurisdictionRel(
                voter_verification_id=r.voter_verification_id,
                jurisdiction_id=r.jurisdiction_id,
            )
            for r in source.registrations
        )
        session.add_all(Election(id=e.id, name=e.name, poll_date=e.poll_date) for e in source.elections)
        session.add_all(Office(id=o.id, name=o.name) for o in source.offices)
        session.add_all(OfficeTerm(id=t.id, office_id=t.office_id) for t in source.office_terms)
        session.add_all(
            BallotItem(id=b.id, election_id=b.election_id, jurisdiction_id=b.jurisdiction_id)
            for b in source.ballot_items
        )
        session.add_all(
            Race(id=r.id, ballot_item_id=r.ballot_item_id, office_term_id=r.office_term_id) for r in source.races
        )
        await session.commit()


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        data_source="relational",
        metric_timeout_seconds=5.0,
        _env_file=None,
    )


@pytest.fixture
def memory_source() -> InMemoryDataSource:
    """Empty in-memory data source; tests build their own dataset on it."""
    return InMemoryDataSource()


@pytest.fixture
def make_memory_source() -> type[InMemoryDataSource]:
    """The in-memory data source class, for tests needing custom batching."""
    return InMemoryDataSource


@pytest.fixture
def persist():
    """Coroutine writing an in-memory dataset into a session factory's store."""
    return persist_dataset


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed async SQLite engine so concurrent sessions see one database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sway.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)
