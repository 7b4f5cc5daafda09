"""Abstract interface for metric data sources."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

from sway_metrics.lib.batching import FetchResult, fetch_by_ids
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
    SupporterSummary,
    VerificationRecord,
)

T = TypeVar("T")


class BaseDataSource(ABC):
    """Row-level reads the metric pipelines need from a backend.

    Every fetch returns a FetchResult instead of raising: a store failure
    is reported through ``FetchResult.error`` together with whatever rows
    were read before it.  Id-list fetches are chunked to ``batch_size``.

    Args:
        batch_size: Maximum identifiers per IN-list request.
        concurrency: Maximum chunks of one fetch in flight at once.
    """

    def __init__(self, batch_size: int = 100, concurrency: int = 1) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.batch_size = batch_size
        self.concurrency = max(1, concurrency)

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique short name for this backend (e.g. 'relational')."""

    async def _batched(
        self,
        ids: Iterable[str | None],
        fetch_chunk: Callable[[list[str]], Awaitable[list[T]]],
    ) -> FetchResult[T]:
        return await fetch_by_ids(ids, fetch_chunk, batch_size=self.batch_size, concurrency=self.concurrency)

    @abstractmethod
    async def fetch_supporter_relations(self, viewpoint_group_id: str) -> FetchResult[MembershipRecord]:
        """Supporter-type membership relations of one group."""

    @abstractmethod
    async def fetch_leader_relations(
        self,
        profile_ids: Sequence[str],
        types: Sequence[str],
        exclude_group_id: str,
    ) -> FetchResult[MembershipRecord]:
        """Relations of the given ``types`` held by ``profile_ids`` in any group but ``exclude_group_id``."""

    @abstractmethod
    async def fetch_profiles(self, profile_ids: Sequence[str]) -> FetchResult[ProfileRecord]: ...

    @abstractmethod
    async def fetch_verified_verifications(self, person_ids: Sequence[str]) -> FetchResult[VerificationRecord]:
        """Voter verifications of ``person_ids`` with ``is_fully_verified`` set."""

    @abstractmethod
    async def fetch_registrations(
        self, verifications: Sequence[VerificationRecord]
    ) -> FetchResult[RegistrationRecord]:
        """Jurisdiction registrations of the given verified voters."""

    @abstractmethod
    async def fetch_jurisdictions(self, jurisdiction_ids: Sequence[str]) -> FetchResult[JurisdictionRecord]: ...

    @abstractmethod
    async def fetch_ballot_items(self, jurisdiction_ids: Sequence[str]) -> FetchResult[BallotItemRecord]:
        """Ballot items scoped to any of ``jurisdiction_ids``."""

    @abstractmethod
    async def fetch_races(self, ballot_item_ids: Sequence[str]) -> FetchResult[RaceRecord]:
        """Races on any of ``ballot_item_ids``."""

    @abstractmethod
    async def fetch_office_terms(self, office_term_ids: Sequence[str]) -> FetchResult[OfficeTermRecord]: ...

    @abstractmethod
    async def fetch_offices(self, office_ids: Sequence[str]) -> FetchResult[OfficeRecord]: ...

    @abstractmethod
    async def fetch_elections(self, election_ids: Sequence[str]) -> FetchResult[ElectionRecord]: ...

    @abstractmethod
    async def fetch_groups(self, group_ids: Sequence[str]) -> FetchResult[GroupRecord]: ...

    async def fetch_supporter_summary(self, viewpoint_group_id: str) -> SupporterSummary | None:
        """Precomputed supporter counts, or None when the backend has none."""
        return None

    async def list_groups_with_supporters(self) -> FetchResult[GroupRecord]:
        """Every group that has at least one supporter relation.

        Raises:
            NotImplementedError: If the backend cannot list groups.
        """
        msg = f"{self.name} does not support listing viewpoint groups"
        raise NotImplementedError(msg)

    async def close(self) -> None:
        """Release backend resources owned by this data source."""
