"""Backend-agnostic row records produced by every data source.

Adapters map their native shapes (ORM columns, GraphQL objects) into these
so the aggregation code never sees backend-specific field names.
"""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class MembershipRecord:
    """A profile's relation to a viewpoint group."""

    id: str
    profile_id: str
    viewpoint_group_id: str
    type: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    person_id: str | None
    display_name: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class VerificationRecord:
    """A fully verified voter verification."""

    id: str
    person_id: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class RegistrationRecord:
    voter_verification_id: str
    jurisdiction_id: str


@dataclass(frozen=True)
class JurisdictionRecord:
    id: str
    name: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class BallotItemRecord:
    id: str
    election_id: str
    jurisdiction_id: str


@dataclass(frozen=True)
class RaceRecord:
    id: str
    ballot_item_id: str
    office_term_id: str | None


@dataclass(frozen=True)
class OfficeTermRecord:
    id: str
    office_id: str | None


@dataclass(frozen=True)
class OfficeRecord:
    id: str
    name: str | None = None


@dataclass(frozen=True)
class ElectionRecord:
    id: str
    name: str | None = None
    poll_date: date | None = None


@dataclass(frozen=True)
class GroupRecord:
    id: str
    title: str | None = None


@dataclass(frozen=True)
class SupporterSummary:
    """Precomputed supporter counts published by a backend."""

    verified_count: int
    total_count: int
