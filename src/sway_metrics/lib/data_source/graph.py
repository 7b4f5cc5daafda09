"""Sway graph API data source.

Maps Hasura-style GraphQL objects onto the shared row records.  The graph
exposes no formal jurisdiction registration, so a verified voter is placed
in the state-level jurisdiction inferred from their profile's free-text
location.
"""

from collections.abc import Callable, Sequence
from datetime import date, datetime
from typing import Any, TypeVar

from loguru import logger

from sway_metrics.lib.batching import FetchError, FetchResult, build_index, unique_ids
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
    SupporterSummary,
    VerificationRecord,
)
from sway_metrics.lib.sway_graph import SwayAPIError, SwayGraphClient, extract_state

T = TypeVar("T")

STATE_JURISDICTION_LEVEL = "state"

_MEMBERSHIP_FIELDS = "id profileId viewpointGroupId type createdAt"

_SUPPORTER_RELS_QUERY = f"""
query SupporterRels($groupId: uuid!) {{
  profileViewpointGroupRels(where: {{viewpointGroupId: {{_eq: $groupId}}, type: {{_eq: "supporter"}}}}) {{
    {_MEMBERSHIP_FIELDS}
  }}
}}
"""

_LEADER_RELS_QUERY = f"""
query LeaderRels($ids: [uuid!]!, $types: [String!]!, $excludeGroupId: uuid!) {{
  profileViewpointGroupRels(
    where: {{profileId: {{_in: $ids}}, type: {{_in: $types}}, viewpointGroupId: {{_neq: $excludeGroupId}}}}
  ) {{
    {_MEMBERSHIP_FIELDS}
  }}
}}
"""

_PROFILES_QUERY = """
query Profiles($ids: [uuid!]!) {
  profiles(where: {id: {_in: $ids}}) {
    id personId displayNameLong displayNameShort location
  }
}
"""

_PROFILES_BY_PERSON_QUERY = """
query ProfilesByPerson($ids: [uuid!]!) {
  profiles(where: {personId: {_in: $ids}}) {
    id personId displayNameLong displayNameShort location
  }
}
"""

_VERIFIED_QUERY = """
query VerifiedVoters($ids: [uuid!]!) {
  voterVerifications(where: {personId: {_in: $ids}, isFullyVerified: {_eq: true}}) {
    id personId createdAt
  }
}
"""

_STATE_JURISDICTIONS_QUERY = """
query StateJurisdictions($states: [String!]!, $level: String!) {
  jurisdictions(where: {state: {_in: $states}, level: {_eq: $level}}) {
    id name state
  }
}
"""

_JURISDICTIONS_QUERY = """
query Jurisdictions($ids: [uuid!]!) {
  jurisdictions(where: {id: {_in: $ids}}) { id name state }
}
"""

_BALLOT_ITEMS_QUERY = """
query BallotItems($ids: [uuid!]!) {
  ballotItems(where: {jurisdictionId: {_in: $ids}}) { id electionId jurisdictionId }
}
"""

_RACES_QUERY = """
query Races($ids: [uuid!]!) {
  races(where: {ballotItemId: {_in: $ids}}) { id ballotItemId officeTermId }
}
"""

_OFFICE_TERMS_QUERY = """
query OfficeTerms($ids: [uuid!]!) {
  officeTerms(where: {id: {_in: $ids}}) { id officeId }
}
"""

_OFFICES_QUERY = """
query Offices($ids: [uuid!]!) {
  offices(where: {id: {_in: $ids}}) { id name }
}
"""

_ELECTIONS_QUERY = """
query Elections($ids: [uuid!]!) {
  elections(where: {id: {_in: $ids}}) { id name pollDate }
}
"""

_GROUPS_QUERY = """
query ViewpointGroups($ids: [uuid!]!) {
  viewpointGroups(where: {id: {_in: $ids}}) { id title }
}
"""

_SUMMARY_QUERY = """
query SupporterSummary($id: uuid!) {
  viewpointGroups(where: {id: {_eq: $id}}) {
    summary { verifiedSupporterCount supporterCount }
  }
}
"""


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _membership(obj: dict[str, Any]) -> MembershipRecord:
    return MembershipRecord(
        id=obj["id"],
        profile_id=obj["profileId"],
        viewpoint_group_id=obj["viewpointGroupId"],
        type=obj["type"],
        created_at=_parse_datetime(obj.get("createdAt")),
    )


def _profile(obj: dict[str, Any]) -> ProfileRecord:
    return ProfileRecord(
        id=obj["id"],
        person_id=obj.get("personId"),
        display_name=obj.get("displayNameLong") or obj.get("displayNameShort"),
        location=obj.get("location"),
    )


def _jurisdiction(obj: dict[str, Any]) -> JurisdictionRecord:
    return JurisdictionRecord(id=obj["id"], name=obj.get("name"), state=obj.get("state"))


class GraphDataSource(BaseDataSource):
    """Reads metric inputs from the Sway graph API.

    Args:
        client: GraphQL client for the Sway API.
        batch_size: Maximum identifiers per ``_in`` filter.
        concurrency: Maximum chunk queries in flight for one fetch.
        owns_client: Close ``client`` when this source is closed.
    """

    def __init__(
        self,
        client: SwayGraphClient,
        batch_size: int = 100,
        concurrency: int = 1,
        *,
        owns_client: bool = True,
    ) -> None:
        super().__init__(batch_size=batch_size, concurrency=concurrency)
        self._client = client
        self._owns_client = owns_client

    @property
    def name(self) -> str:
        return "graph"

    async def fetch_supporter_relations(self, viewpoint_group_id: str) -> FetchResult[MembershipRecord]:
        try:
            rows = await self._query(
                "profileViewpointGroupRels",
                _SUPPORTER_RELS_QUERY,
                {"groupId": viewpoint_group_id},
                _membership,
            )
        except FetchError as exc:
            return FetchResult(error=exc)
        return FetchResult(rows=rows)

    async def fetch_leader_relations(
        self,
        profile_ids: Sequence[str],
        types: Sequence[str],
        exclude_group_id: str,
    ) -> FetchResult[MembershipRecord]:
        return await self._query_in(
            "profileViewpointGroupRels",
            _LEADER_RELS_QUERY,
            profile_ids,
            _membership,
            {"types": list(types), "excludeGroupId": exclude_group_id},
        )

    async def fetch_profiles(self, profile_ids: Sequence[str]) -> FetchResult[ProfileRecord]:
        return await self._query_in("profiles", _PROFILES_QUERY, profile_ids, _profile)

    async def fetch_verified_verifications(self, person_ids: Sequence[str]) -> FetchResult[VerificationRecord]:
        def _map(obj: dict[str, Any]) -> VerificationRecord:
            return VerificationRecord(
                id=obj["id"],
                person_id=obj["personId"],
                created_at=_parse_datetime(obj.get("createdAt")),
            )

        return await self._query_in("voterVerifications", _VERIFIED_QUERY, person_ids, _map)

    async def fetch_registrations(
        self, verifications: Sequence[VerificationRecord]
    ) -> FetchResult[RegistrationRecord]:
        """Approximate registrations from profile locations.

        Each verified voter is registered in the state-level jurisdiction of
        the first of their profiles whose location names a recognizable
        state.  Voters with no recognizable state are left unregistered.
        """
        if not verifications:
            return FetchResult()

        profiles = await self._query_in(
            "profiles", _PROFILES_BY_PERSON_QUERY, [v.person_id for v in verifications], _profile
        )
        state_by_person: dict[str, str] = {}
        for profile in profiles.rows:
            state = extract_state(profile.location)
            if state and profile.person_id:
                state_by_person.setdefault(profile.person_id, state)
        if profiles.error is not None:
            return FetchResult(error=profiles.error)

        states = unique_ids(state_by_person.values())
        if not states:
            return FetchResult()

        try:
            jurisdictions = await self._query(
                "jurisdictions",
                _STATE_JURISDICTIONS_QUERY,
                {"states": states, "level": STATE_JURISDICTION_LEVEL},
                _jurisdiction,
            )
        except FetchError as exc:
            return FetchResult(error=exc)

        # First jurisdiction per state wins; there should be exactly one.
        jurisdiction_by_state = build_index(reversed(jurisdictions), lambda j: j.state)

        registrations = []
        for verification in verifications:
            state = state_by_person.get(verification.person_id)
            jurisdiction = jurisdiction_by_state.get(state) if state else None
            if jurisdiction is not None:
                registrations.append(
                    RegistrationRecord(voter_verification_id=verification.id, jurisdiction_id=jurisdiction.id)
                )
        return FetchResult(rows=registrations)

    async def fetch_jurisdictions(self, jurisdiction_ids: Sequence[str]) -> FetchResult[JurisdictionRecord]:
        return await self._query_in("jurisdictions", _JURISDICTIONS_QUERY, jurisdiction_ids, _jurisdiction)

    async def fetch_ballot_items(self, jurisdiction_ids: Sequence[str]) -> FetchResult[BallotItemRecord]:
        def _map(obj: dict[str, Any]) -> BallotItemRecord:
            return BallotItemRecord(id=obj["id"], election_id=obj["electionId"], jurisdiction_id=obj["jurisdictionId"])

        return await self._query_in("ballotItems", _BALLOT_ITEMS_QUERY, jurisdiction_ids, _map)

    async def fetch_races(self, ballot_item_ids: Sequence[str]) -> FetchResult[RaceRecord]:
        def _map(obj: dict[str, Any]) -> RaceRecord:
            return RaceRecord(id=obj["id"], ballot_item_id=obj["ballotItemId"], office_term_id=obj.get("officeTermId"))

        return await self._query_in("races", _RACES_QUERY, ballot_item_ids, _map)

    async def fetch_office_terms(self, office_term_ids: Sequence[str]) -> FetchResult[OfficeTermRecord]:
        return await self._query_in(
            "officeTerms",
            _OFFICE_TERMS_QUERY,
            office_term_ids,
            lambda obj: OfficeTermRecord(id=obj["id"], office_id=obj.get("officeId")),
        )

    async def fetch_offices(self, office_ids: Sequence[str]) -> FetchResult[OfficeRecord]:
        return await self._query_in(
            "offices", _OFFICES_QUERY, office_ids, lambda obj: OfficeRecord(id=obj["id"], name=obj.get("name"))
        )

    async def fetch_elections(self, election_ids: Sequence[str]) -> FetchResult[ElectionRecord]:
        def _map(obj: dict[str, Any]) -> ElectionRecord:
            return ElectionRecord(id=obj["id"], name=obj.get("name"), poll_date=_parse_date(obj.get("pollDate")))

        return await self._query_in("elections", _ELECTIONS_QUERY, election_ids, _map)

    async def fetch_groups(self, group_ids: Sequence[str]) -> FetchResult[GroupRecord]:
        return await self._query_in(
            "viewpointGroups", _GROUPS_QUERY, group_ids, lambda obj: GroupRecord(id=obj["id"], title=obj.get("title"))
        )

    async def fetch_supporter_summary(self, viewpoint_group_id: str) -> SupporterSummary | None:
        """Read the group's precomputed summary counts, if published.

        Any failure here is non-fatal: the caller falls back to resolving
        supporters row by row.
        """
        try:
            data = await self._client.execute(_SUMMARY_QUERY, {"id": viewpoint_group_id})
        except SwayAPIError as exc:
            logger.warning("Could not read supporter summary for {}: {}", viewpoint_group_id, exc.message)
            return None

        groups = data.get("viewpointGroups") or []
        summary = groups[0].get("summary") if groups else None
        if not summary or summary.get("verifiedSupporterCount") is None:
            return None
        verified = int(summary["verifiedSupporterCount"])
        total = summary.get("supporterCount")
        return SupporterSummary(verified_count=verified, total_count=int(total) if total is not None else verified)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _query(
        self,
        root: str,
        query: str,
        variables: dict[str, Any],
        mapper: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        """Run one query and map the objects under ``root``."""
        try:
            data = await self._client.execute(query, variables)
        except SwayAPIError as exc:
            raise FetchError(self.name, exc.message, table=root) from exc

        objects = data.get(root)
        if not isinstance(objects, list):
            raise FetchError(self.name, f"response has no {root} list", table=root)
        try:
            return [mapper(obj) for obj in objects]
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(self.name, f"malformed {root} object: {exc!r}", table=root) from exc

    async def _query_in(
        self,
        root: str,
        query: str,
        ids: Sequence[str],
        mapper: Callable[[dict[str, Any]], T],
        extra_variables: dict[str, Any] | None = None,
    ) -> FetchResult[T]:
        """Run a query with an ``$ids`` list variable, chunked to the batch size."""

        async def _chunk(chunk: list[str]) -> list[T]:
            return await self._query(root, query, {"ids": chunk, **(extra_variables or {})}, mapper)

        return await self._batched(ids, _chunk)
