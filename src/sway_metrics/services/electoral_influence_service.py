"""Electoral influence service — verified supporters by jurisdiction, race, and upcoming election.

Attribution runs verified voter -> jurisdiction registration -> jurisdiction
-> ballot item -> race (-> office term -> office, and -> election).  A voter
registered in several jurisdictions counts once in each of them, and every
race inherits the full count of its ballot item's jurisdiction.

Only the first two hops are load-bearing: if supporters or their
registrations cannot be read, the whole result is empty.  Later hops
degrade their own branch (missing names become null, missing races drop
out) without discarding what was already computed.
"""

import asyncio
from datetime import UTC, date, datetime

from loguru import logger

from sway_metrics.lib.batching import FetchResult, build_index, group_rows, unique_ids
from sway_metrics.lib.data_source import (
    BallotItemRecord,
    BaseDataSource,
    ElectionRecord,
    JurisdictionRecord,
    OfficeRecord,
    OfficeTermRecord,
    RaceRecord,
)
from sway_metrics.schemas.metrics import (
    ElectoralInfluenceByJurisdiction,
    ElectoralInfluenceByRace,
    ElectoralInfluenceResult,
    UpcomingElection,
    UpcomingElectionRace,
)
from sway_metrics.services.supporter_service import resolve_supporters


def _warn_partial(step: str, viewpoint_group_id: str, result: FetchResult) -> None:
    if not result.ok:
        logger.warning(
            "Electoral influence for {}: {} incomplete ({} rows kept): {}",
            viewpoint_group_id,
            step,
            len(result.rows),
            result.error,
        )


async def compute_electoral_influence(
    source: BaseDataSource,
    viewpoint_group_id: str,
    *,
    today: date | None = None,
) -> ElectoralInfluenceResult:
    """Break a group's verified supporters down by jurisdiction and race.

    Args:
        source: Backend to read from.
        viewpoint_group_id: Group to analyze.
        today: Reference day for "upcoming" elections (defaults to the
            current UTC date).

    Returns:
        ElectoralInfluenceResult with jurisdictions and races sorted by
        supporter count (descending) and upcoming elections by poll date.
    """
    resolution = await resolve_supporters(source, viewpoint_group_id)
    if not resolution.ok:
        logger.error("Electoral influence for {} unavailable: {}", viewpoint_group_id, resolution.error)
        return ElectoralInfluenceResult()
    if not resolution.verifications:
        return ElectoralInfluenceResult()

    registrations = await source.fetch_registrations(resolution.verifications)
    if not registrations.ok:
        logger.error(
            "Electoral influence for {}: jurisdiction registrations unavailable: {}",
            viewpoint_group_id,
            registrations.error,
        )
        return ElectoralInfluenceResult()

    counts: dict[str, int] = {}
    for registration in registrations.rows:
        counts[registration.jurisdiction_id] = counts.get(registration.jurisdiction_id, 0) + 1
    if not counts:
        return ElectoralInfluenceResult()

    jurisdiction_ids = list(counts)
    async with asyncio.TaskGroup() as group:
        jurisdictions_task = group.create_task(source.fetch_jurisdictions(jurisdiction_ids))
        ballot_items_task = group.create_task(source.fetch_ballot_items(jurisdiction_ids))
    jurisdictions_result = jurisdictions_task.result()
    ballot_items_result = ballot_items_task.result()
    _warn_partial("jurisdictions", viewpoint_group_id, jurisdictions_result)
    _warn_partial("ballot items", viewpoint_group_id, ballot_items_result)

    jurisdictions = build_index(jurisdictions_result.rows, lambda j: j.id)
    by_jurisdiction = build_jurisdiction_breakdown(counts, jurisdictions)

    by_race = await _build_race_breakdown(
        source,
        viewpoint_group_id,
        counts,
        jurisdictions,
        ballot_items_result.rows,
    )
    upcoming = build_upcoming_elections(by_race, today or datetime.now(UTC).date())

    return ElectoralInfluenceResult(
        by_jurisdiction=by_jurisdiction,
        by_race=by_race,
        upcoming_elections=upcoming,
    )


def build_jurisdiction_breakdown(
    counts: dict[str, int],
    jurisdictions: dict[str, JurisdictionRecord],
) -> list[ElectoralInfluenceByJurisdiction]:
    """Turn registration counts into entries sorted by count, ties in discovery order."""
    entries = []
    for jurisdiction_id, count in counts.items():
        jurisdiction = jurisdictions.get(jurisdiction_id)
        entries.append(
            ElectoralInfluenceByJurisdiction(
                jurisdiction_id=jurisdiction_id,
                jurisdiction_name=jurisdiction.name if jurisdiction else None,
                supporter_count=count,
                state=jurisdiction.state if jurisdiction else None,
            )
        )
    return sorted(entries, key=lambda e: e.supporter_count, reverse=True)


async def _build_race_breakdown(
    source: BaseDataSource,
    viewpoint_group_id: str,
    counts: dict[str, int],
    jurisdictions: dict[str, JurisdictionRecord],
    ballot_item_rows: list[BallotItemRecord],
) -> list[ElectoralInfluenceByRace]:
    if not ballot_item_rows:
        return []
    ballot_items = build_index(ballot_item_rows, lambda b: b.id)

    races_result = await source.fetch_races(list(ballot_items))
    _warn_partial("races", viewpoint_group_id, races_result)
    if not races_result.rows:
        return []

    election_ids = unique_ids(b.election_id for b in ballot_items.values())
    async with asyncio.TaskGroup() as group:
        office_names_task = group.create_task(_resolve_office_names(source, viewpoint_group_id, races_result.rows))
        elections_task = group.create_task(source.fetch_elections(election_ids))
    office_names = office_names_task.result()
    elections_result = elections_task.result()
    _warn_partial("elections", viewpoint_group_id, elections_result)

    return build_race_breakdown(
        races_result.rows,
        ballot_items,
        counts,
        jurisdictions,
        office_names,
        build_index(elections_result.rows, lambda e: e.id),
    )


async def _resolve_office_names(
    source: BaseDataSource,
    viewpoint_group_id: str,
    races: list[RaceRecord],
) -> dict[str, str | None]:
    """Map office term id -> office name through the office terms and offices tables."""
    terms_result = await source.fetch_office_terms(unique_ids(r.office_term_id for r in races))
    _warn_partial("office terms", viewpoint_group_id, terms_result)
    terms: dict[str, OfficeTermRecord] = build_index(terms_result.rows, lambda t: t.id)
    if not terms:
        return {}

    offices_result = await source.fetch_offices(unique_ids(t.office_id for t in terms.values()))
    _warn_partial("offices", viewpoint_group_id, offices_result)
    offices: dict[str, OfficeRecord] = build_index(offices_result.rows, lambda o: o.id)

    names: dict[str, str | None] = {}
    for term_id, term in terms.items():
        office = offices.get(term.office_id) if term.office_id else None
        names[term_id] = office.name if office else None
    return names


def build_race_breakdown(
    races: list[RaceRecord],
    ballot_items: dict[str, BallotItemRecord],
    counts: dict[str, int],
    jurisdictions: dict[str, JurisdictionRecord],
    office_names: dict[str, str | None],
    elections: dict[str, ElectionRecord],
) -> list[ElectoralInfluenceByRace]:
    """One entry per distinct race, sorted by inherited supporter count."""
    entries = []
    for race in build_index(races, lambda r: r.id).values():
        ballot_item = ballot_items.get(race.ballot_item_id)
        if ballot_item is None:
            continue
        jurisdiction = jurisdictions.get(ballot_item.jurisdiction_id)
        election = elections.get(ballot_item.election_id)
        entries.append(
            ElectoralInfluenceByRace(
                race_id=race.id,
                race_name=office_names.get(race.office_term_id) if race.office_term_id else None,
                jurisdiction_id=ballot_item.jurisdiction_id,
                jurisdiction_name=jurisdiction.name if jurisdiction else None,
                election_id=ballot_item.election_id,
                election_name=election.name if election else None,
                poll_date=election.poll_date if election else None,
                supporter_count=counts.get(ballot_item.jurisdiction_id, 0),
            )
        )
    return sorted(entries, key=lambda e: e.supporter_count, reverse=True)


def build_upcoming_elections(by_race: list[ElectoralInfluenceByRace], today: date) -> list[UpcomingElection]:
    """Group races of elections polling on or after ``today``.

    Races without a known poll date never count as upcoming.  Each
    election's total is the sum of its distinct races' supporter counts.
    """
    grouped = group_rows(
        (race for race in by_race if race.poll_date is not None and race.poll_date >= today),
        lambda race: race.election_id,
    )

    elections = []
    for election_id, races in grouped.items():
        distinct = build_index(races, lambda r: r.race_id)
        elections.append(
            UpcomingElection(
                election_id=election_id,
                election_name=races[0].election_name,
                poll_date=races[0].poll_date,
                total_supporters=sum(r.supporter_count for r in distinct.values()),
                races=[
                    UpcomingElectionRace(race_id=r.race_id, supporter_count=r.supporter_count)
                    for r in distinct.values()
                ],
            )
        )
    return sorted(elections, key=lambda e: e.poll_date or date.max)
