"""Pydantic v2 output contracts for the four influence metrics.

Field names are snake_case in Python and serialize with camelCase aliases,
which is the shape dashboard consumers read.  These contracts are the same
whichever backend produced them.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MetricModel(BaseModel):
    """Base for metric results: camelCase on the wire, immutable once built."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SwayScoreResult(MetricModel):
    """Verified-supporter count of a viewpoint group."""

    count: int = Field(default=0, description="Supporters who are fully verified voters")
    total_supporters: int = Field(default=0, description="Supporter relations before verification")


class ElectoralInfluenceByJurisdiction(MetricModel):
    jurisdiction_id: str
    jurisdiction_name: str | None = None
    supporter_count: int
    state: str | None = None


class ElectoralInfluenceByRace(MetricModel):
    """A race inheriting the verified-voter count of its ballot item's jurisdiction."""

    race_id: str
    race_name: str | None = None
    jurisdiction_id: str
    jurisdiction_name: str | None = None
    election_id: str
    election_name: str | None = None
    poll_date: date | None = None
    supporter_count: int


class UpcomingElectionRace(MetricModel):
    race_id: str
    supporter_count: int


class UpcomingElection(MetricModel):
    election_id: str
    election_name: str | None = None
    poll_date: date | None = None
    total_supporters: int
    races: list[UpcomingElectionRace] = Field(default_factory=list)


class ElectoralInfluenceResult(MetricModel):
    by_jurisdiction: list[ElectoralInfluenceByJurisdiction] = Field(default_factory=list)
    by_race: list[ElectoralInfluenceByRace] = Field(default_factory=list)
    upcoming_elections: list[UpcomingElection] = Field(default_factory=list)


class GrowthOverTimeDataPoint(MetricModel):
    date: str = Field(description="Calendar day (UTC) as YYYY-MM-DD")
    cumulative_count: int
    period_change: int | None = Field(default=None, description="Voters added on this day")


class GrowthOverTimeResult(MetricModel):
    data_points: list[GrowthOverTimeDataPoint] = Field(default_factory=list)
    total_growth: int = 0
    growth_rate: float | None = Field(default=None, description="Percent change since the first day")


class NetworkLeader(MetricModel):
    """A supporter of the queried group who leads another group."""

    profile_id: str
    display_name: str | None = None
    viewpoint_group_id: str
    viewpoint_group_title: str | None = None
    downstream_verified_voters: int = 0
    supporter_count: int | None = None


class NetworkReachResult(MetricModel):
    network_leaders: list[NetworkLeader] = Field(default_factory=list)
    total_downstream_reach: int = 0


class DashboardResponse(MetricModel):
    """All four metrics for one viewpoint group."""

    sway_score: SwayScoreResult
    electoral_influence: ElectoralInfluenceResult
    growth_over_time: GrowthOverTimeResult
    network_reach: NetworkReachResult


class ViewpointGroupSummary(MetricModel):
    id: str
    title: str
