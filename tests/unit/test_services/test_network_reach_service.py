"""Tests for network_reach_service — downstream verified voters through network leaders."""

import asyncio

import pytest

from sway_metrics.lib.batching import FetchError, FetchResult
from sway_metrics.services.network_reach_service import compute_network_reach, distinct_leader_pairs


def _group_with_voters(source, title: str, verified: int, unverified: int = 0) -> str:
    group = source.add_group(title)
    for _ in range(verified):
        source.add_supporter(group)
    for _ in range(unverified):
        source.add_supporter(group, verified=False)
    return group


class TestComputeNetworkReach:
    """Tests for compute_network_reach."""

    @pytest.mark.asyncio
    async def test_leader_of_two_groups_reports_both(self, memory_source) -> None:
        target = memory_source.add_group("Target")
        leader = memory_source.add_supporter(target, display_name="Pat")
        h = _group_with_voters(memory_source, "H", 10)
        k = _group_with_voters(memory_source, "K", 5)
        memory_source.add_membership(leader, h, "leader")
        memory_source.add_membership(leader, k, "leader")

        result = await compute_network_reach(memory_source, target)

        entries = [(n.profile_id, n.viewpoint_group_id, n.downstream_verified_voters) for n in result.network_leaders]
        assert entries == [(leader, h, 10), (leader, k, 5)]
        assert result.total_downstream_reach == 15
        assert result.network_leaders[0].display_name == "Pat"
        assert result.network_leaders[0].viewpoint_group_title == "H"

    @pytest.mark.asyncio
    async def test_shared_downstream_group_is_counted_per_leader(self, memory_source) -> None:
        target = memory_source.add_group("Target")
        first = memory_source.add_supporter(target)
        second = memory_source.add_supporter(target)
        shared = _group_with_voters(memory_source, "Shared", 4)
        memory_source.add_membership(first, shared, "leader")
        memory_source.add_membership(second, shared, "administrator")

        result = await compute_network_reach(memory_source, target)

        assert len(result.network_leaders) == 2
        assert result.total_downstream_reach == 8
        assert result.total_downstream_reach == sum(n.downstream_verified_voters for n in result.network_leaders)

    @pytest.mark.asyncio
    async def test_supporter_count_is_raw_and_reach_is_verified(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        downstream = _group_with_voters(memory_source, "D", verified=2, unverified=3)
        memory_source.add_membership(leader, downstream, "leader")

        result = await compute_network_reach(memory_source, target)

        entry = result.network_leaders[0]
        assert entry.downstream_verified_voters == 2
        assert entry.supporter_count == 5

    @pytest.mark.asyncio
    async def test_leadership_of_target_group_is_not_a_self_loop(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        memory_source.add_membership(leader, target, "leader")

        result = await compute_network_reach(memory_source, target)

        assert result.network_leaders == []
        assert result.total_downstream_reach == 0

    @pytest.mark.asyncio
    async def test_bookmarkers_and_supporters_elsewhere_are_not_leaders(self, memory_source) -> None:
        target = memory_source.add_group()
        profile = memory_source.add_supporter(target)
        other = _group_with_voters(memory_source, "Other", 3)
        memory_source.add_membership(profile, other, "bookmarker")
        memory_source.add_membership(profile, other, "supporter")

        result = await compute_network_reach(memory_source, target)

        assert result.network_leaders == []

    @pytest.mark.asyncio
    async def test_duplicate_leader_relations_yield_one_entry(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        other = _group_with_voters(memory_source, "Other", 1)
        memory_source.add_membership(leader, other, "leader")
        memory_source.add_membership(leader, other, "administrator")

        result = await compute_network_reach(memory_source, target)

        assert len(result.network_leaders) == 1
        assert result.total_downstream_reach == 1

    @pytest.mark.asyncio
    async def test_recursion_stops_at_one_level(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        middle = _group_with_voters(memory_source, "Middle", 1)
        memory_source.add_membership(leader, middle, "leader")
        middle_supporter = next(r.profile_id for r in memory_source.relations if r.viewpoint_group_id == middle)
        far = _group_with_voters(memory_source, "Far", 50)
        memory_source.add_membership(middle_supporter, far, "leader")

        result = await compute_network_reach(memory_source, target)

        assert [n.viewpoint_group_id for n in result.network_leaders] == [middle]
        assert result.total_downstream_reach == 1

    @pytest.mark.asyncio
    async def test_no_leaders_is_empty(self, memory_source) -> None:
        target = _group_with_voters(memory_source, "Target", 3)

        result = await compute_network_reach(memory_source, target)

        assert result.model_dump(by_alias=True) == {"networkLeaders": [], "totalDownstreamReach": 0}
        assert memory_source.calls["fetch_groups"] == 0

    @pytest.mark.asyncio
    async def test_empty_group_skips_leader_lookup(self, memory_source) -> None:
        result = await compute_network_reach(memory_source, memory_source.add_group())
        assert result.network_leaders == []
        assert memory_source.calls["fetch_leader_relations"] == 0

    @pytest.mark.asyncio
    async def test_leader_lookup_failure_is_empty(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        memory_source.add_membership(leader, _group_with_voters(memory_source, "Other", 2), "leader")
        memory_source.fail["fetch_leader_relations"] = FetchError("memory", "down")

        result = await compute_network_reach(memory_source, target)

        assert result.network_leaders == []

    @pytest.mark.asyncio
    async def test_downstream_failure_degrades_entry(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        other = _group_with_voters(memory_source, "Other", 2)
        memory_source.add_membership(leader, other, "leader")
        # Downstream resolution reads verifications; the target's own pipeline is not run here
        memory_source.fail["fetch_verified_verifications"] = FetchError("memory", "down")

        result = await compute_network_reach(memory_source, target)

        entry = result.network_leaders[0]
        assert entry.viewpoint_group_id == other
        assert entry.downstream_verified_voters == 0
        assert entry.supporter_count is None
        assert result.total_downstream_reach == 0

    @pytest.mark.asyncio
    async def test_name_lookup_failure_keeps_counts(self, memory_source) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        other = _group_with_voters(memory_source, "Other", 2)
        memory_source.add_membership(leader, other, "leader")
        memory_source.fail["fetch_groups"] = FetchError("memory", "down")

        result = await compute_network_reach(memory_source, target)

        entry = result.network_leaders[0]
        assert entry.viewpoint_group_title is None
        assert entry.downstream_verified_voters == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [1, 2, 8])
    async def test_sorted_by_reach_regardless_of_concurrency(self, memory_source, concurrency: int) -> None:
        target = memory_source.add_group()
        leader = memory_source.add_supporter(target)
        sizes = [1, 7, 3, 5]
        for i, size in enumerate(sizes):
            memory_source.add_membership(leader, _group_with_voters(memory_source, f"G{i}", size), "leader")

        result = await compute_network_reach(memory_source, target, concurrency=concurrency)

        assert [n.downstream_verified_voters for n in result.network_leaders] == [7, 5, 3, 1]
        assert result.total_downstream_reach == 16

    @pytest.mark.asyncio
    async def test_unexpected_downstream_error_cancels_other_resolutions(self, make_memory_source) -> None:
        class OneBrokenGroup(make_memory_source):
            target: str | None = None
            broken_group: str | None = None
            in_flight = 0

            async def fetch_supporter_relations(self, viewpoint_group_id: str) -> FetchResult:
                if viewpoint_group_id == self.broken_group:
                    await asyncio.sleep(0.01)
                    msg = "driver bug"
                    raise RuntimeError(msg)
                if viewpoint_group_id == self.target:
                    return await super().fetch_supporter_relations(viewpoint_group_id)
                self.in_flight += 1
                try:
                    await asyncio.sleep(1.0)
                    return await super().fetch_supporter_relations(viewpoint_group_id)
                finally:
                    self.in_flight -= 1

        source = OneBrokenGroup()
        source.target = source.add_group("Target")
        leader = source.add_supporter(source.target)
        groups = [_group_with_voters(source, f"G{i}", 1) for i in range(4)]
        for group in groups:
            source.add_membership(leader, group, "leader")
        source.broken_group = groups[0]

        with pytest.raises(ExceptionGroup):
            await compute_network_reach(source, source.target, concurrency=4)

        assert source.in_flight == 0


class TestDistinctLeaderPairs:
    def test_keeps_first_relation_per_pair(self, memory_source) -> None:
        memory_source.add_membership("p1", "g1", "leader")
        memory_source.add_membership("p1", "g1", "administrator")
        memory_source.add_membership("p1", "g2", "leader")
        memory_source.add_membership("p2", "g1", "leader")

        pairs = distinct_leader_pairs(memory_source.relations)

        assert [(p.profile_id, p.viewpoint_group_id, p.type) for p in pairs] == [
            ("p1", "g1", "leader"),
            ("p1", "g2", "leader"),
            ("p2", "g1", "leader"),
        ]
