"""Tests for the arrangement orchestrator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.tripweave.llm.client import DeterministicStubOracle, TripContext
from backend.tripweave.models.common import SourceType, TimeBlock
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.models.results import Invalid, Ok
from backend.tripweave.models.trip import Trip
from backend.tripweave.orchestration.arrangement import ArrangementOrchestrator


def dump(activity: Activity) -> dict:
    return activity.model_dump(mode="json", by_alias=True, exclude_none=True)


@pytest.fixture
def context() -> TripContext:
    """Oracle context for day 1."""
    return TripContext(day_number=1, destination="Siargao")


@pytest.fixture
def pools(activity_factory) -> Activity:
    """Inspiration item to arrange."""
    return activity_factory(
        "act-pools", "Magpupungko Rock Pools", TimeBlock.morning, source_type=SourceType.inspiration
    )


class TestArrange:
    """Test ArrangementOrchestrator.arrange."""

    @pytest.mark.asyncio
    async def test_valid_reorder_used(self, context, sample_trip: Trip, pools: Activity) -> None:
        """A valid oracle ordering is returned as-is."""
        existing = sample_trip.days[1].activities
        oracle = AsyncMock()
        oracle.arrange.return_value = Ok([dump(existing[0]), dump(pools), *map(dump, existing[1:])])

        outcome = await ArrangementOrchestrator(oracle).arrange(context, existing, pools, timeout_s=1)

        assert outcome.used_fallback is False
        assert [a.id for a in outcome.activities] == ["act-flight", "act-pools", "act-surf", "act-dinner"]

    @pytest.mark.asyncio
    async def test_malformed_output_appends(self, context, sample_trip: Trip, pools: Activity, failing_oracle) -> None:
        """Oracle failure appends the new item to the unchanged day."""
        metrics = MagicMock()
        existing = sample_trip.days[1].activities

        outcome = await ArrangementOrchestrator(failing_oracle, metrics=metrics).arrange(
            context, existing, pools, timeout_s=1
        )

        assert outcome.used_fallback is True
        assert outcome.activities == [*existing, pools]
        metrics.inc_fallback.assert_called_once_with("arrange", "invalid_oracle_output")

    @pytest.mark.asyncio
    async def test_fixed_item_modified_falls_back(self, context, sample_trip: Trip, pools: Activity) -> None:
        """Renaming the fixed flight invalidates the whole arrangement."""
        existing = sample_trip.days[1].activities
        tampered = {**dump(existing[0]), "name": "Flight PR 999"}
        oracle = AsyncMock()
        oracle.arrange.return_value = Ok([tampered, *map(dump, existing[1:]), dump(pools)])

        outcome = await ArrangementOrchestrator(oracle).arrange(context, existing, pools, timeout_s=1)

        assert outcome.used_fallback is True
        assert "fixed" in outcome.reason
        assert outcome.activities[0] == existing[0]

    @pytest.mark.asyncio
    async def test_oracle_exception_falls_back(self, context, pools: Activity) -> None:
        """Exceptions raised by the oracle are treated as failure."""
        oracle = AsyncMock()
        oracle.arrange.side_effect = RuntimeError("boom")

        outcome = await ArrangementOrchestrator(oracle).arrange(context, [], pools, timeout_s=1)

        assert outcome.used_fallback is True
        assert [a.id for a in outcome.activities] == ["act-pools"]

    @pytest.mark.asyncio
    async def test_existing_not_mutated(self, context, sample_trip: Trip, pools: Activity) -> None:
        """The caller's list is left untouched."""
        existing = sample_trip.days[1].activities
        before = [a.model_copy(deep=True) for a in existing]

        await ArrangementOrchestrator(DeterministicStubOracle()).arrange(context, existing, pools, timeout_s=1)

        assert existing == before

    @pytest.mark.asyncio
    async def test_colliding_id_replaced(self, context, sample_trip: Trip, activity_factory) -> None:
        """A new item reusing a day id gets a fresh one."""
        clash = activity_factory("act-surf", "Kitesurfing")

        outcome = await ArrangementOrchestrator(DeterministicStubOracle()).arrange(
            context, sample_trip.days[1].activities, clash, timeout_s=1
        )

        ids = [a.id for a in outcome.activities]
        assert len(ids) == len(set(ids)) == 4
        assert outcome.new_item.id != "act-surf"


    @pytest.mark.asyncio
    async def test_non_object_entries_fall_back(self, context, sample_trip: Trip, pools: Activity) -> None:
        """Entries that are not objects send the day to the append fallback."""
        existing = sample_trip.days[1].activities
        oracle = AsyncMock()
        oracle.arrange.return_value = Ok(["not an activity"])

        outcome = await ArrangementOrchestrator(oracle).arrange(context, existing, pools, timeout_s=1)

        assert outcome.used_fallback is True
        assert outcome.activities == [*existing, pools]


class TestArrangeOnTrip:
    """Test trip-level entry points."""

    @pytest.mark.asyncio
    async def test_confirmation_forced_fixed(self, sample_trip: Trip, activity_factory) -> None:
        """Confirmations are arranged as fixed activities."""
        hotel = activity_factory("act-hotel", "Kalinaw Resort", TimeBlock.afternoon)

        outcome = await ArrangementOrchestrator(DeterministicStubOracle()).arrange_confirmation(
            sample_trip, 3, hotel, timeout_s=1
        )

        assert outcome.used_fallback is False
        assert outcome.activities[0].is_fixed is True
        assert outcome.activities[0].source_type == SourceType.confirmation

    @pytest.mark.asyncio
    async def test_inspiration_context(self, sample_trip: Trip, pools: Activity) -> None:
        """The oracle receives the trip's context for the target day."""
        oracle = AsyncMock()
        oracle.arrange.return_value = Invalid("unused")

        await ArrangementOrchestrator(oracle).arrange_inspiration(sample_trip, 2, pools, timeout_s=1)

        context = oracle.arrange.call_args.kwargs["context"]
        assert context.day_number == 2
        assert context.destination == "Siargao"
        assert [a.id for a in oracle.arrange.call_args.kwargs["existing"]] == ["act-lagoon"]
