"""Tests for document models."""

from datetime import date

import pytest
from pydantic import ValidationError

from backend.tripweave.models.common import SourceType, TimeBlock
from backend.tripweave.models.itinerary import Activity, Day
from backend.tripweave.models.trip import Trip


class TestActivity:
    """Test Activity."""

    def test_confirmation_forced_fixed(self) -> None:
        """Confirmation-sourced activities are always fixed."""
        activity = Activity(
            id="a1", name="Flight", time_block=TimeBlock.morning, source_type=SourceType.confirmation
        )
        assert activity.is_fixed is True

    def test_camel_case_round_trip(self) -> None:
        """Documents serialize with camelCase keys and accept them back."""
        activity = Activity(id="a1", name="Surf", time_block=TimeBlock.afternoon, source_id="insp-1")
        payload = activity.model_dump(mode="json", by_alias=True)
        assert payload["timeBlock"] == "afternoon"
        assert payload["sourceId"] == "insp-1"
        assert Activity.model_validate(payload) == activity

    def test_empty_id_rejected(self) -> None:
        """Ids are never blank."""
        with pytest.raises(ValidationError):
            Activity(id="", name="x", time_block=TimeBlock.morning)


class TestTrip:
    """Test Trip."""

    def test_days_must_be_contiguous(self) -> None:
        """Day numbering starts at 1 without gaps."""
        with pytest.raises(ValidationError):
            Trip(id="t", owner_id="u", days={1: Day(), 3: Day()})

    def test_days_sorted(self) -> None:
        """Days are stored in order."""
        trip = Trip(id="t", owner_id="u", days={2: Day(), 1: Day()})
        assert list(trip.days) == [1, 2]

    def test_excluded_names(self, sample_trip: Trip) -> None:
        """Names from every other day, case-folded and trimmed."""
        assert sample_trip.activity_names_excluding(2) == {"flight pr 123", "surf lesson", "seafood dinner"}
        assert sample_trip.activity_names_excluding(1) == {"sugba lagoon"}

    def test_history_capacity_enforced(self, activity_factory) -> None:
        """Loaded documents may not carry more than two snapshots."""
        snapshot = {"activities": [], "createdAt": "2025-03-01T00:00:00"}
        with pytest.raises(ValidationError):
            Day.model_validate({"activities": [], "history": [snapshot, snapshot, snapshot]})


class TestDay:
    """Test Day."""

    def test_date_optional(self) -> None:
        """Days may be undated or carry an ISO date."""
        assert Day().date is None
        day = Day.model_validate({"date": "2025-03-10", "activities": []})
        assert day.date == date(2025, 3, 10)
        assert day.model_dump(mode="json", by_alias=True)["date"] == "2025-03-10"
