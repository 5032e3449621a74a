"""Itinerary models - activities, days and their version history."""

import datetime

from pydantic import Field, model_validator

from backend.tripweave.models.common import ActivityType, CamelModel, SourceType, TimeBlock

# Snapshots retained per day (ring buffer, newest first)
HISTORY_CAPACITY = 2


class Activity(CamelModel):
    """Single activity in a day.

    ``id`` is assigned once and never reused. Confirmed bookings are always fixed.
    """

    id: str = Field(..., min_length=1)
    name: str
    time_block: TimeBlock
    time: str | None = None
    description: str = ""
    type: ActivityType = ActivityType.other
    location: str = ""
    source_type: SourceType = SourceType.ai
    source_id: str | None = None
    is_fixed: bool = False

    @model_validator(mode="after")
    def confirmations_are_fixed(self) -> "Activity":
        """Force ``is_fixed`` for activities sourced from a confirmation."""
        if self.source_type == SourceType.confirmation and not self.is_fixed:
            self.is_fixed = True
        return self


class VersionSnapshot(CamelModel):
    """Value copy of a day's activity list at a point in time."""

    activities: list[Activity]
    created_at: datetime.datetime


class Day(CamelModel):
    """Itinerary for a single day."""

    date: datetime.date | None = None
    summary: str = ""
    activities: list[Activity] = Field(default_factory=list)
    history: list[VersionSnapshot] = Field(default_factory=list, max_length=HISTORY_CAPACITY)

    def find_activity(self, activity_id: str) -> Activity | None:
        """Return the activity with ``activity_id`` if present."""
        for activity in self.activities:
            if activity.id == activity_id:
                return activity
        return None
