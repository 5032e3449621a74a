"""Trip models - the document the engine reads, modifies and writes back."""

from datetime import date, datetime

from pydantic import Field, field_validator

from backend.tripweave.models.common import CamelModel, TripStatus
from backend.tripweave.models.itinerary import Activity, Day


class TripDetails(CamelModel):
    """User-facing trip parameters used as oracle context."""

    name: str = ""
    destination: str = ""
    description: str = ""
    vibe: str = "mixed"
    budget: str = "mid"
    travelers: int = Field(default=1, ge=1)
    start_date: date | None = None
    end_date: date | None = None
    duration_days: int | None = Field(default=None, ge=1)


class Trip(CamelModel):
    """Trip document.

    ``days`` maps day numbers 1..N to days; numbering is contiguous.
    ``version`` is the optimistic-concurrency counter bumped on every write.
    """

    id: str
    owner_id: str
    status: TripStatus = TripStatus.draft
    details: TripDetails = Field(default_factory=TripDetails)
    days: dict[int, Day] = Field(default_factory=dict)
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("days")
    @classmethod
    def validate_contiguous_days(cls, v: dict[int, Day]) -> dict[int, Day]:
        """Ensure day numbers run 1..N without gaps."""
        expected = list(range(1, len(v) + 1))
        if sorted(v) != expected:
            raise ValueError(f"day numbers must be contiguous from 1, got {sorted(v)}")
        return dict(sorted(v.items()))

    @property
    def day_count(self) -> int:
        """Number of days in the trip."""
        return len(self.days)

    def get_day(self, day_number: int) -> Day | None:
        """Return a day by number."""
        return self.days.get(day_number)

    def activity_names_excluding(self, day_number: int) -> set[str]:
        """Case-folded, trimmed activity names on every day except ``day_number``."""
        names: set[str] = set()
        for number, day in self.days.items():
            if number == day_number:
                continue
            for activity in day.activities:
                name = normalize_activity_name(activity)
                if name:
                    names.add(name)
        return names

    def all_activity_names(self) -> set[str]:
        """Case-folded, trimmed activity names across the whole trip."""
        return {
            normalize_activity_name(a)
            for day in self.days.values()
            for a in day.activities
            if normalize_activity_name(a)
        }


def normalize_activity_name(activity: Activity) -> str:
    """Case-fold and trim an activity name for duplicate checks."""
    return activity.name.strip().casefold()
