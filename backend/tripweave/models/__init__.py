"""Models package - re-exports for convenience."""

from backend.tripweave.models.common import (
    ActivityType,
    CamelModel,
    SourceType,
    TimeBlock,
    TripStatus,
)
from backend.tripweave.models.confirmation import ConfirmationRecord, DuplicateVerdict
from backend.tripweave.models.inspiration import InspirationItem, LocationBucket
from backend.tripweave.models.itinerary import HISTORY_CAPACITY, Activity, Day, VersionSnapshot
from backend.tripweave.models.results import Invalid, Ok, OracleResult
from backend.tripweave.models.trip import Trip, TripDetails

__all__ = [
    # Common
    "CamelModel",
    "TimeBlock",
    "ActivityType",
    "SourceType",
    "TripStatus",
    # Itinerary
    "Activity",
    "Day",
    "VersionSnapshot",
    "HISTORY_CAPACITY",
    # Trip
    "Trip",
    "TripDetails",
    # Confirmations
    "ConfirmationRecord",
    "DuplicateVerdict",
    # Inspirations
    "InspirationItem",
    "LocationBucket",
    # Oracle results
    "Ok",
    "Invalid",
    "OracleResult",
]
