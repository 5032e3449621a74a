"""Confirmation models - externally extracted bookings and duplicate verdicts."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from backend.tripweave.models.common import CamelModel

# Identifying fields shown to the duplicate judge, per booking category
BOOKING_KEY_FIELDS: tuple[str, ...] = (
    "bookingId",
    "masterReference",
    "category",
    "customerName",
    "airline",
    "flightNumber",
    "departureAirport",
    "arrivalAirport",
    "departureDate",
    "departureTime",
    "hotelName",
    "checkInDate",
    "checkOutDate",
    "rentalCompany",
    "pickupDate",
    "restaurantName",
    "reservationDate",
    "reservationTime",
    "activityName",
    "title",
    "name",
    "date",
    "location",
)


class ConfirmationRecord(CamelModel):
    """A booking extracted from email, PDF or image.

    ``confirmation_data`` holds the category-specific structured payload.
    """

    id: str
    owner_id: str
    trip_id: str | None = None
    days: list[int] | None = None
    confirmation_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def category(self) -> str:
        """Lower-cased booking category."""
        return str(self.confirmation_data.get("category") or "").lower()

    def key_fields(self) -> dict[str, Any]:
        """Identifying fields of the booking payload (non-empty only)."""
        return booking_key_fields(self.confirmation_data)


def booking_key_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Project a booking payload onto its identifying fields."""
    return {
        key: payload[key]
        for key in BOOKING_KEY_FIELDS
        if payload.get(key) not in (None, "")
    }


class DuplicateVerdict(CamelModel):
    """Outcome of the duplicate confirmation filter."""

    is_duplicate: bool
    duplicate_ids: list[str] = Field(default_factory=list)
    source: Literal["oracle", "fail_open", "no_candidates"] = "oracle"
    reason: str | None = None
