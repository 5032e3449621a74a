"""Structural booking comparison used to judge duplicate confirmations.

Conservative by construction: a pair is a duplicate only when the booking
reference matches, or when a name field and a date field both match and no
identifying field shared by both bookings disagrees.
"""

import re
from typing import Any

NAME_FIELDS: tuple[str, ...] = (
    "flightNumber",
    "hotelName",
    "restaurantName",
    "rentalCompany",
    "activityName",
    "title",
    "name",
)

DATE_FIELDS: tuple[str, ...] = (
    "departureDate",
    "checkInDate",
    "pickupDate",
    "reservationDate",
    "date",
)

# Fields that must not disagree when both bookings carry them
CONFLICT_FIELDS: tuple[str, ...] = NAME_FIELDS + DATE_FIELDS + (
    "checkOutDate",
    "arrivalDate",
    "departureTime",
    "reservationTime",
    "departureAirport",
    "arrivalAirport",
)

_WHITESPACE = re.compile(r"\s+")


def _canon(value: Any) -> str:
    """Canonical comparison form: case-folded, all whitespace removed."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).casefold()


def _category(payload: dict[str, Any]) -> str:
    return _canon(payload.get("category")).rstrip("s")


def _shared_equal(a: dict[str, Any], b: dict[str, Any], fields: tuple[str, ...]) -> bool:
    for field in fields:
        left, right = _canon(a.get(field)), _canon(b.get(field))
        if left and right and left == right:
            return True
    return False


def _has_conflict(a: dict[str, Any], b: dict[str, Any]) -> bool:
    for field in CONFLICT_FIELDS:
        left, right = _canon(a.get(field)), _canon(b.get(field))
        if left and right and left != right:
            return True
    return False


def bookings_match(candidate: dict[str, Any], existing: dict[str, Any]) -> bool:
    """Decide whether two booking payloads describe the same booking."""
    cat_a, cat_b = _category(candidate), _category(existing)
    if cat_a and cat_b and cat_a != cat_b:
        return False

    ref_a, ref_b = _canon(candidate.get("bookingId")), _canon(existing.get("bookingId"))
    if ref_a and ref_b:
        return ref_a == ref_b and not _has_conflict(candidate, existing)

    if not _shared_equal(candidate, existing, NAME_FIELDS):
        return False
    if not _shared_equal(candidate, existing, DATE_FIELDS):
        return False
    return not _has_conflict(candidate, existing)


def structural_duplicate_ids(
    candidate: dict[str, Any], existing: list[dict[str, Any]]
) -> list[str]:
    """Return ids of existing bookings that structurally match the candidate.

    Args:
        candidate: Booking payload of the new confirmation
        existing: Summaries carrying ``id`` plus the booking fields

    Returns:
        Matching ids in input order
    """
    return [
        str(entry["id"])
        for entry in existing
        if entry.get("id") and bookings_match(candidate, entry)
    ]
