"""Formatting of confirmations and inspiration items into activities."""

from typing import Any

from backend.tripweave.models.common import ActivityType, SourceType
from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.models.inspiration import InspirationItem
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.orchestration.days import extract_confirmation_time
from backend.tripweave.orchestration.normalizer import generate_activity_id
from backend.tripweave.orchestration.time_blocks import resolve_time_block


def map_confirmation_category(category: str | None) -> ActivityType:
    """Activity type for a booking category."""
    value = (category or "").lower()
    if "flight" in value or "transport" in value:
        return ActivityType.transport
    if "hotel" in value or "accommodation" in value:
        return ActivityType.accommodation
    if "restaurant" in value or "dining" in value:
        return ActivityType.restaurant
    if "activity" in value or "tour" in value:
        return ActivityType.activity
    return ActivityType.other


def map_category_to_activity_type(category: str | None) -> ActivityType:
    """Activity type for an inspiration category."""
    value = (category or "").lower()
    if "restaurant" in value or "cafe" in value or "food" in value:
        return ActivityType.restaurant
    if "lodging" in value or "accommodation" in value:
        return ActivityType.accommodation
    if "sightseeing" in value or "travel" in value or "attraction" in value:
        return ActivityType.attraction
    if "transport" in value or "logistics" in value:
        return ActivityType.transport
    return ActivityType.activity


def _confirmation_name(data: dict[str, Any]) -> str:
    if data.get("flightNumber"):
        return f"Flight {data['flightNumber']}"
    for field in ("hotelName", "restaurantName", "title", "name"):
        if data.get(field):
            return str(data[field])
    return "Travel Confirmation"


def _confirmation_description(data: dict[str, Any], name: str) -> str:
    if data.get("description"):
        return str(data["description"])
    if data.get("flightNumber"):
        route = ""
        if data.get("departureLocation") and data.get("arrivalLocation"):
            route = f" from {data['departureLocation']} to {data['arrivalLocation']}"
        return f"Flight {data['flightNumber']}{route}"
    if data.get("hotelName"):
        where = f", {data['location']}" if data.get("location") else ""
        return f"Check-in at {data['hotelName']}{where}"
    return name


def format_confirmation_activity(record: ConfirmationRecord) -> Activity:
    """Build the fixed activity representing a confirmed booking."""
    data = record.confirmation_data
    activity_type = map_confirmation_category(data.get("category"))
    time = extract_confirmation_time(data)
    name = _confirmation_name(data)

    location = ""
    for field in ("location", "address", "departureLocation", "arrivalLocation"):
        if data.get(field):
            location = str(data[field])
            break

    return Activity(
        id=generate_activity_id(),
        name=name,
        time_block=resolve_time_block(time, activity_type),
        time=time,
        description=_confirmation_description(data, name),
        type=activity_type,
        location=location,
        source_type=SourceType.confirmation,
        source_id=record.id,
        is_fixed=True,
    )


def format_inspiration_activity(item: InspirationItem, location: str | None = None) -> Activity:
    """Build a flexible activity from a saved inspiration item.

    Args:
        item: The inspiration item (read-only)
        location: Bucket location the item was saved under
    """
    activity_type = map_category_to_activity_type(item.category)
    return Activity(
        id=generate_activity_id(),
        name=item.title or "Untitled Activity",
        time_block=resolve_time_block(item.time, activity_type),
        time=item.time,
        description=item.description,
        type=activity_type,
        location=location if location is not None else item.source_location,
        source_type=SourceType.inspiration,
        source_id=item.id,
        is_fixed=False,
    )
