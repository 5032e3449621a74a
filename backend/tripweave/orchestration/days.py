"""Day resolution - calendar dates to trip-relative day numbers.

Also resolves a trip's date window and extracts dates and times from
confirmation payloads.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any

from backend.tripweave.config import settings
from backend.tripweave.llm.client import DateParserOracle
from backend.tripweave.llm.consult import consult
from backend.tripweave.models.itinerary import Day
from backend.tripweave.models.results import Ok
from backend.tripweave.models.trip import TripDetails
from backend.tripweave.utils.metrics import EngineMetrics

logger = logging.getLogger(__name__)

CONFIRMATION_TIME_FIELDS: tuple[str, ...] = (
    "time",
    "departureTime",
    "arrivalTime",
    "checkInTime",
    "checkOutTime",
    "reservationTime",
    "bookingTime",
)

CONFIRMATION_DATE_FIELDS: tuple[str, ...] = (
    "date",
    "departureDate",
    "arrivalDate",
    "checkInDate",
    "checkOutDate",
    "reservationDate",
    "bookingDate",
    "dateTime",
)


def resolve_day(
    item_date: date,
    trip_start: date,
    *,
    max_day: int | None = None,
    trip_length: int | None = None,
) -> int | None:
    """Map a calendar date to a 1-based trip day number.

    Args:
        item_date: Date of the booking
        trip_start: First day of the trip
        max_day: Sanity bound (defaults to settings.max_resolvable_day)
        trip_length: Number of days in the trip, tightens the bound when known

    Returns:
        Day number, or None when the date falls before the trip or past the bound
    """
    bound = max_day if max_day is not None else settings.max_resolvable_day
    if trip_length is not None and trip_length > 0:
        bound = min(bound, trip_length)

    day = (item_date - trip_start).days + 1
    if day < 1 or day > bound:
        return None
    return day


def parse_iso_date(value: Any) -> date | None:
    """Parse a date or ISO-8601 date/datetime string. Returns None when unparsable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def extract_confirmation_time(payload: dict[str, Any]) -> str | None:
    """First present time field of a booking, else the time part of ``dateTime``."""
    for field in CONFIRMATION_TIME_FIELDS:
        value = payload.get(field)
        if value:
            return str(value)

    raw = payload.get("dateTime")
    if isinstance(raw, str) and raw.strip():
        try:
            dt = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        hour = dt.hour % 12 or 12
        suffix = "AM" if dt.hour < 12 else "PM"
        return f"{hour}:{dt.minute:02d} {suffix}"

    return None


async def extract_confirmation_date(
    payload: dict[str, Any],
    date_oracle: DateParserOracle | None = None,
    *,
    timeout_s: float | None = None,
    metrics: EngineMetrics | None = None,
) -> date | None:
    """Extract the best-guess calendar date of a booking.

    ISO values are parsed directly. The first non-ISO string is handed to the
    date-normalization oracle; an oracle failure yields None.
    """
    ambiguous: str | None = None
    for field in CONFIRMATION_DATE_FIELDS:
        value = payload.get(field)
        if not value:
            continue
        parsed = parse_iso_date(value)
        if parsed is not None:
            return parsed
        if ambiguous is None and isinstance(value, str):
            ambiguous = value

    if ambiguous is None or date_oracle is None:
        return None

    result = await consult(
        date_oracle.parse_date(ambiguous),
        oracle="date",
        operation="parse_date",
        timeout_s=timeout_s if timeout_s is not None else settings.oracle_timeout_s,
        metrics=metrics,
    )
    if isinstance(result, Ok) and result.value:
        return parse_iso_date(result.value)
    return None


async def resolve_confirmation_day(
    payload: dict[str, Any],
    trip_start: date | None,
    *,
    trip_length: int | None = None,
    date_oracle: DateParserOracle | None = None,
    timeout_s: float | None = None,
    metrics: EngineMetrics | None = None,
) -> int | None:
    """Resolve the trip day of a booking, or None when unknown."""
    if trip_start is None:
        return None
    item_date = await extract_confirmation_date(
        payload, date_oracle, timeout_s=timeout_s, metrics=metrics
    )
    if item_date is None:
        return None
    return resolve_day(item_date, trip_start, trip_length=trip_length)


def resolve_trip_window(details: TripDetails, today: date) -> tuple[date, date, int]:
    """Resolve (start, end, number of days) for a trip.

    Args:
        details: Trip parameters (dates and/or duration)
        today: Reference date for undated trips

    Returns:
        Start date, end date and day count (always >= 1)
    """
    lead = timedelta(days=settings.undated_trip_lead_days)

    if details.start_date and details.end_date:
        start = details.start_date
        num_days = max(1, (details.end_date - start).days + 1)
    elif details.start_date and details.duration_days:
        start = details.start_date
        num_days = details.duration_days
    elif details.duration_days:
        start = today + lead
        num_days = details.duration_days
    elif details.start_date:
        start = details.start_date
        num_days = settings.default_trip_days
    else:
        start = today + lead
        num_days = settings.default_trip_days

    end = start + timedelta(days=num_days - 1)
    return start, end, num_days


def build_empty_days(start: date, num_days: int) -> dict[int, Day]:
    """Contiguous days 1..N with dates and no activities."""
    return {
        number: Day(date=start + timedelta(days=number - 1))
        for number in range(1, num_days + 1)
    }
