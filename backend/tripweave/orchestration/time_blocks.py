"""Time-block resolution - maps a time string and activity type to a block.

Total and deterministic: every input yields one of morning/afternoon/evening.
"""

import re

from backend.tripweave.models.common import ActivityType, TimeBlock

_TWELVE_HOUR = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")

# Check-in and lunch bias
_AFTERNOON_DEFAULT_TYPES = frozenset({ActivityType.restaurant, ActivityType.accommodation})


def default_time_block(activity_type: ActivityType | str | None) -> TimeBlock:
    """Block used when no usable time is available."""
    if activity_type is not None:
        try:
            activity_type = ActivityType(activity_type)
        except ValueError:
            return TimeBlock.morning
        if activity_type in _AFTERNOON_DEFAULT_TYPES:
            return TimeBlock.afternoon
    return TimeBlock.morning


def block_for_hour(hour: int) -> TimeBlock:
    """Map a 24-hour clock hour to a block: [6,12) morning, [12,18) afternoon."""
    if 6 <= hour < 12:
        return TimeBlock.morning
    if 12 <= hour < 18:
        return TimeBlock.afternoon
    return TimeBlock.evening


def parse_hour(time_str: str) -> int | None:
    """Extract a 24-hour clock hour from ``H[:MM] am/pm`` or ``HH:MM``."""
    match = _TWELVE_HOUR.search(time_str)
    if match:
        hour = int(match.group(1))
        if hour > 12:
            return None
        is_pm = match.group(3).lower().startswith("p")
        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
        return hour

    match = _TWENTY_FOUR_HOUR.search(time_str)
    if match:
        return int(match.group(1))

    return None


def resolve_time_block(
    time: str | None, activity_type: ActivityType | str | None = None
) -> TimeBlock:
    """Resolve the time block for an activity.

    Args:
        time: Optional free-text time ("2:00 PM", "14:30", "evening")
        activity_type: Optional activity type used for defaults

    Returns:
        The matching TimeBlock. Without a usable time, restaurants and
        accommodation default to afternoon, everything else to morning.
    """
    if not time or not time.strip():
        return default_time_block(activity_type)

    time_str = time.strip().lower()

    if "morning" in time_str:
        return TimeBlock.morning
    if "afternoon" in time_str:
        return TimeBlock.afternoon
    if "evening" in time_str or "night" in time_str:
        return TimeBlock.evening

    hour = parse_hour(time_str)
    if hour is not None:
        return block_for_hour(hour)

    return default_time_block(activity_type)


def coerce_time_block(
    value: object, time: str | None, activity_type: ActivityType | str | None
) -> TimeBlock:
    """Keep a legal block value, otherwise re-resolve from time and type."""
    if isinstance(value, TimeBlock):
        return value
    if isinstance(value, str):
        try:
            return TimeBlock(value.strip().lower())
        except ValueError:
            pass
    return resolve_time_block(time, activity_type)
