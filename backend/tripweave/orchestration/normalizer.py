"""Activity normalizer - completes bare activity records.

Accepts camelCase (oracle/document wire format) or snake_case keys and never
mutates its input.
"""

import secrets
from typing import Any

from backend.tripweave.models.common import ActivityType, SourceType
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.orchestration.time_blocks import coerce_time_block

# snake_case -> camelCase for keys callers may send either way
_KEY_ALIASES = {
    "time_block": "timeBlock",
    "source_type": "sourceType",
    "source_id": "sourceId",
    "is_fixed": "isFixed",
}


def generate_activity_id() -> str:
    """Random 32-hex-char activity id."""
    return secrets.token_hex(16)


def _canonical_keys(raw: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        data[_KEY_ALIASES.get(key, key)] = value
    return data


def normalize_activity(raw: dict[str, Any] | Activity) -> Activity:
    """Validate and complete a single activity.

    Args:
        raw: Activity-shaped mapping (may be missing id, timeBlock, sourceType)

    Returns:
        A complete Activity: id assigned if missing, timeBlock resolved if
        missing or illegal, sourceType defaulted to ai, isFixed defaulted to
        ``sourceType == confirmation``, unknown type coerced to other.
    """
    if isinstance(raw, Activity):
        return raw.model_copy(deep=True)

    data = _canonical_keys(raw)

    if not data.get("id") or not str(data["id"]).strip():
        data["id"] = generate_activity_id()
    else:
        data["id"] = str(data["id"])

    try:
        data["type"] = ActivityType(data.get("type", ActivityType.other))
    except ValueError:
        data["type"] = ActivityType.other

    try:
        data["sourceType"] = SourceType(data.get("sourceType", SourceType.ai))
    except ValueError:
        data["sourceType"] = SourceType.ai

    if "isFixed" not in data or not isinstance(data["isFixed"], bool):
        data["isFixed"] = data["sourceType"] == SourceType.confirmation

    time_value = data.get("time")
    if time_value is not None and not isinstance(time_value, str):
        time_value = str(time_value)
        data["time"] = time_value

    data["timeBlock"] = coerce_time_block(data.get("timeBlock"), time_value, data["type"])

    data.setdefault("name", "")
    for field in ("name", "description", "location"):
        if field in data and not isinstance(data[field], str):
            data[field] = str(data[field])

    return Activity.model_validate(data)


def normalize_activities(raw_items: list[dict[str, Any] | Activity]) -> list[Activity]:
    """Normalize a list of activities, preserving order."""
    return [normalize_activity(item) for item in raw_items]


def ensure_time_blocks(activities: list[Activity]) -> list[Activity]:
    """Re-run time-block resolution for any activity with an illegal block.

    Returns copies; the input list is left untouched.
    """
    fixed: list[Activity] = []
    for activity in activities:
        block = coerce_time_block(activity.time_block, activity.time, activity.type)
        fixed.append(activity.model_copy(update={"time_block": block}, deep=True))
    return fixed
