"""Post-validation of recommendation oracle output.

Oracle output is untrusted. These checks either produce a day that honors
fixed-item immutability and id stability, or an ``Invalid`` that sends the
caller to its deterministic fallback.
"""

import logging
from typing import Any

from pydantic import ValidationError

from backend.tripweave.models.common import SourceType
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.models.results import Invalid, Ok, OracleResult
from backend.tripweave.orchestration.normalizer import generate_activity_id, normalize_activity
from backend.tripweave.orchestration.time_blocks import coerce_time_block

logger = logging.getLogger(__name__)


def _name_key(value: Any) -> str:
    return str(value or "").strip().casefold()


def _entry_id(entry: dict[str, Any]) -> str | None:
    value = entry.get("id")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _shape_error(raw: Any) -> str | None:
    """Reason the payload is not a list of objects, or None."""
    if not isinstance(raw, list):
        return f"expected a list of activities, got {type(raw).__name__}"
    if not all(isinstance(entry, dict) for entry in raw):
        return "non-object entry in oracle output"
    return None


def _fixed_unchanged(entry: dict[str, Any], original: Activity) -> bool:
    """True when the oracle returned a fixed activity exactly as given."""
    try:
        candidate = normalize_activity({**entry, "id": original.id})
    except ValidationError:
        return False
    return candidate.model_dump() == original.model_dump()


def validate_arrangement(
    existing: list[Activity],
    new_item: Activity,
    raw: list[dict[str, Any]],
) -> OracleResult[list[Activity]]:
    """Validate an arranged day returned by the oracle.

    Checks that every existing id and the new item are present exactly once,
    that no activity was invented, and that fixed activities are unchanged.
    The new item may come back without an id; it is then matched by name.

    Flexible activities keep their stored content; only their position and
    time block are taken from the oracle.

    Args:
        existing: Day's activities before arrangement
        new_item: Activity being added (id already assigned)
        raw: Parsed oracle payload

    Returns:
        Ok with the validated day, or Invalid naming the first violation
    """
    shape_error = _shape_error(raw)
    if shape_error:
        return Invalid(shape_error)

    originals: dict[str, Activity] = {a.id: a for a in existing}
    if new_item.id in originals:
        return Invalid(f"new item id {new_item.id} collides with an existing activity")
    originals[new_item.id] = new_item
    new_name = _name_key(new_item.name)

    seen: set[str] = set()
    ordered: list[tuple[str, dict[str, Any]]] = []

    for entry in raw:
        activity_id = _entry_id(entry)
        if activity_id is None:
            if _name_key(entry.get("name")) == new_name and new_item.id not in seen:
                activity_id = new_item.id
            else:
                return Invalid(f"activity without id: {entry.get('name')!r}")

        if activity_id not in originals:
            return Invalid(f"unknown activity id {activity_id}")
        if activity_id in seen:
            return Invalid(f"duplicate activity id {activity_id}")

        seen.add(activity_id)
        ordered.append((activity_id, entry))

    missing = [activity_id for activity_id in originals if activity_id not in seen]
    if missing:
        return Invalid(f"missing activity ids {missing}")

    result: list[Activity] = []
    for activity_id, entry in ordered:
        original = originals[activity_id]
        if original.is_fixed:
            if not _fixed_unchanged(entry, original):
                return Invalid(f"fixed activity {activity_id} was modified")
            result.append(original.model_copy(deep=True))
            continue

        block = coerce_time_block(entry.get("timeBlock"), original.time, original.type)
        result.append(original.model_copy(update={"time_block": block}, deep=True))

    return Ok(result)


def validate_regeneration(
    keep: list[Activity],
    replace: list[Activity],
    excluded_names: set[str],
    raw: list[dict[str, Any]],
) -> OracleResult[list[Activity]]:
    """Validate a regenerated day returned by the oracle.

    Kept activities are restored verbatim wherever the oracle placed them and
    force-appended when missing. Generated activities are dropped when their
    name is empty, excluded, or repeated; the survivors are always flexible.
    A generated activity keeps an id only when it re-uses a replaced
    activity's id under the same name; otherwise it gets a fresh id.

    Args:
        keep: Activities that must survive unchanged
        replace: Flexible activities being replaced
        excluded_names: Case-folded names already used elsewhere in the trip
        raw: Parsed oracle payload

    Returns:
        Ok with the regenerated day, or Invalid when the oracle produced no
        usable new activity while flexible activities were being replaced
    """
    shape_error = _shape_error(raw)
    if shape_error:
        return Invalid(shape_error)

    kept_by_id = {a.id: a for a in keep}
    replaced_by_id = {a.id: a for a in replace}
    blocked = set(excluded_names) | {_name_key(a.name) for a in keep}

    used_ids: set[str] = set()
    used_names: set[str] = set()
    result: list[Activity] = []
    generated = 0
    dropped = 0

    for entry in raw:
        activity_id = _entry_id(entry)

        if activity_id in kept_by_id:
            if activity_id not in used_ids:
                result.append(kept_by_id[activity_id].model_copy(deep=True))
                used_ids.add(activity_id)
            continue

        name = _name_key(entry.get("name"))
        if not name or name in blocked or name in used_names:
            dropped += 1
            continue

        try:
            activity = normalize_activity({**entry, "id": None})
        except ValidationError as e:
            logger.debug(f"Dropping unparsable regenerated activity: {e}")
            dropped += 1
            continue

        prior = replaced_by_id.get(activity_id) if activity_id else None
        if prior is not None and _name_key(prior.name) == name and activity_id not in used_ids:
            update = {
                "id": prior.id,
                "source_type": prior.source_type,
                "source_id": prior.source_id,
                "is_fixed": False,
            }
        else:
            update = {
                "id": generate_activity_id(),
                "source_type": SourceType.ai,
                "source_id": None,
                "is_fixed": False,
            }
        activity = activity.model_copy(update=update)

        used_ids.add(activity.id)
        used_names.add(name)
        result.append(activity)
        generated += 1

    for kept in keep:
        if kept.id not in used_ids:
            logger.info(f"Kept activity {kept.id} missing from oracle output, appending")
            result.append(kept.model_copy(deep=True))
            used_ids.add(kept.id)

    if dropped:
        logger.info(f"Dropped {dropped} regenerated activities (excluded, repeated or malformed)")

    if replace and generated == 0:
        return Invalid("no usable new activities in oracle output")

    return Ok(result)
