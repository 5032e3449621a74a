"""Version history manager - bounded per-day snapshots and rollback.

History is newest first and never longer than HISTORY_CAPACITY. Snapshots
are deep copies, so later edits to the live day cannot reach them.
"""

from datetime import datetime

from backend.tripweave.errors import InvalidRequestError, VersionNotFoundError
from backend.tripweave.models.itinerary import HISTORY_CAPACITY, Day, VersionSnapshot


def take_snapshot(day: Day, *, now: datetime | None = None) -> Day:
    """Return a copy of ``day`` with its current activities prepended to history."""
    snapshot = VersionSnapshot(
        activities=[a.model_copy(deep=True) for a in day.activities],
        created_at=now or datetime.utcnow(),
    )
    history = [snapshot, *(s.model_copy(deep=True) for s in day.history)]
    return day.model_copy(update={"history": history[:HISTORY_CAPACITY]}, deep=True)


def replace_activities(day: Day, activities: list, *, now: datetime | None = None) -> Day:
    """Snapshot the current state, then overwrite the day's activities."""
    snapshotted = take_snapshot(day, now=now)
    return snapshotted.model_copy(
        update={"activities": [a.model_copy(deep=True) for a in activities]}
    )


def rollback_day(day: Day, version: int, *, now: datetime | None = None) -> Day:
    """Restore the day to a historical snapshot.

    The current state is snapshotted first, so a rollback can itself be
    rolled back with ``version=1``.

    Args:
        day: Day to roll back (not mutated)
        version: 1 for the newest snapshot, 2 for the one before
        now: Timestamp for the new snapshot

    Returns:
        New Day with restored activities

    Raises:
        InvalidRequestError: If version is not a positive integer
        VersionNotFoundError: If the day has fewer than ``version`` snapshots
    """
    if version < 1:
        raise InvalidRequestError(f"Version must be a positive integer, got {version}")
    if version > len(day.history):
        raise VersionNotFoundError(
            f"Version {version} not found: day has {len(day.history)} snapshot(s)"
        )

    target = day.history[version - 1]
    return replace_activities(day, target.activities, now=now)


def list_versions(day: Day) -> list[dict]:
    """Summaries of available snapshots, version 1 first."""
    return [
        {
            "version": index + 1,
            "created_at": snapshot.created_at,
            "activity_count": len(snapshot.activities),
        }
        for index, snapshot in enumerate(day.history)
    ]
