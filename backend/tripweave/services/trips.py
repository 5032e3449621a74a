"""Trip operations - read-modify-write of trip documents through the engine.

Every write passes the version the trip was loaded at; a concurrent change
surfaces as StaleWriteError for the caller to retry.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from backend.tripweave.config import settings
from backend.tripweave.db.context import RequestContext
from backend.tripweave.db.repositories import ConfirmationLink, ConfirmationStore, TripStore
from backend.tripweave.errors import InvalidRequestError, NotFoundError, UnauthorizedError
from backend.tripweave.llm.client import DateParserOracle
from backend.tripweave.models.common import TripStatus
from backend.tripweave.models.itinerary import Activity, Day
from backend.tripweave.models.trip import Trip, TripDetails
from backend.tripweave.orchestration.arrangement import ArrangementOrchestrator
from backend.tripweave.orchestration.days import (
    build_empty_days,
    resolve_confirmation_day,
    resolve_trip_window,
)
from backend.tripweave.orchestration.formatting import (
    format_confirmation_activity,
    format_inspiration_activity,
)
from backend.tripweave.orchestration.history import list_versions, replace_activities, rollback_day
from backend.tripweave.orchestration.normalizer import normalize_activities, normalize_activity
from backend.tripweave.orchestration.regeneration import RegenerationEngine
from backend.tripweave.services.inspirations import InspirationService
from backend.tripweave.utils.metrics import EngineMetrics, NoopEngineMetrics

logger = logging.getLogger(__name__)


@dataclass
class ArrangeResult:
    """Trip after an arrangement batch plus per-item fallback flags."""

    trip: Trip
    placed: list[tuple[int, str]] = field(default_factory=list)
    fallbacks: int = 0
    skipped: list[str] = field(default_factory=list)


@dataclass
class RegenerateResult:
    """Trip after regenerating one day."""

    trip: Trip
    used_fallback: bool
    reason: str | None = None


def _require_day(trip: Trip, day_number: int) -> Day:
    day = trip.get_day(day_number)
    if day is None:
        raise InvalidRequestError(
            f"Day {day_number} does not exist (trip has {trip.day_count} days)"
        )
    return day


def _find_activity(day: Day, activity_id: str, day_number: int) -> Activity:
    if not activity_id:
        raise InvalidRequestError("Activity id is required")
    activity = day.find_activity(activity_id)
    if activity is None:
        raise NotFoundError(f"Activity {activity_id} not found on day {day_number}")
    return activity


def _check_fixed_preserved(before: list[Activity], after: list[Activity], day_number: int) -> None:
    """Raise if a fixed activity would be removed or altered."""
    after_by_id = {a.id: a for a in after}
    for activity in before:
        if not activity.is_fixed:
            continue
        replacement = after_by_id.get(activity.id)
        if replacement is None:
            raise InvalidRequestError(
                f"Fixed activity {activity.id} cannot be removed from day {day_number}"
            )
        if replacement.model_dump(exclude={"time_block"}) != activity.model_dump(
            exclude={"time_block"}
        ):
            raise InvalidRequestError(f"Fixed activity {activity.id} cannot be modified")


def _with_day(trip: Trip, day_number: int, day: Day) -> Trip:
    return trip.model_copy(update={"days": {**trip.days, day_number: day}})


class TripService:
    """Request-level trip operations composed from stores and engine components."""

    def __init__(
        self,
        trips: TripStore,
        *,
        arranger: ArrangementOrchestrator,
        regenerator: RegenerationEngine,
        confirmations: ConfirmationStore | None = None,
        inspirations: InspirationService | None = None,
        date_oracle: DateParserOracle | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self.trips = trips
        self.arranger = arranger
        self.regenerator = regenerator
        self.confirmations = confirmations
        self.inspirations = inspirations
        self.date_oracle = date_oracle
        self.metrics = metrics or NoopEngineMetrics()

    # Trip documents

    async def create_trip(
        self,
        ctx: RequestContext,
        details: TripDetails,
        *,
        status: TripStatus = TripStatus.draft,
        today: date | None = None,
    ) -> Trip:
        """Create a trip with empty contiguous days for its resolved window."""
        start, end, num_days = resolve_trip_window(details, today or date.today())
        details = details.model_copy(
            update={"start_date": start, "end_date": end, "duration_days": num_days}
        )
        trip = Trip(
            id=uuid.uuid4().hex,
            owner_id=ctx.user_id,
            status=status,
            details=details,
            days=build_empty_days(start, num_days),
        )
        logger.info(f"Creating trip {trip.id} ({num_days} days) for {ctx.user_id}")
        return await self.trips.create(trip)

    async def get_trip(self, ctx: RequestContext, trip_id: str) -> Trip:
        """Load a trip owned by the caller.

        Raises:
            NotFoundError: If the trip does not exist
            UnauthorizedError: If it belongs to someone else
        """
        if not trip_id:
            raise InvalidRequestError("Trip id is required")
        trip = await self.trips.get(trip_id)
        if trip is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        if trip.owner_id != ctx.user_id:
            raise UnauthorizedError(f"Trip {trip_id} belongs to another user")
        return trip

    async def list_trips(self, ctx: RequestContext, *, include_archived: bool = False) -> list[Trip]:
        """The caller's trips, most recently updated first."""
        trips = await self.trips.list_for_owner(ctx.user_id)
        if include_archived:
            return trips
        return [t for t in trips if t.status != TripStatus.archive]

    async def update_trip_status(self, ctx: RequestContext, trip_id: str, status: str) -> Trip:
        """Set a trip's lifecycle status."""
        try:
            new_status = TripStatus(str(status).lower())
        except ValueError as e:
            allowed = ", ".join(s.value for s in TripStatus)
            raise InvalidRequestError(f"Invalid status {status!r}. Must be one of: {allowed}") from e

        trip = await self.get_trip(ctx, trip_id)
        return await self.trips.save(trip.model_copy(update={"status": new_status}), trip.version)

    async def archive_trip(self, ctx: RequestContext, trip_id: str) -> Trip:
        """Move a trip to the archive."""
        return await self.update_trip_status(ctx, trip_id, TripStatus.archive.value)

    # Manual day edits

    async def update_day_activities(
        self,
        ctx: RequestContext,
        trip_id: str,
        day_number: int,
        activities: list[dict[str, Any]],
    ) -> Trip:
        """Replace a day's activities, snapshotting the prior list.

        Fixed activities already on the day must be kept unchanged.
        """
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        try:
            new_activities = normalize_activities(activities)
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid activity payload: {e}") from e

        ids = [a.id for a in new_activities]
        if len(ids) != len(set(ids)):
            raise InvalidRequestError("Activity ids must be unique within a day")
        _check_fixed_preserved(day.activities, new_activities, day_number)

        updated = replace_activities(day, new_activities)
        return await self.trips.save(_with_day(trip, day_number, updated), trip.version)

    async def add_day_activities(
        self,
        ctx: RequestContext,
        trip_id: str,
        day_number: int,
        activities: list[dict[str, Any]],
    ) -> Trip:
        """Append activities to a day."""
        if not activities:
            raise InvalidRequestError("At least one activity is required")
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        try:
            new_activities = normalize_activities(activities)
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid activity payload: {e}") from e

        taken = {a.id for a in day.activities}
        for activity in new_activities:
            if activity.id in taken:
                raise InvalidRequestError(f"Activity id {activity.id} already exists on day {day_number}")
            taken.add(activity.id)

        updated = day.model_copy(update={"activities": [*day.activities, *new_activities]})
        return await self.trips.save(_with_day(trip, day_number, updated), trip.version)

    async def update_activity(
        self,
        ctx: RequestContext,
        trip_id: str,
        day_number: int,
        activity_id: str,
        changes: dict[str, Any],
        *,
        target_day: int | None = None,
    ) -> Trip:
        """Edit one activity, optionally moving it to ``target_day``.

        The id is preserved. Fixed activities may not be renamed or moved.
        """
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        current = _find_activity(day, activity_id, day_number)
        destination = target_day if target_day is not None else day_number
        dest_day = _require_day(trip, destination)

        merged = {
            **current.model_dump(by_alias=True),
            **{k: v for k, v in changes.items() if k != "id"},
            "id": current.id,
        }
        try:
            edited = normalize_activity(merged)
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid activity payload: {e}") from e

        if current.is_fixed:
            if edited.name != current.name:
                raise InvalidRequestError(f"Fixed activity {activity_id} cannot be renamed")
            if destination != day_number:
                raise InvalidRequestError(f"Fixed activity {activity_id} cannot be moved")
            if not edited.is_fixed:
                raise InvalidRequestError(f"Fixed activity {activity_id} cannot be unfixed")

        if destination == day_number:
            activities = [edited if a.id == activity_id else a for a in day.activities]
            return await self.trips.save(
                _with_day(trip, day_number, day.model_copy(update={"activities": activities})),
                trip.version,
            )

        if dest_day.find_activity(activity_id) is not None:
            raise InvalidRequestError(f"Activity {activity_id} already exists on day {destination}")
        source = day.model_copy(
            update={"activities": [a for a in day.activities if a.id != activity_id]}
        )
        target = dest_day.model_copy(update={"activities": [*dest_day.activities, edited]})
        moved = trip.model_copy(update={"days": {**trip.days, day_number: source, destination: target}})
        return await self.trips.save(moved, trip.version)

    async def delete_activity(
        self, ctx: RequestContext, trip_id: str, day_number: int, activity_id: str
    ) -> Trip:
        """Remove a flexible activity from a day."""
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        activity = _find_activity(day, activity_id, day_number)
        if activity.is_fixed:
            raise InvalidRequestError(f"Fixed activity {activity_id} cannot be deleted")

        updated = day.model_copy(
            update={"activities": [a for a in day.activities if a.id != activity_id]}
        )
        return await self.trips.save(_with_day(trip, day_number, updated), trip.version)

    # Engine operations

    async def arrange_inspirations(
        self,
        ctx: RequestContext,
        trip_id: str,
        day_number: int,
        inspiration_ids: list[str],
        *,
        timeout_s: float | None = None,
    ) -> ArrangeResult:
        """Arrange saved inspiration items into one day, then write once."""
        if self.inspirations is None:
            raise InvalidRequestError("Inspirations are not available")
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        located = await self.inspirations.get_inspirations_by_ids(ctx, inspiration_ids)
        if not located:
            raise NotFoundError("None of the requested inspiration items were found")

        result = ArrangeResult(trip=trip)
        activities = day.activities
        for entry in located:
            activity = format_inspiration_activity(entry.item, entry.location)
            working = _with_day(trip, day_number, day.model_copy(update={"activities": activities}))
            outcome = await self.arranger.arrange_inspiration(
                working, day_number, activity, timeout_s=timeout_s
            )
            activities = outcome.activities
            result.fallbacks += int(outcome.used_fallback)
            result.placed.append((day_number, outcome.new_item.id if outcome.new_item else activity.id))

        updated = replace_activities(day, activities)
        result.trip = await self.trips.save(_with_day(trip, day_number, updated), trip.version)
        return result

    async def arrange_confirmations(
        self,
        ctx: RequestContext,
        trip_id: str,
        confirmation_ids: list[str],
        *,
        day_number: int | None = None,
        timeout_s: float | None = None,
    ) -> ArrangeResult:
        """Place confirmed bookings as fixed activities, then link them.

        The day is resolved from each booking's date unless ``day_number`` is
        given; an unresolvable date lands on day 1.
        """
        if self.confirmations is None:
            raise InvalidRequestError("Confirmations are not available")
        if not confirmation_ids:
            raise InvalidRequestError("At least one confirmation id is required")

        trip = await self.get_trip(ctx, trip_id)
        if day_number is not None:
            _require_day(trip, day_number)
        if trip.day_count == 0:
            raise InvalidRequestError(f"Trip {trip_id} has no days")

        already_placed = {
            a.source_id for d in trip.days.values() for a in d.activities if a.source_id
        }
        working = trip
        touched: set[int] = set()
        result = ArrangeResult(trip=trip)
        links: list[ConfirmationLink] = []

        for confirmation_id in confirmation_ids:
            record = await self.confirmations.get(confirmation_id)
            if record is None or record.owner_id != ctx.user_id:
                logger.warning(f"Skipping confirmation {confirmation_id}: missing or not owned")
                result.skipped.append(confirmation_id)
                continue
            if record.id in already_placed:
                logger.info(f"Confirmation {record.id} already on trip {trip_id}, skipping")
                result.skipped.append(confirmation_id)
                continue

            target = day_number
            if target is None:
                target = await resolve_confirmation_day(
                    record.confirmation_data,
                    trip.details.start_date,
                    trip_length=trip.day_count,
                    date_oracle=self.date_oracle,
                    timeout_s=timeout_s,
                    metrics=self.metrics,
                )
                if target is None:
                    logger.info(f"Could not resolve day for confirmation {record.id}, using day 1")
                    target = 1

            activity = format_confirmation_activity(record)
            outcome = await self.arranger.arrange_confirmation(
                working, target, activity, timeout_s=timeout_s
            )
            day = working.days[target]
            if target not in touched:
                day = replace_activities(day, outcome.activities)
                touched.add(target)
            else:
                day = day.model_copy(update={"activities": outcome.activities})
            working = _with_day(working, target, day)

            already_placed.add(record.id)
            result.fallbacks += int(outcome.used_fallback)
            result.placed.append((target, record.id))
            links.append(ConfirmationLink(confirmation_id=record.id, trip_id=trip.id, days=[target]))

        if links:
            result.trip = await self.trips.save(working, trip.version)
            await self.confirmations.link_many(ctx.user_id, links)
        return result

    async def regenerate_day(
        self,
        ctx: RequestContext,
        trip_id: str,
        day_number: int,
        *,
        keep_ids: list[str] | None = None,
        timeout_s: float | None = None,
        seed: int | None = None,
    ) -> RegenerateResult:
        """Regenerate a day's flexible activities, snapshotting the prior list."""
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        outcome = await self.regenerator.regenerate_day(
            trip,
            day_number,
            keep_ids=keep_ids,
            timeout_s=timeout_s,
            seed=settings.fallback_rng_seed if seed is None else seed,
        )
        updated = replace_activities(day, outcome.activities)
        saved = await self.trips.save(_with_day(trip, day_number, updated), trip.version)
        return RegenerateResult(trip=saved, used_fallback=outcome.used_fallback, reason=outcome.reason)

    async def list_day_versions(self, ctx: RequestContext, trip_id: str, day_number: int) -> list[dict]:
        """Available snapshots for a day, version 1 newest."""
        trip = await self.get_trip(ctx, trip_id)
        return list_versions(_require_day(trip, day_number))

    async def rollback_day(
        self, ctx: RequestContext, trip_id: str, day_number: int, version: int
    ) -> Trip:
        """Restore a day to snapshot ``version`` (the current state is snapshotted first)."""
        trip = await self.get_trip(ctx, trip_id)
        day = _require_day(trip, day_number)
        restored = rollback_day(day, version, now=datetime.utcnow())
        logger.info(f"Rolled back trip {trip_id} day {day_number} to version {version}")
        return await self.trips.save(_with_day(trip, day_number, restored), trip.version)
