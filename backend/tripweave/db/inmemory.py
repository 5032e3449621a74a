"""In-memory implementations of document store interfaces."""

import logging
from datetime import datetime

from backend.tripweave.db.repositories import ConfirmationLink
from backend.tripweave.errors import NotFoundError, StaleWriteError
from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.models.inspiration import LocationBucket
from backend.tripweave.models.trip import Trip

logger = logging.getLogger(__name__)


class InMemoryTripStore:
    """In-memory implementation of TripStore."""

    def __init__(self) -> None:
        self._trips: dict[str, Trip] = {}

    async def get(self, trip_id: str) -> Trip | None:
        """Get a trip by ID (returns a copy)."""
        trip = self._trips.get(trip_id)
        return trip.model_copy(deep=True) if trip else None

    async def list_for_owner(self, owner_id: str) -> list[Trip]:
        """List an owner's trips, most recently updated first."""
        trips = [t for t in self._trips.values() if t.owner_id == owner_id]
        trips.sort(key=lambda t: t.updated_at, reverse=True)
        return [t.model_copy(deep=True) for t in trips]

    async def create(self, trip: Trip) -> Trip:
        """Insert a new trip document."""
        if trip.id in self._trips:
            raise StaleWriteError(trip.id, 0, self._trips[trip.id].version)
        stored = trip.model_copy(update={"version": 1}, deep=True)
        self._trips[trip.id] = stored
        return stored.model_copy(deep=True)

    async def save(self, trip: Trip, base_version: int) -> Trip:
        """Write a trip if the stored version still equals ``base_version``."""
        current = self._trips.get(trip.id)
        if current is None:
            raise NotFoundError(f"Trip {trip.id} not found")
        if current.version != base_version:
            raise StaleWriteError(trip.id, base_version, current.version)

        stored = trip.model_copy(
            update={"version": base_version + 1, "updated_at": datetime.utcnow()}, deep=True
        )
        self._trips[trip.id] = stored
        return stored.model_copy(deep=True)


class InMemoryConfirmationStore:
    """In-memory implementation of ConfirmationStore."""

    def __init__(self) -> None:
        self._records: dict[str, ConfirmationRecord] = {}

    async def get(self, confirmation_id: str) -> ConfirmationRecord | None:
        """Get a confirmation by ID."""
        record = self._records.get(confirmation_id)
        return record.model_copy(deep=True) if record else None

    async def list_for_owner(self, owner_id: str) -> list[ConfirmationRecord]:
        """List an owner's confirmations, newest first."""
        records = [r for r in self._records.values() if r.owner_id == owner_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return [r.model_copy(deep=True) for r in records]

    async def create_many(self, records: list[ConfirmationRecord]) -> list[ConfirmationRecord]:
        """Insert new confirmations."""
        for record in records:
            self._records[record.id] = record.model_copy(deep=True)
        return [r.model_copy(deep=True) for r in records]

    async def link_many(self, owner_id: str, links: list[ConfirmationLink]) -> list[str]:
        """Apply every valid link, then commit them together."""
        now = datetime.utcnow()
        staged: dict[str, ConfirmationRecord] = {}
        for link in links:
            record = self._records.get(link.confirmation_id)
            if record is None or record.owner_id != owner_id:
                logger.warning(
                    f"Skipping link for confirmation {link.confirmation_id}: missing or not owned"
                )
                continue
            staged[record.id] = record.model_copy(
                update={"trip_id": link.trip_id, "days": link.days, "updated_at": now}, deep=True
            )

        self._records.update(staged)
        return list(staged)


class InMemoryInspirationStore:
    """In-memory implementation of InspirationStore."""

    def __init__(self) -> None:
        self._buckets: dict[str, LocationBucket] = {}

    async def list_buckets(self, owner_id: str) -> list[LocationBucket]:
        """List an owner's buckets in creation order."""
        buckets = [b for b in self._buckets.values() if b.owner_id == owner_id]
        buckets.sort(key=lambda b: b.created_at)
        return [b.model_copy(deep=True) for b in buckets]

    async def save_bucket(self, bucket: LocationBucket, base_version: int | None) -> LocationBucket:
        """Insert or overwrite a bucket with a version check."""
        current = self._buckets.get(bucket.id)
        actual = current.version if current else None
        if actual != base_version:
            raise StaleWriteError(bucket.id, base_version or 0, actual or 0)

        stored = bucket.model_copy(
            update={"version": (base_version or 0) + 1, "updated_at": datetime.utcnow()},
            deep=True,
        )
        self._buckets[bucket.id] = stored
        return stored.model_copy(deep=True)
