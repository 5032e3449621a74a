"""Document store protocol interfaces.

Stores hold whole documents. Every write names the version it was based on;
a mismatch raises StaleWriteError instead of silently overwriting.
"""

from dataclasses import dataclass
from typing import Protocol

from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.models.inspiration import LocationBucket
from backend.tripweave.models.trip import Trip


@dataclass(frozen=True)
class ConfirmationLink:
    """One confirmation-to-trip assignment in a batch link."""

    confirmation_id: str
    trip_id: str
    days: list[int] | None = None


class TripStore(Protocol):
    """Store for trip documents."""

    async def get(self, trip_id: str) -> Trip | None:
        """Get a trip by ID regardless of owner.

        Args:
            trip_id: Trip ID

        Returns:
            Trip or None if not found
        """
        ...

    async def list_for_owner(self, owner_id: str) -> list[Trip]:
        """List an owner's trips, most recently updated first."""
        ...

    async def create(self, trip: Trip) -> Trip:
        """Insert a new trip document.

        Returns:
            Stored trip (version 1)
        """
        ...

    async def save(self, trip: Trip, base_version: int) -> Trip:
        """Write a whole trip document.

        Args:
            trip: New document value
            base_version: Version the caller read before modifying

        Returns:
            Stored trip with version bumped

        Raises:
            NotFoundError: If the trip does not exist
            StaleWriteError: If the stored version differs from base_version
        """
        ...


class ConfirmationStore(Protocol):
    """Store for confirmation records."""

    async def get(self, confirmation_id: str) -> ConfirmationRecord | None:
        """Get a confirmation by ID regardless of owner."""
        ...

    async def list_for_owner(self, owner_id: str) -> list[ConfirmationRecord]:
        """List an owner's confirmations, newest first."""
        ...

    async def create_many(self, records: list[ConfirmationRecord]) -> list[ConfirmationRecord]:
        """Insert new confirmations."""
        ...

    async def link_many(self, owner_id: str, links: list[ConfirmationLink]) -> list[str]:
        """Assign confirmations to trips/days in one atomic batch.

        Links naming a missing confirmation, or one owned by someone else,
        are skipped.

        Returns:
            IDs of the confirmations that were linked
        """
        ...


class InspirationStore(Protocol):
    """Store for location buckets of inspiration items."""

    async def list_buckets(self, owner_id: str) -> list[LocationBucket]:
        """List an owner's buckets."""
        ...

    async def save_bucket(self, bucket: LocationBucket, base_version: int | None) -> LocationBucket:
        """Insert (``base_version`` None) or overwrite a bucket.

        Raises:
            StaleWriteError: If the stored version differs from base_version
        """
        ...
