"""SQL implementations of document store interfaces.

Writes use ``UPDATE ... WHERE version = :base`` so a concurrent writer's
change is detected rather than overwritten.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.tripweave.db.models import ConfirmationDocument, InspirationBucketDocument, TripDocument
from backend.tripweave.db.repositories import ConfirmationLink
from backend.tripweave.errors import NotFoundError, StaleWriteError
from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.models.inspiration import LocationBucket
from backend.tripweave.models.trip import Trip

logger = logging.getLogger(__name__)


def _trip_from_row(row: TripDocument) -> Trip:
    return Trip.model_validate({**row.body, "version": row.version})


def _trip_body(trip: Trip) -> dict:
    return trip.model_dump(mode="json", by_alias=True, exclude={"version"})


class SqlTripStore:
    """SQL implementation of TripStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, trip_id: str) -> Trip | None:
        """Get a trip by ID."""
        row = await self._session.get(TripDocument, trip_id, populate_existing=True)
        return _trip_from_row(row) if row else None

    async def list_for_owner(self, owner_id: str) -> list[Trip]:
        """List an owner's trips, most recently updated first."""
        result = await self._session.execute(
            select(TripDocument)
            .where(TripDocument.owner_id == owner_id)
            .order_by(TripDocument.updated_at.desc())
        )
        return [_trip_from_row(row) for row in result.scalars().all()]

    async def create(self, trip: Trip) -> Trip:
        """Insert a new trip document."""
        stored = trip.model_copy(update={"version": 1})
        self._session.add(
            TripDocument(
                trip_id=stored.id,
                owner_id=stored.owner_id,
                status=stored.status.value,
                body=_trip_body(stored),
                version=1,
                created_at=stored.created_at,
                updated_at=stored.updated_at,
            )
        )
        await self._session.commit()
        return stored

    async def save(self, trip: Trip, base_version: int) -> Trip:
        """Write a trip if the stored version still equals ``base_version``."""
        stored = trip.model_copy(
            update={"version": base_version + 1, "updated_at": datetime.utcnow()}
        )
        result = await self._session.execute(
            update(TripDocument)
            .where(TripDocument.trip_id == trip.id, TripDocument.version == base_version)
            .values(
                status=stored.status.value,
                body=_trip_body(stored),
                version=stored.version,
                updated_at=stored.updated_at,
            )
        )
        if result.rowcount != 1:
            await self._session.rollback()
            actual = await self._session.scalar(
                select(TripDocument.version).where(TripDocument.trip_id == trip.id)
            )
            if actual is None:
                raise NotFoundError(f"Trip {trip.id} not found")
            raise StaleWriteError(trip.id, base_version, actual)

        await self._session.commit()
        return stored


class SqlConfirmationStore:
    """SQL implementation of ConfirmationStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, confirmation_id: str) -> ConfirmationRecord | None:
        """Get a confirmation by ID."""
        row = await self._session.get(ConfirmationDocument, confirmation_id, populate_existing=True)
        return ConfirmationRecord.model_validate(row.body) if row else None

    async def list_for_owner(self, owner_id: str) -> list[ConfirmationRecord]:
        """List an owner's confirmations, newest first."""
        result = await self._session.execute(
            select(ConfirmationDocument)
            .where(ConfirmationDocument.owner_id == owner_id)
            .order_by(ConfirmationDocument.created_at.desc())
        )
        return [ConfirmationRecord.model_validate(row.body) for row in result.scalars().all()]

    async def create_many(self, records: list[ConfirmationRecord]) -> list[ConfirmationRecord]:
        """Insert new confirmations in one commit."""
        for record in records:
            self._session.add(
                ConfirmationDocument(
                    confirmation_id=record.id,
                    owner_id=record.owner_id,
                    trip_id=record.trip_id,
                    body=record.model_dump(mode="json", by_alias=True),
                    created_at=record.created_at,
                )
            )
        await self._session.commit()
        return records

    async def link_many(self, owner_id: str, links: list[ConfirmationLink]) -> list[str]:
        """Apply every valid link in a single transaction."""
        now = datetime.utcnow()
        linked: list[str] = []
        for link in links:
            row = await self._session.get(ConfirmationDocument, link.confirmation_id)
            if row is None or row.owner_id != owner_id:
                logger.warning(
                    f"Skipping link for confirmation {link.confirmation_id}: missing or not owned"
                )
                continue
            record = ConfirmationRecord.model_validate(row.body).model_copy(
                update={"trip_id": link.trip_id, "days": link.days, "updated_at": now}
            )
            row.trip_id = link.trip_id
            row.body = record.model_dump(mode="json", by_alias=True)
            linked.append(record.id)

        await self._session.commit()
        return linked


class SqlInspirationStore:
    """SQL implementation of InspirationStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_buckets(self, owner_id: str) -> list[LocationBucket]:
        """List an owner's buckets in creation order."""
        result = await self._session.execute(
            select(InspirationBucketDocument)
            .where(InspirationBucketDocument.owner_id == owner_id)
            .order_by(InspirationBucketDocument.created_at)
        )
        return [
            LocationBucket.model_validate({**row.body, "version": row.version})
            for row in result.scalars().all()
        ]

    async def save_bucket(self, bucket: LocationBucket, base_version: int | None) -> LocationBucket:
        """Insert or overwrite a bucket with a version check."""
        stored = bucket.model_copy(
            update={"version": (base_version or 0) + 1, "updated_at": datetime.utcnow()}
        )
        body = stored.model_dump(mode="json", by_alias=True, exclude={"version"})

        if base_version is None:
            self._session.add(
                InspirationBucketDocument(
                    bucket_id=stored.id,
                    owner_id=stored.owner_id,
                    location=stored.location,
                    body=body,
                    version=stored.version,
                    created_at=stored.created_at,
                )
            )
            await self._session.commit()
            return stored

        result = await self._session.execute(
            update(InspirationBucketDocument)
            .where(
                InspirationBucketDocument.bucket_id == bucket.id,
                InspirationBucketDocument.version == base_version,
            )
            .values(location=stored.location, body=body, version=stored.version)
        )
        if result.rowcount != 1:
            await self._session.rollback()
            actual = await self._session.scalar(
                select(InspirationBucketDocument.version).where(
                    InspirationBucketDocument.bucket_id == bucket.id
                )
            )
            raise StaleWriteError(bucket.id, base_version, actual or 0)

        await self._session.commit()
        return stored
