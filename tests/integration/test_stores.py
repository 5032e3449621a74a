"""Integration tests for in-memory and SQL document stores."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.tripweave.db.inmemory import (
    InMemoryConfirmationStore,
    InMemoryInspirationStore,
    InMemoryTripStore,
)
from backend.tripweave.db.repositories import ConfirmationLink
from backend.tripweave.db.sql_repositories import (
    SqlConfirmationStore,
    SqlInspirationStore,
    SqlTripStore,
)
from backend.tripweave.errors import NotFoundError, StaleWriteError
from backend.tripweave.models.common import TripStatus
from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.models.inspiration import InspirationItem, LocationBucket
from backend.tripweave.models.trip import Trip


@pytest.fixture(params=["memory", "sql"])
def store_kind(request: pytest.FixtureRequest) -> str:
    """Run each store test against both backends."""
    return request.param


@pytest_asyncio.fixture
async def stores(store_kind: str, sqlite_engine: AsyncEngine) -> AsyncGenerator[tuple, None]:
    """(trips, confirmations, inspirations) for the backend under test."""
    if store_kind == "memory":
        yield InMemoryTripStore(), InMemoryConfirmationStore(), InMemoryInspirationStore()
        return

    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield SqlTripStore(session), SqlConfirmationStore(session), SqlInspirationStore(session)


class TestTripStore:
    """Test TripStore implementations."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, stores, sample_trip: Trip) -> None:
        """Created trips start at version 1 and round-trip intact."""
        trips, _, _ = stores

        created = await trips.create(sample_trip)
        loaded = await trips.get("trip-1")

        assert created.version == 1
        assert loaded is not None
        assert loaded.version == 1
        assert loaded.days == sample_trip.days
        assert loaded.details == sample_trip.details

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, stores, sample_trip: Trip) -> None:
        """Each successful write increments the version."""
        trips, _, _ = stores
        created = await trips.create(sample_trip)

        saved = await trips.save(created.model_copy(update={"status": TripStatus.planning}), created.version)

        assert saved.version == 2
        loaded = await trips.get("trip-1")
        assert loaded.status == TripStatus.planning
        assert loaded.version == 2

    @pytest.mark.asyncio
    async def test_concurrent_writer_detected(self, stores, sample_trip: Trip) -> None:
        """A write based on an outdated version is rejected, not applied."""
        trips, _, _ = stores
        await trips.create(sample_trip)

        first = await trips.get("trip-1")
        second = await trips.get("trip-1")
        await trips.save(first.model_copy(update={"status": TripStatus.active}), first.version)

        with pytest.raises(StaleWriteError) as exc_info:
            await trips.save(second.model_copy(update={"status": TripStatus.completed}), second.version)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert (await trips.get("trip-1")).status == TripStatus.active

    @pytest.mark.asyncio
    async def test_save_missing_trip(self, stores, sample_trip: Trip) -> None:
        """Saving an unknown trip is a not-found error."""
        trips, _, _ = stores
        with pytest.raises(NotFoundError):
            await trips.save(sample_trip, 1)

    @pytest.mark.asyncio
    async def test_list_for_owner(self, stores, sample_trip: Trip) -> None:
        """Only the owner's trips are listed."""
        trips, _, _ = stores
        await trips.create(sample_trip)
        await trips.create(sample_trip.model_copy(update={"id": "trip-2", "owner_id": "user-2"}))

        assert [t.id for t in await trips.list_for_owner("user-1")] == ["trip-1"]
        assert await trips.get("missing") is None


class TestConfirmationStore:
    """Test ConfirmationStore implementations."""

    @pytest.mark.asyncio
    async def test_link_many_skips_foreign_and_missing(self, stores) -> None:
        """Links apply only to the owner's existing records."""
        _, confirmations, _ = stores
        await confirmations.create_many(
            [
                ConfirmationRecord(id="c1", owner_id="user-1", confirmation_data={"category": "hotel"}),
                ConfirmationRecord(id="c2", owner_id="user-2", confirmation_data={"category": "flight"}),
            ]
        )

        linked = await confirmations.link_many(
            "user-1",
            [
                ConfirmationLink("c1", "trip-1", [2]),
                ConfirmationLink("c2", "trip-1"),
                ConfirmationLink("missing", "trip-1"),
            ],
        )

        assert linked == ["c1"]
        c1 = await confirmations.get("c1")
        assert c1.trip_id == "trip-1"
        assert c1.days == [2]
        assert (await confirmations.get("c2")).trip_id is None

    @pytest.mark.asyncio
    async def test_list_for_owner(self, stores) -> None:
        """Owner-scoped listing."""
        _, confirmations, _ = stores
        await confirmations.create_many(
            [ConfirmationRecord(id="c1", owner_id="user-1", confirmation_data={"category": "hotel"})]
        )
        assert [r.id for r in await confirmations.list_for_owner("user-1")] == ["c1"]
        assert await confirmations.list_for_owner("user-2") == []


class TestInspirationStore:
    """Test InspirationStore implementations."""

    @pytest.mark.asyncio
    async def test_insert_then_update(self, stores) -> None:
        """Buckets are inserted with None and updated with their version."""
        _, _, inspirations = stores
        bucket = LocationBucket(id="b1", owner_id="user-1", location="Siargao")

        created = await inspirations.save_bucket(bucket, None)
        item = InspirationItem(id="i1", title="Rock Pools")
        updated = await inspirations.save_bucket(created.model_copy(update={"items": [item]}), created.version)

        assert (created.version, updated.version) == (1, 2)
        [loaded] = await inspirations.list_buckets("user-1")
        assert [i.title for i in loaded.items] == ["Rock Pools"]

    @pytest.mark.asyncio
    async def test_stale_bucket_write(self, stores) -> None:
        """Updating with an outdated version is rejected."""
        _, _, inspirations = stores
        created = await inspirations.save_bucket(
            LocationBucket(id="b1", owner_id="user-1", location="Siargao"), None
        )
        await inspirations.save_bucket(created, created.version)

        with pytest.raises(StaleWriteError):
            await inspirations.save_bucket(created, created.version)
