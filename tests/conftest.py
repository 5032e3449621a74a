"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.tripweave.db.context import RequestContext
from backend.tripweave.db.models import Base
from backend.tripweave.models.common import ActivityType, SourceType, TimeBlock
from backend.tripweave.models.itinerary import Activity, Day
from backend.tripweave.models.results import Invalid
from backend.tripweave.models.trip import Trip, TripDetails


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory sqlite engine with document tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session over the in-memory sqlite engine."""
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def ctx() -> RequestContext:
    """Request context for the trip owner."""
    return RequestContext(user_id="user-1")


@pytest.fixture
def other_ctx() -> RequestContext:
    """Request context for a different user."""
    return RequestContext(user_id="user-2")


def make_activity(
    activity_id: str,
    name: str,
    time_block: TimeBlock = TimeBlock.morning,
    **overrides: Any,
) -> Activity:
    return Activity(id=activity_id, name=name, time_block=time_block, **overrides)


@pytest.fixture
def activity_factory() -> Callable[..., Activity]:
    """Factory building activities with sensible defaults."""
    return make_activity


@pytest.fixture
def flight() -> Activity:
    """Fixed morning flight from a confirmation."""
    return make_activity(
        "act-flight",
        "Flight PR 123",
        TimeBlock.morning,
        time="8:00 AM",
        type=ActivityType.transport,
        source_type=SourceType.confirmation,
        source_id="conf-1",
        is_fixed=True,
        location="Manila Airport",
    )


@pytest.fixture
def sample_trip(flight: Activity) -> Trip:
    """Three-day trip: day 1 has a fixed flight and two flexible activities."""
    return Trip(
        id="trip-1",
        owner_id="user-1",
        details=TripDetails(
            name="Island hopping",
            destination="Siargao",
            vibe="relaxed",
            budget="mid",
            travelers=2,
            start_date=date(2025, 3, 10),
            end_date=date(2025, 3, 12),
            duration_days=3,
        ),
        days={
            1: Day(
                date=date(2025, 3, 10),
                activities=[
                    flight,
                    make_activity("act-surf", "Surf Lesson", TimeBlock.afternoon, type=ActivityType.activity),
                    make_activity("act-dinner", "Seafood Dinner", TimeBlock.evening, type=ActivityType.restaurant),
                ],
            ),
            2: Day(
                date=date(2025, 3, 11),
                activities=[make_activity("act-lagoon", "Sugba Lagoon", TimeBlock.morning)],
            ),
            3: Day(date=date(2025, 3, 12)),
        },
    )


@pytest.fixture
def failing_oracle() -> AsyncMock:
    """Recommendation/judge oracle whose every call reports a malformed payload."""
    oracle = AsyncMock()
    oracle.arrange.return_value = Invalid("malformed JSON: Expecting value")
    oracle.regenerate.return_value = Invalid("malformed JSON: Expecting value")
    oracle.judge_duplicate.return_value = Invalid("malformed JSON: Expecting value")
    oracle.parse_date.return_value = Invalid("malformed JSON: Expecting value")
    return oracle
