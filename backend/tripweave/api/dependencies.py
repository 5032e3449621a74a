"""Service wiring for request handlers.

Stores are SQL-backed when DATABASE_URL is configured and process-local
in-memory otherwise. Oracles and engine components are built once.
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.tripweave.config import get_settings
from backend.tripweave.db.engine import get_async_engine
from backend.tripweave.db.inmemory import (
    InMemoryConfirmationStore,
    InMemoryInspirationStore,
    InMemoryTripStore,
)
from backend.tripweave.db.repositories import ConfirmationStore, InspirationStore, TripStore
from backend.tripweave.db.sql_repositories import (
    SqlConfirmationStore,
    SqlInspirationStore,
    SqlTripStore,
)
from backend.tripweave.llm.client import DeterministicStubOracle, OpenAIOracle, get_oracle
from backend.tripweave.orchestration.arrangement import ArrangementOrchestrator
from backend.tripweave.orchestration.duplicates import DuplicateConfirmationFilter
from backend.tripweave.orchestration.regeneration import RegenerationEngine
from backend.tripweave.services.confirmations import ConfirmationService
from backend.tripweave.services.inspirations import InspirationService
from backend.tripweave.services.trips import TripService
from backend.tripweave.utils.logging import StructuredOracleLogger
from backend.tripweave.utils.metrics import PrometheusEngineMetrics


@dataclass
class Stores:
    """Document stores for one request."""

    trips: TripStore
    confirmations: ConfirmationStore
    inspirations: InspirationStore


@dataclass
class EngineComponents:
    """Oracle-backed engine components shared across requests."""

    arranger: ArrangementOrchestrator
    regenerator: RegenerationEngine
    duplicate_filter: DuplicateConfirmationFilter
    oracle: OpenAIOracle | DeterministicStubOracle
    metrics: PrometheusEngineMetrics


@lru_cache
def get_memory_stores() -> Stores:
    """Process-wide in-memory stores."""
    return Stores(
        trips=InMemoryTripStore(),
        confirmations=InMemoryConfirmationStore(),
        inspirations=InMemoryInspirationStore(),
    )


@lru_cache
def get_engine_components() -> EngineComponents:
    """Build oracle and engine components once."""
    oracle = get_oracle()
    metrics = PrometheusEngineMetrics()
    oracle_logger = StructuredOracleLogger()
    return EngineComponents(
        arranger=ArrangementOrchestrator(oracle, metrics, oracle_logger),
        regenerator=RegenerationEngine(oracle, metrics, oracle_logger),
        duplicate_filter=DuplicateConfirmationFilter(
            oracle,
            sample_size=get_settings().duplicate_sample_size,
            metrics=metrics,
            oracle_logger=oracle_logger,
        ),
        oracle=oracle,
        metrics=metrics,
    )


async def get_stores() -> AsyncGenerator[Stores, None]:
    """Per-request stores dependency.

    Yields:
        SQL stores sharing one session, or the in-memory stores
    """
    if not get_settings().database_url:
        yield get_memory_stores()
        return

    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        yield Stores(
            trips=SqlTripStore(session),
            confirmations=SqlConfirmationStore(session),
            inspirations=SqlInspirationStore(session),
        )


def get_inspiration_service(
    stores: Annotated[Stores, Depends(get_stores)],
) -> InspirationService:
    """Inspiration service dependency."""
    return InspirationService(stores.inspirations, stores.trips)


def get_confirmation_service(
    stores: Annotated[Stores, Depends(get_stores)],
    components: Annotated[EngineComponents, Depends(get_engine_components)],
) -> ConfirmationService:
    """Confirmation service dependency."""
    return ConfirmationService(stores.confirmations, components.duplicate_filter, stores.trips)


def get_trip_service(
    stores: Annotated[Stores, Depends(get_stores)],
    components: Annotated[EngineComponents, Depends(get_engine_components)],
) -> TripService:
    """Trip service dependency."""
    return TripService(
        stores.trips,
        arranger=components.arranger,
        regenerator=components.regenerator,
        confirmations=stores.confirmations,
        inspirations=InspirationService(stores.inspirations, stores.trips),
        date_oracle=components.oracle,
        metrics=components.metrics,
    )
