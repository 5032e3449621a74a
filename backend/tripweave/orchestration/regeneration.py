"""Regeneration engine - replaces the flexible part of a day.

Fixed activities (and any the caller pins) are kept. Names used elsewhere in
the trip are excluded. On oracle failure the previous flexible activities are
redistributed across the three time blocks with a seeded round-robin.
"""

import logging
import random
from dataclasses import dataclass

from backend.tripweave.config import settings
from backend.tripweave.errors import InvalidRequestError
from backend.tripweave.llm.client import RecommendationOracle, TripContext
from backend.tripweave.llm.consult import consult
from backend.tripweave.models.common import TIME_BLOCK_ORDER
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.models.results import Invalid
from backend.tripweave.models.trip import Trip
from backend.tripweave.orchestration.normalizer import ensure_time_blocks
from backend.tripweave.utils.logging import StructuredOracleLogger
from backend.tripweave.utils.metrics import EngineMetrics, NoopEngineMetrics
from backend.tripweave.verification.validators import validate_regeneration

logger = logging.getLogger(__name__)


@dataclass
class RegenerationOutcome:
    """Regenerated day plus how it was produced."""

    activities: list[Activity]
    used_fallback: bool = False
    reason: str | None = None


def partition_activities(
    activities: list[Activity], keep_ids: set[str] | None = None
) -> tuple[list[Activity], list[Activity]]:
    """Split a day into (keep, replace): fixed or pinned vs flexible."""
    keep_ids = keep_ids or set()
    keep = [a for a in activities if a.is_fixed or a.id in keep_ids]
    replace = [a for a in activities if not (a.is_fixed or a.id in keep_ids)]
    return keep, replace


def redistribute_round_robin(activities: list[Activity], seed: int) -> list[Activity]:
    """Shuffle with ``random.Random(seed)`` then assign blocks round-robin.

    Pure: the input list and its activities are not modified, and the same
    seed always yields the same result.
    """
    rng = random.Random(seed)
    shuffled = [a.model_copy(deep=True) for a in activities]
    rng.shuffle(shuffled)
    return [
        activity.model_copy(update={"time_block": TIME_BLOCK_ORDER[i % len(TIME_BLOCK_ORDER)]})
        for i, activity in enumerate(shuffled)
    ]


class RegenerationEngine:
    """Regenerate flexible activities of one day."""

    def __init__(
        self,
        oracle: RecommendationOracle,
        metrics: EngineMetrics | None = None,
        oracle_logger: StructuredOracleLogger | None = None,
    ):
        self.oracle = oracle
        self.metrics = metrics or NoopEngineMetrics()
        self.oracle_logger = oracle_logger or StructuredOracleLogger()

    async def regenerate_day(
        self,
        trip: Trip,
        day_number: int,
        *,
        keep_ids: list[str] | None = None,
        timeout_s: float | None = None,
        seed: int | None = None,
    ) -> RegenerationOutcome:
        """Produce a replacement activity list for one day.

        Args:
            trip: Trip document (not mutated)
            day_number: Day to regenerate
            keep_ids: Flexible activity ids the user pinned for this call
            timeout_s: Oracle timeout (defaults to settings.oracle_timeout_s)
            seed: Fallback shuffle seed (defaults to settings.fallback_rng_seed)

        Returns:
            RegenerationOutcome with every fixed activity unchanged

        Raises:
            InvalidRequestError: If the day does not exist
        """
        day = trip.get_day(day_number)
        if day is None:
            raise InvalidRequestError(f"Day {day_number} does not exist on trip {trip.id}")

        keep, replace = partition_activities(day.activities, set(keep_ids or []))
        excluded = trip.activity_names_excluding(day_number)

        result = await consult(
            self.oracle.regenerate(
                context=TripContext.from_trip(trip, day_number),
                keep=[a.model_copy(deep=True) for a in keep],
                excluded_names=sorted(excluded),
            ),
            oracle="recommendation",
            operation="regenerate",
            timeout_s=timeout_s if timeout_s is not None else settings.oracle_timeout_s,
            metrics=self.metrics,
            oracle_logger=self.oracle_logger,
        )
        if not isinstance(result, Invalid):
            result = validate_regeneration(keep, replace, excluded, result.value)

        if isinstance(result, Invalid):
            self.metrics.inc_fallback("regenerate", "invalid_oracle_output")
            self.oracle_logger.log_fallback(
                operation="regenerate",
                reason=result.reason,
                trip_id=trip.id,
                day_number=day_number,
                replaced=len(replace),
            )
            seed = settings.fallback_rng_seed if seed is None else seed
            activities = [a.model_copy(deep=True) for a in keep]
            activities.extend(redistribute_round_robin(replace, seed))
            return RegenerationOutcome(
                activities=ensure_time_blocks(activities),
                used_fallback=True,
                reason=result.reason,
            )

        return RegenerationOutcome(activities=ensure_time_blocks(result.value))
