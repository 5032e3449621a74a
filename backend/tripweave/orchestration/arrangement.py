"""Arrangement orchestrator - merges one new item into one day.

Creative ordering is delegated to the recommendation oracle; its output is
post-validated and any failure falls back to appending the new item.
"""

import logging
from dataclasses import dataclass, field

from backend.tripweave.config import settings
from backend.tripweave.llm.client import RecommendationOracle, TripContext
from backend.tripweave.llm.consult import consult
from backend.tripweave.models.common import SourceType
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.models.results import Invalid
from backend.tripweave.models.trip import Trip
from backend.tripweave.orchestration.normalizer import ensure_time_blocks, generate_activity_id
from backend.tripweave.orchestration.time_blocks import coerce_time_block
from backend.tripweave.utils.logging import StructuredOracleLogger
from backend.tripweave.utils.metrics import EngineMetrics, NoopEngineMetrics
from backend.tripweave.verification.validators import validate_arrangement

logger = logging.getLogger(__name__)


@dataclass
class ArrangementOutcome:
    """Arranged day plus how it was produced."""

    activities: list[Activity]
    used_fallback: bool = False
    reason: str | None = None
    new_item: Activity | None = field(default=None, repr=False)


class ArrangementOrchestrator:
    """Merge inspirations and confirmations into a day's activity list."""

    def __init__(
        self,
        oracle: RecommendationOracle,
        metrics: EngineMetrics | None = None,
        oracle_logger: StructuredOracleLogger | None = None,
    ):
        self.oracle = oracle
        self.metrics = metrics or NoopEngineMetrics()
        self.oracle_logger = oracle_logger or StructuredOracleLogger()

    async def arrange(
        self,
        context: TripContext,
        existing: list[Activity],
        new_item: Activity,
        *,
        timeout_s: float | None = None,
    ) -> ArrangementOutcome:
        """Merge ``new_item`` into ``existing``.

        Args:
            context: Trip facts for the oracle
            existing: Day's current activities (not mutated)
            new_item: Item to add; confirmations are fixed before arrangement
            timeout_s: Oracle timeout (defaults to settings.oracle_timeout_s)

        Returns:
            ArrangementOutcome whose activities always contain every prior
            activity plus the new item
        """
        new_item = self._prepare(new_item, existing)
        existing = [a.model_copy(deep=True) for a in existing]

        result = await consult(
            self.oracle.arrange(context=context, existing=existing, new_item=new_item),
            oracle="recommendation",
            operation="arrange",
            timeout_s=timeout_s if timeout_s is not None else settings.oracle_timeout_s,
            metrics=self.metrics,
            oracle_logger=self.oracle_logger,
        )
        if not isinstance(result, Invalid):
            result = validate_arrangement(existing, new_item, result.value)

        if isinstance(result, Invalid):
            self.metrics.inc_fallback("arrange", "invalid_oracle_output")
            self.oracle_logger.log_fallback(
                operation="arrange",
                reason=result.reason,
                day_number=context.day_number,
                new_item_id=new_item.id,
            )
            return ArrangementOutcome(
                activities=ensure_time_blocks([*existing, new_item]),
                used_fallback=True,
                reason=result.reason,
                new_item=new_item,
            )

        return ArrangementOutcome(
            activities=ensure_time_blocks(result.value), new_item=new_item
        )

    async def arrange_inspiration(
        self,
        trip: Trip,
        day_number: int,
        activity: Activity,
        *,
        timeout_s: float | None = None,
    ) -> ArrangementOutcome:
        """Arrange an inspiration-sourced activity into a day of ``trip``."""
        if activity.source_type not in (SourceType.inspiration, SourceType.manual):
            activity = activity.model_copy(update={"source_type": SourceType.inspiration})
        return await self._arrange_on_trip(trip, day_number, activity, timeout_s)

    async def arrange_confirmation(
        self,
        trip: Trip,
        day_number: int,
        activity: Activity,
        *,
        timeout_s: float | None = None,
    ) -> ArrangementOutcome:
        """Arrange a confirmed booking into a day of ``trip`` as a fixed activity."""
        activity = activity.model_copy(
            update={"source_type": SourceType.confirmation, "is_fixed": True}
        )
        return await self._arrange_on_trip(trip, day_number, activity, timeout_s)

    async def _arrange_on_trip(
        self, trip: Trip, day_number: int, activity: Activity, timeout_s: float | None
    ) -> ArrangementOutcome:
        day = trip.get_day(day_number)
        existing = day.activities if day else []
        return await self.arrange(
            TripContext.from_trip(trip, day_number), existing, activity, timeout_s=timeout_s
        )

    def _prepare(self, new_item: Activity, existing: list[Activity]) -> Activity:
        """Copy the new item with a resolved block and an id unused on the day."""
        update: dict = {
            "time_block": coerce_time_block(new_item.time_block, new_item.time, new_item.type)
        }
        if new_item.source_type == SourceType.confirmation:
            update["is_fixed"] = True
        if any(a.id == new_item.id for a in existing):
            logger.info(f"New item id {new_item.id} already on day, assigning a fresh id")
            update["id"] = generate_activity_id()
        return new_item.model_copy(update=update, deep=True)
