"""Confirmation operations - duplicate-gated saving, filtering and linking."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from backend.tripweave.db.context import RequestContext
from backend.tripweave.db.repositories import ConfirmationLink, ConfirmationStore, TripStore
from backend.tripweave.errors import InvalidRequestError, NotFoundError, UnauthorizedError
from backend.tripweave.models.confirmation import ConfirmationRecord, DuplicateVerdict
from backend.tripweave.orchestration.duplicates import DuplicateConfirmationFilter

logger = logging.getLogger(__name__)

ASSIGNMENT_FILTERS = ("all", "assigned", "unassigned")

_CATEGORY_ALIASES = {
    "flights": "flight",
    "hotels": "hotel",
    "car rental": "car",
    "car_rental": "car",
    "restaurants": "restaurant",
    "activities": "activity",
}


def canonical_category(value: str | None) -> str:
    """Map plural and alias category names to one canonical name."""
    text = (value or "").strip().lower()
    return _CATEGORY_ALIASES.get(text, text)


@dataclass
class RejectedDuplicate:
    """A candidate that was not saved because it duplicates existing bookings."""

    index: int
    payload: dict[str, Any]
    verdict: DuplicateVerdict


@dataclass
class SaveConfirmationsResult:
    """Outcome of a batch save."""

    saved: list[ConfirmationRecord] = field(default_factory=list)
    duplicates: list[RejectedDuplicate] = field(default_factory=list)


class ConfirmationService:
    """Save, list, filter and link an owner's confirmations."""

    def __init__(
        self,
        store: ConfirmationStore,
        duplicate_filter: DuplicateConfirmationFilter,
        trips: TripStore | None = None,
    ) -> None:
        self.store = store
        self.duplicate_filter = duplicate_filter
        self.trips = trips

    async def save_confirmations(
        self,
        ctx: RequestContext,
        payloads: list[dict[str, Any]],
        *,
        timeout_s: float | None = None,
    ) -> SaveConfirmationsResult:
        """Save extracted bookings, skipping duplicates.

        Each candidate is judged against the owner's stored confirmations and
        the candidates already accepted from this batch.

        Args:
            ctx: Request context (owner)
            payloads: Booking payloads (category-specific fields)
            timeout_s: Duplicate judge timeout

        Returns:
            Saved records and rejected duplicates with their verdicts
        """
        if not payloads:
            raise InvalidRequestError("At least one confirmation is required")

        existing = await self.store.list_for_owner(ctx.user_id)
        result = SaveConfirmationsResult()

        for index, payload in enumerate(payloads):
            if not isinstance(payload, dict):
                raise InvalidRequestError(f"Confirmation {index} is not an object")

            verdict = await self.duplicate_filter.check(
                payload, [*existing, *result.saved], timeout_s=timeout_s
            )
            if verdict.is_duplicate:
                logger.info(
                    f"Confirmation {index} duplicates {verdict.duplicate_ids}, not saving",
                    extra={"structured": {"owner_id": ctx.user_id, "index": index}},
                )
                result.duplicates.append(
                    RejectedDuplicate(index=index, payload=payload, verdict=verdict)
                )
                continue

            result.saved.append(
                ConfirmationRecord(
                    id=uuid.uuid4().hex, owner_id=ctx.user_id, confirmation_data=dict(payload)
                )
            )

        if result.saved:
            await self.store.create_many(result.saved)
        return result

    async def get_confirmation(self, ctx: RequestContext, confirmation_id: str) -> ConfirmationRecord:
        """Get one confirmation owned by the caller.

        Raises:
            NotFoundError: If the confirmation does not exist
            UnauthorizedError: If it belongs to someone else
        """
        record = await self.store.get(confirmation_id)
        if record is None:
            raise NotFoundError(f"Confirmation {confirmation_id} not found")
        if record.owner_id != ctx.user_id:
            raise UnauthorizedError(f"Confirmation {confirmation_id} belongs to another user")
        return record

    async def list_confirmations(self, ctx: RequestContext) -> list[ConfirmationRecord]:
        """All of the owner's confirmations, newest first."""
        return await self.store.list_for_owner(ctx.user_id)

    async def filter_confirmations(
        self,
        ctx: RequestContext,
        *,
        assignment: str = "all",
        category: str | None = None,
    ) -> list[ConfirmationRecord]:
        """Filter by trip assignment and category (plural and alias names accepted)."""
        assignment = (assignment or "all").lower()
        if assignment not in ASSIGNMENT_FILTERS:
            raise InvalidRequestError(
                f"Invalid assignment {assignment!r}. Must be one of: {', '.join(ASSIGNMENT_FILTERS)}"
            )
        target = canonical_category(category)

        records = []
        for record in await self.store.list_for_owner(ctx.user_id):
            if assignment == "assigned" and not record.trip_id:
                continue
            if assignment == "unassigned" and record.trip_id:
                continue
            if target and target != "all" and canonical_category(record.category) != target:
                continue
            records.append(record)
        return records

    async def unlinked(self, ctx: RequestContext) -> list[ConfirmationRecord]:
        """Confirmations not yet assigned to a trip."""
        return await self.filter_confirmations(ctx, assignment="unassigned")

    async def link_confirmations(
        self,
        ctx: RequestContext,
        trip_id: str,
        confirmation_ids: list[str],
        *,
        days: dict[str, list[int]] | None = None,
    ) -> list[str]:
        """Assign confirmations to a trip (and optionally days) in one batch.

        Args:
            ctx: Request context (owner)
            trip_id: Trip to link to; must belong to the caller
            confirmation_ids: Confirmations to link
            days: Optional day numbers per confirmation id

        Returns:
            IDs actually linked (missing or foreign ids are skipped)
        """
        if not confirmation_ids:
            raise InvalidRequestError("At least one confirmation id is required")

        if self.trips is not None:
            trip = await self.trips.get(trip_id)
            if trip is None:
                raise NotFoundError(f"Trip {trip_id} not found")
            if trip.owner_id != ctx.user_id:
                raise UnauthorizedError(f"Trip {trip_id} belongs to another user")

        days = days or {}
        links = [
            ConfirmationLink(confirmation_id=cid, trip_id=trip_id, days=days.get(cid))
            for cid in confirmation_ids
        ]
        return await self.store.link_many(ctx.user_id, links)
