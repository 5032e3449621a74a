"""Inspiration bucket operations."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from backend.tripweave.db.context import RequestContext
from backend.tripweave.db.repositories import InspirationStore, TripStore
from backend.tripweave.errors import InvalidRequestError
from backend.tripweave.models.inspiration import InspirationItem, LocationBucket
from backend.tripweave.orchestration.locations import find_matching_bucket, title_case_location

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

INSPIRATION_STATUSES = ("all", "assigned", "unassigned")


@dataclass
class SaveInspirationsResult:
    """Outcome of saving items under a location."""

    location: str
    saved: list[InspirationItem] = field(default_factory=list)
    skipped: int = 0


@dataclass
class LocatedInspiration:
    """An inspiration item annotated with its bucket location."""

    item: InspirationItem
    location: str


def _item_key(title: str, source_url: str | None) -> tuple[str, str | None]:
    return (title, source_url)


class InspirationService:
    """Save, look up and filter inspiration items."""

    def __init__(self, store: InspirationStore, trips: TripStore | None = None) -> None:
        self.store = store
        self.trips = trips

    async def save_inspirations(
        self, ctx: RequestContext, location: str | None, items: list[dict[str, Any]]
    ) -> SaveInspirationsResult:
        """Save items under the bucket matching ``location``.

        Items whose (title, sourceUrl) already exist in any of the owner's
        buckets are skipped, so one item is never filed under two places.

        Args:
            ctx: Request context (owner)
            location: Free-text place name; blank files under "Uncategorized"
            items: Item payloads (title required)

        Returns:
            The bucket location used, the items saved and the number skipped
        """
        buckets = await self.store.list_buckets(ctx.user_id)
        place = location.strip() if location and location.strip() else UNCATEGORIZED
        bucket = find_matching_bucket(place, buckets)
        base_version = bucket.version if bucket else None
        if bucket is None:
            bucket = LocationBucket(
                id=uuid.uuid4().hex, owner_id=ctx.user_id, location=title_case_location(place)
            )
            logger.info(f"Creating inspiration bucket {bucket.location!r} for {ctx.user_id}")

        known = {_item_key(i.title, i.source_url) for b in buckets for i in b.items}
        saved: list[InspirationItem] = []
        skipped = 0
        for payload in items:
            title = str(payload.get("title") or "").strip()
            if not title:
                raise InvalidRequestError("Inspiration items require a title")
            source_url = payload.get("sourceUrl", payload.get("source_url"))
            key = _item_key(title, source_url)
            if key in known:
                skipped += 1
                continue
            fields = {k: v for k, v in payload.items() if v is not None}
            try:
                item = InspirationItem.model_validate(
                    {
                        **fields,
                        "id": uuid.uuid4().hex,
                        "title": title,
                        "sourceLocation": bucket.location,
                    }
                )
            except ValidationError as e:
                raise InvalidRequestError(f"Invalid inspiration payload: {e}") from e
            known.add(key)
            saved.append(item)

        if saved:
            bucket = bucket.model_copy(update={"items": [*bucket.items, *saved]})
            await self.store.save_bucket(bucket, base_version)

        if skipped:
            logger.info(f"Skipped {skipped} inspiration item(s) already saved for {ctx.user_id}")
        return SaveInspirationsResult(location=bucket.location, saved=saved, skipped=skipped)

    async def list_buckets(self, ctx: RequestContext) -> list[LocationBucket]:
        """All of the owner's buckets."""
        return await self.store.list_buckets(ctx.user_id)

    async def get_inspirations_by_ids(
        self, ctx: RequestContext, item_ids: list[str]
    ) -> list[LocatedInspiration]:
        """Look up items by id in request order; unknown ids are skipped."""
        if not item_ids:
            raise InvalidRequestError("At least one inspiration id is required")

        by_id: dict[str, LocatedInspiration] = {}
        for bucket in await self.store.list_buckets(ctx.user_id):
            for item in bucket.items:
                by_id[item.id] = LocatedInspiration(item=item, location=bucket.location)

        found = [by_id[i] for i in item_ids if i in by_id]
        if len(found) != len(item_ids):
            logger.warning(f"{len(item_ids) - len(found)} inspiration id(s) not found")
        return found

    async def filter_inspirations(
        self,
        ctx: RequestContext,
        *,
        status: str = "all",
        trip_id: str | None = None,
        category: str | None = None,
    ) -> list[LocationBucket]:
        """Filter buckets by assignment status and category.

        An item counts as assigned when its title (case-folded, trimmed)
        matches an activity name in the owner's trips, or in ``trip_id`` only.
        Buckets left empty by the filter are omitted.
        """
        status = status.lower()
        if status not in INSPIRATION_STATUSES:
            raise InvalidRequestError(
                f"Invalid status {status!r}. Must be one of: {', '.join(INSPIRATION_STATUSES)}"
            )

        assigned_names: set[str] = set()
        if status != "all":
            assigned_names = await self._trip_activity_names(ctx, trip_id)

        result: list[LocationBucket] = []
        for bucket in await self.store.list_buckets(ctx.user_id):
            items = []
            for item in bucket.items:
                if category and item.category.lower() != category.lower():
                    continue
                is_assigned = item.title.strip().casefold() in assigned_names
                if status == "assigned" and not is_assigned:
                    continue
                if status == "unassigned" and is_assigned:
                    continue
                items.append(item)
            if items:
                result.append(bucket.model_copy(update={"items": items}))
        return result

    async def _trip_activity_names(self, ctx: RequestContext, trip_id: str | None) -> set[str]:
        if self.trips is None:
            return set()
        if trip_id:
            trip = await self.trips.get(trip_id)
            if trip is None or trip.owner_id != ctx.user_id:
                return set()
            return trip.all_activity_names()

        names: set[str] = set()
        for trip in await self.trips.list_for_owner(ctx.user_id):
            names |= trip.all_activity_names()
        return names
