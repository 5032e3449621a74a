"""Inspiration endpoints - saving items into location buckets and filtering them."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from backend.tripweave.api.auth import get_current_context
from backend.tripweave.api.dependencies import get_inspiration_service
from backend.tripweave.db.context import RequestContext
from backend.tripweave.models.common import CamelModel
from backend.tripweave.services.inspirations import InspirationService

router = APIRouter(prefix="/inspirations", tags=["inspirations"])

Ctx = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[InspirationService, Depends(get_inspiration_service)]


class SaveInspirationsRequest(CamelModel):
    """Request body for POST /inspirations."""

    location: str | None = None
    items: list[dict[str, Any]] = Field(..., min_length=1)


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_inspirations(
    request: SaveInspirationsRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Save items under the matching location bucket."""
    result = await service.save_inspirations(ctx, request.location, request.items)
    return {
        "location": result.location,
        "saved": [i.model_dump(mode="json", by_alias=True) for i in result.saved],
        "skipped": result.skipped,
    }


@router.get("")
async def filter_inspirations(
    ctx: Ctx,
    service: Service,
    status_filter: Annotated[str, Query(alias="status")] = "all",
    trip_id: str | None = None,
    category: str | None = None,
) -> list[dict[str, Any]]:
    """List buckets filtered by assignment status and category."""
    buckets = await service.filter_inspirations(
        ctx, status=status_filter, trip_id=trip_id, category=category
    )
    return [b.model_dump(mode="json", by_alias=True) for b in buckets]
