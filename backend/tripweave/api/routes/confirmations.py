"""Confirmation endpoints - duplicate-gated save, filtering and linking."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import Field

from backend.tripweave.api.auth import get_current_context
from backend.tripweave.api.dependencies import get_confirmation_service
from backend.tripweave.db.context import RequestContext
from backend.tripweave.models.common import CamelModel
from backend.tripweave.models.confirmation import ConfirmationRecord
from backend.tripweave.services.confirmations import ConfirmationService

router = APIRouter(prefix="/confirmations", tags=["confirmations"])

Ctx = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[ConfirmationService, Depends(get_confirmation_service)]


class SaveConfirmationsRequest(CamelModel):
    """Request body for POST /confirmations."""

    confirmations: list[dict[str, Any]] = Field(..., min_length=1)


class LinkConfirmationsRequest(CamelModel):
    """Request body for POST /confirmations/link."""

    trip_id: str = Field(..., min_length=1)
    confirmation_ids: list[str] = Field(..., min_length=1)
    days: dict[str, list[int]] | None = None


def _dump(record: ConfirmationRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_confirmations(
    request: SaveConfirmationsRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Save extracted bookings; duplicates are reported, not saved."""
    result = await service.save_confirmations(ctx, request.confirmations)
    return {
        "saved": [_dump(r) for r in result.saved],
        "duplicates": [
            {
                "index": d.index,
                "duplicateIds": d.verdict.duplicate_ids,
                "source": d.verdict.source,
            }
            for d in result.duplicates
        ],
    }


@router.get("")
async def list_confirmations(
    ctx: Ctx, service: Service, assignment: str = "all", category: str | None = None
) -> list[dict[str, Any]]:
    """List confirmations filtered by assignment and category."""
    records = await service.filter_confirmations(ctx, assignment=assignment, category=category)
    return [_dump(r) for r in records]


@router.get("/unlinked")
async def unlinked_confirmations(ctx: Ctx, service: Service) -> list[dict[str, Any]]:
    """List confirmations not assigned to any trip."""
    return [_dump(r) for r in await service.unlinked(ctx)]


@router.post("/link")
async def link_confirmations(
    request: LinkConfirmationsRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Assign confirmations to a trip in one batch."""
    linked = await service.link_confirmations(
        ctx, request.trip_id, request.confirmation_ids, days=request.days
    )
    return {"linked": linked}
