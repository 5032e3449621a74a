"""Trip endpoints - trip documents, day edits, arrangement, regeneration, history."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import Field

from backend.tripweave.api.auth import get_current_context
from backend.tripweave.api.dependencies import get_trip_service
from backend.tripweave.db.context import RequestContext
from backend.tripweave.models.common import CamelModel, TripStatus
from backend.tripweave.models.trip import Trip, TripDetails
from backend.tripweave.services.trips import TripService

router = APIRouter(prefix="/trips", tags=["trips"])

Ctx = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[TripService, Depends(get_trip_service)]


class CreateTripRequest(CamelModel):
    """Request body for POST /trips."""

    details: TripDetails
    status: TripStatus = TripStatus.draft


class StatusRequest(CamelModel):
    """Request body for PATCH /trips/{trip_id}/status."""

    status: str = Field(..., min_length=1)


class ActivitiesRequest(CamelModel):
    """Request body carrying activity payloads."""

    activities: list[dict[str, Any]]


class UpdateActivityRequest(CamelModel):
    """Request body for PATCH on a single activity."""

    changes: dict[str, Any] = Field(default_factory=dict)
    target_day: int | None = Field(None, ge=1)


class ArrangeInspirationsRequest(CamelModel):
    """Request body for arranging inspiration items into a day."""

    inspiration_ids: list[str] = Field(..., min_length=1)


class ArrangeConfirmationsRequest(CamelModel):
    """Request body for arranging confirmations into a trip."""

    confirmation_ids: list[str] = Field(..., min_length=1)
    day: int | None = Field(None, ge=1)


class RegenerateRequest(CamelModel):
    """Request body for regenerating a day."""

    keep_ids: list[str] = Field(default_factory=list)


class RollbackRequest(CamelModel):
    """Request body for rolling back a day."""

    version: int = Field(..., ge=1)


def _dump(trip: Trip) -> dict[str, Any]:
    return trip.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_trip(request: CreateTripRequest, ctx: Ctx, service: Service) -> dict[str, Any]:
    """Create a trip with empty days for its date window."""
    trip = await service.create_trip(ctx, request.details, status=request.status)
    return _dump(trip)


@router.get("")
async def list_trips(ctx: Ctx, service: Service, include_archived: bool = False) -> list[dict[str, Any]]:
    """List the caller's trips."""
    trips = await service.list_trips(ctx, include_archived=include_archived)
    return [_dump(t) for t in trips]


@router.get("/{trip_id}")
async def get_trip(trip_id: str, ctx: Ctx, service: Service) -> dict[str, Any]:
    """Get one trip."""
    return _dump(await service.get_trip(ctx, trip_id))


@router.patch("/{trip_id}/status")
async def update_trip_status(
    trip_id: str, request: StatusRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Change a trip's status."""
    return _dump(await service.update_trip_status(ctx, trip_id, request.status))


@router.post("/{trip_id}/archive")
async def archive_trip(trip_id: str, ctx: Ctx, service: Service) -> dict[str, Any]:
    """Archive a trip."""
    return _dump(await service.archive_trip(ctx, trip_id))


@router.put("/{trip_id}/days/{day_number}/activities")
async def replace_day_activities(
    trip_id: str, day_number: int, request: ActivitiesRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Replace a day's activity list (the prior list is snapshotted)."""
    trip = await service.update_day_activities(ctx, trip_id, day_number, request.activities)
    return _dump(trip)


@router.post("/{trip_id}/days/{day_number}/activities")
async def add_day_activities(
    trip_id: str, day_number: int, request: ActivitiesRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Append activities to a day."""
    trip = await service.add_day_activities(ctx, trip_id, day_number, request.activities)
    return _dump(trip)


@router.patch("/{trip_id}/days/{day_number}/activities/{activity_id}")
async def update_activity(
    trip_id: str,
    day_number: int,
    activity_id: str,
    request: UpdateActivityRequest,
    ctx: Ctx,
    service: Service,
) -> dict[str, Any]:
    """Edit one activity, optionally moving it to another day."""
    trip = await service.update_activity(
        ctx, trip_id, day_number, activity_id, request.changes, target_day=request.target_day
    )
    return _dump(trip)


@router.delete("/{trip_id}/days/{day_number}/activities/{activity_id}")
async def delete_activity(
    trip_id: str, day_number: int, activity_id: str, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Delete a flexible activity."""
    return _dump(await service.delete_activity(ctx, trip_id, day_number, activity_id))


@router.post("/{trip_id}/days/{day_number}/arrange-inspirations")
async def arrange_inspirations(
    trip_id: str,
    day_number: int,
    request: ArrangeInspirationsRequest,
    ctx: Ctx,
    service: Service,
) -> dict[str, Any]:
    """Arrange saved inspiration items into a day."""
    result = await service.arrange_inspirations(ctx, trip_id, day_number, request.inspiration_ids)
    return {"trip": _dump(result.trip), "fallbacks": result.fallbacks}


@router.post("/{trip_id}/arrange-confirmations")
async def arrange_confirmations(
    trip_id: str, request: ArrangeConfirmationsRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Place confirmed bookings on their days as fixed activities."""
    result = await service.arrange_confirmations(
        ctx, trip_id, request.confirmation_ids, day_number=request.day
    )
    return {
        "trip": _dump(result.trip),
        "placed": [{"day": day, "confirmationId": cid} for day, cid in result.placed],
        "skipped": result.skipped,
        "fallbacks": result.fallbacks,
    }


@router.post("/{trip_id}/days/{day_number}/regenerate")
async def regenerate_day(
    trip_id: str, day_number: int, request: RegenerateRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Regenerate a day's flexible activities."""
    result = await service.regenerate_day(ctx, trip_id, day_number, keep_ids=request.keep_ids)
    return {
        "trip": _dump(result.trip),
        "usedFallback": result.used_fallback,
        "reason": result.reason,
    }


@router.get("/{trip_id}/days/{day_number}/versions")
async def list_day_versions(
    trip_id: str, day_number: int, ctx: Ctx, service: Service
) -> list[dict[str, Any]]:
    """List a day's rollback versions."""
    versions = await service.list_day_versions(ctx, trip_id, day_number)
    return [
        {
            "version": v["version"],
            "createdAt": v["created_at"].isoformat(),
            "activityCount": v["activity_count"],
        }
        for v in versions
    ]


@router.post("/{trip_id}/days/{day_number}/rollback")
async def rollback_day(
    trip_id: str, day_number: int, request: RollbackRequest, ctx: Ctx, service: Service
) -> dict[str, Any]:
    """Roll a day back to a prior version."""
    return _dump(await service.rollback_day(ctx, trip_id, day_number, request.version))
