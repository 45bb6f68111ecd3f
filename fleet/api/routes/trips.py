"""
Trip endpoints
==============

GET  /api/v1/trips                    -- list (status / driver / vehicle)
GET  /api/v1/trips/live               -- ongoing trips with live positions
GET  /api/v1/trips/stats              -- counts and distances
GET  /api/v1/trips/{trip_id}          -- one trip
POST /api/v1/trips/start              -- start a trip
POST /api/v1/trips/{trip_id}/end      -- end a trip
POST /api/v1/trips/{trip_id}/location -- GPS position update
DELETE /api/v1/trips/{trip_id}        -- delete a completed trip (admin)

Drivers act on their own trips only; admins may act on any.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from fleet.api.dependencies import (
    Actor,
    get_actor,
    get_trip_controller,
    require_admin,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    LocationUpdateRequest,
    TripEndRequest,
    TripResponse,
    TripStartRequest,
    TripStatsResponse,
)
from fleet.config import settings
from fleet.domain.enums import TripStatus
from fleet.domain.errors import PermissionDenied
from fleet.services.trips import TripLifecycleController

router = APIRouter(prefix="/trips", tags=["trips"])


def _ensure_own(actor: Actor, driver_id: str) -> None:
    if not actor.is_admin and actor.id != driver_id:
        raise PermissionDenied(
            "Drivers may only act on their own trips",
            details={"actor_id": actor.id, "driver_id": driver_id},
        )


@router.get("", response_model=list[TripResponse], summary="List trips")
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    status: Optional[TripStatus] = None,
    driver_id: Optional[str] = None,
    vehicle_id: Optional[str] = None,
    trips: TripLifecycleController = Depends(get_trip_controller),
):
    return await trips.list_trips(status, driver_id, vehicle_id)


@router.get("/live", response_model=list[TripResponse], summary="Ongoing trips")
@limiter.limit(settings.rate_limit)
async def live_trips(
    request: Request,
    trips: TripLifecycleController = Depends(get_trip_controller),
):
    return await trips.live_trips()


@router.get("/stats", response_model=TripStatsResponse, summary="Trip statistics")
@limiter.limit(settings.rate_limit)
async def trip_stats(
    request: Request,
    trips: TripLifecycleController = Depends(get_trip_controller),
):
    return await trips.trip_stats()


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: str,
    trips: TripLifecycleController = Depends(get_trip_controller),
):
    return await trips.get_trip(trip_id)


@router.post(
    "/start",
    status_code=201,
    response_model=TripResponse,
    summary="Start a trip",
    description=(
        "Fails with 409 if the driver or the vehicle already has an ongoing "
        "trip, or the vehicle is held for maintenance, inactive, or assigned "
        "to another driver."
    ),
)
@limiter.limit(settings.rate_limit)
async def start_trip(
    request: Request,
    body: TripStartRequest,
    trips: TripLifecycleController = Depends(get_trip_controller),
    actor: Actor = Depends(get_actor),
):
    driver_id = body.driver_id or actor.id
    _ensure_own(actor, driver_id)
    return await trips.start_trip(
        driver_id=driver_id,
        **body.model_dump(exclude={"driver_id"}),
    )


@router.post("/{trip_id}/end", response_model=TripResponse, summary="End a trip")
@limiter.limit(settings.rate_limit)
async def end_trip(
    request: Request,
    trip_id: str,
    body: TripEndRequest,
    trips: TripLifecycleController = Depends(get_trip_controller),
    actor: Actor = Depends(get_actor),
):
    trip = await trips.get_trip(trip_id)
    _ensure_own(actor, trip.driver_id)
    return await trips.end_trip(
        trip_id, body.end_odometer, body.end_location, body.notes
    )


@router.post(
    "/{trip_id}/location",
    response_model=TripResponse,
    summary="Update the live position of an ongoing trip",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    trip_id: str,
    body: LocationUpdateRequest,
    trips: TripLifecycleController = Depends(get_trip_controller),
    actor: Actor = Depends(get_actor),
):
    trip = await trips.get_trip(trip_id)
    _ensure_own(actor, trip.driver_id)
    return await trips.update_location(
        trip_id, body.latitude, body.longitude, body.timestamp
    )


@router.delete(
    "/{trip_id}",
    status_code=204,
    summary="Delete a completed trip",
    description="Refused with 409 while the trip is ONGOING.",
)
@limiter.limit(settings.rate_limit)
async def delete_trip(
    request: Request,
    trip_id: str,
    trips: TripLifecycleController = Depends(get_trip_controller),
    actor: Actor = Depends(require_admin),
):
    await trips.delete_trip(trip_id)
    return Response(status_code=204)
