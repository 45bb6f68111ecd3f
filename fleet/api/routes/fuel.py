"""
Fuel endpoints
==============

GET  /api/v1/fuel                       -- list (vehicle / driver)
POST /api/v1/fuel                       -- record a fill-up
GET  /api/v1/fuel/stats/vehicle         -- litres and cost per vehicle
GET  /api/v1/fuel/stats/trends          -- daily totals over the last N days
DELETE /api/v1/fuel/{record_id}         -- (admin)
POST /api/v1/fuel/{record_id}/approve   -- (admin)
POST /api/v1/fuel/{record_id}/reject    -- (admin)
POST /api/v1/fuel/{record_id}/complete  -- attach receipt, close the record
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from fleet.api.dependencies import Actor, get_actor, get_fuel_controller, require_admin
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    FuelCompleteRequest,
    FuelCreateRequest,
    FuelResponse,
    FuelTrendResponse,
    VehicleFuelStatsResponse,
)
from fleet.config import settings
from fleet.services.fuel import FuelWorkflowController

router = APIRouter(prefix="/fuel", tags=["fuel"])


@router.get("", response_model=list[FuelResponse], summary="List fuel records")
@limiter.limit(settings.rate_limit)
async def list_records(
    request: Request,
    vehicle_id: Optional[str] = None,
    driver_id: Optional[str] = None,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
):
    return await fuel.list_records(vehicle_id, driver_id)


@router.post(
    "", status_code=201, response_model=FuelResponse, summary="Record a fill-up"
)
@limiter.limit(settings.rate_limit)
async def record_fuel(
    request: Request,
    body: FuelCreateRequest,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
    actor: Actor = Depends(get_actor),
):
    fields = body.model_dump()
    if not fields["driver_id"] and not actor.is_admin:
        fields["driver_id"] = actor.id
    return await fuel.record(**fields)


@router.get(
    "/stats/vehicle",
    response_model=list[VehicleFuelStatsResponse],
    summary="Fuel totals per vehicle",
)
@limiter.limit(settings.rate_limit)
async def stats_by_vehicle(
    request: Request,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
):
    return [
        VehicleFuelStatsResponse.model_validate(stats)
        for stats in await fuel.stats_by_vehicle()
    ]


@router.get(
    "/stats/trends",
    response_model=list[FuelTrendResponse],
    summary="Daily fuel totals",
)
@limiter.limit(settings.rate_limit)
async def trends(
    request: Request,
    days: int = Query(30, ge=1, le=366),
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
):
    return await fuel.trends(days)


@router.delete("/{record_id}", status_code=204, summary="Delete a fuel record")
@limiter.limit(settings.rate_limit)
async def delete_record(
    request: Request,
    record_id: str,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
    actor: Actor = Depends(require_admin),
):
    await fuel.delete(record_id)
    return Response(status_code=204)


@router.post("/{record_id}/approve", response_model=FuelResponse, summary="Approve")
@limiter.limit(settings.rate_limit)
async def approve(
    request: Request,
    record_id: str,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
    actor: Actor = Depends(require_admin),
):
    return await fuel.approve(record_id)


@router.post("/{record_id}/reject", response_model=FuelResponse, summary="Reject")
@limiter.limit(settings.rate_limit)
async def reject(
    request: Request,
    record_id: str,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
    actor: Actor = Depends(require_admin),
):
    return await fuel.reject(record_id)


@router.post(
    "/{record_id}/complete", response_model=FuelResponse, summary="Complete"
)
@limiter.limit(settings.rate_limit)
async def complete(
    request: Request,
    record_id: str,
    body: FuelCompleteRequest,
    fuel: FuelWorkflowController = Depends(get_fuel_controller),
    actor: Actor = Depends(get_actor),
):
    return await fuel.complete(record_id, body.receipt_number, body.notes)
