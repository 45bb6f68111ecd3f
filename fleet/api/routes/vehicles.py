"""
Vehicle endpoints
=================

GET    /api/v1/vehicles                      -- list (optionally by status)
POST   /api/v1/vehicles                      -- add a vehicle (admin)
GET    /api/v1/vehicles/maintenance-priority -- wear-ordered report
GET    /api/v1/vehicles/{vehicle_id}         -- one vehicle
DELETE /api/v1/vehicles/{vehicle_id}         -- retire a vehicle (admin)
POST   /api/v1/vehicles/{vehicle_id}/deactivate
POST   /api/v1/vehicles/{vehicle_id}/reactivate
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from fleet.api.dependencies import (
    Actor,
    get_maintenance_controller,
    get_vehicle_service,
    require_admin,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    PriorityReportResponse,
    VehicleCreateRequest,
    VehicleResponse,
)
from fleet.config import settings
from fleet.domain.enums import VehicleStatus
from fleet.services.maintenance import MaintenanceWorkflowController
from fleet.services.vehicles import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=list[VehicleResponse], summary="List vehicles")
@limiter.limit(settings.rate_limit)
async def list_vehicles(
    request: Request,
    status: Optional[VehicleStatus] = None,
    vehicles: VehicleService = Depends(get_vehicle_service),
):
    return await vehicles.list_vehicles(status)


@router.post(
    "", status_code=201, response_model=VehicleResponse, summary="Add a vehicle"
)
@limiter.limit(settings.rate_limit)
async def add_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    vehicles: VehicleService = Depends(get_vehicle_service),
    actor: Actor = Depends(require_admin),
):
    return await vehicles.add_vehicle(**body.model_dump())


@router.get(
    "/maintenance-priority",
    response_model=PriorityReportResponse,
    summary="Vehicles ordered by maintenance priority score",
)
@limiter.limit(settings.rate_limit)
async def maintenance_priority(
    request: Request,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
):
    report = await maintenance.priority_report()
    return PriorityReportResponse.model_validate(report)


@router.get("/{vehicle_id}", response_model=VehicleResponse, summary="Get a vehicle")
@limiter.limit(settings.rate_limit)
async def get_vehicle(
    request: Request,
    vehicle_id: str,
    vehicles: VehicleService = Depends(get_vehicle_service),
):
    return await vehicles.get_vehicle(vehicle_id)


@router.delete(
    "/{vehicle_id}",
    status_code=204,
    summary="Remove a vehicle",
    description=(
        "Refused while an ongoing trip, an open maintenance record or a "
        "driver assignment still references the vehicle."
    ),
)
@limiter.limit(settings.rate_limit)
async def remove_vehicle(
    request: Request,
    vehicle_id: str,
    vehicles: VehicleService = Depends(get_vehicle_service),
    actor: Actor = Depends(require_admin),
):
    await vehicles.remove(vehicle_id)
    return Response(status_code=204)


@router.post(
    "/{vehicle_id}/deactivate",
    response_model=VehicleResponse,
    summary="Take a vehicle out of service",
)
@limiter.limit(settings.rate_limit)
async def deactivate_vehicle(
    request: Request,
    vehicle_id: str,
    vehicles: VehicleService = Depends(get_vehicle_service),
    actor: Actor = Depends(require_admin),
):
    return await vehicles.deactivate(vehicle_id)


@router.post(
    "/{vehicle_id}/reactivate",
    response_model=VehicleResponse,
    summary="Return an inactive vehicle to service",
)
@limiter.limit(settings.rate_limit)
async def reactivate_vehicle(
    request: Request,
    vehicle_id: str,
    vehicles: VehicleService = Depends(get_vehicle_service),
    actor: Actor = Depends(require_admin),
):
    return await vehicles.reactivate(vehicle_id)
