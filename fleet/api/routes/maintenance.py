"""
Maintenance endpoints
=====================

GET    /api/v1/maintenance                    -- list (status / vehicle / priority)
POST   /api/v1/maintenance                    -- request maintenance
GET    /api/v1/maintenance/{record_id}        -- one record
DELETE /api/v1/maintenance/{record_id}        -- delete (admin)
POST   /api/v1/maintenance/{record_id}/approve|reject|start|complete (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from fleet.api.dependencies import (
    Actor,
    get_actor,
    get_maintenance_controller,
    require_admin,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    MaintenanceCompleteRequest,
    MaintenanceCreateRequest,
    MaintenanceResponse,
)
from fleet.config import settings
from fleet.domain.enums import MaintenancePriority, MaintenanceStatus
from fleet.services.maintenance import MaintenanceWorkflowController

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get(
    "", response_model=list[MaintenanceResponse], summary="List maintenance records"
)
@limiter.limit(settings.rate_limit)
async def list_records(
    request: Request,
    status: Optional[MaintenanceStatus] = None,
    vehicle_id: Optional[str] = None,
    priority: Optional[MaintenancePriority] = None,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
):
    return await maintenance.list_records(status, vehicle_id, priority)


@router.post(
    "",
    status_code=201,
    response_model=MaintenanceResponse,
    summary="Request maintenance",
)
@limiter.limit(settings.rate_limit)
async def request_maintenance(
    request: Request,
    body: MaintenanceCreateRequest,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(get_actor),
):
    return await maintenance.request(**body.model_dump(), requested_by=actor.id)


@router.get(
    "/{record_id}", response_model=MaintenanceResponse, summary="Get a record"
)
@limiter.limit(settings.rate_limit)
async def get_record(
    request: Request,
    record_id: str,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
):
    return await maintenance.get(record_id)


@router.delete(
    "/{record_id}",
    status_code=204,
    summary="Delete a record",
    description="Refused while the record is APPROVED or IN_PROGRESS.",
)
@limiter.limit(settings.rate_limit)
async def delete_record(
    request: Request,
    record_id: str,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(require_admin),
):
    await maintenance.delete(record_id)
    return Response(status_code=204)


@router.post(
    "/{record_id}/approve",
    response_model=MaintenanceResponse,
    summary="Approve a request",
    description=(
        "An AVAILABLE or INACTIVE vehicle is moved to MAINTENANCE; a vehicle "
        "that is ASSIGNED or IN_USE is left untouched."
    ),
)
@limiter.limit(settings.rate_limit)
async def approve(
    request: Request,
    record_id: str,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(require_admin),
):
    return await maintenance.approve(record_id)


@router.post(
    "/{record_id}/reject", response_model=MaintenanceResponse, summary="Reject"
)
@limiter.limit(settings.rate_limit)
async def reject(
    request: Request,
    record_id: str,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(require_admin),
):
    return await maintenance.reject(record_id)


@router.post(
    "/{record_id}/start", response_model=MaintenanceResponse, summary="Start work"
)
@limiter.limit(settings.rate_limit)
async def start_work(
    request: Request,
    record_id: str,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(require_admin),
):
    return await maintenance.start_work(record_id)


@router.post(
    "/{record_id}/complete",
    response_model=MaintenanceResponse,
    summary="Complete maintenance",
    description="Requires the actual cost and the service provider.",
)
@limiter.limit(settings.rate_limit)
async def complete(
    request: Request,
    record_id: str,
    body: MaintenanceCompleteRequest,
    maintenance: MaintenanceWorkflowController = Depends(get_maintenance_controller),
    actor: Actor = Depends(require_admin),
):
    return await maintenance.complete(
        record_id, body.actual_cost, body.service_provider, body.completion_notes
    )
