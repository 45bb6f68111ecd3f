"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/health    -- simple health check
GET  /api/v1/admin/stats     -- dashboard counters
POST /api/v1/admin/reconcile -- rebuild vehicle statuses now
"""

from fastapi import APIRouter, Depends, Request

from fleet.api.dependencies import (
    Actor,
    get_unit_of_work,
    get_vehicle_service,
    require_admin,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import DashboardResponse, HealthResponse, ReconcileResponse
from fleet.config import settings
from fleet.services.unit_of_work import UnitOfWork
from fleet.services.vehicles import VehicleService
from fleet.workers.reconciler import run_reconcile_now

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=DashboardResponse, summary="Dashboard stats")
@limiter.limit(settings.rate_limit)
async def get_stats(
    request: Request,
    vehicles: VehicleService = Depends(get_vehicle_service),
):
    return DashboardResponse.model_validate(await vehicles.dashboard_stats())


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Rebuild every vehicle's status from trips and assignments",
    responses={409: {"description": "A reconciliation pass is already running."}},
)
@limiter.limit(settings.rate_limit)
async def reconcile(
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    actor: Actor = Depends(require_admin),
):
    return await run_reconcile_now(uow)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
