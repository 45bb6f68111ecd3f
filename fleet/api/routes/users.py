"""
User endpoints
==============

GET   /api/v1/users                            -- list (role / status filters)
POST  /api/v1/users                            -- register (PENDING)
GET   /api/v1/users/{user_id}                  -- one user
PATCH /api/v1/users/{user_id}/status           -- activate / deactivate (admin)
POST  /api/v1/users/{user_id}/assign-vehicle   -- allocate a vehicle (admin)
POST  /api/v1/users/{user_id}/unassign-vehicle -- release it (admin)
DELETE /api/v1/users/{user_id}/trips           -- drop completed trips (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from fleet.api.dependencies import (
    Actor,
    get_allocation_manager,
    get_optional_actor,
    get_trip_controller,
    get_user_service,
    require_admin,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    AccountStatusRequest,
    AssignmentResponse,
    AssignVehicleRequest,
    DeletedCountResponse,
    UserCreateRequest,
    UserResponse,
)
from fleet.config import settings
from fleet.domain.enums import AccountStatus, UserRole
from fleet.domain.errors import PermissionDenied
from fleet.services.allocation import AllocationManager
from fleet.services.trips import TripLifecycleController
from fleet.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse], summary="List users")
@limiter.limit(settings.rate_limit)
async def list_users(
    request: Request,
    role: Optional[UserRole] = None,
    status: Optional[AccountStatus] = None,
    users: UserService = Depends(get_user_service),
):
    return await users.list_users(role=role, status=status)


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    summary="Register a user",
    description="New accounts start PENDING. Only an admin may register an admin.",
)
@limiter.limit(settings.rate_limit)
async def register_user(
    request: Request,
    body: UserCreateRequest,
    users: UserService = Depends(get_user_service),
    actor: Optional[Actor] = Depends(get_optional_actor),
):
    if body.role == UserRole.ADMIN and (actor is None or not actor.is_admin):
        raise PermissionDenied("Only an administrator can register an administrator")
    return await users.register_user(body.email, body.name, body.role)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: str,
    users: UserService = Depends(get_user_service),
):
    return await users.get_user(user_id)


@router.patch(
    "/{user_id}/status",
    response_model=UserResponse,
    summary="Change account status",
    description="Deactivating a driver releases their vehicle.",
)
@limiter.limit(settings.rate_limit)
async def set_account_status(
    request: Request,
    user_id: str,
    body: AccountStatusRequest,
    users: UserService = Depends(get_user_service),
    actor: Actor = Depends(require_admin),
):
    return await users.set_account_status(user_id, body.status)


@router.post(
    "/{user_id}/assign-vehicle",
    response_model=AssignmentResponse,
    summary="Assign a vehicle to a driver",
)
@limiter.limit(settings.rate_limit)
async def assign_vehicle(
    request: Request,
    user_id: str,
    body: AssignVehicleRequest,
    allocation: AllocationManager = Depends(get_allocation_manager),
    actor: Actor = Depends(require_admin),
):
    return await allocation.assign(user_id, body.vehicle_id)


@router.post(
    "/{user_id}/unassign-vehicle",
    response_model=AssignmentResponse,
    summary="Release a driver's vehicle",
)
@limiter.limit(settings.rate_limit)
async def unassign_vehicle(
    request: Request,
    user_id: str,
    allocation: AllocationManager = Depends(get_allocation_manager),
    actor: Actor = Depends(require_admin),
):
    return await allocation.unassign(user_id)


@router.delete(
    "/{user_id}/trips",
    response_model=DeletedCountResponse,
    summary="Delete a driver's completed trips",
    description="An ongoing trip is kept.",
)
@limiter.limit(settings.rate_limit)
async def delete_driver_trips(
    request: Request,
    user_id: str,
    trips: TripLifecycleController = Depends(get_trip_controller),
    actor: Actor = Depends(require_admin),
):
    return DeletedCountResponse(deleted=await trips.delete_driver_trips(user_id))
