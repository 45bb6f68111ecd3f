"""FastAPI dependency injection helpers."""

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleet.config import settings
from fleet.domain.enums import UserRole
from fleet.domain.errors import PermissionDenied
from fleet.domain.routing import RouteGraph, city_graph
from fleet.infrastructure.database import async_session_factory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.redis_client import get_redis
from fleet.services.allocation import AllocationManager
from fleet.services.fuel import FuelWorkflowController
from fleet.services.maintenance import MaintenanceWorkflowController
from fleet.services.trips import TripLifecycleController
from fleet.services.unit_of_work import UnitOfWork
from fleet.services.users import UserService
from fleet.services.vehicles import VehicleService


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def get_redis_client() -> aioredis.Redis:
    return await get_redis()


def get_unit_of_work(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    redis: aioredis.Redis = Depends(get_redis_client),
) -> UnitOfWork:
    return UnitOfWork(
        session_factory,
        redis,
        timeout_seconds=settings.storage_timeout_seconds,
        lock_ttl_seconds=settings.lock_ttl_seconds,
        lock_wait_seconds=settings.lock_wait_seconds,
        max_retries=settings.max_conflict_retries,
    )


def get_identity_registry(
    redis: aioredis.Redis = Depends(get_redis_client),
) -> IdentityRegistry:
    return IdentityRegistry(redis)


# ── Services ──────────────────────────────────────────────────────────


def get_allocation_manager(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> AllocationManager:
    return AllocationManager(uow)


def get_trip_controller(
    uow: UnitOfWork = Depends(get_unit_of_work),
    identity: IdentityRegistry = Depends(get_identity_registry),
) -> TripLifecycleController:
    return TripLifecycleController(uow, identity)


def get_maintenance_controller(
    uow: UnitOfWork = Depends(get_unit_of_work),
    identity: IdentityRegistry = Depends(get_identity_registry),
) -> MaintenanceWorkflowController:
    return MaintenanceWorkflowController(uow, identity)


def get_fuel_controller(
    uow: UnitOfWork = Depends(get_unit_of_work),
    identity: IdentityRegistry = Depends(get_identity_registry),
) -> FuelWorkflowController:
    return FuelWorkflowController(uow, identity)


def get_vehicle_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    identity: IdentityRegistry = Depends(get_identity_registry),
) -> VehicleService:
    return VehicleService(uow, identity)


def get_user_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    identity: IdentityRegistry = Depends(get_identity_registry),
) -> UserService:
    return UserService(uow, identity)


# ── Actor ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    """Caller identity, as validated by the upstream auth gateway."""

    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise PermissionDenied("Missing actor identity")
    try:
        role = UserRole(x_actor_role.upper())
    except ValueError:
        raise PermissionDenied(f"Unknown role {x_actor_role}") from None
    return Actor(id=x_actor_id, role=role)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise PermissionDenied(
            "Administrator role required", details={"actor_id": actor.id}
        )
    return actor


def get_optional_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Optional[Actor]:
    if not x_actor_id and not x_actor_role:
        return None
    return get_actor(x_actor_id, x_actor_role)


# ── Routing ───────────────────────────────────────────────────────────


def get_route_graph() -> RouteGraph:
    return city_graph
