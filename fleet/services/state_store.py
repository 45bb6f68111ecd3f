"""
Resource State Store -- vehicles and users as seen by the controllers.

Wraps the repositories of one session.  Reads raise ``NotFoundError`` for
unknown ids; ``set_status`` refuses any vehicle transition outside
``VEHICLE_TRANSITIONS`` and leaves the row untouched when it does.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleet.domain.entities import (
    StatusCorrection,
    derive_vehicle_status,
    ensure_transition,
)
from fleet.domain.enums import VEHICLE_TRANSITIONS, UserRole, VehicleStatus
from fleet.domain.errors import NotFoundError
from fleet.infrastructure.models import UserModel, VehicleModel
from fleet.infrastructure.repositories import (
    TripRepository,
    UserRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)


class ResourceStateStore:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.vehicles = VehicleRepository(session)
        self.users = UserRepository(session)
        self.trips = TripRepository(session)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_vehicle(
        self, vehicle_id: str, for_update: bool = False
    ) -> VehicleModel:
        if for_update:
            vehicle = await self.vehicles.get_for_update(vehicle_id)
        else:
            vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", vehicle_id)
        return vehicle

    async def get_user(self, user_id: str, for_update: bool = False) -> UserModel:
        if for_update:
            user = await self.users.get_for_update(user_id)
        else:
            user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def list_vehicles(self) -> list[VehicleModel]:
        return await self.vehicles.get_all()

    async def find_vehicles_by_status(
        self, status: VehicleStatus
    ) -> list[VehicleModel]:
        return await self.vehicles.get_all(status=status)

    async def list_users(self, role: Optional[UserRole] = None) -> list[UserModel]:
        return await self.users.get_all(role=role)

    async def holder_of(self, vehicle_id: str) -> Optional[UserModel]:
        """The user whose ``assigned_vehicle`` is *vehicle_id*, if any."""
        return await self.users.get_holder_of(vehicle_id)

    # ── Writes ────────────────────────────────────────────────────────

    async def set_status(
        self, vehicle: VehicleModel, target: VehicleStatus
    ) -> VehicleModel:
        """Move *vehicle* to *target*; raises ``InvalidTransition`` if illegal."""
        current = VehicleStatus(vehicle.status)
        if current == target:
            return vehicle
        vehicle.status = ensure_transition(
            "vehicle", VEHICLE_TRANSITIONS, current, target
        )
        await self.session.flush()
        logger.debug("Vehicle %s: %s -> %s", vehicle.id, current.value, target.value)
        return vehicle

    async def set_assignment(
        self, user: UserModel, vehicle_id: Optional[str]
    ) -> UserModel:
        user.assigned_vehicle = vehicle_id
        await self.session.flush()
        return user

    # ── Projection ────────────────────────────────────────────────────

    async def reconcile_vehicle(self, vehicle_id: str) -> Optional[StatusCorrection]:
        """Rebuild the cached status of one vehicle from trips and assignments.

        Assignments held by non-EMPLOYEE users are released first, since only
        employees may hold a vehicle.  Returns the correction applied, or
        ``None`` when the cached status was already right.
        """
        vehicle = await self.get_vehicle(vehicle_id, for_update=True)
        holder = await self.holder_of(vehicle_id)
        if holder is not None and UserRole(holder.role) != UserRole.EMPLOYEE:
            logger.warning(
                "Releasing vehicle %s held by non-employee %s", vehicle_id, holder.id
            )
            await self.set_assignment(holder, None)
            holder = None

        ongoing = await self.trips.get_ongoing_for_vehicle(vehicle_id)
        current = VehicleStatus(vehicle.status)
        derived = derive_vehicle_status(
            current,
            has_ongoing_trip=ongoing is not None,
            has_assignment=holder is not None,
        )
        if derived == current:
            return None

        # The projection is authoritative; it bypasses the transition table.
        vehicle.status = derived
        await self.session.flush()
        return StatusCorrection(vehicle_id, current, derived)
