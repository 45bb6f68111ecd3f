"""
Allocation Manager -- binds drivers to vehicles.

Every allocation runs under the locks of both the driver and the vehicle,
so the check ("vehicle is AVAILABLE and nobody holds it") and the act
("driver holds it, vehicle is ASSIGNED") can never interleave with another
request.  The unique ``users.assigned_vehicle`` column backs this up in
storage.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import Assignment
from fleet.domain.enums import AccountStatus, UserRole, VehicleStatus
from fleet.domain.errors import (
    AlreadyAssigned,
    ConflictError,
    DriverNotEligible,
    VehicleUnavailable,
)
from fleet.infrastructure.locks import driver_key, vehicle_key
from fleet.infrastructure.models import UserModel

logger = logging.getLogger(__name__)


async def release_assignment(
    store: ResourceStateStore, user: UserModel
) -> Optional[VehicleStatus]:
    """Clear *user*'s assignment; an ASSIGNED vehicle goes back to AVAILABLE.

    Must run under the vehicle's lock.  An IN_USE vehicle keeps its status:
    the trip end settles it.  Returns the vehicle's resulting status, or
    ``None`` when the user held nothing or the vehicle no longer exists.
    """
    vehicle_id = user.assigned_vehicle
    if vehicle_id is None:
        return None
    await store.set_assignment(user, None)
    vehicle = await store.vehicles.get_for_update(vehicle_id)
    if vehicle is None:
        return None
    if VehicleStatus(vehicle.status) == VehicleStatus.ASSIGNED:
        await store.set_status(vehicle, VehicleStatus.AVAILABLE)
    logger.info("Vehicle %s released by %s", vehicle_id, user.id)
    return VehicleStatus(vehicle.status)


class AllocationManager:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def assign(self, driver_id: str, vehicle_id: str) -> Assignment:
        async def operation(session: AsyncSession) -> Assignment:
            store = ResourceStateStore(session)
            driver = await store.get_user(driver_id, for_update=True)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)

            if (
                UserRole(driver.role) != UserRole.EMPLOYEE
                or AccountStatus(driver.status) != AccountStatus.ACTIVE
            ):
                raise DriverNotEligible(
                    f"User {driver_id} cannot be assigned a vehicle",
                    details={"role": driver.role.value, "status": driver.status.value},
                )
            if VehicleStatus(vehicle.status) != VehicleStatus.AVAILABLE:
                raise VehicleUnavailable(
                    f"Vehicle {vehicle_id} is {vehicle.status.value}",
                    details={"vehicle_id": vehicle_id, "status": vehicle.status.value},
                )
            holder = await store.holder_of(vehicle_id)
            if holder is not None:
                raise AlreadyAssigned(
                    f"Vehicle {vehicle_id} is already assigned to {holder.id}",
                    details={"vehicle_id": vehicle_id, "driver_id": holder.id},
                )
            if driver.assigned_vehicle is not None:
                raise AlreadyAssigned(
                    f"Driver {driver_id} already holds {driver.assigned_vehicle}",
                    details={
                        "driver_id": driver_id,
                        "vehicle_id": driver.assigned_vehicle,
                    },
                )

            await store.set_assignment(driver, vehicle_id)
            await store.set_status(vehicle, VehicleStatus.ASSIGNED)
            return Assignment(driver_id, vehicle_id, VehicleStatus.ASSIGNED)

        result = await self.uow.run(
            operation, lock_keys=(driver_key(driver_id), vehicle_key(vehicle_id))
        )
        logger.info("Vehicle %s assigned to %s", vehicle_id, driver_id)
        return result

    async def unassign(self, driver_id: str) -> Assignment:
        """Release the driver's vehicle.  A driver holding nothing is a no-op."""

        async def peek(session: AsyncSession) -> Optional[str]:
            driver = await ResourceStateStore(session).get_user(driver_id)
            return driver.assigned_vehicle

        vehicle_id = await self.uow.read(peek)

        async def operation(session: AsyncSession) -> Assignment:
            store = ResourceStateStore(session)
            driver = await store.get_user(driver_id, for_update=True)
            if driver.assigned_vehicle != vehicle_id:
                raise ConflictError(
                    f"Assignment of {driver_id} changed concurrently, retry",
                    details={"driver_id": driver_id},
                )
            status = await release_assignment(store, driver)
            return Assignment(driver_id, vehicle_id, status)

        keys = [driver_key(driver_id)]
        if vehicle_id is not None:
            keys.append(vehicle_key(vehicle_id))
        return await self.uow.run(operation, lock_keys=keys)
