"""Vehicle administration and the dashboard overview."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .allocation import release_assignment
from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import require_finite
from fleet.domain.enums import (
    AccountStatus,
    MaintenanceStatus,
    TripStatus,
    VehicleStatus,
)
from fleet.domain.errors import ConflictError, ValidationError
from fleet.domain.identifiers import IdCategory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.locks import vehicle_key
from fleet.infrastructure.models import VehicleModel
from fleet.infrastructure.repositories import (
    MaintenanceRepository,
    TripRepository,
    UserRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 2100


@dataclass(frozen=True)
class DashboardStats:
    vehicles_by_status: dict[str, int]
    users_by_status: dict[str, int]
    ongoing_trips: int
    pending_maintenance: int

    @property
    def total_vehicles(self) -> int:
        return sum(self.vehicles_by_status.values())

    @property
    def total_users(self) -> int:
        return sum(self.users_by_status.values())


class VehicleService:
    def __init__(self, uow: UnitOfWork, identity: IdentityRegistry):
        self.uow = uow
        self.identity = identity

    async def add_vehicle(
        self,
        name: str,
        registration: str,
        model: str,
        type: str,
        year: int,
        make: str = "Unknown",
        odometer_km: float = 0.0,
        days_since_service: int = 0,
        vehicle_group: str = "Fleet",
        vin: Optional[str] = None,
        number_plate: Optional[str] = None,
    ) -> VehicleModel:
        missing = [
            field
            for field, value in (
                ("name", name),
                ("registration", registration),
                ("model", model),
                ("type", type),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"Year {year} is out of range")
        require_finite(odometer_km=odometer_km)
        if odometer_km < 0 or days_since_service < 0:
            raise ValidationError("Odometer and days since service cannot be negative")

        async def operation(session: AsyncSession) -> VehicleModel:
            vehicle = VehicleModel(
                id=await self.identity.next_id(session, IdCategory.VEHICLE),
                name=name.strip(),
                registration=registration.strip(),
                make=(make or "Unknown").strip(),
                model=model.strip(),
                type=type.strip(),
                year=year,
                odometer_km=odometer_km,
                days_since_service=days_since_service,
                vehicle_group=vehicle_group,
                vin=vin,
                number_plate=number_plate,
                status=VehicleStatus.AVAILABLE,
            )
            return await VehicleRepository(session).create(vehicle)

        vehicle = await self.uow.run(operation)
        logger.info("Vehicle %s added (%s)", vehicle.id, vehicle.registration)
        return vehicle

    async def get_vehicle(self, vehicle_id: str) -> VehicleModel:
        return await self.uow.read(
            lambda session: ResourceStateStore(session).get_vehicle(vehicle_id)
        )

    async def list_vehicles(
        self, status: Optional[VehicleStatus] = None
    ) -> list[VehicleModel]:
        return await self.uow.read(
            lambda session: VehicleRepository(session).get_all(status=status)
        )

    async def deactivate(self, vehicle_id: str) -> VehicleModel:
        """Take a vehicle out of the fleet, releasing whoever holds it."""

        async def operation(session: AsyncSession) -> VehicleModel:
            store = ResourceStateStore(session)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)
            holder = await store.holder_of(vehicle_id)
            if holder is not None and vehicle.status != VehicleStatus.IN_USE:
                await release_assignment(store, holder)
            return await store.set_status(vehicle, VehicleStatus.INACTIVE)

        vehicle = await self.uow.run(operation, lock_keys=(vehicle_key(vehicle_id),))
        logger.info("Vehicle %s deactivated", vehicle_id)
        return vehicle

    async def reactivate(self, vehicle_id: str) -> VehicleModel:
        async def operation(session: AsyncSession) -> VehicleModel:
            store = ResourceStateStore(session)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)
            if vehicle.status != VehicleStatus.INACTIVE:
                raise ConflictError(
                    f"Vehicle {vehicle_id} is {vehicle.status.value}, not INACTIVE",
                    details={"vehicle_id": vehicle_id, "status": vehicle.status.value},
                )
            return await store.set_status(vehicle, VehicleStatus.AVAILABLE)

        vehicle = await self.uow.run(operation, lock_keys=(vehicle_key(vehicle_id),))
        logger.info("Vehicle %s reactivated", vehicle_id)
        return vehicle

    async def remove(self, vehicle_id: str) -> None:
        async def operation(session: AsyncSession) -> None:
            store = ResourceStateStore(session)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)
            blockers = []
            if await store.trips.get_ongoing_for_vehicle(vehicle_id) is not None:
                blockers.append("ongoing trip")
            if await MaintenanceRepository(session).count_open_for_vehicle(vehicle_id):
                blockers.append("open maintenance")
            if await store.holder_of(vehicle_id) is not None:
                blockers.append("driver assignment")
            if blockers:
                raise ConflictError(
                    f"Vehicle {vehicle_id} is still referenced by: "
                    + ", ".join(blockers),
                    details={"vehicle_id": vehicle_id, "blockers": blockers},
                )
            await store.vehicles.delete(vehicle)

        await self.uow.run(operation, lock_keys=(vehicle_key(vehicle_id),))
        logger.info("Vehicle %s removed", vehicle_id)

    async def dashboard_stats(self) -> DashboardStats:
        async def operation(session: AsyncSession) -> DashboardStats:
            vehicles = await VehicleRepository(session).count_by_status()
            users = await UserRepository(session).count_by_status()
            return DashboardStats(
                vehicles_by_status={
                    status.value: vehicles.get(status, 0) for status in VehicleStatus
                },
                users_by_status={
                    status.value: users.get(status, 0) for status in AccountStatus
                },
                ongoing_trips=await TripRepository(session).count_by_status(
                    TripStatus.ONGOING
                ),
                pending_maintenance=await MaintenanceRepository(
                    session
                ).count_by_status(MaintenanceStatus.PENDING),
            )

        return await self.uow.read(operation)
