"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``*_for_update`` variants take a row lock
(``SELECT ... FOR UPDATE``) on databases that support it.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    FuelRecordModel,
    MaintenanceModel,
    TripModel,
    UserModel,
    VehicleModel,
)
from fleet.domain.enums import (
    OPEN_MAINTENANCE,
    AccountStatus,
    MaintenancePriority,
    MaintenanceStatus,
    TripStatus,
    UserRole,
    VehicleStatus,
)


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: str) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_for_update(self, vehicle_id: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_all(self, status: VehicleStatus | None = None) -> list[VehicleModel]:
        query = select(VehicleModel).order_by(VehicleModel.id)
        if status is not None:
            query = query.where(VehicleModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(VehicleModel.id))
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[VehicleStatus, int]:
        result = await self.session.execute(
            select(VehicleModel.status, func.count()).group_by(VehicleModel.status)
        )
        return {status: count for status, count in result.all()}

    async def delete(self, vehicle: VehicleModel) -> None:
        await self.session.delete(vehicle)
        await self.session.flush()


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_for_update(self, user_id: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def get_holder_of(self, vehicle_id: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.assigned_vehicle == vehicle_id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        role: UserRole | None = None,
        status: AccountStatus | None = None,
    ) -> list[UserModel]:
        query = select(UserModel).order_by(UserModel.id)
        if role is not None:
            query = query.where(UserModel.role == role)
        if status is not None:
            query = query.where(UserModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(UserModel.id))
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[AccountStatus, int]:
        result = await self.session.execute(
            select(UserModel.status, func.count()).group_by(UserModel.status)
        )
        return {status: count for status, count in result.all()}


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripModel) -> TripModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: str) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def get_ongoing_for_driver(self, driver_id: str) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel).where(
                TripModel.driver_id == driver_id,
                TripModel.status == TripStatus.ONGOING,
            )
        )
        return result.scalar_one_or_none()

    async def get_ongoing_for_vehicle(self, vehicle_id: str) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel).where(
                TripModel.vehicle_id == vehicle_id,
                TripModel.status == TripStatus.ONGOING,
            )
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        status: TripStatus | None = None,
        driver_id: str | None = None,
        vehicle_id: str | None = None,
    ) -> list[TripModel]:
        query = select(TripModel).order_by(TripModel.start_time.desc())
        if status is not None:
            query = query.where(TripModel.status == status)
        if driver_id:
            query = query.where(TripModel.driver_id == driver_id)
        if vehicle_id:
            query = query.where(TripModel.vehicle_id == vehicle_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_position(
        self, trip_id: str, latitude: float, longitude: float, at: datetime
    ) -> bool:
        """Store a live position, only while the trip is still ONGOING."""
        result = await self.session.execute(
            update(TripModel)
            .where(TripModel.id == trip_id, TripModel.status == TripStatus.ONGOING)
            .values(current_lat=latitude, current_lon=longitude, last_update=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_completed(self, trip_ids: list[str]) -> int:
        """Delete the COMPLETED trips among *trip_ids*; fuel records keep
        their row but lose the trip reference."""
        if not trip_ids:
            return 0
        completed = select(TripModel.id).where(
            TripModel.id.in_(trip_ids), TripModel.status == TripStatus.COMPLETED
        )
        await self.session.execute(
            update(FuelRecordModel)
            .where(FuelRecordModel.trip_id.in_(completed))
            .values(trip_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(TripModel)
            .where(
                TripModel.id.in_(trip_ids),
                TripModel.status == TripStatus.COMPLETED,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(TripModel.id))
        return list(result.scalars().all())

    async def count_by_status(self, status: TripStatus) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(TripModel)
            .where(TripModel.status == status)
        )
        return result.scalar() or 0

    async def distance_totals(self) -> tuple[float, float]:
        """(sum, average) of distance over completed trips."""
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(TripModel.distance_km), 0.0),
                func.coalesce(func.avg(TripModel.distance_km), 0.0),
            ).where(TripModel.status == TripStatus.COMPLETED)
        )
        total, avg = result.one()
        return float(total), float(avg)


class MaintenanceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: MaintenanceModel) -> MaintenanceModel:
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_id(self, record_id: str) -> Optional[MaintenanceModel]:
        return await self.session.get(MaintenanceModel, record_id)

    async def get_all(
        self,
        status: MaintenanceStatus | None = None,
        vehicle_id: str | None = None,
        priority: MaintenancePriority | None = None,
    ) -> list[MaintenanceModel]:
        query = select(MaintenanceModel).order_by(MaintenanceModel.scheduled_date)
        if status is not None:
            query = query.where(MaintenanceModel.status == status)
        if vehicle_id:
            query = query.where(MaintenanceModel.vehicle_id == vehicle_id)
        if priority is not None:
            query = query.where(MaintenanceModel.priority == priority)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_open_for_vehicle(self, vehicle_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(MaintenanceModel)
            .where(
                MaintenanceModel.vehicle_id == vehicle_id,
                MaintenanceModel.status.in_(OPEN_MAINTENANCE),
            )
        )
        return result.scalar() or 0

    async def count_by_status(self, status: MaintenanceStatus) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(MaintenanceModel)
            .where(MaintenanceModel.status == status)
        )
        return result.scalar() or 0

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(MaintenanceModel.id))
        return list(result.scalars().all())

    async def delete(self, record_id: str) -> None:
        await self.session.execute(
            delete(MaintenanceModel).where(MaintenanceModel.id == record_id)
        )


class FuelRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: FuelRecordModel) -> FuelRecordModel:
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_id(self, record_id: str) -> Optional[FuelRecordModel]:
        return await self.session.get(FuelRecordModel, record_id)

    async def get_all(
        self,
        vehicle_id: str | None = None,
        driver_id: str | None = None,
    ) -> list[FuelRecordModel]:
        query = select(FuelRecordModel).order_by(FuelRecordModel.filled_at.desc())
        if vehicle_id:
            query = query.where(FuelRecordModel.vehicle_id == vehicle_id)
        if driver_id:
            query = query.where(FuelRecordModel.driver_id == driver_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def totals_by_vehicle(self) -> list[tuple[str, float, float, int]]:
        """Rows of (vehicle_id, litres, cost, fill count)."""
        result = await self.session.execute(
            select(
                FuelRecordModel.vehicle_id,
                func.sum(FuelRecordModel.quantity_liters),
                func.sum(FuelRecordModel.total_cost),
                func.count(),
            )
            .group_by(FuelRecordModel.vehicle_id)
            .order_by(FuelRecordModel.vehicle_id)
        )
        return [
            (vehicle_id, float(litres), float(cost), int(count))
            for vehicle_id, litres, cost, count in result.all()
        ]

    async def daily_totals(
        self, since: datetime
    ) -> list[tuple[date, int, float, float, float]]:
        """Rows of (day, fill count, litres, cost, average price), newest first."""
        day = func.date(FuelRecordModel.filled_at, type_=Date)
        result = await self.session.execute(
            select(
                day,
                func.count(),
                func.sum(FuelRecordModel.quantity_liters),
                func.sum(FuelRecordModel.total_cost),
                func.avg(FuelRecordModel.cost_per_liter),
            )
            .where(FuelRecordModel.filled_at >= since)
            .group_by(day)
            .order_by(day.desc())
        )
        return [
            (filled_on, int(count), float(litres), float(cost), float(price))
            for filled_on, count, litres, cost, price in result.all()
        ]

    async def delete(self, record_id: str) -> None:
        await self.session.execute(
            delete(FuelRecordModel).where(FuelRecordModel.id == record_id)
        )

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(FuelRecordModel.id))
        return list(result.scalars().all())
