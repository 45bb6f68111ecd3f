"""
Fuel Workflow Controller
========================

pending ──approve──▶ approved ──complete──▶ completed
   └──reject──▶ rejected

A fill-up's total is ``quantity * cost per litre``.  An odometer reading
taken at the pump that is ahead of the vehicle's odometer moves it forward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import (
    ensure_transition,
    fuel_total_cost,
    require_finite,
    utcnow,
)
from fleet.domain.enums import FUEL_TRANSITIONS, FuelStatus
from fleet.domain.errors import NotFoundError, TripNotFound, ValidationError
from fleet.domain.identifiers import IdCategory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.locks import record_key, vehicle_key
from fleet.infrastructure.models import FuelRecordModel
from fleet.infrastructure.repositories import FuelRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleFuelStats:
    vehicle_id: str
    total_liters: float
    total_cost: float
    fill_count: int

    @property
    def average_cost_per_liter(self) -> float:
        if not self.total_liters:
            return 0.0
        return round(self.total_cost / self.total_liters, 2)


@dataclass(frozen=True)
class FuelDailyTrend:
    day: date
    refuel_count: int
    total_liters: float
    total_cost: float
    average_cost_per_liter: float


async def _get_record(session: AsyncSession, record_id: str) -> FuelRecordModel:
    record = await FuelRepository(session).get_by_id(record_id)
    if record is None:
        raise NotFoundError("Fuel record", record_id)
    return record


class FuelWorkflowController:
    def __init__(self, uow: UnitOfWork, identity: IdentityRegistry):
        self.uow = uow
        self.identity = identity

    async def record(
        self,
        vehicle_id: str,
        fuel_type: str,
        quantity_liters: float,
        cost_per_liter: float,
        driver_id: Optional[str] = None,
        trip_id: Optional[str] = None,
        odometer_reading: Optional[float] = None,
        fuel_station: Optional[str] = None,
        location: Optional[str] = None,
        receipt_number: Optional[str] = None,
        notes: Optional[str] = None,
        filled_at: Optional[datetime] = None,
    ) -> FuelRecordModel:
        if not (fuel_type or "").strip():
            raise ValidationError("Fuel type is required")
        total_cost = fuel_total_cost(quantity_liters, cost_per_liter)
        require_finite(odometer_reading=odometer_reading)
        if odometer_reading is not None and odometer_reading < 0:
            raise ValidationError("Odometer reading cannot be negative")

        async def operation(session: AsyncSession) -> FuelRecordModel:
            store = ResourceStateStore(session)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)
            if driver_id:
                await store.get_user(driver_id)
            if trip_id:
                trip = await store.trips.get_by_id(trip_id)
                if trip is None:
                    raise TripNotFound(trip_id)
                if trip.vehicle_id != vehicle_id:
                    raise ValidationError(
                        f"Trip {trip_id} was not driven with {vehicle_id}",
                        details={"trip_id": trip_id, "vehicle_id": vehicle_id},
                    )

            if odometer_reading is not None and odometer_reading > vehicle.odometer_km:
                vehicle.odometer_km = odometer_reading

            record = FuelRecordModel(
                id=await self.identity.next_id(session, IdCategory.FUEL),
                vehicle_id=vehicle_id,
                driver_id=driver_id or None,
                trip_id=trip_id or None,
                fuel_type=fuel_type.strip(),
                quantity_liters=quantity_liters,
                cost_per_liter=cost_per_liter,
                total_cost=total_cost,
                odometer_reading=odometer_reading,
                fuel_station=fuel_station,
                location=location,
                receipt_number=receipt_number,
                notes=notes,
                status=FuelStatus.PENDING,
                filled_at=filled_at or utcnow(),
            )
            return await FuelRepository(session).create(record)

        record = await self.uow.run(operation, lock_keys=(vehicle_key(vehicle_id),))
        logger.info(
            "Fuel %s recorded for %s: %.2f L, %.2f",
            record.id,
            vehicle_id,
            quantity_liters,
            total_cost,
        )
        return record

    async def approve(self, record_id: str) -> FuelRecordModel:
        def stamp(record: FuelRecordModel) -> None:
            record.approved_at = utcnow()

        return await self._advance(record_id, FuelStatus.APPROVED, stamp)

    async def reject(self, record_id: str) -> FuelRecordModel:
        return await self._advance(record_id, FuelStatus.REJECTED)

    async def complete(
        self,
        record_id: str,
        receipt_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> FuelRecordModel:
        def finish(record: FuelRecordModel) -> None:
            record.completed_at = utcnow()
            if receipt_number:
                record.receipt_number = receipt_number
            if notes:
                record.notes = notes

        return await self._advance(record_id, FuelStatus.COMPLETED, finish)

    async def list_records(
        self,
        vehicle_id: Optional[str] = None,
        driver_id: Optional[str] = None,
    ) -> list[FuelRecordModel]:
        return await self.uow.read(
            lambda session: FuelRepository(session).get_all(
                vehicle_id=vehicle_id, driver_id=driver_id
            )
        )

    async def stats_by_vehicle(self) -> list[VehicleFuelStats]:
        rows = await self.uow.read(
            lambda session: FuelRepository(session).totals_by_vehicle()
        )
        return [
            VehicleFuelStats(vehicle_id, round(litres, 2), round(cost, 2), count)
            for vehicle_id, litres, cost, count in rows
        ]

    async def trends(self, days: int = 30) -> list[FuelDailyTrend]:
        """Daily fill-up totals over the last *days* days, newest first."""
        if days < 1:
            raise ValidationError("Trend window must be at least one day")
        since = utcnow() - timedelta(days=days)
        rows = await self.uow.read(
            lambda session: FuelRepository(session).daily_totals(since)
        )
        return [
            FuelDailyTrend(
                day=day,
                refuel_count=count,
                total_liters=round(litres, 2),
                total_cost=round(cost, 2),
                average_cost_per_liter=round(price, 2),
            )
            for day, count, litres, cost, price in rows
        ]

    async def delete(self, record_id: str) -> None:
        async def operation(session: AsyncSession) -> None:
            await _get_record(session, record_id)
            await FuelRepository(session).delete(record_id)

        await self.uow.run(operation, lock_keys=(record_key("fuel", record_id),))
        logger.info("Fuel %s deleted", record_id)

    async def _advance(
        self,
        record_id: str,
        target: FuelStatus,
        apply: Optional[Callable[[FuelRecordModel], None]] = None,
    ) -> FuelRecordModel:
        async def operation(session: AsyncSession) -> FuelRecordModel:
            record = await _get_record(session, record_id)
            record.status = ensure_transition(
                "fuel record", FUEL_TRANSITIONS, FuelStatus(record.status), target
            )
            if apply is not None:
                apply(record)
            return record

        record = await self.uow.run(
            operation, lock_keys=(record_key("fuel", record_id),)
        )
        logger.info("Fuel %s -> %s", record_id, target.value)
        return record
