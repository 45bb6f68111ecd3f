"""
Trip Lifecycle Controller
=========================

ONGOING ──end_trip──▶ COMPLETED

Starting a trip puts the vehicle IN_USE; ending it returns the vehicle to
ASSIGNED (a driver still holds it) or AVAILABLE, and advances the vehicle's
odometer by the distance driven.  Both run under the driver + vehicle locks;
the partial unique indexes on ONGOING trips are the storage backstop.

Live positions (``update_location``) are last-write-wins and take no lock;
the write itself only matches a trip that is still ONGOING.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import (
    Coordinates,
    compute_trip_metrics,
    ensure_transition,
    require_finite,
    utcnow,
)
from fleet.domain.enums import (
    ADMINISTRATIVE_HOLDS,
    TRIP_TRANSITIONS,
    AccountStatus,
    TripStatus,
    VehicleStatus,
)
from fleet.domain.errors import (
    ConflictError,
    DriverBusy,
    DriverNotEligible,
    TripNotFound,
    TripNotOngoing,
    ValidationError,
    VehicleBusy,
    VehicleUnavailable,
)
from fleet.domain.identifiers import IdCategory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.locks import driver_key, vehicle_key
from fleet.infrastructure.models import TripModel
from fleet.infrastructure.repositories import TripRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripStats:
    ongoing: int
    completed: int
    total: int
    total_distance_km: float
    average_distance_km: float


def _require_text(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def _optional_coordinates(
    lat: Optional[float], lon: Optional[float], label: str
) -> Optional[Coordinates]:
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise ValidationError(f"{label} needs both latitude and longitude")
    return Coordinates(lat, lon)


async def _get_trip(session: AsyncSession, trip_id: str) -> TripModel:
    trip = await TripRepository(session).get_by_id(trip_id)
    if trip is None:
        raise TripNotFound(trip_id)
    return trip


class TripLifecycleController:
    def __init__(self, uow: UnitOfWork, identity: IdentityRegistry):
        self.uow = uow
        self.identity = identity

    async def start_trip(
        self,
        driver_id: str,
        vehicle_id: str,
        start_location: str,
        destination: str,
        purpose: str,
        start_odometer: Optional[float] = None,
        start_lat: Optional[float] = None,
        start_lon: Optional[float] = None,
        dest_lat: Optional[float] = None,
        dest_lon: Optional[float] = None,
        notes: Optional[str] = None,
        estimated_distance: Optional[float] = None,
    ) -> TripModel:
        _require_text(
            driver_id=driver_id,
            vehicle_id=vehicle_id,
            start_location=start_location,
            destination=destination,
            purpose=purpose,
        )
        require_finite(
            start_odometer=start_odometer,
            estimated_distance=estimated_distance,
            start_lat=start_lat,
            start_lon=start_lon,
            dest_lat=dest_lat,
            dest_lon=dest_lon,
        )
        if start_odometer is not None and start_odometer < 0:
            raise ValidationError("Start odometer cannot be negative")
        if estimated_distance is not None and estimated_distance < 0:
            raise ValidationError("Estimated distance cannot be negative")
        start = _optional_coordinates(start_lat, start_lon, "Start location")
        dest = _optional_coordinates(dest_lat, dest_lon, "Destination")

        async def operation(session: AsyncSession) -> TripModel:
            store = ResourceStateStore(session)
            driver = await store.get_user(driver_id, for_update=True)
            vehicle = await store.get_vehicle(vehicle_id, for_update=True)

            if AccountStatus(driver.status) != AccountStatus.ACTIVE:
                raise DriverNotEligible(
                    f"User {driver_id} is {driver.status.value}",
                    details={"driver_id": driver_id, "status": driver.status.value},
                )
            if await store.trips.get_ongoing_for_driver(driver_id) is not None:
                raise DriverBusy(
                    f"Driver {driver_id} already has an ongoing trip",
                    details={"driver_id": driver_id},
                )
            if await store.trips.get_ongoing_for_vehicle(vehicle_id) is not None:
                raise VehicleBusy(
                    f"Vehicle {vehicle_id} is already on a trip",
                    details={"vehicle_id": vehicle_id},
                )
            if VehicleStatus(vehicle.status) in ADMINISTRATIVE_HOLDS:
                raise VehicleUnavailable(
                    f"Vehicle {vehicle_id} is {vehicle.status.value}",
                    details={"vehicle_id": vehicle_id, "status": vehicle.status.value},
                )
            holder = await store.holder_of(vehicle_id)
            if holder is not None and holder.id != driver_id:
                raise VehicleUnavailable(
                    f"Vehicle {vehicle_id} is assigned to {holder.id}",
                    details={"vehicle_id": vehicle_id, "driver_id": holder.id},
                )

            trip = TripModel(
                id=await self.identity.next_id(session, IdCategory.TRIP),
                driver_id=driver_id,
                vehicle_id=vehicle_id,
                start_location=start_location.strip(),
                start_lat=start.latitude if start else None,
                start_lon=start.longitude if start else None,
                destination=destination.strip(),
                dest_lat=dest.latitude if dest else None,
                dest_lon=dest.longitude if dest else None,
                purpose=purpose.strip(),
                notes=notes,
                estimated_distance=estimated_distance,
                start_odometer=(
                    start_odometer if start_odometer is not None else vehicle.odometer_km
                ),
                start_time=utcnow(),
                status=TripStatus.ONGOING,
            )
            await store.trips.create(trip)
            await store.set_status(vehicle, VehicleStatus.IN_USE)
            return trip

        trip = await self.uow.run(
            operation, lock_keys=(driver_key(driver_id), vehicle_key(vehicle_id))
        )
        logger.info("Trip %s started: %s on %s", trip.id, driver_id, vehicle_id)
        return trip

    async def end_trip(
        self,
        trip_id: str,
        end_odometer: float,
        end_location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TripModel:
        # driver and vehicle of a trip never change, so they are safe to
        # read before the locks are taken
        peeked = await self.uow.read(lambda session: _get_trip(session, trip_id))

        async def operation(session: AsyncSession) -> TripModel:
            store = ResourceStateStore(session)
            trip = await _get_trip(session, trip_id)
            if TripStatus(trip.status) != TripStatus.ONGOING:
                raise TripNotOngoing(trip_id, trip.status)

            ended_at = utcnow()
            metrics = compute_trip_metrics(
                trip.start_odometer, end_odometer, trip.start_time, ended_at
            )
            trip.status = ensure_transition(
                "trip", TRIP_TRANSITIONS, TripStatus.ONGOING, TripStatus.COMPLETED
            )
            trip.end_odometer = end_odometer
            trip.end_time = ended_at
            trip.distance_km = metrics.distance_km
            trip.duration_minutes = metrics.duration_minutes
            trip.end_location = (end_location or "").strip() or trip.destination
            if notes:
                trip.notes = notes
            await session.flush()

            vehicle = await store.vehicles.get_for_update(trip.vehicle_id)
            if vehicle is not None:
                vehicle.odometer_km += metrics.distance_km
                if VehicleStatus(vehicle.status) == VehicleStatus.IN_USE:
                    holder = await store.holder_of(vehicle.id)
                    await store.set_status(
                        vehicle,
                        VehicleStatus.ASSIGNED if holder else VehicleStatus.AVAILABLE,
                    )
                await session.flush()
            return trip

        trip = await self.uow.run(
            operation,
            lock_keys=(driver_key(peeked.driver_id), vehicle_key(peeked.vehicle_id)),
        )
        logger.info(
            "Trip %s completed: %.1f km in %d min",
            trip_id,
            trip.distance_km,
            trip.duration_minutes,
        )
        return trip

    async def update_location(
        self,
        trip_id: str,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
    ) -> TripModel:
        position = Coordinates(latitude, longitude)

        async def operation(session: AsyncSession) -> TripModel:
            repo = TripRepository(session)
            stored = await repo.update_position(
                trip_id, position.latitude, position.longitude, timestamp or utcnow()
            )
            trip = await _get_trip(session, trip_id)
            if not stored:
                raise TripNotOngoing(trip_id, trip.status)
            return trip

        return await self.uow.run(operation)

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a COMPLETED trip; an ONGOING one still backs its vehicle's
        IN_USE status and is refused."""

        async def operation(session: AsyncSession) -> None:
            trip = await _get_trip(session, trip_id)
            deleted = await TripRepository(session).delete_completed([trip_id])
            if not deleted:
                raise ConflictError(
                    f"Trip {trip_id} is ongoing and cannot be deleted",
                    details={"id": trip_id, "status": trip.status.value},
                )

        await self.uow.run(operation)
        logger.info("Trip %s deleted", trip_id)

    async def delete_driver_trips(self, driver_id: str) -> int:
        """Delete a driver's COMPLETED trips; an ongoing one is kept."""

        async def operation(session: AsyncSession) -> int:
            store = ResourceStateStore(session)
            await store.get_user(driver_id)
            trips = await store.trips.get_all(
                status=TripStatus.COMPLETED, driver_id=driver_id
            )
            return await store.trips.delete_completed([trip.id for trip in trips])

        count = await self.uow.run(operation)
        logger.info("Deleted %d trips of %s", count, driver_id)
        return count

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_trip(self, trip_id: str) -> TripModel:
        return await self.uow.read(lambda session: _get_trip(session, trip_id))

    async def list_trips(
        self,
        status: Optional[TripStatus] = None,
        driver_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> list[TripModel]:
        return await self.uow.read(
            lambda session: TripRepository(session).get_all(
                status=status, driver_id=driver_id, vehicle_id=vehicle_id
            )
        )

    async def live_trips(self) -> list[TripModel]:
        return await self.list_trips(status=TripStatus.ONGOING)

    async def trip_stats(self) -> TripStats:
        async def operation(session: AsyncSession) -> TripStats:
            repo = TripRepository(session)
            ongoing = await repo.count_by_status(TripStatus.ONGOING)
            completed = await repo.count_by_status(TripStatus.COMPLETED)
            total_km, avg_km = await repo.distance_totals()
            return TripStats(
                ongoing=ongoing,
                completed=completed,
                total=ongoing + completed,
                total_distance_km=round(total_km, 2),
                average_distance_km=round(avg_km, 2),
            )

        return await self.uow.read(operation)
