"""Tests for the trip lifecycle."""

import pytest

from fleet.domain.entities import utcnow
from fleet.domain.enums import AccountStatus, TripStatus, VehicleStatus
from fleet.domain.errors import (
    ConflictError,
    DriverBusy,
    DriverNotEligible,
    InvalidOdometer,
    NotFoundError,
    TripNotFound,
    TripNotOngoing,
    ValidationError,
    VehicleBusy,
    VehicleUnavailable,
)
from fleet.infrastructure.models import FuelRecordModel, TripModel, VehicleModel
from fleet.infrastructure.repositories import TripRepository


async def _start(trips, driver_id="U002", vehicle_id="V001", **kwargs):
    return await trips.start_trip(
        driver_id, vehicle_id, "Warehouse", "Delivery Hub", "Delivery", **kwargs
    )


class TestStartTrip:
    @pytest.mark.asyncio
    async def test_start_on_assigned_vehicle(
        self, trips, allocation, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001", odometer_km=1500)
        await allocation.assign("U002", "V001")

        trip = await _start(trips)

        assert trip.id == "TRIP-0001"
        assert trip.status == TripStatus.ONGOING
        assert trip.start_odometer == 1500
        assert trip.start_time is not None
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.IN_USE

    @pytest.mark.asyncio
    async def test_start_on_unassigned_available_vehicle(
        self, trips, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips, start_odometer=1200)
        assert trip.start_odometer == 1200
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.IN_USE

    @pytest.mark.asyncio
    async def test_coordinates_stored(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(
            trips, start_lat=12.97, start_lon=77.59, dest_lat=13.0, dest_lon=77.6
        )
        assert (trip.start_lat, trip.start_lon) == (12.97, 77.59)
        assert (trip.dest_lat, trip.dest_lon) == (13.0, 77.6)

    @pytest.mark.asyncio
    async def test_missing_fields(self, trips):
        with pytest.raises(ValidationError) as exc_info:
            await trips.start_trip("U002", "V001", " ", "Delivery Hub", "")
        assert exc_info.value.details["missing"] == ["start_location", "purpose"]

    @pytest.mark.asyncio
    async def test_half_a_coordinate_rejected(self, trips):
        with pytest.raises(ValidationError):
            await _start(trips, start_lat=12.0)

    @pytest.mark.asyncio
    async def test_negative_odometer_rejected(self, trips):
        with pytest.raises(ValidationError):
            await _start(trips, start_odometer=-1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field", ["start_odometer", "estimated_distance", "start_lat"]
    )
    async def test_non_finite_numbers_rejected(self, trips, field):
        values = {"start_lat": 12.0, "start_lon": 77.0, field: float("inf")}
        with pytest.raises(ValidationError) as exc_info:
            await _start(trips, **values)
        assert exc_info.value.details["fields"] == [field]

    @pytest.mark.asyncio
    async def test_inactive_driver(self, trips, make_user, make_vehicle):
        await make_user("U002", status=AccountStatus.INACTIVE)
        await make_vehicle("V001")
        with pytest.raises(DriverNotEligible):
            await _start(trips)

    @pytest.mark.asyncio
    async def test_driver_already_on_trip(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_vehicle("V001")
        await make_vehicle("V002")
        await _start(trips)
        with pytest.raises(DriverBusy):
            await _start(trips, vehicle_id="V002")

    @pytest.mark.asyncio
    async def test_vehicle_already_on_trip(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_user("U003")
        await make_vehicle("V001")
        await _start(trips)
        with pytest.raises(VehicleBusy):
            await _start(trips, driver_id="U003")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [VehicleStatus.MAINTENANCE, VehicleStatus.INACTIVE]
    )
    async def test_vehicle_on_hold(self, trips, make_user, make_vehicle, status):
        await make_user("U002")
        await make_vehicle("V001", status=status)
        with pytest.raises(VehicleUnavailable):
            await _start(trips)

    @pytest.mark.asyncio
    async def test_vehicle_assigned_to_other_driver(
        self, trips, allocation, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_user("U003")
        await make_vehicle("V001")
        await allocation.assign("U003", "V001")

        with pytest.raises(VehicleUnavailable):
            await _start(trips)
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.ASSIGNED
        assert await trips.list_trips() == []


class TestEndTrip:
    @pytest.mark.asyncio
    async def test_end_returns_vehicle_to_holder(
        self, trips, allocation, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001", odometer_km=1000)
        await allocation.assign("U002", "V001")
        trip = await _start(trips)

        ended = await trips.end_trip(trip.id, 1042.5, "Delivery Hub")

        assert ended.status == TripStatus.COMPLETED
        assert ended.distance_km == 42.5
        assert ended.duration_minutes >= 0
        assert ended.end_time is not None
        vehicle = await fetch(VehicleModel, "V001")
        assert vehicle.status == VehicleStatus.ASSIGNED
        assert vehicle.odometer_km == 1042.5

    @pytest.mark.asyncio
    async def test_end_unassigned_vehicle_becomes_available(
        self, trips, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001", odometer_km=0)
        trip = await _start(trips)
        await trips.end_trip(trip.id, 10)
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_end_location_defaults_to_destination(
        self, trips, make_user, make_vehicle
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        ended = await trips.end_trip(trip.id, 1005)
        assert ended.end_location == "Delivery Hub"

    @pytest.mark.asyncio
    async def test_odometer_below_start(self, trips, make_user, make_vehicle, fetch):
        await make_user("U002")
        await make_vehicle("V001", odometer_km=1000)
        trip = await _start(trips)

        with pytest.raises(InvalidOdometer):
            await trips.end_trip(trip.id, 999)

        stored = await fetch(TripModel, trip.id)
        assert stored.status == TripStatus.ONGOING
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.IN_USE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("end", [float("inf"), float("nan")])
    async def test_non_finite_end_odometer(
        self, trips, make_user, make_vehicle, fetch, end
    ):
        await make_user("U002")
        await make_vehicle("V001", odometer_km=1000)
        trip = await _start(trips)

        with pytest.raises(InvalidOdometer):
            await trips.end_trip(trip.id, end)

        assert (await fetch(TripModel, trip.id)).status == TripStatus.ONGOING
        vehicle = await fetch(VehicleModel, "V001")
        assert vehicle.odometer_km == 1000
        assert vehicle.status == VehicleStatus.IN_USE

    @pytest.mark.asyncio
    async def test_end_twice(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        await trips.end_trip(trip.id, 1001)
        with pytest.raises(TripNotOngoing):
            await trips.end_trip(trip.id, 1002)

    @pytest.mark.asyncio
    async def test_unknown_trip(self, trips):
        with pytest.raises(TripNotFound):
            await trips.end_trip("TRIP-9999", 10)

    @pytest.mark.asyncio
    async def test_driver_can_start_again_after_end(
        self, trips, make_user, make_vehicle
    ):
        await make_user("U002")
        await make_vehicle("V001")
        first = await _start(trips)
        await trips.end_trip(first.id, 1010)
        second = await _start(trips)
        assert second.id == "TRIP-0002"
        assert second.start_odometer == 1010


class TestLocationAndReads:
    @pytest.mark.asyncio
    async def test_update_location(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)

        updated = await trips.update_location(trip.id, 12.9, 77.6)

        assert (updated.current_lat, updated.current_lon) == (12.9, 77.6)
        assert updated.last_update is not None

    @pytest.mark.asyncio
    async def test_update_location_of_completed_trip(
        self, trips, make_user, make_vehicle
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        await trips.end_trip(trip.id, 1001)
        with pytest.raises(TripNotOngoing):
            await trips.update_location(trip.id, 12.9, 77.6)

    @pytest.mark.asyncio
    async def test_position_write_skips_trip_completed_after_read(
        self, trips, make_user, make_vehicle, session_factory, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)

        async with session_factory() as session:
            seen = await session.get(TripModel, trip.id)
            assert seen.status == TripStatus.ONGOING
            await trips.end_trip(trip.id, 1010)
            stored = await TripRepository(session).update_position(
                trip.id, 12.9, 77.6, utcnow()
            )
            await session.commit()

        assert stored is False
        completed = await fetch(TripModel, trip.id)
        assert completed.status == TripStatus.COMPLETED
        assert completed.current_lat is None
        assert completed.last_update is None

    @pytest.mark.asyncio
    async def test_update_location_when_trip_ends_first(
        self, trips, make_user, make_vehicle, fetch, monkeypatch
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        original = TripRepository.update_position

        async def end_then_update(self, trip_id, *args):
            await trips.end_trip(trip_id, 1010)
            return await original(self, trip_id, *args)

        monkeypatch.setattr(TripRepository, "update_position", end_then_update)

        with pytest.raises(TripNotOngoing):
            await trips.update_location(trip.id, 12.9, 77.6)
        assert (await fetch(TripModel, trip.id)).current_lat is None

    @pytest.mark.asyncio
    async def test_update_location_out_of_range(self, trips):
        with pytest.raises(ValidationError):
            await trips.update_location("TRIP-0001", 95, 0)

    @pytest.mark.asyncio
    async def test_live_trips_and_filters(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_user("U003")
        await make_vehicle("V001")
        await make_vehicle("V002")
        first = await _start(trips)
        await _start(trips, driver_id="U003", vehicle_id="V002")
        await trips.end_trip(first.id, 1020)

        live = await trips.live_trips()
        assert [t.driver_id for t in live] == ["U003"]
        assert len(await trips.list_trips(driver_id="U002")) == 1
        assert len(await trips.list_trips(vehicle_id="V002")) == 1

    @pytest.mark.asyncio
    async def test_trip_stats(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_user("U003")
        await make_vehicle("V001")
        await make_vehicle("V002")
        first = await _start(trips)
        second = await _start(trips, driver_id="U003", vehicle_id="V002")
        await trips.end_trip(first.id, 1030)
        await trips.end_trip(second.id, 1010)
        await _start(trips)

        stats = await trips.trip_stats()

        assert stats.ongoing == 1
        assert stats.completed == 2
        assert stats.total == 3
        assert stats.total_distance_km == 40
        assert stats.average_distance_km == 20

    @pytest.mark.asyncio
    async def test_get_trip(self, trips, make_user, make_vehicle):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        assert (await trips.get_trip(trip.id)).driver_id == "U002"
        with pytest.raises(TripNotFound):
            await trips.get_trip("TRIP-0404")


class TestDeleteTrips:
    @pytest.mark.asyncio
    async def test_delete_completed_trip(self, trips, make_user, make_vehicle, fetch):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        await trips.end_trip(trip.id, 1010)

        await trips.delete_trip(trip.id)

        assert await fetch(TripModel, trip.id) is None
        with pytest.raises(TripNotFound):
            await trips.delete_trip(trip.id)

    @pytest.mark.asyncio
    async def test_ongoing_trip_cannot_be_deleted(
        self, trips, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)

        with pytest.raises(ConflictError) as exc_info:
            await trips.delete_trip(trip.id)

        assert exc_info.value.details == {"id": trip.id, "status": "ONGOING"}
        assert (await fetch(TripModel, trip.id)).status == TripStatus.ONGOING
        assert (await fetch(VehicleModel, "V001")).status == VehicleStatus.IN_USE

    @pytest.mark.asyncio
    async def test_fuel_record_outlives_its_trip(
        self, trips, fuel, make_user, make_vehicle, fetch
    ):
        await make_user("U002")
        await make_vehicle("V001")
        trip = await _start(trips)
        record = await fuel.record(
            "V001", "Diesel", 20, 95.0, driver_id="U002", trip_id=trip.id
        )
        await trips.end_trip(trip.id, 1010)

        await trips.delete_trip(trip.id)

        kept = await fetch(FuelRecordModel, record.id)
        assert kept is not None
        assert kept.trip_id is None

    @pytest.mark.asyncio
    async def test_delete_driver_trips_keeps_ongoing(
        self, trips, make_user, make_vehicle
    ):
        await make_user("U002")
        await make_user("U003")
        await make_vehicle("V001")
        await make_vehicle("V002")
        for odometer in (1010, 1020):
            trip = await _start(trips)
            await trips.end_trip(trip.id, odometer)
        other = await _start(trips, driver_id="U003", vehicle_id="V002")
        ongoing = await _start(trips)

        assert await trips.delete_driver_trips("U002") == 2

        assert [t.id for t in await trips.list_trips(driver_id="U002")] == [ongoing.id]
        assert [t.id for t in await trips.list_trips(driver_id="U003")] == [other.id]
        assert await trips.delete_driver_trips("U002") == 0

    @pytest.mark.asyncio
    async def test_delete_trips_of_unknown_driver(self, trips):
        with pytest.raises(NotFoundError):
            await trips.delete_driver_trips("U404")
