"""
Integration tests for the REST API endpoints.

Runs the app against the per-test SQLite database and FakeRedis, with the
background reconcile worker disabled.
"""

import pytest

from fleet.domain.enums import UserRole, VehicleStatus

API = "/api/v1"


async def _seed(make_user, make_vehicle):
    await make_user("U001", role=UserRole.ADMIN)
    await make_user("U002")
    await make_user("U003")
    await make_vehicle("V001", odometer_km=1000)
    await make_vehicle("V002")


class TestHealthAndRouting:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get(f"{API}/admin/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_locations(self, client):
        resp = await client.get(f"{API}/locations")
        assert resp.status_code == 200
        assert resp.json()[4] == {"id": 4, "name": "Delivery Hub"}

    @pytest.mark.asyncio
    async def test_shortest_route(self, client):
        resp = await client.post(
            f"{API}/routes", json={"source_id": 0, "destination_id": 4}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["distance_km"] == 36
        assert body["path"] == [
            "Warehouse",
            "Service Station",
            "Highway Junction",
            "Delivery Hub",
        ]

    @pytest.mark.asyncio
    async def test_unknown_location(self, client):
        resp = await client.post(
            f"{API}/routes", json={"source_id": 0, "destination_id": 99}
        )
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "ERR_NOT_FOUND"


class TestVehiclesApi:
    @pytest.mark.asyncio
    async def test_add_requires_admin(self, client, employee_headers):
        payload = {
            "name": "Van",
            "registration": "KA01",
            "model": "Eeco",
            "type": "Van",
            "year": 2022,
        }
        resp = await client.post(f"{API}/vehicles", json=payload)
        assert resp.status_code == 403

        resp = await client.post(
            f"{API}/vehicles", json=payload, headers=employee_headers("U002")
        )
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "ERR_PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_add_and_get(self, client, admin_headers):
        resp = await client.post(
            f"{API}/vehicles",
            json={
                "name": "Van",
                "registration": "KA01",
                "model": "Eeco",
                "type": "Van",
                "year": 2022,
                "odometer_km": 11000,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        vehicle = resp.json()
        assert vehicle["id"] == "V001"
        assert vehicle["status"] == "AVAILABLE"
        assert vehicle["needs_maintenance"] is True

        resp = await client.get(f"{API}/vehicles/V001")
        assert resp.json()["registration"] == "KA01"

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, client):
        resp = await client.get(f"{API}/vehicles/V404")
        assert resp.status_code == 404
        body = resp.json()
        assert body["error_code"] == "ERR_NOT_FOUND"
        assert body["details"] == {"resource": "Vehicle", "id": "V404"}

    @pytest.mark.asyncio
    async def test_request_validation_shape(self, client, admin_headers):
        resp = await client.post(
            f"{API}/vehicles", json={"name": "Van"}, headers=admin_headers
        )
        assert resp.status_code == 422
        body = resp.json()
        assert body["error_code"] == "ERR_VALIDATION"
        assert body["details"]["errors"]

    @pytest.mark.asyncio
    async def test_maintenance_priority(self, client, make_vehicle):
        await make_vehicle("V001", odometer_km=20000, days_since_service=100)
        await make_vehicle("V002", odometer_km=100, days_since_service=1)
        resp = await client.get(f"{API}/vehicles/maintenance-priority")
        assert resp.status_code == 200
        body = resp.json()
        assert [v["id"] for v in body["vehicles"]] == ["V002", "V001"]
        assert body["urgent"] == 1


class TestAllocationApi:
    @pytest.mark.asyncio
    async def test_assign_and_conflict(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)

        resp = await client.post(
            f"{API}/users/U002/assign-vehicle",
            json={"vehicle_id": "V001"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "driver_id": "U002",
            "vehicle_id": "V001",
            "vehicle_status": "ASSIGNED",
        }

        resp = await client.post(
            f"{API}/users/U003/assign-vehicle",
            json={"vehicle_id": "V001"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "ERR_VEHICLE_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_admin_cannot_be_assigned(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/users/U001/assign-vehicle",
            json={"vehicle_id": "V001"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "ERR_DRIVER_NOT_ELIGIBLE"

    @pytest.mark.asyncio
    async def test_unassign(self, client, admin_headers, make_user, make_vehicle):
        await _seed(make_user, make_vehicle)
        await client.post(
            f"{API}/users/U002/assign-vehicle",
            json={"vehicle_id": "V001"},
            headers=admin_headers,
        )
        resp = await client.post(
            f"{API}/users/U002/unassign-vehicle", headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["vehicle_status"] == "AVAILABLE"


class TestUsersApi:
    @pytest.mark.asyncio
    async def test_register_and_activate(self, client, admin_headers):
        resp = await client.post(
            f"{API}/users", json={"email": "Neha@Fleet.test", "name": "Neha"}
        )
        assert resp.status_code == 201
        user = resp.json()
        assert user["status"] == "PENDING"
        assert user["email"] == "neha@fleet.test"

        resp = await client.patch(
            f"{API}/users/{user['id']}/status",
            json={"status": "ACTIVE"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_only_admin_registers_admin(
        self, client, admin_headers, employee_headers
    ):
        payload = {"email": "boss@fleet.test", "name": "Boss", "role": "ADMIN"}
        resp = await client.post(
            f"{API}/users", json=payload, headers=employee_headers("U002")
        )
        assert resp.status_code == 403

        resp = await client.post(f"{API}/users", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        payload = {"email": "dup@fleet.test", "name": "Dup"}
        await client.post(f"{API}/users", json=payload)
        resp = await client.post(f"{API}/users", json=payload)
        assert resp.status_code == 409


class TestTripsApi:
    @pytest.mark.asyncio
    async def test_driver_trip_lifecycle(
        self, client, admin_headers, employee_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        await client.post(
            f"{API}/users/U002/assign-vehicle",
            json={"vehicle_id": "V001"},
            headers=admin_headers,
        )
        driver = employee_headers("U002")

        resp = await client.post(
            f"{API}/trips/start",
            json={
                "vehicle_id": "V001",
                "start_location": "Warehouse",
                "destination": "Delivery Hub",
                "purpose": "Delivery",
            },
            headers=driver,
        )
        assert resp.status_code == 201
        trip = resp.json()
        assert trip["driver_id"] == "U002"
        assert trip["status"] == "ONGOING"

        resp = await client.post(
            f"{API}/trips/{trip['id']}/location",
            json={"latitude": 12.9, "longitude": 77.6},
            headers=driver,
        )
        assert resp.status_code == 200
        assert resp.json()["current_lat"] == 12.9

        resp = await client.get(f"{API}/trips/live")
        assert [t["id"] for t in resp.json()] == [trip["id"]]

        resp = await client.post(
            f"{API}/trips/{trip['id']}/end",
            json={"end_odometer": 1036},
            headers=driver,
        )
        assert resp.status_code == 200
        ended = resp.json()
        assert ended["status"] == "COMPLETED"
        assert ended["distance_km"] == 36
        assert ended["end_location"] == "Delivery Hub"

        resp = await client.get(f"{API}/vehicles/V001")
        assert resp.json()["status"] == VehicleStatus.ASSIGNED.value
        assert resp.json()["odometer_km"] == 1036

    @pytest.mark.asyncio
    async def test_driver_cannot_start_for_someone_else(
        self, client, employee_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/trips/start",
            json={
                "driver_id": "U003",
                "vehicle_id": "V002",
                "start_location": "A",
                "destination": "B",
                "purpose": "C",
            },
            headers=employee_headers("U002"),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_start_requires_actor(self, client):
        resp = await client.post(
            f"{API}/trips/start",
            json={
                "vehicle_id": "V001",
                "start_location": "A",
                "destination": "B",
                "purpose": "C",
            },
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_busy_vehicle(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        trip = {
            "vehicle_id": "V002",
            "start_location": "A",
            "destination": "B",
            "purpose": "C",
        }
        resp = await client.post(
            f"{API}/trips/start",
            json={**trip, "driver_id": "U002"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        resp = await client.post(
            f"{API}/trips/start",
            json={**trip, "driver_id": "U003"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "ERR_VEHICLE_BUSY"

    @pytest.mark.asyncio
    async def test_end_below_start_odometer(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/trips/start",
            json={
                "driver_id": "U002",
                "vehicle_id": "V001",
                "start_location": "A",
                "destination": "B",
                "purpose": "C",
            },
            headers=admin_headers,
        )
        trip_id = resp.json()["id"]
        resp = await client.post(
            f"{API}/trips/{trip_id}/end",
            json={"end_odometer": 10},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "ERR_INVALID_ODOMETER"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["Infinity", "NaN"])
    async def test_non_finite_end_odometer_rejected(
        self, client, admin_headers, make_user, make_vehicle, raw
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/trips/start",
            json={
                "driver_id": "U002",
                "vehicle_id": "V001",
                "start_location": "A",
                "destination": "B",
                "purpose": "C",
            },
            headers=admin_headers,
        )
        trip_id = resp.json()["id"]

        resp = await client.post(
            f"{API}/trips/{trip_id}/end",
            content='{"end_odometer": %s}' % raw,
            headers={**admin_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "ERR_VALIDATION"

        resp = await client.get(f"{API}/vehicles")
        assert resp.status_code == 200
        v001 = next(v for v in resp.json() if v["id"] == "V001")
        assert v001["odometer_km"] == 1000
        assert v001["status"] == VehicleStatus.IN_USE.value

    @pytest.mark.asyncio
    async def test_delete_trip(
        self, client, admin_headers, employee_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/trips/start",
            json={
                "driver_id": "U002",
                "vehicle_id": "V001",
                "start_location": "A",
                "destination": "B",
                "purpose": "C",
            },
            headers=admin_headers,
        )
        trip_id = resp.json()["id"]

        resp = await client.delete(f"{API}/trips/{trip_id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json()["details"] == {"id": trip_id, "status": "ONGOING"}

        await client.post(
            f"{API}/trips/{trip_id}/end",
            json={"end_odometer": 1010},
            headers=admin_headers,
        )
        resp = await client.delete(
            f"{API}/trips/{trip_id}", headers=employee_headers("U002")
        )
        assert resp.status_code == 403

        resp = await client.delete(f"{API}/trips/{trip_id}", headers=admin_headers)
        assert resp.status_code == 204
        assert (await client.get(f"{API}/trips/{trip_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_driver_trips(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        for end in (1010, 1020):
            resp = await client.post(
                f"{API}/trips/start",
                json={
                    "driver_id": "U002",
                    "vehicle_id": "V001",
                    "start_location": "A",
                    "destination": "B",
                    "purpose": "C",
                },
                headers=admin_headers,
            )
            await client.post(
                f"{API}/trips/{resp.json()['id']}/end",
                json={"end_odometer": end},
                headers=admin_headers,
            )

        resp = await client.delete(f"{API}/users/U002/trips", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 2}
        assert (await client.get(f"{API}/trips")).json() == []

    @pytest.mark.asyncio
    async def test_unknown_trip(self, client):
        resp = await client.get(f"{API}/trips/TRIP-0404")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "ERR_TRIP_NOT_FOUND"


class TestMaintenanceAndFuelApi:
    @pytest.mark.asyncio
    async def test_maintenance_workflow(
        self, client, admin_headers, employee_headers, make_user, make_vehicle, tomorrow
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/maintenance",
            json={
                "vehicle_id": "V002",
                "service_type": "Oil change",
                "priority": "high",
                "scheduled_date": tomorrow.isoformat(),
                "estimated_cost": 1200,
            },
            headers=employee_headers("U002"),
        )
        assert resp.status_code == 201
        record = resp.json()
        assert record["status"] == "PENDING"
        assert record["requested_by"] == "U002"

        resp = await client.post(
            f"{API}/maintenance/{record['id']}/approve",
            headers=employee_headers("U002"),
        )
        assert resp.status_code == 403

        resp = await client.post(
            f"{API}/maintenance/{record['id']}/approve", headers=admin_headers
        )
        assert resp.json()["status"] == "APPROVED"
        resp = await client.get(f"{API}/vehicles/V002")
        assert resp.json()["status"] == "MAINTENANCE"

        resp = await client.post(
            f"{API}/maintenance/{record['id']}/complete",
            json={"actual_cost": 1100, "service_provider": "City Motors"},
            headers=admin_headers,
        )
        assert resp.json()["status"] == "COMPLETED"
        resp = await client.get(f"{API}/vehicles/V002")
        assert resp.json()["status"] == "AVAILABLE"

    @pytest.mark.asyncio
    async def test_invalid_transition_is_409(
        self, client, admin_headers, make_user, make_vehicle, tomorrow
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/maintenance",
            json={
                "vehicle_id": "V002",
                "service_type": "Tyres",
                "scheduled_date": tomorrow.isoformat(),
            },
            headers=admin_headers,
        )
        record_id = resp.json()["id"]
        resp = await client.post(
            f"{API}/maintenance/{record_id}/start", headers=admin_headers
        )
        assert resp.status_code == 409
        body = resp.json()
        assert body["error_code"] == "ERR_INVALID_TRANSITION"
        assert body["details"] == {
            "entity": "maintenance",
            "from": "PENDING",
            "to": "IN_PROGRESS",
        }

    @pytest.mark.asyncio
    async def test_fuel_defaults_driver_to_actor(
        self, client, admin_headers, employee_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/fuel",
            json={
                "vehicle_id": "V001",
                "fuel_type": "Diesel",
                "quantity_liters": 20,
                "cost_per_liter": 95,
            },
            headers=employee_headers("U003"),
        )
        assert resp.status_code == 201
        record = resp.json()
        assert record["driver_id"] == "U003"
        assert record["total_cost"] == 1900
        assert record["status"] == "pending"

        resp = await client.post(
            f"{API}/fuel/{record['id']}/approve", headers=admin_headers
        )
        assert resp.json()["status"] == "approved"

        resp = await client.get(f"{API}/fuel/stats/vehicle")
        assert resp.json() == [
            {
                "vehicle_id": "V001",
                "total_liters": 20,
                "total_cost": 1900,
                "fill_count": 1,
                "average_cost_per_liter": 95,
            }
        ]

    @pytest.mark.asyncio
    async def test_fuel_trends_and_delete(
        self, client, admin_headers, employee_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/fuel",
            json={
                "vehicle_id": "V001",
                "fuel_type": "Diesel",
                "quantity_liters": 20,
                "cost_per_liter": 95,
            },
            headers=admin_headers,
        )
        record_id = resp.json()["id"]

        resp = await client.get(f"{API}/fuel/stats/trends", params={"days": 7})
        assert resp.status_code == 200
        [today] = resp.json()
        assert today["refuel_count"] == 1
        assert today["total_liters"] == 20
        assert today["total_cost"] == 1900
        assert today["average_cost_per_liter"] == 95

        resp = await client.get(f"{API}/fuel/stats/trends", params={"days": 0})
        assert resp.status_code == 422

        resp = await client.delete(
            f"{API}/fuel/{record_id}", headers=employee_headers("U002")
        )
        assert resp.status_code == 403
        resp = await client.delete(f"{API}/fuel/{record_id}", headers=admin_headers)
        assert resp.status_code == 204
        assert (await client.get(f"{API}/fuel")).json() == []

    @pytest.mark.asyncio
    async def test_fuel_rejects_non_finite_quantity(
        self, client, admin_headers, make_user, make_vehicle
    ):
        await _seed(make_user, make_vehicle)
        resp = await client.post(
            f"{API}/fuel",
            content=(
                '{"vehicle_id": "V001", "fuel_type": "Diesel",'
                ' "quantity_liters": Infinity, "cost_per_liter": 95}'
            ),
            headers={**admin_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422



class TestAdminApi:
    @pytest.mark.asyncio
    async def test_stats(self, client, make_user, make_vehicle):
        await _seed(make_user, make_vehicle)
        resp = await client.get(f"{API}/admin/stats")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_vehicles"] == 2
        assert body["vehicles_by_status"]["AVAILABLE"] == 2
        assert body["users_by_status"]["ACTIVE"] == 3

    @pytest.mark.asyncio
    async def test_reconcile(
        self, client, admin_headers, employee_headers, make_vehicle
    ):
        await make_vehicle("V001", status=VehicleStatus.ASSIGNED)

        resp = await client.post(
            f"{API}/admin/reconcile", headers=employee_headers("U002")
        )
        assert resp.status_code == 403

        resp = await client.post(f"{API}/admin/reconcile", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["corrections"] == [
            {"vehicle_id": "V001", "previous": "ASSIGNED", "corrected": "AVAILABLE"}
        ]
