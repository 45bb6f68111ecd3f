"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin (U001) and 5 employees, all ACTIVE
  - 4 sample vehicles with mileage and service history
  - 1 assignment (U002 -> V002)
  - 1 PENDING maintenance request for the most worn vehicle

The Redis id sequences need no seeding: the next id is always floored by
the highest id already stored.
"""

import asyncio
from datetime import date, timedelta

from sqlalchemy import text

from fleet.domain.enums import (
    AccountStatus,
    MaintenancePriority,
    MaintenanceStatus,
    UserRole,
    VehicleStatus,
)
from fleet.infrastructure.database import async_session_factory, engine
from fleet.infrastructure.models import MaintenanceModel, UserModel, VehicleModel

USERS = [
    {"id": "U001", "name": "Fleet Admin", "email": "admin@fleet.local", "role": UserRole.ADMIN},
    {"id": "U002", "name": "Rajesh Kumar", "email": "rajesh@fleet.local", "role": UserRole.EMPLOYEE},
    {"id": "U003", "name": "Amit Sharma", "email": "amit@fleet.local", "role": UserRole.EMPLOYEE},
    {"id": "U004", "name": "Priya Singh", "email": "priya@fleet.local", "role": UserRole.EMPLOYEE},
    {"id": "U005", "name": "Vikram Patel", "email": "vikram@fleet.local", "role": UserRole.EMPLOYEE},
    {"id": "U006", "name": "Sunita Verma", "email": "sunita@fleet.local", "role": UserRole.EMPLOYEE},
]

VEHICLES = [
    {"id": "V001", "registration": "MH-12-AB-1234", "make": "Tata", "model": "Ace", "type": "Truck", "year": 2020, "km": 12000, "days": 95},
    {"id": "V002", "registration": "DL-01-CD-5678", "make": "Mahindra", "model": "Bolero", "type": "Van", "year": 2019, "km": 8500, "days": 45},
    {"id": "V003", "registration": "KA-03-EF-9012", "make": "Maruti", "model": "Eeco", "type": "Car", "year": 2021, "km": 15000, "days": 120},
    {"id": "V004", "registration": "TN-09-GH-3456", "make": "Ashok Leyland", "model": "Dost", "type": "Truck", "year": 2018, "km": 25000, "days": 150},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        for u in USERS:
            session.add(UserModel(status=AccountStatus.ACTIVE, **u))
        await session.flush()
        print(f"  Created {len(USERS)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicles = {}
        for v in VEHICLES:
            vehicles[v["id"]] = VehicleModel(
                id=v["id"],
                name=f"{v['make']} {v['model']}",
                registration=v["registration"],
                number_plate=v["registration"],
                make=v["make"],
                model=v["model"],
                type=v["type"],
                year=v["year"],
                odometer_km=v["km"],
                days_since_service=v["days"],
                status=VehicleStatus.AVAILABLE,
            )
            session.add(vehicles[v["id"]])
        await session.flush()
        print(f"  Created {len(VEHICLES)} vehicles")

        # ── Assignment ────────────────────────────────────────────────
        driver = await session.get(UserModel, "U002")
        driver.assigned_vehicle = "V002"
        vehicles["V002"].status = VehicleStatus.ASSIGNED
        print("  Assigned V002 to U002")

        # ── Maintenance ───────────────────────────────────────────────
        worn = max(vehicles.values(), key=lambda v: v.maintenance_priority_score)
        session.add(
            MaintenanceModel(
                id="M001",
                vehicle_id=worn.id,
                service_type="General Service",
                priority=MaintenancePriority.HIGH,
                scheduled_date=date.today() + timedelta(days=3),
                current_odometer=worn.odometer_km,
                estimated_cost=5000.0,
                status=MaintenanceStatus.PENDING,
                requested_by="U001",
            )
        )
        print(f"  Requested maintenance M001 for {worn.id}")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
