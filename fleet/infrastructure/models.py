"""
SQLAlchemy ORM models.

Tables
------
* ``users``            -- admins and employees (drivers)
* ``vehicles``         -- fleet vehicles; ``status`` is a cached projection
* ``trips``            -- trip lifecycle records
* ``maintenance``      -- maintenance requests and their workflow state
* ``fuel_records``     -- fuel fill-ups and their approval state

Consistency guards
------------------
* ``vehicles.version`` is SQLAlchemy's ``version_id_col``: every UPDATE is a
  compare-and-swap on it and a lost race raises ``StaleDataError``.
* ``users.assigned_vehicle`` is unique: one driver per vehicle.
* Partial unique indexes on ``trips`` allow at most one ONGOING trip per
  driver and per vehicle.

Vehicle references are weak (plain ids, no foreign key) so that history
survives a vehicle being retired.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from .database import Base
from fleet.domain.entities import (
    maintenance_priority_score,
    needs_maintenance,
    utcnow,
)
from fleet.domain.enums import (
    AccountStatus,
    FuelStatus,
    MaintenancePriority,
    MaintenanceStatus,
    TripStatus,
    UserRole,
    VehicleStatus,
)

_ONGOING = text("status = 'ONGOING'")


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(16), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    status = Column(
        Enum(AccountStatus), default=AccountStatus.PENDING, nullable=False
    )
    assigned_vehicle = Column(String(16), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_users_role", "role"),)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(16), primary_key=True)
    name = Column(String(100), nullable=False)
    registration = Column(String(100), nullable=False)
    make = Column(String(100), default="Unknown", nullable=False)
    model = Column(String(100), nullable=False)
    type = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    odometer_km = Column(Float, default=0.0, nullable=False)
    days_since_service = Column(Integer, default=0, nullable=False)
    status = Column(
        Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )
    vehicle_group = Column(String(100), default="Fleet")
    vin = Column(String(100), nullable=True)
    number_plate = Column(String(100), nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("idx_vehicles_status", "status"),)

    @property
    def maintenance_priority_score(self) -> int:
        return maintenance_priority_score(self.odometer_km, self.days_since_service)

    @property
    def needs_maintenance(self) -> bool:
        return needs_maintenance(self.odometer_km, self.days_since_service)


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(String(32), primary_key=True)
    driver_id = Column(String(16), ForeignKey("users.id"), nullable=False)
    vehicle_id = Column(String(16), nullable=False)

    start_location = Column(Text, nullable=False)
    start_lat = Column(Float, nullable=True)
    start_lon = Column(Float, nullable=True)
    destination = Column(Text, nullable=False)
    dest_lat = Column(Float, nullable=True)
    dest_lon = Column(Float, nullable=True)
    end_location = Column(Text, nullable=True)

    purpose = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    estimated_distance = Column(Float, nullable=True)

    start_odometer = Column(Float, nullable=False)
    end_odometer = Column(Float, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    distance_km = Column(Float, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    status = Column(Enum(TripStatus), default=TripStatus.ONGOING, nullable=False)

    # Live GPS position, last write wins
    current_lat = Column(Float, nullable=True)
    current_lon = Column(Float, nullable=True)
    last_update = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_vehicle", "vehicle_id"),
        Index("idx_trips_status", "status"),
        Index(
            "uq_trips_driver_ongoing",
            "driver_id",
            unique=True,
            postgresql_where=_ONGOING,
            sqlite_where=_ONGOING,
        ),
        Index(
            "uq_trips_vehicle_ongoing",
            "vehicle_id",
            unique=True,
            postgresql_where=_ONGOING,
            sqlite_where=_ONGOING,
        ),
    )


class MaintenanceModel(Base):
    __tablename__ = "maintenance"

    id = Column(String(16), primary_key=True)
    vehicle_id = Column(String(16), nullable=False)
    service_type = Column(String(100), nullable=False)
    priority = Column(Enum(MaintenancePriority), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    current_odometer = Column(Float, nullable=True)
    estimated_cost = Column(Float, default=0.0, nullable=False)
    actual_cost = Column(Float, nullable=True)
    service_provider = Column(String(255), nullable=True)
    status = Column(
        Enum(MaintenanceStatus), default=MaintenanceStatus.PENDING, nullable=False
    )
    notes = Column(Text, nullable=True)
    completion_notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    requested_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_maintenance_vehicle", "vehicle_id"),
        Index("idx_maintenance_status", "status"),
        Index("idx_maintenance_priority", "priority"),
    )


class FuelRecordModel(Base):
    __tablename__ = "fuel_records"

    id = Column(String(16), primary_key=True)
    vehicle_id = Column(String(16), nullable=False)
    driver_id = Column(String(16), ForeignKey("users.id"), nullable=True)
    trip_id = Column(String(32), ForeignKey("trips.id"), nullable=True)
    fuel_type = Column(String(50), nullable=False)
    quantity_liters = Column(Float, nullable=False)
    cost_per_liter = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)
    odometer_reading = Column(Float, nullable=True)
    fuel_station = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    receipt_number = Column(String(100), nullable=True)
    status = Column(Enum(FuelStatus), default=FuelStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)
    filled_at = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_fuel_vehicle", "vehicle_id"),
        Index("idx_fuel_driver", "driver_id"),
        Index("idx_fuel_date", "filled_at"),
    )
