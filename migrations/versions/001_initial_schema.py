"""Initial schema: users, vehicles, trips, maintenance and fuel records.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

VEHICLE_STATUS = sa.Enum(
    "AVAILABLE", "ASSIGNED", "IN_USE", "MAINTENANCE", "INACTIVE", name="vehiclestatus"
)
USER_ROLE = sa.Enum("ADMIN", "EMPLOYEE", name="userrole")
ACCOUNT_STATUS = sa.Enum("PENDING", "ACTIVE", "INACTIVE", name="accountstatus")
TRIP_STATUS = sa.Enum("ONGOING", "COMPLETED", name="tripstatus")
MAINTENANCE_PRIORITY = sa.Enum("LOW", "MEDIUM", "HIGH", name="maintenancepriority")
MAINTENANCE_STATUS = sa.Enum(
    "PENDING",
    "APPROVED",
    "REJECTED",
    "IN_PROGRESS",
    "COMPLETED",
    name="maintenancestatus",
)
FUEL_STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", "COMPLETED", name="fuelstatus")


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("status", ACCOUNT_STATUS, nullable=False),
        # one driver per vehicle
        sa.Column("assigned_vehicle", sa.String(16), unique=True, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_users_role", "users", ["role"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("registration", sa.String(100), nullable=False),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("odometer_km", sa.Float, nullable=False),
        sa.Column("days_since_service", sa.Integer, nullable=False),
        sa.Column("status", VEHICLE_STATUS, nullable=False),
        sa.Column("vehicle_group", sa.String(100)),
        sa.Column("vin", sa.String(100), nullable=True),
        sa.Column("number_plate", sa.String(100), nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "driver_id", sa.String(16), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("vehicle_id", sa.String(16), nullable=False),
        sa.Column("start_location", sa.Text, nullable=False),
        sa.Column("start_lat", sa.Float, nullable=True),
        sa.Column("start_lon", sa.Float, nullable=True),
        sa.Column("destination", sa.Text, nullable=False),
        sa.Column("dest_lat", sa.Float, nullable=True),
        sa.Column("dest_lon", sa.Float, nullable=True),
        sa.Column("end_location", sa.Text, nullable=True),
        sa.Column("purpose", sa.String(255), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("estimated_distance", sa.Float, nullable=True),
        sa.Column("start_odometer", sa.Float, nullable=False),
        sa.Column("end_odometer", sa.Float, nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("status", TRIP_STATUS, nullable=False),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("current_lon", sa.Float, nullable=True),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_trips_driver", "trips", ["driver_id"])
    op.create_index("idx_trips_vehicle", "trips", ["vehicle_id"])
    op.create_index("idx_trips_status", "trips", ["status"])
    # at most one ONGOING trip per driver and per vehicle
    op.create_index(
        "uq_trips_driver_ongoing",
        "trips",
        ["driver_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ONGOING'"),
    )
    op.create_index(
        "uq_trips_vehicle_ongoing",
        "trips",
        ["vehicle_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ONGOING'"),
    )

    # ── maintenance ───────────────────────────────────────────────────
    op.create_table(
        "maintenance",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("vehicle_id", sa.String(16), nullable=False),
        sa.Column("service_type", sa.String(100), nullable=False),
        sa.Column("priority", MAINTENANCE_PRIORITY, nullable=False),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("current_odometer", sa.Float, nullable=True),
        sa.Column("estimated_cost", sa.Float, nullable=False),
        sa.Column("actual_cost", sa.Float, nullable=True),
        sa.Column("service_provider", sa.String(255), nullable=True),
        sa.Column("status", MAINTENANCE_STATUS, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("completion_notes", sa.Text, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_maintenance_vehicle", "maintenance", ["vehicle_id"])
    op.create_index("idx_maintenance_status", "maintenance", ["status"])
    op.create_index("idx_maintenance_priority", "maintenance", ["priority"])

    # ── fuel_records ──────────────────────────────────────────────────
    op.create_table(
        "fuel_records",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("vehicle_id", sa.String(16), nullable=False),
        sa.Column(
            "driver_id", sa.String(16), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "trip_id", sa.String(32), sa.ForeignKey("trips.id"), nullable=True
        ),
        sa.Column("fuel_type", sa.String(50), nullable=False),
        sa.Column("quantity_liters", sa.Float, nullable=False),
        sa.Column("cost_per_liter", sa.Float, nullable=False),
        sa.Column("total_cost", sa.Float, nullable=False),
        sa.Column("odometer_reading", sa.Float, nullable=True),
        sa.Column("fuel_station", sa.String(255), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("receipt_number", sa.String(100), nullable=True),
        sa.Column("status", FUEL_STATUS, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("filled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_fuel_vehicle", "fuel_records", ["vehicle_id"])
    op.create_index("idx_fuel_driver", "fuel_records", ["driver_id"])
    op.create_index("idx_fuel_date", "fuel_records", ["filled_at"])


def downgrade() -> None:
    op.drop_table("fuel_records")
    op.drop_table("maintenance")
    op.drop_table("trips")
    op.drop_table("vehicles")
    op.drop_table("users")
    for enum_name in (
        "fuelstatus",
        "maintenancestatus",
        "maintenancepriority",
        "tripstatus",
        "accountstatus",
        "userrole",
        "vehiclestatus",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
