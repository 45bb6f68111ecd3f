"""Domain enumerations and state-transition rules."""

import enum


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    IN_USE = "IN_USE"
    MAINTENANCE = "MAINTENANCE"
    INACTIVE = "INACTIVE"


# State machine: maps current status -> set of valid next statuses
VEHICLE_TRANSITIONS: dict[VehicleStatus, set[VehicleStatus]] = {
    VehicleStatus.AVAILABLE: {
        VehicleStatus.ASSIGNED,
        VehicleStatus.IN_USE,
        VehicleStatus.MAINTENANCE,
        VehicleStatus.INACTIVE,
    },
    VehicleStatus.ASSIGNED: {
        VehicleStatus.AVAILABLE,
        VehicleStatus.IN_USE,
        VehicleStatus.INACTIVE,
    },
    VehicleStatus.IN_USE: {VehicleStatus.ASSIGNED, VehicleStatus.AVAILABLE},
    VehicleStatus.MAINTENANCE: {VehicleStatus.AVAILABLE},
    VehicleStatus.INACTIVE: {VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE},
}

# Statuses set by explicit administrative action; not derivable from trips
# or assignments.
ADMINISTRATIVE_HOLDS = frozenset({VehicleStatus.MAINTENANCE, VehicleStatus.INACTIVE})


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class AccountStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


ACCOUNT_TRANSITIONS: dict[AccountStatus, set[AccountStatus]] = {
    AccountStatus.PENDING: {AccountStatus.ACTIVE, AccountStatus.INACTIVE},
    AccountStatus.ACTIVE: {AccountStatus.INACTIVE},
    AccountStatus.INACTIVE: {AccountStatus.ACTIVE},
}


class TripStatus(str, enum.Enum):
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.ONGOING: {TripStatus.COMPLETED},
    TripStatus.COMPLETED: set(),
}


class MaintenancePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MaintenanceStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


MAINTENANCE_TRANSITIONS: dict[MaintenanceStatus, set[MaintenanceStatus]] = {
    MaintenanceStatus.PENDING: {MaintenanceStatus.APPROVED, MaintenanceStatus.REJECTED},
    MaintenanceStatus.APPROVED: {
        MaintenanceStatus.IN_PROGRESS,
        MaintenanceStatus.COMPLETED,
    },
    MaintenanceStatus.IN_PROGRESS: {MaintenanceStatus.COMPLETED},
    MaintenanceStatus.REJECTED: set(),
    MaintenanceStatus.COMPLETED: set(),
}

# Records that still hold (or may still take) their vehicle out of service
OPEN_MAINTENANCE = frozenset(
    {
        MaintenanceStatus.PENDING,
        MaintenanceStatus.APPROVED,
        MaintenanceStatus.IN_PROGRESS,
    }
)


class FuelStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


FUEL_TRANSITIONS: dict[FuelStatus, set[FuelStatus]] = {
    FuelStatus.PENDING: {FuelStatus.APPROVED, FuelStatus.REJECTED},
    FuelStatus.APPROVED: {FuelStatus.COMPLETED},
    FuelStatus.REJECTED: set(),
    FuelStatus.COMPLETED: set(),
}
