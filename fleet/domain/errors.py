"""
Core error taxonomy.

Every operation of the engine either returns its result or raises one of
these.  The API layer maps each family to an HTTP status; nothing below
``fleet.api`` knows about HTTP.

* ``ValidationError``    -- missing / malformed input, not retried
* ``ConflictError``      -- busy / already assigned, user-actionable
* ``NotFoundError``      -- unknown id
* ``InvalidTransition``  -- state machine violation (stale client state)
* ``StorageUnavailable`` -- transient, caller may retry with backoff
* ``NoRouteFound``       -- graph has no path between two locations
"""

from __future__ import annotations

from typing import Any, Optional


class FleetError(Exception):
    """Base class; also used as-is for generic internal failures."""

    error_code = "ERR_INTERNAL"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ── Validation ────────────────────────────────────────────────────────


class ValidationError(FleetError):
    error_code = "ERR_VALIDATION"


class DriverNotEligible(ValidationError):
    error_code = "ERR_DRIVER_NOT_ELIGIBLE"


class InvalidOdometer(ValidationError):
    error_code = "ERR_INVALID_ODOMETER"


# ── Conflicts ─────────────────────────────────────────────────────────


class ConflictError(FleetError):
    error_code = "ERR_CONFLICT"


class VehicleUnavailable(ConflictError):
    error_code = "ERR_VEHICLE_UNAVAILABLE"


class AlreadyAssigned(ConflictError):
    error_code = "ERR_ALREADY_ASSIGNED"


class DriverBusy(ConflictError):
    error_code = "ERR_DRIVER_BUSY"


class VehicleBusy(ConflictError):
    error_code = "ERR_VEHICLE_BUSY"


class ResourceBusy(ConflictError):
    """A lock on the affected vehicle / driver could not be taken in time."""

    error_code = "ERR_RESOURCE_BUSY"


# ── Lookup ────────────────────────────────────────────────────────────


class NotFoundError(FleetError):
    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} {resource_id} not found",
            details={"resource": resource, "id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class TripNotFound(NotFoundError):
    error_code = "ERR_TRIP_NOT_FOUND"

    def __init__(self, trip_id: str):
        super().__init__("Trip", trip_id)


# ── State machine ─────────────────────────────────────────────────────


class InvalidTransition(FleetError):
    error_code = "ERR_INVALID_TRANSITION"

    def __init__(self, entity: str, current: Any, target: Any):
        current_v = getattr(current, "value", current)
        target_v = getattr(target, "value", target)
        super().__init__(
            f"Cannot transition {entity} from {current_v} to {target_v}",
            details={"entity": entity, "from": current_v, "to": target_v},
        )


class TripNotOngoing(InvalidTransition):
    error_code = "ERR_TRIP_NOT_ONGOING"

    def __init__(self, trip_id: str, current: Any):
        FleetError.__init__(
            self,
            f"Trip {trip_id} is not ongoing",
            details={"id": trip_id, "status": getattr(current, "value", current)},
        )


# ── Infrastructure / routing / access ─────────────────────────────────


class StorageUnavailable(FleetError):
    """Persistence did not answer in time; safe to retry with backoff."""

    error_code = "ERR_STORAGE_UNAVAILABLE"


class NoRouteFound(FleetError):
    error_code = "ERR_NO_ROUTE"


class PermissionDenied(FleetError):
    error_code = "ERR_PERMISSION_DENIED"
