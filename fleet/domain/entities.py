"""
Domain rules shared by the controllers.

Patterns used
-------------
- **State Pattern** via ``ensure_transition``: every status change of a
  vehicle, trip, maintenance record, fuel record or account goes through the
  transition table of its enum (see ``enums.py``).
- ``derive_vehicle_status`` is the projection that rebuilds a vehicle's
  cached status from the authoritative trip / assignment records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional, TypeVar

from .enums import ADMINISTRATIVE_HOLDS, VehicleStatus
from .errors import InvalidOdometer, InvalidTransition, ValidationError

S = TypeVar("S")

KM_PER_PRIORITY_POINT = 5000
DAYS_PER_PRIORITY_POINT = 30
SERVICE_KM_THRESHOLD = 10_000
SERVICE_DAYS_THRESHOLD = 90


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_transition(
    entity: str, transitions: Mapping[S, set[S]], current: S, target: S
) -> S:
    """Return *target* if ``current -> target`` is legal, else raise."""
    if target not in transitions.get(current, set()):
        raise InvalidTransition(entity, current, target)
    return target


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90 or not -180 <= self.longitude <= 180:
            raise ValidationError(
                f"Coordinates out of range: ({self.latitude}, {self.longitude})"
            )


@dataclass(frozen=True)
class TripMetrics:
    distance_km: float
    duration_minutes: int


@dataclass(frozen=True)
class Assignment:
    driver_id: str
    vehicle_id: Optional[str]
    vehicle_status: Optional[VehicleStatus]


@dataclass(frozen=True)
class StatusCorrection:
    vehicle_id: str
    previous: VehicleStatus
    corrected: VehicleStatus


# ── Trip ──────────────────────────────────────────────────────────────


def require_finite(**values: Optional[float]) -> None:
    """Reject NaN and infinite numbers; None means the field was not given."""
    bad = [
        name
        for name, value in values.items()
        if value is not None and not math.isfinite(value)
    ]
    if bad:
        raise ValidationError(
            f"Must be a finite number: {', '.join(bad)}",
            details={"fields": bad},
        )


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def compute_trip_metrics(
    start_odometer: float,
    end_odometer: float,
    start_time: datetime,
    end_time: datetime,
) -> TripMetrics:
    bad = [
        name
        for name, value in (
            ("start_odometer", start_odometer),
            ("end_odometer", end_odometer),
        )
        if not math.isfinite(value)
    ]
    if bad:
        raise InvalidOdometer(
            "Odometer readings must be finite numbers", details={"fields": bad}
        )
    if end_odometer < start_odometer:
        raise InvalidOdometer(
            f"End odometer {end_odometer} is below start odometer {start_odometer}",
            details={"start_odometer": start_odometer, "end_odometer": end_odometer},
        )
    elapsed = (_as_utc(end_time) - _as_utc(start_time)).total_seconds()
    return TripMetrics(
        distance_km=end_odometer - start_odometer,
        duration_minutes=max(0, round(elapsed / 60)),
    )


# ── Vehicle ───────────────────────────────────────────────────────────


def maintenance_priority_score(odometer_km: float, days_since_service: int) -> int:
    """Wear score: one point per 5000 km plus one per 30 days since service."""
    return math.floor(odometer_km / KM_PER_PRIORITY_POINT) + math.floor(
        days_since_service / DAYS_PER_PRIORITY_POINT
    )


def needs_maintenance(odometer_km: float, days_since_service: int) -> bool:
    return (
        odometer_km > SERVICE_KM_THRESHOLD
        or days_since_service > SERVICE_DAYS_THRESHOLD
    )


def derive_vehicle_status(
    current: VehicleStatus, has_ongoing_trip: bool, has_assignment: bool
) -> VehicleStatus:
    """Rebuild a vehicle's status from the records it caches.

    An ongoing trip always wins.  MAINTENANCE and INACTIVE are administrative
    holds and survive; otherwise the status follows the assignment.
    """
    if has_ongoing_trip:
        return VehicleStatus.IN_USE
    if current in ADMINISTRATIVE_HOLDS:
        return current
    if has_assignment:
        return VehicleStatus.ASSIGNED
    return VehicleStatus.AVAILABLE


# ── Fuel ──────────────────────────────────────────────────────────────


def fuel_total_cost(quantity_liters: float, cost_per_liter: float) -> float:
    require_finite(quantity_liters=quantity_liters, cost_per_liter=cost_per_liter)
    if quantity_liters <= 0 or cost_per_liter <= 0:
        raise ValidationError("Quantity and cost per liter must be positive")
    return round(quantity_liters * cost_per_liter, 2)
