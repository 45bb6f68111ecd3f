"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from fleet.domain.enums import (
    AccountStatus,
    FuelStatus,
    MaintenancePriority,
    MaintenanceStatus,
    TripStatus,
    UserRole,
    VehicleStatus,
)


# ── Requests ──────────────────────────────────────────────────────────


class VehicleCreateRequest(BaseModel):
    name: str = Field(..., max_length=100)
    registration: str = Field(..., max_length=100)
    make: str = Field("Unknown", max_length=100)
    model: str = Field(..., max_length=100)
    type: str = Field(..., max_length=50)
    year: int
    odometer_km: float = Field(0.0, allow_inf_nan=False)
    days_since_service: int = 0
    vehicle_group: str = "Fleet"
    vin: Optional[str] = None
    number_plate: Optional[str] = None


class UserCreateRequest(BaseModel):
    email: str = Field(..., max_length=255)
    name: str = Field(..., max_length=255)
    role: UserRole = UserRole.EMPLOYEE


class AccountStatusRequest(BaseModel):
    status: AccountStatus


class AssignVehicleRequest(BaseModel):
    vehicle_id: str


class TripStartRequest(BaseModel):
    driver_id: Optional[str] = Field(
        None, description="Defaults to the calling actor."
    )
    vehicle_id: str
    start_location: str
    destination: str
    purpose: str
    start_odometer: Optional[float] = Field(
        None,
        allow_inf_nan=False,
        description="Defaults to the vehicle's current odometer.",
    )
    start_lat: Optional[float] = Field(None, allow_inf_nan=False)
    start_lon: Optional[float] = Field(None, allow_inf_nan=False)
    dest_lat: Optional[float] = Field(None, allow_inf_nan=False)
    dest_lon: Optional[float] = Field(None, allow_inf_nan=False)
    notes: Optional[str] = None
    estimated_distance: Optional[float] = Field(None, allow_inf_nan=False)


class TripEndRequest(BaseModel):
    end_odometer: float = Field(..., allow_inf_nan=False)
    end_location: Optional[str] = None
    notes: Optional[str] = None


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., allow_inf_nan=False)
    longitude: float = Field(..., allow_inf_nan=False)
    timestamp: Optional[datetime] = None


class MaintenanceCreateRequest(BaseModel):
    vehicle_id: str
    service_type: str = Field(..., max_length=100)
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    scheduled_date: date
    current_odometer: Optional[float] = Field(None, allow_inf_nan=False)
    estimated_cost: float = Field(0.0, allow_inf_nan=False)
    notes: Optional[str] = None


class MaintenanceCompleteRequest(BaseModel):
    actual_cost: Optional[float] = Field(None, allow_inf_nan=False)
    service_provider: Optional[str] = None
    completion_notes: Optional[str] = None


class FuelCreateRequest(BaseModel):
    vehicle_id: str
    driver_id: Optional[str] = None
    trip_id: Optional[str] = None
    fuel_type: str = Field(..., max_length=50)
    quantity_liters: float = Field(..., allow_inf_nan=False)
    cost_per_liter: float = Field(..., allow_inf_nan=False)
    odometer_reading: Optional[float] = Field(None, allow_inf_nan=False)
    fuel_station: Optional[str] = None
    location: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    filled_at: Optional[datetime] = None


class FuelCompleteRequest(BaseModel):
    receipt_number: Optional[str] = None
    notes: Optional[str] = None


class RouteRequest(BaseModel):
    source_id: int
    destination_id: int


# ── Responses ─────────────────────────────────────────────────────────


class VehicleResponse(BaseModel):
    id: str
    name: str
    registration: str
    make: str
    model: str
    type: str
    year: int
    odometer_km: float
    days_since_service: int
    status: VehicleStatus
    vehicle_group: Optional[str] = None
    vin: Optional[str] = None
    number_plate: Optional[str] = None
    maintenance_priority_score: int
    needs_maintenance: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    status: AccountStatus
    assigned_vehicle: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AssignmentResponse(BaseModel):
    driver_id: str
    vehicle_id: Optional[str] = None
    vehicle_status: Optional[VehicleStatus] = None

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: str
    driver_id: str
    vehicle_id: str
    start_location: str
    start_lat: Optional[float] = None
    start_lon: Optional[float] = None
    destination: str
    dest_lat: Optional[float] = None
    dest_lon: Optional[float] = None
    end_location: Optional[str] = None
    purpose: str
    notes: Optional[str] = None
    estimated_distance: Optional[float] = None
    start_odometer: float
    end_odometer: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    status: TripStatus
    current_lat: Optional[float] = None
    current_lon: Optional[float] = None
    last_update: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripStatsResponse(BaseModel):
    ongoing: int
    completed: int
    total: int
    total_distance_km: float
    average_distance_km: float

    model_config = {"from_attributes": True}


class MaintenanceResponse(BaseModel):
    id: str
    vehicle_id: str
    service_type: str
    priority: MaintenancePriority
    scheduled_date: date
    current_odometer: Optional[float] = None
    estimated_cost: float
    actual_cost: Optional[float] = None
    service_provider: Optional[str] = None
    status: MaintenanceStatus
    notes: Optional[str] = None
    completion_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    requested_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PriorityReportResponse(BaseModel):
    vehicles: list[VehicleResponse]
    urgent: int

    model_config = {"from_attributes": True}


class FuelResponse(BaseModel):
    id: str
    vehicle_id: str
    driver_id: Optional[str] = None
    trip_id: Optional[str] = None
    fuel_type: str
    quantity_liters: float
    cost_per_liter: float
    total_cost: float
    odometer_reading: Optional[float] = None
    fuel_station: Optional[str] = None
    location: Optional[str] = None
    receipt_number: Optional[str] = None
    status: FuelStatus
    notes: Optional[str] = None
    filled_at: datetime
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VehicleFuelStatsResponse(BaseModel):
    vehicle_id: str
    total_liters: float
    total_cost: float
    fill_count: int
    average_cost_per_liter: float

    model_config = {"from_attributes": True}


class FuelTrendResponse(BaseModel):
    day: date
    refuel_count: int
    total_liters: float
    total_cost: float
    average_cost_per_liter: float

    model_config = {"from_attributes": True}


class DeletedCountResponse(BaseModel):
    deleted: int


class LocationResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class RouteResponse(BaseModel):
    source: str
    destination: str
    distance_km: int
    path: list[str]

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    vehicles_by_status: dict[str, int]
    users_by_status: dict[str, int]
    total_vehicles: int
    total_users: int
    ongoing_trips: int
    pending_maintenance: int

    model_config = {"from_attributes": True}


class StatusCorrectionResponse(BaseModel):
    vehicle_id: str
    previous: VehicleStatus
    corrected: VehicleStatus

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    checked: int
    skipped: list[str] = []
    corrections: list[StatusCorrectionResponse] = []

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
