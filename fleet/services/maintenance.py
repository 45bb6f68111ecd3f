"""
Maintenance Workflow Controller
===============================

PENDING ──approve──▶ APPROVED ──start_work──▶ IN_PROGRESS ──complete──▶ COMPLETED
   │                    └───────────────complete──────────────────────▲
   └──reject──▶ REJECTED

Approval (and starting work) takes the vehicle out of service, but only
when it is idle: an AVAILABLE or INACTIVE vehicle goes to MAINTENANCE, a
vehicle that is ASSIGNED or IN_USE is left alone.  Completion puts a held
vehicle back to AVAILABLE and resets its service clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import ensure_transition, require_finite, utcnow
from fleet.domain.enums import (
    MAINTENANCE_TRANSITIONS,
    MaintenancePriority,
    MaintenanceStatus,
    VehicleStatus,
)
from fleet.domain.errors import ConflictError, NotFoundError, ValidationError
from fleet.domain.identifiers import IdCategory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.locks import record_key, vehicle_key
from fleet.infrastructure.models import MaintenanceModel, VehicleModel
from fleet.infrastructure.repositories import MaintenanceRepository

logger = logging.getLogger(__name__)

# Vehicle statuses approval may move to MAINTENANCE
_IDLE = frozenset({VehicleStatus.AVAILABLE, VehicleStatus.INACTIVE})
# Vehicle statuses completion returns to AVAILABLE
_HELD = frozenset({VehicleStatus.MAINTENANCE, VehicleStatus.INACTIVE})
# Records that may not be deleted
_LOCKED_IN = frozenset({MaintenanceStatus.APPROVED, MaintenanceStatus.IN_PROGRESS})


@dataclass(frozen=True)
class PriorityReport:
    vehicles: list[VehicleModel]
    urgent: int


async def _get_record(session: AsyncSession, record_id: str) -> MaintenanceModel:
    record = await MaintenanceRepository(session).get_by_id(record_id)
    if record is None:
        raise NotFoundError("Maintenance record", record_id)
    return record


class MaintenanceWorkflowController:
    def __init__(self, uow: UnitOfWork, identity: IdentityRegistry):
        self.uow = uow
        self.identity = identity

    async def request(
        self,
        vehicle_id: str,
        service_type: str,
        priority: MaintenancePriority,
        scheduled_date: date,
        current_odometer: Optional[float] = None,
        estimated_cost: float = 0.0,
        notes: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> MaintenanceModel:
        if not (service_type or "").strip():
            raise ValidationError("Service type is required")
        require_finite(
            estimated_cost=estimated_cost, current_odometer=current_odometer
        )
        if estimated_cost < 0:
            raise ValidationError("Estimated cost cannot be negative")
        if current_odometer is not None and current_odometer < 0:
            raise ValidationError("Odometer cannot be negative")

        async def operation(session: AsyncSession) -> MaintenanceModel:
            vehicle = await ResourceStateStore(session).get_vehicle(vehicle_id)
            record = MaintenanceModel(
                id=await self.identity.next_id(session, IdCategory.MAINTENANCE),
                vehicle_id=vehicle_id,
                service_type=service_type.strip(),
                priority=priority,
                scheduled_date=scheduled_date,
                current_odometer=(
                    current_odometer
                    if current_odometer is not None
                    else vehicle.odometer_km
                ),
                estimated_cost=estimated_cost,
                notes=notes,
                requested_by=requested_by,
                status=MaintenanceStatus.PENDING,
            )
            return await MaintenanceRepository(session).create(record)

        record = await self.uow.run(operation, lock_keys=(vehicle_key(vehicle_id),))
        logger.info(
            "Maintenance %s requested for %s (%s)",
            record.id,
            vehicle_id,
            priority.value,
        )
        return record

    async def approve(self, record_id: str) -> MaintenanceModel:
        return await self._advance(record_id, MaintenanceStatus.APPROVED)

    async def reject(self, record_id: str) -> MaintenanceModel:
        return await self._advance(record_id, MaintenanceStatus.REJECTED)

    async def start_work(self, record_id: str) -> MaintenanceModel:
        return await self._advance(record_id, MaintenanceStatus.IN_PROGRESS)

    async def complete(
        self,
        record_id: str,
        actual_cost: Optional[float],
        service_provider: Optional[str],
        completion_notes: Optional[str] = None,
    ) -> MaintenanceModel:
        require_finite(actual_cost=actual_cost)
        if actual_cost is None or actual_cost < 0:
            raise ValidationError("Actual cost is required and cannot be negative")
        if not (service_provider or "").strip():
            raise ValidationError("Service provider is required")

        def finish(record: MaintenanceModel) -> None:
            record.actual_cost = actual_cost
            record.service_provider = service_provider.strip()
            record.completion_notes = completion_notes
            record.completed_at = utcnow()

        return await self._advance(record_id, MaintenanceStatus.COMPLETED, finish)

    async def delete(self, record_id: str) -> None:
        async def operation(session: AsyncSession) -> None:
            record = await _get_record(session, record_id)
            if MaintenanceStatus(record.status) in _LOCKED_IN:
                raise ConflictError(
                    f"Maintenance {record_id} is {record.status.value}"
                    " and cannot be deleted",
                    details={"id": record_id, "status": record.status.value},
                )
            await MaintenanceRepository(session).delete(record_id)

        await self.uow.run(
            operation, lock_keys=(record_key("maintenance", record_id),)
        )
        logger.info("Maintenance %s deleted", record_id)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, record_id: str) -> MaintenanceModel:
        return await self.uow.read(lambda session: _get_record(session, record_id))

    async def list_records(
        self,
        status: Optional[MaintenanceStatus] = None,
        vehicle_id: Optional[str] = None,
        priority: Optional[MaintenancePriority] = None,
    ) -> list[MaintenanceModel]:
        return await self.uow.read(
            lambda session: MaintenanceRepository(session).get_all(
                status=status, vehicle_id=vehicle_id, priority=priority
            )
        )

    async def priority_report(self) -> PriorityReport:
        """All vehicles, lowest wear score first."""
        vehicles = await self.uow.read(
            lambda session: ResourceStateStore(session).list_vehicles()
        )
        ordered = sorted(
            vehicles, key=lambda v: (v.maintenance_priority_score, v.id)
        )
        return PriorityReport(
            vehicles=ordered, urgent=sum(1 for v in ordered if v.needs_maintenance)
        )

    # ── Internals ─────────────────────────────────────────────────────

    async def _advance(
        self,
        record_id: str,
        target: MaintenanceStatus,
        apply: Optional[Callable[[MaintenanceModel], None]] = None,
    ) -> MaintenanceModel:
        peeked = await self.uow.read(lambda session: _get_record(session, record_id))

        async def operation(session: AsyncSession) -> MaintenanceModel:
            record = await _get_record(session, record_id)
            record.status = ensure_transition(
                "maintenance",
                MAINTENANCE_TRANSITIONS,
                MaintenanceStatus(record.status),
                target,
            )
            if apply is not None:
                apply(record)
            await session.flush()
            await self._settle_vehicle(ResourceStateStore(session), record, target)
            return record

        record = await self.uow.run(
            operation,
            lock_keys=(
                record_key("maintenance", record_id),
                vehicle_key(peeked.vehicle_id),
            ),
        )
        logger.info("Maintenance %s -> %s", record_id, target.value)
        return record

    @staticmethod
    async def _settle_vehicle(
        store: ResourceStateStore,
        record: MaintenanceModel,
        target: MaintenanceStatus,
    ) -> None:
        vehicle = await store.vehicles.get_for_update(record.vehicle_id)
        if vehicle is None:
            return
        current = VehicleStatus(vehicle.status)
        if target in (MaintenanceStatus.APPROVED, MaintenanceStatus.IN_PROGRESS):
            if current in _IDLE:
                await store.set_status(vehicle, VehicleStatus.MAINTENANCE)
            elif current != VehicleStatus.MAINTENANCE:
                logger.info(
                    "Vehicle %s is %s; left in service for %s",
                    vehicle.id,
                    current.value,
                    record.id,
                )
        elif target == MaintenanceStatus.COMPLETED:
            vehicle.days_since_service = 0
            if current in _HELD:
                await store.set_status(vehicle, VehicleStatus.AVAILABLE)
            await store.session.flush()
