"""
Reconciliation -- rebuilds every vehicle's cached status.

``vehicle.status`` is a projection of the ONGOING trips and the driver
assignments.  A pass walks the fleet one vehicle at a time, each under that
vehicle's lock, so it never races a live allocation or trip.  A vehicle
whose lock is busy is skipped; the operation holding it leaves the vehicle
consistent, and the next pass checks it again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import StatusCorrection
from fleet.domain.errors import NotFoundError, ResourceBusy
from fleet.infrastructure.locks import vehicle_key
from fleet.infrastructure.repositories import VehicleRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    checked: int = 0
    skipped: list[str] = field(default_factory=list)
    corrections: list[StatusCorrection] = field(default_factory=list)


class Reconciler:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def run(self) -> ReconcileReport:
        report = ReconcileReport()
        vehicle_ids = await self.uow.read(
            lambda session: VehicleRepository(session).list_ids()
        )
        for vehicle_id in sorted(vehicle_ids):
            try:
                correction = await self.uow.run(
                    lambda session, vid=vehicle_id: ResourceStateStore(
                        session
                    ).reconcile_vehicle(vid),
                    lock_keys=(vehicle_key(vehicle_id),),
                )
            except ResourceBusy:
                logger.debug("Vehicle %s busy, skipped", vehicle_id)
                report.skipped.append(vehicle_id)
                continue
            except NotFoundError:
                # removed since the id list was read
                continue
            report.checked += 1
            if correction is not None:
                logger.warning(
                    "Vehicle %s status corrected: %s -> %s",
                    correction.vehicle_id,
                    correction.previous.value,
                    correction.corrected.value,
                )
                report.corrections.append(correction)
        return report
