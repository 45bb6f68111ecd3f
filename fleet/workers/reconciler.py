"""
Background Reconciliation Worker
================================

Runs every ``RECONCILE_INTERVAL_SECONDS`` (default 60 s).

Concurrency safety
------------------
* **Redis distributed lock** (``reconciler``) ensures only one instance runs
  a pass at a time across multiple API processes.
* Each vehicle is then reconciled under its own ``vehicle:<id>`` lock, the
  same one allocations and trips take.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fleet.config import settings
from fleet.domain.errors import ResourceBusy
from fleet.infrastructure.database import async_session_factory
from fleet.infrastructure.locks import DistributedLock
from fleet.infrastructure.redis_client import get_redis
from fleet.services.reconciliation import Reconciler, ReconcileReport
from fleet.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_reconcile_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reconcile worker started (interval=%ds)",
        settings.reconcile_interval_seconds,
    )


async def stop_reconcile_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reconcile worker stopped")


async def run_reconcile_cycle(uow: UnitOfWork) -> Optional[ReconcileReport]:
    """Run one pass.  Returns ``None`` if another instance holds the lock."""
    lock = DistributedLock(
        uow.redis, "reconciler", ttl_seconds=max(settings.lock_ttl_seconds, 60)
    )
    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping pass")
        return None

    try:
        report = await Reconciler(uow).run()
    finally:
        await lock.release()

    if report.corrections:
        logger.info(
            "Reconcile pass: %d vehicles checked, %d corrected",
            report.checked,
            len(report.corrections),
        )
    return report


async def run_reconcile_now(uow: UnitOfWork) -> ReconcileReport:
    """On-demand pass; raises ``ResourceBusy`` if one is already running."""
    report = await run_reconcile_cycle(uow)
    if report is None:
        raise ResourceBusy("A reconciliation pass is already running")
    return report


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a pass then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            redis = await get_redis()
            await run_reconcile_cycle(UnitOfWork(async_session_factory, redis))
        except Exception:
            logger.exception("Unhandled error in reconcile pass")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reconcile_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next pass
