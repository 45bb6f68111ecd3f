"""
Unit of Work -- the transaction boundary of every engine operation.

``UnitOfWork.run(operation, lock_keys=...)``

1. takes the Redis locks of every vehicle / driver the operation touches
   (sorted, bounded wait -> ``ResourceBusy``);
2. opens one session and one transaction; the operation receives the
   session and does all of its reads and writes through it;
3. commits on success, rolls back on any exception;
4. releases the locks only after commit / rollback.

Storage failures are translated into the core taxonomy here, so nothing
above this layer sees a SQLAlchemy or Redis exception:

* ``StaleDataError`` (lost version CAS)   -> retried, then ``ConflictError``
* ``IntegrityError`` (unique guards)      -> ``ConflictError``
* timeouts / dropped connections          -> ``StorageUnavailable``
* any other SQLAlchemy error              -> logged, generic ``FleetError``
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fleet.config import settings
from fleet.domain.errors import ConflictError, FleetError, StorageUnavailable
from fleet.infrastructure.locks import LockSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[AsyncSession], Awaitable[T]]


class UnitOfWork:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: aioredis.Redis,
        *,
        timeout_seconds: float = settings.storage_timeout_seconds,
        lock_ttl_seconds: int = settings.lock_ttl_seconds,
        lock_wait_seconds: float = settings.lock_wait_seconds,
        max_retries: int = settings.max_conflict_retries,
    ):
        self.session_factory = session_factory
        self.redis = redis
        self.timeout_seconds = timeout_seconds
        self.lock_ttl_seconds = lock_ttl_seconds
        self.lock_wait_seconds = lock_wait_seconds
        self.max_retries = max(1, max_retries)

    async def run(
        self, operation: Operation[T], lock_keys: Iterable[str] = ()
    ) -> T:
        """Run *operation* atomically under the locks of *lock_keys*."""
        keys = tuple(lock_keys)
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._run_once(operation, keys)
            except StaleDataError:
                logger.warning(
                    "Concurrent vehicle update on %s (attempt %d/%d)",
                    ", ".join(keys) or "-",
                    attempt,
                    self.max_retries,
                )
            except IntegrityError as exc:
                logger.info("Uniqueness guard rejected write: %s", exc.orig)
                raise ConflictError(
                    "Conflicting concurrent change, request not applied"
                ) from None
            except (OperationalError, InterfaceError) as exc:
                logger.warning("Database unavailable: %s", exc.orig)
                raise StorageUnavailable("Database unavailable") from None
            except SQLAlchemyError:
                logger.exception("Unexpected storage error")
                raise FleetError("Internal storage error") from None
            except RedisError as exc:
                logger.warning("Redis unavailable: %s", exc)
                raise StorageUnavailable("Lock service unavailable") from None
        raise ConflictError(
            "Resource changed concurrently, retry the request",
            details={"attempts": self.max_retries},
        )

    async def read(self, operation: Operation[T]) -> T:
        """Run a read-only *operation* without taking locks."""
        return await self.run(operation)

    async def _run_once(self, operation: Operation[T], keys: tuple[str, ...]) -> T:
        async with LockSet(
            self.redis,
            keys,
            ttl_seconds=self.lock_ttl_seconds,
            wait_seconds=self.lock_wait_seconds,
        ):
            try:
                return await asyncio.wait_for(
                    self._transaction(operation), timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Unit of work exceeded %.1fs, rolled back", self.timeout_seconds
                )
                raise StorageUnavailable(
                    "Storage did not respond in time, retry shortly"
                ) from None

    async def _transaction(self, operation: Operation[T]) -> T:
        async with self.session_factory() as session:
            async with session.begin():
                return await operation(session)
