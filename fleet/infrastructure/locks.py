"""
Redis-based distributed locks.

Every compound check-then-act on a vehicle or driver runs under the locks of
the keys it touches (``vehicle:<id>``, ``driver:<id>``), so two API
processes can never interleave, e.g., two assignments of the same vehicle.
The reconciliation worker uses a single ``reconciler`` lock so only one
instance runs a pass at a time.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  Waiting is polling with a deadline;
nothing blocks indefinitely.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Iterable

import redis.asyncio as aioredis

from fleet.domain.errors import ResourceBusy

RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def vehicle_key(vehicle_id: str) -> str:
    return f"vehicle:{vehicle_id}"


def driver_key(driver_id: str) -> str:
    return f"driver:{driver_id}"


def record_key(kind: str, record_id: str) -> str:
    """Lock key for a workflow record, e.g. ``maintenance:M001``."""
    return f"{kind}:{record_id}"


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def acquire(self, wait_seconds: float = 0.0) -> bool:
        """Try to acquire, polling for up to *wait_seconds*. True on success."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait_seconds
        while True:
            if await self.redis.set(self.key, self.token, nx=True, ex=self.ttl):
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(RELEASE_SCRIPT, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise ResourceBusy(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class LockSet:
    """Hold several ``DistributedLock``s at once.

    Keys are de-duplicated and taken in sorted order so that two callers
    locking the same vehicle+driver pair cannot deadlock each other.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        keys: Iterable[str],
        ttl_seconds: int = 30,
        wait_seconds: float = 5.0,
    ):
        self.locks = [
            DistributedLock(client, key, ttl_seconds) for key in sorted(set(keys))
        ]
        self.wait_seconds = wait_seconds
        self._held: list[DistributedLock] = []

    async def __aenter__(self):
        try:
            for lock in self.locks:
                if not await lock.acquire(self.wait_seconds):
                    raise ResourceBusy(
                        f"{lock.key} is busy, retry shortly",
                        details={"lock": lock.key},
                    )
                self._held.append(lock)
        except BaseException:
            await self._release_held()
            raise
        return self

    async def __aexit__(self, *args):
        await self._release_held()

    async def _release_held(self) -> None:
        while self._held:
            await self._held.pop().release()
