"""
Identity Registry -- issues ``U001`` / ``V001`` / ``TRIP-0001`` style ids.

The next number is ``max(highest suffix stored for the prefix, last number
issued) + 1``.  Both the comparison and the increment run inside one Lua
script, so concurrent callers (in any process) always get distinct numbers;
reading the floor from storage means a live id is never handed out again,
even after the Redis counter has been lost.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from .repositories import (
    FuelRepository,
    MaintenanceRepository,
    TripRepository,
    UserRepository,
    VehicleRepository,
)
from fleet.domain.identifiers import ID_FORMATS, IdCategory, max_suffix

logger = logging.getLogger(__name__)

NEXT_ID_SCRIPT = """
local current = tonumber(redis.call("get", KEYS[1]) or "0")
local floor = tonumber(ARGV[1])
if current < floor then
    current = floor
end
current = current + 1
redis.call("set", KEYS[1], current)
return current
"""

_REPOSITORIES = {
    IdCategory.USER: UserRepository,
    IdCategory.VEHICLE: VehicleRepository,
    IdCategory.TRIP: TripRepository,
    IdCategory.MAINTENANCE: MaintenanceRepository,
    IdCategory.FUEL: FuelRepository,
}


class IdentityRegistry:
    def __init__(self, client: aioredis.Redis):
        self.redis = client

    async def next_id(self, session: AsyncSession, category: IdCategory) -> str:
        fmt = ID_FORMATS[category]
        existing = await _REPOSITORIES[category](session).list_ids()
        floor = max_suffix(existing, fmt.prefix)
        number = await self.redis.eval(
            NEXT_ID_SCRIPT, 1, f"seq:{category.value}", floor
        )
        identifier = fmt.format(int(number))
        logger.debug("Issued %s id %s (floor=%d)", category.value, identifier, floor)
        return identifier
