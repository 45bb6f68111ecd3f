"""
Identifier formats.

Ids are a category prefix followed by a zero-padded counter, e.g. ``V007``
or ``F0042``.  The width is a minimum: ``V999`` is followed by ``V1000``.
Numeric order therefore differs from string order once the width overflows;
always compare suffixes through :func:`parse_suffix`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional


class IdCategory(str, enum.Enum):
    USER = "user"
    VEHICLE = "vehicle"
    TRIP = "trip"
    MAINTENANCE = "maintenance"
    FUEL = "fuel"


@dataclass(frozen=True)
class IdFormat:
    prefix: str
    width: int

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"


ID_FORMATS: dict[IdCategory, IdFormat] = {
    IdCategory.USER: IdFormat("U", 3),
    IdCategory.VEHICLE: IdFormat("V", 3),
    IdCategory.MAINTENANCE: IdFormat("M", 3),
    IdCategory.FUEL: IdFormat("F", 4),
    IdCategory.TRIP: IdFormat("TRIP-", 4),
}


def parse_suffix(identifier: str, prefix: str) -> Optional[int]:
    """Numeric suffix of *identifier* under *prefix*, or None if it has none."""
    if not identifier.startswith(prefix):
        return None
    tail = identifier[len(prefix):]
    if not (tail.isascii() and tail.isdigit()):
        return None
    return int(tail)


def max_suffix(identifiers: Iterable[str], prefix: str) -> int:
    """Largest numeric suffix among *identifiers* (0 when there is none)."""
    best = 0
    for identifier in identifiers:
        n = parse_suffix(identifier, prefix)
        if n is not None and n > best:
            best = n
    return best
