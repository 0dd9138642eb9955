"""Instrument kinds, number kinds and instrument descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class Kind(IntEnum):
    """The kind of a metric instrument."""

    SYNC_COUNTER = 0
    SYNC_UP_DOWN_COUNTER = 1
    SYNC_HISTOGRAM = 2
    ASYNC_COUNTER = 3
    ASYNC_UP_DOWN_COUNTER = 4
    ASYNC_GAUGE = 5

    def __str__(self) -> str:
        return _camel(self.name)

    def synchronous(self) -> bool:
        """Whether this is a synchronous kind of instrument."""
        return self in (Kind.SYNC_COUNTER, Kind.SYNC_UP_DOWN_COUNTER, Kind.SYNC_HISTOGRAM)

    def has_temporality(self) -> bool:
        """Whether points from this kind of instrument carry a temporality."""
        return self is not Kind.ASYNC_GAUGE


class NumberKind(IntEnum):
    """Whether an instrument captures integer or floating-point values."""

    INT64 = 0
    FLOAT64 = 1

    def __str__(self) -> str:
        return _camel(self.name)


@dataclass(frozen=True)
class Descriptor:
    """All the settings that describe an instrument."""

    name: str
    kind: Kind
    number_kind: NumberKind
    description: str = ""
    unit: str = ""