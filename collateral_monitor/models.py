"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

INFINITY = Decimal("Infinity")


class CollateralStatus(Enum):
    SOUND = "SOUND"
    IFFY = "IFFY"
    DISABLED = "DISABLED"


class PriceState(Enum):
    FRESH = "fresh"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PriceReading:
    """One normalized oracle observation.

    An invalid reading carries no information; its value must not be read as
    a zero price.
    """

    value: Decimal
    timestamp: float
    valid: bool

    @classmethod
    def invalid(cls, timestamp: float = 0) -> PriceReading:
        return cls(value=Decimal(0), timestamp=timestamp, valid=False)


@dataclass(frozen=True)
class PriceRange:
    """Price bounds in unit of account per token."""

    low: Decimal
    high: Decimal
    state: PriceState = PriceState.FRESH

    @classmethod
    def unavailable(cls) -> PriceRange:
        return cls(low=Decimal(0), high=INFINITY, state=PriceState.UNAVAILABLE)

    @property
    def available(self) -> bool:
        return self.state is not PriceState.UNAVAILABLE

    @property
    def degraded(self) -> bool:
        return self.state is PriceState.DEGRADED

    @property
    def mid(self) -> Decimal | None:
        if not self.available:
            return None
        return (self.low + self.high) / 2


@dataclass(frozen=True)
class TrackedRate:
    """High-water mark of the appreciation ratio and the rate exposed for it."""

    high_water_mark: Decimal
    reported_rate: Decimal


@dataclass(frozen=True)
class StatusChange:
    """Emitted once per status transition, after the refresh that caused it."""

    collateral: str
    old: CollateralStatus
    new: CollateralStatus
    at: float


@dataclass(frozen=True)
class CollateralSnapshot:
    """Read-only view of a plugin as of its last refresh."""

    name: str
    target_name: str
    status: CollateralStatus
    price: PriceRange
    ref_per_tok: Decimal
    when_default_pending: float | None
    last_refresh: float
