"""Rate source protocol — the underlying asset's appreciation ratio."""
from decimal import Decimal
from typing import Protocol


class RateSourceError(RuntimeError):
    """Raised when the appreciation ratio cannot be read."""


class RateSource(Protocol):
    """Units of the reference asset per unit of the wrapped token."""

    def current_rate(self) -> Decimal: ...
