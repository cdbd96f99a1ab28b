"""Collateral kinds — how the rate is sampled and the peg deviation measured."""
from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from ..config import (
    KIND_APPRECIATING,
    KIND_FIAT,
    KIND_SELF_REFERENTIAL,
    UNIT_OF_ACCOUNT,
    CollateralConfig,
)
from ..interfaces.rate_source import RateSource, RateSourceError
from ..models import PriceReading

ONE = Decimal(1)


class CollateralKind(Protocol):
    """Capability every collateral kind provides to the plugin."""

    appreciating: bool

    def sample_rate(self) -> Decimal: ...

    def expected_deviation(
        self, primary: PriceReading, secondary: PriceReading | None
    ) -> Decimal | None: ...


def _deviation(peg: PriceReading | None) -> Decimal | None:
    """Fractional distance of a target-per-ref reading from 1."""
    return None if peg is None else abs(peg.value - ONE)


class PeggedKind:
    """One token is one reference unit, and the reference is pegged to target.

    The peg is read from the secondary feed when there is one. With a single
    feed it is the primary only when the target is the unit of account;
    otherwise the primary quotes UoA per target and the peg is not observable.
    """

    appreciating = False

    def __init__(self, target_name: str) -> None:
        self._target_is_uoa = target_name == UNIT_OF_ACCOUNT

    def sample_rate(self) -> Decimal:
        return ONE

    def expected_deviation(
        self, primary: PriceReading, secondary: PriceReading | None
    ) -> Decimal | None:
        if secondary is not None:
            return _deviation(secondary)
        return _deviation(primary) if self._target_is_uoa else None


class AppreciatingKind:
    """A wrapped token redeemable for a growing amount of a pegged reference.

    The primary feed prices the reference (ETH/USD for rETH), never the peg,
    so only a configured target-per-ref feed is checked.
    """

    appreciating = True

    def __init__(self, rate_source: RateSource) -> None:
        self._rate_source = rate_source

    def sample_rate(self) -> Decimal:
        rate = self._rate_source.current_rate()
        if not rate.is_finite() or rate <= 0:
            raise RateSourceError(f"rate source answered {rate}")
        return rate

    def expected_deviation(
        self, primary: PriceReading, secondary: PriceReading | None
    ) -> Decimal | None:
        return _deviation(secondary)


class SelfReferentialKind:
    """The reference is the target itself, so there is no peg to lose."""

    appreciating = False

    def sample_rate(self) -> Decimal:
        return ONE

    def expected_deviation(
        self, primary: PriceReading, secondary: PriceReading | None
    ) -> Decimal | None:
        return None


def build_kind(config: CollateralConfig, rate_source: RateSource | None) -> CollateralKind:
    """Instantiate the kind named by ``config.kind``."""
    if config.kind == KIND_APPRECIATING:
        if rate_source is None:
            raise ValueError(f"Collateral '{config.name}' is appreciating but has no rate source")
        return AppreciatingKind(rate_source)

    if rate_source is not None:
        raise ValueError(f"Collateral '{config.name}' of kind '{config.kind}' takes no rate source")
    if config.kind == KIND_FIAT:
        return PeggedKind(config.target_name)
    if config.kind == KIND_SELF_REFERENTIAL:
        return SelfReferentialKind()
    raise ValueError(f"Unknown collateral kind '{config.kind}'")
