"""In-process feeds whose answers are set by the caller."""
from __future__ import annotations

from decimal import Decimal

from ..interfaces.price_feed import FeedError
from ..interfaces.rate_source import RateSourceError


class ManualFeed:
    """A price feed answering whatever was last pushed into it."""

    def __init__(
        self,
        name: str,
        value: Decimal | str | None = None,
        updated_at: float = 0,
    ) -> None:
        self._name = name
        self._answer: tuple[Decimal, float] | None = None
        self._error: Exception | None = None
        if value is not None:
            self.set(value, updated_at)

    @property
    def name(self) -> str:
        return self._name

    def set(self, value: Decimal | str, updated_at: float) -> None:
        self._answer = (Decimal(value), updated_at)
        self._error = None

    def fail(self, error: Exception | None = None) -> None:
        """Make subsequent reads raise until the next ``set``."""
        self._error = error or FeedError(f"{self._name} reverted")

    def latest_answer(self) -> tuple[Decimal, float]:
        if self._error is not None:
            raise self._error
        if self._answer is None:
            raise FeedError(f"{self._name} has no answer")
        return self._answer


class ManualRateSource:
    """A rate source answering whatever was last pushed into it."""

    def __init__(self, rate: Decimal | str = "1") -> None:
        self._rate = Decimal(rate)
        self._failing = False

    def set(self, rate: Decimal | str) -> None:
        self._rate = Decimal(rate)
        self._failing = False

    def fail(self) -> None:
        self._failing = True

    def current_rate(self) -> Decimal:
        if self._failing:
            raise RateSourceError("rate source reverted")
        return self._rate
