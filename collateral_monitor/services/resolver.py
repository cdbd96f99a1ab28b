"""Price resolver — combine feed readings into bounds with a fallback window."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..models import PriceRange, PriceReading, PriceState

logger = logging.getLogger(__name__)

ONE = Decimal(1)


def _dec(seconds: float) -> Decimal:
    return Decimal(str(seconds))


class PriceResolver:
    """Resolve ``(low, high)`` for one collateral token.

    With every reading valid the point price is
    ``primary × secondary × ref_per_tok`` and the bounds widen by the sum of
    the feeds' fractional errors (feeds may be correlated, so errors add).
    Otherwise the last fresh bounds are served as a degraded fallback that
    decays linearly: ``low`` toward zero and ``high`` toward infinity,
    reaching "unavailable" once ``price_timeout`` seconds have passed since
    the last fresh save.
    """

    def __init__(
        self,
        oracle_error: Decimal,
        price_timeout: float,
        secondary_error: Decimal | None = None,
    ) -> None:
        self.oracle_error = oracle_error
        self.secondary_error = secondary_error
        self.price_timeout = price_timeout
        self._saved: PriceRange | None = None
        self._last_save: float | None = None

    @property
    def last_save(self) -> float | None:
        return self._last_save

    def resolve(
        self,
        primary: PriceReading,
        secondary: PriceReading | None,
        ref_per_tok: Decimal,
        now: float,
    ) -> PriceRange:
        if primary.valid and (secondary is None or secondary.valid):
            point = primary.value * ref_per_tok
            error = self.oracle_error
            if secondary is not None:
                point *= secondary.value
                error += self.secondary_error or self.oracle_error
            price = PriceRange(low=point * (ONE - error), high=point * (ONE + error))
            self._saved = price
            self._last_save = now
            return price
        return self.fallback(now)

    def fallback(self, now: float) -> PriceRange:
        if self._saved is None or self._last_save is None:
            return PriceRange.unavailable()

        elapsed = now - self._last_save
        if elapsed >= self.price_timeout:
            logger.debug("Saved price expired %.0fs after last save", elapsed)
            return PriceRange.unavailable()

        remaining = (_dec(self.price_timeout) - _dec(elapsed)) / _dec(self.price_timeout)
        return PriceRange(
            low=self._saved.low * remaining,
            high=self._saved.high / remaining,
            state=PriceState.DEGRADED,
        )
