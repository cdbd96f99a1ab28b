"""Exchange-rate tracker with revenue hiding."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..models import TrackedRate

logger = logging.getLogger(__name__)


class ExchangeRateTracker:
    """Track the high-water mark of a ratio that should only appreciate.

    ``reported_rate`` is always ``high_water_mark × (1 − revenue_hiding)``.
    A sample strictly below the rate reported *before* it was taken is a
    hard default: the drop is larger than the hidden fraction can absorb.
    """

    def __init__(self, revenue_hiding: Decimal, initial_rate: Decimal) -> None:
        if initial_rate <= 0:
            raise ValueError(f"initial rate must be positive, got {initial_rate}")
        self.revenue_hiding = revenue_hiding
        self._showing = Decimal(1) - revenue_hiding
        self._high_water_mark = initial_rate
        self._actual = initial_rate

    @property
    def high_water_mark(self) -> Decimal:
        return self._high_water_mark

    @property
    def actual_rate(self) -> Decimal:
        """Most recent sample."""
        return self._actual

    @property
    def reported_rate(self) -> Decimal:
        return self._high_water_mark * self._showing

    @property
    def tracked(self) -> TrackedRate:
        return TrackedRate(
            high_water_mark=self._high_water_mark, reported_rate=self.reported_rate
        )

    def observe(self, actual: Decimal) -> bool:
        """Record a sample; return True when it is a hard default."""
        baseline = self.reported_rate
        breached = actual < baseline
        if breached:
            logger.warning(
                "Rate fell below reported rate: actual %s < reported %s (hwm %s)",
                actual,
                baseline,
                self._high_water_mark,
            )
        if actual > self._high_water_mark:
            self._high_water_mark = actual
        self._actual = actual
        return breached
