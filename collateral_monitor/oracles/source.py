"""Price source adapter — turns a raw feed answer into a ``PriceReading``."""
from __future__ import annotations

import logging

from ..interfaces.price_feed import PriceFeed
from ..models import PriceReading

logger = logging.getLogger(__name__)


class PriceSourceAdapter:
    """Read one feed and fail closed.

    A feed that raises, answers with a non-finite or non-positive value, or
    answers with a timestamp older than ``timeout`` seconds yields
    ``valid=False``. Nothing is propagated to the caller.
    """

    def __init__(self, feed: PriceFeed, timeout: float) -> None:
        self._feed = feed
        self.timeout = timeout

    @property
    def feed_name(self) -> str:
        return self._feed.name

    def read(self, now: float) -> PriceReading:
        try:
            value, updated_at = self._feed.latest_answer()
        except Exception as e:
            logger.warning("Feed %s unavailable: %s", self.feed_name, e)
            return PriceReading.invalid(now)

        if not value.is_finite() or value <= 0:
            logger.warning("Feed %s answered unusable value %s", self.feed_name, value)
            return PriceReading.invalid(updated_at)

        age = now - updated_at
        if age > self.timeout:
            logger.warning(
                "Feed %s is stale: %.0fs old, timeout %.0fs",
                self.feed_name,
                age,
                self.timeout,
            )
            return PriceReading.invalid(updated_at)

        return PriceReading(value=value, timestamp=updated_at, valid=True)
