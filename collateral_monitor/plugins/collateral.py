"""Collateral plugin facade — the one object the basket layer talks to."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from decimal import Decimal

from ..config import CollateralConfig, validate_collateral
from ..interfaces.price_feed import PriceFeed
from ..interfaces.rate_source import RateSource
from ..models import (
    CollateralSnapshot,
    CollateralStatus,
    PriceRange,
    PriceState,
    StatusChange,
    TrackedRate,
)
from ..oracles.source import PriceSourceAdapter
from ..services.default_detector import DefaultDetector
from ..services.rate_tracker import ExchangeRateTracker
from ..services.resolver import PriceResolver
from .kinds import build_kind

logger = logging.getLogger(__name__)

StatusListener = Callable[[StatusChange], None]


class CollateralPlugin:
    """Price, status and refPerTok of one collateral token.

    ``refresh()`` is the only mutator. It samples the rate, reads the feeds,
    resolves the price and steps the default detector, then notifies status
    listeners once everything is updated. ``price()``, ``status()`` and
    ``ref_per_tok()`` only project the state left by the last refresh;
    construction performs the first one.

    Feed and rate-source outages never raise out of ``refresh()``: they show
    up as a degraded or unavailable price and an ``IFFY`` status. The one
    exception is construction, where the initial rate sample must succeed.
    """

    def __init__(
        self,
        config: CollateralConfig,
        chainlink_feed: PriceFeed,
        *,
        target_per_ref_feed: PriceFeed | None = None,
        rate_source: RateSource | None = None,
        clock: Callable[[], float] = time.time,
        listeners: Iterable[StatusListener] = (),
    ) -> None:
        validate_collateral(config)
        if config.target_per_ref_feed and target_per_ref_feed is None:
            raise ValueError(
                f"Collateral '{config.name}' names target_per_ref_feed "
                f"'{config.target_per_ref_feed}' but none was provided"
            )

        self.config = config
        self._clock = clock
        self._listeners: list[StatusListener] = list(listeners)
        self._kind = build_kind(config, rate_source)

        self._primary = PriceSourceAdapter(chainlink_feed, config.oracle_timeout)
        self._secondary = (
            PriceSourceAdapter(target_per_ref_feed, config.secondary_timeout)
            if target_per_ref_feed is not None
            else None
        )
        self._resolver = PriceResolver(
            oracle_error=config.oracle_error,
            price_timeout=config.price_timeout,
            secondary_error=config.secondary_error,
        )
        self._tracker = ExchangeRateTracker(config.revenue_hiding, self._kind.sample_rate())
        self._detector = DefaultDetector(config.delay_until_default, name=self.name)

        self._price = PriceRange.unavailable()
        self._last_refresh: float = 0
        self.refresh()

    # ------------------------------------------------------------------
    # Identity and pass-through configuration
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name or self.config.erc20

    @property
    def erc20(self) -> str:
        return self.config.erc20

    @property
    def target_name(self) -> str:
        return self.config.target_name

    @property
    def max_trade_volume(self) -> Decimal:
        return self.config.max_trade_volume

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: StatusChange) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("%s: status listener failed", self.name)

    # ------------------------------------------------------------------
    # Mutator
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        now = self._clock()
        old_status = self._detector.status

        hard_default = False
        rate_ok = True
        try:
            actual = self._kind.sample_rate()
        except Exception as e:
            logger.warning("%s: rate unavailable: %s", self.name, e)
            rate_ok = False
        else:
            hard_default = self._tracker.observe(actual)

        primary = self._primary.read(now)
        secondary = self._secondary.read(now) if self._secondary is not None else None
        self._price = self._resolver.resolve(
            primary, secondary, self._tracker.actual_rate, now
        )

        soft_default = not rate_ok or self._price.state is not PriceState.FRESH
        if not soft_default:
            deviation = self._kind.expected_deviation(primary, secondary)
            if deviation is not None and deviation > self.config.default_threshold:
                logger.info(
                    "%s: peg deviation %s exceeds threshold %s",
                    self.name,
                    deviation,
                    self.config.default_threshold,
                )
                soft_default = True

        new_status = self._detector.update(
            now, hard_default=hard_default, soft_default=soft_default
        )
        self._last_refresh = now

        if new_status is not old_status:
            level = logging.ERROR if new_status is CollateralStatus.DISABLED else logging.INFO
            logger.log(
                level, "%s: status %s -> %s", self.name, old_status.value, new_status.value
            )
            self._emit(StatusChange(self.name, old_status, new_status, now))

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    def price(self) -> PriceRange:
        return self._price

    def status(self) -> CollateralStatus:
        return self._detector.status

    def ref_per_tok(self) -> Decimal:
        return self._tracker.reported_rate

    @property
    def tracked_rate(self) -> TrackedRate:
        return self._tracker.tracked

    @property
    def when_default_pending(self) -> float | None:
        return self._detector.when_default_pending

    @property
    def last_refresh(self) -> float:
        return self._last_refresh

    def snapshot(self) -> CollateralSnapshot:
        return CollateralSnapshot(
            name=self.name,
            target_name=self.target_name,
            status=self.status(),
            price=self._price,
            ref_per_tok=self.ref_per_tok(),
            when_default_pending=self.when_default_pending,
            last_refresh=self._last_refresh,
        )
