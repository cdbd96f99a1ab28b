"""Default detector — the SOUND / IFFY / DISABLED state machine."""
from __future__ import annotations

import logging

from ..models import CollateralStatus

logger = logging.getLogger(__name__)


class DefaultDetector:
    """Timed status machine evaluated once per refresh.

    Transitions, in priority order:

    * ``DISABLED`` is terminal; nothing leaves it.
    * A hard default disables immediately from any state.
    * A soft default moves ``SOUND`` to ``IFFY`` and starts the delay window;
      in ``IFFY`` it disables once ``now - when_default_pending`` reaches
      ``delay_until_default``.
    * No default condition returns to ``SOUND`` and clears the window, so
      every new episode starts its own window.
    """

    def __init__(self, delay_until_default: float, name: str = "") -> None:
        if delay_until_default <= 0:
            raise ValueError("delay_until_default must be positive")
        self.delay_until_default = delay_until_default
        self.name = name
        self._status = CollateralStatus.SOUND
        self._when_default_pending: float | None = None
        self._disabled_at: float | None = None

    @property
    def status(self) -> CollateralStatus:
        return self._status

    @property
    def when_default_pending(self) -> float | None:
        return self._when_default_pending

    @property
    def disabled_at(self) -> float | None:
        return self._disabled_at

    def update(
        self, now: float, *, hard_default: bool, soft_default: bool
    ) -> CollateralStatus:
        if self._status is CollateralStatus.DISABLED:
            return self._status

        if hard_default:
            logger.error("%s: hard default, disabling", self.name)
            self._disable(now)
        elif soft_default:
            if self._status is CollateralStatus.SOUND:
                self._status = CollateralStatus.IFFY
                self._when_default_pending = now
                logger.info("%s: soft default pending since %.0f", self.name, now)
            elif now - self._when_default_pending >= self.delay_until_default:
                logger.error(
                    "%s: soft default persisted %.0fs, disabling",
                    self.name,
                    now - self._when_default_pending,
                )
                self._disable(now)
        elif self._status is CollateralStatus.IFFY:
            logger.info("%s: soft default cleared", self.name)
            self._status = CollateralStatus.SOUND
            self._when_default_pending = None

        return self._status

    def _disable(self, now: float) -> None:
        self._status = CollateralStatus.DISABLED
        self._disabled_at = now
