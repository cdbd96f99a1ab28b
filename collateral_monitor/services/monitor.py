"""Monitoring orchestration — refreshes every configured collateral plugin."""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from ..config import UNIT_OF_ACCOUNT, AppConfig, CollateralConfig
from ..interfaces.notifier import Notifier
from ..interfaces.rate_source import RateSourceError
from ..models import CollateralSnapshot, CollateralStatus, StatusChange
from ..notifications import EmailNotifier, TelegramNotifier
from ..oracles import FeedRateSource, PythOracle
from ..plugins import CollateralPlugin

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    CollateralStatus.SOUND: "✅ SOUND",
    CollateralStatus.IFFY: "⚠️ IFFY",
    CollateralStatus.DISABLED: "🚨 DISABLED",
}


class Monitor:
    """Polls the oracle, refreshes plugins and routes status changes to notifiers."""

    def __init__(self, config: AppConfig, clock: Callable[[], float] = time.time) -> None:
        self._config = config
        self._clock = clock
        self._oracle = PythOracle(config.price_oracle.pyth)
        self._plugins: dict[str, CollateralPlugin] = {}
        self._pending_events: list[StatusChange] = []

        self._notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))
        if config.notifications.email.enabled:
            self._notifiers.append(EmailNotifier(config.notifications.email))

    @property
    def plugins(self) -> dict[str, CollateralPlugin]:
        return dict(self._plugins)

    # ------------------------------------------------------------------
    # Plugin wiring
    # ------------------------------------------------------------------

    def _build_plugin(self, cfg: CollateralConfig) -> CollateralPlugin:
        secondary = (
            self._oracle.feed(cfg.target_per_ref_feed) if cfg.target_per_ref_feed else None
        )
        rate_source = (
            FeedRateSource(self._oracle.feed(cfg.rate_feed)) if cfg.rate_feed else None
        )
        return CollateralPlugin(
            cfg,
            self._oracle.feed(cfg.chainlink_feed),
            target_per_ref_feed=secondary,
            rate_source=rate_source,
            clock=self._clock,
            listeners=[self._pending_events.append],
        )

    def refresh_all(self) -> list[StatusChange]:
        """Refresh every plugin once and return the status changes it caused.

        A plugin whose initial rate sample fails is not built; it is retried on
        the next call.
        """
        for cfg in self._config.collaterals:
            plugin = self._plugins.get(cfg.name)
            if plugin is not None:
                plugin.refresh()
                continue
            try:
                self._plugins[cfg.name] = self._build_plugin(cfg)
            except RateSourceError as e:
                logger.warning("Cannot start %s yet: %s", cfg.name, e)
            else:
                logger.info("Started collateral plugin %s", cfg.name)

        events = list(self._pending_events)
        self._pending_events.clear()
        return events

    async def refresh(self) -> list[StatusChange]:
        await self._oracle.fetch_quotes()
        return self.refresh_all()

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_address(address: str) -> str:
        if len(address) > 16:
            return f"{address[:10]}...{address[-6:]}"
        return address

    @staticmethod
    def _format_time(ts: float) -> str:
        return datetime.fromtimestamp(ts, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _now_str(self) -> str:
        return self._format_time(self._clock())

    @staticmethod
    def _format_price(snap: CollateralSnapshot) -> str:
        price = snap.price
        if not price.available:
            return "unavailable"
        text = f"{price.low:,.4f} – {price.high:,.4f} {UNIT_OF_ACCOUNT}"
        return f"{text} (degraded)" if price.degraded else text

    def _build_log_message(self, snap: CollateralSnapshot) -> str:
        lines = [
            f"📊 {snap.name} · {_STATUS_LABELS[snap.status]}",
            f"Price: {self._format_price(snap)}",
            f"refPerTok: {snap.ref_per_tok:.6f}",
        ]
        if snap.when_default_pending is not None and snap.status is CollateralStatus.IFFY:
            lines.append(f"Default pending since {self._format_time(snap.when_default_pending)} UTC")
        lines.append(f"{self._format_time(snap.last_refresh)} UTC")
        return "\n".join(lines)

    def _build_change_alert(self, event: StatusChange) -> tuple[str, str]:
        plugin = self._plugins.get(event.collateral)
        cfg = plugin.config if plugin is not None else None
        lines = [
            f"{_STATUS_LABELS[event.old]} → {_STATUS_LABELS[event.new]}",
            "",
            f"Collateral: {event.collateral}",
        ]
        if cfg is not None:
            lines.append(f"Token: {self._format_address(cfg.erc20)}")
            lines.append(f"Target: {cfg.target_name}")
        if plugin is not None:
            snap = plugin.snapshot()
            lines.append(f"Price: {self._format_price(snap)}")
            lines.append(f"refPerTok: {snap.ref_per_tok:.6f}")

        if event.new is CollateralStatus.DISABLED:
            subject = f"🚨 DISABLED: {event.collateral}"
            lines += ["", "Collateral defaulted. Remove it from the basket."]
        elif event.new is CollateralStatus.IFFY:
            subject = f"⚠️ IFFY: {event.collateral}"
            if cfg is not None:
                deadline = event.at + cfg.delay_until_default
                lines += ["", f"Disables at {self._format_time(deadline)} UTC unless it recovers."]
        else:
            subject = f"✅ Recovered: {event.collateral}"

        lines += ["", f"{self._format_time(event.at)} UTC"]
        return subject, "\n".join(lines)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def _dispatch_events(self, events: list[StatusChange]) -> None:
        for event in events:
            subject, message = self._build_change_alert(event)
            if event.new is CollateralStatus.SOUND:
                await self._send_log(f"{subject}\n\n{message}")
            else:
                await self._send_alert(message, subject=subject)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def check_and_alert(self) -> None:
        """Refresh all collaterals, log each one and alert on status changes."""
        events = await self.refresh()

        for name, plugin in self._plugins.items():
            snap = plugin.snapshot()
            logger.info(
                "Collateral — %s · %s · price %s · refPerTok %s",
                name,
                snap.status.value,
                self._format_price(snap),
                snap.ref_per_tok,
            )
            await self._send_log(self._build_log_message(snap))

        await self._dispatch_events(events)

    async def generate_report(self) -> None:
        """Refresh all collaterals and send one summary alert."""
        events = await self.refresh()
        await self._dispatch_events(events)

        sections = [self._build_log_message(p.snapshot()) for p in self._plugins.values()]
        missing = [c.name for c in self._config.collaterals if c.name not in self._plugins]
        if missing:
            sections.append("Not started: " + ", ".join(missing))
        body = "\n\n".join(sections) if sections else "No collaterals configured."

        report = f"📋 Collateral Status Report\n\n{body}\n\n{self._now_str()} UTC"
        await self._send_alert(report, subject="Collateral Status Report")
        logger.info("Report sent")

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Run the refresh loop forever."""
        interval = interval_seconds or self._config.monitor.refresh_interval_seconds
        logger.info("Starting continuous monitoring (refresh every %d seconds)", interval)

        while True:
            try:
                await self.check_and_alert()
                await asyncio.sleep(interval)
            except Exception as e:
                logger.error("Error in monitoring loop: %s", e)
                await asyncio.sleep(60)
