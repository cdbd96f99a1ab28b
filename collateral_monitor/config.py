"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

UNIT_OF_ACCOUNT = "USD"

KIND_FIAT = "fiat"
KIND_APPRECIATING = "appreciating"
KIND_SELF_REFERENTIAL = "self_referential"
KINDS = (KIND_FIAT, KIND_APPRECIATING, KIND_SELF_REFERENTIAL)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralConfig:
    """Immutable parameters of one collateral plugin.

    Durations are seconds; fractions are ``Decimal`` in ``[0, 1)``.
    """

    name: str = ""
    kind: str = KIND_FIAT
    erc20: str = ""
    target_name: str = UNIT_OF_ACCOUNT
    chainlink_feed: str = ""
    target_per_ref_feed: str = ""
    rate_feed: str = ""
    price_timeout: float = 604800
    oracle_timeout: float = 86400
    target_per_ref_timeout: float = 0
    oracle_error: Decimal = Decimal("0.005")
    target_per_ref_oracle_error: Decimal | None = None
    max_trade_volume: Decimal = Decimal("1000")
    default_threshold: Decimal = Decimal("0.015")
    delay_until_default: float = 86400
    revenue_hiding: Decimal = Decimal(0)

    @property
    def secondary_timeout(self) -> float:
        return self.target_per_ref_timeout or self.oracle_timeout

    @property
    def secondary_error(self) -> Decimal:
        if self.target_per_ref_oracle_error is None:
            return self.oracle_error
        return self.target_per_ref_oracle_error


@dataclass(frozen=True)
class MonitorConfig:
    refresh_interval_seconds: int = 300


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    request_timeout: int = 10
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    bot_token: str = ""
    alert_chat_id: str = ""
    log_chat_id: str = ""


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    collaterals: tuple[CollateralConfig, ...] = ()
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _to_decimal(value: Any, key: str) -> Decimal:
    # str() first so YAML floats like 0.005 keep their written digits
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"'{key}' is not a number: {value!r}") from e


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        refresh_interval_seconds=int(raw.get("refresh_interval_seconds", 300)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            request_timeout=int(pyth_raw.get("request_timeout", 10)),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_collateral(raw: dict[str, Any]) -> CollateralConfig:
    name = raw.get("name", "")
    secondary_error = raw.get("target_per_ref_oracle_error")
    return CollateralConfig(
        name=name,
        kind=raw.get("kind", KIND_FIAT),
        erc20=raw.get("erc20", ""),
        target_name=raw.get("target_name", UNIT_OF_ACCOUNT),
        chainlink_feed=raw.get("chainlink_feed", ""),
        target_per_ref_feed=raw.get("target_per_ref_feed", ""),
        rate_feed=raw.get("rate_feed", ""),
        price_timeout=float(raw.get("price_timeout", 604800)),
        oracle_timeout=float(raw.get("oracle_timeout", 86400)),
        target_per_ref_timeout=float(raw.get("target_per_ref_timeout", 0)),
        oracle_error=_to_decimal(raw.get("oracle_error", "0.005"), "oracle_error"),
        target_per_ref_oracle_error=(
            None
            if secondary_error is None
            else _to_decimal(secondary_error, "target_per_ref_oracle_error")
        ),
        max_trade_volume=_to_decimal(
            raw.get("max_trade_volume", "1000"), "max_trade_volume"
        ),
        default_threshold=_to_decimal(
            raw.get("default_threshold", "0.015"), "default_threshold"
        ),
        delay_until_default=float(raw.get("delay_until_default", 86400)),
        revenue_hiding=_to_decimal(raw.get("revenue_hiding", "0"), "revenue_hiding"),
    )


def _build_collaterals(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    return tuple(_build_collateral(c) for c in raw)


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    em = raw.get("email", {})
    alert_chat = tg.get("alert_chat_id", "")
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            bot_token=tg.get("bot_token", ""),
            alert_chat_id=alert_chat,
            log_chat_id=tg.get("log_chat_id", "") or alert_chat,
        ),
        email=EmailConfig(
            enabled=bool(em.get("enabled", False)),
            alert_email=em.get("alert_email", ""),
            smtp_server=em.get("smtp_server", "smtp.gmail.com"),
            smtp_port=int(em.get("smtp_port", 587)),
            sender_email=em.get("sender_email", ""),
            sender_password=em.get("sender_password", ""),
        ),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _require_fraction(value: Decimal, key: str, label: str, allow_zero: bool) -> None:
    low_ok = value >= 0 if allow_zero else value > 0
    if not low_ok or value >= 1:
        bound = "[0, 1)" if allow_zero else "(0, 1)"
        raise ValueError(f"Collateral '{label}': {key} must be in {bound}, got {value}")


def validate_collateral(cfg: CollateralConfig) -> None:
    """Raise ``ValueError`` on a misconfigured collateral. Never clamps."""
    label = cfg.name or cfg.erc20 or "<unnamed>"

    if cfg.kind not in KINDS:
        raise ValueError(f"Collateral '{label}': unknown kind '{cfg.kind}'")
    if not cfg.erc20:
        raise ValueError(f"Collateral '{label}' has no erc20")
    if not cfg.chainlink_feed:
        raise ValueError(f"Collateral '{label}' has no chainlink_feed")
    if not cfg.target_name:
        raise ValueError(f"Collateral '{label}' has no target_name")

    for key in ("price_timeout", "oracle_timeout", "delay_until_default"):
        if getattr(cfg, key) <= 0:
            raise ValueError(f"Collateral '{label}': {key} must be positive")
    if cfg.target_per_ref_timeout < 0:
        raise ValueError(f"Collateral '{label}': target_per_ref_timeout must not be negative")
    if cfg.max_trade_volume <= 0:
        raise ValueError(f"Collateral '{label}': max_trade_volume must be positive")

    _require_fraction(cfg.oracle_error, "oracle_error", label, allow_zero=False)
    if cfg.target_per_ref_oracle_error is not None:
        _require_fraction(
            cfg.target_per_ref_oracle_error,
            "target_per_ref_oracle_error",
            label,
            allow_zero=False,
        )
    _require_fraction(cfg.default_threshold, "default_threshold", label, allow_zero=True)
    _require_fraction(cfg.revenue_hiding, "revenue_hiding", label, allow_zero=True)

    if cfg.kind == KIND_SELF_REFERENTIAL:
        if cfg.default_threshold != 0:
            raise ValueError(
                f"Collateral '{label}': self_referential collateral has no peg, "
                "default_threshold must be 0"
            )
    elif cfg.default_threshold == 0:
        raise ValueError(f"Collateral '{label}': default_threshold must be positive")

    if cfg.kind != KIND_APPRECIATING and cfg.revenue_hiding != 0:
        raise ValueError(
            f"Collateral '{label}': revenue_hiding only applies to appreciating collateral"
        )


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collaterals:
        raise ValueError("At least one collateral must be configured")

    seen: set[str] = set()
    known_feeds = cfg.price_oracle.pyth.feeds
    for coll in cfg.collaterals:
        if not coll.name:
            raise ValueError(f"Collateral '{coll.erc20}' has no name")
        if coll.name in seen:
            raise ValueError(f"Duplicate collateral name '{coll.name}'")
        seen.add(coll.name)

        validate_collateral(coll)
        if coll.kind == KIND_APPRECIATING and not coll.rate_feed:
            raise ValueError(f"Collateral '{coll.name}' is appreciating but has no rate_feed")
        if coll.kind != KIND_APPRECIATING and coll.rate_feed:
            raise ValueError(f"Collateral '{coll.name}' of kind '{coll.kind}' takes no rate_feed")

        for feed in (coll.chainlink_feed, coll.target_per_ref_feed, coll.rate_feed):
            if feed and feed not in known_feeds:
                raise ValueError(
                    f"Collateral '{coll.name}' references unknown feed '{feed}'"
                )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        collaterals=_build_collaterals(raw.get("collaterals", [])),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info(
        "Configuration loaded from %s (%d collaterals)", config_path, len(cfg.collaterals)
    )
    return cfg
