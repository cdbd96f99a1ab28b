"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from collateral_monitor.config import (
    AppConfig,
    CollateralConfig,
    EmailConfig,
    MonitorConfig,
    NotificationsConfig,
    PriceOracleConfig,
    PythConfig,
    TelegramConfig,
)
from collateral_monitor.oracles import ManualFeed, ManualRateSource

T0 = 1_700_000_000.0


class FakeClock:
    """Settable stand-in for ``time.time``."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# ---------------------------------------------------------------------------
# Clock and feed fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def usdc_feed() -> ManualFeed:
    return ManualFeed("USDC/USD", "1", updated_at=T0)


@pytest.fixture()
def eth_feed() -> ManualFeed:
    return ManualFeed("ETH/USD", "3000", updated_at=T0)


@pytest.fixture()
def steth_feed() -> ManualFeed:
    return ManualFeed("stETH/ETH", "1", updated_at=T0)


@pytest.fixture()
def rate_source() -> ManualRateSource:
    return ManualRateSource("1.000")


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fiat_config() -> CollateralConfig:
    return CollateralConfig(
        name="USDC",
        kind="fiat",
        erc20="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        target_name="USD",
        chainlink_feed="USDC/USD",
        price_timeout=604800,
        oracle_timeout=86400,
        oracle_error=Decimal("0.0025"),
        max_trade_volume=Decimal("1000000"),
        default_threshold=Decimal("0.01"),
        delay_until_default=86400,
    )


@pytest.fixture()
def wsteth_config() -> CollateralConfig:
    return CollateralConfig(
        name="wstETH",
        kind="appreciating",
        erc20="0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0",
        target_name="ETH",
        chainlink_feed="ETH/USD",
        target_per_ref_feed="stETH/ETH",
        rate_feed="wstETH/stETH",
        price_timeout=604800,
        oracle_timeout=3600,
        target_per_ref_timeout=86400,
        oracle_error=Decimal("0.005"),
        max_trade_volume=Decimal("1000"),
        default_threshold=Decimal("0.15"),
        delay_until_default=86400,
        revenue_hiding=Decimal("0.0001"),
    )


@pytest.fixture()
def weth_config() -> CollateralConfig:
    return CollateralConfig(
        name="WETH",
        kind="self_referential",
        erc20="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        target_name="ETH",
        chainlink_feed="ETH/USD",
        price_timeout=604800,
        oracle_timeout=3600,
        oracle_error=Decimal("0.005"),
        max_trade_volume=Decimal("1000"),
        default_threshold=Decimal(0),
        delay_until_default=86400,
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        feeds={"USDC/USD": "aaa111", "ETH/USD": "bbb222", "stETH/ETH": "ccc333"},
    )


@pytest.fixture()
def sample_app_config(
    fiat_config: CollateralConfig, sample_pyth_config: PythConfig
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(refresh_interval_seconds=60),
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
        collaterals=(fiat_config,),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                bot_token="fake-token",
                alert_chat_id="111",
                log_chat_id="222",
            ),
            email=EmailConfig(enabled=False),
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      refresh_interval_seconds: 120
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds:
          USDC/USD: "aaa"
          ETH/USD: "bbb"
          stETH/ETH: "ccc"
          wstETH/stETH: "ddd"
    collaterals:
      - name: USDC
        kind: fiat
        erc20: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
        target_name: USD
        chainlink_feed: USDC/USD
        oracle_error: 0.0025
        default_threshold: 0.0125
        delay_until_default: 86400
      - name: wstETH
        kind: appreciating
        erc20: "0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0"
        target_name: ETH
        chainlink_feed: ETH/USD
        target_per_ref_feed: stETH/ETH
        rate_feed: wstETH/stETH
        price_timeout: 604800
        oracle_timeout: 3600
        target_per_ref_timeout: 86400
        oracle_error: "0.005"
        max_trade_volume: "1e3"
        default_threshold: "0.15"
        delay_until_default: 86400
        revenue_hiding: "0.0001"
    notifications:
      telegram:
        enabled: true
        bot_token: "tok"
        alert_chat_id: "999"
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
