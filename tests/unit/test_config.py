"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

import dataclasses
from decimal import Decimal
from pathlib import Path

import pytest

from collateral_monitor.config import (
    AppConfig,
    CollateralConfig,
    _interpolate_env,
    load_config,
    validate_collateral,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "items": ["${TOK}", 3]})
        assert result == {"key": "secret", "items": ["secret", 3]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.monitor.refresh_interval_seconds == 120
        assert [c.name for c in cfg.collaterals] == ["USDC", "wstETH"]
        assert cfg.notifications.telegram.bot_token == "tok"

    def test_decimals_keep_written_digits(self, sample_yaml_path: Path) -> None:
        usdc, wsteth = load_config(sample_yaml_path).collaterals
        assert usdc.oracle_error == Decimal("0.0025")
        assert usdc.default_threshold == Decimal("0.0125")
        assert wsteth.revenue_hiding == Decimal("0.0001")
        assert wsteth.max_trade_volume == Decimal("1000")

    def test_secondary_feed_settings(self, sample_yaml_path: Path) -> None:
        wsteth = load_config(sample_yaml_path).collaterals[1]
        assert wsteth.target_per_ref_feed == "stETH/ETH"
        assert wsteth.secondary_timeout == 86400
        assert wsteth.secondary_error == Decimal("0.005")

    def test_log_chat_defaults_to_alert_chat(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.notifications.telegram.log_chat_id == "999"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_TOKEN_ADDR", "0xABCDEF")
        yaml_content = """\
price_oracle:
  pyth:
    feeds: {USDC/USD: "aaa"}
collaterals:
  - name: USDC
    erc20: "${TEST_TOKEN_ADDR}"
    chainlink_feed: USDC/USD
"""
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(yaml_content)
        cfg = load_config(cfg_file)
        assert cfg.collaterals[0].erc20 == "0xABCDEF"


def _write(tmp_path: Path, collaterals: str, feeds: str = '{USDC/USD: "aaa"}') -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        f"price_oracle:\n  pyth:\n    feeds: {feeds}\ncollaterals:\n{collaterals}"
    )
    return cfg_file


class TestValidation:
    def test_no_collaterals_raises(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("collaterals: []\n")
        with pytest.raises(ValueError, match="At least one collateral"):
            load_config(cfg_file)

    def test_duplicate_name_raises(self, tmp_path: Path) -> None:
        entry = "  - {name: USDC, erc20: '0x1', chainlink_feed: USDC/USD}\n"
        with pytest.raises(ValueError, match="Duplicate"):
            load_config(_write(tmp_path, entry * 2))

    def test_unknown_feed_raises(self, tmp_path: Path) -> None:
        entry = "  - {name: USDT, erc20: '0x1', chainlink_feed: USDT/USD}\n"
        with pytest.raises(ValueError, match="unknown feed"):
            load_config(_write(tmp_path, entry))

    def test_appreciating_without_rate_feed_raises(self, tmp_path: Path) -> None:
        entry = (
            "  - {name: sUSDC, kind: appreciating, erc20: '0x1', "
            "chainlink_feed: USDC/USD, revenue_hiding: '0.0001'}\n"
        )
        with pytest.raises(ValueError, match="no rate_feed"):
            load_config(_write(tmp_path, entry))

    def test_rate_feed_on_fiat_raises(self, tmp_path: Path) -> None:
        entry = "  - {name: USDC, erc20: '0x1', chainlink_feed: USDC/USD, rate_feed: USDC/USD}\n"
        with pytest.raises(ValueError, match="takes no rate_feed"):
            load_config(_write(tmp_path, entry))

    def test_non_numeric_fraction_raises(self, tmp_path: Path) -> None:
        entry = "  - {name: USDC, erc20: '0x1', chainlink_feed: USDC/USD, oracle_error: lots}\n"
        with pytest.raises(ValueError, match="not a number"):
            load_config(_write(tmp_path, entry))


class TestValidateCollateral:
    def test_valid_configs_pass(
        self,
        fiat_config: CollateralConfig,
        wsteth_config: CollateralConfig,
        weth_config: CollateralConfig,
    ) -> None:
        for cfg in (fiat_config, wsteth_config, weth_config):
            validate_collateral(cfg)

    @pytest.mark.parametrize(
        "changes, match",
        [
            ({"kind": "exotic"}, "unknown kind"),
            ({"erc20": ""}, "no erc20"),
            ({"chainlink_feed": ""}, "no chainlink_feed"),
            ({"price_timeout": 0}, "price_timeout must be positive"),
            ({"oracle_timeout": 0}, "oracle_timeout must be positive"),
            ({"delay_until_default": 0}, "delay_until_default must be positive"),
            ({"target_per_ref_timeout": -1}, "must not be negative"),
            ({"max_trade_volume": Decimal(0)}, "max_trade_volume"),
            ({"oracle_error": Decimal(0)}, "oracle_error"),
            ({"oracle_error": Decimal(1)}, "oracle_error"),
            ({"target_per_ref_oracle_error": Decimal(0)}, "target_per_ref_oracle_error"),
            ({"default_threshold": Decimal(1)}, "default_threshold"),
            ({"default_threshold": Decimal("-0.01")}, "default_threshold"),
            ({"default_threshold": Decimal(0)}, "default_threshold must be positive"),
            ({"revenue_hiding": Decimal("0.001")}, "revenue_hiding only applies"),
        ],
    )
    def test_fiat_misconfiguration_fails_fast(
        self, fiat_config: CollateralConfig, changes: dict, match: str
    ) -> None:
        with pytest.raises(ValueError, match=match):
            validate_collateral(dataclasses.replace(fiat_config, **changes))

    def test_revenue_hiding_of_one_rejected(self, wsteth_config: CollateralConfig) -> None:
        with pytest.raises(ValueError, match="revenue_hiding"):
            validate_collateral(dataclasses.replace(wsteth_config, revenue_hiding=Decimal(1)))

    def test_self_referential_requires_zero_threshold(
        self, weth_config: CollateralConfig
    ) -> None:
        with pytest.raises(ValueError, match="no peg"):
            validate_collateral(
                dataclasses.replace(weth_config, default_threshold=Decimal("0.05"))
            )


class TestFrozenConfigs:
    def test_collateral_config_immutable(self, fiat_config: CollateralConfig) -> None:
        with pytest.raises(AttributeError):
            fiat_config.default_threshold = Decimal("0.5")  # type: ignore[misc]

    def test_secondary_error_override(self, wsteth_config: CollateralConfig) -> None:
        cfg = dataclasses.replace(wsteth_config, target_per_ref_oracle_error=Decimal("0.01"))
        assert cfg.secondary_error == Decimal("0.01")

    def test_secondary_timeout_falls_back(self, fiat_config: CollateralConfig) -> None:
        assert fiat_config.secondary_timeout == fiat_config.oracle_timeout
