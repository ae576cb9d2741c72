"""Tests for backbot.config — environment variable loading and validation."""

import os

import pytest

from backbot.config import (
    ConfigurationError,
    StrategyConfig,
    configure_logging,
    load_strategy_config,
)

_VARS = [
    "TRADING_STRATEGY",
    "TIME",
    "REFERENCE_SYMBOL",
    "RSI_LENGTH",
    "RSI_AVERAGE_LENGTH",
    "ADX_THRESHOLD",
    "USE_RSI_VALIDATION",
    "USE_STOCH_VALIDATION",
    "USE_MACD_VALIDATION",
    "IGNORE_BRONZE_SIGNALS",
    "ATR_ZONE_MULTIPLIER",
    "MAX_TARGETS_PER_ORDER",
    "MIN_TAKE_PROFIT_PCT",
    "MAX_NEGATIVE_PNL_STOP_PCT",
    "MIN_PROFIT_PERCENTAGE",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure strategy env vars are cleared between tests."""
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def no_dotenv(tmp_path):
    # Non-existent path so load_dotenv doesn't pick up a real .env file
    return str(tmp_path / "missing.env")


class TestLoadStrategyConfig:
    def test_defaults(self, no_dotenv):
        cfg = load_strategy_config(no_dotenv)
        assert cfg == StrategyConfig()
        assert cfg.strategy_name == "DEFAULT"
        assert cfg.timeframe == "5m"
        assert cfg.adx_threshold == 20.0
        assert cfg.atr_zone_multiplier == 3.5
        assert cfg.sl_atr_multiplier == 8.0
        assert cfg.max_targets_per_order == 20
        assert cfg.min_take_profit_pct == 0.5

    def test_required_percentages_have_no_default(self, no_dotenv):
        cfg = load_strategy_config(no_dotenv)
        assert cfg.stop_loss_pct is None
        assert cfg.take_profit_pct is None

    def test_reads_environment(self, monkeypatch, no_dotenv):
        monkeypatch.setenv("TRADING_STRATEGY", "PRO_MAX")
        monkeypatch.setenv("TIME", "1h")
        monkeypatch.setenv("ADX_THRESHOLD", "25")
        monkeypatch.setenv("MAX_TARGETS_PER_ORDER", "8")
        monkeypatch.setenv("MAX_NEGATIVE_PNL_STOP_PCT", "4")
        monkeypatch.setenv("MIN_PROFIT_PERCENTAGE", "0.8")
        cfg = load_strategy_config(no_dotenv)
        assert cfg.strategy_name == "PRO_MAX"
        assert cfg.timeframe == "1h"
        assert cfg.adx_threshold == 25.0
        assert cfg.max_targets_per_order == 8
        assert cfg.stop_loss_pct == 4.0
        assert cfg.take_profit_pct == 0.8

    @pytest.mark.parametrize("raw,expected", [("true", True), ("YES", True), ("1", True), ("on", True), ("false", False), ("0", False)])
    def test_booleans(self, monkeypatch, no_dotenv, raw, expected):
        monkeypatch.setenv("IGNORE_BRONZE_SIGNALS", raw)
        assert load_strategy_config(no_dotenv).ignore_bronze_signals is expected

    def test_malformed_float_names_variable(self, monkeypatch, no_dotenv):
        monkeypatch.setenv("ATR_ZONE_MULTIPLIER", "three")
        with pytest.raises(ConfigurationError, match="ATR_ZONE_MULTIPLIER"):
            load_strategy_config(no_dotenv)

    def test_malformed_int_is_value_error(self, monkeypatch, no_dotenv):
        monkeypatch.setenv("RSI_LENGTH", "14.5")
        with pytest.raises(ValueError, match="RSI_LENGTH"):
            load_strategy_config(no_dotenv)

    def test_dotenv_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("TRADING_STRATEGY=CYPHER_PUNK\nUSE_MACD_VALIDATION=true\n")
        try:
            cfg = load_strategy_config(str(env))
        finally:
            os.environ.pop("TRADING_STRATEGY", None)
            os.environ.pop("USE_MACD_VALIDATION", None)
        assert cfg.strategy_name == "CYPHER_PUNK"
        assert cfg.use_macd_validation is True

    def test_frozen(self):
        with pytest.raises(AttributeError):
            StrategyConfig().timeframe = "1m"


class TestConfigureLogging:
    def test_accepts_level_names(self):
        configure_logging("debug")
        configure_logging("NOT_A_LEVEL")
