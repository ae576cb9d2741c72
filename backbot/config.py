"""Backbot — strategy configuration.

Loads .env variables into a typed config object.  Every option the
indicator engine and the strategies recognise lives here; strategies never
read the environment themselves.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


class ConfigurationError(ValueError):
    """Raised when an environment variable holds an unusable value."""


_TRUE_VALUES = {"true", "1", "yes", "on"}


@dataclass(frozen=True)
class StrategyConfig:
    """Typed configuration for indicator periods and strategy thresholds."""

    strategy_name: str = "DEFAULT"
    timeframe: str = "5m"
    reference_symbol: str = "BTC_USDC_PERP"

    # RSI
    rsi_length: int = 14
    rsi_average_length: int = 14
    rsi_bull_threshold: float = 45.0
    rsi_bear_threshold: float = 55.0

    # Stochastic
    stoch_k_length: int = 14
    stoch_d_length: int = 3
    stoch_smooth: int = 3
    stoch_bull_threshold: float = 45.0
    stoch_bear_threshold: float = 55.0

    # MACD
    macd_fast_length: int = 12
    macd_slow_length: int = 26
    macd_signal_length: int = 9

    # ADX
    adx_length: int = 14
    adx_threshold: float = 20.0
    adx_average_length: int = 21

    # ProMax validators and ladder
    use_rsi_validation: bool = False
    use_stoch_validation: bool = False
    use_macd_validation: bool = False
    ignore_bronze_signals: bool = False
    atr_zone_multiplier: float = 3.5
    sl_atr_multiplier: float = 8.0
    max_targets_per_order: int = 20

    # Stop / target (percent units, e.g. 4.0 == 4 %)
    min_take_profit_pct: float = 0.5
    stop_loss_pct: Optional[float] = None  # required by the Default strategy
    take_profit_pct: Optional[float] = None  # required by the Default strategy

    log_level: str = "INFO"


def _get_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from None


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_strategy_config(env_path: str | None = None) -> StrategyConfig:
    """Load strategy configuration from environment variables.

    ``MAX_NEGATIVE_PNL_STOP_PCT`` and ``MIN_PROFIT_PERCENTAGE`` have no
    default: when absent they load as ``None`` and the strategies that need
    them refuse to trade.

    Raises ``ConfigurationError`` naming the variable when a numeric value
    cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    return StrategyConfig(
        strategy_name=os.environ.get("TRADING_STRATEGY", "DEFAULT"),
        timeframe=os.environ.get("TIME", "5m"),
        reference_symbol=os.environ.get("REFERENCE_SYMBOL", "BTC_USDC_PERP"),
        rsi_length=_get_int("RSI_LENGTH", 14),
        rsi_average_length=_get_int("RSI_AVERAGE_LENGTH", 14),
        rsi_bull_threshold=_get_float("RSI_BULL_THRESHOLD", 45.0),
        rsi_bear_threshold=_get_float("RSI_BEAR_THRESHOLD", 55.0),
        stoch_k_length=_get_int("STOCH_K_LENGTH", 14),
        stoch_d_length=_get_int("STOCH_D_LENGTH", 3),
        stoch_smooth=_get_int("STOCH_SMOOTH", 3),
        stoch_bull_threshold=_get_float("STOCH_BULL_THRESHOLD", 45.0),
        stoch_bear_threshold=_get_float("STOCH_BEAR_THRESHOLD", 55.0),
        macd_fast_length=_get_int("MACD_FAST_LENGTH", 12),
        macd_slow_length=_get_int("MACD_SLOW_LENGTH", 26),
        macd_signal_length=_get_int("MACD_SIGNAL_LENGTH", 9),
        adx_length=_get_int("ADX_LENGTH", 14),
        adx_threshold=_get_float("ADX_THRESHOLD", 20.0),
        adx_average_length=_get_int("ADX_AVERAGE_LENGTH", 21),
        use_rsi_validation=_get_bool("USE_RSI_VALIDATION"),
        use_stoch_validation=_get_bool("USE_STOCH_VALIDATION"),
        use_macd_validation=_get_bool("USE_MACD_VALIDATION"),
        ignore_bronze_signals=_get_bool("IGNORE_BRONZE_SIGNALS"),
        atr_zone_multiplier=_get_float("ATR_ZONE_MULTIPLIER", 3.5),
        sl_atr_multiplier=_get_float("SL_ATR_MULTIPLIER", 8.0),
        max_targets_per_order=_get_int("MAX_TARGETS_PER_ORDER", 20),
        min_take_profit_pct=_get_float("MIN_TAKE_PROFIT_PCT", 0.5),
        stop_loss_pct=_get_float("MAX_NEGATIVE_PNL_STOP_PCT", None),
        take_profit_pct=_get_float("MIN_PROFIT_PERCENTAGE", None),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler used by every ``backbot.*`` logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
