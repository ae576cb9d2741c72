"""Snapshot builder — turns a candle window into a ``MarketSnapshot``.

Each indicator is computed independently.  When the window is too short
for one of them, that bundle is left empty (``None`` values, empty
arrays) and the rest of the snapshot is still produced.
"""

import logging
import math
from typing import Optional, Sequence

from backbot.config import StrategyConfig
from backbot.strategy import indicators as ind
from backbot.strategy.models import (
    AdxInfo,
    AtrInfo,
    BollingerInfo,
    Candle,
    EmaInfo,
    MacdInfo,
    MarketInfo,
    MarketSnapshot,
    MomentumInfo,
    MoneyFlowInfo,
    ReversalPulse,
    RsiInfo,
    StochInfo,
    VolumeTrends,
    VwapBands,
)

logger = logging.getLogger("backbot.strategy.snapshot")

EMA_FAST = 9
EMA_SLOW = 21
BOLLINGER_PERIOD = 20
BOLLINGER_STD_DEV = 2.0
ATR_PERIOD = 14
MFI_PERIOD = 14
MONEY_FLOW_PERIOD = 60
MONEY_FLOW_MULTIPLIER = 225.0
MONEY_FLOW_STRENGTH = 5.0
WT_CHANNEL_LENGTH = 9
WT_AVERAGE_LENGTH = 12
WT_MA_LENGTH = 3


def _valid(series: Sequence[float]) -> list[float]:
    return [v for v in series if not math.isnan(v)]


def _last(series: Sequence[float], offset: int = 1) -> Optional[float]:
    """Return ``series[-offset]`` or ``None`` if absent or NaN."""
    if len(series) < offset:
        return None
    value = series[-offset]
    return None if math.isnan(value) else value


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


# ── Bundle builders ──────────────────────────────────────────────────────


def _ema_info(candles: list[Candle]) -> EmaInfo:
    try:
        fast = ind.calculate_ema(candles, EMA_FAST)
        slow = ind.calculate_ema(candles, EMA_SLOW)
    except ValueError:
        return EmaInfo()

    cross = ind.find_ema_cross(fast, slow)
    cross_fields = {}
    if cross is not None:
        index, cross_type = cross
        cross_fields = dict(
            cross_index=index,
            cross_type=cross_type,
            candles_ago=len(fast) - 1 - index,
        )

    last_f, last_s = _last(fast), _last(slow)
    prev_f, prev_s = _last(fast, 2), _last(slow, 2)
    if None in (last_f, last_s, prev_f, prev_s):
        return EmaInfo(**cross_fields)

    diff = last_f - last_s
    crossed = None
    if prev_f <= prev_s and last_f > last_s:
        crossed = "goldenCross"
    elif prev_f >= prev_s and last_f < last_s:
        crossed = "deathCross"

    return EmaInfo(
        ema9=last_f,
        ema21=last_s,
        diff=diff,
        diff_pct=(diff / last_s) * 100 if last_s else 0.0,
        signal="bullish" if diff > 0 else "bearish",
        crossed=crossed,
        **cross_fields,
    )


def _rsi_info(candles: list[Candle], config: StrategyConfig) -> RsiInfo:
    try:
        history = _valid(ind.calculate_rsi(candles, config.rsi_length))
    except ValueError:
        return RsiInfo()

    avg_len = config.rsi_average_length
    return RsiInfo(
        value=history[-1] if history else None,
        prev=history[-2] if len(history) >= 2 else None,
        avg=_mean(history[-avg_len:]) if len(history) >= avg_len else None,
        avg_prev=(
            _mean(history[-avg_len - 1 : -1]) if len(history) >= avg_len + 1 else None
        ),
        history=tuple(history),
    )


def _macd_info(candles: list[Candle], config: StrategyConfig) -> MacdInfo:
    try:
        macd, signal, histogram = ind.calculate_macd(
            candles,
            config.macd_fast_length,
            config.macd_slow_length,
            config.macd_signal_length,
        )
    except ValueError:
        return MacdInfo()
    return MacdInfo(
        macd=_last(macd),
        signal=_last(signal),
        histogram=_last(histogram),
        histogram_prev=_last(histogram, 2),
    )


def _bollinger_info(candles: list[Candle]) -> BollingerInfo:
    try:
        upper, middle, lower = ind.calculate_bollinger(
            candles, BOLLINGER_PERIOD, BOLLINGER_STD_DEV
        )
    except ValueError:
        return BollingerInfo()
    return BollingerInfo(upper=_last(upper), middle=_last(middle), lower=_last(lower))


def _atr_info(candles: list[Candle]) -> AtrInfo:
    try:
        history = _valid(ind.calculate_atr(candles, ATR_PERIOD))
    except ValueError:
        return AtrInfo()
    return AtrInfo(value=history[-1] if history else None, history=tuple(history))


def _stoch_info(candles: list[Candle], config: StrategyConfig) -> StochInfo:
    try:
        k, d = ind.calculate_stochastic(
            candles, config.stoch_k_length, config.stoch_d_length, config.stoch_smooth
        )
    except ValueError:
        return StochInfo()
    return StochInfo(k=_last(k), d=_last(d), k_prev=_last(k, 2), d_prev=_last(d, 2))


def _adx_info(candles: list[Candle], config: StrategyConfig) -> AdxInfo:
    try:
        adx, plus_di, minus_di = ind.calculate_adx(candles, config.adx_length)
    except ValueError:
        return AdxInfo()

    try:
        adx_ema = _last(ind.ema_series(_valid(adx), config.adx_average_length))
    except ValueError:
        adx_ema = None

    return AdxInfo(
        adx=_last(adx),
        di_plus=_last(plus_di),
        di_minus=_last(minus_di),
        di_plus_prev=_last(plus_di, 2),
        di_minus_prev=_last(minus_di, 2),
        adx_ema=adx_ema,
    )


def _volume_trends(candles: list[Candle]) -> VolumeTrends:
    if len(candles) < 2:
        return VolumeTrends()
    return VolumeTrends(
        volume=ind.linear_trend([c.quote_volume for c in candles]),
        variance=ind.linear_trend([c.high - c.low for c in candles]),
        price=ind.linear_trend([c.open - c.close for c in candles]),
    )


def _vwap_bands(candles: list[Candle]) -> VwapBands:
    try:
        vwap, std_dev, upper, lower = ind.calculate_vwap_bands(candles)
    except ValueError:
        return VwapBands()
    return VwapBands(vwap=vwap, std_dev=std_dev, upper_bands=upper, lower_bands=lower)


def _momentum_info(candles: list[Candle], rsi_value: Optional[float]) -> Optional[MomentumInfo]:
    try:
        wt1, wt2 = ind.calculate_wave_trend(
            candles, WT_CHANNEL_LENGTH, WT_AVERAGE_LENGTH, WT_MA_LENGTH
        )
    except ValueError:
        return None

    w1, w2 = _last(wt1), _last(wt2)
    p1, p2 = _last(wt1, 2), _last(wt2, 2)
    if w1 is None or w2 is None:
        return None

    reversal = None
    if p1 is not None and p2 is not None:
        if p1 <= p2 and w1 > w2:
            reversal = ReversalPulse(color="GREEN", strength=abs(w2))
        elif p1 >= p2 and w1 < w2:
            reversal = ReversalPulse(color="RED", strength=abs(w2))

    return MomentumInfo(
        wt1=w1,
        wt2=w2,
        value=w1 - w2,
        rsi=rsi_value,
        is_bullish=w1 > w2,
        is_bearish=w1 < w2,
        reversal=reversal,
    )


def _money_flow_info(candles: list[Candle]) -> Optional[MoneyFlowInfo]:
    try:
        mfi_series = _valid(ind.calculate_mfi(candles, MFI_PERIOD))
        flow = _valid(
            ind.calculate_custom_money_flow(
                candles, MONEY_FLOW_PERIOD, MONEY_FLOW_MULTIPLIER
            )
        )
    except ValueError:
        return None
    if not mfi_series or not flow:
        return None

    value = flow[-1]
    return MoneyFlowInfo(
        mfi=mfi_series[-1],
        mfi_avg=_mean(mfi_series[-MFI_PERIOD:]),
        value=value,
        is_bullish=value > 0,
        is_bearish=value < 0,
        is_strong=abs(value) >= MONEY_FLOW_STRENGTH,
        direction="UP" if value > 0 else "DOWN",
        history=tuple(flow),
    )


# ── Public API ───────────────────────────────────────────────────────────


def build_snapshot(
    candles: list[Candle],
    market: MarketInfo,
    mark_price: float,
    config: Optional[StrategyConfig] = None,
) -> MarketSnapshot:
    """Compute every indicator bundle for *market* from *candles*.

    Args:
        candles: Candle window, oldest-first.
        market: Exchange metadata (symbol and price precision).
        mark_price: Current mark price used as the entry reference.
        config: Indicator periods; defaults to ``StrategyConfig()``.

    Returns:
        An immutable ``MarketSnapshot``.  Identical input always yields an
        identical snapshot.
    """
    config = config or StrategyConfig()
    rsi = _rsi_info(candles, config)

    snapshot = MarketSnapshot(
        market=market,
        mark_price=float(mark_price),
        ema=_ema_info(candles),
        rsi=rsi,
        macd=_macd_info(candles, config),
        bollinger=_bollinger_info(candles),
        atr=_atr_info(candles),
        stoch=_stoch_info(candles, config),
        adx=_adx_info(candles, config),
        trends=_volume_trends(candles),
        vwap=_vwap_bands(candles),
        momentum=_momentum_info(candles, rsi.value),
        money_flow=_money_flow_info(candles),
        timestamp=candles[-1].timestamp if candles else "",
    )
    logger.debug(
        "Snapshot %s: %d candles, rsi=%s, adx=%s, vwap=%s",
        market.symbol, len(candles), rsi.value, snapshot.adx.adx, snapshot.vwap.vwap,
    )
    return snapshot
