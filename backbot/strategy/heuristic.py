"""Standalone VWAP-bracket heuristic.

Usable without any strategy object: give it a snapshot and it answers with
a ``TradeSignal`` or ``None``.

Entry (any one suffices):
    * EMA golden/death cross within the last 2 candles.
    * RSI reversal against its average (oversold bounce / overbought fade).
    * EMA trend and RSI momentum aligned.

Levels come from the VWAP bands around price:
    long  stop   = nearest band below price
          target = price + (nearest band above − price) × 0.95
    short mirrored.
"""

import logging
from typing import Optional

from backbot.risk.trade_math import calculate_pnl_and_risk, round_price, validate_data
from backbot.strategy.models import Action, MarketSnapshot, TradeSignal

logger = logging.getLogger("backbot.strategy.heuristic")

TARGET_DAMPING = 0.95
CROSS_MAX_CANDLES_AGO = 2
EMA_TREND_MIN_DIFF_PCT = 0.1


def pick_side(snapshot: MarketSnapshot, rsi_average: Optional[float] = None) -> Optional[Action]:
    """Return the heuristic's direction, or ``None``.

    *rsi_average* overrides the snapshot's own RSI average (e.g. an
    average across every evaluated market).
    """
    ema = snapshot.ema
    rsi = snapshot.rsi.value
    avg = rsi_average if rsi_average is not None else snapshot.rsi.avg

    recent_cross = ema.candles_ago is not None and ema.candles_ago < CROSS_MAX_CANDLES_AGO
    cross_long = recent_cross and ema.cross_type == "goldenCross"
    cross_short = recent_cross and ema.cross_type == "deathCross"

    reversing_up = reversing_down = rsi_long = rsi_short = False
    if rsi is not None and avg is not None:
        reversing_up = rsi > 35 and avg < 30
        reversing_down = rsi < 65 and avg > 70
        rsi_long = rsi > 50 and avg > 40
        rsi_short = rsi < 50 and avg < 60

    trend_long = trend_short = False
    if None not in (ema.ema9, ema.ema21, ema.diff_pct):
        trend_long = ema.ema9 > ema.ema21 and ema.diff_pct > EMA_TREND_MIN_DIFF_PCT
        trend_short = ema.ema9 < ema.ema21 and ema.diff_pct < -EMA_TREND_MIN_DIFF_PCT

    if (trend_long and rsi_long) or reversing_up or cross_long:
        return "long"
    if (trend_short and rsi_short) or reversing_down or cross_short:
        return "short"
    return None


def vwap_bracket(
    snapshot: MarketSnapshot, price: float, action: Action
) -> Optional[tuple[float, float]]:
    """Return ``(stop, target)`` from the bands around *price*.

    ``None`` when price is not bracketed by at least one band on each side.
    """
    bands = sorted(snapshot.vwap.lower_bands + snapshot.vwap.upper_bands)
    below = [b for b in bands if b < price]
    above = [b for b in bands if b > price]
    if not below or not above:
        return None

    nearest_below, nearest_above = below[-1], above[0]
    if action == "long":
        return nearest_below, price + (nearest_above - price) * TARGET_DAMPING
    return nearest_above, price - (price - nearest_below) * TARGET_DAMPING


def evaluate_heuristic(
    snapshot: MarketSnapshot,
    investment: float,
    fee: float,
    rsi_average: Optional[float] = None,
) -> Optional[TradeSignal]:
    """Evaluate *snapshot* with the VWAP-bracket heuristic."""
    if not validate_data(snapshot):
        return None

    action = pick_side(snapshot, rsi_average)
    if action is None:
        return None

    price = snapshot.mark_price
    levels = vwap_bracket(snapshot, price, action)
    if levels is None:
        logger.debug("%s: price %s not bracketed by VWAP bands", snapshot.symbol, price)
        return None
    stop, target = levels

    pnl, risk = calculate_pnl_and_risk(action, price, stop, target, investment, fee)
    decimals = snapshot.market.decimal_price
    return TradeSignal(
        market=snapshot.symbol,
        entry=round_price(price, decimals),
        stop=round_price(stop, decimals),
        target=round_price(target, decimals),
        action=action,
        pnl=pnl,
        risk=risk,
    )
