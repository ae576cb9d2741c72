"""Entry rules and confirmation filters for the Default strategy.

Each entry rule looks at one indicator family and either picks a side
(``RuleHit``) or returns ``None``.  ``first_match`` applies them in strict
priority order.  Confirmation filters never pick a side; they only veto
one that has already been chosen.
"""

from typing import Callable, Optional

from backbot.strategy.models import Action, MarketSnapshot, RuleHit, ValidationResult

MOMENTUM_RSI_OVERSOLD = 30.0
MOMENTUM_RSI_OVERBOUGHT = 70.0
STOCH_OVERSOLD = 20.0
STOCH_OVERBOUGHT = 80.0
MACD_HISTOGRAM_MIN = 0.3
MACD_HISTOGRAM_STRONG = 0.5
ADX_FALLBACK_THRESHOLD = 25.0
MFI_MIDLINE = 50.0


# ── Entry rules ──────────────────────────────────────────────────────────


def momentum_rule(snapshot: MarketSnapshot) -> Optional[RuleHit]:
    """Reversal pulse, or an extreme momentum RSI agreeing with momentum."""
    momentum = snapshot.momentum
    if momentum is None:
        return None

    reversal = momentum.reversal
    rsi = momentum.rsi

    if reversal is not None and reversal.color == "GREEN":
        return RuleHit("long", "momentum", f"GREEN reversal (strength {reversal.strength:.1f})")
    if rsi is not None and rsi <= MOMENTUM_RSI_OVERSOLD and momentum.is_bullish:
        return RuleHit("long", "momentum", f"RSI {rsi:.1f} oversold with bullish momentum")
    if reversal is not None and reversal.color == "RED":
        return RuleHit("short", "momentum", f"RED reversal (strength {reversal.strength:.1f})")
    if rsi is not None and rsi >= MOMENTUM_RSI_OVERBOUGHT and momentum.is_bearish:
        return RuleHit("short", "momentum", f"RSI {rsi:.1f} overbought with bearish momentum")
    return None


def stochastic_rule(snapshot: MarketSnapshot) -> Optional[RuleHit]:
    """Oversold/overbought Stochastic with a fresh %K/%D cross."""
    s = snapshot.stoch
    if None in (s.k, s.d, s.k_prev, s.d_prev):
        return None

    if s.k <= STOCH_OVERSOLD and s.d <= STOCH_OVERSOLD:
        if s.d_prev <= s.k_prev and s.d > s.k:
            return RuleHit("long", "stochastic", f"K={s.k:.1f} D={s.d:.1f} oversold cross")
    if s.k >= STOCH_OVERBOUGHT and s.d >= STOCH_OVERBOUGHT:
        if s.k_prev <= s.d_prev and s.k > s.d:
            return RuleHit("short", "stochastic", f"K={s.k:.1f} D={s.d:.1f} overbought cross")
    return None


def macd_rule(snapshot: MarketSnapshot) -> Optional[RuleHit]:
    """Histogram expanding in the direction of the MACD/signal spread."""
    m = snapshot.macd
    hist = m.histogram
    if hist is None:
        return None

    prev = m.histogram_prev
    rising = prev is not None and hist > prev
    falling = prev is not None and hist < prev

    if m.signal is not None and m.macd is not None:
        if hist > 0 and m.macd > m.signal and rising:
            return RuleHit("long", "macd", f"histogram {hist:.4f} rising above signal")
        if hist < 0 and m.macd < m.signal and falling:
            return RuleHit("short", "macd", f"histogram {hist:.4f} falling below signal")
        return None

    if (hist > MACD_HISTOGRAM_MIN and rising) or hist > MACD_HISTOGRAM_STRONG:
        return RuleHit("long", "macd", f"histogram {hist:.4f} without signal line")
    if (hist < -MACD_HISTOGRAM_MIN and falling) or hist < -MACD_HISTOGRAM_STRONG:
        return RuleHit("short", "macd", f"histogram {hist:.4f} without signal line")
    return None


def adx_rule(snapshot: MarketSnapshot) -> Optional[RuleHit]:
    """Trending market (ADX above its own EMA) in the dominant DI direction."""
    a = snapshot.adx
    if a.adx is None or a.di_plus is None or a.di_minus is None:
        return None

    threshold = a.adx_ema if a.adx_ema is not None else ADX_FALLBACK_THRESHOLD
    if a.adx <= threshold:
        return None
    if a.di_plus > a.di_minus:
        return RuleHit("long", "adx", f"ADX {a.adx:.1f} > {threshold:.1f}, DI+ leads")
    if a.di_minus > a.di_plus:
        return RuleHit("short", "adx", f"ADX {a.adx:.1f} > {threshold:.1f}, DI- leads")
    return None


EntryRule = Callable[[MarketSnapshot], Optional[RuleHit]]

ENTRY_RULES: tuple[EntryRule, ...] = (
    momentum_rule,
    stochastic_rule,
    macd_rule,
    adx_rule,
)


def first_match(
    snapshot: MarketSnapshot, rules: tuple[EntryRule, ...] = ENTRY_RULES
) -> Optional[RuleHit]:
    """Return the first rule hit in priority order, or ``None``."""
    for rule in rules:
        hit = rule(snapshot)
        if hit is not None:
            return hit
    return None


# ── Confirmation filters ─────────────────────────────────────────────────


def money_flow_filter(snapshot: MarketSnapshot, side: Action) -> ValidationResult:
    """MFI and money-flow value must both lean toward *side*."""
    mf = snapshot.money_flow
    if mf is None or mf.mfi is None or mf.value is None:
        return ValidationResult(False, "Money flow unavailable")

    details = {"mfi": mf.mfi, "value": mf.value}
    if side == "long":
        ok = mf.mfi > MFI_MIDLINE and mf.value > 0
    else:
        ok = mf.mfi < MFI_MIDLINE and mf.value < 0

    if ok:
        return ValidationResult(True, f"Money flow confirms {side}", details)
    return ValidationResult(
        False, f"Money flow against {side} (MFI {mf.mfi:.1f}, value {mf.value:.2f})", details
    )


def vwap_filter(snapshot: MarketSnapshot, side: Action) -> ValidationResult:
    """Price must sit on the *side* of VWAP (above for long, below for short)."""
    vwap = snapshot.vwap.vwap
    price = snapshot.mark_price
    if vwap is None:
        return ValidationResult(False, "VWAP unavailable")

    details = {"price": price, "vwap": vwap}
    ok = price > vwap if side == "long" else price < vwap
    if ok:
        return ValidationResult(True, f"VWAP confirms {side}", details)
    return ValidationResult(False, f"Price {price} on wrong side of VWAP {vwap:.6f}", details)


def market_trend_filter(
    snapshot: MarketSnapshot,
    side: Action,
    trend: str,
    reference_symbol: str,
) -> ValidationResult:
    """The broader-market trend must be set and agree with *side*.

    Skipped (always valid) when *snapshot* is the reference market.
    """
    if snapshot.symbol == reference_symbol:
        return ValidationResult(True, "Reference market, trend filter skipped")

    details = {"trend": trend}
    if trend == "NEUTRAL":
        return ValidationResult(False, "Broader market is neutral", details)

    expected = "BULLISH" if side == "long" else "BEARISH"
    if trend != expected:
        return ValidationResult(False, f"Broader market {trend} against {side}", details)
    return ValidationResult(True, f"Broader market {trend}", details)
