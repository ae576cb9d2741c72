"""Multi-target stop/target ladders — pure math, no I/O.

Volatility-scaled ladder (ATR based):
    stop = price ∓ ATR × sl_multiplier
    target_k = price ± ATR × zone_multiplier × timeframe_multiplier × k

Fixed-percentage ladder:
    targets and stops at fixed percentages from entry, independent of
    volatility.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from backbot.strategy.models import Action

TIMEFRAME_MULTIPLIERS: dict[str, float] = {
    "1m": 0.5,
    "3m": 0.7,
    "5m": 1.0,
    "15m": 1.2,
    "30m": 1.5,
    "1h": 2.0,
    "2h": 2.5,
    "4h": 3.0,
    "1d": 4.0,
}


@dataclass(frozen=True)
class Ladder:
    """A stop plus ordered take-profit levels (nearest first)."""

    stop: float
    targets: tuple[float, ...]


def timeframe_multiplier(timeframe: str) -> float:
    """Scale factor for target spacing; unknown timeframes map to 1.0."""
    return TIMEFRAME_MULTIPLIERS.get(timeframe, 1.0)


def atr_ladder(
    price: float,
    action: Action,
    atr: Optional[float],
    zone_multiplier: float = 3.5,
    sl_multiplier: float = 8.0,
    tf_multiplier: float = 1.0,
    max_targets: int = 20,
) -> Optional[Ladder]:
    """Build an ATR-scaled stop and up to *max_targets* targets.

    Non-positive target levels are dropped.

    Returns:
        ``Ladder``, or ``None`` when ATR is missing/non-positive, the stop
        is non-positive, or no valid target remains.
    """
    if atr is None or atr <= 0:
        return None

    distance = atr * zone_multiplier * tf_multiplier
    sign = 1 if action == "long" else -1
    stop = price - sign * atr * sl_multiplier

    targets = []
    for k in range(1, max_targets + 1):
        level = price + sign * distance * k
        if level > 0:
            targets.append(level)

    if stop <= 0 or not targets:
        return None
    return Ladder(stop=stop, targets=tuple(targets))


def percentage_ladder(
    entry: float,
    action: Action,
    target_pcts: Sequence[float] = (10.0, 20.0, 30.0),
    stop_pcts: Sequence[float] = (2.0, 4.0, 6.0),
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Return ``(targets, stops)`` at fixed percentages from *entry*."""
    sign = 1 if action == "long" else -1
    targets = tuple(entry * (1 + sign * pct / 100) for pct in target_pcts)
    stops = tuple(entry * (1 - sign * pct / 100) for pct in stop_pcts)
    return targets, stops
