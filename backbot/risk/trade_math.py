"""Shared strategy math — data validation, PnL/risk, take-profit checks and
leverage-aware stop/target placement.

Everything here is pure except ``calculate_stop_and_target``, which may
suspend while the evaluation context looks up the account leverage.
"""

import logging
from typing import Optional

from backbot.strategy.base import StrategyContext
from backbot.strategy.models import Action, MarketSnapshot, ValidationResult

logger = logging.getLogger("backbot.risk")


def validate_data(snapshot: MarketSnapshot) -> bool:
    """Return True if the snapshot carries usable VWAP bands."""
    vwap = snapshot.vwap
    return bool(vwap.upper_bands) and bool(vwap.lower_bands) and vwap.vwap is not None


def round_price(value: float, decimals: int) -> float:
    """Round *value* to the market's declared price precision."""
    return round(float(value), int(decimals))


def calculate_pnl_and_risk(
    action: Action,
    entry: float,
    stop: float,
    target: float,
    investment: float,
    fee: float,
) -> tuple[float, float]:
    """Project the net profit at target and the net loss at stop.

    Formula::

        units        = investment / entry
        gross_target = (target − entry) × units     (long; mirrored for short)
        gross_loss   = (entry − stop) × units       (long; mirrored for short)
        entry_fee    = investment × fee
        exit fee     = notional of the leg reached × fee
        pnl          = gross_target − (entry_fee + target_exit_fee)
        risk         = gross_loss + (entry_fee + stop_exit_fee)

    Args:
        action: ``"long"`` or ``"short"``.
        entry: Entry price.
        stop: Stop-loss price.
        target: Take-profit price.
        investment: Position notional in quote currency.
        fee: Fee rate per side (e.g. 0.0004).

    Returns:
        ``(pnl, risk)``.

    Raises:
        ValueError: If *entry* is not positive or *action* is unknown.
    """
    if entry <= 0:
        raise ValueError(f"entry must be positive, got {entry}")
    if action not in ("long", "short"):
        raise ValueError(f"action must be 'long' or 'short', got '{action}'")

    units = investment / entry
    if action == "long":
        gross_target = (target - entry) * units
        gross_loss = (entry - stop) * units
    else:
        gross_target = (entry - target) * units
        gross_loss = (stop - entry) * units

    entry_fee = investment * fee
    exit_fee_target = target * units * fee
    exit_fee_loss = stop * units * fee

    pnl = gross_target - (entry_fee + exit_fee_target)
    risk = gross_loss + (entry_fee + exit_fee_loss)
    return pnl, risk


def validate_take_profit(
    action: Action,
    entry: float,
    stop: float,
    target: float,
    min_take_profit_pct: float,
) -> ValidationResult:
    """Reject targets that are too close to entry.

    Computes the risk/reward ratio and the target move as a percentage of
    entry; the trade is invalid when that percentage is below
    *min_take_profit_pct*.
    """
    if action == "long":
        reward = target - entry
        risk = entry - stop
    else:
        reward = entry - target
        risk = stop - entry

    take_profit_pct = (reward / entry) * 100 if entry else 0.0
    risk_reward = reward / risk if risk > 0 else 0.0
    details = {
        "risk_reward_ratio": risk_reward,
        "take_profit_pct": take_profit_pct,
        "min_take_profit_pct": min_take_profit_pct,
    }

    if take_profit_pct < min_take_profit_pct:
        return ValidationResult(
            is_valid=False,
            reason=(
                f"Take profit {take_profit_pct:.2f}% below minimum "
                f"{min_take_profit_pct:.2f}%"
            ),
            details=details,
        )
    return ValidationResult(
        is_valid=True,
        reason=f"Take profit {take_profit_pct:.2f}% (R:R {risk_reward:.2f})",
        details=details,
    )


async def calculate_stop_and_target(
    snapshot: MarketSnapshot,
    price: float,
    is_long: bool,
    stop_loss_pct: Optional[float],
    take_profit_pct: Optional[float],
    context: StrategyContext,
) -> Optional[tuple[float, float]]:
    """Place a leverage-adjusted stop and a percentage target around *price*.

    The raw stop percent is divided by the account leverage, since a
    leveraged position reaches a given loss on a smaller price move::

        effective_stop_pct = stop_loss_pct / leverage
        long:  stop = price × (1 − effective_stop_pct / 100)
               target = price × (1 + take_profit_pct / 100)
        short: mirrored

    Returns:
        ``(stop, target)``, or ``None`` when either percentage is missing
        or zero, or when the levels do not straddle *price* correctly.
    """
    if not stop_loss_pct or not take_profit_pct:
        logger.warning(
            "%s: stop_loss_pct=%s take_profit_pct=%s, both are required",
            snapshot.symbol, stop_loss_pct, take_profit_pct,
        )
        return None

    leverage = await context.get_leverage()
    effective_stop_pct = stop_loss_pct / leverage

    if is_long:
        stop = price * (1 - effective_stop_pct / 100)
        target = price * (1 + take_profit_pct / 100)
        valid = stop < price < target
    else:
        stop = price * (1 + effective_stop_pct / 100)
        target = price * (1 - take_profit_pct / 100)
        valid = target < price < stop

    if not valid:
        logger.debug(
            "%s: stop %.6f / target %.6f do not straddle price %.6f",
            snapshot.symbol, stop, target, price,
        )
        return None
    return stop, target
