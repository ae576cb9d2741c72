"""Default strategy — multi-indicator rule cascade with confirmation filters.

Implements ``StrategyProtocol``.

Flow:
    1. Pick a side with the first matching entry rule
       (momentum → stochastic → MACD → ADX).
    2. Veto with money flow, VWAP and broader-market trend filters.
    3. Place a leverage-adjusted stop and percentage target.
    4. Hand the signal to the order executor, if the context has one.
"""

import dataclasses
import logging
from typing import Optional

from backbot.config import StrategyConfig
from backbot.risk.trade_math import (
    calculate_pnl_and_risk,
    calculate_stop_and_target,
    round_price,
    validate_data,
    validate_take_profit,
)
from backbot.strategy.base import OrderRequest, StrategyContext
from backbot.strategy.models import MarketSnapshot, SignalAnalysis, TradeSignal
from backbot.strategy.rules import (
    first_match,
    market_trend_filter,
    money_flow_filter,
    vwap_filter,
)

logger = logging.getLogger("backbot.strategy.default")


class DefaultStrategy:
    """Rule-cascade strategy aimed at frequent, filtered entries."""

    name = "DEFAULT"

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self.config = config or StrategyConfig()

    def analyze_signals(self, snapshot: MarketSnapshot) -> SignalAnalysis:
        hit = first_match(snapshot)
        if hit is None:
            return SignalAnalysis(has_signal=False, details=("No entry rule matched",))
        return SignalAnalysis(
            has_signal=True,
            is_long=hit.side == "long",
            signal_type=f"{hit.side.upper()} ({hit.label})",
            details=(hit.detail,),
        )

    async def analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        """Run the rule cascade and filters for one market.

        Returns:
            ``TradeSignal`` (annotated with the order outcome when an
            executor is present), else ``None``.
        """
        try:
            return await self._analyze(snapshot, investment, fee, context)
        except Exception:
            logger.exception("DefaultStrategy failed on %s", snapshot.symbol)
            return None

    async def _analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        symbol = snapshot.symbol
        if not validate_data(snapshot):
            logger.debug("%s: VWAP bands missing", symbol)
            return None

        hit = first_match(snapshot)
        if hit is None:
            return None
        side = hit.side

        checks = (
            money_flow_filter(snapshot, side),
            vwap_filter(snapshot, side),
            market_trend_filter(
                snapshot, side, context.broader_market_trend, context.reference_symbol
            ),
        )
        for check in checks:
            if not check.is_valid:
                logger.debug("%s: %s %s rejected: %s", symbol, side, hit.label, check.reason)
                return None

        price = snapshot.mark_price
        levels = await calculate_stop_and_target(
            snapshot,
            price,
            side == "long",
            self.config.stop_loss_pct,
            self.config.take_profit_pct,
            context,
        )
        if levels is None:
            return None
        stop, target = levels

        tp_check = validate_take_profit(
            side, price, stop, target, self.config.min_take_profit_pct
        )
        if not tp_check.is_valid:
            logger.debug("%s: %s", symbol, tp_check.reason)
            return None

        pnl, risk = calculate_pnl_and_risk(side, price, stop, target, investment, fee)
        decimals = snapshot.market.decimal_price
        signal = TradeSignal(
            market=symbol,
            entry=round_price(price, decimals),
            stop=round_price(stop, decimals),
            target=round_price(target, decimals),
            action=side,
            pnl=pnl,
            risk=risk,
            reason=f"{hit.label}: {hit.detail}",
        )
        logger.info(
            "[DEFAULT] %s: %s via %s, PnL $%.2f / risk $%.2f",
            symbol, side.upper(), hit.label, pnl, risk,
        )

        if context.executor is not None:
            result = await self._submit(signal, snapshot, investment, context)
            signal = dataclasses.replace(signal, order_result=result)
        return signal

    async def _submit(
        self,
        signal: TradeSignal,
        snapshot: MarketSnapshot,
        investment: float,
        context: StrategyContext,
    ) -> dict:
        request = OrderRequest(
            market=signal.market,
            action=signal.action,
            entry=signal.entry,
            stop=signal.stop,
            target=signal.target,
            volume=investment,
            decimal_price=snapshot.market.decimal_price,
            decimal_quantity=snapshot.market.decimal_quantity,
        )
        try:
            result = await context.executor.submit(request)
        except Exception as exc:
            logger.error("%s: order submission failed: %s", signal.market, exc)
            return {"error": str(exc)}
        if result is None:
            return {"error": "no response from executor"}
        if "error" in result:
            logger.warning("%s: order rejected: %s", signal.market, result["error"])
        return result
