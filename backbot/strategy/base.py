"""Strategy protocol, evaluation context and collaborator interfaces.

Defines the interface that all strategies must implement and the
external services they may call during an evaluation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from backbot.strategy.models import (
    Action,
    Candle,
    MarketSnapshot,
    MarketTrend,
    SignalAnalysis,
    TradeSignal,
)

logger = logging.getLogger("backbot.strategy")

DEFAULT_LEVERAGE = 1.0


# ── Collaborators ────────────────────────────────────────────────────────


@runtime_checkable
class MarketDataProvider(Protocol):
    """Source of candle history and live mark prices."""

    async def get_candles(self, symbol: str, timeframe: str, count: int) -> list[Candle]:
        ...

    async def get_mark_price(self, symbol: str) -> float:
        ...


@runtime_checkable
class AccountProvider(Protocol):
    """Account-level lookups (leverage and tradeable markets)."""

    async def get_leverage(self) -> float:
        ...

    async def get_markets(self) -> list[dict]:
        ...


@runtime_checkable
class OrderExecutor(Protocol):
    """Places orders; returns ``{"orderId": ...}`` or ``{"error": ...}``."""

    async def submit(self, request: OrderRequest) -> dict:
        ...


@dataclass(frozen=True)
class OrderRequest:
    """Payload handed to the order executor for a new entry."""

    market: str
    action: Action
    entry: float
    stop: float
    target: float
    volume: float
    decimal_price: int
    decimal_quantity: int


# ── Evaluation context ───────────────────────────────────────────────────


@dataclass(frozen=True)
class StrategyContext:
    """Everything a strategy needs beyond the snapshot itself.

    ``leverage`` short-circuits the account lookup when already known.
    ``broader_market_trend`` is derived once per batch from the reference
    market and shared by every evaluation in that batch.
    """

    leverage: Optional[float] = None
    broader_market_trend: MarketTrend = "NEUTRAL"
    reference_symbol: str = "BTC_USDC_PERP"
    account: Optional[Any] = None
    executor: Optional[Any] = None

    async def get_leverage(self) -> float:
        """Return the account leverage, failing open to 1× on any error."""
        if self.leverage is not None:
            value = self.leverage
        elif self.account is None:
            return DEFAULT_LEVERAGE
        else:
            try:
                value = await self.account.get_leverage()
            except Exception as exc:
                logger.warning(
                    "Leverage lookup failed: %s (using %.0fx)", exc, DEFAULT_LEVERAGE
                )
                return DEFAULT_LEVERAGE

        try:
            value = float(value)
        except (TypeError, ValueError):
            return DEFAULT_LEVERAGE
        return value if value > 0 else DEFAULT_LEVERAGE


# ── Strategy contract ────────────────────────────────────────────────────


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all trading strategies must satisfy."""

    name: str

    async def analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        """Evaluate one market and return a trade signal or None."""
        ...

    def analyze_signals(self, snapshot: MarketSnapshot) -> SignalAnalysis:
        """Direction-only view of *snapshot*, used for the market trend."""
        ...


def market_trend_from_analysis(analysis: Optional[SignalAnalysis]) -> MarketTrend:
    """Map a reference-market analysis to a broader-market trend."""
    if analysis is None or not analysis.has_signal:
        return "NEUTRAL"
    return "BULLISH" if analysis.is_long else "BEARISH"
