"""Backbot — decision cycle (multi-market orchestration).

Fetches market data through the collaborators, builds one snapshot per
market, derives the broader-market trend from the reference market and
evaluates every market concurrently with the configured strategy.
Orders are never placed here; a strategy only submits when the context
carries an executor.
"""

import asyncio
import logging
from typing import Any, Optional

from backbot.config import StrategyConfig, configure_logging, load_strategy_config
from backbot.strategy.base import (
    AccountProvider,
    MarketDataProvider,
    StrategyContext,
    StrategyProtocol,
    market_trend_from_analysis,
)
from backbot.strategy.models import MarketInfo, MarketSnapshot, MarketTrend, TradeSignal
from backbot.strategy.registry import get_strategy
from backbot.strategy.snapshot import build_snapshot

logger = logging.getLogger("backbot.decision")

CANDLE_COUNT = 200


def market_info_from_dict(raw: dict) -> MarketInfo:
    """Convert an account ``get_markets()`` entry to ``MarketInfo``."""
    return MarketInfo(
        symbol=raw["symbol"],
        tick_size=float(raw.get("tickSize", 0.0)),
        step_size=float(raw.get("stepSize", 0.0)),
        decimal_price=int(raw.get("decimalPrice", 2)),
        decimal_quantity=int(raw.get("decimalQuantity", 4)),
    )


class Decision:
    """Runs one evaluation batch across every tradeable market.

    Args:
        strategy: A strategy implementing ``StrategyProtocol``.
        market_data: Candle and mark-price source.
        account: Leverage and market-list source.
        config: Strategy configuration (timeframe, reference symbol).
        executor: Optional order executor passed through to the strategy.
    """

    def __init__(
        self,
        strategy: StrategyProtocol,
        market_data: MarketDataProvider,
        account: AccountProvider,
        config: Optional[StrategyConfig] = None,
        executor: Optional[Any] = None,
        candle_count: int = CANDLE_COUNT,
    ) -> None:
        self._strategy = strategy
        self._market_data = market_data
        self._account = account
        self._config = config or StrategyConfig()
        self._executor = executor
        self._candle_count = candle_count

    @classmethod
    def from_env(
        cls,
        market_data: MarketDataProvider,
        account: AccountProvider,
        env_path: str | None = None,
        executor: Optional[Any] = None,
    ) -> "Decision":
        """Build a decision cycle from environment configuration.

        Loads ``StrategyConfig``, installs logging at ``LOG_LEVEL`` and
        resolves ``TRADING_STRATEGY`` through the registry.
        """
        config = load_strategy_config(env_path)
        configure_logging(config.log_level)
        strategy = get_strategy(config.strategy_name, config)
        logger.info("Decision cycle using %s on %s", strategy.name, config.timeframe)
        return cls(strategy, market_data, account, config, executor)

    async def load_snapshot(self, market: MarketInfo) -> MarketSnapshot:
        candles = await self._market_data.get_candles(
            market.symbol, self._config.timeframe, self._candle_count
        )
        price = await self._market_data.get_mark_price(market.symbol)
        return build_snapshot(candles, market, price, self._config)

    async def broader_market_trend(self, markets: list[MarketInfo]) -> MarketTrend:
        """Trend of the reference market; NEUTRAL when it cannot be read."""
        symbol = self._config.reference_symbol
        market = next((m for m in markets if m.symbol == symbol), MarketInfo(symbol=symbol))
        try:
            snapshot = await self.load_snapshot(market)
            analysis = self._strategy.analyze_signals(snapshot)
        except Exception as exc:
            logger.warning("Trend lookup for %s failed: %s (using NEUTRAL)", symbol, exc)
            return "NEUTRAL"
        trend = market_trend_from_analysis(analysis)
        logger.info("Broader market trend (%s): %s", symbol, trend)
        return trend

    async def _evaluate(
        self,
        market: MarketInfo,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        try:
            snapshot = await self.load_snapshot(market)
            return await self._strategy.analyze(snapshot, investment, fee, context)
        except Exception as exc:
            logger.error("Evaluation of %s failed: %s", market.symbol, exc)
            return None

    async def analyze(self, investment: float, fee: float) -> list[TradeSignal]:
        """Evaluate every market and return signals sorted by pnl, best first."""
        markets = [market_info_from_dict(m) for m in await self._account.get_markets()]
        if not markets:
            logger.info("No markets to evaluate.")
            return []

        trend = await self.broader_market_trend(markets)
        context = StrategyContext(
            broader_market_trend=trend,
            reference_symbol=self._config.reference_symbol,
            account=self._account,
            executor=self._executor,
        )

        results = await asyncio.gather(
            *(self._evaluate(m, investment, fee, context) for m in markets)
        )
        signals = [s for s in results if s is not None]
        signals.sort(key=lambda s: s.pnl, reverse=True)
        logger.info(
            "[%s] %d/%d markets produced a signal", self._strategy.name, len(signals), len(markets)
        )
        return signals
