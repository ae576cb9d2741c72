"""Level strategy — registered name with no entry logic yet.

Always abstains.
"""

import logging
from typing import Optional

from backbot.config import StrategyConfig
from backbot.risk.trade_math import validate_data
from backbot.strategy.base import StrategyContext
from backbot.strategy.models import MarketSnapshot, SignalAnalysis, TradeSignal

logger = logging.getLogger("backbot.strategy.level")


class LevelStrategy:
    name = "LEVEL"

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self.config = config or StrategyConfig()

    def analyze_signals(self, snapshot: MarketSnapshot) -> SignalAnalysis:
        return SignalAnalysis(has_signal=False, details=("Level strategy has no entry rules",))

    async def analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        if validate_data(snapshot):
            logger.debug("LevelStrategy: no entry rules for %s", snapshot.symbol)
        return None
