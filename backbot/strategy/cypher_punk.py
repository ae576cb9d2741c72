"""CypherPunk strategy — three-gate unanimous consensus with fixed ladders.

Implements ``StrategyProtocol``.

Gates, evaluated in order:
    1. VWAP bias — price distance from VWAP, in percent.
    2. Momentum — wave-oscillator direction or reversal pulse.
    3. Money flow — custom oscillator direction with a strength floor.

A trade fires only when every gate passes on its own and all three point
the same way.  Targets sit at 10/20/30 % from entry and stops at 2/4/6 %.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from backbot.config import StrategyConfig
from backbot.risk.ladders import percentage_ladder
from backbot.risk.trade_math import calculate_pnl_and_risk, round_price
from backbot.strategy.base import StrategyContext
from backbot.strategy.models import Action, MarketSnapshot, SignalAnalysis, TradeSignal

logger = logging.getLogger("backbot.strategy.cypher_punk")

TARGET_PERCENTAGES = (10.0, 20.0, 30.0)
STOP_PERCENTAGES = (2.0, 4.0, 6.0)

TIMEFRAMES: dict[str, str] = {
    "1w": "Long TF Hold",
    "3d": "Long TF Hold",
    "1d": "Long TF Hold",
    "12h": "Mid TF Hold",
    "8h": "Mid TF Hold",
    "6h": "Mid TF Hold",
    "4h": "Mid TF Hold",
    "2h": "Day Trade",
    "1h": "Day Trade",
    "30m": "Scalp Trade",
    "15m": "Super Scalp Trade",
}
DEFAULT_TIMEFRAME = "4h"


@dataclass(frozen=True)
class GateReading:
    """One gate's directional reading and whether it passed its own check."""

    name: str
    value: float
    is_bullish: bool
    is_bearish: bool
    passed: bool


@dataclass(frozen=True)
class Consensus:
    action: Action
    entry_type: str  # "PERFECT" or "STANDARD"
    reason: str


class CypherPunkStrategy:
    """Unanimous VWAP + momentum + money-flow strategy."""

    name = "CYPHER_PUNK"

    vwap_threshold_pct = 0.5
    momentum_near_zero = 10.0
    money_flow_min_strength = 5.0
    perfect_reversal_strength = 10.0

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self.config = config or StrategyConfig()
        timeframe = self.config.timeframe
        self.current_timeframe = timeframe if timeframe in TIMEFRAMES else DEFAULT_TIMEFRAME

    def set_timeframe(self, timeframe: str) -> bool:
        """Switch the trade-type timeframe; returns False if unsupported."""
        if timeframe not in TIMEFRAMES:
            logger.warning("CypherPunk: timeframe %s not supported", timeframe)
            return False
        self.current_timeframe = timeframe
        return True

    @property
    def trade_type(self) -> str:
        return TIMEFRAMES[self.current_timeframe]

    @staticmethod
    def available_timeframes() -> list[str]:
        return list(TIMEFRAMES)

    # ── Gates ────────────────────────────────────────────────────────────

    def vwap_gate(self, snapshot: MarketSnapshot) -> Optional[GateReading]:
        vwap = snapshot.vwap.vwap
        if not vwap:
            return None
        diff_pct = (snapshot.mark_price - vwap) / vwap * 100
        bullish = diff_pct > self.vwap_threshold_pct
        bearish = diff_pct < -self.vwap_threshold_pct
        near_zero = abs(diff_pct) <= self.vwap_threshold_pct
        return GateReading("VWAP", diff_pct, bullish, bearish, near_zero or bullish or bearish)

    def momentum_gate(self, snapshot: MarketSnapshot) -> Optional[GateReading]:
        momentum = snapshot.momentum
        if momentum is None or momentum.value is None:
            return None
        value = momentum.value
        passed = (
            momentum.reversal is not None
            or momentum.is_bullish
            or momentum.is_bearish
            or abs(value) < self.momentum_near_zero
        )
        return GateReading("MOMENTUM", value, momentum.is_bullish, momentum.is_bearish, passed)

    def money_flow_gate(self, snapshot: MarketSnapshot) -> Optional[GateReading]:
        mf = snapshot.money_flow
        if mf is None or mf.value is None:
            return None
        directional = mf.is_bullish or mf.is_bearish
        strong = abs(mf.value) >= self.money_flow_min_strength
        return GateReading("MONEY FLOW", mf.value, mf.is_bullish, mf.is_bearish, directional and strong)

    def consensus(self, snapshot: MarketSnapshot) -> Optional[Consensus]:
        """Return the unanimous direction of the three gates, if any."""
        gates = []
        for gate in (self.vwap_gate, self.momentum_gate, self.money_flow_gate):
            reading = gate(snapshot)
            if reading is None or not reading.passed:
                return None
            gates.append(reading)

        if all(g.is_bullish for g in gates):
            action: Action = "long"
            color = "GREEN"
        elif all(g.is_bearish for g in gates):
            action = "short"
            color = "RED"
        else:
            return None

        reversal = snapshot.momentum.reversal
        perfect = (
            reversal is not None
            and reversal.color == color
            and reversal.strength > self.perfect_reversal_strength
        )
        mood = "BULLISH" if action == "long" else "BEARISH"
        return Consensus(
            action=action,
            entry_type="PERFECT" if perfect else "STANDARD",
            reason=f"VWAP + MOMENTUM + MONEY FLOW = {mood}",
        )

    # ── StrategyProtocol ─────────────────────────────────────────────────

    def analyze_signals(self, snapshot: MarketSnapshot) -> SignalAnalysis:
        result = self.consensus(snapshot)
        if result is None:
            return SignalAnalysis(has_signal=False, details=("Gates not unanimous",))
        return SignalAnalysis(
            has_signal=True,
            is_long=result.action == "long",
            signal_type=f"{result.action.upper()} ({result.entry_type})",
            details=(result.reason,),
        )

    async def analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        try:
            return self._analyze(snapshot, investment, fee)
        except Exception:
            logger.exception("CypherPunkStrategy failed on %s", snapshot.symbol)
            return None

    def _analyze(
        self, snapshot: MarketSnapshot, investment: float, fee: float
    ) -> Optional[TradeSignal]:
        entry = snapshot.mark_price
        if not entry or entry <= 0:
            return None

        result = self.consensus(snapshot)
        if result is None:
            return None

        targets, stops = percentage_ladder(
            entry, result.action, TARGET_PERCENTAGES, STOP_PERCENTAGES
        )
        pnl, risk = calculate_pnl_and_risk(
            result.action, entry, stops[0], targets[0], investment, fee
        )
        decimals = snapshot.market.decimal_price

        logger.info(
            "CypherPunk %s: %s (%s) - %s",
            snapshot.symbol, result.action.upper(), result.entry_type, result.reason,
        )
        return TradeSignal(
            market=snapshot.symbol,
            entry=round_price(entry, decimals),
            stop=round_price(stops[0], decimals),
            target=round_price(targets[0], decimals),
            targets=tuple(round_price(t, decimals) for t in targets),
            stop_losses=tuple(round_price(s, decimals) for s in stops),
            action=result.action,
            pnl=pnl,
            risk=risk,
            reason=f"CypherPunk {self.trade_type}: {result.action.upper()} - {result.reason}",
            entry_type=result.entry_type,
        )
