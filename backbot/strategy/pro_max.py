"""ProMax strategy — ADX reversal with confluence tiering and an ATR ladder.

Implements ``StrategyProtocol``.

Flow:
    1. ADX below threshold (not yet trending) and a fresh DI cross picks
       the candidate direction.
    2. Optional RSI / Stochastic / MACD validators each add one confluence.
    3. Confluence count maps to BRONZE / SILVER / GOLD / DIAMOND; BRONZE
       can be suppressed by configuration.
    4. Stop and up to N targets are spaced by ATR, scaled for timeframe.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from backbot.config import StrategyConfig
from backbot.risk.ladders import atr_ladder, timeframe_multiplier
from backbot.risk.trade_math import calculate_pnl_and_risk, round_price, validate_data
from backbot.strategy.base import StrategyContext
from backbot.strategy.models import (
    Action,
    ConfluenceTier,
    MarketSnapshot,
    SignalAnalysis,
    TradeSignal,
)

logger = logging.getLogger("backbot.strategy.pro_max")


@dataclass(frozen=True)
class AdxAnalysis:
    """ADX reading and the DI reversal conditions derived from it."""

    adx: float
    di_plus: float
    di_minus: float
    confirmation_volume: bool
    bullish: bool
    bearish: bool


@dataclass(frozen=True)
class ValidatorVotes:
    """Per-validator bullish/bearish votes (False when disabled)."""

    rsi_bullish: bool = False
    rsi_bearish: bool = False
    stoch_bullish: bool = False
    stoch_bearish: bool = False
    macd_bullish: bool = False
    macd_bearish: bool = False


@dataclass(frozen=True)
class ProMaxDecision:
    action: Action
    tier: ConfluenceTier
    confluences: int
    details: tuple[str, ...]


class ProMaxStrategy:
    """Confluence-tiered ADX strategy with a multi-target ladder."""

    name = "PRO_MAX"

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self.config = config or StrategyConfig()

    # ── Analysis pieces ──────────────────────────────────────────────────

    def analyze_adx(self, snapshot: MarketSnapshot) -> Optional[AdxAnalysis]:
        """Return the ADX reversal analysis, or ``None`` if ADX is missing."""
        a = snapshot.adx
        if a.adx is None or a.di_plus is None or a.di_minus is None:
            return None

        confirmation = a.adx < self.config.adx_threshold
        have_prev = a.di_plus_prev is not None and a.di_minus_prev is not None
        bullish = (
            have_prev
            and confirmation
            and a.di_plus > a.di_minus
            and a.di_plus_prev <= a.di_minus_prev
        )
        bearish = (
            have_prev
            and confirmation
            and a.di_minus > a.di_plus
            and a.di_minus_prev <= a.di_plus_prev
        )
        return AdxAnalysis(
            adx=a.adx,
            di_plus=a.di_plus,
            di_minus=a.di_minus,
            confirmation_volume=confirmation,
            bullish=bullish,
            bearish=bearish,
        )

    def analyze_validations(self, snapshot: MarketSnapshot) -> ValidatorVotes:
        """Vote with each enabled validator on its own cross condition."""
        cfg = self.config
        votes: dict[str, bool] = {}

        r = snapshot.rsi
        if cfg.use_rsi_validation and None not in (r.value, r.avg, r.prev, r.avg_prev):
            votes["rsi_bullish"] = (
                r.value > r.avg and r.value < cfg.rsi_bull_threshold and r.prev <= r.avg_prev
            )
            votes["rsi_bearish"] = (
                r.value < r.avg and r.value > cfg.rsi_bear_threshold and r.prev >= r.avg_prev
            )

        s = snapshot.stoch
        if cfg.use_stoch_validation and None not in (s.k, s.d, s.k_prev, s.d_prev):
            votes["stoch_bullish"] = (
                s.k > s.d and s.k < cfg.stoch_bull_threshold and s.k_prev <= s.d_prev
            )
            votes["stoch_bearish"] = (
                s.k < s.d and s.k > cfg.stoch_bear_threshold and s.k_prev >= s.d_prev
            )

        m = snapshot.macd
        if cfg.use_macd_validation and m.histogram is not None and m.histogram_prev is not None:
            votes["macd_bullish"] = m.histogram < 0 and m.histogram > m.histogram_prev
            votes["macd_bearish"] = m.histogram >= 0 and m.histogram < m.histogram_prev

        return ValidatorVotes(**votes)

    @staticmethod
    def count_confluences(adx: AdxAnalysis, votes: ValidatorVotes, bullish: bool) -> int:
        """ADX reversal plus agreeing validators, in [0, 4]."""
        if bullish:
            flags = (adx.bullish, votes.rsi_bullish, votes.stoch_bullish, votes.macd_bullish)
        else:
            flags = (adx.bearish, votes.rsi_bearish, votes.stoch_bearish, votes.macd_bearish)
        return sum(1 for f in flags if f)

    def decide(self, snapshot: MarketSnapshot) -> Optional[ProMaxDecision]:
        """Pick a direction and tier, or ``None`` when nothing qualifies."""
        adx = self.analyze_adx(snapshot)
        if adx is None:
            return None
        votes = self.analyze_validations(snapshot)

        for action, condition in (("long", adx.bullish), ("short", adx.bearish)):
            if not condition:
                continue
            confluences = self.count_confluences(adx, votes, action == "long")
            tier = ConfluenceTier.from_count(confluences)
            if tier is None:
                continue
            if tier is ConfluenceTier.BRONZE and self.config.ignore_bronze_signals:
                logger.info(
                    "[PRO_MAX] %s (BRONZE): %s signal ignored, bronze signals disabled",
                    snapshot.symbol, action.upper(),
                )
                continue

            leader, lagger = (
                ("DI+", "DI-") if action == "long" else ("DI-", "DI+")
            )
            lead_val, lag_val = (
                (adx.di_plus, adx.di_minus) if action == "long" else (adx.di_minus, adx.di_plus)
            )
            details = (
                f"{action.upper()} ({tier.name}) - confluences: {confluences}/4",
                f"ADX: {adx.adx:.2f} < {self.config.adx_threshold}",
                f"{leader}: {lead_val:.2f} > {lagger}: {lag_val:.2f}",
            )
            return ProMaxDecision(action, tier, confluences, details)
        return None

    # ── StrategyProtocol ─────────────────────────────────────────────────

    def analyze_signals(self, snapshot: MarketSnapshot) -> SignalAnalysis:
        decision = self.decide(snapshot)
        if decision is None:
            details = ["No valid signal"]
            adx = snapshot.adx.adx
            if adx is not None and adx >= self.config.adx_threshold:
                details.append(f"ADX high: {adx:.2f} >= {self.config.adx_threshold}")
            return SignalAnalysis(has_signal=False, details=tuple(details))
        return SignalAnalysis(
            has_signal=True,
            is_long=decision.action == "long",
            signal_type=f"{decision.action.upper()} ({decision.tier.name})",
            details=decision.details,
        )

    async def analyze(
        self,
        snapshot: MarketSnapshot,
        investment: float,
        fee: float,
        context: StrategyContext,
    ) -> Optional[TradeSignal]:
        """Evaluate one market; ``None`` when no tiered signal qualifies."""
        try:
            return self._analyze(snapshot, investment, fee)
        except Exception:
            logger.exception("ProMaxStrategy failed on %s", snapshot.symbol)
            return None

    def _analyze(
        self, snapshot: MarketSnapshot, investment: float, fee: float
    ) -> Optional[TradeSignal]:
        if not validate_data(snapshot):
            return None

        decision = self.decide(snapshot)
        if decision is None:
            return None

        cfg = self.config
        price = snapshot.mark_price
        ladder = atr_ladder(
            price,
            decision.action,
            snapshot.atr.value,
            zone_multiplier=cfg.atr_zone_multiplier,
            sl_multiplier=cfg.sl_atr_multiplier,
            tf_multiplier=timeframe_multiplier(cfg.timeframe),
            max_targets=cfg.max_targets_per_order,
        )
        if ladder is None:
            logger.warning("%s: ATR ladder unavailable (atr=%s)", snapshot.symbol, snapshot.atr.value)
            return None

        first_target = ladder.targets[0]
        pnl, risk = calculate_pnl_and_risk(
            decision.action, price, ladder.stop, first_target, investment, fee
        )
        decimals = snapshot.market.decimal_price

        logger.info(
            "[PRO_MAX] %s (%s): %s - confluences %d/4 - targets %d - PnL $%.2f",
            snapshot.symbol, decision.tier.name, decision.action.upper(),
            decision.confluences, len(ladder.targets), pnl,
        )
        return TradeSignal(
            market=snapshot.symbol,
            entry=round_price(price, decimals),
            stop=round_price(ladder.stop, decimals),
            target=round_price(first_target, decimals),
            targets=tuple(round_price(t, decimals) for t in ladder.targets),
            action=decision.action,
            pnl=pnl,
            risk=risk,
            signal_level=decision.tier.name,
            confluences=decision.confluences,
            reason="; ".join(decision.details),
        )
