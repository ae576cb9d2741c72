"""Tests for the CypherPunk strategy: three-gate consensus, entry type,
fixed-percentage ladders and timeframe handling."""

import pytest

from backbot.config import StrategyConfig
from backbot.strategy.base import StrategyContext
from backbot.strategy.cypher_punk import CypherPunkStrategy
from backbot.strategy.models import (
    MarketInfo,
    MarketSnapshot,
    MomentumInfo,
    MoneyFlowInfo,
    ReversalPulse,
    VwapBands,
)


# ── Helpers ──────────────────────────────────────────────────────────────

BULL_MOMENTUM = MomentumInfo(
    wt1=-30.0, wt2=-40.0, value=10.0, is_bullish=True,
    reversal=ReversalPulse(color="GREEN", strength=40.0),
)
BEAR_MOMENTUM = MomentumInfo(wt1=40.0, wt2=45.0, value=-5.0, is_bearish=True)
BULL_FLOW = MoneyFlowInfo(mfi=60.0, value=12.0, is_bullish=True, is_strong=True, direction="UP")
BEAR_FLOW = MoneyFlowInfo(mfi=40.0, value=-12.0, is_bearish=True, is_strong=True, direction="DOWN")


def _snapshot(vwap_price: float = 99.0, **overrides) -> MarketSnapshot:
    defaults = dict(
        market=MarketInfo(symbol="SOL_USDC_PERP", decimal_price=2),
        mark_price=100.0,
        vwap=VwapBands(
            vwap=vwap_price, std_dev=1.0,
            upper_bands=(vwap_price + 1,), lower_bands=(vwap_price - 1,),
        ),
        momentum=BULL_MOMENTUM,
        money_flow=BULL_FLOW,
    )
    defaults.update(overrides)
    return MarketSnapshot(**defaults)


def _analyze(strategy: CypherPunkStrategy, snapshot: MarketSnapshot):
    return strategy.analyze(snapshot, 1000.0, 0.0004, StrategyContext())


# ── Gates ────────────────────────────────────────────────────────────────


class TestGates:
    def test_vwap_bias_in_percent(self):
        reading = CypherPunkStrategy().vwap_gate(_snapshot(vwap_price=99.0))
        assert reading.value == pytest.approx(1.0101, rel=1e-3)
        assert reading.is_bullish and reading.passed

    def test_vwap_near_zero_passes_without_direction(self):
        reading = CypherPunkStrategy().vwap_gate(_snapshot(vwap_price=99.8))
        assert reading.passed
        assert not reading.is_bullish and not reading.is_bearish

    def test_momentum_near_zero_passes(self):
        m = MomentumInfo(value=3.0)
        assert CypherPunkStrategy().momentum_gate(_snapshot(momentum=m)).passed

    def test_momentum_flat_and_large_fails(self):
        m = MomentumInfo(value=15.0)
        assert not CypherPunkStrategy().momentum_gate(_snapshot(momentum=m)).passed

    def test_money_flow_requires_strength(self):
        weak = MoneyFlowInfo(value=2.0, is_bullish=True)
        assert not CypherPunkStrategy().money_flow_gate(_snapshot(money_flow=weak)).passed

    def test_missing_inputs(self):
        strategy = CypherPunkStrategy()
        assert strategy.momentum_gate(_snapshot(momentum=None)) is None
        assert strategy.money_flow_gate(_snapshot(money_flow=None)) is None
        assert strategy.vwap_gate(_snapshot(vwap=VwapBands())) is None


# ── Consensus ────────────────────────────────────────────────────────────


class TestConsensus:
    def test_unanimous_long_perfect(self):
        result = CypherPunkStrategy().consensus(_snapshot())
        assert result.action == "long"
        assert result.entry_type == "PERFECT"

    def test_weak_reversal_is_standard(self):
        m = MomentumInfo(value=10.0, is_bullish=True, reversal=ReversalPulse("GREEN", 5.0))
        assert CypherPunkStrategy().consensus(_snapshot(momentum=m)).entry_type == "STANDARD"

    def test_unanimous_short(self):
        snap = _snapshot(
            vwap_price=101.0,
            momentum=BEAR_MOMENTUM,
            money_flow=BEAR_FLOW,
        )
        result = CypherPunkStrategy().consensus(snap)
        assert result.action == "short"
        assert result.entry_type == "STANDARD"

    def test_disagreement_is_no_trade(self):
        assert CypherPunkStrategy().consensus(_snapshot(money_flow=BEAR_FLOW)) is None

    def test_vwap_neutral_blocks_consensus(self):
        assert CypherPunkStrategy().consensus(_snapshot(vwap_price=99.8)) is None


# ── Full strategy ────────────────────────────────────────────────────────


class TestCypherPunkStrategy:
    @pytest.mark.asyncio
    async def test_long_signal_with_fixed_ladders(self):
        signal = await _analyze(CypherPunkStrategy(), _snapshot())
        assert signal.action == "long"
        assert signal.entry == 100.0
        assert signal.targets == (110.0, 120.0, 130.0)
        assert signal.stop_losses == (98.0, 96.0, 94.0)
        assert signal.target == 110.0
        assert signal.stop == 98.0
        assert signal.entry_type == "PERFECT"
        assert "Mid TF Hold" in signal.reason
        assert signal.pnl > 0 and signal.risk > 0

    @pytest.mark.asyncio
    async def test_short_signal(self):
        snap = _snapshot(vwap_price=101.0, momentum=BEAR_MOMENTUM, money_flow=BEAR_FLOW)
        signal = await _analyze(CypherPunkStrategy(), snap)
        assert signal.targets == (90.0, 80.0, 70.0)
        assert signal.stop_losses == (102.0, 104.0, 106.0)

    @pytest.mark.asyncio
    async def test_no_consensus(self):
        assert await _analyze(CypherPunkStrategy(), _snapshot(momentum=None)) is None

    @pytest.mark.asyncio
    async def test_missing_vwap_abstains(self):
        snap = _snapshot(vwap=VwapBands())
        assert await _analyze(CypherPunkStrategy(), snap) is None
        assert not CypherPunkStrategy().analyze_signals(snap).has_signal

    @pytest.mark.asyncio
    async def test_fault_resolves_to_none(self):
        assert await _analyze(CypherPunkStrategy(), _snapshot(mark_price="bad")) is None

    def test_analyze_signals(self):
        analysis = CypherPunkStrategy().analyze_signals(_snapshot())
        assert analysis.has_signal and analysis.is_long
        assert analysis.signal_type == "LONG (PERFECT)"


class TestTimeframes:
    def test_unsupported_config_timeframe_defaults_to_4h(self):
        assert CypherPunkStrategy(StrategyConfig(timeframe="5m")).current_timeframe == "4h"

    def test_supported_config_timeframe_kept(self):
        assert CypherPunkStrategy(StrategyConfig(timeframe="15m")).trade_type == "Super Scalp Trade"

    def test_set_timeframe(self):
        strategy = CypherPunkStrategy()
        assert strategy.set_timeframe("1h")
        assert strategy.trade_type == "Day Trade"
        assert not strategy.set_timeframe("5m")
        assert strategy.current_timeframe == "1h"

    def test_available_timeframes(self):
        timeframes = CypherPunkStrategy.available_timeframes()
        assert timeframes[0] == "1w"
        assert "15m" in timeframes
