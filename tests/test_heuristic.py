"""Tests for the standalone VWAP-bracket heuristic."""

import pytest

from backbot.strategy.heuristic import evaluate_heuristic, pick_side, vwap_bracket
from backbot.strategy.models import EmaInfo, MarketInfo, MarketSnapshot, RsiInfo, VwapBands

BANDS = VwapBands(
    vwap=100.0,
    std_dev=5.0,
    upper_bands=(105.0, 110.0, 115.0),
    lower_bands=(95.0, 90.0, 85.0),
)
GOLDEN = EmaInfo(cross_type="goldenCross", cross_index=98, candles_ago=1)
DEATH = EmaInfo(cross_type="deathCross", cross_index=99, candles_ago=0)


def _snapshot(**overrides) -> MarketSnapshot:
    defaults = dict(
        market=MarketInfo(symbol="ETH_USDC_PERP", decimal_price=2),
        mark_price=100.0,
        vwap=BANDS,
        ema=GOLDEN,
    )
    defaults.update(overrides)
    return MarketSnapshot(**defaults)


class TestPickSide:
    def test_recent_golden_cross(self):
        assert pick_side(_snapshot()) == "long"

    def test_recent_death_cross(self):
        assert pick_side(_snapshot(ema=DEATH)) == "short"

    def test_stale_cross_ignored(self):
        stale = EmaInfo(cross_type="goldenCross", cross_index=90, candles_ago=9)
        assert pick_side(_snapshot(ema=stale)) is None

    def test_rsi_reversal_up(self):
        rsi = RsiInfo(value=40.0, avg=25.0)
        assert pick_side(_snapshot(ema=EmaInfo(), rsi=rsi)) == "long"

    def test_rsi_reversal_down(self):
        rsi = RsiInfo(value=60.0, avg=75.0)
        assert pick_side(_snapshot(ema=EmaInfo(), rsi=rsi)) == "short"

    def test_trend_alignment(self):
        ema = EmaInfo(ema9=101.0, ema21=100.0, diff=1.0, diff_pct=1.0)
        rsi = RsiInfo(value=55.0, avg=45.0)
        assert pick_side(_snapshot(ema=ema, rsi=rsi)) == "long"

    def test_external_rsi_average_overrides_snapshot(self):
        rsi = RsiInfo(value=40.0, avg=45.0)
        snap = _snapshot(ema=EmaInfo(), rsi=rsi)
        assert pick_side(snap) is None
        assert pick_side(snap, rsi_average=25.0) == "long"


class TestVwapBracket:
    def test_long_uses_nearest_bands(self):
        stop, target = vwap_bracket(_snapshot(), 100.0, "long")
        assert stop == 95.0
        assert target == pytest.approx(104.75)

    def test_short_mirrored(self):
        stop, target = vwap_bracket(_snapshot(), 100.0, "short")
        assert stop == 105.0
        assert target == pytest.approx(95.25)

    def test_price_outside_bands(self):
        assert vwap_bracket(_snapshot(), 120.0, "long") is None


class TestEvaluateHeuristic:
    def test_long_bracket(self):
        signal = evaluate_heuristic(_snapshot(), 1000.0, 0.0)
        assert signal.action == "long"
        assert signal.entry == 100.0
        assert signal.stop == 95.0
        assert signal.target == pytest.approx(104.75)
        assert signal.pnl == pytest.approx(47.5)
        assert signal.risk == pytest.approx(50.0)

    def test_requires_vwap_bands(self):
        assert evaluate_heuristic(_snapshot(vwap=VwapBands()), 1000.0, 0.0) is None

    def test_no_rule_fires(self):
        assert evaluate_heuristic(_snapshot(ema=EmaInfo()), 1000.0, 0.0) is None
