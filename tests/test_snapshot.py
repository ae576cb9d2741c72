"""Tests for the snapshot builder."""

from backbot.config import StrategyConfig
from backbot.strategy.models import Candle, MarketInfo
from backbot.strategy.snapshot import build_snapshot


def _make_candle(o: float, h: float, l: float, c: float, vol: float = 1000.0) -> Candle:
    return Candle(open=o, high=h, low=l, close=c, volume=vol, quote_volume=vol * c)


def _zigzag(n: int = 120) -> list[Candle]:
    candles = []
    for i in range(n):
        base = 100 + i * 0.2 + (3 if i % 4 < 2 else -3)
        candles.append(_make_candle(base - 0.5, base + 1.5, base - 1.5, base + 0.5, 1000 + i))
    return candles


MARKET = MarketInfo(symbol="SOL_USDC_PERP", decimal_price=3)


class TestBuildSnapshot:
    def test_full_window_fills_every_bundle(self):
        snap = build_snapshot(_zigzag(), MARKET, 125.0)
        assert snap.symbol == "SOL_USDC_PERP"
        assert snap.mark_price == 125.0
        assert snap.ema.ema9 is not None and snap.ema.ema21 is not None
        assert snap.rsi.value is not None and snap.rsi.avg is not None
        assert snap.macd.histogram is not None and snap.macd.signal is not None
        assert snap.bollinger.middle is not None
        assert snap.atr.value is not None and snap.atr.value > 0
        assert snap.stoch.k is not None and snap.stoch.d_prev is not None
        assert snap.adx.adx is not None and snap.adx.adx_ema is not None
        assert snap.vwap.vwap is not None
        assert len(snap.vwap.upper_bands) == 3 and len(snap.vwap.lower_bands) == 3
        assert snap.momentum is not None and snap.momentum.rsi == snap.rsi.value
        assert snap.money_flow is not None and snap.money_flow.mfi is not None
        assert snap.trends.volume.trend == "increasing"

    def test_short_window_degrades_to_absence(self):
        snap = build_snapshot(_zigzag(5), MARKET, 100.0)
        assert snap.rsi.value is None
        assert snap.macd.histogram is None
        assert snap.atr.value is None
        assert snap.adx.adx is None
        assert snap.momentum is None
        assert snap.money_flow is None
        # VWAP needs only one candle
        assert snap.vwap.vwap is not None

    def test_empty_window(self):
        snap = build_snapshot([], MARKET, 100.0)
        assert snap.vwap.vwap is None
        assert snap.vwap.upper_bands == ()
        assert snap.trends.volume is None

    def test_deterministic(self):
        a = build_snapshot(_zigzag(), MARKET, 125.0)
        b = build_snapshot(_zigzag(), MARKET, 125.0)
        assert a == b

    def test_rsi_average_length_from_config(self):
        cfg = StrategyConfig(rsi_average_length=3)
        snap = build_snapshot(_zigzag(), MARKET, 125.0, cfg)
        history = snap.rsi.history
        assert snap.rsi.avg == sum(history[-3:]) / 3
        assert snap.rsi.avg_prev == sum(history[-4:-1]) / 3

    def test_ema_candles_ago_relative_to_last(self):
        snap = build_snapshot(_zigzag(), MARKET, 125.0)
        if snap.ema.cross_index is not None:
            assert snap.ema.candles_ago == 119 - snap.ema.cross_index
