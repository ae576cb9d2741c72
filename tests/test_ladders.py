"""Tests for the ATR and fixed-percentage target ladders."""

import pytest

from backbot.risk.ladders import atr_ladder, percentage_ladder, timeframe_multiplier


class TestAtrLadder:
    def test_long_ladder(self):
        """price=100, ATR=2 → targets 107, 114, 121…, stop 84."""
        ladder = atr_ladder(100.0, "long", 2.0)
        assert ladder.stop == pytest.approx(84.0)
        assert ladder.targets[:3] == pytest.approx((107.0, 114.0, 121.0))
        assert len(ladder.targets) == 20

    def test_short_ladder_drops_non_positive_targets(self):
        ladder = atr_ladder(100.0, "short", 2.0)
        assert ladder.stop == pytest.approx(116.0)
        assert ladder.targets[:3] == pytest.approx((93.0, 86.0, 79.0))
        # 100 - 7k > 0 only for k <= 14
        assert len(ladder.targets) == 14
        assert all(t > 0 for t in ladder.targets)

    def test_timeframe_multiplier_scales_targets_not_stop(self):
        ladder = atr_ladder(100.0, "long", 2.0, tf_multiplier=timeframe_multiplier("1h"))
        assert ladder.stop == pytest.approx(84.0)
        assert ladder.targets[0] == pytest.approx(114.0)

    def test_max_targets(self):
        assert len(atr_ladder(100.0, "long", 2.0, max_targets=5).targets) == 5

    @pytest.mark.parametrize("atr", [None, 0.0, -1.0])
    def test_missing_atr(self, atr):
        assert atr_ladder(100.0, "long", atr) is None

    def test_non_positive_stop(self):
        assert atr_ladder(10.0, "long", 2.0) is None

    def test_no_valid_targets(self):
        assert atr_ladder(5.0, "short", 2.0) is None


class TestTimeframeMultiplier:
    @pytest.mark.parametrize("tf,expected", [("1m", 0.5), ("5m", 1.0), ("4h", 3.0), ("1d", 4.0)])
    def test_known(self, tf, expected):
        assert timeframe_multiplier(tf) == expected

    def test_unknown_is_one(self):
        assert timeframe_multiplier("7m") == 1.0


class TestPercentageLadder:
    def test_long(self):
        targets, stops = percentage_ladder(100.0, "long")
        assert targets == pytest.approx((110.0, 120.0, 130.0))
        assert stops == pytest.approx((98.0, 96.0, 94.0))

    def test_short(self):
        targets, stops = percentage_ladder(200.0, "short")
        assert targets == pytest.approx((180.0, 160.0, 140.0))
        assert stops == pytest.approx((204.0, 208.0, 212.0))
