"""Tests for swing/scalp bias and the long-period market regime."""

import pytest

from rsi_confluence.config import SignalThresholds
from rsi_confluence.regime_detector import (
    BiasType,
    RegimeType,
    calculate_regime,
    calculate_scalp_bias,
    calculate_swing_bias,
    regime_from_snapshots,
)
from rsi_confluence.timeframe_analysis import TrendState

BULL, BEAR, NEUTRAL = TrendState.BULL, TrendState.BEAR, TrendState.NEUTRAL


@pytest.mark.parametrize("daily, h4, expected", [
    (BULL, BULL, BiasType.LONG_ONLY),
    (BEAR, BEAR, BiasType.SHORT_ONLY),
    (BULL, NEUTRAL, BiasType.NO_TRADE),
    (BULL, BEAR, BiasType.NO_TRADE),
    (NEUTRAL, NEUTRAL, BiasType.NO_TRADE),
])
def test_swing_bias(daily, h4, expected):
    assert calculate_swing_bias(daily, h4) is expected


@pytest.mark.parametrize("h1, h4, expected", [
    (BULL, NEUTRAL, BiasType.LONG_ONLY),
    (NEUTRAL, BEAR, BiasType.SHORT_ONLY),
    (BEAR, BULL, BiasType.LONG_ONLY),
    (BULL, BEAR, BiasType.LONG_ONLY),
    (NEUTRAL, NEUTRAL, BiasType.NO_TRADE),
])
def test_scalp_bias(h1, h4, expected):
    assert calculate_scalp_bias(h1, h4) is expected


def test_bias_label():
    assert BiasType.LONG_ONLY.label == "Long Only"
    assert BiasType.NO_TRADE.label == "No Trade"


class TestRegime:

    def test_bull(self):
        assert calculate_regime([60, 60, 60, 60, 60, 40]) is RegimeType.BULL_REGIME

    def test_bear_with_absent_readings(self):
        assert calculate_regime([None, None, 40, 40, 40]) is RegimeType.BEAR_REGIME

    def test_split_is_transition(self):
        assert calculate_regime([60, 40, 60, 40]) is RegimeType.TRANSITION

    def test_too_few_readings(self):
        assert calculate_regime([60, 60, None, None]) is RegimeType.TRANSITION

    def test_exact_agreement_share(self):
        assert calculate_regime([60] * 7 + [40] * 3) is RegimeType.BULL_REGIME
        assert calculate_regime([60] * 6 + [40] * 4) is RegimeType.TRANSITION

    def test_fifty_counts_for_neither_side(self):
        assert calculate_regime([50, 50, 50]) is RegimeType.TRANSITION

    def test_custom_thresholds(self):
        loose = SignalThresholds(regime_agreement=0.5, regime_min_readings=2)
        assert calculate_regime([60, 40], loose) is RegimeType.BULL_REGIME

    def test_from_snapshots(self, make_snapshot):
        tf_4h = make_snapshot("4h", rsi75=40.0, rsi100=42.0, rsi200=45.0)
        tf_1d = make_snapshot("1d", rsi75=41.0, rsi100=None, rsi200=55.0)
        assert regime_from_snapshots(tf_4h, tf_1d) is RegimeType.BEAR_REGIME
