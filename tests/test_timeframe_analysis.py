"""Tests for per-timeframe trend, stretch and flip classification."""

import numpy as np
import pytest

from rsi_confluence.timeframe_analysis import (
    StretchState,
    TrendState,
    build_timeframe_snapshot,
    calculate_stretch_state,
    calculate_trend_state,
    detect_bear_flip,
    detect_bull_flip,
    is_falling,
    is_rising,
)


@pytest.mark.parametrize("rsi14, rsi50, rsi200, expected", [
    (60, 60, 60, TrendState.BULL),
    (40, 40, 40, TrendState.BEAR),
    (60, 40, 60, TrendState.NEUTRAL),
    (60, 60, None, TrendState.BULL),
    (40, 40, None, TrendState.BEAR),
    (60, 60, 45, TrendState.NEUTRAL),
    (50, 50, 50, TrendState.BULL),
    (None, 60, 60, TrendState.NEUTRAL),
    (60, None, 60, TrendState.NEUTRAL),
])
def test_trend_state(rsi14, rsi50, rsi200, expected):
    assert calculate_trend_state(rsi14, rsi50, rsi200) is expected


@pytest.mark.parametrize("rsi5, rsi9, expected", [
    (20, None, StretchState.OVERSOLD),
    (None, 30, StretchState.OVERSOLD),
    (None, 72, StretchState.OVERBOUGHT),
    (75, 50, StretchState.OVERBOUGHT),
    (20, 72, StretchState.OVERSOLD),
    (50, 50, StretchState.NEUTRAL),
    (None, None, StretchState.NEUTRAL),
])
def test_stretch_state(rsi5, rsi9, expected):
    assert calculate_stretch_state(rsi5, rsi9) is expected


def test_rising_falling_need_both_readings():
    assert is_rising(51, 50)
    assert not is_rising(50, 50)
    assert not is_rising(None, 50)
    assert is_falling(49, 50)
    assert not is_falling(49, None)


class TestFlips:

    def test_bull_flip(self):
        assert detect_bull_flip(50, 48, 40, 45, rsi14_rising=True)

    def test_bull_flip_needs_rising_rsi14(self):
        assert not detect_bull_flip(50, 48, 40, 45, rsi14_rising=False)

    def test_bull_flip_needs_a_cross(self):
        # RSI5 was already above RSI9
        assert not detect_bull_flip(50, 48, 47, 45, rsi14_rising=True)

    def test_bear_flip(self):
        assert detect_bear_flip(48, 50, 45, 40, rsi14_falling=True)
        assert not detect_bear_flip(48, 50, 45, 40, rsi14_falling=False)

    def test_absent_readings(self):
        assert not detect_bull_flip(None, 48, 40, 45, rsi14_rising=True)
        assert not detect_bear_flip(48, 50, None, 40, rsi14_falling=True)


class TestSnapshot:

    def test_uptrend(self, rising_closes):
        snap = build_timeframe_snapshot("4h", rising_closes)
        assert snap.timeframe == "4h"
        assert snap.trend_state is TrendState.BULL
        assert snap.stretch_state is StretchState.OVERBOUGHT
        assert snap.rsi14 == 100.0
        assert snap.rsi14_prev == 100.0
        assert not snap.rsi14_rising
        assert snap.rsi200 == 100.0

    def test_downtrend(self):
        snap = build_timeframe_snapshot("1h", np.arange(400.0, 100.0, -1.0))
        assert snap.trend_state is TrendState.BEAR
        assert snap.stretch_state is StretchState.OVERSOLD
        assert snap.rsi5 == 0.0

    def test_short_history(self):
        snap = build_timeframe_snapshot("1d", np.arange(10.0))
        assert snap.rsi5 == 100.0
        assert snap.rsi14 is None
        assert snap.rsi200 is None
        assert snap.trend_state is TrendState.NEUTRAL
        assert not snap.bull_flip

    def test_flip_on_last_candle(self):
        # long slide, then one sharp bounce pushes RSI5 through RSI9
        closes = np.concatenate([np.linspace(200, 100, 80) + np.tile([0.0, 0.5], 40), [110.0]])
        snap = build_timeframe_snapshot("5m", closes)
        assert snap.rsi14_rising
        assert snap.rsi5 > snap.rsi9
        assert snap.bull_flip
