"""Tests for swing-point detection and price/RSI divergence."""

import numpy as np
import pytest

from rsi_confluence.divergence import (
    DivergenceResult,
    DivergenceType,
    detect_divergence,
    divergence_direction,
    find_local_extremes,
)

# 30 candles, peaks at 8 and 20, trough at 14, no plateaus
PRICE = (
    [100 + i for i in range(9)]                       # 0-8:   100 .. 108
    + [107, 106, 105, 104, 103, 102]                  # 9-14:  trough 102
    + [104, 106, 108, 110, 111, 112]                  # 15-20: peak 112
    + [111 - k for k in range(9)]                     # 21-29: 111 .. 103
)
RSI_LOWER_HIGH = (
    [40 + 2 * i for i in range(9)]                    # 0-8:   peak 56
    + [54, 52, 50, 48, 46, 44]                        # 9-14
    + [46, 47, 48, 49, 50, 51]                        # 15-20: peak 51
    + [50 - k for k in range(9)]                      # 21-29
)


# Highs at 6 and 18 (higher high), lows at 12 and 24 (lower low)
DOUBLE_SWING_PRICE = [
    100, 101, 102, 103, 104, 105, 106, 104, 102, 100,
    98, 96, 94, 96, 99, 102, 105, 108, 110, 107,
    104, 100, 96, 93, 90, 92, 94, 96, 98, 99,
]
# Lower high and higher low on the same candles
DOUBLE_SWING_RSI = [
    52, 55, 58, 61, 64, 67, 70, 65, 60, 50,
    42, 35, 30, 36, 42, 48, 55, 60, 65, 60,
    55, 48, 42, 38, 35, 38, 41, 44, 47, 50,
]


class TestLocalExtremes:

    def test_highs_and_lows(self):
        values = [1, 3, 2, 5, 4]
        assert find_local_extremes(values, True, 1) == [1, 3]
        assert find_local_extremes(values, False, 1) == [2]

    def test_ties_count(self):
        assert find_local_extremes([1, 2, 2, 1], True, 1) == [1, 2]

    def test_short_series(self):
        assert find_local_extremes([1, 2, 3], True, 2) == []

    def test_zero_lookback_returns_every_index(self):
        assert find_local_extremes([3, 1, 2], True, 0) == [0, 1, 2]

    def test_window_edges_excluded(self):
        idx = find_local_extremes(PRICE, True, 3)
        assert idx == [8, 20]
        assert all(3 <= i < len(PRICE) - 3 for i in idx)


class TestDivergence:

    def test_bearish(self):
        result = detect_divergence(PRICE, RSI_LOWER_HIGH)
        assert result.divergence_type is DivergenceType.BEARISH
        assert result.description == "Price higher high, RSI lower high"
        assert result.found

    def test_bullish(self):
        price = [300 - p for p in PRICE]
        rsi = [100 - r for r in RSI_LOWER_HIGH]
        result = detect_divergence(price, rsi)
        assert result.divergence_type is DivergenceType.BULLISH
        assert result.description == "Price lower low, RSI higher low"

    def test_bearish_wins_when_both_match(self):
        assert find_local_extremes(DOUBLE_SWING_RSI, True, 3) == [6, 18]
        assert find_local_extremes(DOUBLE_SWING_RSI, False, 3) == [12, 24]
        result = detect_divergence(DOUBLE_SWING_PRICE, DOUBLE_SWING_RSI)
        assert result.divergence_type is DivergenceType.BEARISH

    def test_bullish_when_rsi_high_confirms(self):
        rsi = list(DOUBLE_SWING_RSI)
        rsi[13:25] = [36, 42, 50, 58, 66, 72, 66, 58, 50, 42, 38, 35]
        result = detect_divergence(DOUBLE_SWING_PRICE, rsi)
        assert result.divergence_type is DivergenceType.BULLISH

    def test_confirming_rsi_is_no_divergence(self):
        result = detect_divergence(PRICE, [p / 3 for p in PRICE])
        assert result.divergence_type is DivergenceType.NONE

    def test_misaligned_extremes(self):
        # RSI second peak at 12, eight candles before the price peak at 20
        rsi = np.array(RSI_LOWER_HIGH, dtype=float)
        rsi[9:14] = [50, 51, 52, 53, 52]
        rsi[15:21] = [51, 50, 49, 48, 47, 46]
        rsi[21:] = np.linspace(45.5, 41.5, 9)
        assert find_local_extremes(rsi, True, 3) == [8, 12]

        result = detect_divergence(PRICE, rsi, max_alignment=5)
        assert result.divergence_type is DivergenceType.NONE
        assert detect_divergence(PRICE, rsi, max_alignment=8).divergence_type is DivergenceType.BEARISH

    def test_insufficient_history(self):
        result = detect_divergence(PRICE[:20], RSI_LOWER_HIGH[:20])
        assert result.divergence_type is DivergenceType.NONE
        assert result.description == "Insufficient history"

    def test_uses_trailing_window(self):
        price = [50.0] * 40 + PRICE
        rsi = [50.0] * 40 + RSI_LOWER_HIGH
        assert detect_divergence(price, rsi).divergence_type is DivergenceType.BEARISH

    @pytest.mark.parametrize("result, expected", [
        (None, None),
        (DivergenceResult(DivergenceType.NONE), None),
        (DivergenceResult(DivergenceType.BULLISH), DivergenceType.BULLISH),
    ])
    def test_direction(self, result, expected):
        assert divergence_direction(result) is expected
