"""
Price / RSI Divergence Detection

Divergences occur when price and the oscillator move in opposite directions,
often preceding reversals.

Types:
- Bullish: price makes a lower low, RSI makes a higher low (reversal up)
- Bearish: price makes a higher high, RSI makes a lower high (reversal down)

Swing points are local extremes inside a sliding window. Only the two most
recent extremes of each series are compared, and the latest price extreme
must sit within a few candles of the latest RSI extreme.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
from scipy.signal import argrelextrema

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DIVERGENCE_LOOKBACK: int = 30      # Candles inspected
SWING_ORDER: int = 3               # Half-window radius for swing points
MAX_ALIGNMENT_BARS: int = 5        # Latest price/RSI extremes must be this close


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class DivergenceType(Enum):
    """Price-RSI divergence classification."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NONE = "none"


@dataclass(frozen=True)
class DivergenceResult:
    divergence_type: DivergenceType
    description: str = ""

    @property
    def found(self) -> bool:
        return self.divergence_type is not DivergenceType.NONE


NO_DIVERGENCE = DivergenceResult(DivergenceType.NONE)


# =============================================================================
# SWING POINTS
# =============================================================================

def find_local_extremes(
    values: Sequence[float],
    is_max: bool,
    lookback: int = SWING_ORDER
) -> List[int]:
    """
    Find indices that are the max (or min) of their surrounding window.

    Parameters
    ----------
    values : Sequence[float]
        Data series to analyze
    is_max : bool
        True for local highs, False for local lows
    lookback : int
        Points on each side included in the window

    Returns
    -------
    List[int]
        Ascending indices ``i`` with ``lookback <= i < len(values) - lookback``.
        Ties count as extremes, so adjacent indices may both qualify.
    """
    data = np.asarray(values, dtype=float)
    n = len(data)
    if lookback < 0 or n < 2 * lookback + 1:
        return []
    if lookback == 0:
        return list(range(n))

    comparator = np.greater_equal if is_max else np.less_equal
    idx = argrelextrema(data, comparator, order=lookback, mode="clip")[0]

    return [int(i) for i in idx if lookback <= i < n - lookback]


# =============================================================================
# DIVERGENCE
# =============================================================================

def _latest_pair(indices: List[int]):
    return indices[-2], indices[-1]


def detect_divergence(
    closes: Sequence[float],
    rsi_values: Sequence[float],
    lookback: int = DIVERGENCE_LOOKBACK,
    swing_order: int = SWING_ORDER,
    max_alignment: int = MAX_ALIGNMENT_BARS
) -> DivergenceResult:
    """
    Classify the latest price/RSI divergence.

    Both series are aligned on their last element (the RSI series is shorter
    by its warm-up). Bearish is checked first and wins if both would match.

    Args:
        closes: Chronological closing prices
        rsi_values: RSI readings ending on the same candle as ``closes``
        lookback: Number of trailing candles to inspect
        swing_order: Half-window radius for swing points
        max_alignment: Max distance in candles between the latest extremes

    Returns:
        DivergenceResult, type NONE when history is short or nothing matches
    """
    if len(closes) < lookback or len(rsi_values) < lookback:
        return DivergenceResult(DivergenceType.NONE, "Insufficient history")

    recent_closes = np.asarray(closes, dtype=float)[-lookback:]
    recent_rsi = np.asarray(rsi_values, dtype=float)[-lookback:]

    price_highs = find_local_extremes(recent_closes, True, swing_order)
    rsi_highs = find_local_extremes(recent_rsi, True, swing_order)

    if len(price_highs) >= 2 and len(rsi_highs) >= 2:
        prev_ph, last_ph = _latest_pair(price_highs)
        prev_rh, last_rh = _latest_pair(rsi_highs)

        higher_high = recent_closes[last_ph] > recent_closes[prev_ph]
        lower_high = recent_rsi[last_rh] < recent_rsi[prev_rh]
        if higher_high and lower_high and abs(last_ph - last_rh) <= max_alignment:
            logger.debug(f"Bearish divergence: price highs {prev_ph}->{last_ph}, RSI highs {prev_rh}->{last_rh}")
            return DivergenceResult(DivergenceType.BEARISH, "Price higher high, RSI lower high")

    price_lows = find_local_extremes(recent_closes, False, swing_order)
    rsi_lows = find_local_extremes(recent_rsi, False, swing_order)

    if len(price_lows) >= 2 and len(rsi_lows) >= 2:
        prev_pl, last_pl = _latest_pair(price_lows)
        prev_rl, last_rl = _latest_pair(rsi_lows)

        lower_low = recent_closes[last_pl] < recent_closes[prev_pl]
        higher_low = recent_rsi[last_rl] > recent_rsi[prev_rl]
        if lower_low and higher_low and abs(last_pl - last_rl) <= max_alignment:
            logger.debug(f"Bullish divergence: price lows {prev_pl}->{last_pl}, RSI lows {prev_rl}->{last_rl}")
            return DivergenceResult(DivergenceType.BULLISH, "Price lower low, RSI higher low")

    return NO_DIVERGENCE


def divergence_direction(result: Optional[DivergenceResult]) -> Optional[DivergenceType]:
    """Map a result to BULLISH/BEARISH, or None when nothing was found."""
    if result is None or not result.found:
        return None
    return result.divergence_type
