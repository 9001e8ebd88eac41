"""
Per-timeframe trend, stretch and momentum-flip classification.

TREND STATE
    Mid/long RSI periods (14, 50, 200) on one side of 50. RSI200 is optional
    because short histories rarely carry 201 candles.

STRETCH STATE
    Fast RSI periods (5, 9) at an extreme: an overextended move that a
    scalp entry can fade.

FLIPS
    RSI5 crossing RSI9 between the previous and the current candle,
    confirmed by RSI14 moving the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

from rsi_confluence.config import RSI_PERIODS, SignalThresholds
from rsi_confluence.technical_indicators import calculate_rsi_series

logger = logging.getLogger(__name__)


class TrendState(Enum):
    BULL = "bull"
    BEAR = "bear"
    NEUTRAL = "neutral"


class StretchState(Enum):
    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class TimeframeSnapshot:
    """
    RSI readings and derived flags for one pair on one timeframe.

    Built fresh each scan cycle and never mutated afterwards.
    """
    timeframe: str
    trend_state: TrendState
    stretch_state: StretchState
    rsi5: Optional[float]
    rsi9: Optional[float]
    rsi14: Optional[float]
    rsi14_prev: Optional[float]
    rsi50: Optional[float]
    rsi75: Optional[float]
    rsi100: Optional[float]
    rsi200: Optional[float]
    bull_flip: bool
    bear_flip: bool
    rsi14_rising: bool
    rsi14_falling: bool


# =============================================================================
# CLASSIFIERS
# =============================================================================

def calculate_trend_state(
    rsi14: Optional[float],
    rsi50: Optional[float],
    rsi200: Optional[float]
) -> TrendState:
    """
    Classify trend from RSI14, RSI50 and (optionally) RSI200.

    Bull needs RSI14 >= 50 and RSI50 >= 50, bear needs both <= 50; an absent
    RSI200 passes either check. Missing RSI14 or RSI50 gives NEUTRAL.
    """
    if rsi14 is None or rsi50 is None:
        return TrendState.NEUTRAL

    long_bull = rsi200 is None or rsi200 >= 50
    long_bear = rsi200 is None or rsi200 <= 50

    if rsi14 >= 50 and rsi50 >= 50 and long_bull:
        return TrendState.BULL
    if rsi14 <= 50 and rsi50 <= 50 and long_bear:
        return TrendState.BEAR
    return TrendState.NEUTRAL


def calculate_stretch_state(
    rsi5: Optional[float],
    rsi9: Optional[float],
    thresholds: SignalThresholds = SignalThresholds()
) -> StretchState:
    if rsi5 is None and rsi9 is None:
        return StretchState.NEUTRAL

    oversold = (
        (rsi5 is not None and rsi5 <= thresholds.stretch_rsi5_oversold)
        or (rsi9 is not None and rsi9 <= thresholds.stretch_rsi9_oversold)
    )
    overbought = (
        (rsi5 is not None and rsi5 >= thresholds.stretch_rsi5_overbought)
        or (rsi9 is not None and rsi9 >= thresholds.stretch_rsi9_overbought)
    )

    # oversold wins a tie
    if oversold:
        return StretchState.OVERSOLD
    if overbought:
        return StretchState.OVERBOUGHT
    return StretchState.NEUTRAL


def is_rising(current: Optional[float], previous: Optional[float]) -> bool:
    return current is not None and previous is not None and current > previous


def is_falling(current: Optional[float], previous: Optional[float]) -> bool:
    return current is not None and previous is not None and current < previous


def detect_bull_flip(
    rsi5: Optional[float],
    rsi9: Optional[float],
    rsi5_prev: Optional[float],
    rsi9_prev: Optional[float],
    rsi14_rising: bool
) -> bool:
    """RSI5 crossed above RSI9 on the latest candle while RSI14 rises."""
    if rsi5 is None or rsi9 is None or rsi5_prev is None or rsi9_prev is None:
        return False
    crossed_above = rsi5_prev <= rsi9_prev and rsi5 > rsi9
    return crossed_above and rsi14_rising


def detect_bear_flip(
    rsi5: Optional[float],
    rsi9: Optional[float],
    rsi5_prev: Optional[float],
    rsi9_prev: Optional[float],
    rsi14_falling: bool
) -> bool:
    """RSI5 crossed below RSI9 on the latest candle while RSI14 falls."""
    if rsi5 is None or rsi9 is None or rsi5_prev is None or rsi9_prev is None:
        return False
    crossed_below = rsi5_prev >= rsi9_prev and rsi5 < rsi9
    return crossed_below and rsi14_falling


# =============================================================================
# SNAPSHOT CONSTRUCTION
# =============================================================================

def _latest_two(closes: Sequence[float], period: int):
    series = calculate_rsi_series(closes, period)
    current = float(series[-1]) if len(series) >= 1 else None
    previous = float(series[-2]) if len(series) >= 2 else None
    return current, previous


def build_timeframe_snapshot(
    timeframe: str,
    closes: Sequence[float],
    periods: Sequence[int] = RSI_PERIODS,
    thresholds: SignalThresholds = SignalThresholds()
) -> TimeframeSnapshot:
    """
    Compute every reading and flag for one timeframe's closes.

    Args:
        timeframe: Timeframe label, e.g. "4h"
        closes: Chronological closing prices for that timeframe
        periods: Configured RSI periods; periods outside this set read as absent
        thresholds: Stretch thresholds

    Returns:
        TimeframeSnapshot with absent readings as None
    """
    current: Dict[int, Optional[float]] = {}
    previous: Dict[int, Optional[float]] = {}
    for period in periods:
        current[period], previous[period] = _latest_two(closes, period)

    rsi5, rsi9, rsi14 = current.get(5), current.get(9), current.get(14)
    rsi14_prev = previous.get(14)
    rising = is_rising(rsi14, rsi14_prev)
    falling = is_falling(rsi14, rsi14_prev)

    snapshot = TimeframeSnapshot(
        timeframe=timeframe,
        trend_state=calculate_trend_state(rsi14, current.get(50), current.get(200)),
        stretch_state=calculate_stretch_state(rsi5, rsi9, thresholds),
        rsi5=rsi5,
        rsi9=rsi9,
        rsi14=rsi14,
        rsi14_prev=rsi14_prev,
        rsi50=current.get(50),
        rsi75=current.get(75),
        rsi100=current.get(100),
        rsi200=current.get(200),
        bull_flip=detect_bull_flip(rsi5, rsi9, previous.get(5), previous.get(9), rising),
        bear_flip=detect_bear_flip(rsi5, rsi9, previous.get(5), previous.get(9), falling),
        rsi14_rising=rising,
        rsi14_falling=falling,
    )
    logger.debug(
        f"{timeframe}: trend={snapshot.trend_state.value} "
        f"stretch={snapshot.stretch_state.value} "
        f"flips={snapshot.bull_flip}/{snapshot.bear_flip}"
    )
    return snapshot
