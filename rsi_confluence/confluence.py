"""
Multi-timeframe confluence scoring and extreme-reading scanner.

Confluence counts how many timeframes agree on an oversold or overbought
reading for a single RSI period and folds the counts into a score in
[-100, 100] (positive = oversold majority, a buy lean).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from rsi_confluence.config import CONFLUENCE_TIMEFRAMES, SYMBOL_NAMES, SignalThresholds
from rsi_confluence.technical_indicators import ExtremeType, is_extreme, round_half_up

logger = logging.getLogger(__name__)

# timeframe label -> {period: reading}
TimeframeReadings = Mapping[str, Mapping[int, Optional[float]]]


class ConfluenceSignal(Enum):
    """Discrete confluence verdict."""
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


@dataclass(frozen=True)
class ConfluenceScore:
    oversold_count: int
    overbought_count: int
    total_timeframes: int
    score: int                              # -100 to +100
    signal: ConfluenceSignal


@dataclass(frozen=True)
class ExtremeReading:
    timeframe: str
    period: int
    value: float
    extreme_type: ExtremeType


@dataclass
class ScannerResult:
    """Extreme readings for one pair plus its RSI14 confluence score."""
    symbol: str
    name: str
    price: Optional[float]
    extremes: List[ExtremeReading] = field(default_factory=list)
    confluence_score: int = 0


def calculate_confluence(
    readings: TimeframeReadings,
    period: int = 14,
    timeframes: Sequence[str] = CONFLUENCE_TIMEFRAMES,
    oversold: float = 30.0,
    overbought: float = 70.0
) -> ConfluenceScore:
    """
    Aggregate one RSI period across several timeframes.

    Args:
        readings: Per-timeframe RSI readings keyed by period
        period: RSI period to read on every timeframe
        timeframes: Ordered timeframe labels to consider
        oversold: A reading strictly below this counts as oversold
        overbought: A reading strictly above this counts as overbought

    Returns:
        ConfluenceScore; score 0 and NEUTRAL when no timeframe has a reading
    """
    oversold_count = 0
    overbought_count = 0
    valid_count = 0

    for tf in timeframes:
        rsi = readings.get(tf, {}).get(period)
        if rsi is None:
            continue
        valid_count += 1
        if rsi < oversold:
            oversold_count += 1
        elif rsi > overbought:
            overbought_count += 1

    net = oversold_count - overbought_count
    score = round_half_up(100 * net / valid_count) if valid_count > 0 else 0

    if oversold_count >= 3:
        signal = ConfluenceSignal.STRONG_BUY
    elif oversold_count >= 2:
        signal = ConfluenceSignal.BUY
    elif overbought_count >= 3:
        signal = ConfluenceSignal.STRONG_SELL
    elif overbought_count >= 2:
        signal = ConfluenceSignal.SELL
    else:
        signal = ConfluenceSignal.NEUTRAL

    return ConfluenceScore(
        oversold_count=oversold_count,
        overbought_count=overbought_count,
        total_timeframes=valid_count,
        score=score,
        signal=signal,
    )


def scan_extremes(
    symbol: str,
    readings: TimeframeReadings,
    price: Optional[float] = None,
    confluence_timeframes: Sequence[str] = CONFLUENCE_TIMEFRAMES,
    thresholds: SignalThresholds = SignalThresholds()
) -> ScannerResult:
    """Collect every (timeframe, period) reading beyond the extreme thresholds."""
    extremes = []
    for tf, by_period in readings.items():
        for period, value in by_period.items():
            kind = is_extreme(value, thresholds.extreme_oversold, thresholds.extreme_overbought)
            if kind is not None:
                extremes.append(ExtremeReading(tf, period, value, kind))

    confluence = calculate_confluence(
        readings,
        period=14,
        timeframes=confluence_timeframes,
        oversold=thresholds.confluence_oversold,
        overbought=thresholds.confluence_overbought,
    )
    if extremes:
        logger.debug(f"{symbol}: {len(extremes)} extreme readings, confluence {confluence.score}")

    return ScannerResult(
        symbol=symbol,
        name=SYMBOL_NAMES.get(symbol, symbol),
        price=price,
        extremes=extremes,
        confluence_score=confluence.score,
    )
