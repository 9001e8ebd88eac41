"""
RSI Indicator Engine for Multi-Timeframe Analysis

MOMENTUM OSCILLATOR
    The Relative Strength Index (Wilder, 1978) measures the ratio of average
    gains to average losses over a lookback window and is bounded in [0, 100].

    Seeding:    simple average of the first `period` gains and losses
    Smoothing:  avg = (avg * (period - 1) + current) / period
    Value:      RSI = 100 - 100 / (1 + avg_gain / avg_loss)
                RSI = 100 when avg_loss == 0

    Two forms are provided:
    - Scalar form: latest reading only, used for per-timeframe snapshots
    - Series form: every reading after warm-up, used by divergence
      detection and the backtest simulator

ABSENT READINGS
    A series with fewer than `period + 1` closes has no reading. The scalar
    form returns None and the series form returns an empty array; nothing in
    this module raises for short or empty input.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

RSI_PERIOD: int = 14
RSI_OVERBOUGHT: float = 70.0
RSI_OVERSOLD: float = 30.0
RSI_STRONG: float = 60.0
RSI_WEAK: float = 40.0
RSI_EXTREME_OB: float = 75.0
RSI_EXTREME_OS: float = 25.0


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MomentumZone(Enum):
    """RSI zone label shown next to a reading."""
    OVERSOLD = "OVERSOLD"
    WEAK = "WEAK"
    NEUTRAL = "NEUTRAL"
    STRONG = "STRONG"
    OVERBOUGHT = "OVERBOUGHT"


class ExtremeType(Enum):
    """Reading beyond the extreme-scanner thresholds."""
    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"


# =============================================================================
# RSI CALCULATION
# =============================================================================

def _as_closes(closes: Optional[Sequence[float]]) -> np.ndarray:
    if closes is None:
        return np.empty(0, dtype=float)
    return np.asarray(closes, dtype=float)


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi_series(
    closes: Optional[Sequence[float]],
    period: int = RSI_PERIOD
) -> np.ndarray:
    """
    Calculate every RSI reading after the warm-up window.

    Parameters
    ----------
    closes : Sequence[float]
        Chronological closing prices, oldest first
    period : int
        Lookback period (default: 14)

    Returns
    -------
    np.ndarray
        ``len(closes) - period`` readings; element ``k`` belongs to close
        index ``k + period``. Empty when the history is too short.
    """
    prices = _as_closes(closes)
    if period <= 0 or len(prices) < period + 1:
        return np.empty(0, dtype=float)

    deltas = np.diff(prices)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period

    values = np.empty(len(deltas) - period + 1, dtype=float)
    values[0] = _rsi_value(avg_gain, avg_loss)

    for k, (gain, loss) in enumerate(zip(gains[period:], losses[period:]), start=1):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        values[k] = _rsi_value(avg_gain, avg_loss)

    return values


def calculate_rsi(
    closes: Optional[Sequence[float]],
    period: int = RSI_PERIOD
) -> Optional[float]:
    """Latest RSI reading, or None when fewer than ``period + 1`` closes exist."""
    series = calculate_rsi_series(closes, period)
    if len(series) == 0:
        return None
    return float(series[-1])


def calculate_rsi_readings(
    closes: Optional[Sequence[float]],
    periods: Iterable[int]
) -> Dict[int, Optional[float]]:
    """
    Latest reading for each period over one timeframe's closes.

    Absent periods map to None so callers can index every configured period.
    """
    readings = {period: calculate_rsi(closes, period) for period in periods}
    logger.debug(f"RSI readings over {0 if closes is None else len(closes)} closes: {readings}")
    return readings


# =============================================================================
# CLASSIFICATION HELPERS
# =============================================================================

def classify_rsi_zone(rsi: Optional[float]) -> Optional[MomentumZone]:
    """
    Classify an RSI value into a display zone.

    Parameters
    ----------
    rsi : float or None
        Current RSI value

    Returns
    -------
    MomentumZone or None
        None for an absent reading
    """
    if rsi is None:
        return None
    if rsi <= RSI_OVERSOLD:
        return MomentumZone.OVERSOLD
    if rsi >= RSI_OVERBOUGHT:
        return MomentumZone.OVERBOUGHT
    if rsi <= RSI_WEAK:
        return MomentumZone.WEAK
    if rsi >= RSI_STRONG:
        return MomentumZone.STRONG
    return MomentumZone.NEUTRAL


def is_extreme(
    rsi: Optional[float],
    oversold: float = RSI_EXTREME_OS,
    overbought: float = RSI_EXTREME_OB
) -> Optional[ExtremeType]:
    if rsi is None:
        return None
    if rsi < oversold:
        return ExtremeType.OVERSOLD
    if rsi > overbought:
        return ExtremeType.OVERBOUGHT
    return None


def round_half_up(value: float) -> int:
    """Round halves toward +inf (12.5 -> 13, -12.5 -> -12)."""
    return int(math.floor(value + 0.5))
