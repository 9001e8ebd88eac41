"""
Directional Bias and Market Regime Detection
=============================================

Combines per-timeframe trend states into trading permissions and reads the
broader market regime from long RSI periods on the higher timeframes.

ARCHITECTURE
------------
    Swing bias:  daily and 4h trends must agree
    Scalp bias:  either the 1h or the 4h trend is enough
    Regime:      RSI75/100/200 on 4h and 1d, majority vote around 50

The scalp bias checks bull before bear, so a 1h/4h disagreement where one
side is bull and the other bear resolves to LONG_ONLY.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

from rsi_confluence.config import SignalThresholds
from rsi_confluence.timeframe_analysis import TimeframeSnapshot, TrendState

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class BiasType(Enum):
    """Directional trading permission."""
    LONG_ONLY = "long_only"
    SHORT_ONLY = "short_only"
    NO_TRADE = "no_trade"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class RegimeType(Enum):
    """Broad market context from long RSI periods."""
    BULL_REGIME = "bull_regime"
    BEAR_REGIME = "bear_regime"
    TRANSITION = "transition"


# =============================================================================
# BIAS
# =============================================================================

def calculate_swing_bias(trend_daily: TrendState, trend_4h: TrendState) -> BiasType:
    if trend_daily is TrendState.BULL and trend_4h is TrendState.BULL:
        return BiasType.LONG_ONLY
    if trend_daily is TrendState.BEAR and trend_4h is TrendState.BEAR:
        return BiasType.SHORT_ONLY
    return BiasType.NO_TRADE


def calculate_scalp_bias(trend_1h: TrendState, trend_4h: TrendState) -> BiasType:
    if trend_1h is TrendState.BULL or trend_4h is TrendState.BULL:
        return BiasType.LONG_ONLY
    if trend_1h is TrendState.BEAR or trend_4h is TrendState.BEAR:
        return BiasType.SHORT_ONLY
    return BiasType.NO_TRADE


# =============================================================================
# REGIME
# =============================================================================

def calculate_regime(
    readings: Sequence[Optional[float]],
    thresholds: SignalThresholds = SignalThresholds()
) -> RegimeType:
    """
    Classify the market regime from long-period RSI readings.

    Parameters
    ----------
    readings : Sequence[Optional[float]]
        Up to six readings: RSI75/100/200 on the 4h and daily timeframes.
        Absent readings are dropped.
    thresholds : SignalThresholds
        Agreement share and minimum reading count

    Returns
    -------
    RegimeType
        TRANSITION when fewer than the minimum readings are present or
        neither side reaches the agreement share
    """
    values = [v for v in readings if v is not None]
    if len(values) < thresholds.regime_min_readings:
        return RegimeType.TRANSITION

    above = sum(1 for v in values if v > 50)
    below = sum(1 for v in values if v < 50)
    required = len(values) * thresholds.regime_agreement

    if above >= required:
        return RegimeType.BULL_REGIME
    if below >= required:
        return RegimeType.BEAR_REGIME
    return RegimeType.TRANSITION


def regime_from_snapshots(
    tf_4h: TimeframeSnapshot,
    tf_daily: TimeframeSnapshot,
    thresholds: SignalThresholds = SignalThresholds()
) -> RegimeType:
    return calculate_regime(
        [
            tf_4h.rsi75, tf_4h.rsi100, tf_4h.rsi200,
            tf_daily.rsi75, tf_daily.rsi100, tf_daily.rsi200,
        ],
        thresholds,
    )
