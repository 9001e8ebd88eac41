"""
Configuration Module for the Multi-Timeframe RSI Scanner

This module centralizes the RSI periods, candle timeframes, tracked pairs and
signal thresholds used throughout the analysis pipeline.

All "magic numbers" used by the signal engine are defined here to ensure:
1. Single source of truth for all thresholds
2. Easy modification without touching analysis code
3. One validation pass at startup instead of checks scattered in the engine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class ConfigurationError(ValueError):
    """Raised when a scanner configuration fails startup validation."""


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Timeframe(Enum):
    """Candle timeframes the signal engine reads directly."""
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


# Timeframes the signal engine cannot run without
REQUIRED_TIMEFRAMES: Tuple[str, ...] = (
    Timeframe.M1.value,
    Timeframe.M5.value,
    Timeframe.M15.value,
    Timeframe.H1.value,
    Timeframe.H4.value,
    Timeframe.D1.value,
)


# =============================================================================
# PAIRS
# =============================================================================

TOP_PAIRS: Tuple[str, ...] = (
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "XRPUSDT", "SOLUSDT",
    "ADAUSDT", "DOGEUSDT", "AVAXUSDT", "DOTUSDT", "MATICUSDT",
)

SYMBOL_NAMES: Dict[str, str] = {
    "BTCUSDT": "Bitcoin",
    "ETHUSDT": "Ethereum",
    "BNBUSDT": "BNB",
    "XRPUSDT": "XRP",
    "SOLUSDT": "Solana",
    "ADAUSDT": "Cardano",
    "DOGEUSDT": "Dogecoin",
    "AVAXUSDT": "Avalanche",
    "DOTUSDT": "Polkadot",
    "MATICUSDT": "Polygon",
}


# =============================================================================
# SIGNAL THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class SignalThresholds:

    # Confluence scorer (strict inequalities)
    confluence_oversold: float = 30.0
    confluence_overbought: float = 70.0

    # Stretch state (inclusive)
    stretch_rsi5_oversold: float = 25.0
    stretch_rsi9_oversold: float = 30.0
    stretch_rsi5_overbought: float = 75.0
    stretch_rsi9_overbought: float = 70.0

    # Swing reset zones on 4h RSI14
    swing_long_reset: Tuple[float, float] = (35.0, 45.0)
    swing_short_reset: Tuple[float, float] = (55.0, 65.0)

    # Leaving the reset zone still counts while below/above these
    swing_long_exit: float = 55.0
    swing_short_exit: float = 45.0

    # Scalp soft momentum check on 15m RSI14
    scalp_long_momentum: float = 45.0
    scalp_short_momentum: float = 55.0

    # Regime: share of long-period readings on one side of 50
    regime_agreement: float = 0.7
    regime_min_readings: int = 3

    # Verdicts below this are reported as watching
    min_confidence: int = 40

    # Extreme scanner (strict inequalities)
    extreme_oversold: float = 25.0
    extreme_overbought: float = 75.0


# =============================================================================
# SCANNER CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class TimeframeConfig:
    """One candle timeframe: display label, exchange interval and candle count."""
    label: str
    interval: str
    limit: int = 250


RSI_PERIODS: Tuple[int, ...] = (5, 9, 14, 50, 75, 100, 200)

TIMEFRAMES: Tuple[TimeframeConfig, ...] = (
    TimeframeConfig("1m", "1m", 250),
    TimeframeConfig("5m", "5m", 250),
    TimeframeConfig("15m", "15m", 250),
    TimeframeConfig("1h", "1h", 250),
    TimeframeConfig("4h", "4h", 250),
    TimeframeConfig("1d", "1d", 250),
    TimeframeConfig("1w", "1w", 250),
)

CONFLUENCE_TIMEFRAMES: Tuple[str, ...] = ("1h", "4h", "1d")


@dataclass(frozen=True)
class ScannerConfig:
    """
    Fixed, enumerated scanner configuration.

    Built once and validated at startup; the analysis functions trust it
    afterwards and never re-check periods or timeframe labels.
    """
    periods: Tuple[int, ...] = RSI_PERIODS
    timeframes: Tuple[TimeframeConfig, ...] = TIMEFRAMES
    confluence_timeframes: Tuple[str, ...] = CONFLUENCE_TIMEFRAMES
    thresholds: SignalThresholds = field(default_factory=SignalThresholds)

    @property
    def timeframe_labels(self) -> Tuple[str, ...]:
        return tuple(tf.label for tf in self.timeframes)

    def get_timeframe(self, label: str) -> TimeframeConfig:
        for tf in self.timeframes:
            if tf.label == label:
                return tf
        raise KeyError(label)

    def validate(self) -> "ScannerConfig":
        """
        Validate the configuration.

        Returns
        -------
        ScannerConfig
            self, so the call can be chained at startup

        Raises
        ------
        ConfigurationError
            If periods or timeframes are empty, duplicated, non-positive,
            or a timeframe the signal engine needs is missing
        """
        if not self.periods:
            raise ConfigurationError("At least one RSI period is required")
        if any(p <= 0 for p in self.periods):
            raise ConfigurationError(f"RSI periods must be positive: {self.periods}")
        if len(set(self.periods)) != len(self.periods):
            raise ConfigurationError(f"Duplicate RSI periods: {self.periods}")

        if not self.timeframes:
            raise ConfigurationError("At least one timeframe is required")
        labels = self.timeframe_labels
        if len(set(labels)) != len(labels):
            raise ConfigurationError(f"Duplicate timeframe labels: {labels}")

        longest = max(self.periods)
        for tf in self.timeframes:
            if tf.limit <= longest:
                raise ConfigurationError(
                    f"Timeframe {tf.label} fetches {tf.limit} candles, "
                    f"need more than {longest} for RSI{longest}"
                )

        missing = [label for label in REQUIRED_TIMEFRAMES if label not in labels]
        if missing:
            raise ConfigurationError(f"Missing required timeframes: {missing}")

        unknown = [label for label in self.confluence_timeframes if label not in labels]
        if unknown:
            raise ConfigurationError(f"Unknown confluence timeframes: {unknown}")

        return self


DEFAULT_CONFIG = ScannerConfig()
