"""
RSI Extreme Backtest Simulator
==============================

Replays every historical RSI extreme against forward price returns and
reports how often price reverted.

METHOD
------
    1. Compute the RSI series over the supplied closes
    2. Walk each candle from `period` up to the last candle that still has a
       full 24h forward window
    3. RSI below the oversold threshold   -> OVERSOLD signal (expect up)
       RSI above the overbought threshold -> OVERBOUGHT signal (expect down)
    4. Record forward returns at 1h / 4h / 24h horizons
    5. Aggregate win rate and mean return per horizon and signal type

HORIZONS
--------
Horizon lengths are expressed in candles of the backtested timeframe.
Fractional horizons (1h on 4h candles is 0.25) are rounded up to the next
whole candle, so they approximate rather than measure the 1h return. A zero
horizon (1h or 4h on daily candles) has no return, nor does a signal whose
entry close is zero or negative.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from rsi_confluence.technical_indicators import calculate_rsi_series

logger = logging.getLogger(__name__)


# =============================================================================
# SECTION 1: CONFIGURATION
# =============================================================================

class Config:
    """Backtest defaults."""

    RSI_PERIOD: int = 14
    OVERSOLD: float = 30.0
    OVERBOUGHT: float = 70.0

    # Candles needed beyond the RSI warm-up before a backtest is meaningful
    MIN_EXTRA_CANDLES: int = 50
    RECOMMENDED_CANDLES: int = 500

    # Signals kept for display
    DISPLAY_SIGNALS: int = 50


# timeframe -> candles per (1h, 4h, 24h) horizon
HORIZON_CANDLES: Dict[str, tuple] = {
    "5m": (12, 48, 288),
    "15m": (4, 16, 96),
    "1h": (1, 4, 24),
    "4h": (0.25, 1, 6),
    "1d": (0, 0, 1),
}


# =============================================================================
# SECTION 2: DATA STRUCTURES
# =============================================================================

class BacktestSignalType(Enum):
    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"


@dataclass
class BacktestSignal:
    """One historical threshold crossing with its forward returns (percent)."""
    index: int
    price: float
    rsi: float
    signal_type: BacktestSignalType
    return_1h: Optional[float]
    return_4h: Optional[float]
    return_24h: Optional[float]
    timestamp: Optional[int] = None


@dataclass
class DirectionStats:
    """Win rates in percent, average returns in percent."""
    count: int = 0
    win_rate_1h: float = 0.0
    win_rate_4h: float = 0.0
    win_rate_24h: float = 0.0
    avg_return_1h: float = 0.0
    avg_return_4h: float = 0.0
    avg_return_24h: float = 0.0


@dataclass
class BacktestResult:
    """
    Complete results container.

    Every signal is kept; ``recent_signals`` gives the tail shown to users.
    """
    symbol: str
    timeframe: str
    rsi_period: int
    oversold_threshold: float
    overbought_threshold: float
    candles: int
    signals: List[BacktestSignal] = field(default_factory=list)
    oversold_stats: DirectionStats = field(default_factory=DirectionStats)
    overbought_stats: DirectionStats = field(default_factory=DirectionStats)

    @property
    def signal_count(self) -> int:
        return len(self.signals)

    def recent_signals(self, n: int = Config.DISPLAY_SIGNALS) -> List[BacktestSignal]:
        return self.signals[-n:] if n > 0 else []

    def to_frame(self) -> pd.DataFrame:
        """Signals as a DataFrame, one row per signal."""
        columns = ["index", "price", "rsi", "signal_type",
                   "return_1h", "return_4h", "return_24h", "timestamp"]
        if not self.signals:
            return pd.DataFrame(columns=columns)
        rows = []
        for sig in self.signals:
            row = asdict(sig)
            row["signal_type"] = sig.signal_type.value
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)


# =============================================================================
# SECTION 3: STATISTICS
# =============================================================================

def _pct_return(entry: float, exit_price: float) -> Optional[float]:
    if entry <= 0:
        return None
    return (exit_price - entry) / entry * 100.0


def _horizon_stats(returns: List[float], expect_up: bool):
    if not returns:
        return 0.0, 0.0
    arr = np.asarray(returns, dtype=float)
    wins = arr > 0 if expect_up else arr < 0
    return float(wins.mean() * 100.0), float(arr.mean())


def calculate_stats(signals: Sequence[BacktestSignal], expect_up: bool) -> DirectionStats:
    """
    Aggregate win rate and average return per horizon.

    Args:
        signals: Signals of a single type
        expect_up: True after oversold (a win is a positive return),
            False after overbought (a win is a negative return)

    Returns:
        DirectionStats; all zeros when there are no signals
    """
    if not signals:
        return DirectionStats()

    r1 = [s.return_1h for s in signals if s.return_1h is not None]
    r4 = [s.return_4h for s in signals if s.return_4h is not None]
    r24 = [s.return_24h for s in signals if s.return_24h is not None]

    win_1h, avg_1h = _horizon_stats(r1, expect_up)
    win_4h, avg_4h = _horizon_stats(r4, expect_up)
    win_24h, avg_24h = _horizon_stats(r24, expect_up)

    return DirectionStats(
        count=len(signals),
        win_rate_1h=win_1h,
        win_rate_4h=win_4h,
        win_rate_24h=win_24h,
        avg_return_1h=avg_1h,
        avg_return_4h=avg_4h,
        avg_return_24h=avg_24h,
    )


# =============================================================================
# SECTION 4: SIMULATOR
# =============================================================================

def run_backtest(
    symbol: str,
    timeframe: str,
    closes: Sequence[float],
    rsi_period: int = Config.RSI_PERIOD,
    oversold_threshold: float = Config.OVERSOLD,
    overbought_threshold: float = Config.OVERBOUGHT,
    timestamps: Optional[Sequence[int]] = None
) -> Optional[BacktestResult]:
    """
    Backtest RSI extremes on one pair and timeframe.

    Args:
        symbol: Trading pair, for labelling only
        timeframe: Candle timeframe, one of HORIZON_CANDLES
        closes: Chronological closes (500+ candles recommended)
        rsi_period: RSI lookback
        oversold_threshold: RSI strictly below this is an oversold signal
        overbought_threshold: RSI strictly above this is an overbought signal
        timestamps: Optional candle open times aligned with ``closes``

    Returns:
        BacktestResult, or None for an unsupported timeframe or fewer than
        ``rsi_period + 50`` candles
    """
    horizons = HORIZON_CANDLES.get(timeframe)
    if horizons is None:
        logger.warning(f"Backtest skipped: unsupported timeframe {timeframe}")
        return None

    prices = np.asarray(closes, dtype=float)
    n = len(prices)
    if n < rsi_period + Config.MIN_EXTRA_CANDLES:
        logger.warning(f"Backtest skipped for {symbol} {timeframe}: only {n} candles")
        return None
    if n < Config.RECOMMENDED_CANDLES:
        logger.debug(f"{symbol} {timeframe}: {n} candles, {Config.RECOMMENDED_CANDLES} recommended")

    rsi_values = calculate_rsi_series(prices, rsi_period)
    steps = [math.ceil(h) for h in horizons]
    end_idx = n - steps[2] - 1

    signals: List[BacktestSignal] = []
    for i in range(rsi_period, end_idx):
        rsi = float(rsi_values[i - rsi_period])

        if rsi < oversold_threshold:
            signal_type = BacktestSignalType.OVERSOLD
        elif rsi > overbought_threshold:
            signal_type = BacktestSignalType.OVERBOUGHT
        else:
            continue

        entry = float(prices[i])
        forward = []
        for horizon, step in zip(horizons, steps):
            if horizon <= 0:
                forward.append(None)
                continue
            exit_idx = min(i + step, n - 1)
            forward.append(_pct_return(entry, float(prices[exit_idx])))

        signals.append(BacktestSignal(
            index=i,
            price=entry,
            rsi=rsi,
            signal_type=signal_type,
            return_1h=forward[0],
            return_4h=forward[1],
            return_24h=forward[2],
            timestamp=int(timestamps[i]) if timestamps is not None else None,
        ))

    oversold = [s for s in signals if s.signal_type is BacktestSignalType.OVERSOLD]
    overbought = [s for s in signals if s.signal_type is BacktestSignalType.OVERBOUGHT]

    result = BacktestResult(
        symbol=symbol,
        timeframe=timeframe,
        rsi_period=rsi_period,
        oversold_threshold=oversold_threshold,
        overbought_threshold=overbought_threshold,
        candles=n,
        signals=signals,
        oversold_stats=calculate_stats(oversold, expect_up=True),
        overbought_stats=calculate_stats(overbought, expect_up=False),
    )
    logger.debug(
        f"Backtest {symbol} {timeframe}: {len(oversold)} oversold, "
        f"{len(overbought)} overbought signals over {n} candles"
    )
    return result
