"""
Multi-Timeframe Signal Verdict Engine
======================================

Turns per-timeframe snapshots into a single verdict per pair and scan cycle.

SIGNAL CHECKLISTS
-----------------
Each signal type runs an ordered checklist. A passing step appends a "✓"
reason, a failing step appends a "✗" reason and stops the checklist.
"⚠" marks a soft check that does not gate validity and "⭐" marks a
divergence bonus.

    Swing long:   1D+4H bull bias, 4H RSI14 in reset zone 35-45 (or just
                  crossed above 45), 4H RSI14 rising, 1H RSI14 >= 50 rising
    Swing short:  mirror with reset zone 55-65
    Scalp long:   1H or 4H bull bias, 5m oversold stretch, bull flip on
                  1m or 5m, soft check 15m RSI14 >= 45
    Scalp short:  mirror with overbought stretch, soft check 15m RSI14 <= 55

PRIORITY
--------
Swing long, swing short, scalp long, scalp short. The first valid checklist
whose confidence reaches the floor becomes the active signal; at most one
signal is active per pair per cycle.

CONFIDENCE (0-100)
------------------
    Bias strength   (0-40): |RSI14 1D - 50| + |RSI14 4H - 50|
    Setup quality   (0-30): how far RSI5/RSI9 stretched past 50
    Trigger quality (0-30): flip +15, RSI14 confirmation +10,
                            1H alignment +5 (swing only)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from rsi_confluence.config import DEFAULT_CONFIG, ScannerConfig, SignalThresholds
from rsi_confluence.confluence import ConfluenceScore, calculate_confluence
from rsi_confluence.divergence import (
    DivergenceResult,
    DivergenceType,
    detect_divergence,
    divergence_direction,
)
from rsi_confluence.regime_detector import (
    BiasType,
    RegimeType,
    calculate_scalp_bias,
    calculate_swing_bias,
    regime_from_snapshots,
)
from rsi_confluence.technical_indicators import (
    calculate_rsi_readings,
    calculate_rsi_series,
    round_half_up,
)
from rsi_confluence.timeframe_analysis import (
    StretchState,
    TimeframeSnapshot,
    TrendState,
    build_timeframe_snapshot,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class SignalType(Enum):
    SCALP_LONG = "scalp_long"
    SCALP_SHORT = "scalp_short"
    SWING_LONG = "swing_long"
    SWING_SHORT = "swing_short"

    @property
    def is_swing(self) -> bool:
        return self in (SignalType.SWING_LONG, SignalType.SWING_SHORT)


class VerdictStatus(Enum):
    ACTIVE = "active"
    WATCHING = "watching"
    NO_TRADE = "no_trade"


@dataclass
class CheckResult:
    """Outcome of one signal checklist."""
    valid: bool
    reasons: List[str] = field(default_factory=list)


@dataclass
class SignalVerdict:
    """
    Verdict for one pair in one scan cycle.

    Produced once per pair per scan and handed to the presentation layer;
    nothing here is persisted.
    """
    symbol: str
    signal: Optional[SignalType]
    confidence: int
    reasons: List[str]
    swing_bias: BiasType
    scalp_bias: BiasType
    regime: RegimeType
    status: VerdictStatus
    divergence: Optional[DivergenceType] = None

    @property
    def is_active(self) -> bool:
        return self.status is VerdictStatus.ACTIVE

    def to_dict(self) -> Dict[str, object]:
        return {
            "symbol": self.symbol,
            "signal": self.signal.value if self.signal else None,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "swing_bias": self.swing_bias.value,
            "scalp_bias": self.scalp_bias.value,
            "regime": self.regime.value,
            "status": self.status.value,
            "divergence": self.divergence.value if self.divergence else None,
        }


@dataclass
class PairAnalysis:
    """Everything computed for one pair in one scan cycle."""
    symbol: str
    price: Optional[float]
    readings: Dict[str, Dict[int, Optional[float]]]
    snapshots: Dict[str, TimeframeSnapshot]
    confluence: ConfluenceScore
    divergences: Dict[str, DivergenceResult]
    verdict: SignalVerdict


def _fmt(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.1f}"


def empty_snapshot(timeframe: str) -> TimeframeSnapshot:
    """Snapshot for a timeframe with no data; every reading absent."""
    return TimeframeSnapshot(
        timeframe=timeframe,
        trend_state=TrendState.NEUTRAL,
        stretch_state=StretchState.NEUTRAL,
        rsi5=None, rsi9=None, rsi14=None, rsi14_prev=None,
        rsi50=None, rsi75=None, rsi100=None, rsi200=None,
        bull_flip=False, bear_flip=False,
        rsi14_rising=False, rsi14_falling=False,
    )


# =============================================================================
# SWING CHECKLISTS
# =============================================================================

def check_swing_long(
    swing_bias: BiasType,
    tf_4h: TimeframeSnapshot,
    tf_1h: TimeframeSnapshot,
    divergence: Optional[DivergenceType] = None,
    thresholds: SignalThresholds = SignalThresholds()
) -> CheckResult:
    reasons: List[str] = []

    if swing_bias is not BiasType.LONG_ONLY:
        return CheckResult(False, ["✗ Swing bias is not Long Only (need 1D+4H bull)"])
    reasons.append("✓ Swing Bias: Long Only (1D Bull + 4H Bull)")

    if tf_4h.rsi14 is None:
        return CheckResult(False, reasons + ["✗ 4H RSI14 not available"])

    low, high = thresholds.swing_long_reset
    rsi14 = tf_4h.rsi14
    if low <= rsi14 <= high:
        reasons.append(f"✓ 4H RSI14 ({rsi14:.1f}) in reset zone ({low:.0f}-{high:.0f})")
    elif high < rsi14 < thresholds.swing_long_exit and tf_4h.rsi14_rising:
        reasons.append(f"✓ 4H RSI14 ({rsi14:.1f}) crossed above {high:.0f} reset zone")
    else:
        return CheckResult(
            False, reasons + [f"✗ 4H RSI14 ({rsi14:.1f}) not in reset zone ({low:.0f}-{high:.0f})"]
        )

    if not tf_4h.rsi14_rising:
        return CheckResult(False, reasons + ["✗ 4H RSI14 not rising"])
    reasons.append("✓ 4H RSI14 is rising")

    if tf_1h.rsi14 is None or tf_1h.rsi14 < 50:
        return CheckResult(False, reasons + [f"✗ 1H RSI14 ({_fmt(tf_1h.rsi14)}) < 50"])
    if not tf_1h.rsi14_rising:
        return CheckResult(False, reasons + ["✗ 1H RSI14 not rising"])
    reasons.append(f"✓ 1H RSI14 ({tf_1h.rsi14:.1f}) >= 50 and rising")

    if divergence is DivergenceType.BULLISH:
        reasons.append("⭐ A+ Signal: Bullish divergence detected")

    return CheckResult(True, reasons)


def check_swing_short(
    swing_bias: BiasType,
    tf_4h: TimeframeSnapshot,
    tf_1h: TimeframeSnapshot,
    divergence: Optional[DivergenceType] = None,
    thresholds: SignalThresholds = SignalThresholds()
) -> CheckResult:
    reasons: List[str] = []

    if swing_bias is not BiasType.SHORT_ONLY:
        return CheckResult(False, ["✗ Swing bias is not Short Only (need 1D+4H bear)"])
    reasons.append("✓ Swing Bias: Short Only (1D Bear + 4H Bear)")

    if tf_4h.rsi14 is None:
        return CheckResult(False, reasons + ["✗ 4H RSI14 not available"])

    low, high = thresholds.swing_short_reset
    rsi14 = tf_4h.rsi14
    if low <= rsi14 <= high:
        reasons.append(f"✓ 4H RSI14 ({rsi14:.1f}) in reset zone ({low:.0f}-{high:.0f})")
    elif thresholds.swing_short_exit < rsi14 < low and tf_4h.rsi14_falling:
        reasons.append(f"✓ 4H RSI14 ({rsi14:.1f}) crossed below {low:.0f} reset zone")
    else:
        return CheckResult(
            False, reasons + [f"✗ 4H RSI14 ({rsi14:.1f}) not in reset zone ({low:.0f}-{high:.0f})"]
        )

    if not tf_4h.rsi14_falling:
        return CheckResult(False, reasons + ["✗ 4H RSI14 not falling"])
    reasons.append("✓ 4H RSI14 is falling")

    if tf_1h.rsi14 is None or tf_1h.rsi14 > 50:
        return CheckResult(False, reasons + [f"✗ 1H RSI14 ({_fmt(tf_1h.rsi14)}) > 50"])
    if not tf_1h.rsi14_falling:
        return CheckResult(False, reasons + ["✗ 1H RSI14 not falling"])
    reasons.append(f"✓ 1H RSI14 ({tf_1h.rsi14:.1f}) <= 50 and falling")

    if divergence is DivergenceType.BEARISH:
        reasons.append("⭐ A+ Signal: Bearish divergence detected")

    return CheckResult(True, reasons)


# =============================================================================
# SCALP CHECKLISTS
# =============================================================================

def check_scalp_long(
    scalp_bias: BiasType,
    tf_5m: TimeframeSnapshot,
    tf_1m: Optional[TimeframeSnapshot],
    tf_15m: TimeframeSnapshot,
    thresholds: SignalThresholds = SignalThresholds()
) -> CheckResult:
    reasons: List[str] = []

    if scalp_bias is not BiasType.LONG_ONLY:
        return CheckResult(False, ["✗ Scalp bias is not Long Only"])
    reasons.append("✓ Scalp Bias: Long Only")

    if tf_5m.stretch_state is not StretchState.OVERSOLD:
        return CheckResult(False, reasons + ["✗ 5m not in oversold stretch"])
    reasons.append(f"✓ 5m Oversold (RSI5: {_fmt(tf_5m.rsi5)}, RSI9: {_fmt(tf_5m.rsi9)})")

    has_flip = (tf_1m is not None and tf_1m.bull_flip) or tf_5m.bull_flip
    if not has_flip:
        return CheckResult(False, reasons + ["✗ No bull flip on 1m/5m"])
    reasons.append("✓ Bull flip detected")

    floor = thresholds.scalp_long_momentum
    if tf_15m.rsi14 is not None and tf_15m.rsi14 < floor:
        reasons.append(f"⚠ 15m RSI14 ({tf_15m.rsi14:.1f}) < {floor:.0f} - weak momentum")
    elif tf_15m.rsi14 is not None:
        reasons.append(f"✓ 15m RSI14 ({tf_15m.rsi14:.1f}) >= {floor:.0f}")

    return CheckResult(True, reasons)


def check_scalp_short(
    scalp_bias: BiasType,
    tf_5m: TimeframeSnapshot,
    tf_1m: Optional[TimeframeSnapshot],
    tf_15m: TimeframeSnapshot,
    thresholds: SignalThresholds = SignalThresholds()
) -> CheckResult:
    reasons: List[str] = []

    if scalp_bias is not BiasType.SHORT_ONLY:
        return CheckResult(False, ["✗ Scalp bias is not Short Only"])
    reasons.append("✓ Scalp Bias: Short Only")

    if tf_5m.stretch_state is not StretchState.OVERBOUGHT:
        return CheckResult(False, reasons + ["✗ 5m not in overbought stretch"])
    reasons.append(f"✓ 5m Overbought (RSI5: {_fmt(tf_5m.rsi5)}, RSI9: {_fmt(tf_5m.rsi9)})")

    has_flip = (tf_1m is not None and tf_1m.bear_flip) or tf_5m.bear_flip
    if not has_flip:
        return CheckResult(False, reasons + ["✗ No bear flip on 1m/5m"])
    reasons.append("✓ Bear flip detected")

    ceiling = thresholds.scalp_short_momentum
    if tf_15m.rsi14 is not None and tf_15m.rsi14 > ceiling:
        reasons.append(f"⚠ 15m RSI14 ({tf_15m.rsi14:.1f}) > {ceiling:.0f} - weak momentum")
    elif tf_15m.rsi14 is not None:
        reasons.append(f"✓ 15m RSI14 ({tf_15m.rsi14:.1f}) <= {ceiling:.0f}")

    return CheckResult(True, reasons)


# =============================================================================
# CONFIDENCE
# =============================================================================

def calculate_confidence(
    bias: BiasType,
    rsi14_daily: Optional[float],
    rsi14_4h: Optional[float],
    rsi5: Optional[float],
    rsi9: Optional[float],
    has_flip: bool,
    rsi14_confirms: bool,
    is_swing: bool,
    rsi14_1h: Optional[float] = None
) -> int:
    """
    Score a valid signal from 0 to 100.

    Parameters
    ----------
    bias : BiasType
        Bias that allowed the signal
    rsi14_daily, rsi14_4h : float or None
        Higher-timeframe RSI14; bias strength is skipped if either is absent
    rsi5, rsi9 : float or None
        Fast readings on the setup timeframe; setup quality is skipped if
        either is absent
    has_flip : bool
        A flip in the signal direction was detected
    rsi14_confirms : bool
        RSI14 on the setup timeframe moves in the signal direction
    is_swing : bool
        Enables the 1H alignment bonus
    rsi14_1h : float or None
        1H RSI14 for the alignment bonus

    Returns
    -------
    int
        Confidence clamped to [0, 100]
    """
    score = 0.0

    if rsi14_daily is not None and rsi14_4h is not None:
        score += min(40.0, abs(rsi14_daily - 50) + abs(rsi14_4h - 50))

    if rsi5 is not None and rsi9 is not None:
        if bias is BiasType.LONG_ONLY:
            score += min(30.0, max(0.0, 50 - min(rsi5, rsi9)))
        elif bias is BiasType.SHORT_ONLY:
            score += min(30.0, max(0.0, max(rsi5, rsi9) - 50))

    if has_flip:
        score += 15
    if rsi14_confirms:
        score += 10
    if is_swing and rsi14_1h is not None:
        aligned = (
            (bias is BiasType.LONG_ONLY and rsi14_1h >= 50)
            or (bias is BiasType.SHORT_ONLY and rsi14_1h <= 50)
        )
        if aligned:
            score += 5

    return max(0, min(100, round_half_up(score)))


# =============================================================================
# VERDICT
# =============================================================================

def _candidates(
    swing_bias: BiasType,
    scalp_bias: BiasType,
    tfs: Mapping[str, TimeframeSnapshot],
    divergence: Optional[DivergenceType],
    thresholds: SignalThresholds
):
    """Yield (signal type, bias, check result, confidence or None) in priority order."""
    tf_1m, tf_5m, tf_15m = tfs["1m"], tfs["5m"], tfs["15m"]
    tf_1h, tf_4h, tf_1d = tfs["1h"], tfs["4h"], tfs["1d"]

    swing_long = check_swing_long(swing_bias, tf_4h, tf_1h, divergence, thresholds)
    yield SignalType.SWING_LONG, swing_bias, swing_long, (
        calculate_confidence(
            swing_bias, tf_1d.rsi14, tf_4h.rsi14, tf_4h.rsi5, tf_4h.rsi9,
            has_flip=tf_1h.bull_flip,
            rsi14_confirms=tf_4h.rsi14_rising,
            is_swing=True,
            rsi14_1h=tf_1h.rsi14,
        ) if swing_long.valid else None
    )

    swing_short = check_swing_short(swing_bias, tf_4h, tf_1h, divergence, thresholds)
    yield SignalType.SWING_SHORT, swing_bias, swing_short, (
        calculate_confidence(
            swing_bias, tf_1d.rsi14, tf_4h.rsi14, tf_4h.rsi5, tf_4h.rsi9,
            has_flip=tf_1h.bear_flip,
            rsi14_confirms=tf_4h.rsi14_falling,
            is_swing=True,
            rsi14_1h=tf_1h.rsi14,
        ) if swing_short.valid else None
    )

    scalp_long = check_scalp_long(scalp_bias, tf_5m, tf_1m, tf_15m, thresholds)
    yield SignalType.SCALP_LONG, scalp_bias, scalp_long, (
        calculate_confidence(
            scalp_bias, tf_1d.rsi14, tf_4h.rsi14, tf_5m.rsi5, tf_5m.rsi9,
            has_flip=tf_1m.bull_flip or tf_5m.bull_flip,
            rsi14_confirms=tf_5m.rsi14_rising,
            is_swing=False,
        ) if scalp_long.valid else None
    )

    scalp_short = check_scalp_short(scalp_bias, tf_5m, tf_1m, tf_15m, thresholds)
    yield SignalType.SCALP_SHORT, scalp_bias, scalp_short, (
        calculate_confidence(
            scalp_bias, tf_1d.rsi14, tf_4h.rsi14, tf_5m.rsi5, tf_5m.rsi9,
            has_flip=tf_1m.bear_flip or tf_5m.bear_flip,
            rsi14_confirms=tf_5m.rsi14_falling,
            is_swing=False,
        ) if scalp_short.valid else None
    )


def _trend_pair(label_a: str, trend_a: TrendState, label_b: str, trend_b: TrendState) -> str:
    """``(1D bull, 4H neutral: trends disagree)`` style suffix for no-trade reasons."""
    if trend_a is TrendState.NEUTRAL and trend_b is TrendState.NEUTRAL:
        detail = "no trend"
    else:
        detail = "trends disagree"
    return f"({label_a} {trend_a.value}, {label_b} {trend_b.value}: {detail})"


_DIRECTION = {
    SignalType.SWING_LONG: BiasType.LONG_ONLY,
    SignalType.SWING_SHORT: BiasType.SHORT_ONLY,
    SignalType.SCALP_LONG: BiasType.LONG_ONLY,
    SignalType.SCALP_SHORT: BiasType.SHORT_ONLY,
}


def evaluate_signals(
    symbol: str,
    snapshots: Mapping[str, TimeframeSnapshot],
    divergence: Optional[DivergenceType] = None,
    thresholds: SignalThresholds = SignalThresholds()
) -> SignalVerdict:
    """
    Derive the verdict for one pair from its timeframe snapshots.

    Args:
        symbol: Trading pair, e.g. "BTCUSDT"
        snapshots: Snapshots keyed by timeframe label; missing timeframes
            are treated as having no readings
        divergence: 4H divergence direction, a bonus for swing signals
        thresholds: Signal thresholds

    Returns:
        SignalVerdict with status ACTIVE, WATCHING or NO_TRADE
    """
    tfs = {label: snapshots.get(label) or empty_snapshot(label)
           for label in ("1m", "5m", "15m", "1h", "4h", "1d")}

    swing_bias = calculate_swing_bias(tfs["1d"].trend_state, tfs["4h"].trend_state)
    scalp_bias = calculate_scalp_bias(tfs["1h"].trend_state, tfs["4h"].trend_state)
    regime = regime_from_snapshots(tfs["4h"], tfs["1d"], thresholds)

    def verdict(signal, confidence, reasons, status):
        return SignalVerdict(
            symbol=symbol,
            signal=signal,
            confidence=confidence,
            reasons=reasons,
            swing_bias=swing_bias,
            scalp_bias=scalp_bias,
            regime=regime,
            status=status,
            divergence=divergence,
        )

    if swing_bias is BiasType.NO_TRADE and scalp_bias is BiasType.NO_TRADE:
        return verdict(None, 0, [
            "✗ Swing bias: No Trade "
            + _trend_pair("1D", tfs["1d"].trend_state, "4H", tfs["4h"].trend_state),
            "✗ Scalp bias: No Trade "
            + _trend_pair("1H", tfs["1h"].trend_state, "4H", tfs["4h"].trend_state),
        ], VerdictStatus.NO_TRADE)

    watching: List[str] = []
    for signal_type, bias, result, confidence in _candidates(
        swing_bias, scalp_bias, tfs, divergence, thresholds
    ):
        if result.valid and confidence >= thresholds.min_confidence:
            logger.debug(f"{symbol}: {signal_type.value} active at {confidence}% confidence")
            return verdict(signal_type, confidence, result.reasons, VerdictStatus.ACTIVE)

        if result.valid:
            watching.extend(result.reasons)
            watching.append(
                f"⚠ {signal_type.value} confidence {confidence} below {thresholds.min_confidence}"
            )
        elif bias is _DIRECTION[signal_type]:
            watching.extend(result.reasons)

    return verdict(None, 0, watching, VerdictStatus.WATCHING)


# =============================================================================
# PAIR PIPELINE
# =============================================================================

def analyze_pair(
    symbol: str,
    closes_by_timeframe: Mapping[str, Sequence[float]],
    config: ScannerConfig = DEFAULT_CONFIG
) -> PairAnalysis:
    """
    Run the full per-pair pipeline over already-fetched closes.

    Readings, snapshots and divergences are computed for every configured
    timeframe before the bias, regime and verdict stages run.
    """
    thresholds = config.thresholds
    readings: Dict[str, Dict[int, Optional[float]]] = {}
    snapshots: Dict[str, TimeframeSnapshot] = {}
    divergences: Dict[str, DivergenceResult] = {}

    for label in config.timeframe_labels:
        closes = closes_by_timeframe.get(label)
        if closes is None or len(closes) == 0:
            snapshots[label] = empty_snapshot(label)
            readings[label] = {period: None for period in config.periods}
            continue
        readings[label] = calculate_rsi_readings(closes, config.periods)
        snapshots[label] = build_timeframe_snapshot(label, closes, config.periods, thresholds)
        divergences[label] = detect_divergence(closes, calculate_rsi_series(closes, 14))

    confluence = calculate_confluence(
        readings,
        period=14,
        timeframes=config.confluence_timeframes,
        oversold=thresholds.confluence_oversold,
        overbought=thresholds.confluence_overbought,
    )

    swing_divergence = divergence_direction(divergences.get("4h"))
    verdict = evaluate_signals(symbol, snapshots, swing_divergence, thresholds)

    price = None
    for label in config.timeframe_labels:
        closes = closes_by_timeframe.get(label)
        if closes is not None and len(closes) > 0:
            price = float(closes[-1])
            break

    return PairAnalysis(
        symbol=symbol,
        price=price,
        readings=readings,
        snapshots=snapshots,
        confluence=confluence,
        divergences=divergences,
        verdict=verdict,
    )
