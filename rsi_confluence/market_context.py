"""
Market Context: Funding Rates and Fear & Greed

Parses and classifies the two sentiment feeds shown alongside the RSI scan:

    Funding rate    Binance perpetual premium index, percent per 8h period
    Fear & Greed    alternative.me sentiment index, 0 (fear) to 100 (greed)

Fetching lives in data_collector; everything here is pure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


class FundingLevel(Enum):
    VERY_NEGATIVE = "very_negative"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    VERY_POSITIVE = "very_positive"


class FearGreedZone(Enum):
    EXTREME_FEAR = "extreme_fear"
    FEAR = "fear"
    NEUTRAL = "neutral"
    GREED = "greed"
    EXTREME_GREED = "extreme_greed"


@dataclass(frozen=True)
class FundingRate:
    symbol: str
    funding_rate: float        # percent
    next_funding_time: int     # epoch ms

    @property
    def level(self) -> FundingLevel:
        return classify_funding_rate(self.funding_rate)


@dataclass(frozen=True)
class FearGreedReading:
    value: int
    classification: str
    timestamp: int             # epoch ms

    @property
    def zone(self) -> FearGreedZone:
        return classify_fear_greed(self.value)


# =============================================================================
# PARSING
# =============================================================================

def parse_funding_rates(payload: Iterable[Mapping[str, Any]]) -> Dict[str, FundingRate]:
    """
    Parse a premium-index payload into funding rates keyed by symbol.

    Only USDT-quoted pairs are kept. ``lastFundingRate`` arrives as a
    fraction string and is converted to a percentage.
    """
    rates: Dict[str, FundingRate] = {}
    for item in payload:
        symbol = item.get("symbol", "")
        if not symbol.endswith("USDT"):
            continue
        try:
            rates[symbol] = FundingRate(
                symbol=symbol,
                funding_rate=float(item["lastFundingRate"]) * 100,
                next_funding_time=int(item["nextFundingTime"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed funding entry for {symbol}: {e}")
    return rates


def parse_fear_greed(payload: Optional[Mapping[str, Any]]) -> Optional[FearGreedReading]:
    """Latest reading from an alternative.me ``/fng/`` payload, or None."""
    if not isinstance(payload, Mapping):
        return None
    data = payload.get("data")
    if not data:
        return None

    item = data[0]
    try:
        return FearGreedReading(
            value=int(item["value"]),
            classification=item.get("value_classification", ""),
            timestamp=int(item["timestamp"]) * 1000,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed Fear & Greed payload: {e}")
        return None


# =============================================================================
# CLASSIFICATION
# =============================================================================

def format_funding_rate(rate: float) -> str:
    """Signed percentage with four decimals, e.g. ``+0.0100%``."""
    sign = "+" if rate >= 0 else ""
    return f"{sign}{rate:.4f}%"


def classify_funding_rate(rate: float) -> FundingLevel:
    # Negative funding pays longs, positive pays shorts
    if rate <= -0.01:
        return FundingLevel.VERY_NEGATIVE
    if rate < 0:
        return FundingLevel.NEGATIVE
    if rate >= 0.05:
        return FundingLevel.VERY_POSITIVE
    if rate >= 0.02:
        return FundingLevel.POSITIVE
    return FundingLevel.NEUTRAL


def classify_fear_greed(value: float) -> FearGreedZone:
    if value <= 25:
        return FearGreedZone.EXTREME_FEAR
    if value <= 45:
        return FearGreedZone.FEAR
    if value <= 55:
        return FearGreedZone.NEUTRAL
    if value <= 75:
        return FearGreedZone.GREED
    return FearGreedZone.EXTREME_GREED
