"""
Market Data Acquisition for the RSI Scanner

Thin adapter over the public Binance REST endpoints and the alternative.me
Fear & Greed index. Every other module works on plain closes and never
touches the network.

ENDPOINTS
    Spot klines         /api/v3/klines              OHLCV candles per interval
    Spot prices         /api/v3/ticker/price        last price for every pair
    Premium index       /fapi/v1/premiumIndex       perpetual funding rates
    Fear & Greed        api.alternative.me/fng/     daily sentiment index

FAILURE MODEL
    Kline fetches retry with exponential backoff (1s, 2s, 4s ...) and raise
    DataFeedUnavailable once retries are exhausted. A 4xx other than 429 fails
    at once. The sentiment feeds are optional context: they log a warning and
    return an empty result.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd
import requests

from rsi_confluence.config import DEFAULT_CONFIG, TimeframeConfig
from rsi_confluence.market_context import (
    FearGreedReading,
    FundingRate,
    parse_fear_greed,
    parse_funding_rates,
)

logger = logging.getLogger(__name__)


BINANCE_SPOT_URL = "https://api.binance.com/api/v3"
BINANCE_FUTURES_URL = "https://fapi.binance.com/fapi/v1"
FEAR_GREED_URL = "https://api.alternative.me/fng/"

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_volume", "trades",
    "taker_buy_base", "taker_buy_quote", "ignore",
]
NUMERIC_COLUMNS = ["open", "high", "low", "close", "volume", "quote_volume"]


class DataFeedUnavailable(RuntimeError):
    """Raised when upstream market data cannot be reached after retries."""


class BinanceClient:
    """
    Binance market data client with retry logic.

    A ``requests.Session`` can be injected so tests can substitute a fake
    transport.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        timeout: int = 10
    ):
        """
        Initialize the client.

        Args:
            session: HTTP session; a new one is created when omitted
            max_retries: Maximum attempts per kline request
            timeout: Request timeout in seconds
        """
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.timeout = timeout

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                # client errors other than rate limiting will not succeed on retry
                if status is not None and status < 500 and status != 429:
                    raise DataFeedUnavailable(f"{url} rejected the request: {e}") from e
                self._backoff(url, attempt, e)
            except (requests.exceptions.RequestException, ValueError) as e:
                self._backoff(url, attempt, e)
        raise DataFeedUnavailable(f"{url} unavailable: no attempts made")

    def _backoff(self, url: str, attempt: int, error: Exception) -> None:
        if attempt >= self.max_retries - 1:
            raise DataFeedUnavailable(
                f"{url} unavailable after {self.max_retries} attempts: {error}"
            ) from error
        wait_time = 2 ** attempt
        logger.warning(f"Fetch failed: {error}, retrying in {wait_time}s...")
        time.sleep(wait_time)

    # -------------------------------------------------------------------------
    # Candles
    # -------------------------------------------------------------------------

    def fetch_klines(self, symbol: str, interval: str, limit: int = 250) -> pd.DataFrame:
        """
        Fetch OHLCV candles for one pair and interval.

        Returns:
            DataFrame with float OHLCV columns and integer open/close times,
            oldest candle first

        Raises:
            DataFeedUnavailable: If the request keeps failing or the payload
                is not a list of candles
        """
        data = self._get_json(
            f"{BINANCE_SPOT_URL}/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        if not isinstance(data, list):
            raise DataFeedUnavailable(f"Unexpected kline payload for {symbol} {interval}")

        df = pd.DataFrame(data, columns=KLINE_COLUMNS[:len(data[0])] if data else KLINE_COLUMNS)
        for col in NUMERIC_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce")
        for col in ("open_time", "close_time"):
            if col in df.columns:
                df[col] = df[col].astype("int64")
        df = df.dropna(subset=["close"]).reset_index(drop=True)

        logger.debug(f"Fetched {len(df)} {interval} candles for {symbol}")
        return df

    def fetch_closes(self, symbol: str, interval: str, limit: int = 250) -> np.ndarray:
        return self.fetch_klines(symbol, interval, limit)["close"].to_numpy(dtype=float)

    def fetch_closes_by_timeframe(
        self,
        symbol: str,
        timeframes: Iterable[TimeframeConfig] = DEFAULT_CONFIG.timeframes
    ) -> Dict[str, np.ndarray]:
        """Closes for every configured timeframe, keyed by timeframe label."""
        closes = {
            tf.label: self.fetch_closes(symbol, tf.interval, tf.limit)
            for tf in timeframes
        }
        logger.info(f"Fetched {symbol}: {', '.join(f'{k}={len(v)}' for k, v in closes.items())}")
        return closes

    # -------------------------------------------------------------------------
    # Prices and sentiment
    # -------------------------------------------------------------------------

    def fetch_prices(self) -> Dict[str, float]:
        """Last traded price for every pair; empty on failure."""
        try:
            data = self._get_json(f"{BINANCE_SPOT_URL}/ticker/price")
        except DataFeedUnavailable as e:
            logger.warning(f"Price ticker unavailable: {e}")
            return {}
        return {item["symbol"]: float(item["price"]) for item in data if "price" in item}

    def fetch_funding_rates(self) -> Dict[str, FundingRate]:
        """USDT perpetual funding rates keyed by symbol; empty on failure."""
        try:
            response = self.session.get(f"{BINANCE_FUTURES_URL}/premiumIndex", timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Failed to fetch funding rates: {e}")
            return {}
        if not isinstance(payload, list):
            logger.warning("Unexpected premium index payload")
            return {}
        return parse_funding_rates(payload)


def fetch_fear_greed(
    session: Optional[requests.Session] = None,
    timeout: int = 10
) -> Optional[FearGreedReading]:
    """Latest Fear & Greed reading, or None when the feed is unreachable."""
    if session is not None:
        return _fetch_fear_greed(session, timeout)
    with requests.Session() as http:
        return _fetch_fear_greed(http, timeout)


def _fetch_fear_greed(http: requests.Session, timeout: int) -> Optional[FearGreedReading]:
    try:
        response = http.get(FEAR_GREED_URL, params={"limit": 1}, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Failed to fetch Fear & Greed: {e}")
        return None
    return parse_fear_greed(payload)
