"""Tests for the Binance / alternative.me adapters using a fake HTTP session."""

import pytest
import requests

from rsi_confluence import data_collector
from rsi_confluence.config import TimeframeConfig
from rsi_confluence.data_collector import BinanceClient, DataFeedUnavailable, fetch_fear_greed


def _kline(open_time, close):
    return [open_time, "1.0", "2.0", "0.5", str(close), "100.0",
            open_time + 59_999, "150.0", 10, "50.0", "75.0", "0"]


class FakeResponse:

    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.payload


class FakeSession:
    """Replays queued responses or exceptions and records every call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(data_collector.time, "sleep", recorded.append)
    return recorded


class TestKlines:

    def test_fetch_klines_frame(self, sleeps):
        session = FakeSession(FakeResponse([_kline(0, 10.5), _kline(60_000, 11.0)]))
        df = BinanceClient(session=session).fetch_klines("BTCUSDT", "1m", 2)

        assert list(df["close"]) == [10.5, 11.0]
        assert df["open_time"].tolist() == [0, 60_000]
        assert session.calls[0][1] == {"symbol": "BTCUSDT", "interval": "1m", "limit": 2}
        assert sleeps == []

    def test_retry_with_backoff(self, sleeps):
        session = FakeSession(
            requests.exceptions.ConnectionError("reset"),
            requests.exceptions.Timeout("slow"),
            FakeResponse([_kline(0, 1.0)]),
        )
        closes = BinanceClient(session=session, max_retries=3).fetch_closes("ETHUSDT", "1h")
        assert closes.tolist() == [1.0]
        assert sleeps == [1, 2]

    def test_gives_up_after_retries(self, sleeps):
        session = FakeSession(*[FakeResponse({}, status=503)] * 3)
        with pytest.raises(DataFeedUnavailable):
            BinanceClient(session=session, max_retries=3).fetch_klines("BTCUSDT", "1h")
        assert sleeps == [1, 2]

    def test_client_error_is_not_retried(self, sleeps):
        session = FakeSession(FakeResponse({"code": -1121, "msg": "Invalid symbol."}, status=400))
        with pytest.raises(DataFeedUnavailable, match="rejected"):
            BinanceClient(session=session, max_retries=3).fetch_klines("NOPE", "1h")
        assert len(session.calls) == 1
        assert sleeps == []

    def test_rate_limit_is_retried(self, sleeps):
        session = FakeSession(FakeResponse({}, status=429), FakeResponse([_kline(0, 5.0)]))
        closes = BinanceClient(session=session, max_retries=3).fetch_closes("BTCUSDT", "1h")
        assert closes.tolist() == [5.0]
        assert sleeps == [1]

    def test_unexpected_payload(self, sleeps):
        session = FakeSession(FakeResponse({"code": -1121, "msg": "Invalid symbol."}))
        with pytest.raises(DataFeedUnavailable):
            BinanceClient(session=session).fetch_klines("NOPE", "1h")

    def test_closes_by_timeframe(self, sleeps):
        session = FakeSession(
            FakeResponse([_kline(0, 1.0), _kline(1, 2.0)]),
            FakeResponse([_kline(0, 3.0)]),
        )
        timeframes = (TimeframeConfig("1h", "1h", 2), TimeframeConfig("4h", "4h", 1))
        closes = BinanceClient(session=session).fetch_closes_by_timeframe("BTCUSDT", timeframes)
        assert closes["1h"].tolist() == [1.0, 2.0]
        assert closes["4h"].tolist() == [3.0]


class TestSentimentFeeds:

    def test_funding_rates(self):
        session = FakeSession(FakeResponse([
            {"symbol": "BTCUSDT", "lastFundingRate": "0.0001", "nextFundingTime": 1},
        ]))
        rates = BinanceClient(session=session).fetch_funding_rates()
        assert rates["BTCUSDT"].funding_rate == pytest.approx(0.01)

    def test_funding_rates_degrade_to_empty(self):
        session = FakeSession(requests.exceptions.ConnectionError("down"))
        assert BinanceClient(session=session).fetch_funding_rates() == {}

    def test_prices(self, sleeps):
        session = FakeSession(FakeResponse([{"symbol": "BTCUSDT", "price": "42000.5"}]))
        assert BinanceClient(session=session).fetch_prices() == {"BTCUSDT": 42000.5}

    def test_fear_greed(self):
        session = FakeSession(FakeResponse({"data": [
            {"value": "71", "value_classification": "Greed", "timestamp": "1700000000"},
        ]}))
        reading = fetch_fear_greed(session)
        assert reading.value == 71
        assert session.calls[0][1] == {"limit": 1}

    def test_fear_greed_unreachable(self):
        session = FakeSession(FakeResponse(None, status=500))
        assert fetch_fear_greed(session) is None

    def test_fear_greed_closes_its_own_session(self, monkeypatch):
        opened = []

        class ClosingSession(FakeSession):

            def __init__(self):
                super().__init__(FakeResponse({"data": [
                    {"value": "20", "value_classification": "Extreme Fear", "timestamp": "1"},
                ]}))
                self.closed = False
                opened.append(self)

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self.closed = True

        monkeypatch.setattr(data_collector.requests, "Session", ClosingSession)
        reading = fetch_fear_greed()
        assert reading.value == 20
        assert len(opened) == 1
        assert opened[0].closed
