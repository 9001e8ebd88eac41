"""Shared fixtures for the scanner test suite."""

from dataclasses import replace

import numpy as np
import pytest

from rsi_confluence.signal_engine import empty_snapshot


@pytest.fixture
def make_snapshot():
    """Build a TimeframeSnapshot with every reading absent except the overrides."""
    def _make(timeframe, **overrides):
        return replace(empty_snapshot(timeframe), **overrides)
    return _make


@pytest.fixture
def rising_closes():
    return np.arange(100.0, 350.0)


@pytest.fixture
def v_shaped_closes():
    """100 falling candles (200 -> 101) followed by 200 rising candles (102 -> 301)."""
    falling = [200.0 - i for i in range(100)]
    rising = [102.0 + j for j in range(200)]
    return np.array(falling + rising)
