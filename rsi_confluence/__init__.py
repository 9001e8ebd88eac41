"""Multi-timeframe RSI confluence scanner."""

__version__ = "1.0.0"
