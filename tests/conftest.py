"""
Pytest configuration and shared fixtures.

Author: khopilot
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models import Candle


def _synthetic_candles(n: int, start_price: float = 50000.0, drift: float = 0.0, seed: int = 42):
    rng = np.random.default_rng(seed)
    returns = rng.normal(drift, 0.01, n)
    closes = start_price * np.exp(np.cumsum(returns))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    candles = []
    prev_close = start_price
    for i, close in enumerate(closes):
        open_ = prev_close
        high = max(open_, close) * (1 + abs(rng.normal(0, 0.003)))
        low = min(open_, close) * (1 - abs(rng.normal(0, 0.003)))
        candles.append(Candle(
            timestamp=start + timedelta(hours=i),
            open=float(open_),
            high=float(high),
            low=float(low),
            close=float(close),
            volume=float(rng.uniform(100, 1000)),
        ))
        prev_close = close
    return candles


@pytest.fixture
def make_candles():
    """Factory for synthetic hourly candles."""
    return _synthetic_candles


@pytest.fixture
def candles():
    """300 synthetic hourly candles around $50,000."""
    return _synthetic_candles(300)
