"""
Momentum indicators: RSI, Stochastic, CCI, Williams %R, ROC, Momentum.
"""

import numpy as np
import pandas as pd

from .utils import pad_with_first, pad_with_zero, safe_divide, wilder_smooth


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """Relative Strength Index with Wilder smoothing."""
    delta = close.diff()
    gain = delta.clip(lower=0)
    loss = -delta.clip(upper=0)

    avg_gain = wilder_smooth(gain, period)
    avg_loss = wilder_smooth(loss, period)

    rs = safe_divide(avg_gain, avg_loss)
    values = 100 - (100 / (1 + rs))
    # No losses in the window: 100 if anything was gained, flat market reads 50
    values = values.where(avg_loss != 0, np.where(avg_gain > 0, 100.0, 50.0))
    values[avg_gain.isna()] = np.nan

    return pad_with_first(values)


def stochastic(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int = 14,
    signal_period: int = 3,
) -> pd.DataFrame:
    """%K and its SMA %D."""
    highest = high.rolling(window=period).max()
    lowest = low.rolling(window=period).min()
    price_range = (highest - lowest).replace(0, 1.0)

    k = 100 * (close - lowest) / price_range
    d = k.rolling(window=signal_period).mean()
    return pd.DataFrame({"k": pad_with_first(k), "d": pad_with_first(d)})


def cci(high: pd.Series, low: pd.Series, close: pd.Series, period: int = 20) -> pd.Series:
    """Commodity Channel Index."""
    typical = (high + low + close) / 3
    mean = typical.rolling(window=period).mean()
    mean_deviation = typical.rolling(window=period).apply(
        lambda x: np.mean(np.abs(x - x.mean())), raw=True
    )
    values = safe_divide(typical - mean, 0.015 * mean_deviation)
    values[mean.isna()] = np.nan
    return pad_with_first(values)


def williams_r(high: pd.Series, low: pd.Series, close: pd.Series, period: int = 14) -> pd.Series:
    highest = high.rolling(window=period).max()
    lowest = low.rolling(window=period).min()
    price_range = (highest - lowest).replace(0, 1.0)
    return pad_with_first(-100 * (highest - close) / price_range)


def roc(values: pd.Series, period: int = 12) -> pd.Series:
    """Rate of change in percent."""
    previous = values.shift(period)
    change = 100 * safe_divide(values - previous, previous)
    change[previous.isna()] = np.nan
    return pad_with_zero(change)


def momentum(close: pd.Series, period: int = 10) -> pd.Series:
    """Current close minus the close `period` candles ago."""
    return pad_with_zero(close - close.shift(period))
