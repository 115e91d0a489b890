"""
Volatility indicators: Bollinger Bands, ATR, Keltner and Donchian channels.
"""

import pandas as pd

from .utils import pad_with_first, wilder_smooth


def true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    prev_close = close.shift()
    tr = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()],
        axis=1,
    ).max(axis=1)
    return tr


def atr(high: pd.Series, low: pd.Series, close: pd.Series, period: int = 14) -> pd.Series:
    """Average True Range with Wilder smoothing."""
    tr = true_range(high, low, close)
    tr.iloc[0] = float("nan")
    return pad_with_first(wilder_smooth(tr, period))


def bollinger_bands(close: pd.Series, period: int = 20, std_dev: float = 2.0) -> pd.DataFrame:
    middle = close.rolling(window=period).mean()
    deviation = close.rolling(window=period).std(ddof=0)
    return pd.DataFrame({
        "upper": pad_with_first(middle + std_dev * deviation),
        "middle": pad_with_first(middle),
        "lower": pad_with_first(middle - std_dev * deviation),
    })


def keltner_channels(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int = 20,
    multiplier: float = 2.0,
) -> pd.DataFrame:
    """EMA(period) middle line, bands at +/- multiplier * ATR(period)."""
    middle = close.ewm(span=period, adjust=False).mean()
    band = atr(high, low, close, period) * multiplier
    return pd.DataFrame({
        "upper": middle + band,
        "middle": middle,
        "lower": middle - band,
    })


def donchian_channels(high: pd.Series, low: pd.Series, period: int = 20) -> pd.DataFrame:
    # min_periods=1: the warm-up window uses whatever candles exist so far
    upper = high.rolling(window=period, min_periods=1).max()
    lower = low.rolling(window=period, min_periods=1).min()
    return pd.DataFrame({
        "upper": upper,
        "middle": (upper + lower) / 2,
        "lower": lower,
    })
