"""
Volume indicators: OBV, VWAP, MFI, Volume ROC, A/D line, Chaikin Money Flow.
"""

import numpy as np
import pandas as pd

from .momentum import roc
from .utils import pad_with_first, pad_with_zero, safe_divide


def close_location_value(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    """CLV in [-1, 1]; a zero-range candle divides by 1."""
    price_range = (high - low).replace(0, 1.0)
    return ((close - low) - (high - close)) / price_range


def obv(close: pd.Series, volume: pd.Series) -> pd.Series:
    """On-Balance Volume, starting at 0."""
    direction = np.sign(close.diff()).fillna(0.0)
    return (direction * volume).cumsum()


def vwap(high: pd.Series, low: pd.Series, close: pd.Series, volume: pd.Series) -> pd.Series:
    """Cumulative volume-weighted average price over the window."""
    typical = (high + low + close) / 3
    cum_volume = volume.cumsum()
    weighted = safe_divide((typical * volume).cumsum(), cum_volume)
    return weighted.where(cum_volume != 0, typical)


def mfi(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    volume: pd.Series,
    period: int = 14,
) -> pd.Series:
    """Money Flow Index (volume-weighted RSI, 0-100)."""
    typical = (high + low + close) / 3
    raw_flow = typical * volume
    direction = typical.diff()

    positive = raw_flow.where(direction > 0, 0.0)
    negative = raw_flow.where(direction < 0, 0.0)
    positive.iloc[0] = np.nan
    negative.iloc[0] = np.nan

    positive_sum = positive.rolling(window=period).sum()
    negative_sum = negative.rolling(window=period).sum()

    ratio = safe_divide(positive_sum, negative_sum)
    values = 100 - (100 / (1 + ratio))
    values = values.where(negative_sum != 0, np.where(positive_sum > 0, 100.0, 50.0))
    values[positive_sum.isna()] = np.nan

    return pad_with_first(values)


def volume_roc(volume: pd.Series, period: int = 12) -> pd.Series:
    return roc(volume, period)


def accumulation_distribution(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    volume: pd.Series,
) -> pd.Series:
    return (close_location_value(high, low, close) * volume).cumsum()


def chaikin_money_flow(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    volume: pd.Series,
    period: int = 20,
) -> pd.Series:
    money_flow_volume = close_location_value(high, low, close) * volume
    flow_sum = money_flow_volume.rolling(window=period).sum()
    volume_sum = volume.rolling(window=period).sum()

    values = safe_divide(flow_sum, volume_sum)
    values[volume_sum.isna()] = np.nan
    return pad_with_zero(values)
