"""Warm-up padding and smoothing helpers shared by the indicator modules."""

import numpy as np
import pandas as pd


def _clean(series: pd.Series) -> pd.Series:
    return series.astype(float).replace([np.inf, -np.inf], np.nan)


def pad_with_first(series: pd.Series) -> pd.Series:
    """Left-pad the warm-up window with the earliest real value."""
    return _clean(series).bfill().ffill().fillna(0.0)


def pad_with_zero(series: pd.Series) -> pd.Series:
    """Left-pad the warm-up window with 0."""
    return _clean(series).fillna(0.0)


def safe_divide(numerator: pd.Series, denominator: pd.Series, default: float = 0.0) -> pd.Series:
    """Element-wise division that yields `default` where the denominator is 0."""
    denominator = denominator.astype(float)
    result = numerator.astype(float) / denominator.where(denominator != 0)
    return result.where(denominator != 0, default)


def wilder_smooth(values: pd.Series, period: int) -> pd.Series:
    """
    Wilder's running average, seeded with the simple mean of the first
    `period` valid values. Output is NaN until the seed is available.
    """
    arr = values.to_numpy(dtype=float)
    out = np.full(len(arr), np.nan)

    valid = np.flatnonzero(~np.isnan(arr))
    if len(valid) == 0:
        return pd.Series(out, index=values.index)

    first = valid[0]
    seed_end = first + period
    if seed_end > len(arr):
        return pd.Series(out, index=values.index)

    out[seed_end - 1] = np.nanmean(arr[first:seed_end])
    for i in range(seed_end, len(arr)):
        current = arr[i] if not np.isnan(arr[i]) else 0.0
        out[i] = (out[i - 1] * (period - 1) + current) / period

    return pd.Series(out, index=values.index)
