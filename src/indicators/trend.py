"""
Trend indicators: moving averages, MACD, ADX, Parabolic SAR, Ichimoku.
"""

import numpy as np
import pandas as pd

from .utils import pad_with_first, safe_divide, wilder_smooth
from .volatility import true_range


def sma(close: pd.Series, period: int) -> pd.Series:
    return pad_with_first(close.rolling(window=period).mean())


def ema(close: pd.Series, period: int) -> pd.Series:
    return close.ewm(span=period, adjust=False).mean()


def macd(
    close: pd.Series,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> pd.DataFrame:
    """MACD line, signal line and histogram."""
    value = ema(close, fast) - ema(close, slow)
    signal_line = value.ewm(span=signal, adjust=False).mean()
    return pd.DataFrame({
        "value": value,
        "signal": signal_line,
        "histogram": value - signal_line,
    })


def adx(high: pd.Series, low: pd.Series, close: pd.Series, period: int = 14) -> pd.Series:
    """Average Directional Index (trend strength, 0-100)."""
    up_move = high.diff()
    down_move = -low.diff()

    plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0)
    minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0)
    plus_dm.iloc[0] = np.nan
    minus_dm.iloc[0] = np.nan

    tr = true_range(high, low, close)
    tr.iloc[0] = np.nan

    atr = wilder_smooth(tr, period)
    plus_di = 100 * safe_divide(wilder_smooth(plus_dm, period), atr)
    minus_di = 100 * safe_divide(wilder_smooth(minus_dm, period), atr)

    dx = 100 * safe_divide((plus_di - minus_di).abs(), plus_di + minus_di)
    dx[atr.isna()] = np.nan

    return pad_with_first(wilder_smooth(dx, period))


def parabolic_sar(
    high: pd.Series,
    low: pd.Series,
    step: float = 0.02,
    max_step: float = 0.2,
) -> pd.Series:
    """Parabolic Stop-and-Reverse, starting in an uptrend."""
    highs = high.to_numpy(dtype=float)
    lows = low.to_numpy(dtype=float)
    n = len(highs)
    sar = np.zeros(n)
    if n == 0:
        return pd.Series(sar, index=high.index)

    bull = True
    af = step
    extreme = highs[0]
    sar[0] = lows[0]

    for i in range(1, n):
        prev = sar[i - 1]
        current = prev + af * (extreme - prev)

        if bull:
            current = min(current, lows[i - 1], lows[i - 2] if i >= 2 else lows[i - 1])
            if lows[i] < current:
                bull = False
                current = extreme
                extreme = lows[i]
                af = step
            elif highs[i] > extreme:
                extreme = highs[i]
                af = min(af + step, max_step)
        else:
            current = max(current, highs[i - 1], highs[i - 2] if i >= 2 else highs[i - 1])
            if highs[i] > current:
                bull = True
                current = extreme
                extreme = highs[i]
                af = step
            elif lows[i] < extreme:
                extreme = lows[i]
                af = min(af + step, max_step)

        sar[i] = current

    return pd.Series(sar, index=high.index)


def _midpoint(high: pd.Series, low: pd.Series, period: int) -> pd.Series:
    return (high.rolling(window=period).max() + low.rolling(window=period).min()) / 2


def ichimoku(
    high: pd.Series,
    low: pd.Series,
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> pd.DataFrame:
    """Ichimoku lines, unshifted (aligned with the candle they are computed on)."""
    tenkan = pad_with_first(_midpoint(high, low, tenkan_period))
    kijun = pad_with_first(_midpoint(high, low, kijun_period))
    return pd.DataFrame({
        "tenkan": tenkan,
        "kijun": kijun,
        "senkou_a": (tenkan + kijun) / 2,
        "senkou_b": pad_with_first(_midpoint(high, low, senkou_b_period)),
    })
