"""
Indicator Engine

Computes the full indicator set from an OHLCV window. Pure function of the
candles; the async IndicatorEngine wrapper only adds the candle fetch.

Author: khopilot
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence, Union

import pandas as pd

from ..exceptions import InsufficientHistory
from ..models import Candle
from . import levels, momentum, trend, volatility, volume

logger = logging.getLogger("signal_radar.indicators")

MIN_CANDLES = 200
DEFAULT_CANDLE_LIMIT = 500
FIBONACCI_LOOKBACK = 20

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


@dataclass
class IndicatorSet:
    """
    Indicator output for one candle window.

    Three payload shapes, each in its own mapping:
    - series: one number per candle (RSI, SMA20, OBV, ...)
    - frames: several aligned columns per candle (MACD, Bollinger, ...)
    - levels: single structured values (Fibonacci, pivot points)

    Every series and frame has exactly `length` rows.
    """

    length: int
    close: pd.Series
    series: Dict[str, pd.Series] = field(default_factory=dict)
    frames: Dict[str, pd.DataFrame] = field(default_factory=dict)
    levels: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.series or name in self.frames or name in self.levels

    def latest(self, name: str) -> float:
        """Latest value of a scalar series."""
        values = self.series.get(name)
        if values is None or values.empty:
            raise InsufficientHistory(0, 1, what=f"{name} values")
        value = values.iloc[-1]
        if pd.isna(value):
            raise InsufficientHistory(0, 1, what=f"{name} values")
        return float(value)

    def latest_row(self, name: str) -> Dict[str, float]:
        """Latest row of a structured series, as a dict."""
        frame = self.frames.get(name)
        if frame is None or frame.empty:
            raise InsufficientHistory(0, 1, what=f"{name} values")
        row = frame.iloc[-1]
        if row.isna().any():
            raise InsufficientHistory(0, 1, what=f"{name} values")
        return {column: float(value) for column, value in row.items()}

    @property
    def last_price(self) -> float:
        return float(self.close.iloc[-1])

    def is_aligned(self) -> bool:
        """True when every series and frame matches the candle count."""
        return all(len(s) == self.length for s in self.series.values()) and all(
            len(f) == self.length for f in self.frames.values()
        )


def candles_to_frame(candles: Union[Sequence[Candle], pd.DataFrame]) -> pd.DataFrame:
    """Build an ascending OHLCV DataFrame from candles."""
    if isinstance(candles, pd.DataFrame):
        df = candles.copy()
        df.columns = [str(c).lower() for c in df.columns]
    else:
        df = pd.DataFrame(
            [
                {
                    "timestamp": c.timestamp,
                    "open": c.open,
                    "high": c.high,
                    "low": c.low,
                    "close": c.close,
                    "volume": c.volume,
                }
                for c in candles
            ],
            columns=OHLCV_COLUMNS,
        )

    if "timestamp" in df.columns:
        df = df.sort_values("timestamp")
    df = df.reset_index(drop=True)
    for column in ("open", "high", "low", "close", "volume"):
        df[column] = df[column].astype(float)
    return df


def calculate_all_indicators(candles: Union[Sequence[Candle], pd.DataFrame]) -> IndicatorSet:
    """
    Calculate every supported indicator over a candle window.

    Args:
        candles: Candles (or an OHLCV DataFrame), at least 200

    Returns:
        IndicatorSet aligned with the input candles

    Raises:
        InsufficientHistory: Fewer than 200 candles
    """
    if len(candles) < MIN_CANDLES:
        raise InsufficientHistory(len(candles), MIN_CANDLES)

    df = candles_to_frame(candles)
    high, low, close, vol = df["high"], df["low"], df["close"], df["volume"]

    series: Dict[str, pd.Series] = {}
    frames: Dict[str, pd.DataFrame] = {}

    # Trend
    for period in (20, 50, 100, 200):
        series[f"sma{period}"] = trend.sma(close, period)
    for period in (9, 12, 20, 26, 50, 200):
        series[f"ema{period}"] = trend.ema(close, period)
    frames["macd"] = trend.macd(close)
    series["adx"] = trend.adx(high, low, close)
    series["psar"] = trend.parabolic_sar(high, low)
    frames["ichimoku"] = trend.ichimoku(high, low)

    # Momentum
    series["rsi"] = momentum.rsi(close)
    frames["stochastic"] = momentum.stochastic(high, low, close)
    series["cci"] = momentum.cci(high, low, close)
    series["williams_r"] = momentum.williams_r(high, low, close)
    series["roc"] = momentum.roc(close)
    series["momentum"] = momentum.momentum(close)

    # Volatility
    frames["bollinger"] = volatility.bollinger_bands(close)
    series["atr"] = volatility.atr(high, low, close)
    frames["keltner"] = volatility.keltner_channels(high, low, close)
    frames["donchian"] = volatility.donchian_channels(high, low)

    # Volume
    series["obv"] = volume.obv(close, vol)
    series["vwap"] = volume.vwap(high, low, close, vol)
    series["mfi"] = volume.mfi(high, low, close, vol)
    series["volume_roc"] = volume.volume_roc(vol)
    series["accumulation_distribution"] = volume.accumulation_distribution(high, low, close, vol)
    series["cmf"] = volume.chaikin_money_flow(high, low, close, vol)

    # Support / resistance
    recent = df.tail(FIBONACCI_LOOKBACK)
    last = df.iloc[-1]
    level_values = {
        "fibonacci": levels.fibonacci_retracement(
            float(recent["high"].max()), float(recent["low"].min())
        ),
    }
    for kind in (levels.PIVOT_STANDARD, levels.PIVOT_FIBONACCI, levels.PIVOT_CAMARILLA):
        level_values[f"pivot_{kind}"] = levels.pivot_points(
            float(last["high"]), float(last["low"]), float(last["close"]), kind
        )

    result = IndicatorSet(
        length=len(df),
        close=close,
        series=series,
        frames=frames,
        levels=level_values,
    )

    logger.debug(
        "Calculated %d indicators over %d candles",
        len(series) + len(frames) + len(level_values),
        len(df),
    )
    return result


class IndicatorEngine:
    """Fetches a candle window and computes its indicators."""

    def __init__(self, provider, candle_limit: int = DEFAULT_CANDLE_LIMIT):
        self.provider = provider
        self.candle_limit = candle_limit

    async def calculate(self, exchange: str, symbol: str, timeframe: str = "1h") -> IndicatorSet:
        """
        Raises:
            DataUnavailable: Candle fetch failed (propagated unchanged)
            InsufficientHistory: Fewer than 200 candles returned
        """
        candles = await self.provider.fetch_candles(
            exchange, symbol, timeframe, self.candle_limit
        )
        logger.info(
            "Loaded %d candles for %s %s %s", len(candles), exchange, symbol, timeframe
        )
        return calculate_all_indicators(candles)
