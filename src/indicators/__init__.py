"""
Indicator Engine - technical indicators over OHLCV windows

Components:
- trend: SMA, EMA, MACD, ADX, Parabolic SAR, Ichimoku
- momentum: RSI, Stochastic, CCI, Williams %R, ROC, Momentum
- volatility: Bollinger, ATR, Keltner, Donchian
- volume: OBV, VWAP, MFI, Volume ROC, A/D, CMF
- levels: Fibonacci retracement, pivot points
- engine: IndicatorSet and calculate_all_indicators
"""

from .engine import (
    MIN_CANDLES,
    IndicatorEngine,
    IndicatorSet,
    calculate_all_indicators,
    candles_to_frame,
)

__all__ = [
    "MIN_CANDLES",
    "IndicatorEngine",
    "IndicatorSet",
    "calculate_all_indicators",
    "candles_to_frame",
]
