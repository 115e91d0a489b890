"""
Unit tests for the Indicator Engine.

Tests alignment, warm-up padding, zero-denominator guards and levels.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.exceptions import DataUnavailable, InsufficientData, InsufficientHistory
from src.indicators import IndicatorEngine, IndicatorSet, calculate_all_indicators, candles_to_frame
from src.indicators import levels, momentum, trend, volatility, volume
from src.models import Candle


def flat_series(value: float, n: int = 60) -> pd.Series:
    return pd.Series([value] * n, dtype=float)


class TestCalculateAllIndicators:
    """Tests for calculate_all_indicators."""

    def test_all_series_match_candle_length(self, candles):
        """Every series and frame should have one row per candle."""
        result = calculate_all_indicators(candles)

        assert result.length == len(candles)
        assert result.is_aligned()
        for name, series in result.series.items():
            assert len(series) == len(candles), name
        for name, frame in result.frames.items():
            assert len(frame) == len(candles), name

    def test_no_nan_or_inf(self, candles):
        """Warm-up padding and guards should leave no NaN/inf."""
        result = calculate_all_indicators(candles)

        for name, series in result.series.items():
            assert np.isfinite(series.to_numpy()).all(), name
        for name, frame in result.frames.items():
            assert np.isfinite(frame.to_numpy()).all(), name

    def test_expected_indicator_names(self, candles):
        result = calculate_all_indicators(candles)

        expected = [
            "sma20", "sma50", "sma100", "sma200",
            "ema9", "ema12", "ema20", "ema26", "ema50", "ema200",
            "macd", "adx", "psar", "ichimoku",
            "rsi", "stochastic", "cci", "williams_r", "roc", "momentum",
            "bollinger", "atr", "keltner", "donchian",
            "obv", "vwap", "mfi", "volume_roc", "accumulation_distribution", "cmf",
            "fibonacci", "pivot_standard", "pivot_fibonacci", "pivot_camarilla",
        ]
        for name in expected:
            assert name in result, name

    def test_exactly_200_candles_is_enough(self, make_candles):
        result = calculate_all_indicators(make_candles(200))
        assert result.length == 200

    def test_fewer_than_200_candles_fails(self, make_candles):
        """199 candles should raise InsufficientHistory."""
        with pytest.raises(InsufficientHistory) as exc_info:
            calculate_all_indicators(make_candles(199))

        assert exc_info.value.available == 199
        assert exc_info.value.required == 200

    def test_insufficient_data_alias(self, make_candles):
        with pytest.raises(InsufficientData):
            calculate_all_indicators(make_candles(10))

    def test_accepts_dataframe(self, candles):
        df = candles_to_frame(candles)
        result = calculate_all_indicators(df)
        assert result.length == len(candles)

    def test_candles_sorted_ascending(self, candles):
        shuffled = list(reversed(candles))
        df = candles_to_frame(shuffled)
        assert df["timestamp"].is_monotonic_increasing

    def test_last_price_is_latest_close(self, candles):
        result = calculate_all_indicators(candles)
        assert result.last_price == pytest.approx(candles[-1].close)

    def test_bollinger_middle_is_sma20(self, candles):
        result = calculate_all_indicators(candles)
        middle = result.frames["bollinger"]["middle"]
        assert np.allclose(middle.to_numpy(), result.series["sma20"].to_numpy())

    def test_fibonacci_uses_last_20_candles(self, candles):
        result = calculate_all_indicators(candles)
        recent = candles[-20:]

        fib = result.levels["fibonacci"]
        assert fib["level_0"] == pytest.approx(max(c.high for c in recent))
        assert fib["level_1"] == pytest.approx(min(c.low for c in recent))

    def test_pivots_use_latest_candle(self, candles):
        result = calculate_all_indicators(candles)
        last = candles[-1]

        pivot = result.levels["pivot_standard"]["pivot"]
        assert pivot == pytest.approx((last.high + last.low + last.close) / 3)


class TestIndicatorSet:
    """Tests for the typed IndicatorSet container."""

    def test_latest_missing_series_raises(self):
        indicators = IndicatorSet(length=0, close=pd.Series(dtype=float))
        with pytest.raises(InsufficientHistory):
            indicators.latest("rsi")

    def test_latest_row_missing_frame_raises(self):
        indicators = IndicatorSet(length=0, close=pd.Series(dtype=float))
        with pytest.raises(InsufficientHistory):
            indicators.latest_row("macd")

    def test_latest_empty_series_raises(self):
        indicators = IndicatorSet(
            length=0,
            close=pd.Series(dtype=float),
            series={"rsi": pd.Series(dtype=float)},
        )
        with pytest.raises(InsufficientHistory):
            indicators.latest("rsi")

    def test_latest_row_returns_dict(self):
        frame = pd.DataFrame({"k": [10.0, 15.0], "d": [12.0, 14.0]})
        indicators = IndicatorSet(length=2, close=pd.Series([1.0, 2.0]), frames={"stochastic": frame})

        assert indicators.latest_row("stochastic") == {"k": 15.0, "d": 14.0}


class TestTrendIndicators:
    """Tests for moving averages and trend indicators."""

    def test_sma_value_and_padding(self):
        close = pd.Series(np.arange(1, 41, dtype=float))
        result = trend.sma(close, 20)

        # First full window: mean(1..20) = 10.5
        assert result.iloc[19] == pytest.approx(10.5)
        # Warm-up padded with the earliest real value
        assert (result.iloc[:19] == 10.5).all()
        assert result.iloc[-1] == pytest.approx(30.5)

    def test_ema_has_no_warmup(self):
        close = pd.Series(np.arange(1, 11, dtype=float))
        result = trend.ema(close, 9)
        assert result.iloc[0] == 1.0
        assert not result.isna().any()

    def test_macd_histogram(self, candles):
        close = candles_to_frame(candles)["close"]
        result = trend.macd(close)
        assert np.allclose(result["histogram"], result["value"] - result["signal"])

    def test_adx_range(self, candles):
        df = candles_to_frame(candles)
        result = trend.adx(df["high"], df["low"], df["close"])
        assert ((result >= 0) & (result <= 100)).all()

    def test_psar_below_price_in_steady_uptrend(self):
        n = 60
        close = pd.Series(np.linspace(100, 160, n))
        high = close + 0.5
        low = close - 0.5

        sar = trend.parabolic_sar(high, low)
        assert (sar.iloc[5:] < low.iloc[5:]).all()


class TestMomentumIndicators:
    """Tests for oscillators."""

    def test_rsi_flat_market_is_50(self):
        result = momentum.rsi(flat_series(100.0))
        assert (result == 50.0).all()

    def test_rsi_only_gains_is_100(self):
        close = pd.Series(np.arange(1, 61, dtype=float))
        result = momentum.rsi(close)
        assert result.iloc[-1] == 100.0

    def test_rsi_only_losses_is_0(self):
        close = pd.Series(np.arange(60, 0, -1, dtype=float))
        result = momentum.rsi(close)
        assert result.iloc[-1] == pytest.approx(0.0)

    def test_stochastic_zero_range_has_no_nan(self):
        flat = flat_series(100.0)
        result = momentum.stochastic(flat, flat, flat)
        assert not result.isna().any().any()

    def test_williams_r_range(self, candles):
        df = candles_to_frame(candles)
        result = momentum.williams_r(df["high"], df["low"], df["close"])
        assert ((result <= 0) & (result >= -100)).all()

    def test_roc_warmup_padded_with_zero(self):
        close = pd.Series(np.arange(1, 31, dtype=float))
        result = momentum.roc(close, 12)
        assert (result.iloc[:12] == 0.0).all()
        # (13 - 1) / 1 * 100
        assert result.iloc[12] == pytest.approx(1200.0)

    def test_momentum(self):
        close = pd.Series(np.arange(1, 31, dtype=float))
        result = momentum.momentum(close, 10)
        assert (result.iloc[:10] == 0.0).all()
        assert result.iloc[-1] == pytest.approx(10.0)


class TestVolatilityIndicators:
    """Tests for bands and channels."""

    def test_bollinger_ordering(self, candles):
        close = candles_to_frame(candles)["close"]
        bands = volatility.bollinger_bands(close)
        assert (bands["upper"] >= bands["middle"]).all()
        assert (bands["middle"] >= bands["lower"]).all()

    def test_atr_positive(self, candles):
        df = candles_to_frame(candles)
        result = volatility.atr(df["high"], df["low"], df["close"])
        assert (result > 0).all()

    def test_donchian_bounds(self, candles):
        df = candles_to_frame(candles)
        channels = volatility.donchian_channels(df["high"], df["low"])
        assert (channels["upper"] >= channels["lower"]).all()
        assert channels["upper"].iloc[0] == df["high"].iloc[0]


class TestVolumeIndicators:
    """Tests for volume-based indicators."""

    def test_clv_zero_range_substitutes_one(self):
        flat = flat_series(100.0, 5)
        result = volume.close_location_value(flat, flat, flat)
        assert (result == 0.0).all()

    def test_obv_accumulates_direction(self):
        close = pd.Series([10.0, 11.0, 10.5, 12.0])
        vol = pd.Series([100.0, 200.0, 50.0, 300.0])
        result = volume.obv(close, vol)
        assert result.tolist() == [0.0, 200.0, 150.0, 450.0]

    def test_vwap_constant_price(self):
        flat = flat_series(100.0, 10)
        result = volume.vwap(flat, flat, flat, pd.Series([5.0] * 10))
        assert np.allclose(result, 100.0)

    def test_vwap_zero_volume_falls_back_to_typical_price(self):
        flat = flat_series(100.0, 5)
        result = volume.vwap(flat, flat, flat, pd.Series([0.0] * 5))
        assert np.allclose(result, 100.0)

    def test_cmf_zero_volume_is_zero(self):
        flat = flat_series(100.0, 30)
        result = volume.chaikin_money_flow(flat, flat, flat, pd.Series([0.0] * 30))
        assert (result == 0.0).all()

    def test_mfi_range(self, candles):
        df = candles_to_frame(candles)
        result = volume.mfi(df["high"], df["low"], df["close"], df["volume"])
        assert ((result >= 0) & (result <= 100)).all()


class TestLevels:
    """Tests for Fibonacci retracement and pivot points."""

    def test_standard_pivot_points(self):
        """high=110, low=90, close=100 => pivot 100, r1 110, s1 90."""
        result = levels.pivot_points(110, 90, 100, "standard")

        assert result["pivot"] == 100
        assert result["r1"] == 110
        assert result["s1"] == 90
        assert result["r2"] == 120
        assert result["s2"] == 80

    def test_fibonacci_pivot_points(self):
        result = levels.pivot_points(110, 90, 100, "fibonacci")
        assert result["r1"] == pytest.approx(100 + 0.382 * 20)
        assert result["s3"] == pytest.approx(80)

    def test_camarilla_has_fourth_levels(self):
        result = levels.pivot_points(110, 90, 100, "camarilla")
        assert result["r4"] == pytest.approx(100 + 22 / 2)
        assert result["s4"] == pytest.approx(100 - 22 / 2)

    def test_unknown_pivot_kind(self):
        with pytest.raises(ValueError):
            levels.pivot_points(110, 90, 100, "woodie")

    def test_fibonacci_retracement(self):
        result = levels.fibonacci_retracement(200, 100)
        assert result["level_0"] == 200
        assert result["level_500"] == 150
        assert result["level_618"] == pytest.approx(138.2)
        assert result["level_1"] == 100


class TestIndicatorEngine:
    """Tests for the async IndicatorEngine wrapper."""

    def test_calculate_fetches_500_candles(self, candles):
        provider = MagicMock()
        provider.fetch_candles = AsyncMock(return_value=candles)
        engine = IndicatorEngine(provider)

        result = asyncio.run(engine.calculate("BINANCE", "BTC/USDT", "1h"))

        provider.fetch_candles.assert_awaited_once_with("BINANCE", "BTC/USDT", "1h", 500)
        assert result.length == len(candles)

    def test_fetch_failure_propagates_unchanged(self):
        provider = MagicMock()
        provider.fetch_candles = AsyncMock(side_effect=DataUnavailable("exchange down"))
        engine = IndicatorEngine(provider)

        with pytest.raises(DataUnavailable, match="exchange down"):
            asyncio.run(engine.calculate("BINANCE", "BTC/USDT"))
