"""
Unit tests for the Market Data Service.

ccxt clients are replaced with MagicMocks, no network access.
"""

import asyncio
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data_service import (
    MarketDataProvider,
    PriceCache,
    swap_symbol,
    validate_exchange,
    validate_symbol,
    validate_timeframe,
)
from src.exceptions import DataUnavailable, InvalidParameter


def ohlcv_rows(n: int, start_ms: int = 1_704_067_200_000):
    return [
        [start_ms + i * 3_600_000, 100.0 + i, 101.0 + i, 99.0 + i, 100.5 + i, 10.0]
        for i in range(n)
    ]


@pytest.fixture
def client():
    """Fake ccxt exchange."""
    mock = MagicMock()
    mock.has = {"fetchFundingRate": True, "fetchOpenInterest": True}
    mock.fetch_ohlcv.return_value = list(reversed(ohlcv_rows(5)))
    mock.fetch_order_book.return_value = {
        "bids": [[100.0, 1.5], [99.5, 2.0]],
        "asks": [[100.5, 1.0]],
    }
    mock.fetch_ticker.return_value = {"last": 100.25, "close": 100.0}
    mock.fetch_funding_rate.return_value = {"fundingRate": 0.0012}
    mock.fetch_open_interest.return_value = {"openInterestAmount": 12_345.0}
    return mock


@pytest.fixture
def provider(client):
    return MarketDataProvider(timeout=1.0, exchanges={"binance": client})


class TestValidation:
    def test_exchange_is_case_insensitive(self):
        assert validate_exchange("binance") == "binance"
        assert validate_exchange("GATEIO") == "gate"

    def test_unknown_exchange(self):
        with pytest.raises(InvalidParameter):
            validate_exchange("mtgox")

    @pytest.mark.parametrize("symbol", ["BTCUSDT", "BTC/", "/USDT", "BTC/USDT/X", ""])
    def test_bad_symbols(self, symbol):
        with pytest.raises(InvalidParameter):
            validate_symbol(symbol)

    def test_symbol_uppercased(self):
        assert validate_symbol("eth/usdt") == "ETH/USDT"

    def test_timeframe(self):
        assert validate_timeframe("4h") == "4h"
        with pytest.raises(InvalidParameter):
            validate_timeframe("2h")

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            validate_exchange("nope")

    def test_swap_symbol(self):
        assert swap_symbol("BTC/USDT") == "BTC/USDT:USDT"
        assert swap_symbol("BTC/USDT:USDT") == "BTC/USDT:USDT"


class TestPriceCache:
    """TTL behaviour with an injected clock."""

    def test_hit_within_ttl(self):
        now = [0.0]
        cache = PriceCache(ttl=60, clock=lambda: now[0])
        cache.set("BINANCE:BTC/USDT", 50_000.0)

        now[0] = 59.0
        assert cache.get("BINANCE:BTC/USDT") == 50_000.0

    def test_expires_after_ttl(self):
        now = [0.0]
        cache = PriceCache(ttl=60, clock=lambda: now[0])
        cache.set("BINANCE:BTC/USDT", 50_000.0)

        now[0] = 61.0
        assert cache.get("BINANCE:BTC/USDT") is None

    def test_miss(self):
        assert PriceCache().get("nope") is None

    def test_clear(self):
        cache = PriceCache()
        cache.set("k", 1.0)
        cache.clear()
        assert cache.get("k") is None


class TestMarketDataProvider:
    """Tests for the ccxt-backed provider."""

    def test_candles_sorted_ascending(self, provider, client):
        candles = asyncio.run(provider.fetch_candles("BINANCE", "BTC/USDT", "1h", 5))

        assert len(candles) == 5
        assert [c.close for c in candles] == [100.5, 101.5, 102.5, 103.5, 104.5]
        assert candles[0].timestamp < candles[-1].timestamp
        client.fetch_ohlcv.assert_called_once_with("BTC/USDT", "1h", None, 5)

    def test_candle_failure_is_data_unavailable(self, provider, client):
        client.fetch_ohlcv.side_effect = RuntimeError("exchange down")

        with pytest.raises(DataUnavailable):
            asyncio.run(provider.fetch_candles("BINANCE", "BTC/USDT"))

    def test_empty_candles_is_data_unavailable(self, provider, client):
        client.fetch_ohlcv.return_value = []

        with pytest.raises(DataUnavailable):
            asyncio.run(provider.fetch_candles("BINANCE", "BTC/USDT"))

    def test_candle_timeout(self, client):
        client.fetch_ohlcv.side_effect = lambda *args: time.sleep(0.5) or ohlcv_rows(1)
        provider = MarketDataProvider(timeout=0.05, exchanges={"BINANCE": client})

        with pytest.raises(DataUnavailable):
            asyncio.run(provider.fetch_candles("BINANCE", "BTC/USDT"))

    def test_invalid_timeframe_before_io(self, provider, client):
        with pytest.raises(InvalidParameter):
            asyncio.run(provider.fetch_candles("BINANCE", "BTC/USDT", "7m"))
        client.fetch_ohlcv.assert_not_called()

    def test_order_book_levels(self, provider):
        book = asyncio.run(provider.fetch_order_book("BINANCE", "BTC/USDT", 50))

        assert book["bids"] == [(100.0, 1.5), (99.5, 2.0)]
        assert book["asks"] == [(100.5, 1.0)]

    def test_ticker_fills_price_cache(self, provider, client):
        ticker = asyncio.run(provider.fetch_ticker("binance", "BTC/USDT"))

        assert ticker == {"last_price": 100.25}
        assert asyncio.run(provider.get_price("BINANCE", "BTC/USDT")) == 100.25
        assert client.fetch_ticker.call_count == 1

    def test_ticker_without_price(self, provider, client):
        client.fetch_ticker.return_value = {"last": None, "close": None}

        with pytest.raises(DataUnavailable):
            asyncio.run(provider.fetch_ticker("BINANCE", "BTC/USDT"))

    def test_funding_rate_uses_swap_symbol(self, provider, client):
        rate = asyncio.run(provider.fetch_funding_rate("BINANCE", "BTC/USDT"))

        assert rate == pytest.approx(0.0012)
        client.fetch_funding_rate.assert_called_once_with("BTC/USDT:USDT")

    def test_funding_rate_unsupported(self, provider, client):
        client.has = {"fetchFundingRate": False}
        assert asyncio.run(provider.fetch_funding_rate("BINANCE", "BTC/USDT")) is None

    def test_funding_rate_failure_is_none(self, provider, client):
        client.fetch_funding_rate.side_effect = RuntimeError("not a swap market")
        assert asyncio.run(provider.fetch_funding_rate("BINANCE", "BTC/USDT")) is None

    def test_open_interest(self, provider, client):
        assert asyncio.run(provider.fetch_open_interest("BINANCE", "BTC/USDT")) == 12_345.0

        client.fetch_open_interest.return_value = {"openInterestAmount": 0}
        assert asyncio.run(provider.fetch_open_interest("BINANCE", "BTC/USDT")) is None
