"""
Market Data Service for Signal Radar

Black-box market-data provider over ccxt. Provides candles, order book,
ticker, funding rate and open interest per (exchange, symbol), every call
bounded by a timeout. Sync ccxt calls run in the default executor.

Author: khopilot
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import ccxt

from .exceptions import DataUnavailable, InvalidParameter
from .models import Candle

logger = logging.getLogger("signal_radar.data_service")


SUPPORTED_EXCHANGES = {
    "BINANCE": "binance",
    "COINBASE": "coinbase",
    "KRAKEN": "kraken",
    "BYBIT": "bybit",
    "OKX": "okx",
    "BITFINEX": "bitfinex",
    "KUCOIN": "kucoin",
    "GATEIO": "gate",
    "HUOBI": "huobi",
    "BITGET": "bitget",
}

SUPPORTED_TIMEFRAMES = ("1m", "5m", "15m", "30m", "1h", "4h", "1d")

DEFAULT_TIMEOUT = 10.0  # seconds
PRICE_CACHE_TTL = 60.0  # seconds


def validate_exchange(exchange: str) -> str:
    """Return the ccxt id for an exchange name, or raise InvalidParameter."""
    ccxt_id = SUPPORTED_EXCHANGES.get(str(exchange).upper())
    if ccxt_id is None:
        raise InvalidParameter(f"Unsupported exchange: {exchange}")
    return ccxt_id


def validate_symbol(symbol: str) -> str:
    """Symbols are BASE/QUOTE pairs, e.g. BTC/USDT."""
    parts = str(symbol).split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidParameter(f"Unsupported symbol: {symbol!r} (expected BASE/QUOTE)")
    return symbol.upper()


def validate_timeframe(timeframe: str) -> str:
    if timeframe not in SUPPORTED_TIMEFRAMES:
        raise InvalidParameter(
            f"Unsupported timeframe: {timeframe} (expected one of {', '.join(SUPPORTED_TIMEFRAMES)})"
        )
    return timeframe


def swap_symbol(symbol: str) -> str:
    """Linear perpetual symbol used for funding/OI reads (BTC/USDT -> BTC/USDT:USDT)."""
    if ":" in symbol:
        return symbol
    quote = symbol.split("/")[1]
    return f"{symbol}:{quote}"


class PriceCache:
    """
    Small TTL cache of last prices keyed by symbol.

    Clock is injected so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl: float = PRICE_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, float]] = {}

    def get(self, key: str) -> Optional[float]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, price = entry
        if self._clock() - stored_at > self.ttl:
            del self._entries[key]
            return None
        return price

    def set(self, key: str, price: float) -> None:
        self._entries[key] = (self._clock(), price)

    def clear(self) -> None:
        self._entries.clear()


class MarketDataProvider:
    """
    Market data provider backed by public ccxt exchange instances.

    Provides:
    - OHLCV candles (fatal on failure)
    - Order book and ticker (DataUnavailable on failure)
    - Funding rate and open interest (None when unsupported or failing)
    - Cached last price
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        exchanges: Optional[Dict[str, object]] = None,
        price_cache: Optional[PriceCache] = None,
    ):
        """
        Initialize MarketDataProvider.

        Args:
            timeout: Per-call timeout in seconds
            exchanges: Pre-built exchange objects keyed by exchange name
                (BINANCE, OKX, ...). Missing ones are created lazily.
            price_cache: Cache backing get_price()
        """
        self.timeout = timeout
        self._exchanges: Dict[str, object] = {
            name.upper(): ex for name, ex in (exchanges or {}).items()
        }
        self.price_cache = price_cache or PriceCache()

    def _get_exchange(self, exchange: str):
        """Get or create a public ccxt instance."""
        name = exchange.upper()
        ccxt_id = validate_exchange(name)
        if name not in self._exchanges:
            exchange_class = getattr(ccxt, ccxt_id)
            self._exchanges[name] = exchange_class({
                "enableRateLimit": True,
                "timeout": int(self.timeout * 1000),
                "options": {"defaultType": "spot"},
            })
            logger.info("Connected to %s (public)", name)
        return self._exchanges[name]

    async def _call(self, func, *args, **kwargs):
        """Run a blocking ccxt call in the executor with a timeout."""
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, lambda: func(*args, **kwargs)),
            timeout=self.timeout,
        )

    async def fetch_candles(
        self,
        exchange: str,
        symbol: str,
        timeframe: str = "1h",
        limit: int = 500,
    ) -> List[Candle]:
        """
        Fetch OHLCV candles, ascending by time.

        Raises:
            InvalidParameter: On unsupported exchange/symbol/timeframe
            DataUnavailable: On fetch failure, timeout or empty response
        """
        validate_symbol(symbol)
        validate_timeframe(timeframe)
        client = self._get_exchange(exchange)

        try:
            rows = await self._call(client.fetch_ohlcv, symbol, timeframe, None, limit)
        except asyncio.TimeoutError as e:
            raise DataUnavailable(f"Timed out fetching candles for {exchange} {symbol}") from e
        except Exception as e:
            logger.error("Error fetching OHLCV for %s %s: %s", exchange, symbol, e)
            raise DataUnavailable(f"Failed to fetch candles for {exchange} {symbol}: {e}") from e

        if not rows:
            raise DataUnavailable(f"No candles returned for {exchange} {symbol}")

        candles = [Candle.from_list(row) for row in rows]
        candles.sort(key=lambda c: c.timestamp)
        return candles

    async def fetch_order_book(
        self,
        exchange: str,
        symbol: str,
        depth: int = 100,
    ) -> Dict[str, list]:
        """
        Fetch top-of-book levels.

        Returns:
            {"bids": [(price, volume), ...], "asks": [(price, volume), ...]}
        """
        validate_symbol(symbol)
        client = self._get_exchange(exchange)

        try:
            book = await self._call(client.fetch_order_book, symbol, depth)
        except asyncio.TimeoutError as e:
            raise DataUnavailable(f"Timed out fetching order book for {exchange} {symbol}") from e
        except Exception as e:
            logger.error("Error fetching order book for %s %s: %s", exchange, symbol, e)
            raise DataUnavailable(f"Failed to fetch order book for {exchange} {symbol}: {e}") from e

        return {
            "bids": [(float(level[0]), float(level[1])) for level in book.get("bids") or []],
            "asks": [(float(level[0]), float(level[1])) for level in book.get("asks") or []],
        }

    async def fetch_ticker(self, exchange: str, symbol: str) -> Dict[str, float]:
        """
        Fetch the latest ticker.

        Returns:
            {"last_price": float}
        """
        validate_symbol(symbol)
        client = self._get_exchange(exchange)

        try:
            ticker = await self._call(client.fetch_ticker, symbol)
        except asyncio.TimeoutError as e:
            raise DataUnavailable(f"Timed out fetching ticker for {exchange} {symbol}") from e
        except Exception as e:
            logger.error("Error fetching ticker for %s %s: %s", exchange, symbol, e)
            raise DataUnavailable(f"Failed to fetch ticker for {exchange} {symbol}: {e}") from e

        last_price = ticker.get("last") or ticker.get("close")
        if not last_price:
            raise DataUnavailable(f"Ticker for {exchange} {symbol} has no last price")

        self.price_cache.set(f"{exchange.upper()}:{symbol}", float(last_price))
        return {"last_price": float(last_price)}

    async def fetch_funding_rate(self, exchange: str, symbol: str) -> Optional[float]:
        """Current funding rate of the linear perpetual, or None."""
        validate_symbol(symbol)
        client = self._get_exchange(exchange)

        if not client.has.get("fetchFundingRate"):
            return None

        try:
            data = await self._call(client.fetch_funding_rate, swap_symbol(symbol))
        except Exception as e:
            logger.warning("Funding rate unavailable for %s %s: %s", exchange, symbol, e)
            return None

        rate = data.get("fundingRate")
        return float(rate) if rate is not None else None

    async def fetch_open_interest(self, exchange: str, symbol: str) -> Optional[float]:
        """Current open interest amount of the linear perpetual, or None."""
        validate_symbol(symbol)
        client = self._get_exchange(exchange)

        if not client.has.get("fetchOpenInterest"):
            return None

        try:
            data = await self._call(client.fetch_open_interest, swap_symbol(symbol))
        except Exception as e:
            logger.warning("Open interest unavailable for %s %s: %s", exchange, symbol, e)
            return None

        amount = data.get("openInterestAmount")
        return float(amount) if amount else None

    async def get_price(self, exchange: str, symbol: str) -> float:
        """Last price, served from the TTL cache when fresh."""
        cached = self.price_cache.get(f"{exchange.upper()}:{symbol}")
        if cached is not None:
            return cached
        ticker = await self.fetch_ticker(exchange, symbol)
        return ticker["last_price"]
