"""
Signal Fusion Engine

Blends technical indicators, social sentiment and news sentiment into one
TradingSignal with a 0-100 confidence and a list of reasons.

Scoring is additive and order-sensitive:
1. RSI sets the initial direction (+25)
2. MACD sets it only if still HOLD (+20)
3. Stochastic, ADX and MA alignment only add when they agree
4. Technical confidence is capped at 100
5. Sentiment bonus (0-15) and news bonus (0-15) for an agreeing direction
6. Final confidence is capped at 100

Author: khopilot
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from ..data_service import validate_exchange, validate_symbol, validate_timeframe
from ..exceptions import PartialDataLoss
from ..indicators import IndicatorSet
from ..models import (
    NewsRecord,
    SentimentRecord,
    SignalPerformance,
    SignalType,
    TradingSignal,
    utcnow,
)
from .config import (
    ADX_POINTS,
    ADX_STRONG_TREND,
    CONTRARIAN_NOTE_THRESHOLD,
    LIQUIDATION_TIMEOUT,
    MA_ALIGNMENT_POINTS,
    MACD_POINTS,
    MAX_CONFIDENCE,
    NEWS_BONUS_FACTOR,
    NEWS_LOOKBACK_HOURS,
    NEWS_THRESHOLD,
    NEWS_TOP_N,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_POINTS,
    SENTIMENT_LOOKBACK_HOURS,
    SENTIMENT_MAX_BONUS,
    SENTIMENT_THRESHOLD,
    STOCH_OVERBOUGHT,
    STOCH_OVERSOLD,
    STOCH_POINTS,
    STORE_TIMEOUT,
)

logger = logging.getLogger("signal_radar.signals.fusion")

QUOTE_CURRENCIES = ("USDT", "USDC", "BUSD", "USD", "EUR")


@dataclass
class TechnicalScore:
    """Direction and capped confidence from the technical rules."""

    signal_type: SignalType
    confidence: float
    reasons: List[str] = field(default_factory=list)


def base_symbol(symbol: str) -> str:
    """Strip the quote currency: BTC/USDT -> BTC, ETHUSDT -> ETH."""
    symbol = symbol.upper().split(":")[0]
    if "/" in symbol:
        return symbol.split("/")[0]
    for quote in QUOTE_CURRENCIES:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)]
    return symbol


def score_technicals(indicators: IndicatorSet) -> TechnicalScore:
    """
    Run the technical rules against the latest indicator values.

    Raises:
        InsufficientHistory: A required indicator series is missing or empty
    """
    rsi = indicators.latest("rsi")
    macd = indicators.latest_row("macd")
    stoch = indicators.latest_row("stochastic")
    adx = indicators.latest("adx")
    sma20 = indicators.latest("sma20")
    sma50 = indicators.latest("sma50")

    signal_type = SignalType.HOLD
    confidence = 0.0
    reasons: List[str] = []

    # RSI
    if rsi < RSI_OVERSOLD:
        signal_type = SignalType.BUY
        confidence += RSI_POINTS
        reasons.append(f"RSI oversold ({rsi:.1f})")
    elif rsi > RSI_OVERBOUGHT:
        signal_type = SignalType.SELL
        confidence += RSI_POINTS
        reasons.append(f"RSI overbought ({rsi:.1f})")

    # MACD
    if macd["value"] > macd["signal"] and macd["histogram"] > 0:
        if signal_type == SignalType.HOLD:
            signal_type = SignalType.BUY
        confidence += MACD_POINTS
        reasons.append("MACD bullish crossover")
    elif macd["value"] < macd["signal"] and macd["histogram"] < 0:
        if signal_type == SignalType.HOLD:
            signal_type = SignalType.SELL
        confidence += MACD_POINTS
        reasons.append("MACD bearish crossover")

    # Stochastic
    if stoch["k"] < STOCH_OVERSOLD and stoch["d"] < STOCH_OVERSOLD:
        if signal_type == SignalType.BUY:
            confidence += STOCH_POINTS
        reasons.append("Stochastic oversold")
    elif stoch["k"] > STOCH_OVERBOUGHT and stoch["d"] > STOCH_OVERBOUGHT:
        if signal_type == SignalType.SELL:
            confidence += STOCH_POINTS
        reasons.append("Stochastic overbought")

    # ADX
    if adx > ADX_STRONG_TREND:
        confidence += ADX_POINTS
        reasons.append(f"Strong trend (ADX {adx:.1f} > {ADX_STRONG_TREND})")

    # Moving average alignment
    if sma20 > sma50:
        if signal_type == SignalType.BUY:
            confidence += MA_ALIGNMENT_POINTS
        reasons.append("Bullish MA alignment")
    else:
        if signal_type == SignalType.SELL:
            confidence += MA_ALIGNMENT_POINTS
        reasons.append("Bearish MA alignment")

    return TechnicalScore(
        signal_type=signal_type,
        confidence=min(confidence, MAX_CONFIDENCE),
        reasons=reasons,
    )


def _sentiment_label(compound: float) -> str:
    if compound > 0.05:
        return "bullish"
    if compound < -0.05:
        return "bearish"
    return "neutral"


def apply_sentiment(
    signal_type: SignalType,
    record: Optional[SentimentRecord],
) -> Tuple[float, List[str]]:
    """
    Sentiment bonus for an agreeing direction.

    Returns:
        (bonus 0-15, reason lines)
    """
    if record is None:
        return 0.0, []

    compound = record.compound
    bonus = 0.0
    if signal_type == SignalType.BUY and compound > SENTIMENT_THRESHOLD:
        bonus = compound * SENTIMENT_MAX_BONUS
    elif signal_type == SignalType.SELL and compound < -SENTIMENT_THRESHOLD:
        bonus = abs(compound) * SENTIMENT_MAX_BONUS

    reasons = [
        f"Social sentiment {_sentiment_label(compound)} "
        f"({compound:+.2f}, {record.volume} posts, +{bonus:.1f} pts)"
    ]
    if abs(record.inverse) > CONTRARIAN_NOTE_THRESHOLD:
        direction = "bullish" if record.inverse > 0 else "bearish"
        reasons.append(f"Contrarian warning: crowd extreme, {direction} reversal risk ({record.inverse:+.2f})")

    return bonus, reasons


def weighted_news_sentiment(news: Sequence[NewsRecord]) -> float:
    """Importance-weighted mean sentiment: sum(s_i * w_i) / sum(w_i)."""
    total_weight = sum(n.score for n in news)
    if total_weight == 0:
        return 0.0
    return sum(n.sentiment * n.score for n in news) / total_weight


def apply_news(
    signal_type: SignalType,
    news: Sequence[NewsRecord],
) -> Tuple[float, Optional[float], List[str]]:
    """
    News bonus for an agreeing direction.

    Returns:
        (bonus, weighted mean sentiment or None without news, reason lines)
    """
    if not news:
        return 0.0, None, []

    mean = weighted_news_sentiment(news)
    top = max(news, key=lambda n: n.score)

    bonus = 0.0
    if signal_type == SignalType.BUY and mean > NEWS_THRESHOLD:
        bonus = mean * top.score * NEWS_BONUS_FACTOR
    elif signal_type == SignalType.SELL and mean < -NEWS_THRESHOLD:
        bonus = abs(mean) * top.score * NEWS_BONUS_FACTOR

    reasons = [f"Top news ({mean:+.2f}, +{bonus:.1f} pts): {top.title}"]
    return bonus, mean, reasons


class SignalFusionEngine:
    """
    Orchestrates one signal generation request.

    Collaborators:
    - indicator_engine: IndicatorEngine (candle fetch + indicator math)
    - store: persistence with sentiment/news reads and signal writes
    - detector: optional LiquidationZoneDetector for the zone-count note
    """

    def __init__(
        self,
        indicator_engine,
        store,
        detector=None,
        store_timeout: float = STORE_TIMEOUT,
        liquidation_timeout: float = LIQUIDATION_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.indicator_engine = indicator_engine
        self.store = store
        self.detector = detector
        self.store_timeout = store_timeout
        self.liquidation_timeout = liquidation_timeout
        self._clock = clock

    async def _count_zones(self, exchange: str, symbol: str) -> int:
        if self.detector is None:
            return 0
        try:
            zones = await asyncio.wait_for(
                self.detector.detect_zones(exchange, symbol),
                timeout=self.liquidation_timeout,
            )
        except Exception as e:
            logger.warning("Liquidation zone count skipped for %s %s: %s", exchange, symbol, e)
            return 0
        return len(zones)

    async def _read_store(self, what: str, coro):
        """Await a store read; failures become PartialDataLoss."""
        try:
            return await asyncio.wait_for(coro, timeout=self.store_timeout)
        except PartialDataLoss:
            raise
        except asyncio.TimeoutError as e:
            raise PartialDataLoss(f"Timed out reading {what}") from e
        except Exception as e:
            raise PartialDataLoss(f"Failed to read {what}: {e}") from e

    async def fetch_sentiment(self, base: str, now: datetime) -> Optional[SentimentRecord]:
        since = now - timedelta(hours=SENTIMENT_LOOKBACK_HOURS)
        try:
            return await self._read_store(
                "sentiment", self.store.latest_sentiment(base, since)
            )
        except PartialDataLoss as e:
            logger.warning("Sentiment unavailable for %s, continuing without it: %s", base, e)
            return None

    async def fetch_news(self, base: str, now: datetime) -> List[NewsRecord]:
        since = now - timedelta(hours=NEWS_LOOKBACK_HOURS)
        try:
            news = await self._read_store(
                "news", self.store.recent_news(base, since, NEWS_TOP_N)
            )
        except PartialDataLoss as e:
            logger.warning("News unavailable for %s, continuing without it: %s", base, e)
            return []
        return list(news or [])[:NEWS_TOP_N]

    async def generate_signal(
        self,
        exchange: str,
        symbol: str,
        timeframe: str = "1h",
    ) -> TradingSignal:
        """
        Generate, persist and return a fused trading signal.

        Raises:
            InvalidParameter: Unsupported exchange/symbol/timeframe
            DataUnavailable: Candle fetch failed
            InsufficientHistory: Fewer than 200 candles or a short series
        """
        validate_exchange(exchange)
        validate_symbol(symbol)
        validate_timeframe(timeframe)
        exchange = exchange.upper()

        indicators = await self.indicator_engine.calculate(exchange, symbol, timeframe)
        technical = score_technicals(indicators)
        reasons = list(technical.reasons)

        zone_count = await self._count_zones(exchange, symbol)
        if zone_count > 0:
            reasons.append(f"{zone_count} liquidation zone(s) detected")

        now = self._clock()
        base = base_symbol(symbol)
        sentiment = await self.fetch_sentiment(base, now)
        news = await self.fetch_news(base, now)

        sentiment_bonus, sentiment_reasons = apply_sentiment(technical.signal_type, sentiment)
        news_bonus, news_mean, news_reasons = apply_news(technical.signal_type, news)
        reasons.extend(sentiment_reasons)
        reasons.extend(news_reasons)

        confidence = min(technical.confidence + sentiment_bonus + news_bonus, MAX_CONFIDENCE)

        signal = TradingSignal(
            symbol=symbol,
            exchange=exchange,
            signal_type=technical.signal_type,
            confidence=confidence,
            price=indicators.last_price,
            reasons=tuple(reasons),
            timeframe=timeframe,
            sentiment_score=sentiment.compound if sentiment else None,
            inverse_sentiment=sentiment.inverse if sentiment else None,
            news_score=news_mean,
            sentiment_weight=sentiment_bonus,
            news_weight=news_bonus,
            technical_confidence=technical.confidence,
            timestamp=now,
        )

        signal_id = await self.store.save_signal(signal)
        if signal_id is not None:
            signal = replace(signal, id=signal_id)
            await self.store.save_performance(SignalPerformance.seed(signal))

        logger.info(
            "Signal %s %s %s: %s %.1f%% (technical %.1f, sentiment +%.1f, news +%.1f)",
            exchange,
            symbol,
            timeframe,
            signal.signal_type.value,
            signal.confidence,
            technical.confidence,
            sentiment_bonus,
            news_bonus,
        )
        return signal
