"""
Liquidation Zone Detector - Find Where the Leverage Breaks

Three evidence sources, read concurrently each cycle:
1. Order book imbalance (+30)
   - Bid share < 40% = heavy ask pressure, LONG zone at best bid * 0.98
   - Bid share > 60% = heavy bid pressure, SHORT zone at best ask * 1.02
2. Funding rate extremes (+40)
   - > +0.1% = crowded longs, LONG zone at price * 0.95
   - < -0.1% = crowded shorts, SHORT zone at price * 1.05
3. Open interest present (+20 to every zone of the cycle)

Candidates are keyed by side + price (2 decimals), capped at 100, given a
suggestion, a SL/TP ladder and a 20-point heatmap, then adjacent same-side
zones within 2% are merged.

This is a heuristic, not a model of any exchange's liquidation engine.

Author: khopilot
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..data_service import validate_exchange, validate_symbol
from ..models import HeatmapPoint, LiquidationZone, RiskLevels, Suggestion, ZoneSide
from .config import (
    FETCH_TIMEOUT,
    FUNDING_EXTREME,
    FUNDING_LIQUIDITY_FACTOR,
    FUNDING_LONG_OFFSET,
    FUNDING_POINTS,
    FUNDING_SHORT_OFFSET,
    FUNDING_SQUEEZE,
    HEATMAP_INTENSITY_DECAY,
    HEATMAP_LIQUIDITY_BASE,
    HEATMAP_LIQUIDITY_DECAY,
    HEATMAP_RANGE,
    HEATMAP_STEPS,
    IMBALANCE_HIGH,
    IMBALANCE_LOW,
    MAX_CONFIDENCE,
    MERGE_THRESHOLD_PCT,
    OI_POINTS,
    ORDER_BOOK_DEPTH,
    ORDER_BOOK_LIQUIDITY_FACTOR,
    ORDER_BOOK_LONG_OFFSET,
    ORDER_BOOK_POINTS,
    ORDER_BOOK_SHORT_OFFSET,
    RISK_BUY,
    RISK_NEUTRAL_LONG,
    RISK_NEUTRAL_SHORT,
    RISK_SELL,
    SUGGESTION_HIGH_CONFIDENCE,
    SUGGESTION_MIN_CONFIDENCE,
    SUGGESTION_NEAR_PCT,
)

logger = logging.getLogger("signal_radar.liquidation.detector")

PriceLevel = Tuple[float, float]


@dataclass
class ImbalanceSignal:
    """Order book imbalance and the candidate zone prices it implies."""

    ratio: float
    long_price: Optional[float] = None
    short_price: Optional[float] = None


@dataclass
class FundingSignal:
    """Funding rate extremity. `rate` is 0 when no funding data."""

    extreme: bool
    side: Optional[ZoneSide]
    rate: float


@dataclass
class _Candidate:
    price: float
    side: ZoneSide
    confidence: float = 0.0
    liquidity: float = 0.0
    reasoning: List[str] = field(default_factory=list)


def order_book_imbalance(
    bids: Sequence[PriceLevel],
    asks: Sequence[PriceLevel],
) -> ImbalanceSignal:
    """
    Bid share of total top-of-book volume.

    An empty book yields a balanced ratio (0.5) and no candidates.
    """
    bid_volume = sum(volume for _, volume in bids)
    ask_volume = sum(volume for _, volume in asks)
    total = bid_volume + ask_volume
    if total <= 0:
        return ImbalanceSignal(ratio=0.5)

    ratio = bid_volume / total
    signal = ImbalanceSignal(ratio=ratio)

    if ratio < IMBALANCE_LOW and bids:
        signal.long_price = bids[0][0] * ORDER_BOOK_LONG_OFFSET
    elif ratio > IMBALANCE_HIGH and asks:
        signal.short_price = asks[0][0] * ORDER_BOOK_SHORT_OFFSET

    return signal


def analyze_funding_rate(rate: Optional[float]) -> FundingSignal:
    """Classify the funding rate; None means no data."""
    if rate is None:
        return FundingSignal(extreme=False, side=None, rate=0.0)
    if rate > FUNDING_EXTREME:
        return FundingSignal(extreme=True, side=ZoneSide.LONG, rate=rate)
    if rate < -FUNDING_EXTREME:
        return FundingSignal(extreme=True, side=ZoneSide.SHORT, rate=rate)
    return FundingSignal(extreme=False, side=None, rate=rate)


def calculate_trading_suggestion(
    side: ZoneSide,
    zone_price: float,
    current_price: float,
    confidence: float,
    funding_rate: float,
) -> Suggestion:
    """
    LONG zone: near and confident -> BUY the bounce; crowded longs -> SELL.
    SHORT zone: near and confident -> SELL the reversal; crowded shorts -> BUY.
    """
    if confidence < SUGGESTION_MIN_CONFIDENCE:
        return Suggestion.NEUTRAL

    distance_pct = abs(zone_price - current_price) / current_price * 100
    near = distance_pct < SUGGESTION_NEAR_PCT and confidence > SUGGESTION_HIGH_CONFIDENCE

    if side == ZoneSide.LONG:
        if near:
            return Suggestion.BUY
        if funding_rate > FUNDING_SQUEEZE:
            return Suggestion.SELL
    else:
        if near:
            return Suggestion.SELL
        if funding_rate < -FUNDING_SQUEEZE:
            return Suggestion.BUY

    return Suggestion.NEUTRAL


def calculate_risk_levels(
    side: ZoneSide,
    zone_price: float,
    suggestion: Suggestion,
) -> RiskLevels:
    """Stop-loss / take-profit ladder around the zone price."""
    if suggestion == Suggestion.BUY:
        multipliers = RISK_BUY
    elif suggestion == Suggestion.SELL:
        multipliers = RISK_SELL
    elif side == ZoneSide.LONG:
        multipliers = RISK_NEUTRAL_LONG
    else:
        multipliers = RISK_NEUTRAL_SHORT

    sl1, sl2, tp1, tp2 = (zone_price * m for m in multipliers)
    return RiskLevels(stop_loss1=sl1, stop_loss2=sl2, take_profit1=tp1, take_profit2=tp2)


def generate_heatmap(
    zone_price: float,
    current_price: float,
    confidence: float,
) -> List[HeatmapPoint]:
    """20 levels spanning +-5% of current price around the zone, ascending."""
    price_range = current_price * HEATMAP_RANGE
    points = []

    for i in range(HEATMAP_STEPS):
        price = zone_price + (i / HEATMAP_STEPS) * price_range - price_range / 2
        distance = abs(price - zone_price) / zone_price
        intensity = max(0.0, confidence * (1 - distance * HEATMAP_INTENSITY_DECAY))
        liquidity = current_price * HEATMAP_LIQUIDITY_BASE * (1 - distance * HEATMAP_LIQUIDITY_DECAY)

        points.append(HeatmapPoint(
            price=round(price, 2),
            intensity=round(intensity, 2),
            liquidity=max(0.0, round(liquidity, 2)),
        ))

    points.sort(key=lambda p: p.price)
    return points


def build_zones(
    current_price: float,
    imbalance: Optional[ImbalanceSignal],
    funding: FundingSignal,
    open_interest: Optional[float],
    exchange: str = "",
    symbol: str = "",
) -> List[LiquidationZone]:
    """Accumulate evidence into zones (unmerged)."""
    candidates: Dict[str, _Candidate] = {}

    def candidate(side: ZoneSide, price: float) -> _Candidate:
        key = f"{side.value}_{price:.2f}"
        if key not in candidates:
            candidates[key] = _Candidate(price=price, side=side)
        return candidates[key]

    if imbalance is not None:
        if imbalance.long_price is not None and imbalance.long_price > 0:
            zone = candidate(ZoneSide.LONG, imbalance.long_price)
            zone.confidence += ORDER_BOOK_POINTS
            zone.liquidity += imbalance.long_price * ORDER_BOOK_LIQUIDITY_FACTOR
            zone.reasoning.append(
                f"Order book shows heavy ask pressure, bid share {imbalance.ratio:.0%} "
                f"(+{ORDER_BOOK_POINTS} confidence)"
            )
        if imbalance.short_price is not None and imbalance.short_price > 0:
            zone = candidate(ZoneSide.SHORT, imbalance.short_price)
            zone.confidence += ORDER_BOOK_POINTS
            zone.liquidity += imbalance.short_price * ORDER_BOOK_LIQUIDITY_FACTOR
            zone.reasoning.append(
                f"Order book shows heavy bid pressure, bid share {imbalance.ratio:.0%} "
                f"(+{ORDER_BOOK_POINTS} confidence)"
            )

    if funding.extreme:
        if funding.side == ZoneSide.LONG:
            price = current_price * FUNDING_LONG_OFFSET
            direction = "positive"
        else:
            price = current_price * FUNDING_SHORT_OFFSET
            direction = "negative"
        zone = candidate(funding.side, price)
        zone.confidence += FUNDING_POINTS
        zone.liquidity += abs(funding.rate) * FUNDING_LIQUIDITY_FACTOR
        zone.reasoning.append(
            f"Extreme {direction} funding rate {funding.rate * 100:.3f}% "
            f"(+{FUNDING_POINTS} confidence)"
        )

    if open_interest:
        for zone in candidates.values():
            zone.confidence += OI_POINTS
            zone.reasoning.append(
                f"Open interest building ({open_interest:,.0f}) (+{OI_POINTS} confidence)"
            )

    zones = []
    for data in candidates.values():
        confidence = min(data.confidence, MAX_CONFIDENCE)
        suggestion = calculate_trading_suggestion(
            data.side, data.price, current_price, confidence, funding.rate
        )
        levels = calculate_risk_levels(data.side, data.price, suggestion)

        zones.append(LiquidationZone(
            price=data.price,
            side=data.side,
            estimated_liquidity=data.liquidity,
            confidence=confidence,
            reasoning=data.reasoning,
            suggestion=suggestion,
            stop_loss1=levels.stop_loss1,
            stop_loss2=levels.stop_loss2,
            take_profit1=levels.take_profit1,
            take_profit2=levels.take_profit2,
            heatmap=generate_heatmap(data.price, current_price, confidence),
            exchange=exchange,
            symbol=symbol,
        ))

    return zones


def merge_similar_zones(zones: Sequence[LiquidationZone]) -> List[LiquidationZone]:
    """
    Single left-to-right sweep over zones sorted by price.

    Adjacent same-side zones less than 2% apart (relative to the running
    zone) collapse: prices and SL/TP averaged, liquidity summed, max
    confidence, reasoning unioned in order, first zone's heatmap kept.
    """
    if not zones:
        return []

    ordered = sorted(zones, key=lambda z: z.price)
    merged: List[LiquidationZone] = []
    current = ordered[0]

    for nxt in ordered[1:]:
        price_diff = abs(nxt.price - current.price) / current.price * 100

        if price_diff < MERGE_THRESHOLD_PCT and nxt.side == current.side:
            current = replace(
                current,
                price=(current.price + nxt.price) / 2,
                estimated_liquidity=current.estimated_liquidity + nxt.estimated_liquidity,
                confidence=max(current.confidence, nxt.confidence),
                reasoning=list(dict.fromkeys([*current.reasoning, *nxt.reasoning])),
                stop_loss1=(current.stop_loss1 + nxt.stop_loss1) / 2,
                stop_loss2=(current.stop_loss2 + nxt.stop_loss2) / 2,
                take_profit1=(current.take_profit1 + nxt.take_profit1) / 2,
                take_profit2=(current.take_profit2 + nxt.take_profit2) / 2,
            )
        else:
            merged.append(current)
            current = nxt

    merged.append(current)
    return merged


class LiquidationZoneDetector:
    """
    Runs one detection cycle per call. Stateless across calls.

    Every provider read carries a timeout and degrades to "no data";
    only a missing ticker price empties the result.
    """

    def __init__(self, provider, timeout: float = FETCH_TIMEOUT):
        self.provider = provider
        self.timeout = timeout

    async def _read(self, what: str, exchange: str, symbol: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out reading %s for %s %s", what, exchange, symbol)
        except Exception as e:
            logger.warning("Could not read %s for %s %s: %s", what, exchange, symbol, e)
        return None

    async def read_imbalance(self, exchange: str, symbol: str) -> Optional[ImbalanceSignal]:
        book = await self._read(
            "order book",
            exchange,
            symbol,
            self.provider.fetch_order_book(exchange, symbol, ORDER_BOOK_DEPTH),
        )
        if not book:
            return None
        return order_book_imbalance(book.get("bids") or [], book.get("asks") or [])

    async def detect_zones(self, exchange: str, symbol: str) -> List[LiquidationZone]:
        """
        Detect and merge liquidation zones for one pair.

        Raises:
            InvalidParameter: Unsupported exchange or symbol
        """
        validate_exchange(exchange)
        validate_symbol(symbol)

        imbalance, funding_rate, open_interest = await asyncio.gather(
            self.read_imbalance(exchange, symbol),
            self._read("funding rate", exchange, symbol,
                       self.provider.fetch_funding_rate(exchange, symbol)),
            self._read("open interest", exchange, symbol,
                       self.provider.fetch_open_interest(exchange, symbol)),
        )

        try:
            ticker = await asyncio.wait_for(
                self.provider.fetch_ticker(exchange, symbol), timeout=self.timeout
            )
            current_price = float(ticker["last_price"])
        except asyncio.TimeoutError:
            logger.warning("Timed out reading ticker for %s %s, skipping detection", exchange, symbol)
            return []
        except Exception as e:
            logger.warning("No ticker for %s %s, skipping detection: %s", exchange, symbol, e)
            return []

        if current_price <= 0:
            return []

        funding = analyze_funding_rate(funding_rate)
        zones = build_zones(
            current_price,
            imbalance,
            funding,
            open_interest,
            exchange=exchange.upper(),
            symbol=symbol,
        )
        merged = merge_similar_zones(zones)

        logger.debug(
            "%s %s: %d candidate zones, %d after merge (price %.2f)",
            exchange,
            symbol,
            len(zones),
            len(merged),
            current_price,
        )
        return merged
