"""
Signal Performance Tracker

Owns the mutation of SignalPerformance records:
- Real-time P&L (negated for SELL) with running high/low
- One-week accuracy score, finalized exactly once

Accuracy score (0-100):
- Direction correct: 50 points, plus up to 30 for magnitude (|chg| * 3)
- Confidence match: up to 20 points (20 - |confidence - |chg||)

Tiers: >= 80 EXCELLENT, >= 60 GOOD, >= 40 AVERAGE, else POOR
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models import PerformanceTier, SignalPerformance, SignalType, TradingSignal, utcnow

logger = logging.getLogger("signal_radar.signals.tracker")

ACCURACY_AFTER_DAYS = 7
MONITOR_LOOKBACK_DAYS = 30
MONITOR_MAX_SIGNALS = 100
MONITOR_PAUSE = 0.1             # seconds between signals, rate-limit courtesy

DIRECTION_POINTS = 50
MAGNITUDE_MULTIPLIER = 3
MAGNITUDE_MAX_POINTS = 30
CONFIDENCE_MATCH_POINTS = 20

TIER_EXCELLENT = 80
TIER_GOOD = 60
TIER_AVERAGE = 40


def adjusted_pnl(signal_type: SignalType, entry_price: float, current_price: float) -> float:
    """Percent P&L from the signal's point of view."""
    raw = (current_price - entry_price) / entry_price * 100
    return -raw if signal_type == SignalType.SELL else raw


def accuracy_score(
    signal_type: SignalType,
    confidence: float,
    price_change: float,
) -> Tuple[bool, float]:
    """
    Score a signal against the realized one-week move.

    Returns:
        (direction_correct, score 0-100)
    """
    predicted_up = signal_type == SignalType.BUY
    actual_up = price_change > 0
    direction_correct = predicted_up == actual_up

    score = 0.0
    if direction_correct:
        score += DIRECTION_POINTS
        score += min(abs(price_change) * MAGNITUDE_MULTIPLIER, MAGNITUDE_MAX_POINTS)

    confidence_diff = abs(confidence - abs(price_change))
    score += max(0.0, CONFIDENCE_MATCH_POINTS - confidence_diff)

    return direction_correct, min(score, 100.0)


def performance_tier(score: float) -> PerformanceTier:
    if score >= TIER_EXCELLENT:
        return PerformanceTier.EXCELLENT
    if score >= TIER_GOOD:
        return PerformanceTier.GOOD
    if score >= TIER_AVERAGE:
        return PerformanceTier.AVERAGE
    return PerformanceTier.POOR


def summarize_performance(
    total_signals: int,
    performances: Sequence[SignalPerformance],
) -> Dict:
    """Totals, mean P&L and per-tier counts/mean accuracy."""
    by_tier: Dict[str, List[float]] = {}
    for perf in performances:
        if perf.performance_tier is None or perf.accuracy_score is None:
            continue
        by_tier.setdefault(perf.performance_tier.value, []).append(perf.accuracy_score)

    pnls = [p.current_pnl for p in performances if p.current_pnl is not None]

    return {
        "total_signals": total_signals,
        "average_pnl": sum(pnls) / len(pnls) if pnls else 0.0,
        "by_tier": [
            {
                "tier": tier,
                "count": len(scores),
                "avg_accuracy": sum(scores) / len(scores),
            }
            for tier, scores in sorted(by_tier.items())
        ],
    }


class SignalTracker:
    """
    Periodic job updating performance of recent signals.

    Collaborators:
    - provider: market data with fetch_ticker()
    - store: persistence with get_recent_signals/get_performance/save_performance
    """

    def __init__(
        self,
        provider,
        store,
        pause: float = MONITOR_PAUSE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.store = store
        self.pause = pause
        self._clock = clock

    async def _current_price(self, signal: TradingSignal) -> Optional[float]:
        try:
            ticker = await self.provider.fetch_ticker(signal.exchange, signal.symbol)
        except Exception as e:
            logger.warning("No price for %s %s: %s", signal.exchange, signal.symbol, e)
            return None
        price = ticker.get("last_price") or 0.0
        return price if price > 0 else None

    async def update_performance(self, signal: TradingSignal) -> Optional[SignalPerformance]:
        """Refresh current price, P&L and running high/low for one signal."""
        price = await self._current_price(signal)
        if price is None:
            return None

        pnl = adjusted_pnl(signal.signal_type, signal.price, price)
        perf = await self.store.get_performance(signal.id)

        if perf is None:
            perf = SignalPerformance(
                signal_id=signal.id,
                current_price=price,
                current_pnl=pnl,
                highest_price=price,
                lowest_price=price,
            )
        else:
            perf.current_price = price
            perf.current_pnl = pnl
            perf.highest_price = max(perf.highest_price or 0.0, price)
            perf.lowest_price = min(perf.lowest_price or price, price)
            perf.last_updated = self._clock()

        await self.store.save_performance(perf)
        return perf

    async def calculate_weekly_accuracy(
        self,
        signal: TradingSignal,
        now: Optional[datetime] = None,
    ) -> Optional[SignalPerformance]:
        """
        Finalize a signal's accuracy once it is at least a week old.

        Returns the finalized record, or None when nothing changed.
        """
        now = now or self._clock()
        if signal.timestamp > now - timedelta(days=ACCURACY_AFTER_DAYS):
            return None

        perf = await self.store.get_performance(signal.id)
        if perf is None or perf.is_finalized:
            return None

        price = await self._current_price(signal)
        if price is None:
            return None

        change = (price - signal.price) / signal.price * 100
        direction_correct, score = accuracy_score(signal.signal_type, signal.confidence, change)

        perf.week_end_price = price
        perf.price_change = change
        perf.direction_correct = direction_correct
        perf.accuracy_score = score
        perf.performance_tier = performance_tier(score)
        perf.tracking_ended = now

        await self.store.save_performance(perf)
        logger.info(
            "Accuracy for signal %s: %.0f%% (%s)",
            signal.id,
            score,
            perf.performance_tier.value,
        )
        return perf

    async def monitor_all_signals(self) -> Dict[str, int]:
        """Update every signal from the last 30 days (newest 100)."""
        now = self._clock()
        signals = await self.store.get_recent_signals(
            since=now - timedelta(days=MONITOR_LOOKBACK_DAYS),
            limit=MONITOR_MAX_SIGNALS,
        )

        updated = 0
        finalized = 0
        for signal in signals:
            try:
                if await self.update_performance(signal) is not None:
                    updated += 1
                if await self.calculate_weekly_accuracy(signal, now) is not None:
                    finalized += 1
            except Exception as e:
                logger.error("Performance update failed for signal %s: %s", signal.id, e)

            if self.pause:
                await asyncio.sleep(self.pause)

        logger.info(
            "Signal tracker: updated %d/%d signals, finalized %d",
            updated,
            len(signals),
            finalized,
        )
        return {"signals": len(signals), "updated": updated, "finalized": finalized}

    async def performance_stats(self) -> Dict:
        total = await self.store.count_signals()
        performances = await self.store.list_performances()
        return summarize_performance(total, performances)
