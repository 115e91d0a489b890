"""
Liquidation Monitor

Re-runs the detector for one pair, measures how far price is from each
zone and raises alerts for close, confident zones.

Distance (percent, positive while price has not reached the zone):
- LONG zone (below price): (current - zone) / zone * 100
- SHORT zone (above price): (zone - current) / current * 100

Risk: < 1% CRITICAL, < 2% HIGH, < 3% MEDIUM, else LOW
Alert: 0 < distance < 5 and confidence > 50
"""

import asyncio
import logging
from typing import List, Optional

from ..models import LiquidationAlert, LiquidationZone, RiskLevel, ZoneSide
from .config import (
    ALERT_MAX_DISTANCE_PCT,
    ALERT_MIN_CONFIDENCE,
    FETCH_TIMEOUT,
    RISK_CRITICAL_PCT,
    RISK_HIGH_PCT,
    RISK_MEDIUM_PCT,
)

logger = logging.getLogger("signal_radar.liquidation.monitor")


def zone_distance_pct(zone: LiquidationZone, current_price: float) -> float:
    if zone.side == ZoneSide.LONG:
        return (current_price - zone.price) / zone.price * 100
    return (zone.price - current_price) / current_price * 100


def classify_risk(distance_pct: float) -> RiskLevel:
    if distance_pct < RISK_CRITICAL_PCT:
        return RiskLevel.CRITICAL
    if distance_pct < RISK_HIGH_PCT:
        return RiskLevel.HIGH
    if distance_pct < RISK_MEDIUM_PCT:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def should_alert(distance_pct: float, confidence: float) -> bool:
    return 0 < distance_pct < ALERT_MAX_DISTANCE_PCT and confidence > ALERT_MIN_CONFIDENCE


def format_alert_message(zone: LiquidationZone, distance_pct: float) -> str:
    return (
        f"Potential {zone.side.value} liquidation zone detected at ${zone.price:.2f} "
        f"({distance_pct:.2f}% away). Confidence: {zone.confidence:.0f}%"
    )


def build_alerts(
    exchange: str,
    symbol: str,
    zones: List[LiquidationZone],
    current_price: float,
) -> List[LiquidationAlert]:
    """Alerts for every zone that passes the distance and confidence gate."""
    alerts = []
    for zone in zones:
        distance = zone_distance_pct(zone, current_price)
        if not should_alert(distance, zone.confidence):
            continue
        alerts.append(LiquidationAlert(
            exchange=exchange,
            symbol=symbol,
            zone=zone,
            risk_level=classify_risk(distance),
            distance_pct=distance,
            message=format_alert_message(zone, distance),
        ))
    return alerts


class LiquidationMonitor:
    """
    One monitoring pass per call.

    Collaborators:
    - detector: LiquidationZoneDetector
    - provider: market data with fetch_ticker()
    - store: persistence with save_liquidation_zone() (optional)
    - broadcaster: alert sink with async publish() (optional)
    """

    def __init__(
        self,
        detector,
        provider,
        store=None,
        broadcaster=None,
        timeout: float = FETCH_TIMEOUT,
    ):
        self.detector = detector
        self.provider = provider
        self.store = store
        self.broadcaster = broadcaster
        self.timeout = timeout

    async def _current_price(self, exchange: str, symbol: str) -> Optional[float]:
        try:
            ticker = await asyncio.wait_for(
                self.provider.fetch_ticker(exchange, symbol), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Timed out reading ticker for %s %s", exchange, symbol)
            return None
        except Exception as e:
            logger.warning("No ticker for %s %s: %s", exchange, symbol, e)
            return None
        price = ticker.get("last_price") or 0.0
        return price if price > 0 else None

    async def monitor(self, exchange: str, symbol: str) -> List[LiquidationAlert]:
        """Detect zones, build alerts, persist firing zones, publish the batch."""
        exchange = exchange.upper()
        zones = await self.detector.detect_zones(exchange, symbol)
        if not zones:
            return []

        current_price = await self._current_price(exchange, symbol)
        if current_price is None:
            return []

        alerts = build_alerts(exchange, symbol, zones, current_price)

        for alert in alerts:
            logger.info("[%s] %s %s: %s", alert.risk_level.value, exchange, symbol, alert.message)
            if self.store is not None:
                await self.store.save_liquidation_zone(alert.zone)

        if alerts and self.broadcaster is not None:
            await self.broadcaster.publish(alerts)

        return alerts
