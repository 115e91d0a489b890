"""
Liquidation - heuristic liquidation zones and proximity alerts

Components:
- LiquidationZoneDetector: order book + funding + OI -> merged zones
- LiquidationMonitor: distance, risk tier, alerts
"""

from .config import *
from .monitor import (
    LiquidationMonitor,
    build_alerts,
    classify_risk,
    format_alert_message,
    should_alert,
    zone_distance_pct,
)
from .zone_detector import (
    FundingSignal,
    ImbalanceSignal,
    LiquidationZoneDetector,
    analyze_funding_rate,
    build_zones,
    calculate_risk_levels,
    calculate_trading_suggestion,
    generate_heatmap,
    merge_similar_zones,
    order_book_imbalance,
)

__all__ = [
    "FundingSignal",
    "ImbalanceSignal",
    "LiquidationMonitor",
    "LiquidationZoneDetector",
    "analyze_funding_rate",
    "build_alerts",
    "build_zones",
    "calculate_risk_levels",
    "calculate_trading_suggestion",
    "classify_risk",
    "format_alert_message",
    "generate_heatmap",
    "merge_similar_zones",
    "order_book_imbalance",
    "should_alert",
    "zone_distance_pct",
]
