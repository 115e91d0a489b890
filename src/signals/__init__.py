"""
Signals - fused trading signals and their performance tracking

Components:
- SentimentAggregator: VADER batch sentiment + contrarian score
- SignalFusionEngine: technicals + sentiment + news -> TradingSignal
- SignalTracker: P&L updates and one-week accuracy scoring
"""

from .config import *
from .sentiment_analyzer import SentimentAggregator, clean_text, coin_name, inverse_sentiment
from .signal_fusion import (
    SignalFusionEngine,
    TechnicalScore,
    apply_news,
    apply_sentiment,
    base_symbol,
    score_technicals,
)
from .signal_tracker import SignalTracker, accuracy_score, adjusted_pnl, performance_tier

__all__ = [
    "SentimentAggregator",
    "SignalFusionEngine",
    "SignalTracker",
    "TechnicalScore",
    "accuracy_score",
    "adjusted_pnl",
    "apply_news",
    "apply_sentiment",
    "base_symbol",
    "clean_text",
    "coin_name",
    "inverse_sentiment",
    "performance_tier",
    "score_technicals",
]
