"""
Liquidation Detector Configuration

Heuristic point values and thresholds for zone detection and alerting.
"""

# =============================================================================
# ORDER BOOK IMBALANCE
# =============================================================================
# ratio = bid volume / (bid + ask volume)
# < 0.4 = heavy ask pressure, longs at risk below best bid
# > 0.6 = heavy bid pressure, shorts at risk above best ask
IMBALANCE_LOW = 0.4
IMBALANCE_HIGH = 0.6
ORDER_BOOK_LONG_OFFSET = 0.98   # best bid * 0.98
ORDER_BOOK_SHORT_OFFSET = 1.02  # best ask * 1.02
ORDER_BOOK_DEPTH = 100
ORDER_BOOK_POINTS = 30
ORDER_BOOK_LIQUIDITY_FACTOR = 0.1

# =============================================================================
# FUNDING RATE
# =============================================================================
FUNDING_EXTREME = 0.001         # 0.1% per period
FUNDING_SQUEEZE = 0.002         # 0.2% = squeeze risk, drives suggestion
FUNDING_LONG_OFFSET = 0.95      # current * 0.95
FUNDING_SHORT_OFFSET = 1.05     # current * 1.05
FUNDING_POINTS = 40
FUNDING_LIQUIDITY_FACTOR = 1_000_000

# =============================================================================
# OPEN INTEREST
# =============================================================================
OI_POINTS = 20                  # applied to every zone of the cycle

MAX_CONFIDENCE = 100

# =============================================================================
# TRADING SUGGESTION
# =============================================================================
SUGGESTION_MIN_CONFIDENCE = 40
SUGGESTION_NEAR_PCT = 2.0
SUGGESTION_HIGH_CONFIDENCE = 60

# Risk ladders as zone-price multipliers: (SL1, SL2, TP1, TP2)
RISK_BUY = (0.98, 0.95, 1.015, 1.03)
RISK_SELL = (1.02, 1.05, 0.985, 0.97)
RISK_NEUTRAL_LONG = (0.97, 0.94, 1.02, 1.04)
RISK_NEUTRAL_SHORT = (1.03, 1.06, 0.98, 0.96)

# =============================================================================
# HEATMAP & MERGE
# =============================================================================
HEATMAP_RANGE = 0.10            # 10% of current price, +-5% around the zone
HEATMAP_STEPS = 20
HEATMAP_INTENSITY_DECAY = 10
HEATMAP_LIQUIDITY_BASE = 0.01
HEATMAP_LIQUIDITY_DECAY = 5

MERGE_THRESHOLD_PCT = 2.0

# =============================================================================
# MONITOR / ALERTING
# =============================================================================
RISK_CRITICAL_PCT = 1.0
RISK_HIGH_PCT = 2.0
RISK_MEDIUM_PCT = 3.0
ALERT_MAX_DISTANCE_PCT = 5.0
ALERT_MIN_CONFIDENCE = 50

# =============================================================================
# I/O & POLLING
# =============================================================================
FETCH_TIMEOUT = 10.0            # seconds per provider read
POLL_INTERVAL_SECONDS = 30
POLL_JITTER_SECONDS = 3.0
DEFAULT_EXCHANGES = ["BINANCE", "BYBIT", "OKX"]
DEFAULT_SYMBOLS = ["BTC/USDT", "ETH/USDT", "BNB/USDT", "SOL/USDT"]
