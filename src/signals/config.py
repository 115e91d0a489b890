"""
Signal Fusion Configuration

Thresholds and point values for the additive signal score.
"""

# =============================================================================
# TECHNICAL SCORING
# =============================================================================
# RSI sets the initial direction
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
RSI_POINTS = 25

# MACD line vs signal line, confirmed by histogram sign
MACD_POINTS = 20

# Stochastic %K and %D both beyond the band confirm an existing direction
STOCH_OVERSOLD = 20
STOCH_OVERBOUGHT = 80
STOCH_POINTS = 15

# ADX > 25 = strong trend, either direction
ADX_STRONG_TREND = 25
ADX_POINTS = 10

# SMA20 vs SMA50 alignment
MA_ALIGNMENT_POINTS = 10

MAX_CONFIDENCE = 100

# =============================================================================
# SENTIMENT BONUS (0-15)
# =============================================================================
SENTIMENT_THRESHOLD = 0.3       # |compound| must exceed this
SENTIMENT_MAX_BONUS = 15
SENTIMENT_LOOKBACK_HOURS = 1
CONTRARIAN_NOTE_THRESHOLD = 0.1

# =============================================================================
# NEWS BONUS (0-15)
# =============================================================================
NEWS_THRESHOLD = 0.2            # |weighted mean sentiment| must exceed this
NEWS_BONUS_FACTOR = 0.15        # bonus = mean * top importance score * factor
NEWS_TOP_N = 5
NEWS_LOOKBACK_HOURS = 24

# =============================================================================
# I/O
# =============================================================================
STORE_TIMEOUT = 5.0             # seconds, sentiment/news reads
LIQUIDATION_TIMEOUT = 15.0      # seconds, zone count for the reason note
