"""
Whale Monitor Configuration

Transfer size thresholds, aggregation windows and chain endpoints.
"""

# =============================================================================
# TRANSFER FILTER
# =============================================================================
MIN_TRANSACTION_USD = 5_000_000

# Significance by USD size (>=)
SIGNIFICANCE_CRITICAL_USD = 50_000_000
SIGNIFICANCE_HIGH_USD = 20_000_000
SIGNIFICANCE_MEDIUM_USD = 10_000_000

# =============================================================================
# CHAINS
# =============================================================================
DEFAULT_CHAINS = ("bitcoin", "ethereum")

CHAIN_SYMBOLS = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
}

# USD pricing for transfer amounts comes from this exchange's spot ticker
PRICE_EXCHANGE = "BINANCE"
PRICE_QUOTE = "USDT"

EXPLORER_URLS = {
    "bitcoin": "https://blockchain.com/btc/tx/{tx_hash}",
    "ethereum": "https://etherscan.io/tx/{tx_hash}",
    "binance-smart-chain": "https://bscscan.com/tx/{tx_hash}",
    "solana": "https://solscan.io/tx/{tx_hash}",
}

# =============================================================================
# ENDPOINTS (free tiers)
# =============================================================================
MEMPOOL_API = "https://mempool.space/api"
BLOCKCHAIR_API = "https://api.blockchair.com"

BITCOIN_RECENT_BLOCKS = 3
BLOCKCHAIR_PAGE_LIMIT = 25
BLOCKCHAIR_DAILY_LIMIT = 1000
HTTP_TIMEOUT = 15               # seconds
CACHE_TTL = 60                  # seconds

SATOSHIS_PER_BTC = 100_000_000
WEI_PER_ETH = 10 ** 18

# =============================================================================
# AGGREGATION
# =============================================================================
TIMEFRAME_HOURS = {
    "1h": 1,
    "24h": 24,
    "7d": 7 * 24,
}
AGGREGATE_SYMBOLS = ("BTC", "ETH", "BNB", "SOL", "XRP")
PATTERN_HOURS = 24

# net flow / (inflow + outflow) beyond +/-0.3 reads as a directional bias
PATTERN_RATIO_THRESHOLD = 0.3

# =============================================================================
# POLLING
# =============================================================================
POLL_INTERVAL_SECONDS = 60
AGGREGATE_INTERVAL_SECONDS = 300
