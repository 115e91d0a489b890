"""
Whales - large on-chain transfers and exchange flow analysis

Components:
- ChainClient: recent large BTC/ETH transfers from free APIs (aiohttp)
- WalletRegistry: known exchange wallets
- WhaleMonitor: classify, store, alert, aggregate
"""

from .config import *
from .analysis import (
    build_whale_alerts,
    calculate_significance,
    classify_transfer,
    detect_flow_pattern,
    explorer_url,
    interpret_transfer,
    summarize_activity,
)
from .chain_client import ChainClient, ChainTransfer, parse_blockchair_eth_tx, parse_mempool_tx
from .monitor import WhaleMonitor
from .wallets import WalletRegistry

__all__ = [
    "ChainClient",
    "ChainTransfer",
    "WalletRegistry",
    "WhaleMonitor",
    "build_whale_alerts",
    "calculate_significance",
    "classify_transfer",
    "detect_flow_pattern",
    "explorer_url",
    "interpret_transfer",
    "parse_blockchair_eth_tx",
    "parse_mempool_tx",
    "summarize_activity",
]
