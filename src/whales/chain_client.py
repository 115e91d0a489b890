"""
On-Chain Transfer Client - Free API Edition

Reads recent large transfers from free public APIs:
- Mempool.space: latest Bitcoin blocks and their transactions (no auth)
- Blockchair: large Ethereum transactions (1,000 calls/day free)

Amounts are returned in coin units; USD pricing is left to the caller.
Every fetch degrades to an empty list on HTTP, timeout or parse errors.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from ..models import utcnow
from .config import (
    BITCOIN_RECENT_BLOCKS,
    BLOCKCHAIR_API,
    BLOCKCHAIR_DAILY_LIMIT,
    BLOCKCHAIR_PAGE_LIMIT,
    CACHE_TTL,
    HTTP_TIMEOUT,
    MEMPOOL_API,
    SATOSHIS_PER_BTC,
    WEI_PER_ETH,
)

logger = logging.getLogger("signal_radar.whales.chain")


@dataclass
class ChainTransfer:
    """Raw transfer as read from a chain API."""

    tx_hash: str
    chain: str
    from_address: str
    to_address: str
    amount: float  # coin units
    timestamp: datetime
    block_height: Optional[int] = None
    confirmations: int = 0


def parse_timestamp(value) -> datetime:
    """Unix seconds or ISO-ish text (Blockchair omits the zone) -> aware UTC."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return utcnow()


def parse_mempool_tx(tx: Dict[str, Any], tip_height: Optional[int] = None) -> ChainTransfer:
    """
    Mempool.space transaction -> ChainTransfer.

    Amount is the total output; sender is the first input's address and
    receiver the first output's, "Unknown" when absent (coinbase, OP_RETURN).
    """
    vin = tx.get("vin") or []
    vout = tx.get("vout") or []
    status = tx.get("status") or {}

    prevout = (vin[0].get("prevout") or {}) if vin else {}
    total_sats = sum(out.get("value", 0) for out in vout)
    block_height = status.get("block_height")

    confirmations = 0
    if tip_height is not None and block_height is not None:
        confirmations = tip_height - block_height + 1

    return ChainTransfer(
        tx_hash=tx.get("txid", ""),
        chain="bitcoin",
        from_address=prevout.get("scriptpubkey_address") or "Unknown",
        to_address=(vout[0].get("scriptpubkey_address") if vout else None) or "Unknown",
        amount=total_sats / SATOSHIS_PER_BTC,
        timestamp=parse_timestamp(status.get("block_time")),
        block_height=block_height,
        confirmations=confirmations,
    )


def parse_blockchair_eth_tx(tx: Dict[str, Any], tip_height: Optional[int] = None) -> ChainTransfer:
    """Blockchair Ethereum transaction row -> ChainTransfer (value is wei, often as text)."""
    block_height = tx.get("block_id")
    confirmations = 0
    if tip_height is not None and block_height is not None:
        confirmations = tip_height - block_height + 1

    return ChainTransfer(
        tx_hash=tx.get("hash", ""),
        chain="ethereum",
        from_address=tx.get("sender") or "Unknown",
        to_address=tx.get("recipient") or "Unknown",
        amount=int(tx.get("value") or 0) / WEI_PER_ETH,
        timestamp=parse_timestamp(tx.get("time")),
        block_height=block_height,
        confirmations=confirmations,
    )


class ChainClient:
    """
    Free API-based transfer reader (no node required).

    Bitcoin block transaction lists are cached per block hash; blocks do not
    change once mined, the TTL only bounds memory.
    """

    def __init__(
        self,
        mempool_api: str = MEMPOOL_API,
        blockchair_api: str = BLOCKCHAIR_API,
        recent_blocks: int = BITCOIN_RECENT_BLOCKS,
        cache_ttl: int = CACHE_TTL,
        blockchair_daily_limit: int = BLOCKCHAIR_DAILY_LIMIT,
        enabled: bool = True,
    ):
        self.mempool_api = mempool_api.rstrip("/")
        self.blockchair_api = blockchair_api.rstrip("/")
        self.recent_blocks = recent_blocks
        self.cache_ttl = cache_ttl
        self.blockchair_daily_limit = blockchair_daily_limit
        self.enabled = enabled

        # Rate limiting for Blockchair
        self._blockchair_calls_today: int = 0
        self._blockchair_reset_date: date = date.today()

        self._cache: Dict[str, Tuple[datetime, Any]] = {}
        self._session: Optional[aiohttp.ClientSession] = None

        if enabled:
            logger.info("ChainClient initialized: mempool=%s, blockchair=%s", mempool_api, blockchair_api)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=HTTP_TIMEOUT),
                headers={"User-Agent": "Signal-Radar/1.0"},
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _get_cache(self, key: str) -> Optional[Any]:
        if key not in self._cache:
            return None
        cached_time, value = self._cache[key]
        if (datetime.now(timezone.utc) - cached_time).total_seconds() > self.cache_ttl:
            del self._cache[key]
            return None
        return value

    def _set_cache(self, key: str, value: Any):
        self._cache[key] = (datetime.now(timezone.utc), value)

    def _check_blockchair_limit(self) -> bool:
        today = date.today()
        if today != self._blockchair_reset_date:
            self._blockchair_calls_today = 0
            self._blockchair_reset_date = today
        return self._blockchair_calls_today < self.blockchair_daily_limit

    async def _get_json(self, url: str, what: str, params: Optional[dict] = None) -> Optional[Any]:
        """GET and decode JSON; None on any failure."""
        session = await self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status == 430:
                    logger.debug("%s rate limited (free tier)", what)
                    return None
                if resp.status != 200:
                    logger.warning("%s failed: %d", what, resp.status)
                    return None
                return await resp.json()

        except asyncio.TimeoutError:
            logger.error("%s timeout", what)
            return None
        except aiohttp.ClientError as e:
            logger.error("%s error: %s", what, e)
            return None
        except Exception as e:
            logger.error("%s failed: %s", what, e)
            return None

    # ========================
    # Bitcoin (Mempool.space)
    # ========================

    async def fetch_bitcoin_transfers(self, min_btc: float) -> List[ChainTransfer]:
        """Transfers of at least `min_btc` in the most recent blocks."""
        if not self.enabled:
            return []

        blocks = await self._get_json(f"{self.mempool_api}/blocks", "Mempool.space /blocks")
        if not blocks:
            return []

        tip_height = blocks[0].get("height")
        transfers = []
        for block in blocks[: self.recent_blocks]:
            block_hash = block.get("id")
            if not block_hash:
                continue

            txs = self._get_cache(f"block_txs_{block_hash}")
            if txs is None:
                txs = await self._get_json(
                    f"{self.mempool_api}/block/{block_hash}/txs", f"Mempool.space block {block_hash[:12]}"
                )
                if txs is None:
                    continue
                self._set_cache(f"block_txs_{block_hash}", txs)

            for tx in txs:
                try:
                    transfer = parse_mempool_tx(tx, tip_height)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.debug("Skipping malformed bitcoin tx: %s", e)
                    continue
                if transfer.amount >= min_btc:
                    transfers.append(transfer)

        logger.debug("Found %d bitcoin transfers (>=%.1f BTC)", len(transfers), min_btc)
        return transfers

    # ========================
    # Ethereum (Blockchair, 1,000/day)
    # ========================

    async def fetch_ethereum_transfers(self, min_eth: float) -> List[ChainTransfer]:
        """Most recent Ethereum transactions carrying at least `min_eth`."""
        if not self.enabled:
            return []

        if not self._check_blockchair_limit():
            logger.warning("Blockchair daily limit reached (%d)", self.blockchair_daily_limit)
            return []

        min_wei = int(min_eth * WEI_PER_ETH)
        self._blockchair_calls_today += 1
        data = await self._get_json(
            f"{self.blockchair_api}/ethereum/transactions",
            "Blockchair ethereum",
            params={"q": f"value({min_wei}..)", "s": "time(desc)", "limit": BLOCKCHAIR_PAGE_LIMIT},
        )
        if not data:
            return []

        tip_height = (data.get("context") or {}).get("state")
        transfers = []
        for tx in data.get("data", []):
            try:
                transfers.append(parse_blockchair_eth_tx(tx, tip_height))
            except (TypeError, ValueError, AttributeError) as e:
                logger.debug("Skipping malformed ethereum tx: %s", e)

        logger.debug("Found %d ethereum transfers (>=%.1f ETH)", len(transfers), min_eth)
        return transfers

    async def fetch_transfers(self, chain: str, min_amount: float) -> List[ChainTransfer]:
        if chain == "bitcoin":
            return await self.fetch_bitcoin_transfers(min_amount)
        if chain == "ethereum":
            return await self.fetch_ethereum_transfers(min_amount)
        logger.warning("No transfer source for chain %s", chain)
        return []

    def get_status(self) -> dict:
        """Get client status for monitoring."""
        return {
            "enabled": self.enabled,
            "mempool_api": self.mempool_api,
            "blockchair_api": self.blockchair_api,
            "blockchair_calls_today": self._blockchair_calls_today,
            "blockchair_daily_limit": self.blockchair_daily_limit,
            "cache_ttl": self.cache_ttl,
        }
