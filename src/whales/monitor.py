"""
Whale Monitor

One pass per call: read recent large transfers for each chain, price them
in USD, drop small or already stored ones, identify exchange wallets,
classify and store the rest, then alert on HIGH/CRITICAL transfers.

Aggregation jobs turn stored transfers into per-window exchange flow
summaries and an accumulation/distribution reading.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ..exceptions import InvalidParameter
from ..models import WhaleActivitySummary, WhaleAlert, WhalePattern, WhaleTransaction, utcnow
from .analysis import (
    build_whale_alerts,
    calculate_significance,
    classify_transfer,
    detect_flow_pattern,
    format_usd_millions,
    summarize_activity,
)
from .chain_client import ChainTransfer
from .config import (
    AGGREGATE_SYMBOLS,
    CHAIN_SYMBOLS,
    DEFAULT_CHAINS,
    HTTP_TIMEOUT,
    MIN_TRANSACTION_USD,
    PATTERN_HOURS,
    PRICE_EXCHANGE,
    PRICE_QUOTE,
    TIMEFRAME_HOURS,
)
from .wallets import WalletRegistry

logger = logging.getLogger("signal_radar.whales.monitor")

SEEN_HASHES_MAX = 10_000


class WhaleMonitor:
    """
    Collaborators:
    - client: ChainClient (fetch_transfers)
    - provider: market data with get_price() for USD conversion
    - store: persistence with the whale_* methods (optional for monitoring,
      required for aggregation)
    - broadcaster: alert sink with async publish() (optional)
    """

    def __init__(
        self,
        client,
        provider,
        store=None,
        broadcaster=None,
        registry: Optional[WalletRegistry] = None,
        chains: Iterable[str] = DEFAULT_CHAINS,
        min_usd: float = MIN_TRANSACTION_USD,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.client = client
        self.provider = provider
        self.store = store
        self.broadcaster = broadcaster
        self.registry = registry or WalletRegistry()
        self.chains = list(chains)
        self.min_usd = min_usd
        self.timeout = timeout
        # Insertion-ordered, oldest evicted first
        self._seen: Dict[str, None] = {}

    async def _usd_price(self, symbol: str) -> Optional[float]:
        pair = f"{symbol}/{PRICE_QUOTE}"
        try:
            price = await asyncio.wait_for(
                self.provider.get_price(PRICE_EXCHANGE, pair), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Timed out pricing %s", pair)
            return None
        except Exception as e:
            logger.warning("No USD price for %s: %s", pair, e)
            return None
        return price if price and price > 0 else None

    def _remember(self, tx_hash: str) -> None:
        self._seen[tx_hash] = None
        if len(self._seen) > SEEN_HASHES_MAX:
            del self._seen[next(iter(self._seen))]

    async def _is_known(self, tx_hash: str) -> bool:
        if tx_hash in self._seen:
            return True
        if self.store is not None and await self.store.has_whale_transaction(tx_hash):
            self._remember(tx_hash)
            return True
        return False

    def _classify(self, transfer: ChainTransfer, symbol: str, amount_usd: float) -> WhaleTransaction:
        from_wallet = self.registry.identify(transfer.from_address, transfer.chain)
        to_wallet = self.registry.identify(transfer.to_address, transfer.chain)

        return WhaleTransaction(
            tx_hash=transfer.tx_hash,
            chain=transfer.chain,
            symbol=symbol,
            amount=transfer.amount,
            amount_usd=amount_usd,
            from_address=transfer.from_address,
            to_address=transfer.to_address,
            timestamp=transfer.timestamp,
            transfer_type=classify_transfer(from_wallet, to_wallet),
            significance=calculate_significance(amount_usd),
            from_owner=from_wallet.owner if from_wallet else None,
            from_type=from_wallet.owner_type if from_wallet else None,
            to_owner=to_wallet.owner if to_wallet else None,
            to_type=to_wallet.owner_type if to_wallet else None,
            block_height=transfer.block_height,
            confirmations=transfer.confirmations,
        )

    async def monitor_transactions(self) -> List[WhaleTransaction]:
        """New transfers above the USD floor, classified and stored."""
        new_transactions = []

        for chain in self.chains:
            symbol = CHAIN_SYMBOLS.get(chain)
            if symbol is None:
                logger.warning("Unsupported chain %s", chain)
                continue

            price = await self._usd_price(symbol)
            if price is None:
                continue

            transfers = await self.client.fetch_transfers(chain, self.min_usd / price)
            for transfer in transfers:
                amount_usd = transfer.amount * price
                if amount_usd < self.min_usd:
                    continue
                if await self._is_known(transfer.tx_hash):
                    continue

                tx = self._classify(transfer, symbol, amount_usd)
                if self.store is not None:
                    tx.id = await self.store.save_whale_transaction(tx)
                self._remember(tx.tx_hash)
                new_transactions.append(tx)

                logger.info(
                    "Whale %s transfer detected: %s - %s",
                    symbol, format_usd_millions(amount_usd), tx.transfer_type.value,
                )

        return new_transactions

    def evaluate_alerts(self, transactions: Iterable[WhaleTransaction]) -> List[WhaleAlert]:
        return build_whale_alerts(transactions)

    async def run(self) -> List[WhaleAlert]:
        """Monitor, alert, publish, and mark alerted transfers."""
        transactions = await self.monitor_transactions()
        if not transactions:
            return []

        alerts = self.evaluate_alerts(transactions)
        for alert in alerts:
            logger.info("[%s] %s", alert.risk_level.value, alert.message)

        if alerts and self.broadcaster is not None:
            await self.broadcaster.publish(alerts)

        for alert in alerts:
            alert.transaction.alert_sent = True
        if alerts and self.store is not None:
            await self.store.mark_whales_alerted([a.transaction.tx_hash for a in alerts])

        return alerts

    async def aggregate_activity(
        self,
        symbol: str,
        timeframe: str,
        now: Optional[datetime] = None,
    ) -> WhaleActivitySummary:
        """
        Summarize and upsert one (symbol, timeframe) window.

        The window end is truncated to the minute so re-runs within the
        same minute update the same summary row.
        """
        hours = TIMEFRAME_HOURS.get(timeframe)
        if hours is None:
            raise InvalidParameter(
                f"Unsupported timeframe {timeframe!r}, expected one of {sorted(TIMEFRAME_HOURS)}"
            )
        if self.store is None:
            raise InvalidParameter("Whale aggregation needs a store")

        period_end = (now or utcnow()).replace(second=0, microsecond=0)
        period_start = period_end - timedelta(hours=hours)

        transactions = await self.store.get_whale_transactions(symbol, period_start, period_end)
        summary = summarize_activity(transactions, symbol, timeframe, period_start, period_end)
        summary.id = await self.store.save_whale_summary(summary)
        return summary

    async def aggregate_all(
        self,
        symbols: Iterable[str] = AGGREGATE_SYMBOLS,
        now: Optional[datetime] = None,
    ) -> List[WhaleActivitySummary]:
        """Every symbol x timeframe; one failing window does not stop the rest."""
        summaries = []
        for symbol in symbols:
            for timeframe in TIMEFRAME_HOURS:
                try:
                    summaries.append(await self.aggregate_activity(symbol, timeframe, now=now))
                except Exception as e:
                    logger.error("Failed to aggregate %s %s: %s", symbol, timeframe, e)

        logger.info("Whale activity aggregation complete (%d windows)", len(summaries))
        return summaries

    async def detect_pattern(
        self,
        symbol: str,
        hours: float = PATTERN_HOURS,
        now: Optional[datetime] = None,
    ) -> WhalePattern:
        if self.store is None:
            raise InvalidParameter("Whale pattern detection needs a store")

        since = (now or utcnow()) - timedelta(hours=hours)
        transactions = await self.store.get_whale_transactions(symbol, since)
        return detect_flow_pattern(transactions, symbol)
