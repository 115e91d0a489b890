"""
Whale Transfer Analysis

Pure functions over classified transfers:

- classify_transfer: exchange inflow / outflow / exchange-to-exchange / other
- calculate_significance: USD size -> LOW..CRITICAL
- build_whale_alerts: HIGH and CRITICAL transfers with a readable interpretation
- summarize_activity: inflow/outflow totals for one window
- detect_flow_pattern: accumulation vs distribution from the net flow ratio
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from ..models import (
    FlowPattern,
    RiskLevel,
    TransferType,
    WalletInfo,
    WhaleActivitySummary,
    WhaleAlert,
    WhalePattern,
    WhaleTransaction,
)
from .config import (
    EXPLORER_URLS,
    PATTERN_RATIO_THRESHOLD,
    SIGNIFICANCE_CRITICAL_USD,
    SIGNIFICANCE_HIGH_USD,
    SIGNIFICANCE_MEDIUM_USD,
)

ALERT_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)


def classify_transfer(
    from_wallet: Optional[WalletInfo],
    to_wallet: Optional[WalletInfo],
) -> TransferType:
    from_exchange = from_wallet is not None and from_wallet.is_exchange
    to_exchange = to_wallet is not None and to_wallet.is_exchange

    if to_exchange and not from_exchange:
        return TransferType.EXCHANGE_INFLOW
    if from_exchange and not to_exchange:
        return TransferType.EXCHANGE_OUTFLOW
    if from_exchange and to_exchange:
        return TransferType.EXCHANGE_TO_EXCHANGE
    return TransferType.WHALE_MOVEMENT


def calculate_significance(amount_usd: float) -> RiskLevel:
    if amount_usd >= SIGNIFICANCE_CRITICAL_USD:
        return RiskLevel.CRITICAL
    if amount_usd >= SIGNIFICANCE_HIGH_USD:
        return RiskLevel.HIGH
    if amount_usd >= SIGNIFICANCE_MEDIUM_USD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def format_usd_millions(amount_usd: float) -> str:
    return f"${amount_usd / 1_000_000:.1f}M"


def interpret_transfer(tx: WhaleTransaction) -> str:
    """One-line reading of what the transfer suggests for price."""
    amount = format_usd_millions(tx.amount_usd)

    if tx.transfer_type == TransferType.EXCHANGE_INFLOW:
        return f"{amount} {tx.symbol} moved TO {tx.to_owner or 'exchange'} - potential sell pressure"
    if tx.transfer_type == TransferType.EXCHANGE_OUTFLOW:
        return f"{amount} {tx.symbol} moved FROM {tx.from_owner or 'exchange'} - accumulation signal"
    if tx.transfer_type == TransferType.EXCHANGE_TO_EXCHANGE:
        return (
            f"{amount} {tx.symbol} transferred between exchanges"
            " - arbitrage or liquidity management"
        )
    return f"{amount} {tx.symbol} whale movement detected"


def explorer_url(chain: str, tx_hash: str) -> str:
    """Block explorer link, empty for chains without one."""
    template = EXPLORER_URLS.get(chain)
    return template.format(tx_hash=tx_hash) if template else ""


def build_whale_alerts(transactions: Iterable[WhaleTransaction]) -> List[WhaleAlert]:
    return [
        WhaleAlert(
            transaction=tx,
            message=interpret_transfer(tx),
            explorer_url=explorer_url(tx.chain, tx.tx_hash),
        )
        for tx in transactions
        if tx.significance in ALERT_LEVELS
    ]


def summarize_activity(
    transactions: Sequence[WhaleTransaction],
    symbol: str,
    timeframe: str,
    period_start: datetime,
    period_end: datetime,
) -> WhaleActivitySummary:
    """
    Exchange flow totals for one window.

    Only inflows and outflows feed the totals; the largest transfer is
    taken over every type. Ties keep the first transfer seen.
    """
    summary = WhaleActivitySummary(
        symbol=symbol,
        timeframe=timeframe,
        period_start=period_start,
        period_end=period_end,
    )

    for tx in transactions:
        if tx.transfer_type == TransferType.EXCHANGE_INFLOW:
            summary.exchange_inflow += tx.amount_usd
            summary.inflow_count += 1
        elif tx.transfer_type == TransferType.EXCHANGE_OUTFLOW:
            summary.exchange_outflow += tx.amount_usd
            summary.outflow_count += 1

        if tx.amount_usd > summary.largest_amount_usd:
            summary.largest_amount_usd = tx.amount_usd
            summary.largest_tx_hash = tx.tx_hash

    return summary


def detect_flow_pattern(transactions: Sequence[WhaleTransaction], symbol: str) -> WhalePattern:
    """
    Classify net exchange flow.

    ratio = (outflow - inflow) / (inflow + outflow), 0 without flow volume.
    ratio > 0.3 is accumulation, ratio < -0.3 distribution; confidence is
    |ratio| * 100 capped at 100, and 0 when neutral.
    """
    inflow = sum(tx.amount_usd for tx in transactions if tx.transfer_type == TransferType.EXCHANGE_INFLOW)
    outflow = sum(tx.amount_usd for tx in transactions if tx.transfer_type == TransferType.EXCHANGE_OUTFLOW)

    net_flow = outflow - inflow
    total = inflow + outflow
    ratio = net_flow / total if total > 0 else 0.0

    if ratio > PATTERN_RATIO_THRESHOLD:
        return WhalePattern(
            symbol=symbol,
            pattern=FlowPattern.ACCUMULATION,
            confidence=min(ratio * 100, 100.0),
            net_flow=net_flow,
            reasons=[
                f"Strong outflow from exchanges ({format_usd_millions(outflow)})",
                "Whales withdrawing to cold storage - bullish accumulation",
            ],
        )
    if ratio < -PATTERN_RATIO_THRESHOLD:
        return WhalePattern(
            symbol=symbol,
            pattern=FlowPattern.DISTRIBUTION,
            confidence=min(abs(ratio) * 100, 100.0),
            net_flow=net_flow,
            reasons=[
                f"Strong inflow to exchanges ({format_usd_millions(inflow)})",
                "Whales moving to exchanges - potential sell pressure",
            ],
        )
    return WhalePattern(
        symbol=symbol,
        pattern=FlowPattern.NEUTRAL,
        confidence=0.0,
        net_flow=net_flow,
        reasons=["Balanced whale activity - no clear directional bias"],
    )
