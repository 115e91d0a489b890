"""
Data Models for Signal Radar

Defines core dataclasses for candles, sentiment, trading signals,
signal performance, liquidation zones and whale transfers.

Author: khopilot
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class SignalType(Enum):
    """Trading signal direction."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class ZoneSide(Enum):
    """Which side of the book gets liquidated in a zone."""

    LONG = "LONG"
    SHORT = "SHORT"


class Suggestion(Enum):
    """Trading suggestion attached to a liquidation zone."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class RiskLevel(Enum):
    """Alert severity tier (zone distance, or whale transfer size)."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PerformanceTier(Enum):
    """Weekly accuracy tier of a finalized signal."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    AVERAGE = "AVERAGE"
    POOR = "POOR"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Candle:
    """OHLCV market data point."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_list(cls, data: list) -> "Candle":
        """Create from CCXT OHLCV list format [timestamp, O, H, L, C, V]."""
        return cls(
            timestamp=datetime.fromtimestamp(data[0] / 1000, tz=timezone.utc),
            open=float(data[1]),
            high=float(data[2]),
            low=float(data[3]),
            close=float(data[4]),
            volume=float(data[5] or 0.0),
        )


@dataclass
class SentimentResult:
    """Aggregate sentiment over a batch of texts."""

    compound: float = 0.0  # -1 to +1
    positive: float = 0.0  # 0 to 1
    neutral: float = 1.0  # 0 to 1
    negative: float = 0.0  # 0 to 1
    inverse: float = 0.0  # Contrarian score, -1 to +1


@dataclass
class SentimentRecord:
    """Stored sentiment row for one asset, as written by the scrapers."""

    symbol: str
    source: str
    compound: float
    inverse: float
    volume: int
    timestamp: datetime = field(default_factory=utcnow)
    id: Optional[int] = None


@dataclass
class NewsRecord:
    """Stored news headline with sentiment and importance score (0-100)."""

    symbol: str
    title: str
    sentiment: float
    score: float
    published_at: datetime
    url: str = ""
    source: str = ""
    id: Optional[int] = None


@dataclass(frozen=True)
class TradingSignal:
    """Fused trading signal. Immutable once created."""

    symbol: str
    exchange: str
    signal_type: SignalType
    confidence: float
    price: float
    reasons: tuple = ()
    timeframe: str = "1h"
    sentiment_score: Optional[float] = None
    inverse_sentiment: Optional[float] = None
    news_score: Optional[float] = None
    sentiment_weight: Optional[float] = None
    news_weight: Optional[float] = None
    technical_confidence: float = 0.0
    timestamp: datetime = field(default_factory=utcnow)
    id: Optional[int] = None

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)

    @property
    def is_buy(self) -> bool:
        return self.signal_type == SignalType.BUY

    @property
    def is_sell(self) -> bool:
        return self.signal_type == SignalType.SELL


@dataclass
class SignalPerformance:
    """Performance tracking record owned by one TradingSignal."""

    signal_id: Optional[int]
    current_price: float = 0.0
    current_pnl: float = 0.0
    highest_price: float = 0.0
    lowest_price: float = 0.0
    week_end_price: Optional[float] = None
    price_change: Optional[float] = None
    direction_correct: Optional[bool] = None
    accuracy_score: Optional[float] = None
    performance_tier: Optional[PerformanceTier] = None
    last_updated: datetime = field(default_factory=utcnow)
    tracking_ended: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def is_finalized(self) -> bool:
        return self.accuracy_score is not None

    @classmethod
    def seed(cls, signal: TradingSignal) -> "SignalPerformance":
        """Initial record created together with its signal."""
        return cls(
            signal_id=signal.id,
            current_price=0.0,
            current_pnl=0.0,
            highest_price=signal.price,
            lowest_price=signal.price,
        )


@dataclass
class HeatmapPoint:
    """One price level of a zone's liquidation heatmap."""

    price: float
    intensity: float  # 0-100
    liquidity: float  # >= 0


@dataclass
class RiskLevels:
    """Stop-loss and take-profit ladder for a zone."""

    stop_loss1: float
    stop_loss2: float
    take_profit1: float
    take_profit2: float


@dataclass
class LiquidationZone:
    """Estimated liquidation zone. Recomputed from scratch on every detection."""

    price: float
    side: ZoneSide
    estimated_liquidity: float
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    suggestion: Suggestion = Suggestion.NEUTRAL
    stop_loss1: float = 0.0
    stop_loss2: float = 0.0
    take_profit1: float = 0.0
    take_profit2: float = 0.0
    heatmap: List[HeatmapPoint] = field(default_factory=list)
    exchange: str = ""
    symbol: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["side"] = self.side.value
        data["suggestion"] = self.suggestion.value
        return data


@dataclass
class LiquidationAlert:
    """Alert produced when price approaches a confident zone."""

    exchange: str
    symbol: str
    zone: LiquidationZone
    risk_level: RiskLevel
    distance_pct: float
    message: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "zone": self.zone.to_dict(),
            "risk_level": self.risk_level.value,
            "distance_pct": self.distance_pct,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class TransferType(Enum):
    """Direction of a whale transfer relative to exchange wallets."""

    EXCHANGE_INFLOW = "exchange_inflow"
    EXCHANGE_OUTFLOW = "exchange_outflow"
    EXCHANGE_TO_EXCHANGE = "exchange_to_exchange"
    WHALE_MOVEMENT = "whale_movement"


class FlowPattern(Enum):
    """Net exchange flow reading over a window."""

    ACCUMULATION = "accumulation"
    DISTRIBUTION = "distribution"
    NEUTRAL = "neutral"


@dataclass
class WalletInfo:
    """Known owner of an on-chain address."""

    address: str
    chain: str
    owner: str
    owner_type: str  # "exchange", "fund", ...
    exchange: str = ""
    tx_count: int = 0
    last_seen: Optional[datetime] = None

    @property
    def is_exchange(self) -> bool:
        return self.owner_type == "exchange"


@dataclass
class WhaleTransaction:
    """Large on-chain transfer, classified and priced in USD."""

    tx_hash: str
    chain: str
    symbol: str
    amount: float
    amount_usd: float
    from_address: str
    to_address: str
    timestamp: datetime
    transfer_type: TransferType = TransferType.WHALE_MOVEMENT
    significance: RiskLevel = RiskLevel.LOW
    from_owner: Optional[str] = None
    from_type: Optional[str] = None
    to_owner: Optional[str] = None
    to_type: Optional[str] = None
    block_height: Optional[int] = None
    confirmations: int = 0
    alert_sent: bool = False
    id: Optional[int] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["transfer_type"] = self.transfer_type.value
        data["significance"] = self.significance.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class WhaleAlert:
    """Alert raised for a HIGH or CRITICAL whale transfer."""

    transaction: WhaleTransaction
    message: str
    explorer_url: str = ""
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def symbol(self) -> str:
        return self.transaction.symbol

    @property
    def risk_level(self) -> RiskLevel:
        return self.transaction.significance

    @property
    def from_owner(self) -> str:
        return self.transaction.from_owner or "Unknown"

    @property
    def to_owner(self) -> str:
        return self.transaction.to_owner or "Unknown"

    def to_dict(self) -> dict:
        tx = self.transaction
        return {
            "tx_hash": tx.tx_hash,
            "symbol": tx.symbol,
            "chain": tx.chain,
            "amount": tx.amount,
            "amount_usd": tx.amount_usd,
            "from": {"address": tx.from_address, "owner": self.from_owner, "type": tx.from_type or "unknown"},
            "to": {"address": tx.to_address, "owner": self.to_owner, "type": tx.to_type or "unknown"},
            "transfer_type": tx.transfer_type.value,
            "significance": tx.significance.value,
            "message": self.message,
            "explorer_url": self.explorer_url,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class WhaleActivitySummary:
    """Exchange flow totals for one asset over one window."""

    symbol: str
    timeframe: str
    period_start: datetime
    period_end: datetime
    exchange_inflow: float = 0.0
    exchange_outflow: float = 0.0
    inflow_count: int = 0
    outflow_count: int = 0
    largest_amount_usd: float = 0.0
    largest_tx_hash: str = ""
    id: Optional[int] = None

    @property
    def net_flow(self) -> float:
        """Outflow minus inflow; positive means coins leaving exchanges."""
        return self.exchange_outflow - self.exchange_inflow


@dataclass
class WhalePattern:
    """Accumulation / distribution reading from exchange flows."""

    symbol: str
    pattern: FlowPattern
    confidence: float  # 0-100
    net_flow: float
    reasons: List[str] = field(default_factory=list)
