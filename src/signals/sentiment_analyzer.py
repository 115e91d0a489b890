"""
Sentiment Aggregator - Read the Crowd & Flag the Extremes

Reduces a batch of texts (tweets, headlines) to one SentimentResult:
1. Each text is cleaned (URLs, @mentions and the '#' character removed)
2. VADER scores it: compound (-1..+1), pos/neu/neg (0..1)
3. Fields are averaged without weights

Contrarian "inverse" score: when the crowd is extremely one-sided AND
the batch is broadly sampled, the reversal signal points the other way.
- |mean compound| > 0.7
- min(batch size / 100, 1) > 0.5
=> inverse = -mean * |mean|, otherwise 0
"""

import logging
import re
from statistics import fmean
from typing import Callable, Dict, Iterable, List, Optional

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from ..models import SentimentResult

logger = logging.getLogger("signal_radar.signals.sentiment")

EXTREME_SENTIMENT = 0.7
VOLUME_WEIGHT_MIN = 0.5
VOLUME_SATURATION = 100         # samples for a full volume weight

_URL_RE = re.compile(r"https?://\S+")
_MENTION_RE = re.compile(r"@\w+")

COIN_NAMES = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "SOL": "Solana",
    "XMR": "Monero",
    "HYPE": "Hyperliquid",
    "BNB": "BNB",
    "ADA": "Cardano",
    "DOT": "Polkadot",
    "MATIC": "Polygon",
    "LINK": "Chainlink",
    "AVAX": "Avalanche",
    "UNI": "Uniswap",
    "ATOM": "Cosmos",
    "LTC": "Litecoin",
    "XRP": "Ripple",
}

Scorer = Callable[[str], Dict[str, float]]


def clean_text(text: str) -> str:
    """Strip URLs, @mentions and '#' (the hashtag word stays)."""
    text = _URL_RE.sub("", text)
    text = _MENTION_RE.sub("", text)
    return text.replace("#", "").strip()


def inverse_sentiment(compound: float, batch_size: int) -> float:
    """Contrarian score for a mean compound over `batch_size` texts."""
    extremeness = abs(compound)
    volume_weight = min(batch_size / VOLUME_SATURATION, 1.0)

    if extremeness > EXTREME_SENTIMENT and volume_weight > VOLUME_WEIGHT_MIN:
        return -compound * extremeness

    return 0.0


def coin_name(symbol: str) -> str:
    """Human name for a base asset, used to build search terms."""
    return COIN_NAMES.get(symbol.upper(), symbol)


class SentimentAggregator:
    """
    Batch sentiment scorer.

    The polarity scorer defaults to VADER's polarity_scores and can be
    swapped for a stub in tests.
    """

    def __init__(self, scorer: Optional[Scorer] = None):
        if scorer is None:
            scorer = SentimentIntensityAnalyzer().polarity_scores
        self._scorer = scorer

    def score_text(self, text: str) -> Dict[str, float]:
        return self._scorer(clean_text(text))

    def analyze(self, texts: Iterable[str]) -> SentimentResult:
        """
        Aggregate a batch of texts.

        Args:
            texts: Free-text strings

        Returns:
            SentimentResult; the neutral default for an empty batch
        """
        texts = list(texts)
        if not texts:
            return SentimentResult()

        scores: List[Dict[str, float]] = [self.score_text(t) for t in texts]
        n = len(scores)

        compound = fmean(s["compound"] for s in scores)
        result = SentimentResult(
            compound=compound,
            positive=fmean(s["pos"] for s in scores),
            neutral=fmean(s["neu"] for s in scores),
            negative=fmean(s["neg"] for s in scores),
            inverse=inverse_sentiment(compound, n),
        )

        logger.debug(
            "Analyzed %d texts: compound=%.3f inverse=%.3f", n, result.compound, result.inverse
        )
        return result
