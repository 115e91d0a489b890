"""
Error taxonomy for Signal Radar.

Lower layers raise these; the fusion and detection orchestrators decide
whether a failure is fatal or degrades to "no data".

Author: khopilot
"""


class SignalRadarError(Exception):
    """Base class for all Signal Radar failures."""


class DataUnavailable(SignalRadarError, RuntimeError):
    """Upstream market data is missing, failed or timed out."""


class InsufficientHistory(SignalRadarError, ValueError):
    """Not enough candles (or a too-short indicator series) to compute a signal."""

    def __init__(self, available: int, required: int, what: str = "candles"):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient data: {available} {what} available, {required} required"
        )


# Shorter name for the same failure
InsufficientData = InsufficientHistory


class InvalidParameter(SignalRadarError, ValueError):
    """Unsupported exchange, symbol or timeframe. Raised before any I/O."""


class PartialDataLoss(SignalRadarError):
    """A secondary source (sentiment, news) could not be read."""
