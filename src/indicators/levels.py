"""
Support/resistance levels: Fibonacci retracement and pivot points.

These are single structured values computed from the latest candles,
not series.
"""

from typing import Dict

PIVOT_STANDARD = "standard"
PIVOT_FIBONACCI = "fibonacci"
PIVOT_CAMARILLA = "camarilla"

FIBONACCI_RATIOS = {
    "level_0": 0.0,
    "level_236": 0.236,
    "level_382": 0.382,
    "level_500": 0.5,
    "level_618": 0.618,
    "level_786": 0.786,
    "level_1": 1.0,
}


def fibonacci_retracement(high: float, low: float) -> Dict[str, float]:
    """Retracement levels measured down from `high`."""
    diff = high - low
    return {name: high - diff * ratio for name, ratio in FIBONACCI_RATIOS.items()}


def pivot_points(
    high: float,
    low: float,
    close: float,
    kind: str = PIVOT_STANDARD,
) -> Dict[str, float]:
    """
    Pivot points from one candle.

    Args:
        high, low, close: Candle values
        kind: "standard", "fibonacci" or "camarilla"

    Returns:
        Dict with pivot, r1..r3 and s1..s3 (r4/s4 for camarilla)
    """
    pivot = (high + low + close) / 3
    price_range = high - low

    if kind == PIVOT_STANDARD:
        return {
            "pivot": pivot,
            "r1": 2 * pivot - low,
            "r2": pivot + price_range,
            "r3": high + 2 * (pivot - low),
            "s1": 2 * pivot - high,
            "s2": pivot - price_range,
            "s3": low - 2 * (high - pivot),
        }

    if kind == PIVOT_FIBONACCI:
        return {
            "pivot": pivot,
            "r1": pivot + 0.382 * price_range,
            "r2": pivot + 0.618 * price_range,
            "r3": pivot + 1.0 * price_range,
            "s1": pivot - 0.382 * price_range,
            "s2": pivot - 0.618 * price_range,
            "s3": pivot - 1.0 * price_range,
        }

    if kind == PIVOT_CAMARILLA:
        step = price_range * 1.1
        return {
            "pivot": pivot,
            "r1": close + step / 12,
            "r2": close + step / 6,
            "r3": close + step / 4,
            "r4": close + step / 2,
            "s1": close - step / 12,
            "s2": close - step / 6,
            "s3": close - step / 4,
            "s4": close - step / 2,
        }

    raise ValueError(f"Unknown pivot point type: {kind}")
