#!/usr/bin/env python3
"""
Generate one fused trading signal and print it.

Usage:
    python scripts/generate_signal.py BINANCE BTC/USDT
    python scripts/generate_signal.py OKX ETH/USDT --timeframe 4h

Environment Variables:
    DATABASE_URL - PostgreSQL connection string (sentiment/news reads, signal writes)
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from src.common import load_config, setup_logging
from src.data_service import SUPPORTED_TIMEFRAMES, MarketDataProvider
from src.database import Database, InMemoryDatabase
from src.exceptions import DataUnavailable, InsufficientHistory, InvalidParameter
from src.indicators import IndicatorEngine
from src.liquidation import LiquidationZoneDetector
from src.signals import SignalFusionEngine

logger = logging.getLogger("signal_radar.generate_signal")


def format_signal(signal) -> str:
    lines = [
        "=" * 60,
        f"{signal.exchange} {signal.symbol} ({signal.timeframe})",
        "=" * 60,
        f"Signal:     {signal.signal_type.value}",
        f"Confidence: {signal.confidence:.1f}% (technical {signal.technical_confidence:.1f})",
        f"Price:      ${signal.price:,.2f}",
    ]
    if signal.sentiment_score is not None:
        lines.append(f"Sentiment:  {signal.sentiment_score:+.2f} (+{signal.sentiment_weight:.1f})")
    if signal.news_score is not None:
        lines.append(f"News:       {signal.news_score:+.2f} (+{signal.news_weight:.1f})")
    lines.append("")
    lines.append("Reasons:")
    lines.extend(f"  - {reason}" for reason in signal.reasons)
    return "\n".join(lines)


async def main_async(args: argparse.Namespace) -> int:
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
    config = load_config(args.config)
    setup_logging(config)

    database_url = os.getenv("DATABASE_URL")
    store = Database(database_url) if database_url else InMemoryDatabase()
    if not await store.connect():
        store = InMemoryDatabase()

    exchange_cfg = config.get("exchanges", {}) or {}
    signals_cfg = config.get("signals", {}) or {}

    provider = MarketDataProvider(timeout=float(exchange_cfg.get("timeout_seconds", 10)))
    engine = SignalFusionEngine(
        IndicatorEngine(provider, candle_limit=int(signals_cfg.get("candle_limit", 500))),
        store,
        detector=LiquidationZoneDetector(provider),
        store_timeout=float(signals_cfg.get("store_timeout_seconds", 5)),
    )
    timeframe = args.timeframe or signals_cfg.get("timeframe", "1h")

    try:
        signal = await engine.generate_signal(args.exchange, args.symbol, timeframe)
    except InvalidParameter as e:
        print(f"Invalid request: {e}")
        return 2
    except InsufficientHistory as e:
        print(f"Not enough history: {e}")
        return 3
    except DataUnavailable as e:
        print(f"Market data unavailable: {e}")
        return 4
    finally:
        await store.close()

    print(format_signal(signal))
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a fused trading signal")
    parser.add_argument("exchange", help="Exchange name, e.g. BINANCE")
    parser.add_argument("symbol", help="Symbol, e.g. BTC/USDT")
    parser.add_argument("--timeframe", default=None, choices=SUPPORTED_TIMEFRAMES)
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    return parser.parse_args(argv)


def main():
    sys.exit(asyncio.run(main_async(parse_args())))


if __name__ == "__main__":
    main()
