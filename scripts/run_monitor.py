#!/usr/bin/env python3
"""
Run the Liquidation Monitor - Background Sweeps & Alerts

Polls every (exchange, symbol) pair on the watchlist for liquidation
zones, alerts on close confident zones, watches large on-chain transfers
in and out of exchange wallets, and keeps signal performance records up
to date.

Usage:
    python scripts/run_monitor.py
    python scripts/run_monitor.py --interval 60
    python scripts/run_monitor.py --exchange BINANCE --symbol BTC/USDT --once
    python scripts/run_monitor.py --in-memory --no-telegram
    python scripts/run_monitor.py --no-whales

Environment Variables:
    DATABASE_URL - PostgreSQL connection string
    TELEGRAM_BOT_TOKEN - Telegram bot API token
    TELEGRAM_CHAT_ID - Target chat ID for alerts
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from src.common import load_config, setup_logging
from src.data_service import MarketDataProvider, PriceCache
from src.database import Database, InMemoryDatabase
from src.liquidation import LiquidationMonitor, LiquidationZoneDetector
from src.models import LiquidationAlert
from src.notifier import AlertBroadcaster, TelegramNotifier
from src.scheduler import (
    MonitorSettings,
    PollingScheduler,
    build_tracker_job,
    build_watchlist_jobs,
    build_whale_jobs,
)
from src.signals import SignalTracker
from src.whales import DEFAULT_CHAINS, MIN_TRANSACTION_USD, ChainClient, WhaleMonitor

logger = logging.getLogger("signal_radar.run_monitor")


def print_alerts(alerts) -> None:
    for alert in alerts:
        source = alert.exchange if isinstance(alert, LiquidationAlert) else alert.transaction.chain
        print(f"[{alert.risk_level.value:8}] {source} {alert.symbol}: {alert.message}")


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env")

    config = load_config(args.config)
    setup_logging(config, log_file=PROJECT_ROOT / "logs" / "monitor.log")

    settings = MonitorSettings.from_config(config)
    if args.exchange:
        settings.exchanges = [args.exchange.upper()]
    if args.symbol:
        settings.symbols = [args.symbol]
    if args.interval:
        settings.interval = float(args.interval)
    if args.no_whales:
        settings.whales_enabled = False

    exchange_cfg = config.get("exchanges", {}) or {}
    provider = MarketDataProvider(
        timeout=float(exchange_cfg.get("timeout_seconds", 10)),
        price_cache=PriceCache(ttl=float(exchange_cfg.get("price_cache_ttl_seconds", 60))),
    )

    # Database
    database_url = os.getenv("DATABASE_URL")
    if args.in_memory or not database_url:
        if not args.in_memory:
            logger.warning("DATABASE_URL not set, using in-memory storage")
        store = InMemoryDatabase()
    else:
        store = Database(database_url)
    if not await store.connect():
        logger.warning("Database unavailable, falling back to in-memory storage")
        store = InMemoryDatabase()
    migrations = (config.get("database", {}) or {}).get("migrations")
    await store.run_migrations(str(PROJECT_ROOT / migrations) if migrations else None)

    # Alert sink
    broadcaster = AlertBroadcaster()
    broadcaster.subscribe(print_alerts)
    telegram_enabled = (config.get("telegram", {}) or {}).get("enabled", True) and not args.no_telegram
    if telegram_enabled:
        notifier = TelegramNotifier()
        if notifier.is_enabled():
            broadcaster.subscribe(notifier.send_alerts)

    detector = LiquidationZoneDetector(provider, timeout=provider.timeout)
    monitor = LiquidationMonitor(detector, provider, store=store, broadcaster=broadcaster)
    tracker = SignalTracker(provider, store)

    scheduler = PollingScheduler(build_watchlist_jobs(settings, monitor))
    if settings.tracker_enabled:
        scheduler.add_job(build_tracker_job(settings, tracker))

    chain_client = None
    if settings.whales_enabled:
        whales_cfg = config.get("whales", {}) or {}
        chain_client = ChainClient()
        whale_monitor = WhaleMonitor(
            chain_client,
            provider,
            store=store,
            broadcaster=broadcaster,
            chains=whales_cfg.get("chains", DEFAULT_CHAINS),
            min_usd=float(whales_cfg.get("min_transaction_usd", MIN_TRANSACTION_USD)),
        )
        for job in build_whale_jobs(settings, whale_monitor):
            scheduler.add_job(job)

    try:
        if args.once:
            logger.info("Running a single sweep over %d job(s)", len(scheduler.jobs))
            await scheduler.run_once()
            return 0

        print(f"""
================================================================================
                    SIGNAL RADAR - LIQUIDATION MONITOR
================================================================================

Exchanges: {', '.join(settings.exchanges)}
Symbols:   {', '.join(settings.symbols)}
Interval:  {settings.interval:.0f}s (+ up to {settings.jitter:.1f}s jitter)
Whales:    {'on' if settings.whales_enabled else 'off'}

Press Ctrl+C to stop.
================================================================================
""")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda: asyncio.create_task(scheduler.stop()))
            except NotImplementedError:
                pass

        scheduler.start()
        await scheduler.wait()
        return 0

    finally:
        if chain_client is not None:
            await chain_client.close()
        await store.close()
        logger.info("Shutdown complete")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the liquidation monitor")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument("--exchange", default=None, help="Only monitor this exchange")
    parser.add_argument("--symbol", default=None, help="Only monitor this symbol (e.g. BTC/USDT)")
    parser.add_argument("--interval", type=int, default=None, help="Polling interval in seconds")
    parser.add_argument("--no-telegram", action="store_true", help="Disable Telegram alerts")
    parser.add_argument("--no-whales", action="store_true", help="Disable whale transfer monitoring")
    parser.add_argument("--in-memory", action="store_true", help="Use in-memory storage")
    return parser.parse_args(argv)


def main():
    (PROJECT_ROOT / "logs").mkdir(exist_ok=True)
    args = parse_args()
    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
