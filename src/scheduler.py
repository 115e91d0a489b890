"""
Background Polling Scheduler

Runs independent asyncio tasks per job (one per exchange/symbol pair for
liquidation sweeps, one for the signal tracker, and the whale transfer
and flow aggregation jobs). Each job sleeps for its
interval plus random jitter so pairs do not hit the exchange APIs in
lockstep. A shared stop event ends every loop at its next wake-up.

Author: khopilot
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from .liquidation.config import (
    DEFAULT_EXCHANGES,
    DEFAULT_SYMBOLS,
    POLL_INTERVAL_SECONDS,
    POLL_JITTER_SECONDS,
)
from .whales.config import (
    AGGREGATE_INTERVAL_SECONDS,
    POLL_INTERVAL_SECONDS as WHALE_INTERVAL_SECONDS,
)

logger = logging.getLogger("signal_radar.scheduler")

TRACKER_INTERVAL_SECONDS = 300


@dataclass
class MonitorSettings:
    """Watchlist and cadence for the background sweeps."""

    exchanges: List[str] = field(default_factory=lambda: list(DEFAULT_EXCHANGES))
    symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    interval: float = POLL_INTERVAL_SECONDS
    jitter: float = POLL_JITTER_SECONDS
    tracker_enabled: bool = True
    tracker_interval: float = TRACKER_INTERVAL_SECONDS
    whales_enabled: bool = True
    whale_interval: float = WHALE_INTERVAL_SECONDS
    whale_aggregate_interval: float = AGGREGATE_INTERVAL_SECONDS

    @classmethod
    def from_config(cls, config: Optional[Dict] = None) -> "MonitorSettings":
        """Build from the `monitor`, `tracker` and `whales` sections of config.yaml."""
        config = config or {}
        monitor_cfg = config.get("monitor", {}) or {}
        tracker_cfg = config.get("tracker", {}) or {}
        whales_cfg = config.get("whales", {}) or {}

        return cls(
            exchanges=[e.upper() for e in monitor_cfg.get("exchanges", DEFAULT_EXCHANGES)],
            symbols=list(monitor_cfg.get("symbols", DEFAULT_SYMBOLS)),
            interval=float(monitor_cfg.get("interval_seconds", POLL_INTERVAL_SECONDS)),
            jitter=float(monitor_cfg.get("jitter_seconds", POLL_JITTER_SECONDS)),
            tracker_enabled=bool(tracker_cfg.get("enabled", True)),
            tracker_interval=float(tracker_cfg.get("interval_seconds", TRACKER_INTERVAL_SECONDS)),
            whales_enabled=bool(whales_cfg.get("enabled", True)),
            whale_interval=float(whales_cfg.get("interval_seconds", WHALE_INTERVAL_SECONDS)),
            whale_aggregate_interval=float(
                whales_cfg.get("aggregate_interval_seconds", AGGREGATE_INTERVAL_SECONDS)
            ),
        )


@dataclass
class PollingJob:
    """A coroutine factory run every `interval` (+ jitter) seconds."""

    name: str
    func: Callable[[], Awaitable[object]]
    interval: float
    jitter: float = 0.0
    runs: int = 0
    failures: int = 0


class PollingScheduler:
    """
    Owns one task per job.

    - start(): spawn the loops
    - stop(): signal the stop event and wait for loops to exit
    - run_once(): one concurrent pass over all jobs (for --once / tests)
    """

    def __init__(
        self,
        jobs: Optional[List[PollingJob]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.jobs: List[PollingJob] = list(jobs or [])
        self._rng = rng or random.Random()
        self._stop = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    def add_job(self, job: PollingJob) -> None:
        self.jobs.append(job)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def next_delay(self, job: PollingJob) -> float:
        return job.interval + (self._rng.uniform(0, job.jitter) if job.jitter > 0 else 0.0)

    async def _run_job_once(self, job: PollingJob) -> None:
        try:
            await job.func()
            job.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.failures += 1
            logger.error("Job %s failed: %s", job.name, e)

    async def _loop(self, job: PollingJob) -> None:
        logger.info("Polling %s every %.0fs (+<=%.1fs jitter)", job.name, job.interval, job.jitter)

        # Stagger the first run too
        if job.jitter > 0:
            if await self._wait_stop(self._rng.uniform(0, job.jitter)):
                return

        while not self._stop.is_set():
            await self._run_job_once(job)
            if await self._wait_stop(self.next_delay(job)):
                break

        logger.info("Stopped polling %s", job.name)

    async def _wait_stop(self, delay: float) -> bool:
        """Sleep up to `delay`; True if the stop event fired."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    def start(self) -> List[asyncio.Task]:
        self._stop.clear()
        self._tasks = [
            asyncio.create_task(self._loop(job), name=f"poll:{job.name}") for job in self.jobs
        ]
        return self._tasks

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if not self._tasks:
            return
        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info("Scheduler stopped")

    async def run_once(self) -> None:
        await asyncio.gather(*(self._run_job_once(job) for job in self.jobs))


def build_watchlist_jobs(settings: MonitorSettings, monitor) -> List[PollingJob]:
    """One liquidation sweep job per (exchange, symbol) on the watchlist."""
    jobs = []
    for exchange in settings.exchanges:
        for symbol in settings.symbols:
            jobs.append(PollingJob(
                name=f"liquidation:{exchange}:{symbol}",
                func=lambda e=exchange, s=symbol: monitor.monitor(e, s),
                interval=settings.interval,
                jitter=settings.jitter,
            ))
    return jobs


def build_tracker_job(settings: MonitorSettings, tracker) -> PollingJob:
    return PollingJob(
        name="signal-tracker",
        func=tracker.monitor_all_signals,
        interval=settings.tracker_interval,
        jitter=settings.jitter,
    )


def build_whale_jobs(settings: MonitorSettings, whale_monitor) -> List[PollingJob]:
    """Transfer sweep plus the periodic flow aggregation."""
    return [
        PollingJob(
            name="whales:transfers",
            func=whale_monitor.run,
            interval=settings.whale_interval,
            jitter=settings.jitter,
        ),
        PollingJob(
            name="whales:aggregate",
            func=whale_monitor.aggregate_all,
            interval=settings.whale_aggregate_interval,
            jitter=settings.jitter,
        ),
    ]
