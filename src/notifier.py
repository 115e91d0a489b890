"""
Alert Sink for Signal Radar

AlertBroadcaster fans alert batches (liquidation zones, whale transfers)
out to subscribers.
Delivery is fire-and-forget and at-most-once: a failing subscriber is
logged and skipped, nothing is queued or retried by the broadcaster.

TelegramNotifier is the stock subscriber. It posts Markdown messages to
the Bot API, retrying transient HTTP failures with tenacity.
"""

import asyncio
import inspect
import logging
import os
from typing import Callable, List, Optional, Sequence, Union

import requests

from .common import create_retry_decorator
from .models import LiquidationAlert, RiskLevel, WhaleAlert

logger = logging.getLogger("signal_radar.notifier")

Alert = Union[LiquidationAlert, WhaleAlert]
AlertBatch = List[Alert]
Subscriber = Callable[[AlertBatch], object]

RISK_EMOJI = {
    RiskLevel.CRITICAL: "🚨",
    RiskLevel.HIGH: "⚠️",
    RiskLevel.MEDIUM: "🔶",
    RiskLevel.LOW: "🔹",
}


class AlertBroadcaster:
    """
    Publish/subscribe hub for alerts.

    Subscribers are plain callables or coroutine functions taking a list
    of alerts. Plain callables run in the default executor so a slow HTTP
    post does not stall the polling loop.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, alerts: Union[Alert, Sequence[Alert]]) -> int:
        """
        Deliver one alert or a batch to every subscriber.

        Returns:
            Number of subscribers that accepted the batch
        """
        if isinstance(alerts, (LiquidationAlert, WhaleAlert)):
            batch = [alerts]
        else:
            batch = list(alerts)
        if not batch:
            return 0

        loop = asyncio.get_running_loop()
        delivered = 0
        for callback in list(self._subscribers):
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(batch)
                else:
                    await loop.run_in_executor(None, callback, batch)
                delivered += 1
            except Exception as e:
                logger.error("Alert subscriber %r failed: %s", callback, e)

        logger.debug("Published %d alert(s) to %d subscriber(s)", len(batch), delivered)
        return delivered


def format_whale_alert(alert: WhaleAlert) -> str:
    tx = alert.transaction
    emoji = RISK_EMOJI.get(alert.risk_level, "")
    lines = [
        f"{emoji} *{alert.risk_level.value}* {tx.chain} `{tx.symbol}`",
        alert.message,
        f"{alert.from_owner} -> {alert.to_owner} | `{tx.amount:,.2f} {tx.symbol}`",
    ]
    if alert.explorer_url:
        lines.append(alert.explorer_url)
    return "\n".join(lines)


def format_alert(alert: Alert) -> str:
    if isinstance(alert, WhaleAlert):
        return format_whale_alert(alert)
    zone = alert.zone
    emoji = RISK_EMOJI.get(alert.risk_level, "")
    return (
        f"{emoji} *{alert.risk_level.value}* {alert.exchange} `{alert.symbol}`\n"
        f"{zone.side.value} zone `${zone.price:,.2f}` ({alert.distance_pct:.2f}% away)\n"
        f"Confidence: `{zone.confidence:.0f}%` | Suggestion: `{zone.suggestion.value}`\n"
        f"SL `{zone.stop_loss1:,.2f}` / `{zone.stop_loss2:,.2f}` "
        f"TP `{zone.take_profit1:,.2f}` / `{zone.take_profit2:,.2f}`"
    )


def format_alert_batch(alerts: Sequence[Alert]) -> str:
    title = "WHALE ALERTS" if alerts and all(isinstance(a, WhaleAlert) for a in alerts) else "LIQUIDATION ALERTS"
    header = f"*{title}* ({len(alerts)})"
    return "\n\n".join([header, *(format_alert(a) for a in alerts)])


class TelegramNotifier:
    """
    Sends alert batches to Telegram.

    Disabled (messages only logged) when TELEGRAM_BOT_TOKEN or
    TELEGRAM_CHAT_ID is missing.
    """

    API_URL = "https://api.telegram.org/bot{token}/sendMessage"
    TIMEOUT = 10
    MAX_RETRIES = 3

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID")
        self._enabled = bool(self.bot_token and self.chat_id)
        self._session = session or requests.Session()
        self._post = create_retry_decorator(self.MAX_RETRIES)(self._post_once)

        if self._enabled:
            logger.info("TelegramNotifier initialized")
        else:
            logger.warning(
                "TelegramNotifier disabled - missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID"
            )

    def is_enabled(self) -> bool:
        """Check if Telegram notifications are enabled."""
        return self._enabled

    def _post_once(self, payload: dict) -> None:
        response = self._session.post(
            self.API_URL.format(token=self.bot_token),
            json=payload,
            timeout=self.TIMEOUT,
        )
        response.raise_for_status()

    def send_message(self, text: str, parse_mode: str = "Markdown") -> bool:
        """
        Send a message to Telegram.

        Returns:
            True if sent successfully
        """
        if not self._enabled:
            logger.info("[TELEGRAM disabled] %s", text)
            return False

        try:
            self._post({"chat_id": self.chat_id, "text": text, "parse_mode": parse_mode})
            logger.debug("Telegram message sent successfully")
            return True

        except requests.RequestException as e:
            logger.error("Failed to send Telegram message: %s", e)
            return False

    def send_alerts(self, alerts: AlertBatch) -> bool:
        """Subscriber entry point for AlertBroadcaster."""
        if not alerts:
            return False
        return self.send_message(format_alert_batch(alerts))

    def __call__(self, alerts: AlertBatch) -> bool:
        return self.send_alerts(alerts)
