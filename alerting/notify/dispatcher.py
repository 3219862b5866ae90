"""Alert dispatcher — formats one batch of anomalies and delivers it to channels."""

from __future__ import annotations

import structlog

from alerting.core.types import Anomaly
from alerting.notify.channels import NotificationChannel
from alerting.notify.exceptions import DeliveryFailedError
from alerting.notify.formatters import format_notification
from alerting.notify.types import AlertMessage

# Dedicated structured logger for decision records.
decision_logger = structlog.get_logger("decision_log")

logger = structlog.get_logger(__name__)


class AlertDispatcher:
    """Sends the anomalies of one pass as a single notification.

    - Every dispatched batch is logged via *decision_logger*.
    - Delivery succeeds when at least one channel accepts the message.
    - If no channel accepts it (or none is configured) ``send`` raises
      ``DeliveryFailedError`` so the caller can skip recording the alerts.
    """

    def __init__(self, channels: list[NotificationChannel] | None = None) -> None:
        self._channels: list[NotificationChannel] = channels or []

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    async def send(self, anomalies: list[Anomaly]) -> AlertMessage | None:
        """Format and deliver *anomalies*; no-op for an empty list."""
        if not anomalies:
            return None
        msg = format_notification(anomalies)
        self._log_decision(msg)
        await self.send_message(msg)
        return msg

    async def send_message(self, msg: AlertMessage) -> None:
        if not self._channels:
            raise DeliveryFailedError("no notification channels configured")

        delivered = 0
        for ch in self._channels:
            try:
                await ch.send(msg)
                delivered += 1
            except DeliveryFailedError as exc:
                logger.warning(
                    "channel_dispatch_error",
                    channel=type(ch).__name__,
                    title=msg.title,
                    error=str(exc),
                )

        if delivered == 0:
            raise DeliveryFailedError(
                f"notification {msg.title!r} rejected by all {len(self._channels)} channel(s)"
            )

    def _log_decision(self, msg: AlertMessage) -> None:
        decision_logger.info(
            "decision",
            title=msg.title,
            priority=msg.priority,
            tags=msg.tags,
            alert_types=msg.alert_types,
            body=msg.body,
        )

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels:
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=type(ch).__name__)
