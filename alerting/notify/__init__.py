"""Notification formatting and delivery."""

from alerting.notify.channels import NotificationChannel, NtfyChannel
from alerting.notify.dispatcher import AlertDispatcher
from alerting.notify.exceptions import DeliveryFailedError
from alerting.notify.formatters import format_notification
from alerting.notify.types import AlertMessage

__all__ = [
    "AlertDispatcher",
    "AlertMessage",
    "DeliveryFailedError",
    "NotificationChannel",
    "NtfyChannel",
    "format_notification",
]
