"""Notification delivery exceptions."""

from __future__ import annotations

from alerting.core.exceptions import AlertingError


class DeliveryFailedError(AlertingError):
    """A notification channel did not accept the message."""
