"""Root of the alerting exception hierarchy."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for all alerting errors."""
