"""Alert state persistence exceptions."""

from __future__ import annotations

from alerting.core.exceptions import AlertingError


class StoreUnavailableError(AlertingError):
    """The alert state backend could not be read or written."""
