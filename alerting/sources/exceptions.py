"""Exception hierarchy for metric source clients."""

from __future__ import annotations

from alerting.core.exceptions import AlertingError


class SourceError(AlertingError):
    """Base exception for all metric source errors."""


class SourceConnectionError(SourceError):
    """Failed to reach a metric source, or it answered with an HTTP error."""


class SourceAuthError(SourceConnectionError):
    """The metric source rejected our credentials."""


class SourceParseError(SourceError):
    """A metric source response could not be understood."""
