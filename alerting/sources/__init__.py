"""Metric source clients — external systems the detector reads from."""

from alerting.sources.base import MetricSource
from alerting.sources.cloudflare import CloudflareSource
from alerting.sources.exceptions import (
    SourceAuthError,
    SourceConnectionError,
    SourceError,
    SourceParseError,
)
from alerting.sources.langsmith import LangSmithSource

__all__ = [
    "CloudflareSource",
    "LangSmithSource",
    "MetricSource",
    "SourceAuthError",
    "SourceConnectionError",
    "SourceError",
    "SourceParseError",
]
