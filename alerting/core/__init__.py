"""Core module — config, types, logging."""

from alerting.core.config import Settings, get_settings, load_settings, reset_settings
from alerting.core.exceptions import AlertingError
from alerting.core.logging import setup_logging
from alerting.core.types import (
    AlertPhase,
    AlertState,
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    CloudflareMetrics,
    Fetched,
    FetchFailed,
    FetchResult,
    LangSmithMetrics,
    NoData,
    Snapshot,
    SourceType,
)

__all__ = [
    "AlertPhase",
    "AlertState",
    "AlertingError",
    "Anomaly",
    "AnomalySeverity",
    "AnomalyType",
    "CloudflareMetrics",
    "FetchFailed",
    "FetchResult",
    "Fetched",
    "LangSmithMetrics",
    "NoData",
    "Settings",
    "Snapshot",
    "SourceType",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
