"""Anomaly detection — threshold policy and pure checks."""

from alerting.detection.detector import (
    check_cloudflare_anomalies,
    check_langsmith_anomalies,
    detect,
)
from alerting.detection.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy

__all__ = [
    "DEFAULT_THRESHOLDS",
    "ThresholdPolicy",
    "check_cloudflare_anomalies",
    "check_langsmith_anomalies",
    "detect",
]
