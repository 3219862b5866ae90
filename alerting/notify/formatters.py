"""Pure functions that turn a batch of anomalies into one AlertMessage."""

from __future__ import annotations

from alerting.core.types import Anomaly, AnomalySeverity, AnomalyType
from alerting.notify.types import AlertMessage

# ── Mappings ────────────────────────────────────────────────────

TYPE_TITLES: dict[AnomalyType, str] = {
    AnomalyType.HIGH_ERROR_RATE: "High Error Rate",
    AnomalyType.HIGH_LATENCY: "High Latency",
    AnomalyType.TRAFFIC_SPIKE: "Traffic Spike",
    AnomalyType.LLM_ERROR_RATE: "LLM Error Rate",
    AnomalyType.LLM_LATENCY: "LLM Latency",
    AnomalyType.LLM_HIGH_TOKENS: "High Token Usage",
}

_ERROR_TYPES = {AnomalyType.HIGH_ERROR_RATE, AnomalyType.LLM_ERROR_RATE}
_LATENCY_TYPES = {AnomalyType.HIGH_LATENCY, AnomalyType.LLM_LATENCY}


# ── Formatters ──────────────────────────────────────────────────


def format_title(anomalies: list[Anomaly]) -> str:
    if len(anomalies) == 1:
        return TYPE_TITLES[anomalies[0].type]
    return f"{len(anomalies)} Alerts Detected"


def format_body(anomalies: list[Anomaly]) -> str:
    if len(anomalies) == 1:
        return anomalies[0].message
    lines = [f"• {TYPE_TITLES[a.type]}: {a.message}" for a in anomalies]
    return "Multiple anomalies detected:\n\n" + "\n".join(lines)


def determine_priority(anomalies: list[Anomaly]) -> str:
    """ntfy priority: ``high`` if any anomaly is high severity."""
    if any(a.severity == AnomalySeverity.HIGH for a in anomalies):
        return "high"
    return "default"


def determine_tags(anomalies: list[Anomaly]) -> list[str]:
    """ntfy emoji tags, first-seen order, ``bell`` when nothing matches."""
    tags: dict[str, None] = {}
    for anomaly in anomalies:
        if anomaly.severity == AnomalySeverity.HIGH:
            tags["warning"] = None
        if anomaly.type in _ERROR_TYPES:
            tags["rotating_light"] = None
        if anomaly.type in _LATENCY_TYPES:
            tags["hourglass"] = None
        if anomaly.type == AnomalyType.TRAFFIC_SPIKE:
            tags["chart_with_upwards_trend"] = None
    return list(tags) or ["bell"]


def format_notification(anomalies: list[Anomaly]) -> AlertMessage:
    """Build the single notification for one pass.

    Raises:
        ValueError: *anomalies* is empty.
    """
    if not anomalies:
        raise ValueError("cannot format a notification without anomalies")
    return AlertMessage(
        title=format_title(anomalies),
        body=format_body(anomalies),
        priority=determine_priority(anomalies),
        tags=determine_tags(anomalies),
        alert_types=[a.type.value for a in anomalies],
    )
