"""Domain types for metric snapshots, anomalies, and alert state."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# Returns the current unix time in seconds; injectable for tests.
Clock = Callable[[], float]


class SourceType(StrEnum):
    """Monitored metric source."""

    CLOUDFLARE = "cloudflare"
    LANGSMITH = "langsmith"


# ── Snapshots ───────────────────────────────────────────────────


class CloudflareMetrics(BaseModel):
    """Worker invocation metrics over one time window."""

    model_config = ConfigDict(frozen=True)

    request_count: int = 0
    error_rate: float = 0.0  # percent
    p95_latency: float = 0.0  # ms
    p99_latency: float = 0.0  # ms
    errors_5xx: int = 0
    errors_4xx: int = 0
    timestamp: float = 0.0

    @property
    def source(self) -> SourceType:
        return SourceType.CLOUDFLARE

    @property
    def total_observations(self) -> int:
        return self.request_count


class LangSmithMetrics(BaseModel):
    """LLM run metrics for one tracing project over one time window."""

    model_config = ConfigDict(frozen=True)

    total_runs: int = 0
    error_count: int = 0
    error_rate: float = 0.0  # percent
    avg_latency: float = 0.0  # ms
    p95_latency: float = 0.0  # ms
    total_tokens: int = 0
    avg_tokens_per_run: float = 0.0
    timestamp: float = 0.0

    @property
    def source(self) -> SourceType:
        return SourceType.LANGSMITH

    @property
    def total_observations(self) -> int:
        return self.total_runs


Snapshot = CloudflareMetrics | LangSmithMetrics


# ── Anomalies ───────────────────────────────────────────────────


class AnomalyType(StrEnum):
    """Closed set of anomaly kinds; also the alert-state key."""

    HIGH_ERROR_RATE = "high_error_rate"
    HIGH_LATENCY = "high_latency"
    TRAFFIC_SPIKE = "traffic_spike"
    LLM_ERROR_RATE = "llm_error_rate"
    LLM_LATENCY = "llm_latency"
    LLM_HIGH_TOKENS = "llm_high_tokens"


class AnomalySeverity(StrEnum):
    """Anomaly severity, mapped onto notification priority."""

    HIGH = "high"
    DEFAULT = "default"


class Anomaly(BaseModel):
    """A single threshold breach found in one detection pass."""

    model_config = ConfigDict(frozen=True)

    type: AnomalyType
    severity: AnomalySeverity
    message: str
    observed_value: float
    threshold: float
    occurred_at: float = 0.0


# ── Alert state ─────────────────────────────────────────────────


class AlertState(BaseModel):
    """Last notification time and running count for one anomaly type."""

    last_alert_time: float
    alert_count: int = Field(default=1, ge=1)


class AlertPhase(StrEnum):
    """Cooldown phase of one anomaly type."""

    NEVER_ALERTED = "NEVER_ALERTED"
    IN_COOLDOWN = "IN_COOLDOWN"
    ELIGIBLE = "ELIGIBLE"


# ── Fetch results ───────────────────────────────────────────────


@dataclass(frozen=True)
class Fetched:
    """A source returned a snapshot."""

    snapshot: Snapshot


@dataclass(frozen=True)
class NoData:
    """A source answered but had no data in the requested window."""


@dataclass(frozen=True)
class FetchFailed:
    """A source could not be queried (transport, auth, or parse failure)."""

    error: Exception


FetchResult = Fetched | NoData | FetchFailed
