"""Static threshold policy for anomaly detection."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, PositiveFloat


class ThresholdPolicy(BaseModel):
    """Named limits and multipliers checked by the detector.

    Every rule needs a limit: there are no defaults on the model itself, so a
    policy missing an entry fails validation instead of disabling the rule.
    Use ``DEFAULT_THRESHOLDS`` for the stock values.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_rate_percent: PositiveFloat
    p95_latency_ms: PositiveFloat
    p99_latency_ms: PositiveFloat
    traffic_spike_multiplier: PositiveFloat
    llm_error_rate_percent: PositiveFloat
    llm_p95_latency_ms: PositiveFloat
    llm_token_spike_multiplier: PositiveFloat


DEFAULT_THRESHOLDS = ThresholdPolicy(
    error_rate_percent=5.0,
    p95_latency_ms=2000.0,
    p99_latency_ms=3000.0,
    traffic_spike_multiplier=2.0,
    llm_error_rate_percent=10.0,
    llm_p95_latency_ms=20000.0,
    llm_token_spike_multiplier=3.0,
)
