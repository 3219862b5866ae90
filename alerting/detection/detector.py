"""Pure threshold checks that turn metric snapshots into anomalies.

Each check family emits anomalies in a fixed order: error rate, then the
latency percentiles (P95 before P99), then the baseline spike check.
Messages are user-facing: percentages and ratios carry two decimals,
millisecond and token figures none.
"""

from __future__ import annotations

from alerting.core.types import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    CloudflareMetrics,
    LangSmithMetrics,
    Snapshot,
)
from alerting.detection.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy


def detect(
    current: Snapshot,
    baseline: Snapshot | None,
    policy: ThresholdPolicy = DEFAULT_THRESHOLDS,
) -> list[Anomaly]:
    """Run the check family matching *current*'s source.

    Raises:
        TypeError: *baseline* comes from a different source than *current*.
    """
    if baseline is not None and baseline.source != current.source:
        raise TypeError(
            f"baseline source {baseline.source} does not match {current.source}"
        )

    if isinstance(current, CloudflareMetrics):
        return check_cloudflare_anomalies(current, baseline, policy)  # type: ignore[arg-type]
    if isinstance(current, LangSmithMetrics):
        return check_langsmith_anomalies(current, baseline, policy)  # type: ignore[arg-type]
    raise TypeError(f"unsupported snapshot type: {type(current).__name__}")


def check_cloudflare_anomalies(
    current: CloudflareMetrics,
    baseline: CloudflareMetrics | None,
    policy: ThresholdPolicy = DEFAULT_THRESHOLDS,
) -> list[Anomaly]:
    """Error rate, P95/P99 latency, and traffic spike checks for worker metrics."""
    anomalies: list[Anomaly] = []

    # Zero requests means no data, not a 0% error rate.
    if current.request_count > 0 and current.error_rate > policy.error_rate_percent:
        anomalies.append(Anomaly(
            type=AnomalyType.HIGH_ERROR_RATE,
            severity=AnomalySeverity.HIGH,
            message=(
                f"Error rate is {current.error_rate:.2f}%"
                f" (threshold: {policy.error_rate_percent:g}%)"
            ),
            observed_value=current.error_rate,
            threshold=policy.error_rate_percent,
            occurred_at=current.timestamp,
        ))

    for label, observed, limit in (
        ("P95", current.p95_latency, policy.p95_latency_ms),
        ("P99", current.p99_latency, policy.p99_latency_ms),
    ):
        if observed > limit:
            anomalies.append(Anomaly(
                type=AnomalyType.HIGH_LATENCY,
                severity=AnomalySeverity.HIGH,
                message=f"{label} latency is {observed:.0f}ms (threshold: {limit:g}ms)",
                observed_value=observed,
                threshold=limit,
                occurred_at=current.timestamp,
            ))

    if baseline is not None and baseline.request_count > 0:
        ratio = current.request_count / baseline.request_count
        if ratio > policy.traffic_spike_multiplier:
            anomalies.append(Anomaly(
                type=AnomalyType.TRAFFIC_SPIKE,
                severity=AnomalySeverity.DEFAULT,
                message=(
                    f"Traffic is {ratio:.2f}x baseline"
                    f" ({current.request_count} vs {baseline.request_count} requests,"
                    f" threshold: {policy.traffic_spike_multiplier:g}x)"
                ),
                observed_value=ratio,
                threshold=policy.traffic_spike_multiplier,
                occurred_at=current.timestamp,
            ))

    return anomalies


def check_langsmith_anomalies(
    current: LangSmithMetrics,
    baseline: LangSmithMetrics | None,
    policy: ThresholdPolicy = DEFAULT_THRESHOLDS,
) -> list[Anomaly]:
    """LLM error rate, P95 latency, and token usage spike checks."""
    anomalies: list[Anomaly] = []

    if current.total_runs > 0 and current.error_rate > policy.llm_error_rate_percent:
        anomalies.append(Anomaly(
            type=AnomalyType.LLM_ERROR_RATE,
            severity=AnomalySeverity.HIGH,
            message=(
                f"LLM error rate is {current.error_rate:.2f}%"
                f" ({current.error_count}/{current.total_runs} runs failed,"
                f" threshold: {policy.llm_error_rate_percent:g}%)"
            ),
            observed_value=current.error_rate,
            threshold=policy.llm_error_rate_percent,
            occurred_at=current.timestamp,
        ))

    if current.p95_latency > policy.llm_p95_latency_ms:
        anomalies.append(Anomaly(
            type=AnomalyType.LLM_LATENCY,
            severity=AnomalySeverity.HIGH,
            message=(
                f"LLM P95 latency is {current.p95_latency:.0f}ms"
                f" (threshold: {policy.llm_p95_latency_ms:g}ms)"
            ),
            observed_value=current.p95_latency,
            threshold=policy.llm_p95_latency_ms,
            occurred_at=current.timestamp,
        ))

    if baseline is not None and baseline.avg_tokens_per_run > 0:
        ratio = current.avg_tokens_per_run / baseline.avg_tokens_per_run
        if ratio > policy.llm_token_spike_multiplier:
            anomalies.append(Anomaly(
                type=AnomalyType.LLM_HIGH_TOKENS,
                severity=AnomalySeverity.DEFAULT,
                message=(
                    f"Token usage is {ratio:.2f}x baseline"
                    f" ({current.avg_tokens_per_run:.0f} vs"
                    f" {baseline.avg_tokens_per_run:.0f} tokens/run,"
                    f" threshold: {policy.llm_token_spike_multiplier:g}x)"
                ),
                observed_value=ratio,
                threshold=policy.llm_token_spike_multiplier,
                occurred_at=current.timestamp,
            ))

    return anomalies
