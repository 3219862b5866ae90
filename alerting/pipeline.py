"""Alert pipeline — one fetch → detect → dedupe → notify → record pass.

A pass never raises past ``run_pass``: each metric source fails in
isolation, a failed notification leaves the anomalies eligible for the next
pass, and alert state is only written after a successful delivery.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from types import TracebackType

import structlog

from alerting.core.types import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    Clock,
    Fetched,
    FetchFailed,
)
from alerting.detection.detector import detect
from alerting.detection.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy
from alerting.notify.dispatcher import AlertDispatcher
from alerting.notify.exceptions import DeliveryFailedError
from alerting.sources.base import MetricSource
from alerting.state.deduplicator import AlertDeduplicator
from alerting.state.exceptions import StoreUnavailableError

logger = structlog.get_logger(__name__)


@dataclass
class PassResult:
    """Outcome of one pass, for logging and tests."""

    started_at: float
    detected: list[Anomaly] = field(default_factory=list)
    notified: list[Anomaly] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)
    recorded: bool = False
    error: str | None = None

    @property
    def suppressed(self) -> int:
        return len(self.detected) - len(self.notified)


class AlertPipeline:
    """Wires metric sources, the detector, the deduplicator, and the dispatcher.

    Usage::

        async with AlertPipeline(sources, deduplicator, dispatcher) as pipeline:
            await pipeline.run_pass()
    """

    def __init__(
        self,
        sources: list[MetricSource],  # type: ignore[type-arg]
        deduplicator: AlertDeduplicator,
        dispatcher: AlertDispatcher,
        policy: ThresholdPolicy = DEFAULT_THRESHOLDS,
        check_interval_minutes: int = 10,
        baseline_period_hours: int = 1,
        fail_open_on_store_error: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self._sources = sources
        self._deduplicator = deduplicator
        self._dispatcher = dispatcher
        self._policy = policy
        self._check_interval_minutes = check_interval_minutes
        self._baseline_period_hours = baseline_period_hours
        self._fail_open = fail_open_on_store_error
        self._clock: Clock = clock or time.time

    @property
    def deduplicator(self) -> AlertDeduplicator:
        return self._deduplicator

    @property
    def policy(self) -> ThresholdPolicy:
        return self._policy

    # ── Detection ───────────────────────────────────────────────

    async def _evaluate_source(
        self,
        source: MetricSource,  # type: ignore[type-arg]
        result: PassResult,
    ) -> list[Anomaly]:
        try:
            current, baseline = await asyncio.gather(
                source.fetch_current(self._check_interval_minutes),
                source.fetch_baseline(self._baseline_period_hours, self._check_interval_minutes),
            )
            if not isinstance(current, Fetched):
                if isinstance(current, FetchFailed):
                    result.failed_sources.append(source.source_type.value)
                return []

            baseline_snapshot = baseline.snapshot if isinstance(baseline, Fetched) else None
            anomalies = detect(current.snapshot, baseline_snapshot, self._policy)
        except Exception:
            result.failed_sources.append(source.source_type.value)
            logger.exception("source_evaluation_error", source=source.source_type)
            return []

        logger.info(
            "source_anomalies_detected",
            source=source.source_type,
            count=len(anomalies),
            has_baseline=baseline_snapshot is not None,
        )
        return anomalies

    async def detect_all(self, result: PassResult) -> list[Anomaly]:
        """Fetch and evaluate every source concurrently, in source order."""
        per_source = await asyncio.gather(
            *(self._evaluate_source(source, result) for source in self._sources)
        )
        return [a for anomalies in per_source for a in anomalies]

    # ── Pass ────────────────────────────────────────────────────

    async def run_pass(self, now: float | None = None) -> PassResult:
        """Run one full pass; errors are logged, never raised."""
        now = self._clock() if now is None else now
        result = PassResult(started_at=now)
        try:
            await self._run(now, result)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            result.error = f"{type(exc).__name__}: {exc}"
            logger.exception("pass_failed")
        return result

    async def _run(self, now: float, result: PassResult) -> None:
        result.detected = await self.detect_all(result)
        if not result.detected:
            logger.info("pass_no_anomalies", failed_sources=result.failed_sources)
            return

        persist = True
        try:
            eligible = await self._deduplicator.filter_new_alerts(result.detected, now=now)
        except StoreUnavailableError as exc:
            if not self._fail_open:
                result.error = f"StoreUnavailableError: {exc}"
                logger.error("alert_state_unavailable", action="skip_notification", error=str(exc))
                return
            logger.error("alert_state_unavailable", action="notify_without_cooldown", error=str(exc))
            eligible = list(result.detected)
            persist = False

        if not eligible:
            logger.info("pass_all_in_cooldown", detected=len(result.detected))
            return

        try:
            await self._dispatcher.send(eligible)
        except DeliveryFailedError as exc:
            result.error = f"DeliveryFailedError: {exc}"
            logger.error("notification_failed", alerts=len(eligible), error=str(exc))
            return
        result.notified = eligible

        logger.info(
            "pass_notified",
            alerts=len(eligible),
            suppressed=result.suppressed,
            types=[a.type.value for a in eligible],
        )

        if persist:
            await self._deduplicator.record_alerts(eligible, now=now)
            result.recorded = True

    # ── Forced alert ────────────────────────────────────────────

    async def send_forced_alert(
        self,
        now: float | None = None,
        ignore_cooldown: bool = False,
        mock_error_rate: float = 25.0,
        mock_llm_error_rate: float = 35.0,
    ) -> list[Anomaly]:
        """Send synthetic error-rate alerts end to end (delivery smoke test).

        Unlike ``run_pass`` this raises on store or delivery failure.
        Returns the anomalies that were sent.
        """
        now = self._clock() if now is None else now
        anomalies = [
            Anomaly(
                type=AnomalyType.HIGH_ERROR_RATE,
                severity=AnomalySeverity.HIGH,
                message=(
                    f"Error rate is {mock_error_rate:.2f}%"
                    f" (threshold: {self._policy.error_rate_percent:g}%)"
                ),
                observed_value=mock_error_rate,
                threshold=self._policy.error_rate_percent,
                occurred_at=now,
            ),
            Anomaly(
                type=AnomalyType.LLM_ERROR_RATE,
                severity=AnomalySeverity.HIGH,
                message=(
                    f"LLM error rate is {mock_llm_error_rate:.2f}%"
                    f" (threshold: {self._policy.llm_error_rate_percent:g}%)"
                ),
                observed_value=mock_llm_error_rate,
                threshold=self._policy.llm_error_rate_percent,
                occurred_at=now,
            ),
        ]

        to_send = (
            anomalies
            if ignore_cooldown
            else await self._deduplicator.filter_new_alerts(anomalies, now=now)
        )
        if not to_send:
            logger.info("forced_alert_in_cooldown")
            return []

        await self._dispatcher.send(to_send)
        await self._deduplicator.record_alerts(to_send, now=now)
        logger.info("forced_alert_sent", alerts=len(to_send))
        return to_send

    # ── Loop mode ───────────────────────────────────────────────

    async def run_forever(self, interval_secs: float, stop_event: asyncio.Event) -> None:
        """Run a pass every *interval_secs* until *stop_event* is set."""
        while not stop_event.is_set():
            await self.run_pass()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_secs)
            except TimeoutError:
                pass

    # ── Lifecycle ───────────────────────────────────────────────

    async def connect(self) -> None:
        for source in self._sources:
            await source.connect()

    async def close(self) -> None:
        for source in self._sources:
            try:
                await source.close()
            except Exception:
                logger.exception("source_close_error", source=source.source_type)
        await self._dispatcher.close()
        try:
            await self._deduplicator.store.close()
        except Exception:
            logger.exception("store_close_error")

    async def __aenter__(self) -> AlertPipeline:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
