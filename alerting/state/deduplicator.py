"""AlertDeduplicator — per-type cooldown on top of an AlertStateStore."""

from __future__ import annotations

import time

import structlog

from alerting.core.types import AlertPhase, AlertState, Anomaly, AnomalyType, Clock
from alerting.state.store import AlertStateStore

logger = structlog.get_logger(__name__)


def _distinct_types(anomalies: list[Anomaly]) -> list[AnomalyType]:
    return list(dict.fromkeys(a.type for a in anomalies))


class AlertDeduplicator:
    """Decides which anomalies may notify and records the ones that did.

    An anomaly type is eligible when it has no stored state or its last
    alert is at least ``cooldown_secs`` old.  The stored state expires after
    ``ttl_secs``, which must outlive the cooldown so an entry can never
    vanish while its cooldown is still running.

    Overlapping passes recording the same type can both increment
    ``alert_count`` (read-then-write is not atomic); the count is
    informational and only one pass is expected in flight.
    """

    def __init__(
        self,
        store: AlertStateStore,
        cooldown_secs: float = 3600.0,
        ttl_secs: float = 7 * 24 * 3600.0,
        clock: Clock | None = None,
    ) -> None:
        if cooldown_secs <= 0:
            raise ValueError(f"cooldown_secs must be positive, got {cooldown_secs}")
        if ttl_secs <= cooldown_secs:
            raise ValueError(
                f"ttl_secs ({ttl_secs}) must be greater than cooldown_secs ({cooldown_secs})"
            )
        self._store = store
        self._cooldown_secs = cooldown_secs
        self._ttl_secs = ttl_secs
        self._clock: Clock = clock or time.time

    @property
    def cooldown_secs(self) -> float:
        return self._cooldown_secs

    @property
    def ttl_secs(self) -> float:
        return self._ttl_secs

    @property
    def store(self) -> AlertStateStore:
        return self._store

    def _in_cooldown(self, state: AlertState | None, now: float) -> bool:
        return state is not None and now - state.last_alert_time < self._cooldown_secs

    async def filter_new_alerts(
        self,
        anomalies: list[Anomaly],
        now: float | None = None,
    ) -> list[Anomaly]:
        """Return the anomalies whose type is out of cooldown, in input order.

        State is read once per type before any decision, so anomalies of the
        same type in one batch share the same verdict.  Store failures
        propagate as ``StoreUnavailableError``.
        """
        now = self._clock() if now is None else now
        states = {t: await self._store.get(t) for t in _distinct_types(anomalies)}

        kept: list[Anomaly] = []
        suppressed: list[str] = []
        for anomaly in anomalies:
            if self._in_cooldown(states[anomaly.type], now):
                suppressed.append(anomaly.type.value)
            else:
                kept.append(anomaly)

        if suppressed:
            logger.info("alerts_in_cooldown", suppressed=suppressed, kept=len(kept))
        return kept

    async def record_alerts(
        self,
        anomalies: list[Anomaly],
        now: float | None = None,
    ) -> None:
        """Stamp each anomaly type as alerted at *now*.

        A type appearing several times in the batch is written once, so its
        ``alert_count`` grows by exactly one per call.
        """
        now = self._clock() if now is None else now
        for alert_type in _distinct_types(anomalies):
            prior = await self._store.get(alert_type)
            count = prior.alert_count + 1 if prior is not None else 1
            await self._store.put(
                alert_type,
                AlertState(last_alert_time=now, alert_count=count),
                self._ttl_secs,
            )
            logger.debug("alert_recorded", alert_type=alert_type.value, alert_count=count)

    async def phase(self, alert_type: AnomalyType, now: float | None = None) -> AlertPhase:
        """Where *alert_type* sits in the NEVER_ALERTED → IN_COOLDOWN → ELIGIBLE cycle."""
        now = self._clock() if now is None else now
        state = await self._store.get(alert_type)
        if state is None:
            return AlertPhase.NEVER_ALERTED
        if self._in_cooldown(state, now):
            return AlertPhase.IN_COOLDOWN
        return AlertPhase.ELIGIBLE

    async def get_state(self, alert_type: AnomalyType) -> AlertState | None:
        return await self._store.get(alert_type)

    async def clear_all_state(self) -> None:
        """Forget every anomaly type (administrative reset)."""
        await self._store.delete_all(list(AnomalyType))
        logger.info("alert_state_cleared")
