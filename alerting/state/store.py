"""Alert state store interface and the in-process backend."""

from __future__ import annotations

import abc
import time
from collections.abc import Iterable

from alerting.core.types import AlertState, AnomalyType, Clock


class AlertStateStore(abc.ABC):
    """Key-value record of the last alert per anomaly type, with expiry.

    Backends raise ``StoreUnavailableError`` on I/O failure; deciding what
    an outage means is left to the caller.
    """

    @abc.abstractmethod
    async def get(self, alert_type: AnomalyType) -> AlertState | None:
        """Return the stored state, or None if absent or expired."""

    @abc.abstractmethod
    async def put(self, alert_type: AnomalyType, state: AlertState, ttl_secs: float) -> None:
        """Write *state*; it disappears after *ttl_secs*."""

    @abc.abstractmethod
    async def delete(self, alert_type: AnomalyType) -> None:
        """Remove the state for one type (no-op if absent)."""

    async def delete_all(self, alert_types: Iterable[AnomalyType]) -> None:
        """Remove the state for every type in *alert_types*."""
        for alert_type in alert_types:
            await self.delete(alert_type)

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryAlertStateStore(AlertStateStore):
    """Dict-backed store; expiry is checked lazily on read.

    State lives only as long as the process, so this backend suits loop mode
    and tests. Cron-style single passes need a persistent backend.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or time.time
        self._entries: dict[AnomalyType, tuple[AlertState, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, alert_type: AnomalyType) -> AlertState | None:
        entry = self._entries.get(alert_type)
        if entry is None:
            return None
        state, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[alert_type]
            return None
        return state.model_copy()

    async def put(self, alert_type: AnomalyType, state: AlertState, ttl_secs: float) -> None:
        self._entries[alert_type] = (state.model_copy(), self._clock() + ttl_secs)

    async def delete(self, alert_type: AnomalyType) -> None:
        self._entries.pop(alert_type, None)
