"""Redis-backed alert state store.

Each anomaly type is one string key ``<prefix>:<type>`` holding the JSON
alert state, written with ``SET ... EX`` so Redis handles expiry.
"""

from __future__ import annotations

import math

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from alerting.core.types import AlertState, AnomalyType
from alerting.state.exceptions import StoreUnavailableError
from alerting.state.store import AlertStateStore

logger = structlog.get_logger(__name__)


class RedisAlertStateStore(AlertStateStore):
    """Alert state in Redis, one expiring key per anomaly type.

    Usage::

        store = RedisAlertStateStore.from_url("redis://localhost:6379/0")
        try:
            state = await store.get(AnomalyType.HIGH_LATENCY)
        finally:
            await store.close()
    """

    def __init__(self, client: Redis, key_prefix: str = "alert_state") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        key_prefix: str = "alert_state",
        socket_timeout: float = 5.0,
    ) -> RedisAlertStateStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def key_for(self, alert_type: AnomalyType) -> str:
        return f"{self._key_prefix}:{alert_type.value}"

    async def get(self, alert_type: AnomalyType) -> AlertState | None:
        key = self.key_for(alert_type)
        try:
            raw = await self._client.get(key)
        except RedisError as exc:
            raise StoreUnavailableError(f"GET {key} failed: {exc}") from exc

        if raw is None:
            return None
        try:
            return AlertState.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreUnavailableError(f"corrupt alert state at {key}") from exc

    async def put(self, alert_type: AnomalyType, state: AlertState, ttl_secs: float) -> None:
        key = self.key_for(alert_type)
        try:
            await self._client.set(key, state.model_dump_json(), ex=max(1, math.ceil(ttl_secs)))
        except RedisError as exc:
            raise StoreUnavailableError(f"SET {key} failed: {exc}") from exc

    async def delete(self, alert_type: AnomalyType) -> None:
        key = self.key_for(alert_type)
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise StoreUnavailableError(f"DEL {key} failed: {exc}") from exc

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as exc:
            logger.warning("redis_close_error", error=str(exc))
