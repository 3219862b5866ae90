"""Alert state persistence and cooldown deduplication."""

from alerting.state.deduplicator import AlertDeduplicator
from alerting.state.exceptions import StoreUnavailableError
from alerting.state.redis_store import RedisAlertStateStore
from alerting.state.store import AlertStateStore, InMemoryAlertStateStore

__all__ = [
    "AlertDeduplicator",
    "AlertStateStore",
    "InMemoryAlertStateStore",
    "RedisAlertStateStore",
    "StoreUnavailableError",
]
