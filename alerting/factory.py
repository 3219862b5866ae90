"""Convenience factory for wiring the alerting stack from settings."""

from __future__ import annotations

from alerting.core.config import Settings, StateConfig
from alerting.core.types import Clock
from alerting.notify.channels import NotificationChannel, NtfyChannel
from alerting.notify.dispatcher import AlertDispatcher
from alerting.pipeline import AlertPipeline
from alerting.sources.base import MetricSource
from alerting.sources.cloudflare import CloudflareSource
from alerting.sources.langsmith import LangSmithSource
from alerting.state.deduplicator import AlertDeduplicator
from alerting.state.redis_store import RedisAlertStateStore
from alerting.state.store import AlertStateStore, InMemoryAlertStateStore


def create_state_store(config: StateConfig, clock: Clock | None = None) -> AlertStateStore:
    if config.backend == "redis":
        return RedisAlertStateStore.from_url(config.redis_url, key_prefix=config.key_prefix)
    return InMemoryAlertStateStore(clock=clock)


def create_pipeline(
    settings: Settings,
    store: AlertStateStore | None = None,
    clock: Clock | None = None,
) -> AlertPipeline:
    """Build sources, dispatcher and deduplicator from *settings*.

    Sources disabled in config are left out; the ntfy channel is added only
    when a topic is configured.
    """
    sources: list[MetricSource] = []  # type: ignore[type-arg]
    if settings.cloudflare.enabled:
        sources.append(CloudflareSource(settings.cloudflare))
    if settings.langsmith.enabled:
        sources.append(LangSmithSource(settings.langsmith))

    channels: list[NotificationChannel] = []
    if settings.ntfy.topic:
        channels.append(NtfyChannel(settings.ntfy))

    if store is None:
        store = create_state_store(settings.state, clock=clock)

    deduplicator = AlertDeduplicator(
        store=store,
        cooldown_secs=settings.state.cooldown_secs,
        ttl_secs=settings.state.ttl_secs,
        clock=clock,
    )

    return AlertPipeline(
        sources=sources,
        deduplicator=deduplicator,
        dispatcher=AlertDispatcher(channels=channels),
        policy=settings.thresholds,
        check_interval_minutes=settings.schedule.check_interval_minutes,
        baseline_period_hours=settings.schedule.baseline_period_hours,
        fail_open_on_store_error=settings.fail_open_on_store_error,
        clock=clock,
    )
