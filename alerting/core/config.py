"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, PositiveInt, SecretStr, model_validator

from alerting.detection.thresholds import DEFAULT_THRESHOLDS, ThresholdPolicy

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class CloudflareConfig(BaseModel):
    """Cloudflare GraphQL analytics access."""

    enabled: bool = True
    endpoint: str = "https://api.cloudflare.com/client/v4/graphql"
    api_token: SecretStr = SecretStr("")
    account_id: str = ""
    timeout_secs: float = 10.0


class LangSmithConfig(BaseModel):
    """LangSmith run-query API access."""

    enabled: bool = True
    endpoint: str = "https://api.smith.langchain.com"
    api_key: SecretStr = SecretStr("")
    project: str = ""
    # Resolved from the project name by the first query when left empty.
    session_id: str = ""
    query_limit: PositiveInt = 100
    timeout_secs: float = 10.0


class NtfyConfig(BaseModel):
    """ntfy push notification target."""

    base_url: str = "https://ntfy.sh"
    topic: str = ""
    token: SecretStr = SecretStr("")
    timeout_secs: float = 10.0


class StateConfig(BaseModel):
    """Alert state persistence and cooldown timing."""

    backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "alert_state"
    cooldown_minutes: PositiveInt = 60
    ttl_days: PositiveInt = 7

    @property
    def cooldown_secs(self) -> float:
        return self.cooldown_minutes * 60.0

    @property
    def ttl_secs(self) -> int:
        return self.ttl_days * 24 * 60 * 60

    @model_validator(mode="after")
    def _ttl_outlives_cooldown(self) -> StateConfig:
        if self.ttl_secs <= self.cooldown_secs:
            raise ValueError(
                f"state ttl ({self.ttl_days}d) must be longer than the"
                f" cooldown ({self.cooldown_minutes}m)"
            )
        return self


class ScheduleConfig(BaseModel):
    """Metric windows and the loop-mode pass interval."""

    check_interval_minutes: PositiveInt = 10
    baseline_period_hours: PositiveInt = 1
    run_interval_secs: float = 600.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    cloudflare: CloudflareConfig = CloudflareConfig()
    langsmith: LangSmithConfig = LangSmithConfig()
    ntfy: NtfyConfig = NtfyConfig()
    state: StateConfig = StateConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    thresholds: ThresholdPolicy = DEFAULT_THRESHOLDS
    fail_open_on_store_error: bool = False
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
