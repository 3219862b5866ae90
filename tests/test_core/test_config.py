"""Tests for alerting/core/config.py — YAML loading, defaults, SecretStr, validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from alerting.core.config import (
    CloudflareConfig,
    LangSmithConfig,
    LoggingConfig,
    Settings,
    StateConfig,
    get_settings,
    load_settings,
    reset_settings,
)
from alerting.detection.thresholds import DEFAULT_THRESHOLDS


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_state_config(self) -> None:
        cfg = StateConfig()
        assert cfg.backend == "memory"
        assert cfg.cooldown_minutes == 60
        assert cfg.cooldown_secs == 3600.0
        assert cfg.ttl_days == 7
        assert cfg.ttl_secs == 7 * 24 * 3600

    def test_default_langsmith_config(self) -> None:
        cfg = LangSmithConfig()
        assert cfg.endpoint == "https://api.smith.langchain.com"
        assert cfg.query_limit == 100
        assert cfg.session_id == ""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.schedule.check_interval_minutes == 10
        assert s.schedule.baseline_period_hours == 1
        assert s.ntfy.base_url == "https://ntfy.sh"
        assert s.thresholds == DEFAULT_THRESHOLDS
        assert s.fail_open_on_store_error is False


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "cloudflare": {"account_id": "acct-1", "api_token": "cf-token"},
            "ntfy": {"topic": "svc-alerts-abc", "token": "tk_1"},
            "state": {"backend": "redis", "cooldown_minutes": 30, "ttl_days": 2},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.cloudflare.account_id == "acct-1"
        assert settings.cloudflare.api_token.get_secret_value() == "cf-token"
        assert settings.ntfy.topic == "svc-alerts-abc"
        assert settings.ntfy.token.get_secret_value() == "tk_1"
        assert settings.state.backend == "redis"
        assert settings.state.cooldown_secs == 1800.0
        assert settings.logging.level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.state.cooldown_minutes == 60

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.thresholds == DEFAULT_THRESHOLDS

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"schedule": {"check_interval_minutes": 5}}))
        loaded = load_settings(config_file)
        assert get_settings() is loaded

    def test_full_thresholds_block(self, tmp_path: Path) -> None:
        thresholds = DEFAULT_THRESHOLDS.model_dump()
        thresholds["error_rate_percent"] = 1.5
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"thresholds": thresholds}))

        settings = load_settings(config_file)
        assert settings.thresholds.error_rate_percent == 1.5
        assert settings.thresholds.p99_latency_ms == 3000.0

    def test_incomplete_thresholds_block_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"thresholds": {"error_rate_percent": 2}}))
        with pytest.raises(ValidationError):
            load_settings(config_file)


class TestStateValidation:
    def test_ttl_must_outlive_cooldown(self) -> None:
        # 1 day TTL vs 1 day cooldown
        with pytest.raises(ValidationError, match="ttl"):
            StateConfig(cooldown_minutes=24 * 60, ttl_days=1)

    def test_ttl_longer_than_cooldown_ok(self) -> None:
        cfg = StateConfig(cooldown_minutes=24 * 60 - 1, ttl_days=1)
        assert cfg.ttl_secs > cfg.cooldown_secs

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StateConfig(backend="dynamodb")  # type: ignore[arg-type]


class TestSecretStr:
    """Sensitive fields should use SecretStr to prevent leaking."""

    def test_secret_str_repr_does_not_leak(self) -> None:
        cfg = CloudflareConfig(api_token="super-secret")  # type: ignore[arg-type]
        repr_str = repr(cfg)
        assert "super-secret" not in repr_str
        assert "**********" in repr_str

    def test_secret_str_get_value(self) -> None:
        cfg = LangSmithConfig(api_key="my-secret")  # type: ignore[arg-type]
        assert cfg.api_key.get_secret_value() == "my-secret"
