"""Tests for routewise config — env-driven settings."""

from __future__ import annotations

import pytest

from routewise.config import RoutewiseConfig
from routewise.errors import ConfigurationError


class TestRoutewiseConfig:
    def test_defaults(self):
        config = RoutewiseConfig()
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.classification_attribute == "country"
        assert config.routed_values == ["Ireland", "China"]
        assert config.required_field == "email"

    def test_secondary_queue_has_no_default(self, monkeypatch):
        monkeypatch.delenv("ROUTEWISE_SECONDARY_QUEUE_URL", raising=False)
        config = RoutewiseConfig()
        with pytest.raises(ConfigurationError):
            config.require_secondary_queue_url()

    def test_secondary_queue_from_env(self, monkeypatch):
        monkeypatch.setenv("ROUTEWISE_SECONDARY_QUEUE_URL", "memory://queue-b")
        config = RoutewiseConfig()
        assert config.require_secondary_queue_url() == "memory://queue-b"

    def test_routed_values_from_env_json(self, monkeypatch):
        monkeypatch.setenv("ROUTEWISE_ROUTED_VALUES", '["Peru"]')
        assert RoutewiseConfig().routed_values == ["Peru"]

    def test_numeric_overrides(self, monkeypatch):
        monkeypatch.setenv("ROUTEWISE_MAX_QUEUE_DEPTH", "8")
        monkeypatch.setenv("ROUTEWISE_CONSUMER_TIMEOUT_SECONDS", "2.5")
        config = RoutewiseConfig()
        assert config.max_queue_depth == 8
        assert config.consumer_timeout_seconds == 2.5
