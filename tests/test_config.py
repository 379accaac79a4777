"""
Unit tests for settings and logging setup.
"""

import logging

from esoperator.config import Settings, get_settings
from esoperator import configure_logging


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.default_memory_request == "2Gi"
    assert settings.termination_grace_period_seconds == 120
    assert settings.default_image("7.2.0") == "docker.elastic.co/elasticsearch/elasticsearch:7.2.0"


def test_environment_override(monkeypatch):
    monkeypatch.setenv("DEFAULT_MEMORY_REQUEST", "4Gi")
    monkeypatch.setenv("default_set_vm_max_map_count", "false")

    settings = Settings(_env_file=None)

    assert settings.default_memory_request == "4Gi"
    assert settings.default_set_vm_max_map_count is False


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_configure_logging(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(Settings(_env_file=None, log_level="debug"))

    assert calls[0]["level"] == logging.DEBUG
