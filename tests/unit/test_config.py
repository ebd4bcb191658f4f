"""Tests for configuration."""

import logging

import pytest
from pydantic import ValidationError

from threadstore.core.config import Settings, get_logger


class TestSettings:
    """Tests for Settings."""

    def test_env_prefix(self, monkeypatch):
        """Test that THREADSTORE_ variables are bound."""
        monkeypatch.setenv("THREADSTORE_THREAD_NAME", "esa")
        monkeypatch.setenv("THREADSTORE_REQUEST_TIMEOUT", "2.5")

        settings = Settings()

        assert settings.thread_name == "esa"
        assert settings.request_timeout == 2.5

    def test_key_info_dev(self):
        """Test building dev credentials."""
        settings = Settings(key_id="abc", mode="dev")

        assert settings.key_info.key_id == "abc"
        assert settings.key_info.key_secret is None

    def test_key_info_prod_needs_secret(self):
        """Test that prod credentials without a secret are refused."""
        settings = Settings(key_id="abc", mode="prod", key_secret=None)

        with pytest.raises(ValidationError):
            settings.key_info

    def test_secret_not_printed(self):
        """Test that the secret stays masked."""
        settings = Settings(key_id="abc", mode="prod", key_secret="hunter2")

        assert "hunter2" not in repr(settings)
        assert settings.key_info.key_secret.get_secret_value() == "hunter2"

    def test_invalid_backend(self):
        """Test that unknown backends are rejected."""
        with pytest.raises(ValidationError):
            Settings(backend="sqlite")


def test_get_logger_namespace():
    """Test logger naming."""
    logger = get_logger("storage.records")

    assert isinstance(logger, logging.Logger)
    assert logger.name == "threadstore.storage.records"
