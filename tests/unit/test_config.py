"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tutorial_server.config import Settings


def test_settings_loads_from_environment():
    """Test that settings can be loaded from environment variables."""
    with patch.dict(os.environ, {
        'ENVIRONMENT': 'production',
        'PORT': '8080',
        'HOST': '0.0.0.0',
        'LOG_LEVEL': 'INFO',
        'LOG_FORMAT': 'json',
        'STRICT_ERROR_HANDLING': 'true',
    }, clear=True):
        settings = Settings(_env_file=None)

        assert settings.environment == 'production'
        assert settings.port == 8080
        assert settings.host == '0.0.0.0'
        assert settings.log_level == 'info'
        assert settings.log_format == 'json'
        assert settings.strict_error_handling is True


def test_settings_has_default_values():
    """Test that settings have appropriate default values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.environment == 'development'
        assert settings.host == '127.0.0.1'
        assert settings.port == 3000
        assert settings.log_format == 'text'
        assert settings.exit_code == 1
        assert settings.exit_grace_period == 0.1
        assert settings.include_educational_context is True
        assert settings.app_name == 'Python Tutorial HTTP Server'


@pytest.mark.parametrize("environment,expected", [
    ("development", "debug"),
    ("educational", "debug"),
    ("production", "warn"),
    ("test", "error"),
])
def test_log_level_follows_environment(environment, expected):
    """Test that the log threshold defaults per environment."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None, environment=environment)

    assert settings.log_level == expected


def test_unsupported_environment_falls_back_to_development():
    """Test that unknown environments are treated as development."""
    settings = Settings(_env_file=None, environment="staging")

    assert settings.environment == "development"
    assert settings.is_development_like is True


def test_production_is_not_development_like():
    """Test that production hides development-only output."""
    settings = Settings(_env_file=None, environment="Production")

    assert settings.environment == "production"
    assert settings.is_development_like is False


def test_invalid_port_rejected():
    """Test that out-of-range ports fail validation."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, port=70000)


def test_zero_exit_code_rejected():
    """Test that a terminating process never reports success."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, exit_code=0)


def test_grace_period_clamped():
    """Test that the exit grace period is bounded."""
    assert Settings(_env_file=None, exit_grace_period=30).exit_grace_period == 5.0
    assert Settings(_env_file=None, exit_grace_period=-1).exit_grace_period == 0.0
