"""
Shared fixtures for the diagnostics test suite.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from tutorial_server.config import Settings
from tutorial_server.diagnostics.context import build_diagnostics
from tutorial_server.models.log import LogLevel
from tutorial_server.utils.logging import LogEmitter


class RecordingSink:
    """Log sink keeping every written line in memory."""

    def __init__(self):
        self.lines = []

    def write(self, level, line):
        self.lines.append((level, line))

    def is_tty(self, level):
        return False

    def at(self, level):
        return [line for written_level, line in self.lines if written_level == level]

    @property
    def warnings(self):
        return self.at(LogLevel.WARN)

    @property
    def errors(self):
        return self.at(LogLevel.ERROR)


FIXED_TIME = datetime(2026, 1, 15, 12, 30, 45, 123000, tzinfo=timezone.utc)


@pytest.fixture
def make_settings():
    """Build Settings without reading a .env file."""
    def _make(**overrides):
        values = {
            "environment": "development",
            "log_level": "debug",
            "exit_grace_period": 0,
            "color_output": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def emitter(settings, sink):
    return LogEmitter(settings, sink=sink, wall_clock=lambda: FIXED_TIME)


@pytest.fixture
def terminate():
    return Mock(name="terminate")


@pytest.fixture
def diagnostics(settings, emitter, terminate):
    return build_diagnostics(settings, terminate=terminate, emitter=emitter)


@pytest.fixture
def make_sink():
    """Factory for additional recording sinks."""
    return RecordingSink


@pytest.fixture
def fixed_time():
    return FIXED_TIME
