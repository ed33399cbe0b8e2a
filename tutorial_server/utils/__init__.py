"""
Utility modules for the tutorial server.
"""

from tutorial_server.utils.logging import (
    BoundEmitter,
    ConsoleSink,
    EmitterHandler,
    LogEmitter,
    PerformanceTimer,
    format_stack,
    format_timestamp,
    setup_logging,
)

__all__ = [
    "BoundEmitter",
    "ConsoleSink",
    "EmitterHandler",
    "LogEmitter",
    "PerformanceTimer",
    "format_stack",
    "format_timestamp",
    "setup_logging",
]
