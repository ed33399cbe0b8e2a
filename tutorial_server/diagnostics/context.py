"""
Diagnostics context: one instance of each component, wired together.

The hosting application builds a single Diagnostics object at startup and
passes it to whatever needs logging or error handling.
"""

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from tutorial_server.config import Settings
from tutorial_server.diagnostics.classifier import ErrorClassifier
from tutorial_server.diagnostics.factory import ErrorFactory
from tutorial_server.diagnostics.formatter import ResponseFormatter
from tutorial_server.diagnostics.recovery import RecoveryCoordinator
from tutorial_server.utils.logging import LogEmitter


@dataclass
class Diagnostics:
    """Diagnostics components sharing one settings object and emitter."""

    settings: Settings
    emitter: LogEmitter
    classifier: ErrorClassifier
    factory: ErrorFactory
    formatter: ResponseFormatter
    recovery: RecoveryCoordinator


def build_diagnostics(
    settings: Settings,
    sink: Optional[Any] = None,
    terminate: Callable[[int], Any] = os._exit,
    emitter: Optional[LogEmitter] = None,
) -> Diagnostics:
    """
    Construct the diagnostics components for ``settings``.

    Args:
        settings: Application settings, read once here
        sink: Log sink; defaults to the console
        terminate: Process terminator used by the recovery coordinator
        emitter: Prebuilt emitter (takes precedence over ``sink``)

    Returns:
        Diagnostics context
    """
    emitter = emitter or LogEmitter(settings, sink=sink)
    classifier = ErrorClassifier(emitter)
    return Diagnostics(
        settings=settings,
        emitter=emitter,
        classifier=classifier,
        factory=ErrorFactory(settings, emitter, classifier, wall_clock=emitter.wall_clock),
        formatter=ResponseFormatter(settings),
        recovery=RecoveryCoordinator(settings, emitter, classifier, terminate=terminate),
    )
