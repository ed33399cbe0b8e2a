"""
Diagnostics and error recovery.

This package provides:
- classifier: category and recoverability decisions for raw failures
- factory: validated ErrorRecords with category guidance
- formatter: wire-ready response envelopes
- recovery: process-scope failure handling and termination
- context: the Diagnostics object wiring one of each together
"""

from tutorial_server.diagnostics.classifier import ErrorClassifier
from tutorial_server.diagnostics.context import Diagnostics, build_diagnostics
from tutorial_server.diagnostics.factory import ErrorFactory
from tutorial_server.diagnostics.formatter import FormatOptions, ResponseFormatter, to_response
from tutorial_server.diagnostics.recovery import Outcome, RecoveryCoordinator, install_process_hooks

__all__ = [
    "ErrorClassifier",
    "ErrorFactory",
    "FormatOptions",
    "ResponseFormatter",
    "to_response",
    "Outcome",
    "RecoveryCoordinator",
    "install_process_hooks",
    "Diagnostics",
    "build_diagnostics",
]
