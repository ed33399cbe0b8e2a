"""Data models for the tutorial HTTP server diagnostics."""

from .envelope import (
    DebugBlock,
    EducationalBlock,
    HttpMetadata,
    RecoveryBlock,
    ResponseEnvelope,
)
from .error import (
    Classification,
    DiagnosticError,
    ErrorCategory,
    ErrorRecord,
    GuidanceBundle,
)
from .log import LogLevel, LogRecord

__all__ = [
    # Log models
    "LogLevel",
    "LogRecord",
    # Error models
    "ErrorCategory",
    "GuidanceBundle",
    "Classification",
    "ErrorRecord",
    "DiagnosticError",
    # Response envelope models
    "ResponseEnvelope",
    "EducationalBlock",
    "DebugBlock",
    "RecoveryBlock",
    "HttpMetadata",
]
