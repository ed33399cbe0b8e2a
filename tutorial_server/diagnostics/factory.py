"""
Construction of validated ErrorRecords.

The factory never raises: invalid input is replaced with a safe default
and reported through a warning log entry.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from tutorial_server.config import Settings
from tutorial_server.diagnostics.classifier import ErrorClassifier, exception_code
from tutorial_server.models.error import (
    DiagnosticError,
    ErrorCategory,
    ErrorRecord,
    GuidanceBundle,
)
from tutorial_server.utils.logging import LogEmitter, format_stack

FALLBACK_MESSAGE = "Unknown error occurred in tutorial application"
DEFAULT_STATUS_CODE = 500

COMMON_LEARNING_TIPS = [
    "Use logging to trace execution flow and variable values",
    "Read error messages carefully for specific clues about the problem",
    "Check the stack trace to identify the exact location of the error",
    "Review recent code changes that might have introduced the issue",
    "Use a debugger for step-by-step code analysis",
]

GUIDANCE_TEMPLATES: Dict[ErrorCategory, GuidanceBundle] = {
    ErrorCategory.SERVER: GuidanceBundle(
        troubleshooting=(
            "Server error detected. Check server configuration, port availability, "
            "and system resources."
        ),
        debugging_steps=[
            "Verify port is not already in use (lsof -ti:3000)",
            "Check system permissions for port binding",
            "Review server configuration parameters",
            "Examine system resource availability (memory, CPU)",
        ],
        learning_tips=COMMON_LEARNING_TIPS,
        related_concepts=[
            "Server lifecycle management",
            "Port binding and network configuration",
            "System resource management",
        ],
    ),
    ErrorCategory.REQUEST: GuidanceBundle(
        troubleshooting=(
            "Request processing error occurred. Verify request format, method, "
            "and URL structure."
        ),
        debugging_steps=[
            "Check HTTP method (GET, POST, etc.) is supported",
            "Verify URL path matches expected endpoint pattern",
            "Examine request headers for proper formatting",
            "Review request body structure and content-type",
        ],
        learning_tips=COMMON_LEARNING_TIPS,
        related_concepts=[
            "HTTP request structure and methods",
            "URL routing and path matching",
            "Request header processing",
        ],
    ),
    ErrorCategory.VALIDATION: GuidanceBundle(
        troubleshooting=(
            "Validation error encountered. Check input parameters, data types, "
            "and format requirements."
        ),
        debugging_steps=[
            "Verify all required parameters are provided",
            "Check parameter data types match expectations",
            "Validate parameter values are within acceptable ranges",
            "Review parameter format requirements and constraints",
        ],
        learning_tips=COMMON_LEARNING_TIPS,
        related_concepts=[
            "Input validation patterns and techniques",
            "Data type checking and conversion",
            "Parameter sanitization and security",
        ],
    ),
    ErrorCategory.RESPONSE: GuidanceBundle(
        troubleshooting=(
            "Response generation error occurred. Check response format, headers, "
            "and content structure."
        ),
        debugging_steps=[
            "Verify response status code is valid HTTP status",
            "Check response headers are properly formatted",
            "Review response body content and encoding",
            "Ensure the response is returned exactly once",
        ],
        learning_tips=COMMON_LEARNING_TIPS,
        related_concepts=[
            "HTTP response structure and headers",
            "Status code selection and usage",
            "Response content formatting",
        ],
    ),
    ErrorCategory.CONFIGURATION: GuidanceBundle(
        troubleshooting=(
            "Configuration error detected. Review application settings, environment "
            "variables, and config files."
        ),
        debugging_steps=[
            "Check environment variables are set correctly",
            "Verify configuration file syntax and structure",
            "Review default configuration values and overrides",
            "Examine configuration validation and loading process",
        ],
        learning_tips=COMMON_LEARNING_TIPS,
        related_concepts=[
            "Configuration management patterns",
            "Environment variable usage",
            "Configuration validation and defaults",
        ],
    ),
}

GuidanceOverrides = Union[GuidanceBundle, Mapping[str, Any], None]


def guidance_template(category: ErrorCategory) -> GuidanceBundle:
    return GUIDANCE_TEMPLATES[category]


class ErrorFactory:
    """
    Build ErrorRecords with category guidance and recoverability.

    Args:
        settings: Application settings (``show_internal_state`` enables a
            debug entry per created record)
        emitter: Log emitter for validation warnings
        classifier: Classifier deciding recoverability
        wall_clock: Returns the current aware datetime
    """

    def __init__(
        self,
        settings: Settings,
        emitter: LogEmitter,
        classifier: ErrorClassifier,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self.emitter = emitter
        self.classifier = classifier
        self.wall_clock = wall_clock

    def create_error(
        self,
        message: Any,
        category: Any = ErrorCategory.SERVER,
        status_code: Any = DEFAULT_STATUS_CODE,
        guidance_overrides: GuidanceOverrides = None,
        *,
        code: Optional[str] = None,
        error_name: str = "ErrorRecord",
        stack: Optional[list] = None,
    ) -> ErrorRecord:
        """
        Create a validated ErrorRecord.

        Args:
            message: Error message; empty or non-string values are replaced
            category: ErrorCategory or a name/wire value for one
            status_code: HTTP status in [100, 599]
            guidance_overrides: Guidance merged on top of the category template
            code: Symbolic error code carried into classification
            error_name: Name reported in debug output
            stack: Stack frame lines of the originating exception

        Returns:
            ErrorRecord, never raises
        """
        if not isinstance(message, str) or not message.strip():
            message = FALLBACK_MESSAGE

        parsed_category = ErrorCategory.parse(category)
        if parsed_category is None:
            self.emitter.warn(
                f"Invalid error type provided: {category!r}, defaulting to SERVER_ERROR",
                {
                    "providedType": repr(category),
                    "validTypes": [member.value for member in ErrorCategory],
                },
            )
            parsed_category = ErrorCategory.SERVER

        if not _valid_status(status_code):
            self.emitter.warn(
                f"Invalid status code provided: {status_code!r}, defaulting to {DEFAULT_STATUS_CODE}",
                {"providedStatusCode": repr(status_code), "defaultStatusCode": DEFAULT_STATUS_CODE},
            )
            status_code = DEFAULT_STATUS_CODE

        guidance = guidance_template(parsed_category).merge(guidance_overrides)
        classification = self.classifier.classify(
            {"code": code, "name": error_name, "message": message},
            parsed_category,
        )

        record = ErrorRecord(
            message=message,
            category=classification.category,
            status_code=status_code,
            timestamp=self.wall_clock(),
            recoverable=classification.recoverable,
            guidance=guidance,
            error_name=error_name,
            code=code,
            stack=list(stack or []),
        )

        if self.settings.show_internal_state:
            self.emitter.debug(
                f"Error record created: {record.category.value}",
                {
                    "message": message,
                    "statusCode": status_code,
                    "recoverable": record.recoverable,
                    "hasGuidanceOverrides": bool(guidance_overrides),
                },
            )
        return record

    def from_exception(
        self,
        exc: BaseException,
        category: Any = ErrorCategory.SERVER,
        status_code: Any = DEFAULT_STATUS_CODE,
        guidance_overrides: GuidanceOverrides = None,
    ) -> ErrorRecord:
        """
        Build a record describing a raw exception.

        A DiagnosticError already carries its record, which is returned as is.
        """
        if isinstance(exc, DiagnosticError):
            return exc.record
        return self.create_error(
            str(exc),
            category,
            status_code,
            guidance_overrides,
            code=exception_code(exc),
            error_name=type(exc).__name__,
            stack=format_stack(exc),
        )


def _valid_status(status_code: Any) -> bool:
    return (
        isinstance(status_code, int)
        and not isinstance(status_code, bool)
        and 100 <= status_code <= 599
    )
