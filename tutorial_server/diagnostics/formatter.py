"""
Conversion of ErrorRecords into wire-ready response envelopes.
"""

from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional

from fastapi.responses import JSONResponse

from tutorial_server.config import Settings
from tutorial_server.diagnostics.classifier import ErrorClassifier
from tutorial_server.models.envelope import (
    DebugBlock,
    EducationalBlock,
    HttpMetadata,
    RecoveryBlock,
    ResponseEnvelope,
)
from tutorial_server.models.error import ErrorRecord
from tutorial_server.utils.logging import STACK_DEPTH, format_timestamp

CONTENT_TYPE = "application/json; charset=utf-8"

RECOVERY_SUGGESTIONS = [
    "Retry the request with corrected parameters",
    "Check request format against API documentation",
    "Verify network connectivity and server availability",
    "Review error message for specific resolution guidance",
]

DEVELOPMENT_LIKE = ("development", "educational")


@dataclass(frozen=True)
class FormatOptions:
    """
    Options controlling which optional envelope blocks are produced.

    Attributes:
        educational: Include the guidance bundle as an ``educational`` block
        environment: Runtime environment; development-like values add ``debug``
        status_code: Status to report instead of the record's own; ignored
            unless it is an HTTP status in [100, 599]
    """

    educational: bool = False
    environment: str = "production"
    status_code: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "FormatOptions":
        return cls(
            educational=settings.include_educational_context,
            environment=settings.environment,
        )


def _valid_status(status_code: Optional[int]) -> bool:
    return (
        isinstance(status_code, int)
        and not isinstance(status_code, bool)
        and 100 <= status_code <= 599
    )


def status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Status"


class ResponseFormatter:
    """
    Pure formatter: builds a fresh envelope per call and never logs.

    Args:
        settings: Source of default FormatOptions
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def default_options(self) -> FormatOptions:
        return FormatOptions.from_settings(self.settings)

    def format_for_response(
        self, record: ErrorRecord, options: Optional[FormatOptions] = None
    ) -> ResponseEnvelope:
        """
        Convert an ErrorRecord into a ResponseEnvelope.

        Args:
            record: Error to describe
            options: Block selection; derived from settings when omitted

        Returns:
            ResponseEnvelope ready for JSON serialisation
        """
        options = options or self.default_options()
        status = record.status_code
        if _valid_status(options.status_code):
            status = options.status_code

        educational = None
        if options.educational and not record.guidance.is_empty():
            educational = EducationalBlock(
                troubleshooting=record.guidance.troubleshooting,
                debugging_steps=list(record.guidance.debugging_steps),
                learning_tips=list(record.guidance.learning_tips),
                related_concepts=list(record.guidance.related_concepts),
            )

        debug = None
        if options.environment in DEVELOPMENT_LIKE:
            debug = DebugBlock(
                error_name=record.error_name,
                error_code=record.code,
                stack_trace=list(record.stack[:STACK_DEPTH]),
                recoverable=ErrorClassifier.assess(
                    record.category, record.code, f"{record.error_name}: {record.message}"
                ),
            )

        recovery = None
        if record.recoverable is not False:
            recovery = RecoveryBlock(recoverable=True, suggestions=list(RECOVERY_SUGGESTIONS))

        return ResponseEnvelope(
            status=status,
            type=record.category,
            message=record.message,
            timestamp=format_timestamp(record.timestamp),
            recoverable=record.recoverable,
            educational=educational,
            debug=debug,
            recovery=recovery,
            http=HttpMetadata(
                status_code=status,
                status_text=status_text(status),
                headers={
                    "Content-Type": CONTENT_TYPE,
                    "X-Error-Type": record.category.value,
                    "X-Tutorial-Error": "true" if options.educational else "false",
                },
            ),
        )


def to_response(envelope: ResponseEnvelope, extra_headers: Optional[dict] = None) -> JSONResponse:
    """Build a JSONResponse carrying the envelope's status and headers."""
    headers = dict(envelope.http.headers)
    # JSONResponse sets its own content type
    headers.pop("Content-Type", None)
    headers.update(extra_headers or {})
    return JSONResponse(
        status_code=envelope.status,
        content=envelope.to_wire(),
        headers=headers,
        media_type=CONTENT_TYPE,
    )
