"""
Request-scoped error handling.

Every failure raised while serving a request ends up here and is turned
into a JSON ResponseEnvelope. Nothing in this module reaches the recovery
coordinator: request failures never terminate the process.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tutorial_server.diagnostics.context import Diagnostics
from tutorial_server.diagnostics.formatter import to_response
from tutorial_server.models.error import DiagnosticError, ErrorCategory, ErrorRecord
from tutorial_server.models.log import LogLevel

SUPPORTED_METHODS = ("GET", "HEAD")


def error_response(
    diagnostics: Diagnostics,
    record: ErrorRecord,
    request: Request,
    headers: Optional[Dict[str, str]] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """
    Log a request-scoped error and build its JSON response.

    Recoverable errors are logged at warn, the rest at error.
    """
    context: Dict[str, Any] = {
        "errorType": record.category.value,
        "statusCode": record.status_code,
        "method": request.method,
        "path": request.url.path,
        "recoverable": record.recoverable,
        "troubleshooting": record.guidance.troubleshooting,
    }
    log = diagnostics.emitter.bind(requestId=getattr(request.state, "request_id", None))
    message = f"Request failed: {record.message}"
    if record.recoverable:
        log.emit(LogLevel.WARN, message, context)
    else:
        log.error(message, context, exc=exc)

    envelope = diagnostics.formatter.format_for_response(record)
    return to_response(envelope, headers)


def _http_exception_guidance(request: Request, status_code: int) -> Dict[str, Any]:
    method = request.method
    path = request.url.path
    if status_code == 405:
        return {
            "troubleshooting": (
                f"The tutorial server only supports GET requests; your request used {method}. "
                f"Retry with: curl -X GET {path}"
            ),
            "debuggingSteps": [f"Verify HTTP method '{method}' is supported for endpoint {path}"],
        }
    if status_code == 404:
        return {
            "troubleshooting": f"No endpoint is registered for {path}. The tutorial exposes /hello.",
            "debuggingSteps": [f"Check URL path '{path}' matches expected endpoint pattern"],
        }
    return {}


def register_exception_handlers(app: FastAPI) -> None:
    """Install envelope-producing handlers for request-scoped failures."""

    @app.exception_handler(DiagnosticError)
    async def diagnostic_error_handler(request: Request, exc: DiagnosticError) -> JSONResponse:
        diagnostics: Diagnostics = request.app.state.diagnostics
        return error_response(diagnostics, exc.record, request, exc=exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        diagnostics: Diagnostics = request.app.state.diagnostics
        category = ErrorCategory.SERVER if exc.status_code >= 500 else ErrorCategory.REQUEST
        message = exc.detail if isinstance(exc.detail, str) else None
        record = diagnostics.factory.create_error(
            message,
            category,
            exc.status_code,
            _http_exception_guidance(request, exc.status_code),
            code=f"HTTP_{exc.status_code}",
            error_name=type(exc).__name__,
        )
        headers = dict(exc.headers or {})
        if exc.status_code == 405:
            headers.setdefault("Allow", ", ".join(SUPPORTED_METHODS))
        return error_response(diagnostics, record, request, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        diagnostics: Diagnostics = request.app.state.diagnostics
        fields = [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]
        record = diagnostics.factory.create_error(
            "Validation failed for request parameters",
            ErrorCategory.VALIDATION,
            400,
            {"debuggingSteps": [f"Check {field} parameter is provided and well formed" for field in fields]},
            code="VALIDATION_ERROR",
            error_name=type(exc).__name__,
        )
        return error_response(diagnostics, record, request)
