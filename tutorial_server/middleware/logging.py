"""
Request logging middleware.

Logs every request and response through the application's LogEmitter and
converts exceptions that escaped the route handlers into 500 envelopes,
so request failures never propagate to the server.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tutorial_server.api.errors import error_response
from tutorial_server.diagnostics.context import Diagnostics
from tutorial_server.models.error import ErrorCategory


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging with request ids and a last-resort error envelope."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        diagnostics: Diagnostics = request.app.state.diagnostics
        emitter = diagnostics.emitter
        request_id = new_request_id()
        request.state.request_id = request_id

        client = f"{request.client.host}:{request.client.port}" if request.client else None
        emitter.log_request(
            request.method,
            request.url.path,
            query=request.url.query,
            client=client,
            user_agent=request.headers.get("user-agent"),
            request_id=request_id,
        )

        started = emitter.clock()
        try:
            response = await call_next(request)
        except Exception as exc:
            record = diagnostics.factory.from_exception(exc, ErrorCategory.SERVER, 500)
            response = error_response(diagnostics, record, request, exc=exc)

        duration_ms = (emitter.clock() - started) * 1000.0
        response.headers["X-Request-ID"] = request_id
        emitter.log_response(
            response.status_code,
            duration_ms,
            content_type=response.headers.get("content-type"),
            request_id=request_id,
        )
        return response
