"""
Hello endpoint.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from tutorial_server.diagnostics.context import Diagnostics

HELLO_MESSAGE = "Hello world"

router = APIRouter(tags=["hello"])


def get_diagnostics(request: Request) -> Diagnostics:
    """Diagnostics context attached to the application at creation."""
    return request.app.state.diagnostics


@router.get("/hello", response_class=PlainTextResponse)
async def hello(diagnostics: Diagnostics = Depends(get_diagnostics)) -> PlainTextResponse:
    """Return the tutorial greeting as plain text."""
    diagnostics.emitter.debug(
        "Hello request processing completed",
        {"endpoint": "/hello", "concept": "HTTP GET method for resource retrieval"},
    )
    return PlainTextResponse(
        HELLO_MESSAGE,
        headers={"X-Educational-Context": "Hello World Endpoint Demonstration"},
    )
