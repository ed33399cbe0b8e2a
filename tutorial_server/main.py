"""
FastAPI application entry point.
"""

import asyncio
import socket
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from tutorial_server.api import hello
from tutorial_server.api.errors import register_exception_handlers
from tutorial_server.config import Settings
from tutorial_server.diagnostics.context import Diagnostics, build_diagnostics
from tutorial_server.diagnostics.recovery import install_process_hooks
from tutorial_server.middleware.logging import RequestLoggingMiddleware
from tutorial_server.utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire logging and process hooks for the lifetime of the server."""
    diagnostics: Diagnostics = app.state.diagnostics
    settings = diagnostics.settings

    setup_logging(diagnostics.emitter)
    restore_hooks = install_process_hooks(diagnostics.recovery, asyncio.get_running_loop())
    diagnostics.emitter.log_server_event(
        "startup",
        {"host": settings.host, "port": settings.port, "environment": settings.environment},
    )
    try:
        yield
    finally:
        diagnostics.emitter.log_server_event("shutdown", {"environment": settings.environment})
        restore_hooks()


def create_app(
    settings: Optional[Settings] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted
        diagnostics: Prebuilt diagnostics context (tests inject sinks and
            terminators this way)

    Returns:
        Configured FastAPI application
    """
    if diagnostics is None:
        diagnostics = build_diagnostics(settings or Settings())
    settings = diagnostics.settings

    app = FastAPI(
        title=settings.app_name,
        description="Educational HTTP server demonstrating request handling and error recovery",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.diagnostics = diagnostics

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for process supervisors."""
        return {"status": "healthy", "version": settings.app_version}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "endpoints": ["/hello"],
        }

    app.include_router(hello.router)
    return app


def main(diagnostics: Optional[Diagnostics] = None) -> None:
    """
    Run the server with uvicorn.

    The listening socket is bound here rather than by uvicorn, so bind
    failures (EADDRINUSE, EACCES) reach the recovery coordinator instead of
    uvicorn's own exit path.

    Args:
        diagnostics: Prebuilt diagnostics context; built from the environment
            when omitted
    """
    import uvicorn

    app = create_app(diagnostics=diagnostics)
    diagnostics = app.state.diagnostics
    settings = diagnostics.settings
    try:
        sock = socket.create_server((settings.host, settings.port))
        server = uvicorn.Server(uvicorn.Config(app, log_config=None))
        server.run(sockets=[sock])
    except Exception as e:
        diagnostics.recovery.handle_process_error(
            e, {"source": "startup", "host": settings.host, "port": settings.port}
        )


if __name__ == "__main__":
    main()
