"""Tutorial HTTP server with structured diagnostics and error recovery."""

__version__ = "1.0.0"
