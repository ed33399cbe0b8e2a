"""HTTP route handlers and request-scoped error handling."""
