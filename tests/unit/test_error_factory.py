"""
Unit tests for ErrorRecord construction.
"""

import errno

import pytest

from tutorial_server.diagnostics.factory import (
    DEFAULT_STATUS_CODE,
    FALLBACK_MESSAGE,
    GUIDANCE_TEMPLATES,
)
from tutorial_server.models.error import DiagnosticError, ErrorCategory


@pytest.fixture
def factory(diagnostics):
    return diagnostics.factory


def test_create_error_with_template_guidance(factory, fixed_time):
    """Test that records carry the category template and classification."""
    record = factory.create_error("Unsupported method", ErrorCategory.REQUEST, 405)

    assert record.kind == "enriched"
    assert record.message == "Unsupported method"
    assert record.category is ErrorCategory.REQUEST
    assert record.status_code == 405
    assert record.recoverable is True
    assert record.timestamp == fixed_time
    assert record.guidance == GUIDANCE_TEMPLATES[ErrorCategory.REQUEST]


def test_create_error_defaults(factory):
    """Test default category and status."""
    record = factory.create_error("Something broke")

    assert record.category is ErrorCategory.SERVER
    assert record.status_code == DEFAULT_STATUS_CODE
    assert record.recoverable is False


@pytest.mark.parametrize("message", [None, "", "   ", 42])
def test_invalid_message_replaced(factory, message):
    """Test that missing or non-text messages get the fallback message."""
    record = factory.create_error(message, ErrorCategory.REQUEST, 400)

    assert record.message == FALLBACK_MESSAGE


def test_invalid_category_defaults_to_server(factory, sink):
    """Test that unknown categories are replaced with a warning."""
    record = factory.create_error("x", "NETWORK_ERROR", 400)

    assert record.category is ErrorCategory.SERVER
    assert record.recoverable is False
    assert any("Invalid error type provided" in line for line in sink.warnings)


@pytest.mark.parametrize("status_code", [99, 600, "404", True, None])
def test_invalid_status_defaults_to_500(factory, sink, status_code):
    """Test that out-of-range or non-integer status codes become 500."""
    record = factory.create_error("x", ErrorCategory.REQUEST, status_code)

    assert record.status_code == 500
    assert any("Invalid status code provided" in line for line in sink.warnings)


def test_guidance_overrides_merged(factory):
    """Test that overrides extend the template without truncating it."""
    template = GUIDANCE_TEMPLATES[ErrorCategory.VALIDATION]

    record = factory.create_error(
        "Bad name",
        ErrorCategory.VALIDATION,
        400,
        {"troubleshooting": "Name must be text", "debuggingSteps": ["Check name"]},
    )

    assert record.guidance.troubleshooting == "Name must be text"
    assert record.guidance.debugging_steps == [*template.debugging_steps, "Check name"]
    assert record.guidance.learning_tips == template.learning_tips


def test_empty_troubleshooting_override_keeps_template(factory):
    """Test that an empty troubleshooting override is ignored."""
    record = factory.create_error("x", ErrorCategory.REQUEST, 400, {"troubleshooting": ""})

    assert record.guidance.troubleshooting == GUIDANCE_TEMPLATES[ErrorCategory.REQUEST].troubleshooting


def test_fatal_code_overrides_recoverable_category(factory):
    """Test that a fatal code makes a request error unrecoverable."""
    record = factory.create_error("Port taken", ErrorCategory.REQUEST, 400, code="EADDRINUSE")

    assert record.recoverable is False


def test_internal_state_logged_when_enabled(make_settings, make_sink):
    """Test the debug entry for each created record."""
    from tutorial_server.diagnostics.context import build_diagnostics
    from tutorial_server.models.log import LogLevel

    sink = make_sink()
    diagnostics = build_diagnostics(make_settings(show_internal_state=True), sink=sink)

    diagnostics.factory.create_error("x", ErrorCategory.RESPONSE, 500)

    assert any("Error record created: RESPONSE_ERROR" in line for line in sink.at(LogLevel.DEBUG))


def test_from_exception(factory):
    """Test building a record from a raw exception."""
    try:
        raise OSError(errno.EADDRINUSE, "Address already in use")
    except OSError as exc:
        record = factory.from_exception(exc)

    assert record.error_name == "OSError"
    assert record.code == "EADDRINUSE"
    assert record.recoverable is False
    assert record.stack
    assert len(record.stack) <= 10


def test_from_exception_returns_carried_record(factory):
    """Test that DiagnosticError records are passed through unchanged."""
    record = factory.create_error("Bad input", ErrorCategory.VALIDATION, 400)

    assert factory.from_exception(DiagnosticError(record)) is record


def test_with_recoverable_returns_copy(factory):
    """Test that records are immutable and copied on override."""
    record = factory.create_error("x", ErrorCategory.REQUEST, 400)

    changed = record.with_recoverable(False)

    assert changed.recoverable is False
    assert record.recoverable is True
