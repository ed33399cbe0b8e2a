"""
Unit tests for error classification.
"""

import errno

import pytest

from tutorial_server.diagnostics.classifier import (
    ErrorClassifier,
    describe_failure,
    exception_code,
)
from tutorial_server.models.error import ErrorCategory


@pytest.fixture
def classifier(emitter):
    return ErrorClassifier(emitter)


@pytest.mark.parametrize("category,expected", [
    (ErrorCategory.SERVER, False),
    (ErrorCategory.CONFIGURATION, False),
    (ErrorCategory.REQUEST, True),
    (ErrorCategory.VALIDATION, True),
    (ErrorCategory.RESPONSE, True),
])
def test_baseline_recoverability(classifier, category, expected):
    """Test the per-category recoverability table."""
    result = classifier.classify(ValueError("something odd"), category)

    assert result.category is category
    assert result.recoverable is expected


def test_category_hint_accepts_names(classifier):
    """Test that hints may be wire values or short names."""
    assert classifier.classify("x", "VALIDATION_ERROR").category is ErrorCategory.VALIDATION
    assert classifier.classify("x", "request").category is ErrorCategory.REQUEST


def test_invalid_hint_defaults_to_server_with_warning(classifier, sink):
    """Test that an unknown category hint falls back to Server."""
    result = classifier.classify(ValueError("oops"), "NETWORK_ERROR")

    assert result.category is ErrorCategory.SERVER
    assert result.recoverable is False
    assert len(sink.warnings) == 1
    assert "defaulting to SERVER_ERROR" in sink.warnings[0]


def test_missing_hint_defaults_to_server(classifier, sink):
    """Test that classification without a hint still yields a category."""
    result = classifier.classify(None)

    assert result.category is ErrorCategory.SERVER
    assert len(sink.warnings) == 1


@pytest.mark.parametrize("code", ["EADDRINUSE", "EACCES", "ENOMEM", "MODULE_NOT_FOUND", "STACK_OVERFLOW"])
def test_fatal_codes_override_category(classifier, code):
    """Test that fatal codes are never recoverable, whatever the category."""
    result = classifier.classify({"code": code, "message": "failure"}, ErrorCategory.REQUEST)

    assert result.recoverable is False


@pytest.mark.parametrize("message", [
    "Cannot find module 'express'",
    "No module named 'fastapi'",
    "SyntaxError: Unexpected token }",
    "invalid syntax (main.py, line 3)",
    "ReferenceError: foo is not defined",
    "NameError: name 'foo' is not defined",
    "Maximum call stack size exceeded",
    "maximum recursion depth exceeded",
])
def test_fatal_messages_override_category(classifier, message):
    """Test that fatal message patterns are never recoverable."""
    result = classifier.classify(message, ErrorCategory.VALIDATION)

    assert result.recoverable is False


def test_python_exceptions_map_to_fatal_codes(classifier):
    """Test that Python exception types imply fatal codes."""
    assert classifier.classify(ModuleNotFoundError("x"), ErrorCategory.REQUEST).recoverable is False
    assert classifier.classify(RecursionError("x"), ErrorCategory.REQUEST).recoverable is False
    assert classifier.classify(MemoryError(), ErrorCategory.REQUEST).recoverable is False


def test_exception_code_prefers_errno_name():
    """Test that OSErrors are identified by their errno name."""
    exc = OSError(errno.EADDRINUSE, "Address already in use")

    assert exception_code(exc) == "EADDRINUSE"


def test_exception_code_uses_explicit_code():
    """Test that an explicit string code attribute wins."""
    exc = RuntimeError("custom")
    exc.code = "CUSTOM_FAILURE"

    assert exception_code(exc) == "CUSTOM_FAILURE"
    assert exception_code(RuntimeError("plain")) is None


def test_describe_failure_shapes(diagnostics):
    """Test code and text extraction from supported failure shapes."""
    record = diagnostics.factory.create_error("Bad input", ErrorCategory.VALIDATION, 400)

    assert describe_failure(record).category is ErrorCategory.VALIDATION
    assert describe_failure(ValueError("bad")).text == "ValueError: bad"
    assert describe_failure({"code": "E1", "message": "m"}).code == "E1"
    assert describe_failure(None).text == ""
    assert describe_failure("plain text").text == "plain text"


def test_record_category_used_without_hint(classifier, diagnostics, sink):
    """Test that an enriched record keeps its own category."""
    record = diagnostics.factory.create_error("Bad input", ErrorCategory.VALIDATION, 400)

    result = classifier.classify(record)

    assert result.category is ErrorCategory.VALIDATION
    assert result.recoverable is True
    assert sink.warnings == []


def test_assess_is_pure(sink):
    """Test that assess decides without logging."""
    assert ErrorClassifier.assess(ErrorCategory.REQUEST) is True
    assert ErrorClassifier.assess("UNKNOWN") is False
    assert ErrorClassifier.assess(ErrorCategory.REQUEST, code="eaddrinuse") is False
    assert sink.lines == []
