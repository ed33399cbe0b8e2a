"""
Unit tests for guidance bundles and error categories.
"""

import pytest

from tutorial_server.models.error import ErrorCategory, GuidanceBundle


@pytest.fixture
def base():
    return GuidanceBundle(
        troubleshooting="Check the port",
        debugging_steps=["Run lsof"],
        learning_tips=["Read the error"],
        related_concepts=["Sockets"],
    )


def test_merge_appends_sequences(base):
    """Test that merging appends in order and never truncates."""
    merged = base.merge({
        "debugging_steps": ["Restart"],
        "learningTips": "Use a debugger",
        "relatedConcepts": ["Ports", "Processes"],
    })

    assert merged.troubleshooting == "Check the port"
    assert merged.debugging_steps == ["Run lsof", "Restart"]
    assert merged.learning_tips == ["Read the error", "Use a debugger"]
    assert merged.related_concepts == ["Sockets", "Ports", "Processes"]


def test_merge_replaces_troubleshooting_only_when_non_empty(base):
    """Test the troubleshooting override rule."""
    assert base.merge({"troubleshootingGuidance": "Pick another port"}).troubleshooting == "Pick another port"
    assert base.merge({"troubleshooting": ""}).troubleshooting == "Check the port"


def test_merge_returns_new_bundle(base):
    """Test that the original bundle is left untouched."""
    merged = base.merge(GuidanceBundle(debugging_steps=["Extra"]))

    assert merged is not base
    assert base.debugging_steps == ["Run lsof"]


def test_merge_ignores_unknown_keys_and_none(base):
    """Test that unrelated override keys are dropped."""
    assert base.merge({"color": "red", "debugging_steps": None}) == base
    assert base.merge(None) == base


def test_is_empty():
    """Test empty bundle detection."""
    assert GuidanceBundle().is_empty() is True
    assert GuidanceBundle(learning_tips=["tip"]).is_empty() is False


@pytest.mark.parametrize("value,expected", [
    (ErrorCategory.RESPONSE, ErrorCategory.RESPONSE),
    ("RESPONSE_ERROR", ErrorCategory.RESPONSE),
    ("Configuration", ErrorCategory.CONFIGURATION),
    ("  server ", ErrorCategory.SERVER),
    ("NETWORK_ERROR", None),
    (None, None),
    (3, None),
])
def test_category_parse(value, expected):
    """Test category resolution from names and wire values."""
    assert ErrorCategory.parse(value) is expected


def test_category_label():
    """Test human readable category labels."""
    assert ErrorCategory.VALIDATION.label == "Validation"
