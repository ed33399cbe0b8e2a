"""
Error classification and recoverability decisions.

Assigns one of the five error categories to a raw failure and decides
whether the hosting process may keep running. The decision is
deterministic: a baseline table keyed by category, overridden to
non-recoverable when the failure carries a known fatal code or message.
"""

import errno
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from tutorial_server.models.error import (
    Classification,
    DiagnosticError,
    ErrorCategory,
    ErrorRecord,
)
from tutorial_server.utils.logging import LogEmitter

# Baseline recoverability per category
RECOVERABILITY = {
    ErrorCategory.SERVER: False,
    ErrorCategory.CONFIGURATION: False,
    ErrorCategory.REQUEST: True,
    ErrorCategory.VALIDATION: True,
    ErrorCategory.RESPONSE: True,
}

UNRECOVERABLE_CODES = frozenset([
    "EADDRINUSE",        # port already in use
    "EACCES",            # permission denied
    "ENOMEM",            # out of memory
    "MODULE_NOT_FOUND",  # missing module
    "STACK_OVERFLOW",    # runaway recursion
])

UNRECOVERABLE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"cannot find module",
        r"no module named",
        r"unexpected token",
        r"syntaxerror",
        r"invalid syntax",
        r"referenceerror.*is not defined",
        r"nameerror.*is not defined",
        r"maximum call stack size exceeded",
        r"maximum recursion depth exceeded",
    )
)

# Python exception types that stand for one of the fatal codes
_EXCEPTION_CODES: Tuple[Tuple[type, str], ...] = (
    (ModuleNotFoundError, "MODULE_NOT_FOUND"),
    (RecursionError, "STACK_OVERFLOW"),
    (MemoryError, "ENOMEM"),
    (PermissionError, "EACCES"),
)


@dataclass(frozen=True)
class FailureDetails:
    """Code and text extracted from a raw failure."""

    code: Optional[str]
    text: str
    category: Optional[ErrorCategory] = None


def describe_failure(raw_failure: Any) -> FailureDetails:
    """
    Extract the code and message text from any supported failure shape.

    Supported shapes: ErrorRecord, DiagnosticError, exceptions, mappings
    with ``code``/``message`` keys, strings and None.
    """
    if isinstance(raw_failure, DiagnosticError):
        raw_failure = raw_failure.record

    if isinstance(raw_failure, ErrorRecord):
        return FailureDetails(
            code=raw_failure.code,
            text=f"{raw_failure.error_name}: {raw_failure.message}",
            category=raw_failure.category,
        )

    if isinstance(raw_failure, BaseException):
        return FailureDetails(
            code=exception_code(raw_failure),
            text=f"{type(raw_failure).__name__}: {raw_failure}",
        )

    if isinstance(raw_failure, Mapping):
        code = raw_failure.get("code")
        name = raw_failure.get("name")
        message = raw_failure.get("message") or ""
        text = f"{name}: {message}" if name else str(message)
        return FailureDetails(code=str(code) if code is not None else None, text=text)

    if raw_failure is None:
        return FailureDetails(code=None, text="")

    return FailureDetails(code=None, text=str(raw_failure))


def exception_code(exc: BaseException) -> Optional[str]:
    """
    Symbolic code for an exception.

    Prefers an explicit string ``code`` attribute, then the errno name
    (``EADDRINUSE`` for an OSError with errno 98), then the code implied
    by the exception type.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code

    number = getattr(exc, "errno", None)
    if isinstance(number, int) and number in errno.errorcode:
        return errno.errorcode[number]

    for exc_type, mapped in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return mapped
    return None


class ErrorClassifier:
    """
    Assign categories and recoverability to raw failures.

    Args:
        emitter: Log emitter used to report invalid category hints
    """

    def __init__(self, emitter: LogEmitter):
        self.emitter = emitter

    def classify(self, raw_failure: Any, category_hint: Any = None) -> Classification:
        """
        Classify a raw failure.

        Args:
            raw_failure: Exception, mapping, string, ErrorRecord or None
            category_hint: Suggested category; absent or invalid hints fall
                back to Server with a warning

        Returns:
            Classification with the category and recoverable flag
        """
        details = describe_failure(raw_failure)

        category = ErrorCategory.parse(category_hint)
        if category is None and category_hint is None and details.category is not None:
            category = details.category
        if category is None:
            self.emitter.warn(
                "Missing or invalid error category, defaulting to SERVER_ERROR",
                {
                    "providedCategory": repr(category_hint),
                    "validCategories": [member.value for member in ErrorCategory],
                },
            )
            category = ErrorCategory.SERVER

        return Classification(
            category=category,
            recoverable=self.assess(category, details.code, details.text),
        )

    @staticmethod
    def assess(category: Any, code: Optional[str] = None, message: str = "") -> bool:
        """
        Pure recoverability decision, with no logging.

        Known fatal codes and message patterns always win; otherwise the
        baseline table decides and unknown categories are non-recoverable.
        """
        if code and str(code).upper() in UNRECOVERABLE_CODES:
            return False
        if message and any(pattern.search(message) for pattern in UNRECOVERABLE_PATTERNS):
            return False
        parsed = ErrorCategory.parse(category)
        if parsed is None:
            return False
        return RECOVERABILITY[parsed]
