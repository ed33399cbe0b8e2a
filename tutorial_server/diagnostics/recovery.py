"""
Process-scope failure handling.

The RecoveryCoordinator decides, for failures that escaped every request
handler, whether the process keeps running in a degraded state or
terminates with a non-zero exit code.
"""

import os
import sys
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from tutorial_server.config import Settings
from tutorial_server.diagnostics.classifier import ErrorClassifier, describe_failure
from tutorial_server.diagnostics.factory import guidance_template
from tutorial_server.models.error import (
    Classification,
    DiagnosticError,
    ErrorCategory,
    ErrorRecord,
    GuidanceBundle,
)
from tutorial_server.utils.logging import LogEmitter


class Outcome(str, Enum):
    """Terminal outcome of handling a process error."""

    CONTINUED = "continued"
    TERMINATED = "terminated"


class RecoveryCoordinator:
    """
    Log, classify and act on process-scope failures.

    Args:
        settings: Exit code, grace period and educational output flags
        emitter: Log emitter
        classifier: Classifier used for failures not yet classified
        terminate: Called once with the exit code (defaults to ``os._exit``)
        sleep: Used for the grace delay before terminating
        clock: Monotonic clock used to report uptime
    """

    def __init__(
        self,
        settings: Settings,
        emitter: LogEmitter,
        classifier: ErrorClassifier,
        terminate: Callable[[int], Any] = os._exit,
        sleep: Callable[[float], Any] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.emitter = emitter
        self.classifier = classifier
        self.terminate = terminate
        self.sleep = sleep
        self.clock = clock
        self.started_at = clock()
        self.terminated = False

    def handle_process_error(
        self, raw_failure: Any, context: Optional[Mapping[str, Any]] = None
    ) -> Outcome:
        """
        Handle a failure that escaped request scope.

        Args:
            raw_failure: Exception, ErrorRecord, DiagnosticError, mapping or string
            context: Extra log context. ``category`` is used as the
                classification hint (default Server); a boolean
                ``recoverable`` overrides the classification explicitly.

        Returns:
            Outcome.TERMINATED after the terminator has been invoked, or
            Outcome.CONTINUED when the process keeps running
        """
        context = dict(context or {})
        try:
            classification, record = self._classify(raw_failure, context)
            details = describe_failure(raw_failure)

            log_context: Dict[str, Any] = dict(context)
            log_context.update({
                "errorCode": details.code or "UNKNOWN",
                "category": classification.category.value,
                "recoverable": classification.recoverable,
                "pid": os.getpid(),
                "uptime": int(self.clock() - self.started_at),
            })

            exc = raw_failure if isinstance(raw_failure, BaseException) else None
            message = record.message if record is not None else (details.text or "Unknown process error")
            self.emitter.error(f"Process error: {message}", log_context, exc=exc)

            if not classification.recoverable:
                self._terminate(classification, record, details.code)
                return Outcome.TERMINATED

            self.emitter.warn(
                "Process error is recoverable, continuing operation in degraded state",
                {
                    "errorCode": details.code or "UNKNOWN",
                    "category": classification.category.value,
                    "recoveryStrategy": "Continue with degraded functionality",
                },
            )
            return Outcome.CONTINUED

        except Exception as internal:
            self.emitter.error(
                "Failed while handling process error, forcing termination",
                {"recoveryAction": "Process termination required"},
                exc=internal,
            )
            self._exit()
            return Outcome.TERMINATED

    def _classify(
        self, raw_failure: Any, context: Dict[str, Any]
    ) -> Tuple[Classification, Optional[ErrorRecord]]:
        record = raw_failure.record if isinstance(raw_failure, DiagnosticError) else raw_failure
        if getattr(record, "kind", None) == "enriched":
            classification = Classification(category=record.category, recoverable=record.recoverable)
        else:
            record = None
            hint = context.get("category", ErrorCategory.SERVER)
            classification = self.classifier.classify(raw_failure, hint)

        override = context.pop("recoverable", None)
        if isinstance(override, bool):
            classification = Classification(category=classification.category, recoverable=override)
            if record is not None:
                record = record.with_recoverable(override)
        return classification, record

    def _terminate(
        self,
        classification: Classification,
        record: Optional[ErrorRecord],
        code: Optional[str],
    ) -> None:
        self.emitter.error(
            "Error is unrecoverable, process will terminate",
            {
                "errorCode": code or "UNKNOWN",
                "category": classification.category.value,
                "recoveryAction": "Process termination required",
                "exitCode": self.settings.exit_code,
            },
        )
        if self.settings.include_educational_context:
            guidance = record.guidance if record is not None else guidance_template(classification.category)
            self.emitter.print_block(
                "TROUBLESHOOTING GUIDANCE FOR PROCESS ERROR",
                self._guidance_lines(classification, guidance, code),
            )
        self._exit()

    def _guidance_lines(
        self, classification: Classification, guidance: GuidanceBundle, code: Optional[str]
    ) -> list:
        lines = [
            f"Error Category: {classification.category.label}",
            f"Troubleshooting: {guidance.troubleshooting}",
        ]
        if code == "EADDRINUSE":
            port = self.settings.port
            lines += [
                "",
                "Quick Fix Steps:",
                f"1. Change port: PORT={port + 1} python -m tutorial_server.main",
                f"2. Find the process holding the port: lsof -ti:{port}",
                f"3. Check listening sockets: netstat -tulpn | grep {port}",
            ]
        if guidance.debugging_steps:
            lines += ["", "Debugging Steps:"]
            lines += [f"{index}. {step}" for index, step in enumerate(guidance.debugging_steps, start=1)]
        return lines

    def _exit(self) -> None:
        """Invoke the terminator once, after the grace delay."""
        if self.terminated:
            return
        self.terminated = True
        # Advisory only: gives buffered writes a chance, guarantees nothing
        self.sleep(self.settings.exit_grace_period)
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.flush()
            except (OSError, ValueError, AttributeError):
                continue
        self.terminate(self.settings.exit_code)


def install_process_hooks(coordinator: RecoveryCoordinator, loop=None) -> Callable[[], None]:
    """
    Route uncaught exceptions into ``coordinator``.

    Covers ``sys.excepthook``, ``threading.excepthook`` and, when ``loop`` is
    given, the asyncio loop exception handler. Unhandled asyncio failures
    only terminate when ``strict_error_handling`` is on.

    Returns:
        Callable restoring the previous hooks
    """
    previous_excepthook = sys.excepthook
    previous_threading_hook = threading.excepthook
    previous_loop_handler = loop.get_exception_handler() if loop is not None else None

    def excepthook(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            previous_excepthook(exc_type, exc, tb)
            return
        coordinator.handle_process_error(exc, {"source": "uncaught_exception"})

    def threading_hook(args):
        if args.exc_type is SystemExit:
            return
        coordinator.handle_process_error(
            args.exc_value,
            {
                "source": "thread_exception",
                "thread": args.thread.name if args.thread is not None else None,
            },
        )

    def loop_exception_handler(_loop, handler_context):
        failure = handler_context.get("exception") or handler_context.get("message")
        context: Dict[str, Any] = {
            "source": "unhandled_async_exception",
            "detail": handler_context.get("message"),
        }
        if not coordinator.settings.strict_error_handling:
            context["recoverable"] = True
        coordinator.handle_process_error(failure, context)

    sys.excepthook = excepthook
    threading.excepthook = threading_hook
    if loop is not None:
        loop.set_exception_handler(loop_exception_handler)

    def restore() -> None:
        sys.excepthook = previous_excepthook
        threading.excepthook = previous_threading_hook
        if loop is not None:
            loop.set_exception_handler(previous_loop_handler)

    return restore
