"""
Console logging for the tutorial server.

This module provides the Log Emitter used by every diagnostics component:
- Level filtering against a configured threshold (debug < info < warn < error)
- Text output with timestamp, level tag, tutorial prefix, context and duration
- JSON line output for machine-readable logs
- Level-selected console streams (debug/info on stdout, warn/error on stderr)
- Performance timers on a monotonic clock
- A bridge so stdlib ``logging`` records from uvicorn/fastapi reach the same sink
"""

import json
import logging
import os
import platform
import sys
import time
import traceback
from datetime import datetime, timezone
from logging import LogRecord as StdLogRecord
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TextIO

from tutorial_server.config import Settings
from tutorial_server.models.log import LogLevel, LogRecord

EDUCATIONAL_PREFIX = "[Python Tutorial]"
STACK_DEPTH = 10

COLOR_CODES = {
    "RESET": "\x1b[0m",
    "RED": "\x1b[31m",
    "GREEN": "\x1b[32m",
    "YELLOW": "\x1b[33m",
    "BLUE": "\x1b[34m",
    "MAGENTA": "\x1b[35m",
    "CYAN": "\x1b[36m",
    "GRAY": "\x1b[90m",
}

LEVEL_COLORS = {
    LogLevel.DEBUG: COLOR_CODES["CYAN"],
    LogLevel.INFO: COLOR_CODES["GREEN"],
    LogLevel.WARN: COLOR_CODES["YELLOW"],
    LogLevel.ERROR: COLOR_CODES["RED"],
}

# Attributes every stdlib LogRecord carries; anything else came in via ``extra``
_STD_RECORD_FIELDS = frozenset([
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 timestamp with millisecond precision and a Z suffix."""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_stack(exc: BaseException, depth: int = STACK_DEPTH) -> List[str]:
    """Return up to ``depth`` lines of an exception's formatted traceback."""
    lines: List[str] = []
    for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
        lines.extend(line for line in chunk.rstrip("\n").split("\n") if line.strip())
    return lines[:depth]


class ConsoleSink:
    """
    Serial sink writing one line per call to the stream picked by level.

    Streams are resolved at write time so redirected ``sys.stdout`` and
    ``sys.stderr`` (pytest capture, uvicorn reloader) are honoured.
    """

    def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None):
        self._stdout = stdout
        self._stderr = stderr

    def stream_for(self, level: LogLevel) -> TextIO:
        if level >= LogLevel.WARN:
            return self._stderr or sys.stderr
        return self._stdout or sys.stdout

    def is_tty(self, level: LogLevel) -> bool:
        stream = self.stream_for(level)
        isatty = getattr(stream, "isatty", None)
        try:
            return bool(isatty and isatty())
        except ValueError:
            # Closed stream
            return False

    def write(self, level: LogLevel, line: str) -> None:
        stream = self.stream_for(level)
        stream.write(line + "\n")
        stream.flush()


class PerformanceTimer:
    """Monotonic stopwatch identified by a label."""

    def __init__(self, label: str, clock: Callable[[], float] = time.perf_counter):
        self.label = label
        self._clock = clock
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.ended_at is None

    def start(self) -> "PerformanceTimer":
        self.started_at = self._clock()
        self.ended_at = None
        return self

    def stop(self) -> float:
        """Stop the timer and return the elapsed time in milliseconds."""
        if not self.running:
            return 0.0
        self.ended_at = self._clock()
        return (self.ended_at - self.started_at) * 1000.0

    @staticmethod
    def performance_level(duration_ms: float) -> str:
        if duration_ms < 1:
            return "Excellent"
        if duration_ms < 10:
            return "Very Good"
        if duration_ms < 50:
            return "Good"
        if duration_ms < 100:
            return "Acceptable"
        if duration_ms < 500:
            return "Slow"
        return "Very Slow"


class LogEmitter:
    """
    Level-filtered, context-enriched logger writing to a single serial sink.

    One emitter is built by the hosting application (see
    ``tutorial_server.diagnostics.context``) and handed to every component.

    Args:
        settings: Application settings (threshold, format and educational flags)
        sink: Object with ``write(level, line)``; defaults to ConsoleSink
        clock: Monotonic clock in seconds, used by timers
        wall_clock: Returns the current aware datetime for timestamps
        name: Logger name reported in JSON output
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        sink: Optional[Any] = None,
        clock: Callable[[], float] = time.perf_counter,
        wall_clock: Callable[[], datetime] = _utc_now,
        name: str = "tutorial_server",
    ):
        self.settings = settings or Settings()
        self.sink = sink if sink is not None else ConsoleSink()
        self.clock = clock
        self.wall_clock = wall_clock
        self.name = name
        self.threshold = LogLevel.parse(self.settings.log_level)
        if self.threshold is None:
            self.threshold = LogLevel.INFO
        # Unmatched start_timer calls stay here until process exit
        self._timers: Dict[str, PerformanceTimer] = {}

    def is_enabled(self, level: LogLevel) -> bool:
        return level >= self.threshold

    def emit(self, level: Any, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        """
        Write one log line if ``level`` meets the threshold.

        Never raises: formatting or write failures fall back to a bare line
        on stderr.
        """
        parsed = LogLevel.parse(level)
        if parsed is None:
            parsed = LogLevel.INFO
        if parsed < self.threshold:
            return

        try:
            record = self._build_record(parsed, message, context)
            self.sink.write(parsed, self.format(record))
        except Exception as exc:
            self._write_fallback(parsed, message, exc)

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.WARN, message, context)

    def error(
        self,
        message: str,
        context: Optional[Mapping[str, Any]] = None,
        exc: Optional[BaseException] = None,
    ) -> None:
        """
        Log at error level, optionally describing an exception.

        Args:
            message: Log message
            context: Additional context fields
            exc: Exception whose name, message, code and stack are added
        """
        if not self.is_enabled(LogLevel.ERROR):
            return
        merged: Dict[str, Any] = {}
        if exc is not None:
            merged["errorName"] = type(exc).__name__
            merged["errorMessage"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                merged["errorCode"] = code
            if self.settings.is_development_like:
                merged["stackTrace"] = format_stack(exc)
        merged.update(context or {})
        self.emit(LogLevel.ERROR, message, merged)

    def bind(self, **context: Any) -> "BoundEmitter":
        """Return an emitter view that adds ``context`` to every entry."""
        return BoundEmitter(self, context)

    def format(self, record: LogRecord) -> str:
        if self.settings.log_format == "json":
            return self.format_json(record)
        return self.format_text(record)

    def format_text(self, record: LogRecord) -> str:
        colored = self.settings.color_output and self.sink_is_tty(record.level)
        color = LEVEL_COLORS[record.level] if colored else ""
        reset = COLOR_CODES["RESET"] if colored else ""

        parts = [f"{color}{format_timestamp(record.timestamp)} [{record.level.tag:<5}]{reset}"]
        if self.settings.educational_prefixes:
            parts.append(f"{color}{EDUCATIONAL_PREFIX}{reset}")
        parts.append(record.message)
        if record.context:
            gray = COLOR_CODES["GRAY"] if colored else ""
            parts.append(f"{gray}Context: {_dumps(record.context)}{reset}")
        if record.duration is not None:
            blue = COLOR_CODES["BLUE"] if colored else ""
            parts.append(f"{blue}[{record.duration:.2f}ms]{reset}")
        line = " ".join(parts)

        troubleshooting = record.context.get("troubleshooting")
        if (
            record.level is LogLevel.ERROR
            and self.settings.include_troubleshooting_tips
            and troubleshooting
        ):
            yellow = COLOR_CODES["YELLOW"] if colored else ""
            line += f"\n{yellow}Tip: {troubleshooting}{reset}"
        return line

    def format_json(self, record: LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": format_timestamp(record.timestamp),
            "level": record.level.tag,
            "logger": record.logger,
            "message": record.message,
        }
        if record.context:
            log_data["context"] = record.context
        if record.duration is not None:
            log_data["duration_ms"] = round(record.duration, 2)
        return _dumps(log_data)

    def sink_is_tty(self, level: LogLevel) -> bool:
        is_tty = getattr(self.sink, "is_tty", None)
        return bool(is_tty and is_tty(level))

    def print_block(self, title: str, lines: Iterable[str], width: int = 80) -> None:
        """
        Write a framed guidance block to the error stream.

        The block bypasses the threshold; it is only printed on explicit
        request (troubleshooting output before termination).
        """
        rule = "=" * width
        body = "\n".join([rule, title, rule, *lines, rule])
        try:
            self.sink.write(LogLevel.ERROR, "\n" + body + "\n")
        except Exception as exc:
            self._write_fallback(LogLevel.ERROR, title, exc)

    def start_timer(self, label: str) -> PerformanceTimer:
        """
        Start a timer; a label that is already running is left untouched.

        Returns:
            The running timer for ``label``
        """
        existing = self._timers.get(label)
        if existing is not None and existing.running:
            self.warn(
                f'Timer "{label}" is already running',
                {"action": "start", "status": "already_running", "label": label},
            )
            return existing

        timer = PerformanceTimer(label, self.clock).start()
        self._timers[label] = timer
        if self.settings.show_timing_info:
            self.debug(f"Started performance timer: {label}", {"action": "timer_start", "label": label})
        return timer

    def end_timer(self, label: str) -> float:
        """
        Stop a timer and return its duration in milliseconds.

        Returns 0 (and logs a warning) when no timer runs under ``label``.
        """
        timer = self._timers.pop(label, None)
        if timer is None or not timer.running:
            self.warn(
                f'Performance timer "{label}" not found',
                {
                    "action": "timer_end_failed",
                    "label": label,
                    "availableTimers": self.active_timers(),
                    "troubleshooting": "Ensure timer was started before attempting to end it",
                },
            )
            return 0.0

        duration = timer.stop()
        level = PerformanceTimer.performance_level(duration)
        self.info(
            f'Performance timer "{label}" completed: {duration:.2f}ms ({level})',
            {"label": label, "duration": round(duration, 2), "performanceLevel": level},
        )
        return duration

    def active_timers(self) -> List[str]:
        return sorted(label for label, timer in self._timers.items() if timer.running)

    def log_request(
        self,
        method: str,
        path: str,
        query: str = "",
        client: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Log an incoming HTTP request."""
        agent = user_agent or "Unknown"
        if len(agent) > 50:
            agent = agent[:50] + "..."
        context: Dict[str, Any] = {
            "method": method,
            "path": path,
            "query": query,
            "userAgent": agent,
        }
        if request_id:
            context["requestId"] = request_id
        message = f"Incoming HTTP request: {method} {path}"
        if client:
            message += f" from {client}"
        self.info(message, context)

    def log_response(
        self,
        status_code: int,
        duration_ms: float,
        content_type: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Log a completed HTTP response with its status category and duration."""
        category = status_category(status_code)
        context: Dict[str, Any] = {
            "statusCode": status_code,
            "statusCategory": category,
            "duration": round(duration_ms, 2),
            "contentType": content_type or "Not set",
        }
        if request_id:
            context["requestId"] = request_id
        if duration_ms > 1000:
            context["troubleshooting"] = (
                "Very slow response - investigate server performance and network conditions"
            )
        self.info(f"HTTP response sent: {status_code} ({category})", context)

    def log_server_event(self, event: str, details: Optional[Mapping[str, Any]] = None) -> None:
        """
        Log a server lifecycle event.

        Startup/listening/shutdown are logged at info, error/crash at error,
        warning at warn.
        """
        details = dict(details or {})
        name = event.lower()
        level = _SERVER_EVENT_LEVELS.get(name, LogLevel.INFO)
        context: Dict[str, Any] = {
            "event": event,
            "pid": os.getpid(),
            "pythonVersion": platform.python_version(),
            "platform": sys.platform,
        }
        context.update(details)

        message = f"Server event: {event.upper()}"
        if name in ("startup", "listening"):
            message = f"Server {event.upper()} - Tutorial application ready for learning!"
            if details.get("host") and details.get("port"):
                context["testUrls"] = [f"http://{details['host']}:{details['port']}/hello"]
        if name == "error":
            code = details.get("code")
            if code == "EADDRINUSE":
                context["troubleshooting"] = (
                    "Port already in use - try a different PORT environment variable "
                    "or stop the conflicting process"
                )
            elif code == "EACCES":
                context["troubleshooting"] = (
                    "Permission denied - try using a port number above 1024 "
                    "or run with elevated privileges"
                )
        self.emit(level, message, context)

    def _build_record(
        self, level: LogLevel, message: Any, context: Optional[Mapping[str, Any]]
    ) -> LogRecord:
        context = dict(context or {})
        duration = context.get("duration")
        if duration is not None:
            try:
                duration = float(duration)
            except (TypeError, ValueError):
                duration = None
        return LogRecord(
            level=level,
            message=str(message),
            timestamp=self.wall_clock(),
            context=context,
            duration=duration,
            logger=self.name,
        )

    def _write_fallback(self, level: LogLevel, message: Any, exc: BaseException) -> None:
        try:
            text = str(message)
        except Exception:
            text = "<unprintable message>"
        try:
            sys.stderr.write(f"[LOGGING ERROR] {level.tag} {text}\n")
            sys.stderr.write(f"Logging error: {type(exc).__name__}: {exc}\n")
            sys.stderr.flush()
        except (OSError, ValueError):
            # stderr itself is gone; nowhere left to report
            return


class BoundEmitter:
    """View over a LogEmitter that merges fixed context into every entry."""

    def __init__(self, emitter: LogEmitter, context: Mapping[str, Any]):
        self.emitter = emitter
        self.context = dict(context)

    def emit(self, level: Any, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        merged = dict(self.context)
        merged.update(context or {})
        self.emitter.emit(level, message, merged)

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(LogLevel.WARN, message, context)

    def error(
        self,
        message: str,
        context: Optional[Mapping[str, Any]] = None,
        exc: Optional[BaseException] = None,
    ) -> None:
        merged = dict(self.context)
        merged.update(context or {})
        self.emitter.error(message, merged, exc=exc)


_SERVER_EVENT_LEVELS = {
    "startup": LogLevel.INFO,
    "start": LogLevel.INFO,
    "listening": LogLevel.INFO,
    "shutdown": LogLevel.INFO,
    "stop": LogLevel.INFO,
    "close": LogLevel.INFO,
    "error": LogLevel.ERROR,
    "crash": LogLevel.ERROR,
    "warning": LogLevel.WARN,
    "warn": LogLevel.WARN,
}


def status_category(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "Success"
    if 300 <= status_code < 400:
        return "Redirect"
    if 400 <= status_code < 500:
        return "Client Error"
    if status_code >= 500:
        return "Server Error"
    return "Unknown"


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


class EmitterHandler(logging.Handler):
    """
    Forward stdlib ``logging`` records into a LogEmitter.

    Extra fields passed via ``extra=`` become context entries, the
    exception (if any) is summarised the same way ``LogEmitter.error`` does.
    """

    def __init__(self, emitter: LogEmitter, level: int = logging.NOTSET):
        super().__init__(level)
        self.emitter = emitter

    def emit(self, record: StdLogRecord) -> None:
        try:
            context: Dict[str, Any] = {"logger": record.name}
            for key, value in record.__dict__.items():
                if key not in _STD_RECORD_FIELDS and not key.startswith("_"):
                    context[key] = value

            level = _from_std_level(record.levelno)
            message = record.getMessage()
            if record.exc_info and record.exc_info[1] is not None:
                self.emitter.error(message, context, exc=record.exc_info[1])
            else:
                self.emitter.emit(level, message, context)
        except Exception:
            self.handleError(record)


def _from_std_level(levelno: int) -> LogLevel:
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


_STD_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def setup_logging(emitter: LogEmitter) -> None:
    """
    Route stdlib logging through ``emitter``.

    Sets up:
    - An EmitterHandler on the root logger at the emitter's threshold,
      replacing one installed by an earlier call
    - Quieter third-party loggers
    """
    handler = EmitterHandler(emitter)

    root_logger = logging.getLogger()
    root_logger.setLevel(_STD_LEVELS[emitter.threshold])
    for existing in list(root_logger.handlers):
        if isinstance(existing, EmitterHandler):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Request/response lines come from RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
