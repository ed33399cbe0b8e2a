"""Log record data models."""

from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class LogLevel(IntEnum):
    """Log level ordinals, lowest first."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3

    @property
    def tag(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: Union["LogLevel", str, int, None]) -> Optional["LogLevel"]:
        """
        Resolve a level from its name, ordinal or an existing LogLevel.

        Returns None when the value does not name a known level.
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            name = value.strip().upper()
            return _LEVEL_ALIASES.get(name)
        return None


_LEVEL_ALIASES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARN": LogLevel.WARN,
    "WARNING": LogLevel.WARN,
    "ERROR": LogLevel.ERROR,
    "CRITICAL": LogLevel.ERROR,
}


class LogRecord(BaseModel):
    """One timestamped message handed to a sink."""

    level: LogLevel
    message: str
    timestamp: datetime
    context: Dict[str, Any] = Field(default_factory=dict)
    duration: Optional[float] = None
    logger: str = "tutorial_server"
