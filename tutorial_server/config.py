"""
Application configuration management.
"""

from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_ENVIRONMENTS = ("development", "production", "test", "educational")
DEFAULT_ENVIRONMENT = "development"

# Log threshold per environment when LOG_LEVEL is not set explicitly
ENVIRONMENT_LOG_LEVELS = {
    "development": "debug",
    "educational": "debug",
    "production": "warn",
    "test": "error",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "Python Tutorial HTTP Server"
    app_version: str = "1.0.0"
    environment: str = DEFAULT_ENVIRONMENT

    # Server
    host: str = "127.0.0.1"
    port: int = 3000

    # Logging
    log_level: Optional[str] = None
    log_format: Literal["text", "json"] = "text"
    color_output: bool = True

    # Educational features
    educational_prefixes: bool = True
    include_educational_context: bool = True
    include_troubleshooting_tips: bool = True
    show_internal_state: bool = False
    show_timing_info: bool = False

    # Process error handling
    strict_error_handling: bool = False
    exit_grace_period: float = 0.1
    exit_code: int = 1

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value: Optional[str]) -> str:
        """Fall back to development for missing or unsupported environments."""
        if not value:
            return DEFAULT_ENVIRONMENT
        environment = str(value).strip().lower()
        if environment not in SUPPORTED_ENVIRONMENTS:
            return DEFAULT_ENVIRONMENT
        return environment

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 0 < value <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {value}")
        return value

    @field_validator("exit_code")
    @classmethod
    def validate_exit_code(cls, value: int) -> int:
        if value == 0:
            raise ValueError("exit_code must be non-zero")
        return value

    @field_validator("exit_grace_period")
    @classmethod
    def validate_grace_period(cls, value: float) -> float:
        # Bounded so a misconfiguration cannot hold a dying process open
        return min(max(value, 0.0), 5.0)

    @model_validator(mode="after")
    def apply_environment_log_level(self) -> "Settings":
        if not self.log_level:
            self.log_level = ENVIRONMENT_LOG_LEVELS[self.environment]
        self.log_level = self.log_level.strip().lower()
        return self

    @property
    def is_development_like(self) -> bool:
        """Whether stack traces and runtime identifiers may be exposed."""
        return self.environment in ("development", "educational")
