"""Configuration file schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class NotificationsConfig(BaseModel):
    """Which stage events produce e-mail, and where their links point."""

    notify_states: Optional[List[str]] = Field(
        None,
        description="Stage states that trigger a notification (all states when unset)",
    )
    server_base_url: str = Field(
        "http://localhost:8153",
        min_length=1,
        description="Base URL of the CI server, used for 'See details' links",
    )

    @field_validator("notify_states")
    @classmethod
    def normalize_states(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Strip states and drop blanks; an empty list means no filtering."""
        if v is None:
            return None
        states = [state.strip() for state in v if state and state.strip()]
        return states or None

    @field_validator("server_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped:
            raise ValueError("server_base_url cannot be empty")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    # Defaults are validated too, so level and format are always plain strings
    model_config = {"use_enum_values": True, "validate_default": True}


class AppConfig(BaseModel):
    """Root of the optional stage notifier configuration file."""

    notifications: NotificationsConfig = Field(
        default_factory=NotificationsConfig, description="Notification rules"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
