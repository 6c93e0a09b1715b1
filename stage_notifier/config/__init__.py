"""Configuration management for the stage notifier."""

from .environment import (
    EnvironmentConfig,
    load_ambient_overrides,
    load_environment_config,
    parse_recipients,
)
from .exceptions import ConfigurationError
from .loader import load_config
from .models import AppConfig, LogFormat, LoggingConfig, LogLevel, NotificationsConfig

__all__ = [
    "load_config",
    "load_environment_config",
    "load_ambient_overrides",
    "parse_recipients",
    "AppConfig",
    "EnvironmentConfig",
    "LoggingConfig",
    "NotificationsConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
]
