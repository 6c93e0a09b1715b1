"""Configuration file loader."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import AppConfig

DEFAULT_CONFIG_LOCATIONS = (
    Path("stage-notifier.yaml"),
    Path("config") / "stage-notifier.yaml",
)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load and validate the YAML configuration file.

    The file is optional: without an explicit path the default locations are
    tried in order, and built-in defaults are used when none exists. An
    explicit path that does not exist is an error.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config_file = _find_config_file(config_path)
    if config_file is None:
        return AppConfig()

    try:
        with open(config_file, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[f"Ensure {config_file} is readable"],
        ) from e

    if not config_dict:
        return AppConfig()

    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file {config_file} must contain a mapping at the top level"
        )

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            if error["type"] == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif "enum" in error["type"]:
                errors.append(f"Invalid value for '{field_path}': {error['msg']}")
            else:
                errors.append(f"{field_path}: {error['msg']}")

        raise ConfigurationError(
            "Configuration validation failed",
            errors=errors,
            suggestions=["Check that field names and types match the documented schema"],
        ) from e


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """Resolve the config file to read, or None to fall back to defaults."""
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Omit --config to run with built-in defaults",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    return None
