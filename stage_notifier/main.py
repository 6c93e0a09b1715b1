"""Command-line entry point for the stage notifier.

Two modes:

    stage-notifier --event stage-status.json
        Notify the configured recipients about a stage status event

    stage-notifier --to dev@example.com --subject "Build Failed" --body "See logs"
        Send a single message, e.g. to check SMTP settings
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from stage_notifier.config.environment import (
    EnvironmentConfig,
    load_ambient_overrides,
    load_environment_config,
    parse_recipients,
)
from stage_notifier.config.exceptions import ConfigurationError
from stage_notifier.config.loader import load_config
from stage_notifier.config.models import AppConfig
from stage_notifier.domain.models import StageStatusEvent
from stage_notifier.logging import get_logger
from stage_notifier.logging.config import configure_logging
from stage_notifier.mail.models import DeliveryResult
from stage_notifier.mail.sender import SMTPMailSender
from stage_notifier.notifications.service import NotificationService

logger = get_logger(__name__, component="cli")

EXIT_OK = 0
EXIT_DELIVERY_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stage-notifier",
        description="Stage Notifier - e-mail notifications for build stage status changes",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: stage-notifier.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--event",
        type=Path,
        default=None,
        help="Stage status JSON payload to notify about",
    )
    parser.add_argument(
        "--to",
        default=None,
        help="Comma-separated recipient addresses (overrides NOTIFY_RECIPIENTS with --event)",
    )
    parser.add_argument("--subject", default=None, help="Subject for a single send")
    parser.add_argument("--body", default="", help="Body for a single send")
    return parser


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load the config file and environment, resolving the log level.

    Log level priority: CLI > environment > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config = load_config(config_path)
    env_config = load_environment_config()

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def read_event(path: Path) -> StageStatusEvent:
    """Load a stage status event from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return StageStatusEvent.from_payload(payload)
    except OSError as e:
        raise ConfigurationError(f"Failed to read event file {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid stage status event in {path}: {e}",
            suggestions=["The file must hold a stage-status request body as JSON"],
        ) from e


def cli_recipients(value: str) -> List[str]:
    """Validate the addresses given with --to.

    Raises:
        ConfigurationError: If any address is invalid
    """
    try:
        return parse_recipients(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid --to value: {e}",
            suggestions=["Pass one or more comma-separated e-mail addresses"],
        ) from e


def run(
    args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig
) -> List[DeliveryResult]:
    sender = SMTPMailSender(env_config.to_smtp_settings(), ambient=load_ambient_overrides())

    if args.event is not None:
        event = read_event(args.event)
        recipients = cli_recipients(args.to) if args.to else env_config.recipients
        if not recipients:
            raise ConfigurationError(
                "No recipients to notify",
                suggestions=["Set NOTIFY_RECIPIENTS or pass --to"],
            )

        service = NotificationService(
            sender,
            recipients,
            server_base_url=env_config.server_base_url or app_config.notifications.server_base_url,
            notify_states=app_config.notifications.notify_states,
        )
        return service.notify(event)

    if not args.to or args.subject is None:
        raise ConfigurationError(
            "Nothing to send",
            suggestions=["Pass --event PATH, or --to and --subject for a single message"],
        )

    recipients = cli_recipients(args.to)
    return [sender.send(args.subject, args.body, recipient) for recipient in recipients]


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        0 when every delivery succeeded (or nothing needed sending),
        1 when a delivery failed, 2 on configuration or usage errors
    """
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=os.environ.get("ENVIRONMENT", "local"),
        )
        results = run(args, app_config, env_config)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e.message}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return EXIT_USAGE
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if all(result.is_success() for result in results):
        return EXIT_OK
    return EXIT_DELIVERY_FAILED


if __name__ == "__main__":
    sys.exit(main())
