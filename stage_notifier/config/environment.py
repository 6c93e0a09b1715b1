"""Environment variable loading and validation."""

import os
from typing import Any, Dict, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from stage_notifier.mail.models import SMTPSettings
from stage_notifier.mail.properties import CONNECTION_TIMEOUT, READ_TIMEOUT

from .exceptions import ConfigurationError

# Operator-level overrides for mail properties, keyed by environment variable
AMBIENT_PROPERTY_VARIABLES = {
    "MAIL_SMTP_CONNECTIONTIMEOUT": CONNECTION_TIMEOUT,
    "MAIL_SMTP_TIMEOUT": READ_TIMEOUT,
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """SMTP and runtime settings taken from the process environment."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_username: Optional[str],
        smtp_password: Optional[str],
        smtp_from: str,
        smtp_tls: bool = False,
        recipients: Optional[List[str]] = None,
        server_base_url: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.smtp_from = smtp_from
        self.smtp_tls = smtp_tls
        self.recipients = list(recipients or [])
        self.server_base_url = server_base_url
        self.log_level = log_level

    def to_smtp_settings(self) -> SMTPSettings:
        """Build the immutable settings value the mail sender is keyed on."""
        return SMTPSettings(
            hostname=self.smtp_host,
            port=self.smtp_port,
            username=self.smtp_username,
            password=self.smtp_password,
            from_email=self.smtp_from,
            tls=self.smtp_tls,
        )


def load_environment_config(environ: Optional[Mapping[str, str]] = None) -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required:
    - SMTP_HOST: SMTP server hostname
    - SMTP_PORT: SMTP server port (1-65535)
    - SMTP_FROM: Sender address

    Optional:
    - SMTP_USERNAME / SMTP_PASSWORD: Credentials; authentication is skipped
      unless both are non-blank
    - SMTP_TLS: Use SMTP over TLS (true/false, default false)
    - NOTIFY_RECIPIENTS: Comma-separated recipients for stage notifications
    - SERVER_BASE_URL: Overrides notifications.server_base_url
    - LOG_LEVEL: Overrides logging.level

    Args:
        environ: Mapping to read instead of os.environ

    Returns:
        Validated EnvironmentConfig

    Raises:
        ConfigurationError: Listing every missing or invalid variable
    """
    env = os.environ if environ is None else environ
    errors = []

    smtp_host = (env.get("SMTP_HOST") or "").strip()
    smtp_port_str = (env.get("SMTP_PORT") or "").strip()
    smtp_from = (env.get("SMTP_FROM") or "").strip()
    smtp_tls_str = (env.get("SMTP_TLS") or "").strip().lower()
    recipients_str = env.get("NOTIFY_RECIPIENTS") or ""
    log_level = env.get("LOG_LEVEL") or None

    if not smtp_host:
        errors.append("Missing required environment variable: SMTP_HOST")
    if not smtp_port_str:
        errors.append("Missing required environment variable: SMTP_PORT")
    if not smtp_from:
        errors.append("Missing required environment variable: SMTP_FROM")

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    smtp_tls = False
    if smtp_tls_str in TRUE_VALUES:
        smtp_tls = True
    elif smtp_tls_str not in FALSE_VALUES:
        errors.append(f"Invalid SMTP_TLS: '{smtp_tls_str}'. Use true or false.")

    recipients: List[str] = []
    if recipients_str.strip():
        try:
            recipients = parse_recipients(recipients_str)
        except ValueError as e:
            errors.append(str(e))

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your SMTP settings",
                "Ensure all required environment variables are set",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_username=env.get("SMTP_USERNAME"),
        smtp_password=env.get("SMTP_PASSWORD"),
        smtp_from=smtp_from,
        smtp_tls=smtp_tls,
        recipients=recipients,
        server_base_url=env.get("SERVER_BASE_URL") or None,
        log_level=log_level.upper() if log_level else None,
    )


def parse_recipients(recipient_string: str) -> List[str]:
    """Parse and validate comma-separated email addresses.

    Args:
        recipient_string: Comma-separated email addresses

    Returns:
        Normalized addresses, in input order

    Raises:
        ValueError: If any address is invalid or none are given
    """
    recipients = []

    for email in (part.strip() for part in recipient_string.split(",")):
        if not email:
            continue

        try:
            validated = validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address in NOTIFY_RECIPIENTS: '{email}' - {e}") from e
        recipients.append(validated.normalized)

    if not recipients:
        raise ValueError("No valid email addresses found in NOTIFY_RECIPIENTS")

    return recipients


def load_ambient_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read process-wide mail property overrides.

    A timeout set here wins over the sender's built-in default.

    Returns:
        Mail properties keyed by property name, e.g. {"mail.smtp.timeout": 30000}

    Raises:
        ConfigurationError: If an override is not a non-negative integer
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    errors = []

    for variable, prop in AMBIENT_PROPERTY_VARIABLES.items():
        raw = env.get(variable)
        if raw is None or not raw.strip():
            continue
        try:
            value = int(raw.strip())
        except ValueError:
            errors.append(f"Invalid {variable}: '{raw}'. Must be a timeout in milliseconds.")
            continue
        if value < 0:
            errors.append(f"Invalid {variable}: {value}. Must not be negative.")
            continue
        overrides[prop] = value

    if errors:
        raise ConfigurationError("Mail property override validation failed", errors=errors)

    return overrides
