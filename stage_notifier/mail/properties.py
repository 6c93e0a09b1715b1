"""Protocol configuration for a mail session.

Mail properties are a flat mapping of well-known keys to values, the same
keys an operator can override process-wide.
"""

from typing import Any, Dict, Mapping, Optional

from .models import SMTPSettings

# Milliseconds
DEFAULT_TIMEOUT = 60 * 1000

MAIL_FROM = "mail.from"
CONNECTION_TIMEOUT = "mail.smtp.connectiontimeout"
READ_TIMEOUT = "mail.smtp.timeout"
STARTTLS_ENABLE = "mail.smtp.starttls.enable"
SSL_ENABLE = "mail.smtp.ssl.enable"
TRANSPORT_PROTOCOL = "mail.transport.protocol"
SMTP_AUTH = "mail.smtp.auth"
SMTPS_AUTH = "mail.smtps.auth"

PROTOCOL_SMTP = "smtp"
PROTOCOL_SMTPS = "smtps"


def merge_properties(
    defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Resolve properties with explicit precedence: overrides beat defaults."""
    merged = dict(defaults)
    if overrides:
        merged.update(overrides)
    return merged


def is_enabled(properties: Mapping[str, Any], key: str) -> bool:
    """Read a boolean flag property ("true"/"false" strings or bools)."""
    value = properties.get(key)
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true" if value is not None else False


def build_mail_properties(
    settings: SMTPSettings, ambient: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the property set for one send.

    Timeout defaults only apply where the ambient configuration has no value
    for the same key. Only the timeout keys are taken from the ambient
    configuration; the remaining keys follow the settings.

    Args:
        settings: SMTP settings of the sender
        ambient: Operator-level overrides (see load_ambient_overrides)

    Returns:
        Mail properties for session creation
    """
    ambient = ambient or {}
    timeouts = merge_properties(
        {CONNECTION_TIMEOUT: DEFAULT_TIMEOUT, READ_TIMEOUT: DEFAULT_TIMEOUT},
        {key: ambient[key] for key in (CONNECTION_TIMEOUT, READ_TIMEOUT) if key in ambient},
    )

    properties: Dict[str, Any] = {MAIL_FROM: settings.from_email}
    properties.update(timeouts)

    if settings.tls:
        properties[STARTTLS_ENABLE] = "true"
        properties[SSL_ENABLE] = "true"

    properties[TRANSPORT_PROTOCOL] = PROTOCOL_SMTPS if settings.tls else PROTOCOL_SMTP

    return properties


def enable_authentication(properties: Dict[str, Any]) -> Dict[str, Any]:
    """Turn on authentication for both the plain and encrypted protocols."""
    properties[SMTP_AUTH] = "true"
    properties[SMTPS_AUTH] = "true"
    return properties
