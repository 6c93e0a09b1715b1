"""SMTP delivery core.

- SMTPSettings: immutable server and sender settings
- SMTPMailSender: best-effort send of one message, returns DeliveryResult
- SessionFactory / MailSession / SMTPTransport: smtplib-backed protocol layer
- build_mail_properties: protocol configuration policy
"""

from .models import (
    DeliveryResult,
    FailureReason,
    MailError,
    SMTPSettings,
    TemplateRenderError,
    classify_failure,
    is_blank,
)
from .properties import DEFAULT_TIMEOUT, build_mail_properties, merge_properties
from .sender import SMTPMailSender
from .session import Authenticator, MailSession, SessionFactory, SMTPTransport, recipients_of

__all__ = [
    "SMTPMailSender",
    "SMTPSettings",
    "DeliveryResult",
    "FailureReason",
    "MailError",
    "TemplateRenderError",
    "Authenticator",
    "MailSession",
    "SessionFactory",
    "SMTPTransport",
    "DEFAULT_TIMEOUT",
    "build_mail_properties",
    "merge_properties",
    "classify_failure",
    "is_blank",
    "recipients_of",
]
