"""Value types, results and failure taxonomy for mail delivery."""

import smtplib
from dataclasses import dataclass
from email.errors import MessageError
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def is_blank(value: Optional[str]) -> bool:
    """True for None or a string that is empty after stripping whitespace."""
    return value is None or not value.strip()


class SMTPSettings(BaseModel):
    """Immutable SMTP settings supplied by the host at construction time.

    Equal settings compare and hash equal, so senders built from them can be
    cached or deduplicated by configuration.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(..., description="SMTP server host name")
    port: int = Field(..., ge=1, le=65535, description="SMTP server port")
    username: Optional[str] = Field(None, description="SMTP user, blank for anonymous")
    password: Optional[str] = Field(None, repr=False, description="SMTP password")
    from_email: str = Field(..., description="Sender address")
    tls: bool = Field(False, description="Use SMTP over TLS (smtps)")

    @property
    def has_credentials(self) -> bool:
        """Both username and password are non-blank."""
        return not is_blank(self.username) and not is_blank(self.password)


class FailureReason(str, Enum):
    """Why a delivery attempt failed."""

    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    MESSAGE = "message"
    PROTOCOL = "protocol"
    UNKNOWN = "unknown"


# smtplib exceptions subclass OSError, so the order of these checks matters
_MESSAGE_ERRORS = (
    smtplib.SMTPRecipientsRefused,
    smtplib.SMTPSenderRefused,
    smtplib.SMTPDataError,
    smtplib.SMTPNotSupportedError,
    MessageError,
    ValueError,
)
_CONNECTION_ERRORS = (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected)


def classify_failure(exc: BaseException) -> FailureReason:
    """Map an exception raised during delivery onto a FailureReason."""
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return FailureReason.AUTHENTICATION
    if isinstance(exc, _MESSAGE_ERRORS):
        return FailureReason.MESSAGE
    if isinstance(exc, _CONNECTION_ERRORS):
        return FailureReason.CONNECTION
    if isinstance(exc, smtplib.SMTPException):
        return FailureReason.PROTOCOL
    if isinstance(exc, OSError):
        return FailureReason.CONNECTION
    return FailureReason.UNKNOWN


class MailError(Exception):
    """Base exception for mail-related errors."""

    pass


class TemplateRenderError(MailError):
    """Raised when a notification subject or body cannot be rendered."""

    pass


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt.

    Attributes:
        recipient: Destination address
        subject: Subject of the message
        status: "sent" or "failed"
        reason: Failure category when status is "failed"
        error: Failure description when status is "failed"
        close_error: Set when closing the transport failed; does not
            change the status of an otherwise successful send
    """

    recipient: str
    subject: str
    status: str  # "sent", "failed"
    reason: Optional[FailureReason] = None
    error: Optional[str] = None
    close_error: Optional[str] = None

    @classmethod
    def sent(cls, recipient: str, subject: str, close_error: Optional[str] = None) -> "DeliveryResult":
        return cls(recipient=recipient, subject=subject, status="sent", close_error=close_error)

    @classmethod
    def failed(
        cls,
        recipient: str,
        subject: str,
        reason: FailureReason,
        error: str,
        close_error: Optional[str] = None,
    ) -> "DeliveryResult":
        return cls(
            recipient=recipient,
            subject=subject,
            status="failed",
            reason=reason,
            error=error,
            close_error=close_error,
        )

    def is_success(self) -> bool:
        """True if the message was handed to the server."""
        return self.status == "sent"
