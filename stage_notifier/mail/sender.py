"""Best-effort SMTP mail sender.

SMTPMailSender delivers one message per send() call. Every failure is
logged once and reported through the returned DeliveryResult; nothing
raised while connecting, authenticating, building or sending a message
reaches the caller.
"""

from dataclasses import replace
from typing import Any, Mapping, Optional

from stage_notifier.logging import get_logger

from .models import DeliveryResult, SMTPSettings, classify_failure
from .properties import build_mail_properties, enable_authentication
from .session import Authenticator, MailSession, SessionFactory, recipients_of

logger = get_logger(__name__, component="mail")


class SMTPMailSender:
    """Sends plain-text mail through the SMTP server described by settings.

    Sessions and transports are created per call and never shared, so one
    sender may be used from several threads at once. Two senders are equal
    when their settings are equal.
    """

    def __init__(
        self,
        settings: SMTPSettings,
        session_factory: Optional[SessionFactory] = None,
        ambient: Optional[Mapping[str, Any]] = None,
    ):
        """Initialize mail sender.

        Args:
            settings: SMTP settings
            session_factory: Session factory (creates a smtplib-backed one if None)
            ambient: Operator-level mail property overrides, see
                stage_notifier.config.load_ambient_overrides
        """
        self.settings = settings
        self.session_factory = session_factory or SessionFactory()
        self.ambient = dict(ambient or {})

    def send(self, subject: str, body: str, recipient: str) -> DeliveryResult:
        """Deliver one message to one recipient.

        The recipient is not validated here; a malformed address surfaces as
        a failed result from the server exchange.

        Returns:
            DeliveryResult; status "failed" carries the failure reason
        """
        transport = None
        result = None
        try:
            session = self._create_session()
            transport = session.get_transport()
            username, password = self._connect_credentials()
            transport.connect(self.settings.hostname, self.settings.port, username, password)
            message = session.create_message(self.settings.from_email, recipient, subject, body)
            transport.send_message(message, recipients_of(message, "To"))
            result = DeliveryResult.sent(recipient, subject)
        except Exception as e:
            reason = classify_failure(e)
            logger.error(
                f"Sending failed for email [{subject}] to [{recipient}]: {e}",
                exc_info=True,
                extra={
                    "event": "mail.send.failure",
                    "subject": subject,
                    "recipient": recipient,
                    "reason": reason.value,
                    "error_type": type(e).__name__,
                },
            )
            result = DeliveryResult.failed(recipient, subject, reason, str(e) or type(e).__name__)
        finally:
            if transport is not None:
                close_error = self._close(transport, subject, recipient)
                if close_error is not None and result is not None:
                    result = replace(result, close_error=close_error)

        return result

    def _create_session(self) -> MailSession:
        properties = build_mail_properties(self.settings, self.ambient)

        if not self.settings.has_credentials:
            return self.session_factory.get_instance(properties)

        enable_authentication(properties)
        return self.session_factory.get_instance(
            properties, Authenticator(self.settings.username, self.settings.password)
        )

    def _connect_credentials(self):
        # Anonymous unless both are present; never empty strings
        if not self.settings.has_credentials:
            return None, None
        return self.settings.username, self.settings.password

    def _close(self, transport, subject: str, recipient: str) -> Optional[str]:
        try:
            transport.close()
        except Exception as e:
            logger.error(
                f"Failed to close transport: {e}",
                exc_info=True,
                extra={
                    "event": "mail.transport.close_failure",
                    "subject": subject,
                    "recipient": recipient,
                    "error_type": type(e).__name__,
                },
            )
            return str(e) or type(e).__name__
        return None

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, SMTPMailSender):
            return NotImplemented
        return self.settings == other.settings

    def __hash__(self):
        return hash(self.settings)

    def __repr__(self):
        return f"SMTPMailSender({self.settings!r})"

