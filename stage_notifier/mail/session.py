"""Session and transport abstractions over smtplib.

A MailSession holds the resolved mail properties and an optional
Authenticator. It hands out SMTPTransport objects for the configured
protocol and builds the messages they deliver. The SMTP classes are
injected through SessionFactory so tests can substitute them.
"""

import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import getaddresses
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .properties import (
    CONNECTION_TIMEOUT,
    PROTOCOL_SMTP,
    PROTOCOL_SMTPS,
    READ_TIMEOUT,
    SMTP_AUTH,
    SMTPS_AUTH,
    TRANSPORT_PROTOCOL,
    is_enabled,
)


@dataclass(frozen=True)
class Authenticator:
    """Supplies credentials when the server asks for authentication."""

    username: str
    password: str = field(repr=False)

    def password_authentication(self) -> Tuple[str, str]:
        return self.username, self.password


def _timeout_seconds(value: Any) -> Optional[float]:
    """Convert a millisecond property value to seconds; 0 or unset means none."""
    if value is None:
        return None
    millis = int(value)
    return millis / 1000.0 if millis > 0 else None


def recipients_of(message: EmailMessage, header: str = "To") -> List[str]:
    """Return the bare addresses listed in one header of a message."""
    values = [str(value) for value in message.get_all(header, [])]
    return [address for _, address in getaddresses(values) if address]


class SMTPTransport:
    """A connection to an SMTP server, bound to the session that created it."""

    def __init__(
        self,
        session: "MailSession",
        protocol: str,
        smtp_factory: Callable,
        smtp_ssl_factory: Callable,
    ):
        self.session = session
        self.protocol = protocol
        self.smtp_factory = smtp_factory
        self.smtp_ssl_factory = smtp_ssl_factory
        self._smtp = None

    def is_connected(self) -> bool:
        return self._smtp is not None

    def connect(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        """Open the connection and authenticate when credentials are available.

        Encryption is decided by the protocol alone: "smtps" connects over
        TLS from the start, "smtp" stays plain. The STARTTLS and SSL flags
        set alongside "smtps" are informational.

        Credentials given here take precedence. When either is None the
        session authenticator is consulted, and only if authentication is
        enabled for the protocol. With no credentials the session is
        anonymous.

        Raises:
            OSError: Connection, TLS or authentication failures (smtplib
                exceptions are OSError subclasses)
        """
        properties = self.session.properties
        connect_timeout = _timeout_seconds(properties.get(CONNECTION_TIMEOUT))

        if self.protocol == PROTOCOL_SMTPS:
            smtp = self.smtp_ssl_factory(
                host, port, timeout=connect_timeout, context=ssl.create_default_context()
            )
        else:
            smtp = self.smtp_factory(host, port, timeout=connect_timeout)
        self._smtp = smtp

        read_timeout = _timeout_seconds(properties.get(READ_TIMEOUT))
        sock = getattr(smtp, "sock", None)
        if sock is not None:
            sock.settimeout(read_timeout)

        credentials = self._credentials(username, password)
        if credentials is not None:
            smtp.login(*credentials)

    def _credentials(
        self, username: Optional[str], password: Optional[str]
    ) -> Optional[Tuple[str, str]]:
        if username is not None and password is not None:
            return username, password

        auth_key = SMTPS_AUTH if self.protocol == PROTOCOL_SMTPS else SMTP_AUTH
        authenticator = self.session.authenticator
        if authenticator is not None and is_enabled(self.session.properties, auth_key):
            return authenticator.password_authentication()

        return None

    def send_message(self, message: EmailMessage, recipients: List[str]) -> None:
        """Deliver a message to the given envelope recipients."""
        if self._smtp is None:
            raise smtplib.SMTPServerDisconnected("Transport is not connected")
        if not recipients:
            raise smtplib.SMTPRecipientsRefused({})
        self._smtp.send_message(message, to_addrs=recipients)

    def close(self) -> None:
        """Say QUIT and drop the connection. No-op when never connected.

        Raises:
            smtplib.SMTPException: If QUIT fails; the socket is released anyway
        """
        smtp = self._smtp
        if smtp is None:
            return

        self._smtp = None
        try:
            smtp.quit()
        finally:
            smtp.close()


class MailSession:
    """Configured protocol context: mail properties plus optional Authenticator."""

    def __init__(
        self,
        properties: Mapping[str, Any],
        authenticator: Optional[Authenticator] = None,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.properties: Dict[str, Any] = dict(properties)
        self.authenticator = authenticator
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    @property
    def protocol(self) -> str:
        return self.properties.get(TRANSPORT_PROTOCOL, PROTOCOL_SMTP)

    def get_transport(self) -> SMTPTransport:
        """Create an unconnected transport for the session protocol.

        Raises:
            ValueError: If mail.transport.protocol is not smtp or smtps
        """
        protocol = self.protocol
        if protocol not in (PROTOCOL_SMTP, PROTOCOL_SMTPS):
            raise ValueError(f"Unsupported mail transport protocol: {protocol!r}")
        return SMTPTransport(self, protocol, self.smtp_factory, self.smtp_ssl_factory)

    def create_message(
        self, from_email: str, to_email: str, subject: str, body: str
    ) -> EmailMessage:
        """Build a plain-text message.

        Raises:
            ValueError: If a header value is malformed (e.g. contains newlines)
        """
        message = EmailMessage()
        message["From"] = from_email
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(body)
        return message


class SessionFactory:
    """Creates a fresh MailSession for every send."""

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """Initialize with optional SMTP class injection.

        Args:
            smtp_factory: Replacement for smtplib.SMTP (for mocking)
            smtp_ssl_factory: Replacement for smtplib.SMTP_SSL (for mocking)
        """
        self.smtp_factory = smtp_factory
        self.smtp_ssl_factory = smtp_ssl_factory

    def get_instance(
        self, properties: Mapping[str, Any], authenticator: Optional[Authenticator] = None
    ) -> MailSession:
        return MailSession(
            properties,
            authenticator,
            smtp_factory=self.smtp_factory,
            smtp_ssl_factory=self.smtp_ssl_factory,
        )
