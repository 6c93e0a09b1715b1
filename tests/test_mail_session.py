"""Unit tests for the session/transport layer.

Tests MailSession, SMTPTransport and SessionFactory for:
- Protocol selection (SMTP and SMTP_SSL)
- Timeouts taken from mail properties
- No STARTTLS upgrade: encryption follows the protocol
- Authentication from explicit credentials or the session authenticator
- Message construction and recipient extraction
- Connection close semantics
"""

import smtplib
from unittest.mock import MagicMock, Mock

import pytest

from stage_notifier.mail.properties import (
    CONNECTION_TIMEOUT,
    READ_TIMEOUT,
    SMTP_AUTH,
    SMTPS_AUTH,
    STARTTLS_ENABLE,
    TRANSPORT_PROTOCOL,
)
from stage_notifier.mail.session import (
    Authenticator,
    MailSession,
    SessionFactory,
    recipients_of,
)
from tests.helpers import RecordingSMTPFactory


@pytest.fixture
def smtp_factory():
    return RecordingSMTPFactory()


@pytest.fixture
def smtp_ssl_factory():
    return RecordingSMTPFactory()


def make_session(properties, smtp_factory, smtp_ssl_factory, authenticator=None):
    return SessionFactory(smtp_factory, smtp_ssl_factory).get_instance(properties, authenticator)


class TestSessionFactory:
    """Tests for session creation."""

    def test_creates_fresh_session_each_call(self):
        factory = SessionFactory()

        first = factory.get_instance({TRANSPORT_PROTOCOL: "smtp"})
        second = factory.get_instance({TRANSPORT_PROTOCOL: "smtp"})

        assert first is not second

    def test_session_copies_properties(self):
        properties = {TRANSPORT_PROTOCOL: "smtp"}

        session = SessionFactory().get_instance(properties)
        properties[TRANSPORT_PROTOCOL] = "smtps"

        assert session.protocol == "smtp"

    def test_defaults_to_smtplib_classes(self):
        session = SessionFactory().get_instance({})

        assert session.smtp_factory is smtplib.SMTP
        assert session.smtp_ssl_factory is smtplib.SMTP_SSL

    def test_passes_authenticator_through(self):
        authenticator = Authenticator("bot", "secret")

        session = SessionFactory().get_instance({}, authenticator)

        assert session.authenticator == authenticator


class TestTransport:
    """Tests for SMTPTransport connection handling."""

    def test_unknown_protocol_rejected(self):
        session = MailSession({TRANSPORT_PROTOCOL: "imap"})

        with pytest.raises(ValueError, match="Unsupported mail transport protocol"):
            session.get_transport()

    def test_plain_protocol_uses_smtp_factory(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)

        transport = session.get_transport()
        transport.connect("smtp.example.com", 25)

        assert transport.is_connected()
        assert len(smtp_factory.connections) == 1
        assert smtp_ssl_factory.connections == []
        assert smtp_factory.last.host == "smtp.example.com"
        assert smtp_factory.last.port == 25
        assert smtp_factory.last.calls == []

    def test_smtps_protocol_uses_ssl_factory_with_context(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtps"}, smtp_factory, smtp_ssl_factory)

        session.get_transport().connect("smtp.example.com", 465)

        assert smtp_factory.connections == []
        assert smtp_ssl_factory.last.port == 465
        assert smtp_ssl_factory.last.context is not None
        # Implicit TLS never upgrades
        assert "starttls" not in smtp_ssl_factory.last.calls

    def test_timeouts_converted_to_seconds(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtp", CONNECTION_TIMEOUT: 5000, READ_TIMEOUT: 60000},
            smtp_factory,
            smtp_ssl_factory,
        )

        session.get_transport().connect("smtp.example.com", 25)

        assert smtp_factory.last.timeout == 5.0
        smtp_factory.last.sock.settimeout.assert_called_once_with(60.0)

    def test_zero_timeout_means_no_timeout(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtp", CONNECTION_TIMEOUT: 0}, smtp_factory, smtp_ssl_factory
        )

        session.get_transport().connect("smtp.example.com", 25)

        assert smtp_factory.last.timeout is None

    def test_starttls_flag_does_not_upgrade_plain_protocol(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtp", STARTTLS_ENABLE: "true"}, smtp_factory, smtp_ssl_factory
        )

        session.get_transport().connect("smtp.example.com", 587)

        assert smtp_ssl_factory.connections == []
        assert smtp_factory.last.calls == []

    def test_explicit_credentials_log_in(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)

        session.get_transport().connect("smtp.example.com", 587, "bot", "secret")

        assert smtp_factory.last.logins == [("bot", "secret")]

    def test_no_credentials_is_anonymous(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)

        session.get_transport().connect("smtp.example.com", 25, None, None)

        assert smtp_factory.last.logins == []

    def test_authenticator_used_when_auth_enabled(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtps", SMTPS_AUTH: "true"},
            smtp_factory,
            smtp_ssl_factory,
            authenticator=Authenticator("bot", "secret"),
        )

        session.get_transport().connect("smtp.example.com", 465)

        assert smtp_ssl_factory.last.logins == [("bot", "secret")]

    def test_authenticator_ignored_when_auth_disabled(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtp", SMTPS_AUTH: "true"},
            smtp_factory,
            smtp_ssl_factory,
            authenticator=Authenticator("bot", "secret"),
        )

        # mail.smtp.auth is not set, only the smtps flag
        session.get_transport().connect("smtp.example.com", 25)

        assert smtp_factory.last.logins == []

    def test_authenticator_used_with_smtp_auth_flag(self, smtp_factory, smtp_ssl_factory):
        session = make_session(
            {TRANSPORT_PROTOCOL: "smtp", SMTP_AUTH: "true"},
            smtp_factory,
            smtp_ssl_factory,
            authenticator=Authenticator("bot", "secret"),
        )

        session.get_transport().connect("smtp.example.com", 25)

        assert smtp_factory.last.logins == [("bot", "secret")]

    def test_login_failure_propagates(self, smtp_ssl_factory):
        factory = RecordingSMTPFactory(
            failures={"login": smtplib.SMTPAuthenticationError(535, b"rejected")}
        )
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, factory, smtp_ssl_factory)
        transport = session.get_transport()

        with pytest.raises(smtplib.SMTPAuthenticationError):
            transport.connect("smtp.example.com", 587, "bot", "wrong")

        # Connection was opened, so close still has something to release
        assert transport.is_connected()

    def test_send_message_to_recipients(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)
        transport = session.get_transport()
        transport.connect("smtp.example.com", 25)
        message = session.create_message("ci@example.com", "dev@example.com", "Subject", "Body")

        transport.send_message(message, ["dev@example.com"])

        assert smtp_factory.last.sent == [(message, ["dev@example.com"])]

    def test_send_without_connect_fails(self):
        session = MailSession({TRANSPORT_PROTOCOL: "smtp"})
        message = session.create_message("ci@example.com", "dev@example.com", "Subject", "Body")

        with pytest.raises(smtplib.SMTPServerDisconnected):
            session.get_transport().send_message(message, ["dev@example.com"])

    def test_send_without_recipients_fails(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)
        transport = session.get_transport()
        transport.connect("smtp.example.com", 25)
        message = session.create_message("ci@example.com", "dev@example.com", "Subject", "Body")

        with pytest.raises(smtplib.SMTPRecipientsRefused):
            transport.send_message(message, [])

    def test_close_quits_and_releases(self, smtp_factory, smtp_ssl_factory):
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory, smtp_ssl_factory)
        transport = session.get_transport()
        transport.connect("smtp.example.com", 25)

        transport.close()

        assert smtp_factory.last.calls == ["quit", "close"]
        assert not transport.is_connected()

    def test_close_before_connect_is_noop(self):
        transport = MailSession({TRANSPORT_PROTOCOL: "smtp"}).get_transport()

        transport.close()

        assert not transport.is_connected()

    def test_close_failure_propagates_but_releases_socket(self, smtp_ssl_factory):
        factory = RecordingSMTPFactory(failures={"quit": smtplib.SMTPServerDisconnected("gone")})
        session = make_session({TRANSPORT_PROTOCOL: "smtp"}, factory, smtp_ssl_factory)
        transport = session.get_transport()
        transport.connect("smtp.example.com", 25)

        with pytest.raises(smtplib.SMTPServerDisconnected):
            transport.close()

        assert factory.last.closed is True
        assert not transport.is_connected()

    def test_works_with_mock_smtp_class(self):
        """The factories accept anything shaped like smtplib.SMTP."""
        mock_smtp = MagicMock()
        mock_factory = Mock(return_value=mock_smtp)
        session = MailSession({TRANSPORT_PROTOCOL: "smtp"}, smtp_factory=mock_factory)

        transport = session.get_transport()
        transport.connect("smtp.example.com", 25, "user@example.com", "secret123")
        transport.close()

        mock_factory.assert_called_once_with("smtp.example.com", 25, timeout=None)
        mock_smtp.login.assert_called_once_with("user@example.com", "secret123")
        mock_smtp.quit.assert_called_once()


class TestMessages:
    """Tests for message construction."""

    def test_create_message_headers_and_body(self):
        session = MailSession({})

        message = session.create_message(
            "ci@example.com", "dev@example.com", "Build Failed", "See logs"
        )

        assert message["From"] == "ci@example.com"
        assert message["To"] == "dev@example.com"
        assert message["Subject"] == "Build Failed"
        assert message.get_content().strip() == "See logs"
        assert message.get_content_type() == "text/plain"

    def test_subject_with_newline_rejected(self):
        session = MailSession({})

        with pytest.raises(ValueError):
            session.create_message("ci@example.com", "dev@example.com", "Bad\nSubject", "Body")

    def test_recipients_of_to_header(self):
        message = MailSession({}).create_message(
            "ci@example.com", "Dev Team <dev@example.com>", "Subject", "Body"
        )

        assert recipients_of(message, "To") == ["dev@example.com"]

    def test_recipients_of_missing_header(self):
        message = MailSession({}).create_message("ci@example.com", "dev@example.com", "S", "B")

        assert recipients_of(message, "Cc") == []
