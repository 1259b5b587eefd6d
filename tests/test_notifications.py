"""Verification email composition and SMTP delivery failures."""

import asyncio
import smtplib

import pytest

from car_rental.services import notifications
from car_rental.services.errors import NotificationFailure
from car_rental.services.notifications import (
    OutgoingEmail,
    SmtpEmailSender,
    VerificationMailer,
)
from conftest import RecordingEmailSender


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        self.calls.append("ehlo")

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, message):
        self.sent.append(message)


class TestVerificationMailer:
    def test_registration_email(self):
        sender = RecordingEmailSender()
        mailer = VerificationMailer(sender, app_name="Car Rental Backend")

        asyncio.run(mailer.send_registration_otp("driver@example.com", "Dana", "482913", 60))

        message = sender.sent[0]
        assert message.to == "driver@example.com"
        assert message.subject == "Your Car Rental Backend email verification code"
        assert "482913" in message.text
        assert "valid for 1 minute." in message.text
        assert sender.last_otp() == "482913"

    def test_resend_email_has_distinct_subject(self):
        sender = RecordingEmailSender()
        mailer = VerificationMailer(sender, app_name="Car Rental Backend")

        asyncio.run(mailer.resend_registration_otp("driver@example.com", "Dana", "111222", 120))

        message = sender.sent[0]
        assert message.subject == "Your new Car Rental Backend verification code"
        assert "valid for 2 minutes." in message.text

    def test_name_is_escaped_in_html(self):
        sender = RecordingEmailSender()
        mailer = VerificationMailer(sender)

        asyncio.run(mailer.send_registration_otp("x@example.com", "<script>alert(1)</script>", "123456", 60))

        assert "<script>" not in sender.sent[0].html
        assert "&lt;script&gt;" in sender.sent[0].html


class TestSmtpEmailSender:
    @pytest.fixture(autouse=True)
    def fake_smtp(self, monkeypatch):
        FakeSMTP.instances = []
        monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)

    def _sender(self, **overrides):
        options = dict(
            host="smtp.example.com",
            port=587,
            username="mailer",
            password="relay-password",
            sender="no-reply@example.com",
        )
        options.update(overrides)
        return SmtpEmailSender(**options)

    def _message(self):
        return OutgoingEmail(to="driver@example.com", subject="Code", text="123456", html="<p>123456</p>")

    def test_requires_host_and_sender(self):
        with pytest.raises(ValueError):
            self._sender(host="")
        with pytest.raises(ValueError):
            self._sender(sender="")

    def test_delivers_over_starttls(self):
        asyncio.run(self._sender().send(self._message()))

        smtp = FakeSMTP.instances[0]
        assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
        assert smtp.calls == ["ehlo", "starttls", "ehlo", ("login", "mailer")]
        sent = smtp.sent[0]
        assert sent["To"] == "driver@example.com"
        assert sent["From"] == "no-reply@example.com"
        assert sent.is_multipart()

    def test_skips_login_without_username(self):
        asyncio.run(self._sender(username="", use_tls=False).send(self._message()))
        assert FakeSMTP.instances[0].calls == ["ehlo"]

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPAuthenticationError(535, b"bad credentials"), ConnectionRefusedError()],
    )
    def test_delivery_errors_become_notification_failure(self, monkeypatch, error):
        def _fail(self, message):
            raise error

        monkeypatch.setattr(FakeSMTP, "send_message", _fail)

        with pytest.raises(NotificationFailure):
            asyncio.run(self._sender().send(self._message()))
