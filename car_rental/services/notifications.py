"""Outbound email: transport backends and the verification-code mailer."""

import html
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from fastapi.concurrency import run_in_threadpool

from car_rental.config.logger import app_logger
from car_rental.services.errors import NotificationFailure


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str


class EmailSender:
    """Transport interface. ``send`` raises NotificationFailure when delivery fails."""

    async def send(self, message: OutgoingEmail) -> None:
        raise NotImplementedError


class SmtpEmailSender(EmailSender):
    """Delivers mail through an SMTP relay (STARTTLS on 587 by default).

    smtplib is blocking, so delivery runs in the threadpool. Credentials are
    supplied by the caller.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        if not host or not sender:
            raise ValueError("SMTP host and sender address must be configured")
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def _build(self, message: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def _deliver(self, message: OutgoingEmail) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.ehlo()
            if self.use_tls:
                server.starttls()
                server.ehlo()
            if self.username:
                server.login(self.username, self._password)
            server.send_message(self._build(message))

    async def send(self, message: OutgoingEmail) -> None:
        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            app_logger.error(f"SMTP delivery to {message.to} failed: {type(exc).__name__}: {exc}")
            raise NotificationFailure() from exc
        app_logger.info(f"Email '{message.subject}' sent to {message.to}")


class ConsoleEmailSender(EmailSender):
    """Development backend: writes the email to the application log instead of sending it."""

    async def send(self, message: OutgoingEmail) -> None:
        app_logger.warning(
            f"EMAIL_BACKEND=console - not sending. To: {message.to} | Subject: {message.subject}\n{message.text}"
        )


class VerificationMailer:
    """Composes and sends the registration verification-code emails."""

    def __init__(self, sender: EmailSender, app_name: str = "Car Rental") -> None:
        self.sender = sender
        self.app_name = app_name

    def _compose(self, email: str, full_name: str, otp: str, expires_in_seconds: int, resend: bool) -> OutgoingEmail:
        minutes = max(1, expires_in_seconds // 60)
        unit = "minute" if minutes == 1 else "minutes"
        lead = "Your new One-Time Password (OTP) is" if resend else (
            "Thank you for registering! Your One-Time Password (OTP) to verify your email is"
        )
        subject = (
            f"Your new {self.app_name} verification code" if resend
            else f"Your {self.app_name} email verification code"
        )
        text = (
            f"Hello {full_name},\n\n"
            f"{lead}: {otp}\n"
            f"This code is valid for {minutes} {unit}. Do not share this code with anyone.\n"
            "If you did not attempt to register, please ignore this email.\n\n"
            f"The {self.app_name} Team"
        )
        body = (
            f"<p>Hello {html.escape(full_name)},</p>"
            f"<p>{lead}: <strong>{otp}</strong></p>"
            f"<p>This code is valid for {minutes} {unit}. Do not share this code with anyone.</p>"
            "<p>If you did not attempt to register, please ignore this email.</p>"
            f"<p>The {html.escape(self.app_name)} Team</p>"
        )
        return OutgoingEmail(to=email, subject=subject, text=text, html=body)

    async def send_registration_otp(self, email: str, full_name: str, otp: str, expires_in_seconds: int) -> None:
        await self.sender.send(self._compose(email, full_name, otp, expires_in_seconds, resend=False))

    async def resend_registration_otp(self, email: str, full_name: str, otp: str, expires_in_seconds: int) -> None:
        await self.sender.send(self._compose(email, full_name, otp, expires_in_seconds, resend=True))
