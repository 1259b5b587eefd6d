"""FastAPI providers that build the auth services from settings.

Secrets (signing key, SMTP credentials) are read from ``settings`` only here
and handed to the collaborators' constructors.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from car_rental.config.settings import settings
from car_rental.db.accounts import AccountStore
from car_rental.db.db import get_session
from car_rental.services.account_lifecycle import AccountLifecycleService
from car_rental.services.notifications import (
    ConsoleEmailSender,
    EmailSender,
    SmtpEmailSender,
    VerificationMailer,
)
from car_rental.services.session_auth import SessionAuthenticator
from car_rental.utils.tokens import TokenSigner


@lru_cache
def get_token_signer() -> TokenSigner:
    return TokenSigner(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        session_ttl_seconds=settings.SESSION_TOKEN_EXP_SECONDS,
        verification_ttl_seconds=settings.VERIFICATION_TOKEN_EXP_SECONDS,
    )


@lru_cache
def get_email_sender() -> EmailSender:
    if settings.EMAIL_BACKEND == "console":
        return ConsoleEmailSender()
    return SmtpEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        sender=settings.EMAIL_FROM or settings.SMTP_USERNAME,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )


async def get_account_store(session: AsyncSession = Depends(get_session)) -> AccountStore:
    return AccountStore(session)


async def get_lifecycle_service(
    store: AccountStore = Depends(get_account_store),
    sender: EmailSender = Depends(get_email_sender),
    tokens: TokenSigner = Depends(get_token_signer),
) -> AccountLifecycleService:
    return AccountLifecycleService(
        store=store,
        mailer=VerificationMailer(sender, app_name=settings.APP_NAME),
        tokens=tokens,
        otp_ttl_seconds=settings.OTP_EXP_SECONDS,
    )


async def get_authenticator(
    store: AccountStore = Depends(get_account_store),
    tokens: TokenSigner = Depends(get_token_signer),
) -> SessionAuthenticator:
    return SessionAuthenticator(
        store=store,
        tokens=tokens,
        max_failed_attempts=settings.MAX_FAILED_LOGIN_ATTEMPTS,
        lockout_minutes=settings.LOCKOUT_MINUTES,
    )
