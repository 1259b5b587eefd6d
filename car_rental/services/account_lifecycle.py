"""Registration, OTP verification and account maintenance.

Registration is OTP-gated: ``register`` stores an unverified placeholder and
emails a 6-digit code; ``complete_registration`` exchanges the code for a
verified account and a session token. A wrong or expired code deletes the
placeholder, so each code can be guessed at most once and the user restarts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from car_rental.config.logger import app_logger, log_security_event
from car_rental.db.accounts import AccountStore, as_utc, normalize_email
from car_rental.models.account import Account
from car_rental.services.errors import (
    DuplicateAccount,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    NotFound,
    NotificationFailure,
    PolicyViolation,
)
from car_rental.services.notifications import VerificationMailer
from car_rental.utils.otp import generate_otp, hash_otp, verify_otp
from car_rental.utils.password_policy import validate_password
from car_rental.utils.passwords import hash_password_async, verify_password_async
from car_rental.utils.tokens import IssuedSession, TokenSigner


@dataclass(frozen=True)
class PendingRegistration:
    pending_id: str
    email: str
    otp_expires_in: int


def _parse_pending_id(pending_id: str) -> UUID:
    try:
        return UUID(str(pending_id))
    except ValueError as exc:
        raise NotFound() from exc


class AccountLifecycleService:
    def __init__(
        self,
        store: AccountStore,
        mailer: VerificationMailer,
        tokens: TokenSigner,
        otp_ttl_seconds: int = 60,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.tokens = tokens
        self.otp_ttl_seconds = otp_ttl_seconds

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        address: str,
        phone_number: str,
        now: Optional[datetime] = None,
    ) -> PendingRegistration:
        """Start a registration: validate, store a placeholder, email the OTP.

        Raises:
            PolicyViolation: password fails the policy
            DuplicateAccount: a verified account already uses this email
            NotificationFailure: the OTP email could not be sent (placeholder removed)
        """
        moment = now or datetime.now(timezone.utc)
        normalized = normalize_email(email)

        check = validate_password(password)
        if not check.valid:
            log_security_event("registration_rejected_policy", normalized)
            raise PolicyViolation(check.message)

        existing = await self.store.get_by_email(normalized)
        if existing is not None and existing.is_verified:
            log_security_event("registration_rejected_duplicate", normalized)
            raise DuplicateAccount()
        if existing is not None:
            app_logger.info(f"Replacing unverified registration for {normalized}")

        otp = generate_otp()
        account = await self.store.create_placeholder(
            email=normalized,
            pending_password=password,
            full_name=full_name,
            address=address,
            phone_number=phone_number,
            otp_hash=hash_otp(otp),
            otp_expires_at=moment + timedelta(seconds=self.otp_ttl_seconds),
        )

        try:
            await self.mailer.send_registration_otp(normalized, full_name, otp, self.otp_ttl_seconds)
        except NotificationFailure:
            await self.store.delete_placeholder(account.id)
            log_security_event("registration_rolled_back", normalized, reason="notification_failure")
            raise

        await self.store.record_event("account.registration_started", account.id, normalized)
        log_security_event("registration_started", normalized, account_id=account.id)
        return PendingRegistration(
            pending_id=str(account.id),
            email=normalized,
            otp_expires_in=self.otp_ttl_seconds,
        )

    async def complete_registration(
        self, pending_id: str, otp: str, now: Optional[datetime] = None
    ) -> IssuedSession:
        """Verify the emailed OTP, activate the account and log the user in.

        Raises:
            NotFound: no placeholder for ``pending_id``
            InvalidOrExpiredOtp: code missing, wrong, expired or already consumed
            PolicyViolation: the held password no longer passes the policy
        """
        moment = now or datetime.now(timezone.utc)
        account_id = _parse_pending_id(pending_id)

        account = await self.store.get_by_id(account_id)
        if account is None:
            raise NotFound()

        expires_at = as_utc(account.pending_otp_expires_at)
        if (
            account.is_verified
            or not account.pending_otp_hash
            or expires_at is None
            or not verify_otp(otp, account.pending_otp_hash)
            or expires_at < moment
        ):
            deleted = await self.store.delete_placeholder(account.id)
            await self.store.record_event(
                "account.verification_failed", None if deleted else account.id, account.email,
                {"placeholder_deleted": deleted},
            )
            log_security_event("verification_failed", account.email, placeholder_deleted=deleted)
            raise InvalidOrExpiredOtp()

        check = validate_password(account.pending_password or "")
        if not check.valid:
            await self.store.delete_placeholder(account.id)
            log_security_event("verification_failed_policy", account.email)
            raise PolicyViolation("Password no longer meets policy. Please re-register.")

        password_hash = await hash_password_async(account.pending_password)
        finalized = await self.store.finalize_registration(
            account.id, account.pending_otp_hash, password_hash, moment
        )
        if not finalized:
            # Consumed or replaced by a concurrent request between read and update.
            raise InvalidOrExpiredOtp()

        await self.store.record_event("account.verified", account.id, account.email)
        log_security_event("registration_completed", account.email, account_id=account.id)
        return self.tokens.issue_session_token(
            account_id=str(account.id),
            role=account.role,
            full_name=account.full_name,
            mfa_verified=True,
            now=moment,
        )

    async def resend_otp(self, pending_id: str, now: Optional[datetime] = None) -> PendingRegistration:
        """Issue and email a fresh OTP for a pending registration.

        Raises:
            NotFound: no pending placeholder for ``pending_id`` (verified ids included)
            NotificationFailure: the email could not be sent
        """
        moment = now or datetime.now(timezone.utc)
        account_id = _parse_pending_id(pending_id)

        account = await self.store.get_by_id(account_id)
        if account is None or account.is_verified:
            # Verified ids answer like unknown ones.
            raise NotFound()

        otp = generate_otp()
        updated = await self.store.set_pending_otp(
            account.id, hash_otp(otp), moment + timedelta(seconds=self.otp_ttl_seconds), moment
        )
        if not updated:
            # Verified or deleted concurrently.
            raise NotFound()

        await self.mailer.resend_registration_otp(account.email, account.full_name, otp, self.otp_ttl_seconds)
        await self.store.record_event("account.otp_resent", account.id, account.email)
        log_security_event("otp_resent", account.email, account_id=account.id)
        return PendingRegistration(
            pending_id=str(account.id),
            email=account.email,
            otp_expires_in=self.otp_ttl_seconds,
        )

    async def change_password(
        self,
        account: Account,
        new_password: str,
        current_password: Optional[str] = None,
        require_current: bool = True,
        now: Optional[datetime] = None,
    ) -> None:
        """Re-validate and re-hash a verified account's password.

        Raises:
            PolicyViolation: new password fails the policy
            InvalidCredentials: ``current_password`` required and wrong
            NotFound: account is not a verified account
        """
        moment = now or datetime.now(timezone.utc)
        check = validate_password(new_password)
        if not check.valid:
            raise PolicyViolation(check.message)

        if not account.is_verified or not account.password_hash:
            raise NotFound("User not found")

        if require_current and (
            not current_password
            or not await verify_password_async(current_password, account.password_hash)
        ):
            raise InvalidCredentials()

        password_hash = await hash_password_async(new_password)
        if not await self.store.update_password_hash(account.id, password_hash, moment):
            raise NotFound("User not found")

        await self.store.record_event(
            "account.password_changed", account.id, account.email, {"self_service": require_current}
        )
        log_security_event("password_changed", account.email, account_id=account.id)

    async def update_profile(
        self,
        account: Account,
        full_name: Optional[str] = None,
        address: Optional[str] = None,
        phone_number: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Account:
        moment = now or datetime.now(timezone.utc)
        updates = {
            key: value
            for key, value in (
                ("full_name", full_name),
                ("address", address),
                ("phone_number", phone_number),
            )
            if value is not None
        }
        updated = await self.store.update_profile(account.id, updates, moment)
        if updated is None:
            raise NotFound("User not found")
        return updated

    async def delete_account(self, account_id: UUID, deleted_by: Optional[UUID] = None) -> None:
        account = await self.store.get_by_id(account_id)
        if account is None or not await self.store.delete_account(account_id):
            raise NotFound("User not found")
        await self.store.record_event(
            "account.deleted", None, account.email,
            {"deleted_by": str(deleted_by) if deleted_by else None},
        )
        log_security_event("account_deleted", account.email, deleted_by=deleted_by)
