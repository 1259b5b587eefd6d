"""Password login with brute-force lockout and session token issuance."""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from car_rental.config.logger import log_security_event
from car_rental.db.accounts import AccountStore, as_utc, normalize_email
from car_rental.services.errors import AccountLocked, AuthError, InvalidCredentials, NotVerified
from car_rental.utils.passwords import verify_against_dummy_async, verify_password_async
from car_rental.utils.tokens import IssuedSession, TokenSigner


def remaining_minutes(until: datetime, now: datetime) -> int:
    return max(1, math.ceil((until - now).total_seconds() / 60))


class SessionAuthenticator:
    """Single-factor login.

    Identity is verified once, at registration; login checks lockout,
    verification state and password, in that order.
    """

    def __init__(
        self,
        store: AccountStore,
        tokens: TokenSigner,
        max_failed_attempts: int = 3,
        lockout_minutes: int = 5,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.max_failed_attempts = max_failed_attempts
        self.lockout_minutes = lockout_minutes

    async def login(self, email: str, password: str, now: Optional[datetime] = None) -> IssuedSession:
        """Authenticate and issue a session token.

        Raises:
            InvalidCredentials: unknown email or wrong password (with attempts left)
            AccountLocked: lockout active, or this failure triggered it
            NotVerified: registration was never completed
        """
        moment = now or datetime.now(timezone.utc)
        normalized = normalize_email(email)

        account = await self.store.get_by_email(normalized)
        if account is None:
            await verify_against_dummy_async(password)
            log_security_event("login_failed", normalized, reason="unknown_email")
            raise InvalidCredentials()

        locked_until = as_utc(account.lockout_until)
        if locked_until is not None and locked_until > moment:
            log_security_event("login_refused_locked", normalized, locked_until=locked_until.isoformat())
            raise AccountLocked(remaining_minutes(locked_until, moment))
        if locked_until is not None:
            await self.store.clear_expired_lockout(account.id, moment)

        if not account.is_verified or not account.password_hash:
            log_security_event("login_refused_unverified", normalized)
            raise NotVerified()

        if not await verify_password_async(password, account.password_hash):
            raise await self._record_failure(account.id, normalized, moment)

        await self.store.record_successful_login(account.id, moment)
        await self.store.record_event("auth.login_succeeded", account.id, normalized)
        log_security_event("login_succeeded", normalized, account_id=account.id)
        return self.tokens.issue_session_token(
            account_id=str(account.id),
            role=account.role,
            full_name=account.full_name,
            mfa_verified=account.mfa_completed_once,
            now=moment,
        )

    async def _record_failure(self, account_id: UUID, email: str, moment: datetime) -> AuthError:
        """Count a wrong password and return the error to raise for it."""
        lock_until = moment + timedelta(minutes=self.lockout_minutes)
        outcome = await self.store.register_failed_login(
            account_id, moment, self.max_failed_attempts, lock_until
        )
        if outcome is None:
            # Another request locked the account while this one was verifying.
            account = await self.store.get_by_id(account_id)
            current = as_utc(account.lockout_until) if account else None
            return AccountLocked(remaining_minutes(current or lock_until, moment))

        attempts, locked_until = outcome
        if locked_until is not None and locked_until > moment:
            await self.store.record_event(
                "auth.account_locked", account_id, email,
                {"failed_attempts": attempts, "locked_until": locked_until.isoformat()},
            )
            log_security_event("account_locked", email, attempts=attempts, minutes=self.lockout_minutes)
            return AccountLocked(self.lockout_minutes, just_locked=True)

        await self.store.record_event("auth.login_failed", account_id, email, {"failed_attempts": attempts})
        log_security_event("login_failed", email, reason="wrong_password", attempts=attempts)
        return InvalidCredentials(remaining_attempts=max(self.max_failed_attempts - attempts, 0))
