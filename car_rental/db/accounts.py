"""Credential store: account persistence and atomic security-counter updates.

Every state transition that races under concurrent requests (failed-login
counting, OTP consumption, placeholder creation) is a single conditional
statement here, so callers never do read-modify-write on counters.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import case, delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from car_rental.config.logger import app_logger
from car_rental.models.account import Account, AccountRole
from car_rental.services.errors import DuplicateAccount
from car_rental.utils.audit import create_audit_log


def normalize_email(email: str) -> str:
    return email.strip().lower()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountStore:
    """Account persistence bound to one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ============================================
    # Reads
    # ============================================

    async def get_by_email(self, email: str) -> Optional[Account]:
        result = await self.session.execute(
            select(Account)
            .where(Account.email == normalize_email(email))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        return await self.session.get(Account, account_id, populate_existing=True)

    async def list_accounts(self, limit: int = 100, offset: int = 0) -> list[Account]:
        result = await self.session.execute(
            select(Account).order_by(Account.created_at).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    # ============================================
    # Creation / deletion
    # ============================================

    async def create_placeholder(
        self,
        email: str,
        pending_password: str,
        full_name: str,
        address: str,
        phone_number: str,
        otp_hash: str,
        otp_expires_at: datetime,
    ) -> Account:
        """Insert an unverified placeholder, replacing any earlier unverified one.

        Raises:
            DuplicateAccount: the email is held by a verified account, or a
                concurrent registration inserted it first (unique index).
        """
        normalized = normalize_email(email)
        account = Account(
            email=normalized,
            pending_password=pending_password,
            role=AccountRole.CUSTOMER.value,
            full_name=full_name,
            address=address,
            phone_number=phone_number,
            is_verified=False,
            pending_otp_hash=otp_hash,
            pending_otp_expires_at=otp_expires_at,
        )
        try:
            await self.session.execute(
                delete(Account).where(
                    Account.email == normalized,
                    Account.is_verified.is_(False),
                )
            )
            self.session.add(account)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            app_logger.warning(f"Placeholder insert rejected by unique index for {normalized}")
            raise DuplicateAccount(
                "A registration for this email is already in progress or completed."
            ) from exc
        await self.session.refresh(account)
        return account

    async def create_verified_account(
        self,
        email: str,
        password_hash: str,
        full_name: str,
        address: str,
        phone_number: str,
        role: AccountRole = AccountRole.CUSTOMER,
    ) -> Account:
        """Insert an already-verified account (used for operator-created admins)."""
        account = Account(
            email=normalize_email(email),
            password_hash=password_hash,
            role=role.value,
            full_name=full_name,
            address=address,
            phone_number=phone_number,
            is_verified=True,
            mfa_completed_once=True,
        )
        try:
            self.session.add(account)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateAccount() from exc
        await self.session.refresh(account)
        return account

    async def delete_placeholder(self, account_id: UUID) -> bool:
        """Delete an account only while it is still unverified."""
        result = await self.session.execute(
            delete(Account).where(Account.id == account_id, Account.is_verified.is_(False))
        )
        await self.session.commit()
        return result.rowcount == 1

    async def delete_account(self, account_id: UUID) -> bool:
        result = await self.session.execute(delete(Account).where(Account.id == account_id))
        await self.session.commit()
        return result.rowcount == 1

    # ============================================
    # Verification
    # ============================================

    async def set_pending_otp(
        self, account_id: UUID, otp_hash: str, expires_at: datetime, now: datetime
    ) -> bool:
        """Replace the pending OTP digest and expiry together; unverified accounts only."""
        result = await self.session.execute(
            update(Account)
            .where(Account.id == account_id, Account.is_verified.is_(False))
            .values(pending_otp_hash=otp_hash, pending_otp_expires_at=expires_at, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def finalize_registration(
        self, account_id: UUID, otp_hash: str, password_hash: str, now: datetime
    ) -> bool:
        """Consume the pending OTP and activate the account in one statement.

        Matches only while the account is unverified, the digest is unchanged
        and the code is unexpired, so a code can be consumed at most once.
        """
        result = await self.session.execute(
            update(Account)
            .where(
                Account.id == account_id,
                Account.is_verified.is_(False),
                Account.pending_otp_hash == otp_hash,
                Account.pending_otp_expires_at >= now,
            )
            .values(
                password_hash=password_hash,
                pending_password=None,
                is_verified=True,
                mfa_completed_once=True,
                pending_otp_hash=None,
                pending_otp_expires_at=None,
                failed_login_attempts=0,
                lockout_until=None,
                last_login_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    # ============================================
    # Login counters
    # ============================================

    async def register_failed_login(
        self,
        account_id: UUID,
        now: datetime,
        max_attempts: int,
        lockout_until: datetime,
    ) -> Optional[tuple[int, Optional[datetime]]]:
        """Increment the failure counter and lock on reaching ``max_attempts``.

        Increment and lock happen in one UPDATE ... RETURNING, so concurrent
        failures cannot lose a count. Returns ``(attempts, lockout_until)``,
        or None when the account was locked by a concurrent request and the
        counter was left alone.
        """
        next_attempts = Account.failed_login_attempts + 1
        result = await self.session.execute(
            update(Account)
            .where(
                Account.id == account_id,
                or_(Account.lockout_until.is_(None), Account.lockout_until <= now),
            )
            .values(
                failed_login_attempts=next_attempts,
                lockout_until=case(
                    (next_attempts >= max_attempts, lockout_until),
                    else_=Account.lockout_until,
                ),
                updated_at=now,
            )
            .returning(Account.failed_login_attempts, Account.lockout_until)
            .execution_options(synchronize_session=False)
        )
        row = result.first()
        await self.session.commit()
        if row is None:
            return None
        return row[0], as_utc(row[1])

    async def clear_expired_lockout(self, account_id: UUID, now: datetime) -> bool:
        """Reset counter and lockout once the lockout window has passed."""
        result = await self.session.execute(
            update(Account)
            .where(
                Account.id == account_id,
                Account.lockout_until.is_not(None),
                Account.lockout_until <= now,
            )
            .values(failed_login_attempts=0, lockout_until=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def record_successful_login(self, account_id: UUID, now: datetime) -> None:
        await self.session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(failed_login_attempts=0, lockout_until=None, last_login_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

    # ============================================
    # Profile
    # ============================================

    async def update_password_hash(self, account_id: UUID, password_hash: str, now: datetime) -> bool:
        result = await self.session.execute(
            update(Account)
            .where(Account.id == account_id, Account.is_verified.is_(True))
            .values(password_hash=password_hash, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def update_profile(
        self, account_id: UUID, updates: dict[str, Any], now: datetime
    ) -> Optional[Account]:
        allowed = {key: value for key, value in updates.items() if key in {"full_name", "address", "phone_number"}}
        if allowed:
            await self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(**allowed, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        return await self.get_by_id(account_id)

    # ============================================
    # Audit trail
    # ============================================

    async def record_event(
        self,
        action: str,
        account_id: Optional[UUID] = None,
        email: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append an audit row. Audit failures are logged, never raised to the caller."""
        try:
            create_audit_log(self.session, action, account_id=account_id, email=email, metadata=metadata)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            app_logger.error(f"Failed to write audit log '{action}': {e}")
