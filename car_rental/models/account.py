"""Account model: identity, secret material and security counters."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class AccountRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class Account(SQLModel, table=True):
    """Registered identity used as the login record.

    An account starts as an unverified placeholder holding ``pending_password``
    and a pending OTP digest. OTP verification swaps the pending password for
    ``password_hash`` and marks it verified.
    """

    __tablename__ = "accounts"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str | None = Field(default=None, max_length=255)
    pending_password: str | None = Field(default=None, max_length=64)
    role: str = Field(default=AccountRole.CUSTOMER.value, max_length=16, index=True)
    full_name: str = Field(max_length=255)
    address: str = Field(max_length=500)
    phone_number: str = Field(max_length=32)
    is_verified: bool = Field(default=False)
    mfa_completed_once: bool = Field(default=False)
    failed_login_attempts: int = Field(default=0)
    lockout_until: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True))
    )
    pending_otp_hash: str | None = Field(default=None, max_length=64)
    pending_otp_expires_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True))
    )
    last_login_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True))
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
