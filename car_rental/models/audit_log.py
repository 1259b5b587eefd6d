"""Audit log model (WORM - Write Once Read Many)."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, JSON
from sqlmodel import Field, SQLModel


class AuditLog(SQLModel, table=True):
    """Append-only trail of account-security events.

    Rows are only ever inserted. ``account_id`` is nulled when a placeholder
    account is deleted so abandoned registrations keep their history.
    """

    __tablename__ = "audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID | None = Field(default=None, foreign_key="accounts.id", ondelete="SET NULL", index=True)
    action: str = Field(max_length=100, index=True)  # 'auth.login_failed', 'account.verified', etc.
    email: str | None = Field(default=None, max_length=255, index=True)
    # Generic JSON so this model works on both Postgres and SQLite
    metadata_json: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), index=True)
    )
