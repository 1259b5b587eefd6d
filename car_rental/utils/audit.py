"""Audit logging utility for the account-security WORM trail."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from car_rental.models.audit_log import AuditLog


def create_audit_log(
    session: AsyncSession,
    action: str,
    account_id: Optional[UUID] = None,
    email: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """Stage an audit log entry on ``session``.

    Args:
        session: Database session
        action: Action name (e.g. 'account.registration_started', 'auth.account_locked')
        account_id: Account the event concerns, if one exists
        email: Normalized email the event concerns (kept even if the account is deleted)
        metadata: Additional JSON-serializable details. Never secrets.

    Returns:
        The staged AuditLog instance
    """
    audit_log = AuditLog(
        account_id=account_id,
        action=action,
        email=email,
        metadata_json=metadata or {},
    )

    session.add(audit_log)
    # Committed by the caller.

    return audit_log
