"""Models module - imports all models for SQLModel registration."""

# Import all models so SQLModel can register them
from car_rental.models.account import Account, AccountRole
from car_rental.models.audit_log import AuditLog

__all__ = [
    "Account",
    "AccountRole",
    "AuditLog",
]
