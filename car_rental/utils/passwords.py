"""Password hashing helpers (Argon2id with a tunable work factor)."""

import secrets
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi.concurrency import run_in_threadpool

from car_rental.config.settings import settings

_hasher = PasswordHasher(
    time_cost=settings.PASSWORD_HASH_TIME_COST,
    memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
    parallelism=settings.PASSWORD_HASH_PARALLELISM,
)


def hash_password(password: str) -> str:
    """Return an Argon2id hash for the given password."""
    return _hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Check ``password`` against a stored hash; malformed hashes never match."""
    try:
        return _hasher.verify(hashed, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """A hash of a random throwaway password, checked against for unknown emails.

    Login then spends the same Argon2 work whether or not the email exists.
    """
    return hash_password(secrets.token_urlsafe(32))


def verify_against_dummy(password: str) -> bool:
    return verify_password(password, dummy_password_hash())


async def hash_password_async(password: str) -> str:
    """Hash in a worker thread so the event loop is not blocked by the work factor."""
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, password, hashed)


async def verify_against_dummy_async(password: str) -> bool:
    return await run_in_threadpool(verify_against_dummy, password)
