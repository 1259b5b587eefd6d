"""Database seed helpers."""

from car_rental.config.logger import app_logger
from car_rental.config.settings import settings
from car_rental.db.accounts import AccountStore
from car_rental.db.db import db_session
from car_rental.models.account import Account, AccountRole
from car_rental.utils.password_policy import validate_password
from car_rental.utils.passwords import hash_password_async


async def create_admin_account(
    store: AccountStore,
    email: str,
    password: str,
    full_name: str,
) -> Account:
    """Create a verified admin account after checking the password policy.

    Raises:
        ValueError: password fails the policy
        DuplicateAccount: the email is already taken
    """
    check = validate_password(password)
    if not check.valid:
        raise ValueError(check.message)

    account = await store.create_verified_account(
        email=email,
        password_hash=await hash_password_async(password),
        full_name=full_name,
        address="-",
        phone_number="-",
        role=AccountRole.ADMIN,
    )
    await store.record_event("account.admin_seeded", account.id, account.email)
    return account


async def ensure_seed_admin_user() -> None:
    """Create the configured bootstrap admin if it doesn't exist.

    Does nothing unless SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD are set.
    """
    if not settings.seed_admin_configured:
        app_logger.info("No seed admin configured (SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD)")
        return

    async with db_session() as session:
        store = AccountStore(session)
        existing = await store.get_by_email(settings.SEED_ADMIN_EMAIL)
        if existing:
            app_logger.info(f"Seed admin user already exists: {existing.email}")
            return

        try:
            account = await create_admin_account(
                store,
                email=settings.SEED_ADMIN_EMAIL,
                password=settings.SEED_ADMIN_PASSWORD,
                full_name=settings.SEED_ADMIN_FULL_NAME,
            )
        except ValueError as e:
            app_logger.error(f"Seed admin not created, SEED_ADMIN_PASSWORD rejected: {e}")
            return

        app_logger.info(f"Seeded admin user: {account.email}")
