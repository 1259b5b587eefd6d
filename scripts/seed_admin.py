"""Script to create an admin account in the database.

Usage:
    python scripts/seed_admin.py --email admin@example.com --full-name "Admin User"

The password is read from ADMIN_PASSWORD or prompted for; it is never
accepted on the command line.
"""

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from car_rental
sys.path.insert(0, str(Path(__file__).parent.parent))

from car_rental.db.accounts import AccountStore
from car_rental.db.db import init_db, close_db, db_session
from car_rental.db.seed import create_admin_account
from car_rental.services.errors import DuplicateAccount


async def seed_admin_user(email: str, password: str, full_name: str) -> int:
    """Create the admin account if the email is free. Returns a process exit code."""
    await init_db()
    try:
        async with db_session() as session:
            store = AccountStore(session)
            existing = await store.get_by_email(email)
            if existing:
                print(f"Account already exists: {existing.email} (role={existing.role})")
                return 1

            try:
                account = await create_admin_account(store, email, password, full_name)
            except ValueError as e:
                print(f"Password rejected: {e}")
                return 2
            except DuplicateAccount:
                print(f"Account already exists: {email}")
                return 1

            print("=" * 50)
            print("Admin user created successfully!")
            print("=" * 50)
            print(f"Email: {account.email}")
            print(f"User ID: {account.id}")
            print("=" * 50)
            return 0
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", default="Admin User")
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    print("Seeding admin user...")
    return asyncio.run(seed_admin_user(args.email, password, args.full_name))


if __name__ == "__main__":
    sys.exit(main())
