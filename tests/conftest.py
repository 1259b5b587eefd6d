"""Shared fixtures: per-test SQLite database, recording email sender, API client."""

import asyncio
import os
import re

# Settings are read at import time; configure before importing the app.
os.environ["JWT_SECRET"] = "test-signing-key-0123456789abcdef0123456789abcdef"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["PASSWORD_HASH_TIME_COST"] = "1"
os.environ["PASSWORD_HASH_MEMORY_COST"] = "1024"
os.environ["PASSWORD_HASH_PARALLELISM"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from car_rental.api.dependencies import get_email_sender
from car_rental.db.accounts import AccountStore
from car_rental.db.db import build_engine, create_tables, get_session
from car_rental.db.seed import create_admin_account
from car_rental.main import app
from car_rental.models.account import Account
from car_rental.models.audit_log import AuditLog
from car_rental.services.errors import NotificationFailure
from car_rental.services.notifications import EmailSender

STRONG_PASSWORD = "Str0ng!Passw0rd"
ADMIN_PASSWORD = "Adm1n!Passw0rd#"


class RecordingEmailSender(EmailSender):
    """Keeps sent messages in memory; can be switched to fail like a dead relay."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, message):
        if self.fail:
            raise NotificationFailure()
        self.sent.append(message)

    def last_otp(self) -> str:
        match = re.search(r"<strong>(\d{6})</strong>", self.sent[-1].html)
        assert match, "no OTP found in the last email"
        return match.group(1)


@pytest.fixture
def engine(tmp_path):
    # NullPool: the test client and asyncio.run() helpers use different event loops.
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    asyncio.run(create_tables(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def client(session_maker, email_sender):
    async def _get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def with_store(session_maker):
    """Run ``fn(store)`` against the test database and return its result."""

    def _run(fn):
        async def _inner():
            async with session_maker() as session:
                return await fn(AccountStore(session))

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def get_account(with_store):
    def _get(email: str) -> Account | None:
        return with_store(lambda store: store.get_by_email(email))

    return _get


@pytest.fixture
def set_account_fields(session_maker):
    def _set(email: str, **values) -> None:
        async def _inner():
            async with session_maker() as session:
                await session.execute(
                    update(Account).where(Account.email == email.lower()).values(**values)
                )
                await session.commit()

        asyncio.run(_inner())

    return _set


@pytest.fixture
def audit_rows(session_maker):
    def _rows(email: str) -> list[AuditLog]:
        async def _inner():
            async with session_maker() as session:
                result = await session.execute(select(AuditLog).where(AuditLog.email == email.lower()))
                return list(result.scalars().all())

        return asyncio.run(_inner())

    return _rows


@pytest.fixture
def register_user(client, email_sender):
    """Register and verify a customer; returns the verification response data."""

    def _register(email: str = "driver@example.com", password: str = STRONG_PASSWORD, full_name: str = "Dana Driver"):
        response = client.post(
            "/register",
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "address": "1 Garage Lane",
                "phone_number": "+1 555 0100",
            },
        )
        assert response.status_code == 202, response.text
        pending_id = response.json()["data"]["pending_id"]
        verified = client.post(
            "/verify-registration-otp",
            json={"pending_id": pending_id, "otp": email_sender.last_otp()},
        )
        assert verified.status_code == 200, verified.text
        return verified.json()["data"]

    return _register


@pytest.fixture
def admin_token(client, with_store):
    with_store(lambda store: create_admin_account(store, "admin@example.com", ADMIN_PASSWORD, "Ada Admin"))
    response = client.post("/login", json={"email": "admin@example.com", "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
