"""Database connection management using SQLModel on async SQLAlchemy."""

import ssl
from typing import AsyncGenerator, Optional
from urllib.parse import urlparse, urlunparse

from contextlib import asynccontextmanager

from fastapi import HTTPException, status
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from car_rental.config.settings import settings
from car_rental.config.logger import app_logger

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker] = None


def get_db_url() -> str:
    """Get database URL for SQLAlchemy with an async driver."""
    db_url = settings.effective_database_url
    if not db_url:
        raise ValueError("DATABASE_URL not configured")
    # SQLite or other non-Postgres URLs are returned as-is
    if db_url.startswith("sqlite"):
        return db_url

    # For Postgres URLs, normalize and strip sslmode (asyncpg handles SSL via connect_args)
    parsed = urlparse(db_url)
    query_parts = [p for p in parsed.query.split("&") if not p.startswith("sslmode=") and p]
    query = "&".join(query_parts)
    clean_url = urlunparse(
        (
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            query,
            parsed.fragment,
        )
    )

    if clean_url.startswith("postgresql://"):
        clean_url = clean_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif clean_url.startswith("postgres://"):
        clean_url = clean_url.replace("postgres://", "postgresql+asyncpg://", 1)

    return clean_url


def build_engine(db_url: str, **engine_kwargs) -> AsyncEngine:
    """Create the async engine (asyncpg for Postgres, aiosqlite for SQLite)."""
    connect_args = {}
    if db_url.startswith("postgresql+asyncpg://"):
        connect_args = {"ssl": ssl.create_default_context()}
        engine_kwargs.setdefault("pool_size", 20)
        engine_kwargs.setdefault("max_overflow", 0)

    engine = create_async_engine(
        db_url,
        echo=False,
        connect_args=connect_args,
        **engine_kwargs,
    )

    if db_url.startswith("sqlite"):
        # SQLite leaves foreign keys off per connection; ON DELETE rules need them.
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create all registered tables (no-op for tables that already exist)."""
    # Import all models to register them with SQLModel
    from car_rental.models import account, audit_log  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def init_db() -> None:
    """Initialize the database engine and create tables."""
    global _engine, _session_maker

    db_url = get_db_url()
    app_logger.info("Initializing database connection")

    _engine = build_engine(db_url)
    _session_maker = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await create_tables(_engine)
    app_logger.info("Database initialized successfully")


async def close_db() -> None:
    """Close the database engine."""
    global _engine, _session_maker

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_maker = None
        app_logger.info("Database connection closed")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get a database session."""
    if not _session_maker:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )

    async with _session_maker() as session:
        yield session


@asynccontextmanager
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Async context manager for startup tasks and scripts."""
    if not _session_maker:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_maker() as session:
        yield session


async def ping_database() -> tuple[bool, str]:
    """Run a lightweight health query against the database."""
    if not _engine or not _session_maker:
        return False, "Database not initialized"

    try:
        async with _session_maker() as session:
            result = await session.execute(text("SELECT 1"))
            row = result.scalar()
            if row == 1:
                return True, "Database connection healthy"
            return False, f"Unexpected response: {row}"
    except Exception as e:
        app_logger.error(f"Database health check failed: {e}")
        return False, "Database query failed"
