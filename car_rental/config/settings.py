from typing import List, Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field

load_dotenv()


class Settings(BaseSettings):
    """Base settings for the application."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "Car Rental Backend"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Car rental backend API: accounts, authentication and session issuance"
    APP_AUTHOR: str = "Car Rental Development Team"
    ENVIRONMENT: str = "development"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    CORS_ORIGINS: List[str] = Field(
        default=["https://localhost:5173"],
        description="Origins allowed to call the API (the web client)",
    )

    DATABASE_URL: str = ""
    LOCAL_SQLITE_PATH: str = "sqlite+aiosqlite:///./local.db"

    # Session / verification tokens. No fallback secret: the app refuses to start without one.
    JWT_SECRET: str = Field(..., min_length=32, description="HMAC key used to sign JWTs")
    JWT_ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXP_SECONDS: int = 24 * 60 * 60
    VERIFICATION_TOKEN_EXP_SECONDS: int = 60

    # Registration OTP
    OTP_EXP_SECONDS: int = 60

    # Brute-force protection
    MAX_FAILED_LOGIN_ATTEMPTS: int = Field(default=3, ge=1)
    LOCKOUT_MINUTES: int = Field(default=5, ge=1)

    # Argon2 work factor
    PASSWORD_HASH_TIME_COST: int = Field(default=3, ge=1)
    PASSWORD_HASH_MEMORY_COST: int = Field(default=65536, ge=8, description="KiB")
    PASSWORD_HASH_PARALLELISM: int = Field(default=4, ge=1)

    # Outbound email
    EMAIL_BACKEND: Literal["smtp", "console"] = "smtp"
    EMAIL_FROM: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0

    # Optional bootstrap admin, created at startup when both are set
    SEED_ADMIN_EMAIL: str = ""
    SEED_ADMIN_PASSWORD: str = ""
    SEED_ADMIN_FULL_NAME: str = "Administrator"

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """Resolve the database URL for the application.

        Priority:
        1. Explicit DATABASE_URL (Postgres, SQLite, etc.)
        2. Local SQLite fallback for development: LOCAL_SQLITE_PATH
        """
        if self.DATABASE_URL and self.DATABASE_URL.strip():
            return self.DATABASE_URL.strip()
        if self.LOCAL_SQLITE_PATH and self.LOCAL_SQLITE_PATH.strip():
            return self.LOCAL_SQLITE_PATH.strip()
        return "sqlite+aiosqlite:///./local.db"

    @computed_field
    @property
    def seed_admin_configured(self) -> bool:
        return bool(self.SEED_ADMIN_EMAIL.strip() and self.SEED_ADMIN_PASSWORD)


settings = Settings()
