"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "policy_rules_user"
    POSTGRES_PASSWORD: str = "policy_rules_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "policy_rules_db"

    # Full URL for non-Postgres backends (e.g. sqlite+aiosqlite in tests)
    DATABASE_URL_OVERRIDE: str | None = None

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2, or the override minus its async driver)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE.replace("+aiosqlite", "").replace("+asyncpg", "")
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Redis / Celery ────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── Auth / JWT ────────────────────────────
    JWT_SECRET_KEY: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # ── Business rules ────────────────────────
    CLAIM_AUTO_APPROVE_LIMIT: Decimal = Decimal("10000")
    COMMISSION_RATE: Decimal = Decimal("0.10")
    BILLING_ACTIVE_ONLY: bool = True
    BUSINESS_TIMEZONE: str = "UTC"
    TRANSACTION_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # ── Batch jobs ────────────────────────────
    BATCH_ACTOR: str = "system:batch"
    RENEWAL_CRON_HOUR: int = Field(default=1, ge=0, le=23)
    BILLING_CRON_HOUR: int = Field(default=2, ge=0, le=23)

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
