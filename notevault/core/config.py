"""
Core Configuration Module
Uses pydantic-settings for environment variable management.
All secrets loaded from .env file - NEVER hardcode secrets.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    project_name: str = "NoteVault"
    environment: str = Field(default="development", description="development | staging | production")
    debug: bool = Field(default=True, description="Debug mode")
    api_v1_str: str = "/api/v1"
    app_version: str = Field(default="1.0.0", description="Application version")

    # Database - PostgreSQL
    database_url: str = Field(
        default="postgresql+asyncpg://notevault:notevault_secret@db:5432/notevault",
        description="Full database URL",
    )
    db_pool_size: int = Field(default=20, description="SQLAlchemy connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_echo: bool = Field(default=False, description="Echo SQL queries")
    run_db_init: bool = False

    # Security
    secret_key: str = Field(default="CHANGE_ME_IN_PRODUCTION", description="JWT signing secret")
    algorithm: str = Field(default="HS256", description="JWT Algorithm")
    access_token_expire_minutes: int = Field(default=120, description="Access token expiry in minutes")
    refresh_token_expire_days: int = Field(default=7, description="Refresh token expiry in days")
    password_reset_expire_minutes: int = Field(default=60, description="Password reset token expiry")
    max_failed_logins: int = Field(default=5, description="Failed logins before lockout")
    lockout_minutes: int = Field(default=15, description="Account lockout duration")

    # CORS
    cors_origins: str = Field(default="http://localhost:5173", description="Allowed CORS origins")
    backend_cors_origins: str = Field(default="", description="CORS origins as comma-separated string")

    # Frontend (sitemap, email links)
    frontend_url: str = Field(default="http://localhost:5173", description="Public frontend base URL")
    sitemap_note_limit: int = Field(default=5000, description="Max note URLs in sitemap")

    # Payment gateway (Razorpay-compatible)
    razorpay_key_id: str = Field(default="", description="Payment gateway key id")
    razorpay_key_secret: str = Field(default="", description="Payment gateway key secret")
    razorpay_api_url: str = Field(default="https://api.razorpay.com/v1", description="Payment gateway API")
    platform_commission_rate: float = Field(default=0.20, description="Platform fee on each sale")
    escrow_hold_hours: int = Field(default=24, description="Hours before seller earnings are released")
    minimum_withdrawal_inr: int = Field(default=100, description="Minimum seller withdrawal amount")
    refund_window_days: int = Field(default=30, description="Days after purchase a refund may be requested")
    max_refunds_per_window: int = Field(default=3, description="Refund requests allowed per buyer per refund window")

    # Object storage - S3 compatible
    storage_endpoint: str = Field(default="minio:9000", description="S3/MinIO endpoint")
    storage_public_endpoint: str = Field(default="localhost:9000", description="Endpoint used in signed URLs")
    storage_access_key: str = Field(default="minioadmin", description="S3 access key")
    storage_secret_key: str = Field(default="minioadmin", description="S3 secret key")
    storage_bucket_name: str = Field(default="notevault-notes", description="Bucket for note files")
    storage_secure: bool = Field(default=False, description="Use HTTPS for storage")
    download_url_expire_seconds: int = Field(default=3600, description="Signed download URL lifetime")

    # Celery
    celery_broker_url: str = Field(default="redis://redis:6379/0", description="Celery broker URL")
    celery_result_backend: str = Field(default="redis://redis:6379/0", description="Celery result backend")

    # Email
    email_from: str = Field(default="NoteVault <no-reply@notevault.app>", description="Sender address")

    # Sentry (Error Tracking)
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")
    sentry_traces_sample_rate: float = Field(default=0.1, description="Sentry traces sample rate")

    # Prometheus
    prometheus_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from backend_cors_origins or cors_origins."""
        origins = self.backend_cors_origins or self.cors_origins
        if origins:
            return [o.strip() for o in origins.split(",") if o.strip()]
        return []

    @property
    def async_database_url(self) -> str:
        """Normalize the database URL to an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
