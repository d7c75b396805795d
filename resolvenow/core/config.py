"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "1.00.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database (any SQLAlchemy URL; Postgres in production)
    DATABASE_URL: str = "sqlite:///./resolvenow.db"

    # Access tokens
    JWT_SECRET: str = "change-this-in-production"
    JWT_EXPIRES_HOURS: int = 24 * 7
    COOKIE_NAME: str = "resolvenow_session"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (links in emails)
    FRONTEND_URL: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute, 0 disables)
    RATE_LIMIT_AUTH: int = 5
    RATE_LIMIT_API: int = 100
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Dashboard WebSocket liveness probe interval
    WS_HEARTBEAT_SECONDS: float = 30.0

    # Evidence storage
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "/tmp/resolvenow-case-files"
    S3_BUCKET: str = "case-files"
    S3_REGION: str = "us-east-1"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_FILES_PER_UPLOAD: int = 5

    # Outbound email (Resend); empty key disables sending
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "ResolveNOW <no-reply@resolvenow.com>"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
