"""Application settings and configuration."""

import sys

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "your-super-secret-jwt-token"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "partner-portal"
    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # console or json
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str = "sqlite:///./partner_portal.db"

    # Identity store (hosted auth)
    identity_url: str | None = None
    identity_service_key: str | None = None  # Service role key for admin user lookups
    identity_jwt_secret: str = "change-me-in-production"
    identity_jwt_audience: str = "authenticated"
    identity_cookie_marker: tuple[str, str] = ("sb-", "-auth-token")
    identity_lookup_concurrency: int = 5
    identity_timeout_seconds: float = 10.0

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"  # redis://host:6379 to share across instances
    rate_limit_default: str = "100/15 minutes"
    rate_limit_submit: str = "10/minute"


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.identity_jwt_secret in _INSECURE_JWT_DEFAULTS or len(settings.identity_jwt_secret) < 32:
        print(
            "\n❌  FATAL: IDENTITY_JWT_SECRET is insecure or too short (min 32 chars).\n"
            "   Copy the JWT secret from the identity provider's project settings.\n",
            file=sys.stderr,
        )
        sys.exit(1)
