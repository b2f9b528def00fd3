"""Application configuration via environment variables."""

import json
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from restapi.common.rate_limit import RateLimitPolicy

# Secrets that ship in example files and must never reach production
_WEAK_SECRETS = {"supersecretkey", "changeme", "secret", "your-dev-secret-key"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "RestAPI"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/app.db"
    DB_POOL_SIZE: int = 25
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE_SECONDS: int = 3600
    DB_ECHO: bool = False

    # Auth — JWT_SECRET MUST be set via environment / .env (no default)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60
    JWT_ISSUER: str = "restapi"

    # Logging
    LOG_LEVEL: str = "info"
    LOG_FORMAT: str = "text"

    # Security
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_RPS: float = 10.0
    RATE_LIMIT_BURST: int = 20
    AUTH_RATE_LIMIT_PER_MINUTE: float = 5.0
    AUTH_RATE_LIMIT_BURST: int = 5
    RATE_LIMIT_CLEANUP_THRESHOLD: int = 1000
    RATE_LIMIT_CLEANUP_BATCH: int = 500
    # Peers whose X-Forwarded-For is trusted for the client address
    FORWARDED_ALLOW_IPS: str = "127.0.0.1"
    CORS_ENABLED: bool = True
    CORS_ORIGINS: str = '["*"]'

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_production_secret(self) -> "Settings":
        if self.ENVIRONMENT == "production":
            if self.JWT_SECRET.lower() in _WEAK_SECRETS or len(self.JWT_SECRET) < 32:
                raise ValueError("JWT_SECRET must be set to a strong value in production")
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS (JSON list or comma-separated) into a list."""
        try:
            origins = json.loads(self.CORS_ORIGINS)
        except (json.JSONDecodeError, TypeError):
            origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        if isinstance(origins, str):
            origins = [origins]
        return origins or ["*"]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"

    def api_rate_limit_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy.per_second(self.RATE_LIMIT_RPS, self.RATE_LIMIT_BURST)

    def auth_rate_limit_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy.per_minute(
            self.AUTH_RATE_LIMIT_PER_MINUTE, self.AUTH_RATE_LIMIT_BURST,
        )


settings = Settings()
