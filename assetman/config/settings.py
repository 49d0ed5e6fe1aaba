"""Application settings via Pydantic BaseSettings."""

from __future__ import annotations

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings

_INSECURE_DEV_SECRET = "change-me-in-production-0123456789abcdef"  # nosec B105


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Database
    database_url: str = "sqlite+aiosqlite:///./assetman.db"
    create_tables: bool = True  # dev convenience; use Alembic in production

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:4200"]
    seed_demo_data: bool = False

    # Tokens (HS256 needs at least 256 bits of secret)
    jwt_secret: str = _INSECURE_DEV_SECRET
    access_token_validity_seconds: int = 900
    refresh_token_validity_seconds: int = 1_209_600
    password_reset_validity_seconds: int = 3600


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    settings = Settings()
    if settings.jwt_secret == _INSECURE_DEV_SECRET:
        warnings.warn(
            "JWT_SECRET is using the insecure default. "
            "Set JWT_SECRET environment variable for production.",
            UserWarning,
            stacklevel=2,
        )
    return settings
