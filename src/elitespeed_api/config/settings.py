"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with .env file support.
"""

from typing import Optional

from pydantic_settings import BaseSettings

from .constants import (
    CARRIER_TIMEOUT_SECONDS,
    DB_TIMEOUT_SECONDS,
    ELITESPEED_BASE_URL,
    SYNC_INTERVAL_MINUTES,
    SYNC_MAX_CONCURRENCY,
)


class Settings(BaseSettings):
    """Application configuration."""

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./order_sync.db"

    # EliteSpeed Carrier API Configuration
    elitespeed_api_token: Optional[str] = None
    elitespeed_base_url: str = ELITESPEED_BASE_URL
    carrier_timeout_seconds: float = CARRIER_TIMEOUT_SECONDS

    # Carrier webhook shared secret (validation skipped when unset)
    webhook_token: Optional[str] = None

    # Reconciliation Configuration
    sync_interval_minutes: int = SYNC_INTERVAL_MINUTES
    sync_max_concurrency: int = SYNC_MAX_CONCURRENCY
    sync_candidate_limit: Optional[int] = None
    db_timeout_seconds: float = DB_TIMEOUT_SECONDS
    scheduler_enabled: bool = True
    scheduler_max_instances: int = 1
    run_startup_sync: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    environment: str = "development"

    # Dashboard Configuration
    dashboard_api_key: Optional[str] = None

    # GlitchTip Error Monitoring
    glitchtip_dsn: Optional[str] = None

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Create a global settings instance
settings = Settings()
