# backend/courtbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    """Runtime configuration for the court booking service."""

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="Deployment environment name")
    database_url: str = Field(
        default="sqlite:///./courtbook.db",
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )
    log_level: str = Field(default="INFO")
    is_testing: bool = Field(default=False)

    # Pagination
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    # Availability
    max_available_dates_range_days: int = Field(default=90, ge=1)
    slot_realign_after_bookings: bool = Field(
        default=False,
        description="Resume the slot walk at the end of a blocking buffer zone",
    )

    # Court/day booking lock
    booking_lock_ttl_seconds: int = Field(default=30, ge=1)
    booking_lock_wait_seconds: float = Field(default=5.0, ge=0)
    redis_url: Optional[str] = Field(default=None)

    # Side effects
    qr_code_path_prefix: str = Field(default="tenants")

    # Monitoring
    slow_operation_threshold_seconds: float = Field(default=1.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @field_validator("redis_url")
    @classmethod
    def _blank_redis_url_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_database_url(self) -> str:
        return self.database_url


settings = Settings()
