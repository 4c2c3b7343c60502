# backend/drivebook/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the booking and settlement service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./drivebook.db"
    redis_url: str = "redis://localhost:6379/0"
    frontend_base_url: str = "http://localhost:3000"

    # Payment gateway host
    gateway_base_url: str = "http://localhost:8080"
    gateway_api_key: Optional[SecretStr] = None
    gateway_request_timeout_s: float = 15.0

    # Remote host wake (EC2). Leaving the instance id unset disables the wake phase.
    gateway_instance_id: Optional[str] = None
    aws_region: str = "us-east-1"
    gateway_wake_poll_delay_s: int = 5
    gateway_wake_max_attempts: int = 24

    # Health poll budget: attempts x interval, each attempt bounded by its own timeout
    gateway_health_attempts: int = Field(default=20, ge=1)
    gateway_health_interval_s: float = Field(default=3.0, ge=0)
    gateway_health_timeout_s: float = Field(default=2.0, gt=0)

    gateway_redirect_max_attempts: int = Field(default=2, ge=1)

    # Settlement
    settlement_ledger_attempts: int = Field(default=20, ge=1)
    settlement_ledger_interval_s: float = Field(default=3.0, ge=0)
    settlement_release_partial_batches: bool = False
    settlement_lock_ttl_s: int = 90

    online_reservation_ttl_minutes: int = Field(default=30, ge=1)
    default_slot_amount: Decimal = Decimal("50.00")

    @field_validator("gateway_base_url", "frontend_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = Settings()
