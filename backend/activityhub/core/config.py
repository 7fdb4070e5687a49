# backend/activityhub/core/config.py
import logging
import os
from pathlib import Path
from typing import Dict, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_TIER_LIMITS, TierLimits


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    # Database
    database_url: str = Field(
        default="sqlite:///./activityhub.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the transactional store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Environment
    environment: str = Field(default="development", alias="SITE_MODE")
    is_testing: bool = False  # Set to True when running tests

    # Scheduling
    business_timezone: str = Field(
        default="UTC",
        description="IANA timezone in which recurring slot start times are interpreted",
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        alias="APP_BASE_URL",
        description="Public root used for payment return/cancel/notify URLs",
    )
    currency: str = Field(default="ZAR", description="Currency for booking payments")

    # Subscription tiers: tier name -> monthly booking ceiling (null = unbounded)
    tier_limits: Dict[str, Optional[int]] = Field(
        default_factory=lambda: dict(DEFAULT_TIER_LIMITS.ceilings),
        description="Monthly booking ceiling per subscription tier",
    )
    usage_warning_percent: float = Field(default=80.0, ge=0, le=100)
    usage_critical_percent: float = Field(default=90.0, ge=0, le=100)

    # Capacity lock
    schedule_lock_backend: Literal["redis", "memory"] = Field(
        default="redis",
        description="Backend for the per-schedule capacity mutex",
    )
    capacity_lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Max seconds a booking waits for the schedule lock before CapacityCheckTimeout",
    )
    capacity_lock_ttl_seconds: int = Field(
        default=30,
        ge=1,
        description="Expiry of a held Redis schedule lock (guards against crashed holders)",
    )
    redis_url: str = "redis://localhost:6379"
    redis_namespace: str = "activityhub"

    # PayFast configuration
    payfast_merchant_id: str = Field(default="10000100", alias="PAYFAST_MERCHANT_ID")
    payfast_merchant_key: SecretStr = Field(
        default=SecretStr("46f0cd694581a"), alias="PAYFAST_MERCHANT_KEY"
    )
    payfast_passphrase: SecretStr = Field(default=SecretStr(""), alias="PAYFAST_PASSPHRASE")
    payfast_sandbox: bool = Field(default=True, alias="PAYFAST_SANDBOX")

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret",
    )

    # Email
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        alias="EMAIL_PROVIDER",
        description="Email provider name",
    )
    resend_api_key: str | None = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    from_email: str = "ActivityHub <bookings@activityhub.app>"

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("tier_limits")
    @classmethod
    def _validate_tier_limits(cls, value: Dict[str, Optional[int]]) -> Dict[str, Optional[int]]:
        normalized: Dict[str, Optional[int]] = {}
        for tier, ceiling in value.items():
            if ceiling is not None and ceiling < 0:
                raise ValueError(f"tier ceiling for {tier} must be non-negative")
            normalized[tier.upper()] = ceiling
        return normalized

    @property
    def tier_limit_table(self) -> TierLimits:
        """Tier ceilings as the structure injected into the usage gate."""
        return TierLimits(ceilings=self.tier_limits)

    @property
    def payment_notify_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}/api/v1/webhooks/payfast"


settings = Settings()
