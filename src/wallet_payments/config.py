"""Process-wide configuration, read once from the environment at startup."""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable view of the runtime configuration.

    Values come from environment variables (``STRIPE_SECRET_KEY``,
    ``STRIPE_WEBHOOK_SECRET``, ``PORT``, ``CORS_ORIGIN`` ...) or a ``.env``
    file. The instance is frozen so it can be shared by concurrent requests.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    payment_provider: Literal["stripe", "simulator"] = "stripe"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    host: str = "0.0.0.0"
    port: int = Field(default=4242, gt=0, lt=65536)
    cors_origin: str = "*"
    default_currency: str = Field(default="usd", min_length=3, max_length=3)
    processor_timeout_seconds: float = Field(default=20.0, gt=0)
    webhook_tolerance_seconds: int = Field(default=300, ge=0)
    webhook_dedup_ttl_seconds: int = Field(default=86400, ge=0)
    webhook_dedup_max_events: int = Field(default=10000, gt=0)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _require_processor_key(self) -> "Settings":
        # Refuse to start rather than send unauthenticated processor requests
        if self.payment_provider == "stripe" and not self.stripe_secret_key:
            raise ValueError("STRIPE_SECRET_KEY must be set when PAYMENT_PROVIDER is 'stripe'")
        return self

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()
