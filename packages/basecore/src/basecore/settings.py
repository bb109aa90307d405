"""
Bridge settings.

Global values read from the environment (or a `.env` file) with the
`BRIDGE_` prefix. Per-tenant desk configuration lives in the tenant
directory, not here.
"""

import functools

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration."""

    environment: str = "development"
    log_level: str = "INFO"

    redis_url: str = "redis://localhost:6379/0"
    desk_database_url: str | None = Field(
        default=None,
        description="Read-only connection to the desk database, used for delivery lookups.",
    )

    dedup_backend: str = Field(
        default="redis",
        description="Delivery dedup store: none, memory, redis or sql.",
    )
    dedup_ttl_seconds: int = 7 * 24 * 3600

    tenant_backend: str = Field(default="redis", description="Tenant directory: memory or redis.")
    encryption_key: str | None = Field(
        default=None,
        description="Fernet key for tenant secrets at rest. Stored unencrypted when unset.",
    )

    inbound_deadline_seconds: float = 30.0
    outbound_deadline_seconds: float = 60.0
    staleness_threshold_seconds: float = 30.0
    typing_delay_min_ms: int = 500
    typing_delay_max_ms: int = 2000

    desk_timeout_seconds: float = 15.0
    gateway_timeout_seconds: float = 30.0

    # Fallbacks for tenants that do not carry their own messaging API config
    gateway_provider: str = Field(default="evolution", description="evolution or stub")
    gateway_api_url: str = ""
    gateway_api_key: str = ""
    network_webhook_api_key: str | None = Field(
        default=None,
        description="When set, network webhooks must carry this key (apikey header or Bearer token).",
    )

    model_config = SettingsConfigDict(env_file=".env", env_prefix="BRIDGE_", extra="ignore")


@functools.lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()
