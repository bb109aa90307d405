"""
Tenant Directory

Repository of tenant configurations, keyed by tenant id.

Secrets (desk access token, gateway API key) are encrypted with Fernet in
the Redis directory when an encryption key is configured.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod

import redis
from cryptography.fernet import Fernet, InvalidToken

from basecore.redis import get_redis_client
from basecore.settings import get_settings

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.errors import ValidationError

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("access_token", "gateway_api_key")


class TenantDirectory(ABC):
    """Get/list/save tenant configurations."""

    @abstractmethod
    def get(self, tenant_id: str) -> TenantConfig | None:
        ...

    @abstractmethod
    def list_tenants(self) -> list[TenantConfig]:
        ...

    @abstractmethod
    def save(self, tenant: TenantConfig) -> None:
        ...


class InMemoryTenantDirectory(TenantDirectory):
    """Process-local directory for development and tests."""

    def __init__(self, tenants: list[TenantConfig] | None = None):
        self._lock = threading.Lock()
        self._tenants: dict[str, TenantConfig] = {t.tenant_id: t for t in tenants or []}

    def get(self, tenant_id: str) -> TenantConfig | None:
        with self._lock:
            return self._tenants.get(tenant_id)

    def list_tenants(self) -> list[TenantConfig]:
        with self._lock:
            return sorted(self._tenants.values(), key=lambda t: t.tenant_id)

    def save(self, tenant: TenantConfig) -> None:
        if not tenant.tenant_id:
            raise ValidationError("Empty tenant id")
        with self._lock:
            self._tenants[tenant.tenant_id] = tenant


class RedisTenantDirectory(TenantDirectory):
    """
    Tenant configurations stored as JSON in one Redis hash.
    """

    HASH_KEY = "bridge:tenants"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        encryption_key: str | None = None,
    ):
        self.redis = redis_client or get_redis_client()
        self._fernet = Fernet(encryption_key.encode()) if encryption_key else None

    def _encrypt(self, value: str) -> str:
        if not self._fernet or not value:
            return value
        return self._fernet.encrypt(value.encode()).decode()

    def _decrypt(self, value: str, tenant_id: str) -> str:
        if not self._fernet or not value:
            return value
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            # Written before encryption was enabled
            logger.warning("Tenant secret is not encrypted", extra={"tenant_id": tenant_id})
            return value

    def _dump(self, tenant: TenantConfig) -> str:
        data = tenant.to_dict()
        for name in SECRET_FIELDS:
            data[name] = self._encrypt(data[name])
        return json.dumps(data)

    def _load(self, raw: str | bytes) -> TenantConfig:
        data = json.loads(raw)
        for name in SECRET_FIELDS:
            data[name] = self._decrypt(data.get(name) or "", str(data.get("tenant_id")))
        return TenantConfig.from_dict(data)

    def get(self, tenant_id: str) -> TenantConfig | None:
        raw = self.redis.hget(self.HASH_KEY, tenant_id)
        if raw is None:
            return None
        return self._load(raw)

    def list_tenants(self) -> list[TenantConfig]:
        raw_items = self.redis.hgetall(self.HASH_KEY)
        tenants = [self._load(raw) for raw in raw_items.values()]
        return sorted(tenants, key=lambda t: t.tenant_id)

    def save(self, tenant: TenantConfig) -> None:
        if not tenant.tenant_id:
            raise ValidationError("Empty tenant id")
        self.redis.hset(self.HASH_KEY, tenant.tenant_id, self._dump(tenant))
        logger.info("Saved tenant", extra={"tenant_id": tenant.tenant_id})


_memory_directory: InMemoryTenantDirectory | None = None


def get_tenant_directory() -> TenantDirectory:
    """Build the tenant directory selected by settings."""
    global _memory_directory

    settings = get_settings()
    if settings.tenant_backend == "memory":
        if _memory_directory is None:
            _memory_directory = InMemoryTenantDirectory()
        return _memory_directory
    return RedisTenantDirectory(encryption_key=settings.encryption_key)
