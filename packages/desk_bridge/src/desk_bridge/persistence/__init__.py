"""
Bridge Persistence

Delivery dedup stores and the tenant directory.
"""

from desk_bridge.persistence.delivery_store import (
    DeliveryStore,
    InMemoryDeliveryStore,
    RedisDeliveryStore,
    SqlDeliveryStore,
    get_delivery_store,
)
from desk_bridge.persistence.tenants import (
    InMemoryTenantDirectory,
    RedisTenantDirectory,
    TenantDirectory,
    get_tenant_directory,
)

__all__ = [
    "DeliveryStore",
    "InMemoryDeliveryStore",
    "InMemoryTenantDirectory",
    "RedisDeliveryStore",
    "RedisTenantDirectory",
    "SqlDeliveryStore",
    "TenantDirectory",
    "get_delivery_store",
    "get_tenant_directory",
]
