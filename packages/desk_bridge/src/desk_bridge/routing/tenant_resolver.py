"""
Tenant Resolver

Looks up a tenant's configuration and fills in its inbox id.

Inbox ids configured by name are resolved once per tenant through the desk
API and cached. Callers always receive an immutable TenantConfig; the
directory's copy is never mutated.
"""

import asyncio
import logging
import threading
from collections.abc import Callable

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.client import DeskClient
from desk_bridge.errors import NotFoundError, ValidationError
from desk_bridge.persistence.tenants import TenantDirectory

logger = logging.getLogger(__name__)


class InboxResolver:
    """
    Thread-safe read-through cache of inbox ids, keyed by tenant id.
    """

    def __init__(self, desk_factory: Callable[[TenantConfig], DeskClient] = DeskClient.for_tenant):
        self._desk_factory = desk_factory
        self._lock = threading.Lock()
        self._cache: dict[str, int] = {}

    def cached(self, tenant_id: str) -> int | None:
        with self._lock:
            return self._cache.get(tenant_id)

    def invalidate(self, tenant_id: str | None = None) -> None:
        """Drop one tenant's cached inbox id, or all of them."""
        with self._lock:
            if tenant_id is None:
                self._cache.clear()
            else:
                self._cache.pop(tenant_id, None)

    async def resolve(self, tenant: TenantConfig) -> TenantConfig:
        """
        Return the tenant with inbox_id set.

        Raises:
            NotFoundError: No inbox id configured and no inbox matches the name
            UpstreamError: Listing inboxes failed
        """
        if tenant.inbox_id:
            return tenant

        inbox_id = self.cached(tenant.tenant_id)
        if inbox_id is not None:
            return tenant.with_inbox(inbox_id)

        if not tenant.inbox_name:
            raise NotFoundError(
                "Tenant has neither inbox_id nor inbox_name",
                details={"tenant_id": tenant.tenant_id},
            )

        wanted = tenant.inbox_name.strip().lower()
        desk = self._desk_factory(tenant)
        try:
            inboxes = await desk.list_inboxes()
        finally:
            await desk.close()

        for inbox in inboxes:
            if inbox.name.strip().lower() == wanted:
                with self._lock:
                    self._cache[tenant.tenant_id] = inbox.id
                logger.info(
                    "Resolved inbox id from name",
                    extra={"tenant_id": tenant.tenant_id, "inbox_name": tenant.inbox_name, "inbox_id": inbox.id},
                )
                return tenant.with_inbox(inbox.id)

        raise NotFoundError(
            f"Inbox not found: {tenant.inbox_name}",
            details={"tenant_id": tenant.tenant_id, "available": [i.name for i in inboxes]},
        )


class TenantResolver:
    """
    Resolves a tenant id from a webhook route into a ready-to-use config.
    """

    def __init__(self, directory: TenantDirectory, inbox_resolver: InboxResolver | None = None):
        self.directory = directory
        self.inbox_resolver = inbox_resolver or InboxResolver()

    def get(self, tenant_id: str) -> TenantConfig:
        """Look up a tenant without resolving its inbox."""
        tenant_id = (tenant_id or "").strip()
        if not tenant_id:
            raise ValidationError("Empty tenant id")

        tenant = self.directory.get(tenant_id)
        if tenant is None:
            logger.warning(f"No tenant configured for id: {tenant_id}")
            raise NotFoundError(f"Unknown tenant: {tenant_id}", details={"tenant_id": tenant_id})
        return tenant

    async def lookup(self, tenant_id: str) -> TenantConfig:
        """get() off the event loop, so a slow directory cannot stall other webhooks."""
        return await asyncio.to_thread(self.get, tenant_id)

    async def resolve(self, tenant_id: str) -> TenantConfig:
        return await self.inbox_resolver.resolve(await self.lookup(tenant_id))
