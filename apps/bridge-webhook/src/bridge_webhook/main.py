"""
Desk Bridge Webhook Service

FastAPI app that receives webhooks from both sides of the bridge.

Responsibilities:
- Route desk webhooks (agent messages, typing) to the outbound handler
- Route Evolution API webhooks (messages.upsert) to the inbound handler
- Always answer 200 with a status body once the tenant is known, so that
  senders do not retry messages the bridge already decided about
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, HTTPException, Request

from basecore.logging import setup_logging
from basecore.settings import Settings, get_settings

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.client import DeskClient
from desk_bridge.errors import BridgeError, NotFoundError
from desk_bridge.network import MessagingGateway, gateway_for_tenant
from desk_bridge.network.evolution.webhook import validate_api_key
from desk_bridge.persistence.delivery_store import get_delivery_store
from desk_bridge.persistence.tenants import TenantDirectory, get_tenant_directory
from desk_bridge.routing.tenant_resolver import InboxResolver, TenantResolver
from desk_bridge.service.dedup import DeliveryGuard
from desk_bridge.service.inbound_handler import InboundHandler
from desk_bridge.service.outbound_handler import OutboundHandler

setup_logging()
logger = logging.getLogger(__name__)


def create_app(
    directory: TenantDirectory | None = None,
    guard: DeliveryGuard | None = None,
    desk_factory: Callable[[TenantConfig], DeskClient] | None = None,
    gateway_factory: Callable[[TenantConfig], MessagingGateway] = gateway_for_tenant,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the webhook app.

    Collaborators default to the ones selected by settings.
    """
    settings = settings or get_settings()
    desk_factory = desk_factory or (
        lambda tenant: DeskClient.for_tenant(tenant, timeout=settings.desk_timeout_seconds)
    )
    tenant_resolver = TenantResolver(
        directory or get_tenant_directory(),
        InboxResolver(desk_factory=desk_factory),
    )

    inbound = InboundHandler(
        tenant_resolver,
        guard=guard or DeliveryGuard(get_delivery_store()),
        desk_factory=desk_factory,
        settings=settings,
    )
    outbound = OutboundHandler(tenant_resolver, gateway_factory=gateway_factory, settings=settings)

    app = FastAPI(
        title="Desk Bridge Webhook",
        description="Bridges a messaging network session and a support desk",
        version="1.0.0",
    )

    async def read_json(request: Request) -> dict[str, Any]:
        body = await request.body()
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON payload")
            raise HTTPException(status_code=400, detail="Invalid JSON")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        return payload

    async def require_tenant(tenant_id: str) -> TenantConfig:
        try:
            return await tenant_resolver.lookup(tenant_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Unknown tenant")
        except BridgeError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "bridge-webhook"}

    @app.post("/webhook/desk/{tenant_id}")
    async def receive_desk_webhook(tenant_id: str, request: Request):
        """
        Receive a desk webhook and relay agent activity to the network.
        """
        await require_tenant(tenant_id)
        payload = await read_json(request)

        logger.debug(
            "Desk webhook received",
            extra={"tenant_id": tenant_id, "event": payload.get("event")},
        )
        return await outbound.handle_event(tenant_id, payload)

    @app.post("/webhook/network/{tenant_id}")
    async def receive_network_webhook(tenant_id: str, request: Request):
        """
        Receive an Evolution API webhook and forward messages to the desk.
        """
        await require_tenant(tenant_id)
        payload = await read_json(request)

        expected_key = settings.network_webhook_api_key
        if expected_key:
            headers = dict(request.headers)
            if not validate_api_key(headers, expected_key) and payload.get("apikey") != expected_key:
                logger.warning("Invalid Evolution API key", extra={"tenant_id": tenant_id})
                raise HTTPException(status_code=403, detail="Invalid API key")

        return await inbound.handle_webhook(tenant_id, payload)

    app.state.inbound = inbound
    app.state.outbound = outbound
    app.state.tenant_resolver = tenant_resolver
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8090)
