"""
Messaging Gateways

Gateway implementations for the messaging network session.
Supports Evolution API (production) and Stub (development).
"""

import logging

from basecore.settings import get_settings

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.network.base import (
    NETWORK_DOMAIN,
    MessagingGateway,
    Presence,
    SendResult,
    normalize_phone,
    parse_peer_id,
    phone_from_peer_id,
)
from desk_bridge.network.evolution import EvolutionGateway
from desk_bridge.network.stub import StubGateway

logger = logging.getLogger(__name__)


def gateway_for_tenant(tenant: TenantConfig) -> MessagingGateway:
    """
    Build the messaging gateway for a tenant.

    The tenant's own API URL and key win over the process-wide defaults.
    Falls back to the stub when no Evolution API is configured.
    """
    settings = get_settings()
    api_url = tenant.gateway_url or settings.gateway_api_url
    api_key = tenant.gateway_api_key or settings.gateway_api_key

    if settings.gateway_provider == "evolution" and api_url:
        return EvolutionGateway(
            api_url=api_url,
            api_key=api_key,
            instance_name=tenant.session_name,
            timeout=settings.gateway_timeout_seconds,
        )

    if settings.gateway_provider == "evolution":
        logger.warning(
            "Evolution gateway missing api_url, using stub",
            extra={"tenant_id": tenant.tenant_id},
        )
    return StubGateway()


__all__ = [
    "NETWORK_DOMAIN",
    "EvolutionGateway",
    "MessagingGateway",
    "Presence",
    "SendResult",
    "StubGateway",
    "gateway_for_tenant",
    "normalize_phone",
    "parse_peer_id",
    "phone_from_peer_id",
]
