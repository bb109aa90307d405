"""
Outbound Message Handler

Relays agent activity from the desk to the messaging network:
1. Parses the desk webhook into an event
2. Drops private notes, non-agent messages and bridge echoes
3. Resolves the peer id
4. Sends text, media or a reaction between composing/paused presence

Each event is handled within a deadline and never retried here.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

import pydantic

from basecore.settings import Settings, get_settings

from desk_bridge.contracts.desk_events import (
    Attachment,
    MessageCreatedEvent,
    OtherEvent,
    OutboundWebhookEvent,
    PeerCandidates,
    TypingEvent,
    parse_desk_event,
)
from desk_bridge.contracts.inbound import SOURCE_TAG_PREFIX, is_bridge_source_tag
from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.errors import BridgeError, ValidationError
from desk_bridge.network import gateway_for_tenant
from desk_bridge.network.base import MessagingGateway, Presence, parse_peer_id
from desk_bridge.routing.tenant_resolver import TenantResolver
from desk_bridge.service.presence import PresenceSynchronizer

logger = logging.getLogger(__name__)

BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
STRIKE_PATTERN = re.compile(r"~~(.+?)~~", re.DOTALL)

# One emoji, optionally with variation selector, skin tone and ZWJ joins
_EMOJI_BASE = "[\U0001F000-\U0001FAFF\u2190-\u21FF\u2300-\u23FF\u2600-\u27BF\u2B00-\u2BFF\u3030\u303D\u00A9\u00AE]"
_EMOJI_UNIT = f"{_EMOJI_BASE}\uFE0F?[\U0001F3FB-\U0001F3FF]?"
EMOJI_PATTERN = re.compile(f"^{_EMOJI_UNIT}(?:\u200D{_EMOJI_UNIT})*$")


def to_network_markup(text: str) -> str:
    """Translate desk markdown to network markup."""
    text = BOLD_PATTERN.sub(r"*\1*", text)
    return STRIKE_PATTERN.sub(r"~\1~", text)


def is_single_emoji(text: str) -> bool:
    return bool(EMOJI_PATTERN.match((text or "").strip()))


def network_message_id(external_id: str | None) -> str | None:
    """Desk external ids of bridged messages carry the source tag prefix."""
    if not external_id:
        return None
    if external_id.startswith(SOURCE_TAG_PREFIX):
        return external_id[len(SOURCE_TAG_PREFIX):] or None
    return external_id


def resolve_peer_id(peer: PeerCandidates) -> str:
    """
    Pick the peer id from the first non-empty candidate.

    Order: sender identifier, contact-inbox source id, phone number.
    """
    for candidate in (peer.identifier, peer.source_id, peer.phone_number):
        if candidate:
            return parse_peer_id(candidate)
    raise ValidationError("No peer identity in desk event")


def attachment_route(attachment: Attachment) -> str:
    file_type = attachment.file_type.lower()
    if file_type.startswith("image"):
        return "image"
    if file_type.startswith("audio"):
        return "audio"
    return "document"


class OutboundHandler:
    """
    Handles desk webhook events for a tenant.

    Responsibilities:
    - Mirror agent typing as presence
    - Send agent messages and attachments
    - Keep presence consistent on every exit path
    """

    def __init__(
        self,
        tenant_resolver: TenantResolver,
        gateway_factory: Callable[[TenantConfig], MessagingGateway] = gateway_for_tenant,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.tenant_resolver = tenant_resolver
        self.gateway_factory = gateway_factory
        self._sleep = sleep

    async def handle_event(
        self,
        tenant_id: str,
        event: OutboundWebhookEvent | dict[str, Any],
    ) -> dict[str, Any]:
        """
        Process one desk webhook event under the outbound deadline.

        Args:
            tenant_id: Tenant the webhook was addressed to
            event: Parsed event or the raw webhook body

        Returns:
            Processing result dict
        """
        if isinstance(event, dict):
            try:
                event = parse_desk_event(event)
            except pydantic.ValidationError as e:
                logger.warning(f"Invalid desk webhook body: {e}", extra={"tenant_id": tenant_id})
                return {"status": "failed", "error": "invalid_payload", "code": ValidationError.code}

        try:
            return await asyncio.wait_for(
                self._process(tenant_id, event),
                timeout=self.settings.outbound_deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Outbound event exceeded deadline", extra={"tenant_id": tenant_id})
            return {"status": "failed", "error": "deadline_exceeded"}
        except BridgeError as e:
            log = logger.warning if isinstance(e, ValidationError) else logger.error
            log(
                f"Failed to relay desk event: {e}",
                extra={"tenant_id": tenant_id, "code": e.code, "details": e.details},
            )
            return {"status": "failed", "error": str(e), "code": e.code}

    async def _process(self, tenant_id: str, event: OutboundWebhookEvent) -> dict[str, Any]:
        if event.private:
            return {"status": "skipped", "reason": "private"}

        match event:
            case OtherEvent(event=name):
                return {"status": "ignored", "event": name}

            case MessageCreatedEvent(outgoing=False):
                return {"status": "skipped", "reason": "not_outgoing"}

            case MessageCreatedEvent(source_id=source_id) if is_bridge_source_tag(source_id):
                logger.debug(
                    "Skipping bridged message echo",
                    extra={"tenant_id": tenant_id, "source_id": source_id},
                )
                return {"status": "skipped", "reason": "bridge_echo"}

            case TypingEvent():
                tenant = await self.tenant_resolver.lookup(tenant_id)
                peer_id = resolve_peer_id(event.peer)
                return await self._relay_typing(tenant, peer_id, event.typing)

            case MessageCreatedEvent():
                tenant = await self.tenant_resolver.lookup(tenant_id)
                peer_id = resolve_peer_id(event.peer)
                return await self._relay_message(tenant, peer_id, event)

        return {"status": "ignored"}

    def _presence(self, tenant: TenantConfig, gateway: MessagingGateway) -> PresenceSynchronizer:
        return PresenceSynchronizer(
            gateway,
            tenant_id=tenant.tenant_id,
            min_delay_ms=self.settings.typing_delay_min_ms,
            max_delay_ms=self.settings.typing_delay_max_ms,
            sleep=self._sleep,
        )

    async def _relay_typing(self, tenant: TenantConfig, peer_id: str, typing: bool) -> dict[str, Any]:
        presence = Presence.COMPOSING if typing else Presence.PAUSED
        gateway = self.gateway_factory(tenant)
        try:
            applied = await self._presence(tenant, gateway).set(peer_id, presence)
        finally:
            await gateway.close()
        return {"status": "presence", "presence": presence.value, "applied": applied, "peer_id": peer_id}

    async def _relay_message(
        self,
        tenant: TenantConfig,
        peer_id: str,
        event: MessageCreatedEvent,
    ) -> dict[str, Any]:
        content = event.content or ""
        if not content.strip() and not event.attachments:
            return {"status": "skipped", "reason": "empty_content"}

        gateway = self.gateway_factory(tenant)
        try:
            async with self._presence(tenant, gateway).composing(peer_id, content):
                sent = await self._send(tenant, gateway, peer_id, event)
        finally:
            await gateway.close()

        logger.info(
            "Relayed desk message",
            extra={"tenant_id": tenant.tenant_id, "peer_id": peer_id, "sent": sent, "conversation_id": event.conversation_id},
        )
        return {"status": "sent", "peer_id": peer_id, "sent": sent}

    async def _send(
        self,
        tenant: TenantConfig,
        gateway: MessagingGateway,
        peer_id: str,
        event: MessageCreatedEvent,
    ) -> list[str]:
        content = event.content or ""
        quoted_id = network_message_id(event.in_reply_to_external_id)
        sent: list[str] = []

        if event.attachments:
            caption = content
            for attachment in event.attachments:
                route = attachment_route(attachment)
                if route == "image":
                    await gateway.send_image(peer_id, attachment.url, caption=caption)
                    caption = ""
                elif route == "audio":
                    await gateway.send_audio(peer_id, attachment.url)
                else:
                    mimetype = attachment.file_type if "/" in attachment.file_type else "application/octet-stream"
                    await gateway.send_document(peer_id, attachment.url, caption=caption, mimetype=mimetype)
                    caption = ""
                sent.append(route)

            # Audio cannot carry a caption
            if caption.strip():
                await gateway.send_text(peer_id, to_network_markup(caption), quoted_id=quoted_id)
                sent.append("text")
            return sent

        if tenant.react_with_emoji and quoted_id and is_single_emoji(content):
            await gateway.send_reaction(peer_id, quoted_id, content.strip())
            return ["reaction"]

        await gateway.send_text(peer_id, to_network_markup(content), quoted_id=quoted_id)
        return ["text"]
