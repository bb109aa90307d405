"""
Inbound Message Handler

Forwards messages received by a tenant's messaging session to the desk:
1. Applies drop policy (self-sent, broadcast, group, stale)
2. Normalizes the peer phone
3. Finds or creates the desk contact and conversation
4. Consults the delivery guard
5. Posts the message as an attachment upload or as text

Each message is handled within a deadline and never retried here.
"""

import asyncio
import base64
import binascii
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from basecore.settings import Settings, get_settings

from desk_bridge.contracts.inbound import InboundMessage
from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.client import DeskClient
from desk_bridge.errors import BridgeError, ValidationError
from desk_bridge.network.base import phone_from_peer_id
from desk_bridge.network.evolution.webhook import parse_messages_upsert
from desk_bridge.routing.contacts import ContactResolver
from desk_bridge.routing.conversation import ConversationResolver
from desk_bridge.routing.tenant_resolver import TenantResolver
from desk_bridge.service.classifier import classify, extract_text
from desk_bridge.service.dedup import DeliveryDecision, DeliveryGuard

logger = logging.getLogger(__name__)

# Chats that never map to a single desk contact
IGNORED_CHAT_SUFFIXES = ("@broadcast", "@newsletter", "@g.us")


def drop_reason(message: InboundMessage, tenant: TenantConfig, now: datetime, staleness_seconds: float) -> str | None:
    """Why a message must not be forwarded, or None to forward it."""
    if message.from_me and not tenant.mirror_self_messages:
        return "from_me"

    if message.remote_jid.endswith(IGNORED_CHAT_SUFFIXES):
        return "ignored_chat"

    age = (now - message.timestamp).total_seconds()
    if age > staleness_seconds:
        return "stale"

    return None


class InboundHandler:
    """
    Handles messages arriving from the messaging network.

    Responsibilities:
    - Drop messages the desk must not see
    - Map the peer to a desk contact and conversation
    - Suppress duplicate deliveries
    - Deliver media as uploads and everything else as text
    """

    def __init__(
        self,
        tenant_resolver: TenantResolver,
        guard: DeliveryGuard | None = None,
        desk_factory: Callable[[TenantConfig], DeskClient] | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.tenant_resolver = tenant_resolver
        self.guard = guard or DeliveryGuard()
        self.desk_factory = desk_factory or (
            lambda tenant: DeskClient.for_tenant(tenant, timeout=self.settings.desk_timeout_seconds)
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def handle_webhook(self, tenant_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Process an Evolution API webhook for a tenant.

        Returns:
            Processing result dict with one result per message
        """
        messages = parse_messages_upsert(payload)
        if not messages:
            return {"status": "ignored", "event": payload.get("event")}

        results = [await self.handle_inbound(tenant_id, message) for message in messages]
        return {"status": "processed", "results": results}

    async def handle_inbound(self, tenant_id: str, message: InboundMessage | None) -> dict[str, Any]:
        """
        Process one inbound message under the inbound deadline.

        Args:
            tenant_id: Tenant that received the message
            message: Parsed inbound message

        Returns:
            Processing result dict
        """
        if message is None:
            return {"status": "skipped", "reason": "no_message"}

        try:
            return await asyncio.wait_for(
                self._process(tenant_id, message),
                timeout=self.settings.inbound_deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Inbound message exceeded deadline",
                extra={"tenant_id": tenant_id, "message_id": message.message_id},
            )
            return {"status": "failed", "error": "deadline_exceeded", "message_id": message.message_id}
        except BridgeError as e:
            log = logger.warning if isinstance(e, ValidationError) else logger.error
            log(
                f"Failed to forward inbound message: {e}",
                extra={"tenant_id": tenant_id, "message_id": message.message_id, "code": e.code},
            )
            return {"status": "failed", "error": str(e), "code": e.code, "message_id": message.message_id}

    async def _process(self, tenant_id: str, message: InboundMessage) -> dict[str, Any]:
        result: dict[str, Any] = {
            "message_id": message.message_id,
            "kind": message.kind.value,
        }

        tenant = await self.tenant_resolver.lookup(tenant_id)

        reason = drop_reason(message, tenant, self.clock(), self.settings.staleness_threshold_seconds)
        if reason:
            logger.debug(
                f"Dropping inbound message: {reason}",
                extra={"tenant_id": tenant_id, "message_id": message.message_id, "remote_jid": message.remote_jid},
            )
            return {**result, "status": "skipped", "reason": reason}

        phone = phone_from_peer_id(message.remote_jid)
        if not phone.isdigit():
            raise ValidationError(
                f"Invalid peer id: {message.remote_jid!r}",
                details={"remote_jid": message.remote_jid},
            )

        tenant = await self.tenant_resolver.inbox_resolver.resolve(tenant)
        desk = self.desk_factory(tenant)
        try:
            contact_id = await ContactResolver(desk).find_or_create_contact(
                phone,
                display_name=message.push_name,
                raw_identifier=message.remote_jid,
            )
            conversation_id = await ConversationResolver(desk, tenant.inbox_id).find_or_create_conversation(
                contact_id
            )
            result.update(contact_id=contact_id, conversation_id=conversation_id)

            return {**result, **await self._deliver(desk, tenant, message, conversation_id)}
        finally:
            await desk.close()

    async def _deliver(
        self,
        desk: DeskClient,
        tenant: TenantConfig,
        message: InboundMessage,
        conversation_id: int,
    ) -> dict[str, Any]:
        message_type = "outgoing" if message.from_me else "incoming"
        source_tag = message.source_tag
        descriptor = classify(message)

        file_bytes = None
        if message.inline_payload:
            try:
                file_bytes = base64.b64decode(message.inline_payload)
            except (binascii.Error, ValueError) as e:
                logger.warning(
                    f"Undecodable media payload, sending as text: {e}",
                    extra={"tenant_id": tenant.tenant_id, "message_id": message.message_id},
                )

        text = ""
        if file_bytes is None:
            text = descriptor.summary or extract_text(message)
            if not text:
                logger.info(
                    "Inbound message has no deliverable content",
                    extra={"tenant_id": tenant.tenant_id, "message_id": message.message_id},
                )
                return {"status": "skipped", "reason": "empty_content"}

        if await self.guard.check_async(conversation_id, source_tag) is DeliveryDecision.SKIP:
            logger.info(
                "Message already delivered",
                extra={"tenant_id": tenant.tenant_id, "conversation_id": conversation_id, "source_tag": source_tag},
            )
            return {"status": "skipped", "reason": "already_delivered"}

        delivered = False
        try:
            if file_bytes is not None:
                await desk.create_attachment_message(
                    conversation_id,
                    file_bytes=file_bytes,
                    filename=descriptor.filename,
                    mimetype=descriptor.mimetype,
                    message_type=message_type,
                    source_id=source_tag,
                    content=descriptor.caption or None,
                )
                delivery = "attachment"
            else:
                await desk.create_message(
                    conversation_id,
                    content=text,
                    message_type=message_type,
                    source_id=source_tag,
                )
                delivery = "text"
            delivered = True
        finally:
            # Covers desk errors and deadline cancellation alike
            if not delivered:
                self.guard.release_soon(conversation_id, source_tag)

        logger.info(
            "Forwarded inbound message to desk",
            extra={
                "tenant_id": tenant.tenant_id,
                "conversation_id": conversation_id,
                "message_id": message.message_id,
                "delivery": delivery,
            },
        )
        return {"status": "delivered", "delivery": delivery, "message_type": message_type}
