"""
Evolution API Webhook Utilities

Helper functions for processing Evolution API webhooks.

Evolution API webhook format:
{
    "event": "messages.upsert",
    "instance": "instance_name",
    "data": {
        "key": {"id": "...", "remoteJid": "...", "fromMe": false},
        "pushName": "Maria",
        "message": {...},
        "messageType": "conversation",
        "messageTimestamp": 1234567890,
    }
}
"""

import logging
from datetime import datetime, timezone
from typing import Any

from desk_bridge.contracts.inbound import (
    AudioContent,
    ContactCardContent,
    DocumentContent,
    ImageContent,
    InboundContent,
    InboundMessage,
    ReactionContent,
    TextContent,
    UnsupportedContent,
    VideoContent,
)

logger = logging.getLogger(__name__)

MESSAGES_UPSERT = "messages.upsert"

# Envelope keys that are not message content
_NON_CONTENT_KEYS = {"base64", "messageContextInfo", "mediaUrl"}


def is_message_webhook(payload: dict[str, Any]) -> bool:
    """Check if this webhook contains messages."""
    return (payload.get("event") or "").lower().replace("_", ".") == MESSAGES_UPSERT


def validate_api_key(request_headers: dict[str, str], expected_api_key: str) -> bool:
    """
    Validate API key from request headers.

    Evolution API can send API key in:
    - Header: "apikey"
    - Header: "Authorization: Bearer <key>"
    """
    headers = {k.lower(): v for k, v in request_headers.items()}
    if headers.get("apikey") == expected_api_key:
        return True

    auth_header = headers.get("authorization", "")
    if auth_header.startswith("Bearer ") and auth_header[7:] == expected_api_key:
        return True

    return False


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, dict):
        # protobuf Long serialized as {"low": ..., "high": ...}
        value = value.get("low")
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return datetime.now(timezone.utc)


def _parse_content(message: dict[str, Any], message_type: str) -> InboundContent:
    inline = message.get("base64") or None

    if message.get("conversation"):
        return TextContent(text=message["conversation"])

    extended = message.get("extendedTextMessage")
    if extended and extended.get("text"):
        return TextContent(text=extended["text"])

    if image := message.get("imageMessage"):
        return ImageContent(
            caption=image.get("caption") or "",
            mimetype=image.get("mimetype") or "",
            data=inline,
        )

    if audio := message.get("audioMessage"):
        return AudioContent(
            mimetype=audio.get("mimetype") or "",
            data=inline,
        )

    if video := message.get("videoMessage"):
        return VideoContent(
            caption=video.get("caption") or "",
            mimetype=video.get("mimetype") or "",
            data=inline,
        )

    document = message.get("documentMessage")
    if document is None:
        wrapped = message.get("documentWithCaptionMessage") or {}
        document = (wrapped.get("message") or {}).get("documentMessage")
    if document:
        return DocumentContent(
            caption=document.get("caption") or "",
            mimetype=document.get("mimetype") or "",
            filename=document.get("fileName") or document.get("title") or "",
            data=inline,
        )

    if contact := message.get("contactMessage"):
        return ContactCardContent(
            display_name=contact.get("displayName") or "",
            vcard=contact.get("vcard") or "",
        )

    if reaction := message.get("reactionMessage"):
        return ReactionContent(
            glyph=reaction.get("text") or "",
        )

    if not message_type:
        message_type = next((k for k in message if k not in _NON_CONTENT_KEYS), "")
    return UnsupportedContent(message_type=message_type)


def parse_message_data(data: dict[str, Any]) -> InboundMessage | None:
    """
    Parse the `data` object of a messages.upsert event.

    Returns None when the message has no key or no id.
    """
    key = data.get("key") or {}
    message_id = key.get("id")
    if not message_id:
        return None

    return InboundMessage(
        message_id=message_id,
        remote_jid=key.get("remoteJid") or "",
        from_me=bool(key.get("fromMe")),
        push_name=data.get("pushName") or "",
        timestamp=_parse_timestamp(data.get("messageTimestamp")),
        content=_parse_content(data.get("message") or {}, data.get("messageType") or ""),
    )


def parse_messages_upsert(payload: dict[str, Any]) -> list[InboundMessage]:
    """
    Parse an Evolution API webhook into inbound messages.

    Non-message events produce an empty list. `data` may be one message
    object or a list of them.
    """
    if not is_message_webhook(payload):
        return []

    data = payload.get("data")
    items = data if isinstance(data, list) else [data] if isinstance(data, dict) else []

    messages: list[InboundMessage] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        message = parse_message_data(item)
        if message is None:
            logger.debug("Skipping message without key", extra={"instance": payload.get("instance")})
            continue
        messages.append(message)

    return messages
