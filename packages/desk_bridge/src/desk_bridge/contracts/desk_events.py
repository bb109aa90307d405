"""
Desk Webhook Contracts

Raw webhook body (pydantic, tolerant of unknown keys) and the parsed event
union consumed by the outbound dispatcher.

Desk webhook format (message_created):
{
    "event": "message_created",
    "message_type": "outgoing",
    "content": "**hi**",
    "private": false,
    "source_id": null,
    "attachments": [{"file_type": "image", "data_url": "https://..."}],
    "content_attributes": {"in_reply_to_external_id": "WAID:3EB0..."},
    "conversation": {
        "id": 42,
        "meta": {"sender": {"identifier": "...", "phone_number": "+55..."}},
        "contact_inbox": {"source_id": "..."},
        "messages": [{"attachments": [...]}]
    }
}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DeskSender(_Lenient):
    identifier: str | None = None
    phone_number: str | None = None


class DeskMeta(_Lenient):
    sender: DeskSender = Field(default_factory=DeskSender)


class DeskContactInbox(_Lenient):
    source_id: str | None = None


class DeskAttachment(_Lenient):
    file_type: str | None = None
    data_url: str | None = None


class DeskNestedMessage(_Lenient):
    content: str | None = None
    message_type: str | int | None = None
    private: bool = False
    source_id: str | None = None
    attachments: list[DeskAttachment] = Field(default_factory=list)
    content_attributes: dict[str, Any] | None = None


class DeskConversation(_Lenient):
    id: int | None = None
    meta: DeskMeta = Field(default_factory=DeskMeta)
    contact: DeskSender = Field(default_factory=DeskSender)
    contact_inbox: DeskContactInbox = Field(default_factory=DeskContactInbox)
    messages: list[DeskNestedMessage] = Field(default_factory=list)


class DeskWebhookPayload(_Lenient):
    """Body posted by the desk to the bridge."""

    event: str = ""
    id: int | None = None
    message_type: str | int | None = None
    content: str | None = None
    private: bool = False
    is_private: bool = False
    source_id: str | None = None
    attachments: list[DeskAttachment] = Field(default_factory=list)
    content_attributes: dict[str, Any] | None = None
    conversation: DeskConversation = Field(default_factory=DeskConversation)
    # Some desk versions nest the message fields here
    message: DeskNestedMessage | None = None


class DeskEventType(str, Enum):
    TYPING_ON = "conversation_typing_on"
    TYPING_OFF = "conversation_typing_off"
    MESSAGE_CREATED = "message_created"


@dataclass(frozen=True)
class PeerCandidates:
    """Identity hints for the remote peer, in fallback order."""

    identifier: str = ""
    source_id: str = ""
    phone_number: str = ""


@dataclass(frozen=True)
class Attachment:
    url: str
    file_type: str


@dataclass(frozen=True)
class TypingEvent:
    typing: bool
    peer: PeerCandidates
    private: bool = False
    conversation_id: int | None = None


@dataclass(frozen=True)
class MessageCreatedEvent:
    outgoing: bool
    peer: PeerCandidates
    content: str = ""
    private: bool = False
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)
    source_id: str | None = None
    in_reply_to_external_id: str | None = None
    conversation_id: int | None = None
    message_id: int | None = None


@dataclass(frozen=True)
class OtherEvent:
    event: str
    private: bool = False


OutboundWebhookEvent = TypingEvent | MessageCreatedEvent | OtherEvent


def _peer_candidates(conversation: DeskConversation) -> PeerCandidates:
    phone = conversation.meta.sender.phone_number or conversation.contact.phone_number or ""
    return PeerCandidates(
        identifier=(conversation.meta.sender.identifier or conversation.contact.identifier or "").strip(),
        source_id=(conversation.contact_inbox.source_id or "").strip(),
        phone_number=phone.strip(),
    )


def _attachments(payload: DeskWebhookPayload) -> tuple[Attachment, ...]:
    raw = list(payload.attachments)
    if not raw and payload.message is not None:
        raw = list(payload.message.attachments)
    if not raw:
        for nested in payload.conversation.messages:
            raw.extend(nested.attachments)
    return tuple(
        Attachment(url=item.data_url, file_type=item.file_type or "")
        for item in raw
        if item.data_url
    )


def parse_desk_event(body: dict[str, Any] | DeskWebhookPayload) -> OutboundWebhookEvent:
    """
    Parse a desk webhook body into an event variant.

    Message fields are read from the top level, falling back to a nested
    `message` object.

    Raises:
        pydantic.ValidationError: If the body has the wrong shape
    """
    payload = body if isinstance(body, DeskWebhookPayload) else DeskWebhookPayload.model_validate(body)
    nested = payload.message or DeskNestedMessage()
    private = payload.private or payload.is_private or nested.private
    peer = _peer_candidates(payload.conversation)

    if payload.event in (DeskEventType.TYPING_ON.value, DeskEventType.TYPING_OFF.value):
        return TypingEvent(
            typing=payload.event == DeskEventType.TYPING_ON.value,
            peer=peer,
            private=private,
            conversation_id=payload.conversation.id,
        )

    if payload.event == DeskEventType.MESSAGE_CREATED.value:
        message_type = payload.message_type if payload.message_type is not None else nested.message_type
        attributes = payload.content_attributes or nested.content_attributes or {}
        reply_to = attributes.get("in_reply_to_external_id")
        return MessageCreatedEvent(
            # message_type is a string in webhooks and an int (1) in API objects
            outgoing=message_type in ("outgoing", 1),
            peer=peer,
            content=payload.content or nested.content or "",
            private=private,
            attachments=_attachments(payload),
            source_id=payload.source_id or nested.source_id,
            in_reply_to_external_id=str(reply_to) if reply_to else None,
            conversation_id=payload.conversation.id,
            message_id=payload.id,
        )

    return OtherEvent(event=payload.event, private=private)
