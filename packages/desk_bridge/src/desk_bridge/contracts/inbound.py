"""
Inbound Message Contracts

Network-originated messages, modeled as one envelope (`InboundMessage`)
carrying exactly one content variant. Consumers dispatch on the variant with
an exhaustive `match`.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MessageKind(str, Enum):
    """Kinds of inbound content."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    CONTACT_CARD = "contact_card"
    REACTION = "reaction"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TextContent:
    text: str

    kind = MessageKind.TEXT


@dataclass(frozen=True)
class ImageContent:
    caption: str = ""
    mimetype: str = ""
    data: str | None = None  # base64, when the session delivers media inline

    kind = MessageKind.IMAGE


@dataclass(frozen=True)
class VideoContent:
    caption: str = ""
    mimetype: str = ""
    data: str | None = None

    kind = MessageKind.VIDEO


@dataclass(frozen=True)
class AudioContent:
    mimetype: str = ""
    data: str | None = None

    kind = MessageKind.AUDIO


@dataclass(frozen=True)
class DocumentContent:
    caption: str = ""
    mimetype: str = ""
    filename: str = ""
    data: str | None = None

    kind = MessageKind.DOCUMENT


@dataclass(frozen=True)
class ContactCardContent:
    display_name: str = ""
    vcard: str = ""

    kind = MessageKind.CONTACT_CARD


@dataclass(frozen=True)
class ReactionContent:
    glyph: str = ""

    kind = MessageKind.REACTION


@dataclass(frozen=True)
class UnsupportedContent:
    message_type: str = ""

    kind = MessageKind.UNSUPPORTED


InboundContent = (
    TextContent
    | ImageContent
    | VideoContent
    | AudioContent
    | DocumentContent
    | ContactCardContent
    | ReactionContent
    | UnsupportedContent
)

MEDIA_CONTENT = (ImageContent, VideoContent, AudioContent, DocumentContent)


@dataclass
class InboundMessage:
    """
    A message received by a tenant's messaging session.

    Attributes:
        message_id: Network message id (becomes the `WAID:` source tag)
        remote_jid: Peer id of the chat, e.g. "5511999999999@s.whatsapp.net"
        from_me: True when the tenant's own session sent it
        push_name: Display name announced by the sender
        timestamp: When the network says the message was sent (UTC)
        content: One content variant
    """

    message_id: str
    remote_jid: str
    from_me: bool
    push_name: str
    timestamp: datetime
    content: InboundContent

    @property
    def kind(self) -> MessageKind:
        return self.content.kind

    @property
    def inline_payload(self) -> str | None:
        """Base64 media carried with the message, if any."""
        if isinstance(self.content, MEDIA_CONTENT):
            return self.content.data or None
        return None

    @property
    def source_tag(self) -> str:
        return source_tag_for(self.message_id)


SOURCE_TAG_PREFIX = "WAID:"


def source_tag_for(message_id: str) -> str:
    """Build the dedup marker stored on desk messages."""
    return f"{SOURCE_TAG_PREFIX}{message_id}"


def is_bridge_source_tag(source_id: str | None) -> bool:
    """True if a desk message source id was written by the inbound bridge."""
    return bool(source_id) and source_id.startswith(SOURCE_TAG_PREFIX)
