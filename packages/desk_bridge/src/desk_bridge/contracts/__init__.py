"""
Bridge Contracts

Tenant configuration, inbound message union and desk webhook events.
"""

from desk_bridge.contracts.desk_events import (
    Attachment,
    DeskWebhookPayload,
    MessageCreatedEvent,
    OtherEvent,
    OutboundWebhookEvent,
    PeerCandidates,
    TypingEvent,
    parse_desk_event,
)
from desk_bridge.contracts.inbound import (
    AudioContent,
    ContactCardContent,
    DocumentContent,
    ImageContent,
    InboundContent,
    InboundMessage,
    MessageKind,
    ReactionContent,
    TextContent,
    UnsupportedContent,
    VideoContent,
    source_tag_for,
)
from desk_bridge.contracts.tenant import TenantConfig

__all__ = [
    "Attachment",
    "AudioContent",
    "ContactCardContent",
    "DeskWebhookPayload",
    "DocumentContent",
    "ImageContent",
    "InboundContent",
    "InboundMessage",
    "MessageCreatedEvent",
    "MessageKind",
    "OtherEvent",
    "OutboundWebhookEvent",
    "PeerCandidates",
    "ReactionContent",
    "TenantConfig",
    "TextContent",
    "TypingEvent",
    "UnsupportedContent",
    "VideoContent",
    "parse_desk_event",
    "source_tag_for",
]
