"""
Messaging Gateway Base

Abstract capability set of a tenant's messaging session.
Implementations: Evolution API, Stub (for development).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from desk_bridge.errors import ValidationError

NETWORK_DOMAIN = "s.whatsapp.net"


class Presence(str, Enum):
    """Chat presence states."""

    COMPOSING = "composing"
    PAUSED = "paused"


@dataclass
class SendResult:
    """
    Response from the gateway after a send.
    """

    message_id: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


def phone_from_peer_id(peer_id: str) -> str:
    """
    Extract the phone from a peer id.

    "5511999999999:12@s.whatsapp.net" -> "5511999999999"
    """
    user = (peer_id or "").split("@", 1)[0]
    return user.split(":", 1)[0].strip()


_PHONE_PUNCTUATION = str.maketrans("", "", "+ -()")


def normalize_phone(value: str) -> str:
    """Strip "+", spaces, dashes and parentheses from a phone number."""
    return (value or "").translate(_PHONE_PUNCTUATION)


def parse_peer_id(value: str) -> str:
    """
    Normalize a peer identity into a routable peer id.

    Accepts a full peer id ("5511...@s.whatsapp.net") or a phone, with or
    without "+" and punctuation. Raises ValidationError when nothing routable
    remains.
    """
    value = (value or "").strip()
    if not value:
        raise ValidationError("Empty peer id")

    if "@" in value:
        user, _, server = value.partition("@")
        if not user or not server:
            raise ValidationError(f"Unparseable peer id: {value}", details={"peer_id": value})
        return value

    phone = normalize_phone(value)
    if not phone.isdigit():
        raise ValidationError(f"Unparseable peer id: {value}", details={"peer_id": value})
    return f"{phone}@{NETWORK_DOMAIN}"


class MessagingGateway(ABC):
    """
    Capability set of one messaging session.

    Every method raises UpstreamError when the session rejects the call.
    """

    @abstractmethod
    async def send_text(
        self,
        peer_id: str,
        text: str,
        quoted_id: str | None = None,
    ) -> SendResult:
        """
        Send a text message.

        Args:
            peer_id: Recipient peer id
            text: Message text (network markup)
            quoted_id: Network message id to quote (optional)
        """
        ...

    @abstractmethod
    async def send_image(self, peer_id: str, url: str, caption: str = "") -> SendResult:
        ...

    @abstractmethod
    async def send_audio(self, peer_id: str, url: str) -> SendResult:
        ...

    @abstractmethod
    async def send_document(
        self,
        peer_id: str,
        url: str,
        caption: str = "",
        mimetype: str = "application/octet-stream",
        filename: str = "",
    ) -> SendResult:
        ...

    @abstractmethod
    async def send_reaction(self, peer_id: str, message_id: str, glyph: str) -> SendResult:
        """React to a network message with a single emoji."""
        ...

    @abstractmethod
    async def set_presence(self, peer_id: str, presence: Presence) -> None:
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
