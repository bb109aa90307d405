"""
Stub Messaging Gateway

Development gateway that logs all operations without making real API calls.
Useful for local development and testing.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from desk_bridge.errors import UpstreamError
from desk_bridge.network.base import MessagingGateway, Presence, SendResult

logger = logging.getLogger(__name__)


class StubGateway(MessagingGateway):
    """
    Stub gateway for development and testing.

    - Records every call in `calls`
    - Generates fake message IDs
    - Can be configured to fail sends or presence updates
    """

    def __init__(self, fail_sends: bool = False, fail_presence: bool = False):
        self.fail_sends = fail_sends
        self.fail_presence = fail_presence
        self.calls: list[dict[str, Any]] = []

    def _record(self, action: str, **fields: Any) -> SendResult:
        message_id = f"stub_{action}_{uuid4().hex[:16]}"
        self.calls.append(
            {
                "action": action,
                "message_id": message_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **fields,
            }
        )
        logger.info(f"[STUB] {action}", extra={"to": fields.get("peer_id"), "message_id": message_id})

        if self.fail_sends:
            raise UpstreamError("Simulated failure for testing", code="STUB_SIMULATED_FAILURE")

        return SendResult(message_id=message_id, raw_response={"stub": True, "message_id": message_id})

    def actions(self) -> list[str]:
        """Names of recorded calls, in order."""
        return [call["action"] for call in self.calls]

    async def send_text(self, peer_id: str, text: str, quoted_id: str | None = None) -> SendResult:
        return self._record("text", peer_id=peer_id, text=text, quoted_id=quoted_id)

    async def send_image(self, peer_id: str, url: str, caption: str = "") -> SendResult:
        return self._record("image", peer_id=peer_id, url=url, caption=caption)

    async def send_audio(self, peer_id: str, url: str) -> SendResult:
        return self._record("audio", peer_id=peer_id, url=url)

    async def send_document(
        self,
        peer_id: str,
        url: str,
        caption: str = "",
        mimetype: str = "application/octet-stream",
        filename: str = "",
    ) -> SendResult:
        return self._record(
            "document", peer_id=peer_id, url=url, caption=caption, mimetype=mimetype, filename=filename
        )

    async def send_reaction(self, peer_id: str, message_id: str, glyph: str) -> SendResult:
        return self._record("reaction", peer_id=peer_id, target=message_id, glyph=glyph)

    async def set_presence(self, peer_id: str, presence: Presence) -> None:
        self.calls.append({"action": f"presence:{presence.value}", "peer_id": peer_id})
        if self.fail_presence:
            raise UpstreamError("Simulated presence failure", code="STUB_SIMULATED_FAILURE")
