"""
Presence Synchronizer

Shows "typing..." to the peer while an agent reply is being sent. Presence is
best-effort: gateway errors are logged and never abort a send, and the
paused state is always restored once composing was shown.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from desk_bridge.errors import BridgeError
from desk_bridge.network.base import MessagingGateway, Presence

logger = logging.getLogger(__name__)


def typing_delay_ms(content: str, min_ms: int = 500, max_ms: int = 2000) -> int:
    """Pause that grows with the message length, clamped to [min_ms, max_ms]."""
    return max(min_ms, min(min_ms + len(content or ""), max_ms))


class PresenceSynchronizer:
    """
    Brackets outbound sends with composing/paused presence.
    """

    def __init__(
        self,
        gateway: MessagingGateway,
        tenant_id: str = "",
        min_delay_ms: int = 500,
        max_delay_ms: int = 2000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.tenant_id = tenant_id
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep

    async def set(self, peer_id: str, presence: Presence) -> bool:
        """Set presence; returns False if the gateway refused."""
        try:
            await self.gateway.set_presence(peer_id, presence)
            return True
        except BridgeError as e:
            logger.warning(
                f"Failed to set presence {presence.value}: {e}",
                extra={"tenant_id": self.tenant_id, "peer_id": peer_id},
            )
            return False

    @asynccontextmanager
    async def composing(self, peer_id: str, content: str = "") -> AsyncIterator[None]:
        """
        Show composing, wait the typing delay, run the body, then pause.
        """
        await self.set(peer_id, Presence.COMPOSING)
        try:
            delay = typing_delay_ms(content, self.min_delay_ms, self.max_delay_ms)
            await self._sleep(delay / 1000)
            yield
        finally:
            await self.set(peer_id, Presence.PAUSED)
