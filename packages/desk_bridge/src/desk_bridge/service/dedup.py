"""
Delivery Dedup Guard

Decides whether an inbound message may be forwarded to a desk conversation.
The guard fails open: a missing or unreachable store never blocks delivery.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from desk_bridge.errors import TransientInfraError
from desk_bridge.persistence.delivery_store import DeliveryStore

logger = logging.getLogger(__name__)


class DeliveryDecision(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


class DeliveryGuard:
    """
    Checks and records (conversation id, source tag) pairs.
    """

    def __init__(self, store: DeliveryStore | None = None):
        self.store = store
        # One worker keeps store calls in submission order, so a release
        # always lands before a later claim of the same key.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="delivery-guard")

    def exists(self, conversation_id: int, source_tag: str) -> bool:
        """
        True if the message was already forwarded.

        Invalid conversation ids, a missing store and store failures all
        answer False.
        """
        if conversation_id <= 0 or self.store is None:
            return False

        try:
            return self.store.exists(conversation_id, source_tag)
        except TransientInfraError as e:
            logger.warning(
                f"Delivery lookup failed, proceeding: {e}",
                extra={"conversation_id": conversation_id, "source_tag": source_tag, "code": e.code},
            )
            return False

    def check(self, conversation_id: int, source_tag: str) -> DeliveryDecision:
        """
        Decide whether to forward, claiming the key where the store can.

        With an atomic store the claim is the check, so two concurrent
        deliveries of the same key cannot both proceed.
        """
        if conversation_id <= 0 or self.store is None:
            return DeliveryDecision.PROCEED

        if not self.store.supports_claim:
            return DeliveryDecision.SKIP if self.exists(conversation_id, source_tag) else DeliveryDecision.PROCEED

        try:
            claimed = self.store.claim(conversation_id, source_tag)
        except TransientInfraError as e:
            logger.warning(
                f"Delivery claim failed, proceeding: {e}",
                extra={"conversation_id": conversation_id, "source_tag": source_tag, "code": e.code},
            )
            return DeliveryDecision.PROCEED

        return DeliveryDecision.PROCEED if claimed else DeliveryDecision.SKIP

    def release(self, conversation_id: int, source_tag: str) -> None:
        """Forget a claim after a failed delivery so a redelivery can proceed."""
        if conversation_id <= 0 or self.store is None or not self.store.supports_claim:
            return
        try:
            self.store.release(conversation_id, source_tag)
        except TransientInfraError as e:
            logger.warning(
                f"Delivery release failed: {e}",
                extra={"conversation_id": conversation_id, "source_tag": source_tag},
            )

    async def check_async(self, conversation_id: int, source_tag: str) -> DeliveryDecision:
        """
        Run check() on the guard's worker thread.

        The store call never blocks the event loop, so the caller's deadline
        still applies. If the caller is cancelled while the call is in
        flight, a claim it makes is released as soon as it lands.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self.check, conversation_id, source_tag)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            future.add_done_callback(lambda f: self._release_abandoned(f, conversation_id, source_tag))
            raise

    def release_soon(self, conversation_id: int, source_tag: str) -> None:
        """Queue release() on the worker thread without waiting for it."""
        self._executor.submit(self.release, conversation_id, source_tag)

    def _release_abandoned(self, future: asyncio.Future, conversation_id: int, source_tag: str) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        if future.result() is DeliveryDecision.PROCEED:
            logger.info(
                "Releasing claim of an abandoned delivery",
                extra={"conversation_id": conversation_id, "source_tag": source_tag},
            )
            self.release_soon(conversation_id, source_tag)
