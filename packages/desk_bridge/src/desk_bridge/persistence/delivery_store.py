"""
Delivery Stores

Records of (conversation id, source tag) pairs already forwarded to the desk.

- SqlDeliveryStore reads the desk's own `messages` table. It can only answer
  whether a delivery exists; the desk writes the row when the message lands.
- RedisDeliveryStore claims keys atomically with SET NX EX.
- InMemoryDeliveryStore serves development and tests.

Store failures surface as TransientInfraError.
"""

import logging
import threading
from abc import ABC, abstractmethod

import redis
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from basecore.db import get_engine
from basecore.redis import get_redis_client, key_exists, set_if_absent
from basecore.settings import get_settings

from desk_bridge.errors import TransientInfraError

logger = logging.getLogger(__name__)


class DeliveryStore(ABC):
    """Lookup (and, where supported, claim) of delivered messages."""

    # True when claim() is an atomic insert-if-absent
    supports_claim = False

    @abstractmethod
    def exists(self, conversation_id: int, source_tag: str) -> bool:
        ...

    def claim(self, conversation_id: int, source_tag: str) -> bool:
        """
        Record the delivery if it is not recorded yet.

        Returns True if the caller should proceed. Stores without an atomic
        write answer from exists().
        """
        return not self.exists(conversation_id, source_tag)

    def release(self, conversation_id: int, source_tag: str) -> None:
        """Undo a claim. No-op for stores without claims."""
        return None


class SqlDeliveryStore(DeliveryStore):
    """Point lookup against the desk database."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def exists(self, conversation_id: int, source_tag: str) -> bool:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    text(
                        "SELECT 1 FROM messages "
                        "WHERE conversation_id = :conversation_id AND source_id = :source_id "
                        "LIMIT 1"
                    ),
                    {"conversation_id": conversation_id, "source_id": source_tag},
                )
                return result.fetchone() is not None
        except SQLAlchemyError as e:
            raise TransientInfraError(f"Desk database lookup failed: {e}") from e


class RedisDeliveryStore(DeliveryStore):
    """Delivery markers in Redis, expiring after a TTL."""

    supports_claim = True
    KEY_PREFIX = "bridge:delivered"

    def __init__(self, redis_client: redis.Redis | None = None, ttl_seconds: int = 7 * 24 * 3600):
        self.redis = redis_client or get_redis_client()
        self.ttl_seconds = ttl_seconds

    def _key(self, conversation_id: int, source_tag: str) -> str:
        return f"{self.KEY_PREFIX}:{conversation_id}:{source_tag}"

    def exists(self, conversation_id: int, source_tag: str) -> bool:
        try:
            return key_exists(self._key(conversation_id, source_tag), client=self.redis)
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis lookup failed: {e}") from e

    def claim(self, conversation_id: int, source_tag: str) -> bool:
        try:
            return set_if_absent(
                self._key(conversation_id, source_tag),
                "1",
                ttl_seconds=self.ttl_seconds,
                client=self.redis,
            )
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis claim failed: {e}") from e

    def release(self, conversation_id: int, source_tag: str) -> None:
        try:
            self.redis.delete(self._key(conversation_id, source_tag))
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis release failed: {e}") from e


class InMemoryDeliveryStore(DeliveryStore):
    """Process-local delivery markers."""

    supports_claim = True

    def __init__(self):
        self._lock = threading.Lock()
        self._delivered: set[tuple[int, str]] = set()

    def exists(self, conversation_id: int, source_tag: str) -> bool:
        with self._lock:
            return (conversation_id, source_tag) in self._delivered

    def claim(self, conversation_id: int, source_tag: str) -> bool:
        key = (conversation_id, source_tag)
        with self._lock:
            if key in self._delivered:
                return False
            self._delivered.add(key)
            return True

    def release(self, conversation_id: int, source_tag: str) -> None:
        with self._lock:
            self._delivered.discard((conversation_id, source_tag))


def get_delivery_store() -> DeliveryStore | None:
    """
    Build the delivery store selected by settings.

    Returns None when dedup is disabled or the backend is unconfigured.
    """
    settings = get_settings()
    backend = settings.dedup_backend

    if backend == "redis":
        return RedisDeliveryStore(ttl_seconds=settings.dedup_ttl_seconds)
    if backend == "memory":
        return InMemoryDeliveryStore()
    if backend == "sql":
        engine = get_engine()
        if engine is None:
            logger.warning("Dedup backend is sql but no desk database is configured")
            return None
        return SqlDeliveryStore(engine)
    return None
