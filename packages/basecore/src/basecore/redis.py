"""
Redis client utilities for basecore.

Provides lazy-initialized Redis client to avoid import-time connections.
"""

import functools

import redis

from basecore.settings import get_settings


@functools.lru_cache()
def get_redis_url() -> str:
    """Get Redis URL from settings."""
    return get_settings().redis_url


@functools.lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    """
    url = get_redis_url()
    return redis.from_url(url, decode_responses=True)


def set_if_absent(
    key: str,
    value: str,
    ttl_seconds: int | None = None,
    client: redis.Redis | None = None,
) -> bool:
    """
    Atomically set a key only if it does not exist yet.

    Args:
        key: Redis key
        value: Value to store
        ttl_seconds: Optional expiry
        client: Redis client (defaults to the shared one)

    Returns:
        True if the key was written, False if it already existed
    """
    client = client or get_redis_client()
    return bool(client.set(key, value, nx=True, ex=ttl_seconds))


def key_exists(key: str, client: redis.Redis | None = None) -> bool:
    """Check whether a key exists."""
    client = client or get_redis_client()
    return client.exists(key) > 0
