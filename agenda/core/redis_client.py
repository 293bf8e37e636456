"""Redis client configuration and cache helpers."""

import json
from typing import Any, cast

import redis

from agenda.config import settings

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Check if Redis connection is healthy."""
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """
    Redis-based cache manager.

    Every operation fails open: a Redis outage degrades to cache misses and
    never surfaces to the caller.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str = "agenda"):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> str | None:
        """Get a raw string value."""
        try:
            return cast(str | None, self.redis.get(self._key(key)))
        except Exception:
            return None

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set a raw string value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        try:
            if ttl:
                self.redis.setex(self._key(key), ttl, value)
            else:
                self.redis.set(self._key(key), value)
            return True
        except Exception:
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        try:
            self.redis.delete(self._key(key))
            return True
        except Exception:
            return False

    def get_json(self, key: str) -> Any | None:
        """Get JSON value from cache and deserialize."""
        value = self.get(key)
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Serialize and set JSON value in cache."""
        try:
            json_value = json.dumps(value, default=str)
        except (TypeError, ValueError):
            return False
        return self.set(key, json_value, ttl=ttl)
