"""Optional Redis-backed cache tier.

Without a configured connection every call is a no-op or a miss, so callers
can always fall through to the next tier.
"""

import json
from typing import Any

import redis
from redis.exceptions import RedisError

from .cache import CacheError
from .logging import get_logger

logger = get_logger(__name__)


class ExternalCacheError(CacheError):
    """Redis was unreachable or returned a payload we could not decode."""


class ExternalCache:
    """JSON values in Redis with a per-key TTL."""

    def __init__(self, client: redis.Redis | None = None):
        self._client = client

    @classmethod
    def from_url(cls, url: str | None, timeout: float = 0.5) -> "ExternalCache":
        """Build a client for ``url``; ``None`` gives an unconfigured cache."""
        if not url:
            logger.info("No REDIS_URL configured, external cache disabled")
            return cls(None)
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )
        logger.info("External cache configured at %s", url)
        return cls(client)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def lookup(self, key: str) -> tuple[bool, Any]:
        """Return ``(True, value)`` on a hit and ``(False, None)`` on a miss.

        Raises:
            ExternalCacheError: on connectivity problems or undecodable payloads
        """
        if self._client is None:
            return False, None
        try:
            raw = self._client.get(key)
        except RedisError as e:
            raise ExternalCacheError(f"GET {key} failed: {e}") from e
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except ValueError as e:
            raise ExternalCacheError(f"Cached value for {key} is not valid JSON: {e}") from e

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Serialize ``value`` and store it for ``ttl`` seconds."""
        if self._client is None:
            return
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ExternalCacheError(f"Value for {key} is not JSON serializable: {e}") from e
        try:
            self._client.set(key, payload, px=max(1, int(ttl * 1000)))
        except RedisError as e:
            raise ExternalCacheError(f"SET {key} failed: {e}") from e

    def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            return bool(self._client.delete(key))
        except RedisError as e:
            raise ExternalCacheError(f"DEL {key} failed: {e}") from e

    def ping(self) -> bool:
        """Health probe. False when unconfigured or unreachable."""
        if self._client is None:
            return False
        try:
            return bool(self._client.ping())
        except RedisError as e:
            logger.warning("External cache ping failed: %s", e)
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
