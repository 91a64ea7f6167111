"""Durable key-value storage.

This module provides an abstract key-value store interface plus a Redis
implementation and an in-process implementation. The history and
preference stores persist their JSON snapshots through it under the fixed
``meetpoint:`` namespace.
"""

import copy
import json
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

NAMESPACE = "meetpoint"


def namespaced_key(name: str) -> str:
    """Build a storage key inside the application namespace.

    Example:
        >>> namespaced_key("search-history")
        'meetpoint:search-history'
    """
    return f"{NAMESPACE}:{name}"


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""


class KeyValueStore(ABC):
    """Abstract base class for durable key-value storage.

    Values are JSON-serializable Python objects.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve the stored value by key.

        Args:
            key: The key to look up.

        Returns:
            The stored value if found, None otherwise.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value under a key, replacing any previous value.

        Args:
            key: The key to store under.
            value: The value to store (must be JSON serializable).
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if the key was deleted, False if it didn't exist.
        """
        pass

    async def close(self) -> None:
        """Release connections. No-op by default."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used when no Redis URL is configured and in tests."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so values behave like they would in Redis.
        self._data[key] = json.loads(json.dumps(value))

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class RedisKeyValueStore(KeyValueStore):
    """Redis-based implementation of the key-value store.

    Values are stored as JSON strings without expiry.

    Attributes:
        _client: The Redis async client instance.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379") -> None:
        """Initialize the Redis store.

        Args:
            redis_url: Redis connection URL. Defaults to localhost:6379.
        """
        self._redis_url = redis_url
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    async def get(self, key: str) -> Any | None:
        client = await self._ensure_connected()
        try:
            value = await client.get(key)
        except RedisError as e:
            raise StorageError(f"Redis GET {key} failed: {e}") from e
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt JSON stored under {key}") from e

    async def set(self, key: str, value: Any) -> None:
        client = await self._ensure_connected()
        try:
            await client.set(key, json.dumps(value))
        except RedisError as e:
            raise StorageError(f"Redis SET {key} failed: {e}") from e

    async def delete(self, key: str) -> bool:
        client = await self._ensure_connected()
        try:
            result = await client.delete(key)
        except RedisError as e:
            raise StorageError(f"Redis DEL {key} failed: {e}") from e
        return result > 0
