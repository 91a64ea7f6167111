"""Unit tests for the key-value storage backends."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from meetpoint.services.storage import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    StorageError,
    namespaced_key,
)


class TestNamespacedKey:
    def test_prefix(self) -> None:
        assert namespaced_key("search-history") == "meetpoint:search-history"


class TestInMemoryKeyValueStore:
    """Tests for the in-process store."""

    def setup_method(self) -> None:
        self.store = InMemoryKeyValueStore()

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        assert await self.store.get("meetpoint:missing") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        await self.store.set("meetpoint:k", {"items": [1, 2, 3]})
        assert await self.store.get("meetpoint:k") == {"items": [1, 2, 3]}

    @pytest.mark.asyncio
    async def test_values_are_isolated(self) -> None:
        value = {"items": [1]}
        await self.store.set("meetpoint:k", value)
        value["items"].append(2)
        loaded = await self.store.get("meetpoint:k")
        loaded["items"].append(3)
        assert await self.store.get("meetpoint:k") == {"items": [1]}

    @pytest.mark.asyncio
    async def test_rejects_non_json_values(self) -> None:
        with pytest.raises(TypeError):
            await self.store.set("meetpoint:k", {"bad": object()})

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        await self.store.set("meetpoint:k", [1])
        assert await self.store.delete("meetpoint:k") is True
        assert await self.store.delete("meetpoint:k") is False


class FailingRedis:
    """Async client double whose every command fails."""

    async def get(self, key: str) -> None:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: str) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, key: str) -> int:
        raise RedisConnectionError("connection refused")

    async def aclose(self) -> None:
        pass


class DictRedis:
    """Async client double backed by a dict of strings."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self) -> None:
        pass


class TestRedisKeyValueStore:
    """Tests for the Redis store with the client swapped for a double."""

    def test_default_url(self) -> None:
        store = RedisKeyValueStore()
        assert store._redis_url == "redis://localhost:6379"

    @pytest.mark.asyncio
    async def test_round_trip_as_json(self) -> None:
        store = RedisKeyValueStore()
        client = DictRedis()
        store._client = client
        await store.set("meetpoint:k", ["cafe", "bar"])
        assert client.data["meetpoint:k"] == '["cafe", "bar"]'
        assert await store.get("meetpoint:k") == ["cafe", "bar"]
        assert await store.delete("meetpoint:k") is True

    @pytest.mark.asyncio
    async def test_corrupt_json(self) -> None:
        store = RedisKeyValueStore()
        client = DictRedis()
        client.data["meetpoint:k"] = "{not json"
        store._client = client
        with pytest.raises(StorageError):
            await store.get("meetpoint:k")

    @pytest.mark.asyncio
    async def test_redis_errors_become_storage_errors(self) -> None:
        store = RedisKeyValueStore()
        store._client = FailingRedis()
        with pytest.raises(StorageError):
            await store.get("meetpoint:k")
        with pytest.raises(StorageError):
            await store.set("meetpoint:k", 1)
        with pytest.raises(StorageError):
            await store.delete("meetpoint:k")

    @pytest.mark.asyncio
    async def test_close_resets_client(self) -> None:
        store = RedisKeyValueStore()
        store._client = DictRedis()
        await store.close()
        assert store._client is None
