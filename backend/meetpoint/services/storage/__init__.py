"""Durable key-value storage backends."""

from .service import (
    NAMESPACE,
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    StorageError,
    namespaced_key,
)

__all__ = [
    "NAMESPACE",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "StorageError",
    "namespaced_key",
]
