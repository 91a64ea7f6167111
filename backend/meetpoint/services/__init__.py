"""Meetpoint Services.

Service layer components:
- Cache: in-memory TTL cache for search results with a background sweep
- Retry: exponential-backoff retry driven by error classification
- Storage: Redis-backed key-value persistence with an in-memory fallback
- History: deduplicated search history and category preferences
- Provider: place provider interface and the OpenStreetMap adapter
- Search: midpoint search orchestration
"""

from .cache import SearchCache, build_fingerprint
from .retry import RetryExecutor, is_retryable
from .storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    StorageError,
)
from .history import CategoryPreferencesStore, SearchHistoryStore
from .provider import OpenStreetMapPlaceProvider, PlaceProvider
from .search import SearchOrchestrator

__all__ = [
    # Cache
    "SearchCache",
    "build_fingerprint",
    # Retry
    "RetryExecutor",
    "is_retryable",
    # Storage
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "StorageError",
    # History
    "CategoryPreferencesStore",
    "SearchHistoryStore",
    # Provider
    "OpenStreetMapPlaceProvider",
    "PlaceProvider",
    # Search
    "SearchOrchestrator",
]
