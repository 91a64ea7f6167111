"""Composition root.

Builds every service once from ``Settings`` and owns their lifecycle. The
FastAPI app keeps the container on ``app.state``; nothing is a module-level
singleton.
"""

import logging
from dataclasses import dataclass

from meetpoint.config import Settings
from meetpoint.services import (
    CategoryPreferencesStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    OpenStreetMapPlaceProvider,
    PlaceProvider,
    RedisKeyValueStore,
    RetryExecutor,
    SearchCache,
    SearchHistoryStore,
    SearchOrchestrator,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """All long-lived services of one application instance."""

    settings: Settings
    provider: PlaceProvider
    storage: KeyValueStore
    cache: SearchCache
    retry: RetryExecutor
    orchestrator: SearchOrchestrator
    history: SearchHistoryStore
    preferences: CategoryPreferencesStore

    async def startup(self) -> None:
        """Restore persisted state and start background tasks."""
        await self.history.load()
        await self.preferences.load()
        self.cache.start_sweeper()
        logger.info("[APP] Services started")

    async def shutdown(self) -> None:
        """Stop background tasks and release connections."""
        await self.cache.stop_sweeper()
        await self.provider.close()
        await self.storage.close()
        logger.info("[APP] Services stopped")


def build_services(
    settings: Settings,
    provider: PlaceProvider | None = None,
    storage: KeyValueStore | None = None,
    retry: RetryExecutor | None = None,
) -> ServiceContainer:
    """Wire the services together.

    ``provider``, ``storage`` and ``retry`` can be injected (tests pass
    fakes); otherwise they are built from settings.
    """
    if provider is None:
        provider = OpenStreetMapPlaceProvider(
            timeout=settings.provider_timeout,
            nominatim_url=settings.nominatim_url,
            overpass_url=settings.overpass_url,
            user_agent=settings.user_agent,
        )

    if storage is None:
        if settings.redis_url:
            storage = RedisKeyValueStore(settings.redis_url)
        else:
            logger.warning("[APP] No Redis URL configured, history is kept in memory only")
            storage = InMemoryKeyValueStore()

    if retry is None:
        retry = RetryExecutor(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
        )

    cache = SearchCache(
        max_size=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
        sweep_interval_seconds=settings.cache_sweep_interval_seconds,
    )
    orchestrator = SearchOrchestrator(
        provider=provider,
        cache=cache,
        retry=retry,
        default_radius=settings.default_radius_meters,
        resolve_midpoint_address=settings.resolve_midpoint_address,
        fetch_details=settings.fetch_venue_details,
    )

    return ServiceContainer(
        settings=settings,
        provider=provider,
        storage=storage,
        cache=cache,
        retry=retry,
        orchestrator=orchestrator,
        history=SearchHistoryStore(storage, max_items=settings.history_max_items),
        preferences=CategoryPreferencesStore(storage),
    )
