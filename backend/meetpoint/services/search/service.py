"""Search orchestration.

Turns a search request into midpoint → cache lookup → provider calls →
cache store. Each call is request-scoped; the only state shared between
concurrent calls is the cache.

Stages:
1. VALIDATE: reject incomplete or out-of-range input before any provider call
2. MIDPOINT: spherical midpoint of the two locations
3. CACHE_LOOKUP: return cached venues for an identical search
4. PROVIDER_SEARCH: midpoint address, then one nearby search per category,
   each with retry; results merged, deduplicated by provider id and ranked
5. CACHE_STORE: remember the full ranked list
6. RETURN: filtered, re-sorted and truncated to max_results

A category whose search still fails after retries is logged and skipped.
Only when every category fails does the flow fail, with the last error.
"""

import logging
import time

import httpx

from meetpoint.models import (
    CacheStats,
    ErrorCode,
    Location,
    LocationServiceError,
    PlaceCandidate,
    SearchFilters,
    SearchParams,
    SearchResult,
    SortOption,
    Venue,
    VenueCategory,
)
from meetpoint.services.cache import SearchCache, build_fingerprint
from meetpoint.services.provider import PlaceProvider
from meetpoint.services.retry import RetryExecutor
from meetpoint.utils.geo import distance_meters, is_valid_coordinate, midpoint

logger = logging.getLogger(__name__)

MIN_SUGGESTION_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 5

# Provider errors that can surface once retries are exhausted.
PROVIDER_ERRORS = (LocationServiceError, httpx.TimeoutException, httpx.TransportError)


def rank_key(venue: Venue) -> tuple[float, float, str]:
    """Sort key: nearest first, then best rated, then by name."""
    return (venue.distance_meters, -venue.rating, venue.name)


def _price_key(venue: Venue) -> tuple[bool, int, float, str]:
    # Unknown prices sort last.
    return (venue.price_level is None, venue.price_level or 0, venue.distance_meters, venue.name)


def _rating_key(venue: Venue) -> tuple[float, float, str]:
    return (-venue.rating, venue.distance_meters, venue.name)


SORT_KEYS = {
    SortOption.DISTANCE: rank_key,
    SortOption.RATING: _rating_key,
    SortOption.PRICE: _price_key,
}


def apply_filters(venues: list[Venue], filters: SearchFilters) -> list[Venue]:
    """Narrow and re-order a ranked venue list.

    Venues with an unknown price level pass ``max_price_level``.
    """
    result = [
        venue
        for venue in venues
        if (filters.min_rating is None or venue.rating >= filters.min_rating)
        and (
            filters.max_price_level is None
            or venue.price_level is None
            or venue.price_level <= filters.max_price_level
        )
        and (not filters.open_now or venue.open_now)
    ]
    if filters.sort_by is not SortOption.DISTANCE:
        result.sort(key=SORT_KEYS[filters.sort_by])
    return result


def candidate_to_venue(candidate: PlaceCandidate) -> Venue:
    """Build a venue from a nearby-search row when no details are fetched."""
    return Venue(
        provider_id=candidate.provider_id,
        name=candidate.name,
        address=candidate.address,
        location=candidate.location,
        rating=candidate.rating or 0.0,
        types=list(candidate.types),
    )


class SearchOrchestrator:
    """Answers midpoint venue searches end to end.

    Attributes:
        provider: The external place provider.
        cache: Shared search cache.
        retry: Retry executor wrapping every provider call.
    """

    def __init__(
        self,
        provider: PlaceProvider,
        cache: SearchCache,
        retry: RetryExecutor,
        default_radius: int = 5000,
        resolve_midpoint_address: bool = True,
        fetch_details: bool = False,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.retry = retry
        self._default_radius = default_radius
        self._resolve_midpoint_address = resolve_midpoint_address
        self._fetch_details = fetch_details

    # ── Main flow ─────────────────────────────────────────────────────

    async def execute_search_flow(self, params: SearchParams) -> SearchResult:
        """Run a complete search.

        Raises:
            LocationServiceError: INVALID_INPUT for bad parameters, or the
                provider error if every category search failed.
        """
        start = time.perf_counter()

        self.validate_params(params)
        radius = params.radius_meters or self._default_radius

        center = midpoint(params.location1, params.location2)

        fingerprint = build_fingerprint(params, center, self._default_radius)
        cached = self.cache.lookup(fingerprint)
        if cached is not None:
            logger.info(f"[SEARCH] Cache hit, {len(cached.venues)} venues")
            matching = apply_filters(cached.venues, params.filters)
            venues = self._truncate(matching, params.max_results)
            return SearchResult(
                venues=venues,
                midpoint=cached.midpoint or center,
                from_cache=True,
                search_time_ms=(time.perf_counter() - start) * 1000,
                total_results=len(matching),
            )

        if self._resolve_midpoint_address:
            address = await self.provider.reverse_geocode(center.latitude, center.longitude)
            center = center.model_copy(update={"address": address})

        venues, complete = await self._search_categories(
            center, params.sorted_categories(), radius
        )
        if complete:
            self.cache.put(fingerprint, venues, center)
        else:
            logger.info("[SEARCH] Partial results not cached")
        matching = apply_filters(venues, params.filters)
        venues = self._truncate(matching, params.max_results)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[SEARCH] {len(venues)} venues in {elapsed_ms:.0f}ms")
        return SearchResult(
            venues=venues,
            midpoint=center,
            from_cache=False,
            search_time_ms=elapsed_ms,
            total_results=len(matching),
        )

    @staticmethod
    def _truncate(venues: list[Venue], max_results: int | None) -> list[Venue]:
        return venues[:max_results] if max_results else venues

    def validate_params(self, params: SearchParams) -> None:
        """Reject a request before any provider call is made."""
        if params.location1 is None or params.location2 is None:
            raise LocationServiceError(
                ErrorCode.INVALID_INPUT, "Two locations are required"
            )
        for name, location in (("location1", params.location1), ("location2", params.location2)):
            if not is_valid_coordinate(location.latitude, location.longitude):
                raise LocationServiceError(
                    ErrorCode.INVALID_INPUT,
                    f"{name} has out-of-range coordinates",
                    {"latitude": location.latitude, "longitude": location.longitude},
                )
        if not params.categories:
            raise LocationServiceError(
                ErrorCode.INVALID_INPUT, "At least one venue category is required"
            )
        if params.radius_meters is not None and params.radius_meters <= 0:
            raise LocationServiceError(
                ErrorCode.INVALID_INPUT, "radius_meters must be positive"
            )

    async def _search_categories(
        self, center: Location, categories: list[VenueCategory], radius: int
    ) -> tuple[list[Venue], bool]:
        """Search every category, tolerating individual failures.

        Returns:
            The ranked venues and whether every category succeeded.
        """
        venues_by_id: dict[str, Venue] = {}
        last_error: Exception | None = None
        failed = 0

        for category in categories:
            try:
                candidates = await self.retry.execute_with_retry(
                    lambda category=category: self.provider.search_nearby(
                        center, category, radius
                    ),
                    label=f"search_nearby[{category.value}]",
                )
            except PROVIDER_ERRORS as e:
                code = e.code.value if isinstance(e, LocationServiceError) else type(e).__name__
                logger.warning(f"[SEARCH] {category.value} search failed: {code} {e}")
                last_error = e
                failed += 1
                continue

            for candidate in candidates:
                if candidate.provider_id in venues_by_id:
                    continue
                venue = await self._build_venue(candidate)
                venues_by_id[candidate.provider_id] = venue.model_copy(
                    update={"distance_meters": distance_meters(center, venue.location)}
                )

        if last_error is not None and failed == len(categories):
            raise last_error

        venues = sorted(venues_by_id.values(), key=rank_key)
        return venues, failed == 0

    async def _build_venue(self, candidate: PlaceCandidate) -> Venue:
        if not self._fetch_details:
            return candidate_to_venue(candidate)
        try:
            return await self.retry.execute_with_retry(
                lambda: self.provider.place_details(candidate.provider_id),
                label=f"place_details[{candidate.provider_id}]",
            )
        except LocationServiceError as e:
            logger.warning(
                f"[SEARCH] Details failed for {candidate.provider_id}: {e.code.value}"
            )
            return candidate_to_venue(candidate)

    # ── Auxiliary operations ──────────────────────────────────────────

    async def get_location_suggestions(
        self, query: str, bias: Location | None = None, limit: int = MAX_SUGGESTIONS
    ) -> list[Location]:
        """Autocomplete-style lookup, at most ``limit`` locations.

        Degrades to an empty list on any provider failure.
        """
        if not query or len(query.strip()) < MIN_SUGGESTION_QUERY_LENGTH or limit <= 0:
            return []
        try:
            locations = await self.provider.suggest(query.strip(), bias, limit)
        except PROVIDER_ERRORS as e:
            logger.info(f"[SEARCH] Suggestions for {query!r} unavailable: {e}")
            return []
        return locations[:limit]

    async def geocode_address(self, address: str) -> Location:
        return await self.retry.execute_with_retry(
            lambda: self.provider.geocode(address), label="geocode"
        )

    async def get_venue_details(self, provider_id: str) -> Venue:
        return await self.retry.execute_with_retry(
            lambda: self.provider.place_details(provider_id), label="place_details"
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()
