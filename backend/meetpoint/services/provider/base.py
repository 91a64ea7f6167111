"""Place provider interface.

The search core talks to the outside world only through these four
operations. Adapters translate their own transport failures into
``LocationServiceError`` kinds so the retry layer can classify them.
"""

from abc import ABC, abstractmethod

from meetpoint.models import Location, PlaceCandidate, Venue, VenueCategory


class PlaceProvider(ABC):
    """Abstract base class for place search providers."""

    @abstractmethod
    async def geocode(self, address: str, bias: Location | None = None) -> Location:
        """Resolve an address to a location.

        Args:
            address: Free-form address or place name.
            bias: Optional location the result should be near.

        Raises:
            LocationServiceError: LOCATION_NOT_FOUND, GEOCODING_FAILED,
                QUOTA_EXCEEDED, NETWORK_ERROR or INVALID_INPUT.
        """
        ...

    @abstractmethod
    async def reverse_geocode(self, lat: float, lng: float) -> str:
        """Resolve coordinates to an address.

        Never raises; falls back to ``"lat, lng"`` formatted to 6 decimals.
        """
        ...

    @abstractmethod
    async def search_nearby(
        self, location: Location, category: VenueCategory, radius_meters: int
    ) -> list[PlaceCandidate]:
        """Find candidate places of one category around a location.

        Raises:
            LocationServiceError: QUOTA_EXCEEDED, NETWORK_ERROR or
                PLACES_SEARCH_FAILED.
        """
        ...

    @abstractmethod
    async def place_details(self, provider_id: str) -> Venue:
        """Fetch the full record for a place.

        The returned venue has ``distance_meters`` set to 0; the caller
        decides what the distance is relative to.

        Raises:
            LocationServiceError: PLACE_DETAILS_FAILED, QUOTA_EXCEEDED,
                NETWORK_ERROR or INVALID_INPUT.
        """
        ...

    async def suggest(
        self, query: str, bias: Location | None = None, limit: int = 5
    ) -> list[Location]:
        """Address matches for autocomplete, best first.

        The default asks ``geocode`` for its single best match; adapters whose
        backend can return several matches override it.

        Raises:
            LocationServiceError: same kinds as ``geocode``.
        """
        return [await self.geocode(query, bias)][:limit]

    async def close(self) -> None:
        """Release network resources. No-op by default."""
