"""Shared fixtures for unit tests."""

import pytest

from meetpoint.models import (
    ErrorCode,
    Location,
    LocationServiceError,
    PlaceCandidate,
    Venue,
    VenueCategory,
)
from meetpoint.services import PlaceProvider
from meetpoint.utils.geo import format_coordinates


class FakePlaceProvider(PlaceProvider):
    """In-memory provider that records every call.

    ``failures[category]`` holds errors raised, in order, before the
    category's candidates are returned.
    """

    def __init__(self) -> None:
        self.candidates: dict[VenueCategory, list[PlaceCandidate]] = {}
        self.failures: dict[VenueCategory, list[Exception]] = {}
        self.locations: dict[str, Location] = {}
        self.suggestions: dict[str, list[Location]] = {}
        self.details: dict[str, Venue] = {}
        self.details_error: LocationServiceError | None = None
        self.reverse_address: str | None = "Midpoint Street"
        self.calls: list[tuple] = []
        self.closed = False

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def geocode(self, address: str, bias: Location | None = None) -> Location:
        self.calls.append(("geocode", address, bias))
        if address not in self.locations:
            raise LocationServiceError(
                ErrorCode.LOCATION_NOT_FOUND, f"Could not find address: {address}"
            )
        return self.locations[address]

    async def suggest(
        self, query: str, bias: Location | None = None, limit: int = 5
    ) -> list[Location]:
        self.calls.append(("suggest", query, bias, limit))
        if query in self.suggestions:
            return self.suggestions[query][:limit]
        return await super().suggest(query, bias, limit)

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        self.calls.append(("reverse_geocode", lat, lng))
        return self.reverse_address or format_coordinates(lat, lng)

    async def search_nearby(
        self, location: Location, category: VenueCategory, radius_meters: int
    ) -> list[PlaceCandidate]:
        self.calls.append(("search_nearby", category, radius_meters))
        pending = self.failures.get(category)
        if pending:
            raise pending.pop(0)
        return list(self.candidates.get(category, []))

    async def place_details(self, provider_id: str) -> Venue:
        self.calls.append(("place_details", provider_id))
        if self.details_error is not None:
            raise self.details_error
        if provider_id not in self.details:
            raise LocationServiceError(
                ErrorCode.PLACE_DETAILS_FAILED, f"Place not found: {provider_id}"
            )
        return self.details[provider_id]

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Stands in for ``asyncio.sleep`` and records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_candidate(
    provider_id: str,
    name: str,
    lat: float,
    lng: float,
    rating: float | None = None,
    category: VenueCategory = VenueCategory.RESTAURANT,
) -> PlaceCandidate:
    location = Location(address=f"{name} address", latitude=lat, longitude=lng)
    return PlaceCandidate(
        provider_id=provider_id,
        name=name,
        address=f"{name} address",
        location=location,
        rating=rating,
        types=[category.value],
    )


@pytest.fixture
def provider() -> FakePlaceProvider:
    return FakePlaceProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def beijing_east() -> Location:
    return Location(address="Chaoyang, Beijing", latitude=39.9388, longitude=116.4574)


@pytest.fixture
def beijing_west() -> Location:
    return Location(address="Haidian, Beijing", latitude=39.9833, longitude=116.3167)
