"""Core data models for Meetpoint.

This module contains the Pydantic models used throughout the application
for representing locations, venues, search requests and search history.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VenueCategory(str, Enum):
    """Venue categories a search can ask for."""

    RESTAURANT = "restaurant"
    CAFE = "cafe"
    MOVIE_THEATER = "movie_theater"
    SHOPPING_MALL = "shopping_mall"
    BAR = "bar"
    PARK = "park"
    MUSEUM = "museum"
    AMUSEMENT_PARK = "amusement_park"
    BOWLING_ALLEY = "bowling_alley"
    GYM = "gym"

    @property
    def display_name(self) -> str:
        return CATEGORY_DISPLAY_NAMES[self]


CATEGORY_DISPLAY_NAMES = {
    VenueCategory.RESTAURANT: "Restaurant",
    VenueCategory.CAFE: "Cafe",
    VenueCategory.MOVIE_THEATER: "Movie Theater",
    VenueCategory.SHOPPING_MALL: "Shopping Mall",
    VenueCategory.BAR: "Bar",
    VenueCategory.PARK: "Park",
    VenueCategory.MUSEUM: "Museum",
    VenueCategory.AMUSEMENT_PARK: "Amusement Park",
    VenueCategory.BOWLING_ALLEY: "Bowling Alley",
    VenueCategory.GYM: "Gym",
}


class Location(BaseModel):
    """A resolved geographic location.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(default="", description="Formatted address")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    provider_id: Optional[str] = Field(None, description="Provider place identifier")


class OpeningHours(BaseModel):
    """Opening hours information for a venue."""

    open_now: bool = Field(default=False, description="Whether the place is currently open")
    weekday_text: list[str] = Field(
        default_factory=list, description="Human-readable opening hours by day"
    )


class PlaceCandidate(BaseModel):
    """A raw row returned by a nearby search, before ranking."""

    provider_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    address: str = ""
    location: Location
    rating: Optional[float] = Field(None, ge=0, le=5)
    types: list[str] = Field(default_factory=list)


class Venue(BaseModel):
    """A candidate place enriched with its distance from the search midpoint.

    ``distance_meters`` is computed once by the search orchestrator and is
    never recomputed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(..., min_length=1, description="Provider place identifier")
    name: str = Field(..., min_length=1, description="Display name of the venue")
    address: str = Field(default="", description="Formatted address")
    location: Location = Field(..., description="Geographic location")
    rating: float = Field(default=0.0, ge=0, le=5, description="Average rating (0-5)")
    rating_count: int = Field(default=0, ge=0, description="Number of ratings")
    price_level: Optional[int] = Field(None, ge=1, le=4, description="Price level (1-4)")
    distance_meters: float = Field(default=0.0, ge=0, description="Distance from the midpoint")
    open_now: bool = Field(default=False, description="Whether the venue is open now")
    opening_hours: Optional[OpeningHours] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    types: list[str] = Field(default_factory=list, description="Place type categories")
    photos: list[str] = Field(default_factory=list, description="Photo URLs")


class SortOption(str, Enum):
    """Result orderings a search can ask for."""

    DISTANCE = "distance"
    RATING = "rating"
    PRICE = "price"


class SearchFilters(BaseModel):
    """Narrowing and re-ordering applied to the ranked venue list."""

    min_rating: Optional[float] = Field(None, ge=0, le=5, description="Minimum rating")
    max_price_level: Optional[int] = Field(
        None, ge=1, le=4, description="Highest price level; unknown prices pass"
    )
    open_now: bool = Field(default=False, description="Only venues open now")
    sort_by: SortOption = Field(default=SortOption.DISTANCE)


class SearchParams(BaseModel):
    """Input for a midpoint venue search.

    Locations and categories are optional at the model level so that the
    orchestrator's validation stage owns rejecting incomplete requests.
    """

    location1: Optional[Location] = None
    location2: Optional[Location] = None
    categories: set[VenueCategory] = Field(default_factory=set)
    radius_meters: int = Field(default=5000, description="Search radius in meters")
    max_results: Optional[int] = Field(None, gt=0, description="Maximum venues returned")
    filters: SearchFilters = Field(default_factory=SearchFilters)

    def sorted_categories(self) -> list[VenueCategory]:
        return sorted(self.categories, key=lambda c: c.value)


class SearchResult(BaseModel):
    """Outcome of one search flow."""

    venues: list[Venue]
    midpoint: Location
    from_cache: bool
    search_time_ms: float = Field(..., ge=0)
    total_results: int = Field(
        ..., ge=0, description="Matching venues before max_results truncation"
    )


class HistoryItem(BaseModel):
    """A past search kept in the history log."""

    id: str = Field(..., min_length=1)
    location1: Location
    location2: Location
    categories: list[VenueCategory] = Field(..., min_length=1)
    timestamp: datetime
    result_count: int = Field(default=0, ge=0)

    @field_validator("categories")
    @classmethod
    def _sort_categories(cls, value: list[VenueCategory]) -> list[VenueCategory]:
        return sorted(set(value), key=lambda c: c.value)

    @property
    def category_key(self) -> str:
        return ",".join(c.value for c in self.categories)


class CacheStats(BaseModel):
    """Snapshot of the search cache."""

    total_items: int
    valid_items: int
    expired_items: int
    max_size: int
