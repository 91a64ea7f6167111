"""Meetpoint data models."""

from .core import (
    CATEGORY_DISPLAY_NAMES,
    CacheStats,
    HistoryItem,
    Location,
    OpeningHours,
    PlaceCandidate,
    SearchFilters,
    SearchParams,
    SearchResult,
    SortOption,
    Venue,
    VenueCategory,
)
from .errors import (
    RETRYABLE_ERROR_CODES,
    AppError,
    ErrorCode,
    LocationServiceError,
    RecoveryOption,
)

__all__ = [
    "CATEGORY_DISPLAY_NAMES",
    "CacheStats",
    "HistoryItem",
    "Location",
    "OpeningHours",
    "PlaceCandidate",
    "SearchFilters",
    "SearchParams",
    "SearchResult",
    "SortOption",
    "Venue",
    "VenueCategory",
    "RETRYABLE_ERROR_CODES",
    "AppError",
    "ErrorCode",
    "LocationServiceError",
    "RecoveryOption",
]
