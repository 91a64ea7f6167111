"""Place providers: the abstract interface and the OpenStreetMap adapter."""

from .base import PlaceProvider
from .osm import CATEGORY_TO_OSM_TAGS, OpenStreetMapPlaceProvider, parse_provider_id

__all__ = [
    "CATEGORY_TO_OSM_TAGS",
    "OpenStreetMapPlaceProvider",
    "PlaceProvider",
    "parse_provider_id",
]
