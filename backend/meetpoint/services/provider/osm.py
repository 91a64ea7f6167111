"""OpenStreetMap place provider.

Architecture:
1. Nominatim: geocoding, reverse geocoding and place lookup by OSM id
2. Overpass: nearby venue queries by category using ``around:`` filters

Both are free and need no API key. Transport failures are translated into
``LocationServiceError`` kinds:
- HTTP 429 → QUOTA_EXCEEDED
- timeouts, connection errors, 5xx → NETWORK_ERROR
- anything else → the failing operation's own kind
"""

import logging
from typing import Any

import httpx

from meetpoint.models import (
    ErrorCode,
    Location,
    LocationServiceError,
    OpeningHours,
    PlaceCandidate,
    Venue,
    VenueCategory,
)
from meetpoint.services.provider.base import PlaceProvider
from meetpoint.utils.geo import format_coordinates, is_valid_coordinate

logger = logging.getLogger(__name__)


# Map venue categories to OSM tags
CATEGORY_TO_OSM_TAGS: dict[VenueCategory, list[str]] = {
    VenueCategory.RESTAURANT: ["amenity=restaurant"],
    VenueCategory.CAFE: ["amenity=cafe"],
    VenueCategory.MOVIE_THEATER: ["amenity=cinema"],
    VenueCategory.SHOPPING_MALL: ["shop=mall", "shop=department_store"],
    VenueCategory.BAR: ["amenity=bar", "amenity=pub"],
    VenueCategory.PARK: ["leisure=park", "leisure=garden"],
    VenueCategory.MUSEUM: ["tourism=museum", "tourism=gallery"],
    VenueCategory.AMUSEMENT_PARK: ["tourism=theme_park", "leisure=water_park"],
    VenueCategory.BOWLING_ALLEY: ["leisure=bowling_alley"],
    VenueCategory.GYM: ["leisure=fitness_centre", "leisure=sports_centre"],
}

# Half-size in degrees of the Nominatim viewbox built around a bias location.
BIAS_VIEWBOX_DEGREES = 0.1


def _address_from_tags(tags: dict) -> str:
    """Build a short address from OSM addr:* tags."""
    parts = []
    if tags.get("addr:street"):
        street = tags.get("addr:housenumber", "") + " " + tags["addr:street"]
        parts.append(street.strip())
    if tags.get("addr:city"):
        parts.append(tags["addr:city"])
    return ", ".join(parts)


def _element_coordinates(element: dict) -> tuple[float, float] | None:
    """Coordinates of an Overpass element (center for ways/relations)."""
    if element.get("type") == "node":
        lat, lon = element.get("lat"), element.get("lon")
    elif "center" in element:
        lat, lon = element["center"].get("lat"), element["center"].get("lon")
    else:
        return None
    if lat is None or lon is None:
        return None
    return float(lat), float(lon)


def parse_provider_id(provider_id: str) -> tuple[str, str]:
    """Split an ``osm_{type}_{id}`` identifier.

    Raises:
        LocationServiceError: INVALID_INPUT for empty or malformed ids.
    """
    if not provider_id or not provider_id.strip():
        raise LocationServiceError(ErrorCode.INVALID_INPUT, "provider_id cannot be empty")

    parts = provider_id.strip().split("_")
    if len(parts) < 3 or parts[0] != "osm" or parts[1] not in ("node", "way", "relation"):
        raise LocationServiceError(
            ErrorCode.INVALID_INPUT, f"Invalid provider_id format: {provider_id}"
        )
    return parts[1], parts[2]


class OpenStreetMapPlaceProvider(PlaceProvider):
    """Nominatim + Overpass client.

    Uses a shared httpx client with connection pooling.
    """

    NOMINATIM_URL = "https://nominatim.openstreetmap.org"
    OVERPASS_URL = "https://overpass-api.de/api/interpreter"

    HEADERS = {"User-Agent": "Meetpoint/1.0 (contact@meetpoint.app)"}

    def __init__(
        self,
        timeout: float = 30.0,
        nominatim_url: str | None = None,
        overpass_url: str | None = None,
        user_agent: str | None = None,
        result_limit: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._nominatim_url = (nominatim_url or self.NOMINATIM_URL).rstrip("/")
        self._overpass_url = overpass_url or self.OVERPASS_URL
        self._headers = dict(self.HEADERS)
        if user_agent:
            self._headers["User-Agent"] = user_agent
        self._result_limit = result_limit
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request_json(
        self,
        method: str,
        url: str,
        failure: ErrorCode,
        **kwargs: Any,
    ) -> Any:
        """Perform a request and decode JSON, mapping failures to error kinds."""
        client = self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise LocationServiceError(
                ErrorCode.NETWORK_ERROR, f"Timeout calling {url}: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            details = {"status_code": status, "url": url}
            if status == 429:
                raise LocationServiceError(
                    ErrorCode.QUOTA_EXCEEDED, f"Rate limited by {url}", details
                ) from e
            if status >= 500:
                raise LocationServiceError(
                    ErrorCode.NETWORK_ERROR, f"Upstream error {status} from {url}", details
                ) from e
            raise LocationServiceError(failure, f"HTTP {status} from {url}", details) from e
        except httpx.TransportError as e:
            raise LocationServiceError(
                ErrorCode.NETWORK_ERROR, f"Connection error calling {url}: {e}"
            ) from e
        except ValueError as e:
            raise LocationServiceError(failure, f"Invalid JSON from {url}") from e

    # ── Geocoding ─────────────────────────────────────────────────────

    async def _nominatim_search(
        self, query: str, bias: Location | None, limit: int
    ) -> list[dict]:
        params: dict[str, Any] = {
            "q": query,
            "format": "json",
            "limit": limit,
            "addressdetails": 1,
        }
        if bias is not None:
            d = BIAS_VIEWBOX_DEGREES
            params["viewbox"] = (
                f"{bias.longitude - d},{bias.latitude + d},"
                f"{bias.longitude + d},{bias.latitude - d}"
            )
            params["bounded"] = 0

        results = await self._request_json(
            "GET", f"{self._nominatim_url}/search", ErrorCode.GEOCODING_FAILED, params=params
        )
        return results if isinstance(results, list) else []

    def _location_from_result(self, result: dict, query: str) -> Location:
        try:
            lat = float(result["lat"])
            lon = float(result["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise LocationServiceError(
                ErrorCode.GEOCODING_FAILED, f"Malformed geocoding result for {query}"
            ) from e

        if not is_valid_coordinate(lat, lon):
            raise LocationServiceError(
                ErrorCode.GEOCODING_FAILED, f"Out-of-range coordinates for {query}"
            )

        return Location(
            address=result.get("display_name") or query,
            latitude=lat,
            longitude=lon,
            provider_id=self._nominatim_place_id(result),
        )

    async def geocode(self, address: str, bias: Location | None = None) -> Location:
        if not address or not address.strip():
            raise LocationServiceError(ErrorCode.INVALID_INPUT, "address cannot be empty")

        query = address.strip()
        results = await self._nominatim_search(query, bias, limit=1)
        if not results:
            raise LocationServiceError(
                ErrorCode.LOCATION_NOT_FOUND, f"Could not find address: {address}"
            )

        location = self._location_from_result(results[0], query)
        logger.info(
            f"[OSM] Geocoded {address!r} to ({location.latitude:.4f}, {location.longitude:.4f})"
        )
        return location

    async def suggest(
        self, query: str, bias: Location | None = None, limit: int = 5
    ) -> list[Location]:
        """Up to ``limit`` Nominatim matches; malformed rows are skipped."""
        if not query or not query.strip():
            return []

        results = await self._nominatim_search(query.strip(), bias, limit)
        locations = []
        for result in results:
            try:
                locations.append(self._location_from_result(result, query.strip()))
            except LocationServiceError as e:
                logger.debug(f"[OSM] Skipping suggestion row: {e.message}")
        return locations[:limit]

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        fallback = format_coordinates(lat, lng)
        try:
            result = await self._request_json(
                "GET",
                f"{self._nominatim_url}/reverse",
                ErrorCode.GEOCODING_FAILED,
                params={"lat": lat, "lon": lng, "format": "json"},
            )
        except LocationServiceError as e:
            logger.info(f"[OSM] Reverse geocode failed for {fallback}: {e.code.value}")
            return fallback

        if isinstance(result, dict) and result.get("display_name"):
            return result["display_name"]
        return fallback

    @staticmethod
    def _nominatim_place_id(result: dict) -> str | None:
        osm_type = result.get("osm_type")
        osm_id = result.get("osm_id")
        if not osm_type or osm_id is None:
            return None
        return f"osm_{osm_type}_{osm_id}"

    # ── Nearby search ─────────────────────────────────────────────────

    def _build_overpass_query(
        self, location: Location, category: VenueCategory, radius_meters: int
    ) -> str:
        """Build Overpass QL query for one category around a point."""
        around = f"around:{radius_meters},{location.latitude},{location.longitude}"
        tag_queries = []
        for tag in CATEGORY_TO_OSM_TAGS[category]:
            key, value = tag.split("=", 1)
            tag_queries.append(f'node["{key}"="{value}"]["name"]({around});')
            tag_queries.append(f'way["{key}"="{value}"]["name"]({around});')

        return f"""
[out:json][timeout:25];
(
  {chr(10).join(tag_queries)}
);
out center {self._result_limit};
"""

    async def search_nearby(
        self, location: Location, category: VenueCategory, radius_meters: int
    ) -> list[PlaceCandidate]:
        query = self._build_overpass_query(location, category, radius_meters)
        data = await self._request_json(
            "POST",
            self._overpass_url,
            ErrorCode.PLACES_SEARCH_FAILED,
            data={"data": query},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not isinstance(data, dict):
            raise LocationServiceError(
                ErrorCode.PLACES_SEARCH_FAILED, "Unexpected Overpass response shape"
            )

        candidates = []
        for element in data.get("elements", []):
            tags = element.get("tags", {})
            name = tags.get("name")
            coords = _element_coordinates(element)
            if not name or coords is None or not is_valid_coordinate(*coords):
                continue

            lat, lon = coords
            address = _address_from_tags(tags)
            provider_id = f"osm_{element['type']}_{element['id']}"
            candidates.append(
                PlaceCandidate(
                    provider_id=provider_id,
                    name=name,
                    address=address,
                    location=Location(
                        address=address or name,
                        latitude=lat,
                        longitude=lon,
                        provider_id=provider_id,
                    ),
                    types=[category.value],
                )
            )

        logger.info(
            f"[OSM] {len(candidates)} {category.value} candidates within "
            f"{radius_meters}m of ({location.latitude:.4f}, {location.longitude:.4f})"
        )
        return candidates

    # ── Details ───────────────────────────────────────────────────────

    async def place_details(self, provider_id: str) -> Venue:
        osm_type, osm_id = parse_provider_id(provider_id)

        results = await self._request_json(
            "GET",
            f"{self._nominatim_url}/lookup",
            ErrorCode.PLACE_DETAILS_FAILED,
            params={
                "osm_ids": f"{osm_type[0].upper()}{osm_id}",
                "format": "json",
                "addressdetails": 1,
                "extratags": 1,
            },
        )
        if not results:
            raise LocationServiceError(
                ErrorCode.PLACE_DETAILS_FAILED, f"Place not found: {provider_id}"
            )

        venue = self._parse_lookup_result(results[0], provider_id)
        if venue is None:
            raise LocationServiceError(
                ErrorCode.PLACE_DETAILS_FAILED, f"Invalid place data: {provider_id}"
            )
        return venue

    def _parse_lookup_result(self, result: dict, provider_id: str) -> Venue | None:
        """Parse a Nominatim lookup row into a venue."""
        try:
            lat = float(result.get("lat", 0))
            lon = float(result.get("lon", 0))
        except (TypeError, ValueError):
            return None
        if not is_valid_coordinate(lat, lon):
            return None

        display_name = result.get("display_name", "")
        parts = [part.strip() for part in display_name.split(",") if part.strip()]
        name = result.get("name") or (parts[0] if parts else "")
        if not name:
            return None

        extratags = result.get("extratags") or {}
        opening_hours = None
        if extratags.get("opening_hours"):
            opening_hours = OpeningHours(
                open_now=extratags["opening_hours"] == "24/7",
                weekday_text=[extratags["opening_hours"]],
            )

        address = ", ".join(parts[:3])
        category = result.get("type") or result.get("class")

        return Venue(
            provider_id=provider_id,
            name=name,
            address=address,
            location=Location(
                address=address or name,
                latitude=lat,
                longitude=lon,
                provider_id=provider_id,
            ),
            open_now=opening_hours.open_now if opening_hours else False,
            opening_hours=opening_hours,
            phone_number=extratags.get("phone") or extratags.get("contact:phone"),
            website=extratags.get("website") or extratags.get("contact:website"),
            types=[category] if category else [],
        )
