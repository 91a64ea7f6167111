"""Spherical geometry helpers.

All functions are pure. Distances are in meters on a spherical Earth.
"""

import math

from meetpoint.models import ErrorCode, Location, LocationServiceError

EARTH_RADIUS_METERS = 6_371_000.0

# Flat lat/lng tolerance used to decide that two history locations are the
# same place. 0.001 degrees is about 111 m at the equator; the longitude span
# shrinks with latitude, so this is not a true distance.
SAME_LOCATION_TOLERANCE_DEGREES = 0.001


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Check latitude/longitude ranges."""
    try:
        return -90 <= lat <= 90 and -180 <= lng <= 180
    except TypeError:
        return False


def format_coordinates(lat: float, lng: float) -> str:
    """Format coordinates the way unresolved addresses are displayed."""
    return f"{lat:.6f}, {lng:.6f}"


def _require_valid(location: Location, name: str) -> None:
    if not is_valid_coordinate(location.latitude, location.longitude):
        raise LocationServiceError(
            ErrorCode.INVALID_INPUT,
            f"{name} has out-of-range coordinates: "
            f"({location.latitude}, {location.longitude})",
        )


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two lat/lng pairs."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_meters(a: Location, b: Location) -> float:
    """Great-circle distance in meters between two locations."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def midpoint(a: Location, b: Location) -> Location:
    """Geographic midpoint of two locations.

    Both points are projected onto the unit sphere, their Cartesian vectors
    averaged and the mean vector projected back to lat/lng. Unlike averaging
    latitudes and longitudes directly this stays correct across the date line
    and near the poles.

    The returned address is the formatted coordinate pair; resolving a real
    address is left to the caller.

    Raises:
        LocationServiceError: INVALID_INPUT if either coordinate is out of range.
    """
    _require_valid(a, "location1")
    _require_valid(b, "location2")

    lat1, lng1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lng2 = math.radians(b.latitude), math.radians(b.longitude)

    x = (math.cos(lat1) * math.cos(lng1) + math.cos(lat2) * math.cos(lng2)) / 2
    y = (math.cos(lat1) * math.sin(lng1) + math.cos(lat2) * math.sin(lng2)) / 2
    z = (math.sin(lat1) + math.sin(lat2)) / 2

    # Antipodal points give a zero vector; atan2(0, 0) resolves that to (0, 0).
    lng = math.atan2(y, x)
    lat = math.atan2(z, math.sqrt(x * x + y * y))

    mid_lat = math.degrees(lat)
    mid_lng = math.degrees(lng)
    return Location(
        address=format_coordinates(mid_lat, mid_lng),
        latitude=mid_lat,
        longitude=mid_lng,
    )


def is_same_location(a: Location, b: Location) -> bool:
    """Whether two locations fall within the flat history tolerance."""
    return (
        abs(a.latitude - b.latitude) < SAME_LOCATION_TOLERANCE_DEGREES
        and abs(a.longitude - b.longitude) < SAME_LOCATION_TOLERANCE_DEGREES
    )


def coordinate_key(location: Location, precision: int = 4) -> str:
    """Rounded ``lat,lng`` key used to group nearby coordinates."""
    return f"{round(location.latitude, precision)},{round(location.longitude, precision)}"
