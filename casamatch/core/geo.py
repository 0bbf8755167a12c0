"""
Geo Math

Point-in-polygon containment and great-circle distance.

Points are (longitude, latitude) pairs in degrees, the same ordering
GeoJSON uses. Good enough at city scale; no ellipsoidal correction.
"""

import math
from numbers import Real
from typing import NamedTuple, Sequence

from casamatch.core.exceptions import InvalidCoordinateError

EARTH_RADIUS_M = 6371000.0


class GeoPoint(NamedTuple):
    """(longitude, latitude) in degrees"""
    longitude: float
    latitude: float

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float) -> 'GeoPoint':
        return cls(longitude=lng, latitude=lat)


def _coordinate(value) -> float:
    """Reject anything that is not a finite real number."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidCoordinateError(f"Coordinate must be numeric, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidCoordinateError(f"Coordinate must be finite, got {value!r}")
    return value


def _xy(point: Sequence) -> tuple:
    try:
        x, y = point[0], point[1]
    except (TypeError, IndexError, KeyError) as e:
        raise InvalidCoordinateError(f"Not a coordinate pair: {point!r}") from e
    return _coordinate(x), _coordinate(y)


def point_in_polygon(point: Sequence, ring: Sequence[Sequence]) -> bool:
    """
    Ray casting test for a point against a polygon's outer ring.

    Each edge crossed by a horizontal ray from the point toggles the
    result. Rings with fewer than 3 points contain nothing. Points lying
    exactly on an edge may go either way.
    """
    if not ring or len(ring) < 3:
        return False

    x, y = _xy(point)
    vertices = [_xy(p) for p in ring]

    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]

        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside

        j = i

    return inside


def haversine_distance(p1: Sequence, p2: Sequence) -> float:
    """Great-circle distance in meters between two (lon, lat) points."""
    lon1, lat1 = _xy(p1)
    lon2, lat2 = _xy(p2)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c
