"""
GeoJSON Adapter

Turns the GeoJSON-like values stored on buyers and properties into plain
points and rings for the geo math. Everything here fails soft: malformed
input yields None, which callers read as "no spatial constraint".
"""

import json
import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, List, Optional, Sequence, Tuple, Union

from casamatch.core.geo import GeoPoint, haversine_distance, point_in_polygon

logger = logging.getLogger(__name__)

Ring = List[GeoPoint]
Geometry = Union[GeoPoint, Ring]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _to_point(coords: Any) -> Optional[GeoPoint]:
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    lng, lat = coords[0], coords[1]
    if not (_is_number(lng) and _is_number(lat)):
        return None
    return GeoPoint(longitude=float(lng), latitude=float(lat))


def _to_ring(coords: Any) -> Optional[Ring]:
    if not isinstance(coords, (list, tuple)):
        return None
    ring = []
    for coord in coords:
        point = _to_point(coord)
        if point is None:
            return None
        ring.append(point)
    return ring


def parse_geometry(obj: Any) -> Optional[Geometry]:
    """
    Extract a point or an outer ring from a GeoJSON geometry.

    - Point: the coordinate pair
    - Polygon: the outer ring; holes are ignored
    - MultiPolygon: the outer ring of the first polygon only
    - anything else: None
    """
    if isinstance(obj, str):
        try:
            obj = json.loads(obj)
        except json.JSONDecodeError:
            logger.debug(f"Geometry is not valid JSON: {obj[:80]!r}")
            return None

    if not isinstance(obj, dict) or not obj.get('type'):
        return None

    geom_type = obj['type']
    coords = obj.get('coordinates')

    try:
        if geom_type == 'Point':
            return _to_point(coords)
        if geom_type == 'Polygon':
            return _to_ring(coords[0])
        if geom_type == 'MultiPolygon':
            return _to_ring(coords[0][0])
    except (TypeError, IndexError, KeyError):
        logger.debug(f"Malformed {geom_type} coordinates")
        return None

    logger.debug(f"Unsupported geometry type: {geom_type}")
    return None


@dataclass
class SearchArea:
    """
    Region a buyer wants properties in.

    Made of polygon rings and circles; a point is inside the area when it
    is inside any of them.
    """
    rings: List[Ring] = field(default_factory=list)
    circles: List[Tuple[GeoPoint, float]] = field(default_factory=list)

    def contains(self, point: Sequence) -> bool:
        for ring in self.rings:
            if point_in_polygon(point, ring):
                return True
        for center, radius_m in self.circles:
            if haversine_distance(point, center) <= radius_m:
                return True
        return False

    @property
    def is_empty(self) -> bool:
        return not self.rings and not self.circles

    @classmethod
    def from_ring(cls, ring: Sequence[Sequence]) -> 'SearchArea':
        return cls(rings=[[GeoPoint(p[0], p[1]) for p in ring]])

    @classmethod
    def from_geojson(cls, obj: Any, point_radius_m: float = 2000.0) -> Optional['SearchArea']:
        """
        Build a search area from what buyers have stored over time.

        Accepts a bare geometry, a Feature, a FeatureCollection, a circle
        ``{"center": {"lat", "lng"}, "radius": meters}`` or a plain list of
        ``[lng, lat]`` pairs. Returns None when nothing usable is found.
        """
        if isinstance(obj, SearchArea):
            return obj

        if isinstance(obj, str):
            try:
                obj = json.loads(obj)
            except json.JSONDecodeError:
                logger.debug("Search area is not valid JSON")
                return None

        area = cls()

        if isinstance(obj, (list, tuple)):
            ring = _to_ring(obj)
            if ring is None:
                return None
            area.rings.append(ring)
            return area

        if not isinstance(obj, dict):
            return None

        if obj.get('type') == 'FeatureCollection':
            for feature in obj.get('features') or []:
                if isinstance(feature, dict):
                    area._add_geometry(feature.get('geometry'), point_radius_m)
        elif obj.get('type') == 'Feature':
            area._add_geometry(obj.get('geometry'), point_radius_m)
        elif 'center' in obj and 'radius' in obj:
            center = obj.get('center') or {}
            radius = obj.get('radius')
            if isinstance(center, dict) and _is_number(radius):
                point = _to_point([center.get('lng'), center.get('lat')])
                if point is not None:
                    area.circles.append((point, float(radius)))
        else:
            area._add_geometry(obj, point_radius_m)

        if area.is_empty:
            return None
        return area

    def _add_geometry(self, geometry: Any, point_radius_m: float) -> None:
        parsed = parse_geometry(geometry)
        if isinstance(parsed, GeoPoint):
            self.circles.append((parsed, point_radius_m))
        elif parsed is not None:
            self.rings.append(parsed)
