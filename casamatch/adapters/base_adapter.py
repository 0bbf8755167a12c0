"""
casamatch Base Adapter Interfaces

Canonical value types exchanged with the storage and messaging
collaborators, and the abstract store interface the deduper writes
through. The engine never talks to a database directly.
"""

import json
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from casamatch.adapters.geojson_adapter import SearchArea, parse_geometry
from casamatch.core.geo import GeoPoint


# ============================================
# ENUMS
# ============================================

class Classification(Enum):
    """How a deduplicated property is represented on the market."""
    PRIVATE = 'private'
    SINGLE_AGENCY = 'single-agency'
    MULTIAGENCY = 'multiagency'


class LinkState(Enum):
    """Link lifecycle of a SharedProperty address key."""
    UNLINKED = 'unlinked'
    LINKED = 'linked'      # created from its first listing
    RELINKED = 'relinked'  # at least one later listing merged in


# ============================================
# DATA CLASSES (Canonical Representations)
# ============================================

def _pick(data: Dict[str, Any], *keys: str) -> Any:
    """First non-None value among snake_case / camelCase aliases."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _count(value: Any) -> Optional[int]:
    """Room counts as int; "3" and 3.0 become 3, anything else None."""
    number = _number(value)
    if number is None:
        return None
    try:
        return int(number)
    except (OverflowError, ValueError):
        return None


def extract_coordinates(data: Dict[str, Any]) -> Optional[GeoPoint]:
    """
    Pull coordinates out of a property record.

    Supports a ``location`` object ``{"lat", "lng"}`` (optionally JSON
    encoded), a GeoJSON Point under ``location`` / ``geometry``, and flat
    ``latitude`` / ``longitude`` fields. Returns None when nothing usable
    is found.
    """
    loc = _pick(data, 'location', 'geometry')
    if isinstance(loc, str):
        try:
            loc = json.loads(loc)
        except json.JSONDecodeError:
            loc = None

    if isinstance(loc, dict):
        if 'type' in loc:
            point = parse_geometry(loc)
            if isinstance(point, GeoPoint):
                return point
        lat, lng = _number(loc.get('lat')), _number(loc.get('lng'))
        if lat is not None and lng is not None:
            return GeoPoint.from_lat_lng(lat, lng)

    lat, lng = _number(data.get('latitude')), _number(data.get('longitude'))
    if lat is not None and lng is not None:
        return GeoPoint.from_lat_lng(lat, lng)

    return None


@dataclass
class Property:
    """Canonical property representation"""
    id: Optional[str]
    address: str
    city: str = ""
    price: Optional[float] = None
    size: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    coordinates: Optional[GeoPoint] = None
    type: Optional[str] = None
    source_listing_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Property':
        source_id = _pick(data, 'source_listing_id', 'sourceListingId', 'immobiliareItId')
        return cls(
            id=data.get('id'),
            address=data.get('address') or '',
            city=data.get('city') or '',
            price=_number(data.get('price')),
            size=_number(data.get('size')),
            bedrooms=_count(_pick(data, 'bedrooms', 'rooms')),
            bathrooms=_count(data.get('bathrooms')),
            coordinates=extract_coordinates(data),
            type=_pick(data, 'type', 'property_type', 'propertyType'),
            source_listing_id=str(source_id) if source_id is not None else None,
        )


@dataclass
class BuyerCriteria:
    """
    A buyer's stated requirements.

    Every field is optional; an unset field is not a constraint.
    """
    client_id: Optional[str] = None
    min_size: Optional[float] = None
    max_price: Optional[float] = None
    property_type: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    search_area: Optional[SearchArea] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], point_radius_m: float = 2000.0) -> 'BuyerCriteria':
        area = _pick(data, 'search_area', 'searchArea')
        return cls(
            client_id=_pick(data, 'client_id', 'clientId', 'id'),
            min_size=_number(_pick(data, 'min_size', 'minSize')),
            max_price=_number(_pick(data, 'max_price', 'maxPrice')),
            property_type=_pick(data, 'property_type', 'propertyType'),
            bedrooms=_count(_pick(data, 'bedrooms', 'rooms')),
            bathrooms=_count(data.get('bathrooms')),
            search_area=SearchArea.from_geojson(area, point_radius_m) if area else None,
        )


@dataclass(frozen=True)
class Agency:
    """One agency (or private seller) advertising a property"""
    name: str
    link: Optional[str] = None
    source_listing_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'Agency':
        # Legacy rows stored bare agency names
        if isinstance(data, str):
            return cls(name=data)
        source_id = _pick(data, 'source_listing_id', 'sourcePropertyId')
        return cls(
            name=data.get('name') or '',
            link=data.get('link') or None,
            source_listing_id=str(source_id) if source_id is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'link': self.link,
            'source_listing_id': self.source_listing_id,
        }


@dataclass
class SharedProperty:
    """Canonical deduplicated record aggregating every known agency listing"""
    id: Optional[str]
    address: str
    city: str = ""
    size: Optional[float] = None
    price: Optional[float] = None
    type: Optional[str] = None
    coordinates: Optional[GeoPoint] = None
    agencies: List[Agency] = field(default_factory=list)
    classification: Classification = Classification.PRIVATE
    link_state: LinkState = LinkState.UNLINKED

    @property
    def agency_names(self) -> List[str]:
        return [a.name for a in self.agencies if a.name]

    @property
    def source_listing_ids(self) -> List[str]:
        return [a.source_listing_id for a in self.agencies if a.source_listing_id]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SharedProperty':
        classification = data.get('classification')
        link_state = _pick(data, 'link_state', 'linkState')
        return cls(
            id=data.get('id'),
            address=data.get('address') or '',
            city=data.get('city') or '',
            size=_number(data.get('size')),
            price=_number(data.get('price')),
            type=_pick(data, 'type', 'property_type', 'propertyType'),
            coordinates=extract_coordinates(data),
            agencies=[Agency.from_dict(a) for a in data.get('agencies') or []],
            classification=Classification(classification) if classification else Classification.PRIVATE,
            link_state=LinkState(link_state) if link_state else LinkState.UNLINKED,
        )

    def as_property(self) -> Property:
        """View for scoring against buyer criteria."""
        return Property(
            id=self.id,
            address=self.address,
            city=self.city,
            price=self.price,
            size=self.size,
            coordinates=self.coordinates,
            type=self.type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'address': self.address,
            'city': self.city,
            'size': self.size,
            'price': self.price,
            'type': self.type,
            'latitude': self.coordinates.latitude if self.coordinates else None,
            'longitude': self.coordinates.longitude if self.coordinates else None,
            'agencies': [a.to_dict() for a in self.agencies],
            'classification': self.classification.value,
            'link_state': self.link_state.value,
        }


@dataclass
class Listing:
    """One raw listing as scraped or imported from a portal"""
    id: Optional[str]
    address: str
    city: str = ""
    price: Optional[float] = None
    size: Optional[float] = None
    type: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor: Optional[str] = None
    coordinates: Optional[GeoPoint] = None
    agency_name: Optional[str] = None
    link: Optional[str] = None
    source_listing_id: Optional[str] = None
    description: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Listing':
        source_id = _pick(data, 'source_listing_id', 'sourceListingId', 'immobiliareItId')
        floor = data.get('floor')
        return cls(
            id=data.get('id'),
            address=data.get('address') or '',
            city=data.get('city') or '',
            price=_number(data.get('price')),
            size=_number(data.get('size')),
            type=_pick(data, 'type', 'property_type', 'propertyType'),
            bedrooms=_count(_pick(data, 'bedrooms', 'rooms')),
            bathrooms=_count(data.get('bathrooms')),
            floor=str(floor) if floor is not None else None,
            coordinates=extract_coordinates(data),
            agency_name=_pick(data, 'agency_name', 'agencyName', 'agency', 'portal'),
            link=_pick(data, 'link', 'external_link', 'externalLink', 'url'),
            source_listing_id=str(source_id) if source_id is not None else None,
            description=data.get('description'),
            title=data.get('title'),
        )


@dataclass(frozen=True)
class MatchResult:
    """Score of one property for one buyer"""
    property_id: Optional[str]
    client_id: Optional[str]
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'property_id': self.property_id,
            'client_id': self.client_id,
            'score': self.score,
        }


# ============================================
# ABSTRACT ADAPTER INTERFACES
# ============================================

class SharedPropertyStore(ABC):
    """
    Abstract interface for the SharedProperty storage collaborator.

    Implementations must serialize read-modify-write cycles on the same
    record: ``transaction()`` wraps the lookup, the merge and the save.
    """

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold exclusive access for one find-merge-save cycle."""
        yield

    @abstractmethod
    def list_shared_properties(self) -> List[SharedProperty]:
        """
        Return every known SharedProperty.

        Returns:
            List of SharedProperty objects
        """
        pass

    @abstractmethod
    def get_shared_property(self, shared_id: str) -> Optional[SharedProperty]:
        """
        Fetch a single record.

        Returns:
            SharedProperty or None if not found
        """
        pass

    @abstractmethod
    def save_shared_property(self, shared: SharedProperty) -> SharedProperty:
        """
        Insert or replace a record.

        Returns:
            The stored record, with ``id`` assigned on insert
        """
        pass
