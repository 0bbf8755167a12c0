"""
casamatch Core Package

Business logic:
- Geo math
- Address normalization
- Agency classification
- Buyer-property matching
- Property deduplication and listing clusters
"""

from casamatch.core.exceptions import CasamatchError, ConfigError, InvalidCoordinateError
from casamatch.core.geo import GeoPoint, haversine_distance, point_in_polygon
from casamatch.core.address_normalizer import AddressNormalizer
from casamatch.core.agency_classifier import compute_classification, normalize_agency_name
from casamatch.core.matching_engine import MatchingEngine, calculate_match_percentage
from casamatch.core.deduplication import PropertyDeduper, merge_agencies
from casamatch.core.listing_clusters import deduplicate_listings

__all__ = [
    "CasamatchError",
    "ConfigError",
    "InvalidCoordinateError",
    "GeoPoint",
    "haversine_distance",
    "point_in_polygon",
    "AddressNormalizer",
    "compute_classification",
    "normalize_agency_name",
    "MatchingEngine",
    "calculate_match_percentage",
    "PropertyDeduper",
    "merge_agencies",
    "deduplicate_listings",
]
