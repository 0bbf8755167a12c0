"""
casamatch Adapters Package

Value types exchanged with external collaborators and the adapters
around them:
- GeoJSON search areas and property locations
- SharedProperty storage (abstract interface and in-memory store)
"""

from casamatch.adapters.base_adapter import (
    SharedPropertyStore,
    Property,
    BuyerCriteria,
    Agency,
    SharedProperty,
    Listing,
    MatchResult,
    Classification,
    LinkState,
)
from casamatch.adapters.geojson_adapter import SearchArea, parse_geometry
from casamatch.adapters.memory_store import InMemorySharedPropertyStore

__all__ = [
    "SharedPropertyStore",
    "Property",
    "BuyerCriteria",
    "Agency",
    "SharedProperty",
    "Listing",
    "MatchResult",
    "Classification",
    "LinkState",
    "SearchArea",
    "parse_geometry",
    "InMemorySharedPropertyStore",
]
