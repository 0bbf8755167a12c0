"""
pytest configuration and fixtures for casamatch tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from casamatch.adapters.base_adapter import BuyerCriteria, Listing, Property
from casamatch.adapters.geojson_adapter import SearchArea
from casamatch.core.geo import GeoPoint
from casamatch.utils.config import MatchingConfig


# Small square around central Milan (lng, lat)
MILAN_RING = [
    [9.17, 45.45],
    [9.21, 45.45],
    [9.21, 45.48],
    [9.17, 45.48],
    [9.17, 45.45],
]


@pytest.fixture
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def matching_config():
    """Default matching configuration."""
    return MatchingConfig()


@pytest.fixture
def milan_ring():
    return [list(p) for p in MILAN_RING]


@pytest.fixture
def sample_property():
    """Sample property inside the Milan square."""
    return Property(
        id="prop-001",
        address="Via Roma 45",
        city="Milano",
        price=300000,
        size=90,
        bedrooms=3,
        bathrooms=2,
        coordinates=GeoPoint(longitude=9.19, latitude=45.4642),
        type="apartment",
        source_listing_id="119032725",
    )


@pytest.fixture
def sample_buyer(milan_ring):
    """Buyer whose criteria the sample property fully satisfies."""
    return BuyerCriteria(
        client_id="client-001",
        min_size=80,
        max_price=320000,
        property_type="apartment",
        bedrooms=2,
        bathrooms=1,
        search_area=SearchArea.from_ring(milan_ring),
    )


@pytest.fixture
def sample_listings():
    """Two agencies and a private seller advertising the same flat."""
    return [
        Listing(
            id="l-1",
            address="Via Roma, 45, Milano",
            city="Milano",
            price=300000,
            size=90,
            agency_name="Agenzia Garibaldi",
            link="https://www.immobiliare.it/annunci/119032725/",
            source_listing_id="119032725",
        ),
        Listing(
            id="l-2",
            address="Via Roma 45, Milano",
            city="Milano",
            price=305000,
            size=92,
            agency_name="RE/MAX Centro",
            source_listing_id="88112233",
        ),
        Listing(
            id="l-3",
            address="Via Roma 45 Milano",
            city="Milano",
            price=295000,
            size=90,
            agency_name="Privato",
        ),
    ]


@pytest.fixture
def env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("CASAMATCH_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("CASAMATCH_MIN_SCORE", "60")
    monkeypatch.setenv("CASAMATCH_KNOWN_CITIES", "Milano, Bergamo")
