"""
Tests for address parsing, listing id extraction and property recognition.
"""

import pytest

from casamatch.adapters.base_adapter import Property
from casamatch.core.address_normalizer import (
    AddressComponents,
    AddressNormalizer,
    extract_components,
    extract_listing_id,
    is_same_property,
)
from casamatch.utils.config import MatchingConfig


@pytest.fixture
def normalizer():
    return AddressNormalizer()


@pytest.fixture
def stored_property():
    return Property(id="p1", address="Via Roma 45, Milano", city="Milano", source_listing_id="119032725")


class TestExtractComponents:

    def test_full_address(self):
        parts = extract_components("Via Roma, 45, Milano")
        assert parts == AddressComponents(street="via roma", number="45", city="milano")
        assert parts.present() == 3

    def test_viale_preferred_over_via(self, normalizer):
        parts = normalizer.extract_components("Viale  Monza 12 Milano")
        assert parts.street == "viale monza"
        assert parts.number == "12"

    def test_piazza_and_corso(self, normalizer):
        assert normalizer.extract_components("Piazza Duomo 1").street == "piazza duomo"
        assert normalizer.extract_components("corso Buenos Aires, 3").street == "corso buenos aires"

    def test_keyword_inside_word_is_ignored(self, normalizer):
        assert normalizer.extract_components("inviato 12").street is None

    def test_empty(self, normalizer):
        assert normalizer.extract_components("") == AddressComponents()
        assert normalizer.extract_components(None).present() == 0

    def test_city_inside_street_name_is_not_the_city(self, normalizer):
        assert normalizer.extract_components("Via Roma 10, Torino") == AddressComponents(
            street="via roma", number="10", city="torino",
        )
        assert normalizer.extract_components("Corso Milano 4").city is None

    def test_last_city_wins(self, normalizer):
        assert normalizer.extract_components("Milano, trasferito a Torino").city == "torino"

    def test_cities_are_configurable(self):
        normalizer = AddressNormalizer(MatchingConfig(known_cities=("bergamo",)))
        assert normalizer.extract_components("Via Tasso 8, Bergamo").city == "bergamo"
        assert normalizer.extract_components("Via Roma 45, Milano").city is None


class TestExtractListingId:

    def test_from_url(self):
        assert extract_listing_id("https://www.immobiliare.it/annunci/119032725/") == "119032725"

    def test_from_url_without_trailing_slash(self):
        assert extract_listing_id("vedi immobiliare.it/annunci/98765432") == "98765432"

    @pytest.mark.parametrize("text", [
        "Richiesta info annuncio 119032725",
        "Codice: 119032725",
        "ID 119032725 - trilocale",
    ])
    def test_from_keyword(self, text):
        assert extract_listing_id(text) == "119032725"

    @pytest.mark.parametrize("text", [
        "annuncio 1234567",
        "codice 1234567890",
        "telefono 3331234567",
        "",
        None,
    ])
    def test_no_id(self, text):
        assert extract_listing_id(text) is None


class TestIsSameProperty:

    def test_listing_id_short_circuits(self, stored_property):
        assert is_same_property("Richiesta annuncio 119032725", stored_property) is True

    def test_street_and_number(self, stored_property):
        assert is_same_property("Visita per Via Roma 45", stored_property) is True

    def test_street_and_city(self, stored_property):
        assert is_same_property("Via Roma, Milano", stored_property) is True

    def test_single_component_is_not_enough(self, stored_property):
        assert is_same_property("Appartamento a Milano", stored_property) is False

    def test_different_street(self, stored_property):
        assert is_same_property("Via Verdi 7, Torino", stored_property) is False

    def test_other_listing_id_falls_back_to_components(self, stored_property):
        assert is_same_property("annuncio 55555555 in Via Roma 45", stored_property) is False

    def test_same_street_other_city(self, stored_property):
        assert is_same_property("Via Roma 10, Torino", stored_property) is False
        assert is_same_property("Via Roma 45, Torino", Property(id="p", address="Via Roma 10, Milano")) is False

    def test_whole_stored_address_in_text(self):
        stored = Property(id="p", address="Residenza Le Betulle")
        assert is_same_property("Info su  residenza le betulle, sabato", stored) is True
        assert is_same_property("Via Roma 45, Torino", Property(id="p", address="Via Roma 4")) is False

    def test_property_without_address(self):
        assert is_same_property("Via Roma 45, Milano", Property(id="p", address="")) is False


class TestKeysAndGeneric:

    def test_address_key_ignores_punctuation_and_spacing(self, normalizer):
        key = normalizer.address_key("Via Roma, 45, Milano")
        assert key == "via roma 45 milano"
        assert normalizer.address_key("  VIA ROMA 45   Milano ") == key
        assert normalizer.address_key("Via Roma. 45 Milano") == key

    @pytest.mark.parametrize("address", ["", None, "Milano", "Italia", "Via Roma", "V 1"])
    def test_generic(self, normalizer, address):
        assert normalizer.is_generic_address(address) is True

    def test_specific(self, normalizer):
        assert normalizer.is_generic_address("Via Roma 45") is False
