"""
Tests for the buyer-property matching engine.

Covers:
- Weighted scoring over the criteria a buyer set
- Price partial credit and half-up rounding
- Search-area containment gate
- Legacy tolerance gate
- Ranking helpers
"""

import pytest

from casamatch.adapters.base_adapter import BuyerCriteria, Property
from casamatch.core.geo import GeoPoint
from casamatch.core.matching_engine import (
    MatchingEngine,
    calculate_match_percentage,
    is_within_search_area,
    normalize_property_type,
    round_half_up,
)
from casamatch.utils.config import MatchingConfig


@pytest.fixture
def engine():
    return MatchingEngine()


def make_property(**overrides):
    data = dict(id="p", address="Via Roma 1", city="Milano", price=300000, size=100, type="apartment")
    data.update(overrides)
    return Property(**data)


# =============================================================================
# Scoring
# =============================================================================

class TestScore:

    def test_full_match(self, engine, sample_property, sample_buyer):
        assert engine.score(sample_property, sample_buyer) == 100

    def test_no_criteria_scores_zero(self, engine, sample_property):
        assert engine.score(sample_property, BuyerCriteria(client_id="c")) == 0

    def test_zero_values_are_unset(self, engine, sample_property):
        criteria = BuyerCriteria(client_id="c", min_size=0, max_price=0)
        assert engine.score(sample_property, criteria) == 0

    def test_price_within_budget(self, engine):
        criteria = BuyerCriteria(max_price=300000)
        assert engine.score(make_property(price=300000), criteria) == 100

    def test_price_five_percent_over_gets_half(self, engine):
        criteria = BuyerCriteria(max_price=300000)
        # overage 0.05 -> floor(40 * 0.5) = 20 of 40
        assert engine.score(make_property(price=315000), criteria) == 50

    def test_price_partial_credit_is_floored(self, engine):
        criteria = BuyerCriteria(max_price=100000)
        # overage 1/30 -> 40 * 0.667 = 26.67, floored to 26
        assert engine._score_price(103333, 100000) == 26
        assert engine.score(make_property(price=103333), criteria) == 65

    def test_price_beyond_tolerance_scores_zero(self, engine):
        criteria = BuyerCriteria(max_price=300000)
        assert engine.score(make_property(price=340000), criteria) == 0

    def test_missing_property_price(self, engine):
        criteria = BuyerCriteria(max_price=300000)
        assert engine.score(make_property(price=None), criteria) == 0

    def test_size_and_type_weights(self, engine):
        criteria = BuyerCriteria(min_size=120, property_type="apartment")
        # size fails (0/30), type matches (15/15) -> 15/45
        assert engine.score(make_property(size=100), criteria) == 33

    def test_type_compared_exactly_in_score(self, engine):
        criteria = BuyerCriteria(property_type="apartment")
        assert engine.score(make_property(type="villa"), criteria) == 0

    def test_bedrooms_only_counted_when_property_has_them(self, engine):
        criteria = BuyerCriteria(max_price=300000, bedrooms=3)
        assert engine.score(make_property(bedrooms=None), criteria) == 100
        # 40 / 50 = 80
        assert engine.score(make_property(bedrooms=2), criteria) == 80

    def test_bathrooms(self, engine):
        criteria = BuyerCriteria(max_price=300000, bathrooms=2)
        # 40 / 45 = 88.9
        assert engine.score(make_property(bathrooms=1), criteria) == 89

    def test_room_counts_from_json_strings(self, engine):
        property = Property.from_dict({"id": "p", "address": "Via Roma 1", "bedrooms": "3", "bathrooms": "2.0"})
        criteria = BuyerCriteria.from_dict({"bedrooms": 2, "bathrooms": "1"})

        assert (property.bedrooms, property.bathrooms) == (3, 2)
        assert criteria.bathrooms == 1
        assert engine.score(property, criteria) == 100

    @pytest.mark.parametrize("value", ["tre", "", [], True])
    def test_unparseable_room_counts_are_unset(self, engine, value):
        property = Property.from_dict({"id": "p", "address": "Via Roma 1", "rooms": value})
        assert property.bedrooms is None
        assert engine.score(property, BuyerCriteria(bedrooms=2)) == 0

    def test_score_is_bounded(self, engine, sample_property):
        for criteria in [
            BuyerCriteria(min_size=10_000),
            BuyerCriteria(max_price=1),
            BuyerCriteria(min_size=1, max_price=10**9, property_type="apartment"),
        ]:
            assert 0 <= engine.score(sample_property, criteria) <= 100

    def test_custom_overage_tolerance(self):
        engine = MatchingEngine(MatchingConfig(price_overage_tolerance=0.20))
        # overage 0.10 of 0.20 -> floor(40 * 0.5) = 20
        assert engine._score_price(110000, 100000) == 20

    def test_calculate_match_percentage(self, sample_property, sample_buyer):
        assert calculate_match_percentage(sample_property, sample_buyer) == 100


class TestRounding:

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (66.66, 67),
        (33.33, 33),
        (0.0, 0),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_normalize_property_type(self):
        assert normalize_property_type("Appartamento") == "apartment"
        assert normalize_property_type(" Attico ") == "penthouse"
        assert normalize_property_type("castello") == "castello"
        assert normalize_property_type(None) == ""


# =============================================================================
# Gates
# =============================================================================

class TestContainmentGate:

    def test_no_area_always_passes(self, sample_property):
        assert is_within_search_area(sample_property, BuyerCriteria()) is True

    def test_inside_area(self, sample_property, sample_buyer):
        assert is_within_search_area(sample_property, sample_buyer) is True

    def test_outside_area(self, sample_buyer):
        rome = make_property(coordinates=GeoPoint(12.49, 41.90))
        assert is_within_search_area(rome, sample_buyer) is False

    def test_property_without_coordinates_fails_when_area_set(self, sample_buyer):
        assert is_within_search_area(make_property(coordinates=None), sample_buyer) is False

    def test_perfect_score_outside_area_is_excluded(self, engine, sample_property, sample_buyer):
        outside = make_property(
            id="far", price=300000, size=90, bedrooms=3, bathrooms=2,
            coordinates=GeoPoint(12.49, 41.90),
        )
        assert engine.score(outside, sample_buyer) == 100
        results = engine.find_matches_for_buyer(sample_buyer, [outside, sample_property])
        assert [r.property_id for r in results] == [sample_property.id]


class TestToleranceGate:

    def test_type_synonyms_pass(self, engine):
        criteria = BuyerCriteria(property_type="appartamento")
        assert engine.passes_tolerance_gate(make_property(type="apartment"), criteria)

    def test_type_mismatch_rejected(self, engine):
        criteria = BuyerCriteria(property_type="villa")
        assert not engine.passes_tolerance_gate(make_property(type="apartment"), criteria)

    def test_size_tolerance(self, engine):
        criteria = BuyerCriteria(min_size=100)
        assert engine.passes_tolerance_gate(make_property(size=80), criteria)
        assert not engine.passes_tolerance_gate(make_property(size=79), criteria)

    def test_price_tolerance(self, engine):
        criteria = BuyerCriteria(max_price=100000)
        assert engine.passes_tolerance_gate(make_property(price=120000), criteria)
        assert not engine.passes_tolerance_gate(make_property(price=120001), criteria)

    def test_gate_can_be_disabled(self):
        engine = MatchingEngine(MatchingConfig(apply_tolerance_gate=False))
        criteria = BuyerCriteria(client_id="c", property_type="villa", max_price=300000)
        results = engine.find_matches_for_property(make_property(), [criteria], min_score=0)
        assert len(results) == 1


# =============================================================================
# Ranking
# =============================================================================

class TestRanking:

    def test_find_matches_for_property_sorted(self, engine, sample_property):
        buyers = [
            BuyerCriteria(client_id="b", max_price=290000),   # 3.4% over budget
            BuyerCriteria(client_id="a", max_price=400000),
            BuyerCriteria(client_id="c", max_price=350000),
        ]
        results = engine.find_matches_for_property(sample_property, buyers, min_score=0)
        assert [r.client_id for r in results] == ["a", "c", "b"]
        assert results[0].score == 100

    def test_min_score_from_config(self, sample_property):
        engine = MatchingEngine(MatchingConfig(min_score=90))
        buyers = [BuyerCriteria(client_id="low", max_price=290000)]
        assert engine.find_matches_for_property(sample_property, buyers) == []

    def test_max_results(self, engine):
        properties = [make_property(id=f"p{i}", price=300000 + i * 1000) for i in range(5)]
        criteria = BuyerCriteria(client_id="c", max_price=310000)
        results = engine.find_matches_for_buyer(criteria, properties, max_results=2)
        assert [r.property_id for r in results] == ["p0", "p1"]

    def test_result_to_dict(self, engine, sample_property, sample_buyer):
        result = engine.find_matches_for_buyer(sample_buyer, [sample_property])[0]
        assert result.to_dict() == {"property_id": "prop-001", "client_id": "client-001", "score": 100}
