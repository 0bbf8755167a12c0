"""
casamatch Matching Engine

Buyer-property matching based on a buyer's stated requirements.

The score only weighs criteria the buyer actually set. Search-area
containment is a separate hard gate applied before scoring, so the score
formula is the same whether or not spatial filtering runs.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from casamatch.adapters.base_adapter import BuyerCriteria, MatchResult, Property
from casamatch.utils.config import MatchingConfig

logger = logging.getLogger(__name__)

PROPERTY_TYPE_SYNONYMS = {
    'appartamento': 'apartment',
    'apartment': 'apartment',
    'monolocale': 'apartment',
    'attico': 'penthouse',
    'penthouse': 'penthouse',
    'villa': 'villa',
    'loft': 'loft',
}


@dataclass(frozen=True)
class MatchWeights:
    """Points per criterion; only criteria the buyer set count."""
    size: int = 30
    price: int = 40
    property_type: int = 15
    bedrooms: int = 10
    bathrooms: int = 5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_property_type(value: Optional[str]) -> str:
    """Map Italian/English synonyms onto one type tag."""
    if not value:
        return ''
    normalized = value.lower().strip()
    return PROPERTY_TYPE_SYNONYMS.get(normalized, normalized)


def is_within_search_area(property: Property, criteria: BuyerCriteria) -> bool:
    """
    Containment gate.

    No search area means no spatial constraint. A buyer with an area
    never matches a property without coordinates.
    """
    if criteria.search_area is None:
        return True
    if property.coordinates is None:
        logger.debug(f"Property {property.id} has no coordinates; buyer {criteria.client_id} requires a search area")
        return False
    return criteria.search_area.contains(property.coordinates)


class MatchingEngine:
    """
    Scores properties against buyer criteria and ranks candidates.
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        weights: Optional[MatchWeights] = None
    ):
        self.config = config or MatchingConfig()
        self.weights = weights or MatchWeights()

    def score(self, property: Property, criteria: BuyerCriteria) -> int:
        """
        0-100 fit of ``property`` for ``criteria``.

        Returns 0 when the buyer set no scored criterion at all.
        """
        match_points = 0
        total_points = 0

        if criteria.min_size:
            total_points += self.weights.size
            match_points += self._score_size(property.size, criteria.min_size)

        if criteria.max_price:
            total_points += self.weights.price
            match_points += self._score_price(property.price, criteria.max_price)

        if criteria.property_type:
            total_points += self.weights.property_type
            if property.type == criteria.property_type:
                match_points += self.weights.property_type

        if criteria.bedrooms and property.bedrooms:
            total_points += self.weights.bedrooms
            if property.bedrooms >= criteria.bedrooms:
                match_points += self.weights.bedrooms

        if criteria.bathrooms and property.bathrooms:
            total_points += self.weights.bathrooms
            if property.bathrooms >= criteria.bathrooms:
                match_points += self.weights.bathrooms

        if total_points == 0:
            return 0

        score = round_half_up(100 * match_points / total_points)
        return max(0, min(100, score))

    def _score_size(self, size: Optional[float], min_size: float) -> int:
        if size is not None and size >= min_size:
            return self.weights.size
        return 0

    def _score_price(self, price: Optional[float], max_price: float) -> int:
        """Full points within budget, tapering to 0 at the overage tolerance."""
        if price is None:
            return 0
        if price <= max_price:
            return self.weights.price

        overage = (price - max_price) / max_price
        tolerance = self.config.price_overage_tolerance
        if overage <= tolerance:
            return math.floor(self.weights.price * (1 - overage / tolerance))
        return 0

    def passes_tolerance_gate(self, property: Property, criteria: BuyerCriteria) -> bool:
        """
        Legacy candidate filter applied before scoring.

        Type must match after synonym mapping, size may be up to
        ``size_tolerance`` below the minimum, price up to
        ``price_tolerance`` above the maximum.
        """
        if criteria.property_type:
            wanted = normalize_property_type(criteria.property_type)
            if wanted and normalize_property_type(property.type) != wanted:
                logger.debug(
                    f"Property {property.id} type '{property.type}' doesn't match "
                    f"'{criteria.property_type}' - REJECTED"
                )
                return False

        if criteria.min_size and property.size:
            min_acceptable = criteria.min_size * (1 - self.config.size_tolerance)
            if property.size < min_acceptable:
                logger.debug(
                    f"Property {property.id} size {property.size} below {min_acceptable:.0f} - REJECTED"
                )
                return False

        if criteria.max_price and property.price:
            max_acceptable = criteria.max_price * (1 + self.config.price_tolerance)
            if property.price > max_acceptable:
                logger.debug(
                    f"Property {property.id} price {property.price} exceeds {max_acceptable:.0f} - REJECTED"
                )
                return False

        return True

    def is_candidate(self, property: Property, criteria: BuyerCriteria) -> bool:
        """Containment gate, then (if enabled) the tolerance gate."""
        if not is_within_search_area(property, criteria):
            return False
        if self.config.apply_tolerance_gate and not self.passes_tolerance_gate(property, criteria):
            return False
        return True

    def find_matches_for_property(
        self,
        property: Property,
        buyers: Iterable[BuyerCriteria],
        min_score: Optional[int] = None
    ) -> List[MatchResult]:
        """
        Rank buyers for one property.

        Args:
            property: The property to place
            buyers: Candidate buyers' criteria
            min_score: Minimum match score (0-100), default from config

        Returns:
            List of MatchResult sorted by score
        """
        threshold = self.config.min_score if min_score is None else min_score
        matches = []

        for criteria in buyers:
            if not self.is_candidate(property, criteria):
                continue
            score = self.score(property, criteria)
            if score >= threshold:
                matches.append(MatchResult(property.id, criteria.client_id, score))

        matches.sort(key=lambda m: (-m.score, str(m.client_id)))
        logger.info(f"Property {property.id}: {len(matches)} buyers scored >= {threshold}")
        return matches

    def find_matches_for_buyer(
        self,
        criteria: BuyerCriteria,
        properties: Iterable[Property],
        min_score: Optional[int] = None,
        max_results: Optional[int] = None
    ) -> List[MatchResult]:
        """
        Rank properties for one buyer.

        Args:
            criteria: The buyer's criteria
            properties: Candidate properties
            min_score: Minimum match score (0-100), default from config
            max_results: Maximum matches to return

        Returns:
            List of MatchResult sorted by score
        """
        threshold = self.config.min_score if min_score is None else min_score
        matches = []

        for prop in properties:
            if not self.is_candidate(prop, criteria):
                continue
            score = self.score(prop, criteria)
            if score >= threshold:
                matches.append(MatchResult(prop.id, criteria.client_id, score))

        matches.sort(key=lambda m: (-m.score, str(m.property_id)))
        if max_results is not None:
            matches = matches[:max_results]

        logger.info(f"Buyer {criteria.client_id}: {len(matches)} properties scored >= {threshold}")
        return matches


def calculate_match_percentage(
    property: Property,
    criteria: BuyerCriteria,
    config: Optional[MatchingConfig] = None
) -> int:
    """0-100 score of a property against a buyer's criteria."""
    return MatchingEngine(config).score(property, criteria)
