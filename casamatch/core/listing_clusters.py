"""
Listing Clusters

Batch search for listings that describe the same property when their
addresses are written differently on each portal. Pairs are scored on
distance (or fuzzy address similarity), price, size, floor and bedrooms;
pairs above the threshold are joined into clusters.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from casamatch.adapters.base_adapter import Listing
from casamatch.core.address_normalizer import AddressNormalizer
from casamatch.core.geo import haversine_distance
from casamatch.utils.config import MatchingConfig

logger = logging.getLogger(__name__)

STREET_ABBREVIATIONS = [
    (r'\bviale\s+', 'vle '),
    (r'\bvia\s+', 'v '),
    (r'\bcorso\s+', 'cso '),
    (r'\bpiazza\s+', 'pza '),
]


@dataclass
class PropertyCluster:
    listings: List[Listing]
    match_score: float = 0.0
    match_reasons: List[str] = field(default_factory=list)
    exclusivity_hint: bool = False

    @property
    def cluster_size(self) -> int:
        return len(self.listings)

    @property
    def is_multiagency(self) -> bool:
        return self.cluster_size > 1


@dataclass
class DeduplicationResult:
    total_listings: int
    clusters: List[PropertyCluster]

    @property
    def clusters_found(self) -> int:
        return len(self.clusters)

    @property
    def multiagency_listings(self) -> int:
        return sum(c.cluster_size for c in self.clusters if c.is_multiagency)

    @property
    def exclusive_listings(self) -> int:
        return sum(c.cluster_size for c in self.clusters if c.exclusivity_hint)

    def to_dict(self) -> Dict:
        return {
            'total_listings': self.total_listings,
            'clusters_found': self.clusters_found,
            'multiagency_listings': self.multiagency_listings,
            'exclusive_listings': self.exclusive_listings,
            'clusters': [
                {
                    'listing_ids': [l.id for l in c.listings],
                    'match_score': round(c.match_score, 1),
                    'match_reasons': c.match_reasons,
                    'exclusivity_hint': c.exclusivity_hint,
                }
                for c in self.clusters
            ],
        }


def abbreviate_address(address: str) -> str:
    """Lowercase, shorten street types and drop punctuation before fuzzy comparison."""
    text = (address or '').lower()
    for pattern, replacement in STREET_ABBREVIATIONS:
        text = re.sub(pattern, replacement, text)
    text = re.sub(r'[,.]', '', text)
    return re.sub(r'\s+', ' ', text).strip()


class ListingClusterer:
    """Pairwise similarity and clustering of raw listings."""

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        normalizer: Optional[AddressNormalizer] = None
    ):
        self.config = config or MatchingConfig()
        self.normalizer = normalizer or AddressNormalizer(self.config)

    def similarity(self, a: Listing, b: Listing) -> Tuple[float, List[str]]:
        """
        Similarity 0-100 of two listings and the reasons behind it.

        Listings without a specific street address never match.
        """
        if self.normalizer.is_generic_address(a.address) or self.normalizer.is_generic_address(b.address):
            return 0.0, ['Generic or missing address']

        reasons: List[str] = []
        total = 0.0
        max_score = 0.0

        if a.coordinates and b.coordinates:
            max_score += 40
            distance = haversine_distance(a.coordinates, b.coordinates)
            limit = self.config.cluster_distance_m
            if distance <= limit:
                total += max(0.0, 40 * (1 - distance / limit))
                reasons.append(f'Distance {round(distance)}m')
        else:
            max_score += 40
            ratio = fuzz.ratio(abbreviate_address(a.address), abbreviate_address(b.address))
            if ratio > self.config.address_similarity_threshold:
                total += 40 * ratio / 100
                reasons.append(f'Similar address ({ratio:.0f}%)')

        if a.price and b.price:
            max_score += 20
            diff = abs(a.price - b.price) / ((a.price + b.price) / 2)
            if diff < 0.05:
                total += 20
                reasons.append(f'Very similar price (diff {diff * 100:.1f}%)')
            elif diff < 0.10:
                total += 15
                reasons.append(f'Similar price (diff {diff * 100:.1f}%)')

        if a.size and b.size:
            max_score += 20
            diff = abs(a.size - b.size)
            if diff <= 5:
                total += 20
                reasons.append(f'Same size ({a.size:g} vs {b.size:g} m2)')
            elif diff <= 10:
                total += 15
                reasons.append(f'Similar size ({a.size:g} vs {b.size:g} m2)')

        if a.floor is not None and b.floor is not None:
            max_score += 10
            if a.floor == b.floor:
                total += 10
                reasons.append(f'Same floor ({a.floor})')

        if a.bedrooms and b.bedrooms:
            max_score += 10
            if a.bedrooms == b.bedrooms:
                total += 10
                reasons.append(f'Same bedrooms ({a.bedrooms})')

        score = total / max_score * 100 if max_score else 0.0
        return score, reasons

    def find_clusters(self, listings: Sequence[Listing]) -> List[PropertyCluster]:
        """
        Group duplicate listings.

        Multi-listing clusters come first in discovery order, followed by
        singletons flagged as possible exclusives.
        """
        cluster_of: Dict[int, int] = {}
        clusters: Dict[int, List[int]] = {}
        next_cluster = 0

        for i in range(len(listings)):
            for j in range(i + 1, len(listings)):
                score, _ = self.similarity(listings[i], listings[j])
                if score < self.config.cluster_match_threshold:
                    continue

                logger.debug(f"Match: {listings[i].id} <-> {listings[j].id} (score {score:.0f}%)")
                ci, cj = cluster_of.get(i), cluster_of.get(j)

                if ci is not None and cj is not None:
                    if ci != cj:
                        for member in clusters.pop(cj):
                            clusters[ci].append(member)
                            cluster_of[member] = ci
                elif ci is not None:
                    clusters[ci].append(j)
                    cluster_of[j] = ci
                elif cj is not None:
                    clusters[cj].append(i)
                    cluster_of[i] = cj
                else:
                    clusters[next_cluster] = [i, j]
                    cluster_of[i] = cluster_of[j] = next_cluster
                    next_cluster += 1

        result: List[PropertyCluster] = []
        for members in clusters.values():
            members = sorted(members)
            group = [listings[m] for m in members]
            scores = []
            reasons: List[str] = []
            for x in range(len(group)):
                for y in range(x + 1, len(group)):
                    score, pair_reasons = self.similarity(group[x], group[y])
                    scores.append(score)
                    reasons.extend(r for r in pair_reasons if r not in reasons)
            result.append(PropertyCluster(
                listings=group,
                match_score=sum(scores) / len(scores) if scores else 0.0,
                match_reasons=reasons,
            ))

        for index, listing in enumerate(listings):
            if index in cluster_of:
                continue
            description = (listing.description or '').lower()
            if any(k in description for k in self.config.exclusivity_keywords):
                result.append(PropertyCluster(
                    listings=[listing],
                    exclusivity_hint=True,
                    match_reasons=['Exclusivity keyword in description'],
                ))

        return result


def deduplicate_listings(
    listings: Sequence[Listing],
    config: Optional[MatchingConfig] = None
) -> DeduplicationResult:
    """Cluster a batch of listings and summarize the outcome."""
    clusters = ListingClusterer(config).find_clusters(listings)
    result = DeduplicationResult(total_listings=len(listings), clusters=clusters)

    logger.info(
        f"Deduplicated {result.total_listings} listings: {result.clusters_found} clusters, "
        f"{result.multiagency_listings} multi-agency, {result.exclusive_listings} possibly exclusive"
    )
    return result
