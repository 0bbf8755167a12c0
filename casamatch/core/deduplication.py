"""
Property Deduplication / Linking

Folds raw listings collected from different portals and agencies into one
canonical SharedProperty per physical address.

``PropertyDeduper.merge`` is pure: it returns the new state and leaves
persistence to the store. ``ingest`` wraps a find-merge-save cycle in the
store's transaction so concurrent imports of the same address cannot lose
an agency.
"""

import dataclasses
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from casamatch.adapters.base_adapter import (
    Agency,
    Classification,
    LinkState,
    Listing,
    SharedProperty,
    SharedPropertyStore,
)
from casamatch.core.address_normalizer import AddressNormalizer
from casamatch.core.agency_classifier import (
    classify_owner,
    compute_classification,
    normalize_agency_name,
)
from casamatch.utils.config import MatchingConfig

logger = logging.getLogger(__name__)


def _agency_key(agency: Agency) -> Tuple[str, str, str]:
    return (
        normalize_agency_name(agency.name),
        agency.link or '',
        agency.source_listing_id or '',
    )


def merge_agencies(existing: Iterable[Agency], incoming: Iterable[Agency]) -> List[Agency]:
    """
    Union of two agency lists.

    Entries are keyed by (normalized name, link, source listing id), so
    only exact repeats collapse. Later members of a name group take the
    display name first seen for that group; their own links stay.
    """
    merged: List[Agency] = []
    seen = set()
    display_names: Dict[str, str] = {}

    for agency in list(existing) + list(incoming):
        normalized = normalize_agency_name(agency.name)
        if normalized:
            display = display_names.setdefault(normalized, agency.name)
            if display != agency.name:
                agency = dataclasses.replace(agency, name=display)

        key = _agency_key(agency)
        if key in seen:
            continue
        seen.add(key)
        merged.append(agency)

    return merged


class PropertyDeduper:
    """
    Links incoming listings to SharedProperty records and keeps each
    record's agency set and classification current.
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        normalizer: Optional[AddressNormalizer] = None
    ):
        self.config = config or MatchingConfig()
        self.normalizer = normalizer or AddressNormalizer(self.config)

    def agency_for(self, listing: Listing) -> Agency:
        """Agency entry a listing contributes; private sellers get a marker name."""
        name = listing.agency_name
        if not name:
            owner = classify_owner(description=listing.description, title=listing.title)
            name = owner.display_name
            logger.debug(f"Listing {listing.id} has no agency name, classified as {owner.owner_type} ({owner.reasoning})")

        return Agency(
            name=name.strip(),
            link=listing.link or None,
            source_listing_id=listing.source_listing_id,
        )

    def classify(self, agencies: Iterable[Agency]) -> Classification:
        return compute_classification([a.name for a in agencies], self.config)

    def find_shared_property(
        self,
        listing: Listing,
        candidates: Iterable[SharedProperty]
    ) -> Optional[SharedProperty]:
        """
        Existing record for the listing's address, if any.

        An exact address key wins, then the record already holding the
        listing's source id, then the first record the address normalizer
        considers the same property.
        """
        candidates = list(candidates)
        key = self.normalizer.address_key(listing.address)

        for shared in candidates:
            if key and self.normalizer.address_key(shared.address) == key:
                return shared

        if listing.source_listing_id:
            for shared in candidates:
                if listing.source_listing_id in shared.source_listing_ids:
                    return shared

        text = ' '.join(filter(None, [listing.address, listing.city]))
        for shared in candidates:
            if self.normalizer.is_same_property(text, shared.as_property()):
                return shared

        return None

    def merge(self, existing: Optional[SharedProperty], listing: Listing) -> SharedProperty:
        """
        New state of the record after seeing ``listing``.

        Creates the record on first sighting. Re-applying a listing that
        is already merged returns ``existing`` untouched.
        """
        agency = self.agency_for(listing)

        if existing is None:
            agencies = [agency]
            return SharedProperty(
                id=None,
                address=listing.address,
                city=listing.city,
                size=listing.size,
                price=listing.price,
                type=listing.type,
                coordinates=listing.coordinates,
                agencies=agencies,
                classification=self.classify(agencies),
                link_state=LinkState.LINKED,
            )

        agencies = merge_agencies(existing.agencies, [agency])
        if agencies == existing.agencies:
            return existing

        return dataclasses.replace(
            existing,
            size=existing.size or listing.size,
            price=existing.price or listing.price,
            type=existing.type or listing.type,
            city=existing.city or listing.city,
            coordinates=existing.coordinates or listing.coordinates,
            agencies=agencies,
            classification=self.classify(agencies),
            link_state=LinkState.RELINKED,
        )

    def ingest(self, listing: Listing, store: SharedPropertyStore) -> SharedProperty:
        """Find, merge and save in one store transaction."""
        with store.transaction():
            existing = self.find_shared_property(listing, store.list_shared_properties())
            updated = self.merge(existing, listing)
            if updated is existing:
                return existing

            saved = store.save_shared_property(updated)

        if existing is None:
            logger.info(f"Created shared property {saved.id} for {saved.address}")
        else:
            logger.info(
                f"Updated agencies for {saved.address} "
                f"({len(existing.agencies)} -> {len(saved.agencies)}, {saved.classification.value})"
            )
        return saved


def build_shared_properties(
    listings: Iterable[Listing],
    deduper: Optional[PropertyDeduper] = None
) -> List[SharedProperty]:
    """Replay a batch of listings in memory, one record per property."""
    deduper = deduper or PropertyDeduper()
    records: List[SharedProperty] = []

    for listing in listings:
        existing = deduper.find_shared_property(listing, records)
        updated = deduper.merge(existing, listing)
        if existing is None:
            records.append(updated)
        elif updated is not existing:
            records = [updated if r is existing else r for r in records]

    return records
