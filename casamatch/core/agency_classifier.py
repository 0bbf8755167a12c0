"""
Agency Classifier

Normalizes agency names collected from different portals and derives how
a deduplicated property is represented: by a private seller, by a single
agency, or by several competing agencies.

Also carries the owner-type heuristics used on raw listings that come in
without an explicit agency name.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from casamatch.adapters.base_adapter import Classification
from casamatch.utils.config import MatchingConfig

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[\W_]+', re.UNICODE)

PRIVATE_KEYWORDS = [
    'vendita diretta',
    'no agenzie',
    'no agenzia',
    'senza agenzie',
    'privato vende',
    'proprietario vende',
    'particolare vende',
    'privat',
    'proprietari',
    'particolare',
    'owner',
    'propri',
]

AGENCY_KEYWORDS = [
    'agenzia',
    'immobiliare',
    'real estate',
    'gruppo',
    'consulenza',
    'services',
    'proponiamo',
    'disponiamo',
    'propone',
    'proposta',
]

PRIVATE_NAME_INDICATORS = ['privato', 'private', 'proprietario', 'owner', 'particolare']

PRIVATE_DISPLAY_NAME = 'Privato'


def normalize_agency_name(name: Optional[str]) -> str:
    """
    Comparable form of an agency name.

    trim, lowercase, NFD, drop diacritics, drop everything that is not a
    letter or digit. "RE/MAX", "re max" and " Re-Max " collapse together.
    """
    if not name or not isinstance(name, str):
        return ''

    decomposed = unicodedata.normalize('NFD', name.strip().lower())
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub('', stripped)


def is_private_marker(normalized: str, markers: Iterable[str] = MatchingConfig.private_markers) -> bool:
    """True when a normalized name contains a private-seller marker."""
    if not normalized:
        return False
    return any(marker in normalized for marker in markers)


def group_agency_names(names: Iterable[Optional[str]]) -> Dict[str, str]:
    """
    Group names by normalized form.

    Returns normalized -> first original spelling seen, in first-seen
    order. Names that normalize to nothing are dropped.
    """
    groups: Dict[str, str] = {}
    for name in names:
        normalized = normalize_agency_name(name)
        if normalized and normalized not in groups:
            groups[normalized] = name.strip()
    return groups


def compute_classification(
    agency_names: Iterable[Optional[str]],
    config: Optional[MatchingConfig] = None
) -> Classification:
    """
    Classify a property from the names of everyone advertising it.

    - no names: private
    - any private-seller marker: private, however many agencies also list it
    - two or more distinct agencies: multiagency
    - otherwise: single-agency
    """
    markers = (config or MatchingConfig()).private_markers
    groups = group_agency_names(agency_names)

    if not groups:
        return Classification.PRIVATE

    # NOTE: private dominates multiagency; kept from the legacy rules pending product sign-off
    agencies = [n for n in groups if not is_private_marker(n, markers)]
    if len(agencies) < len(groups):
        if len(agencies) >= 2:
            logger.debug(f"Private seller overrides {len(agencies)} agencies: {list(groups.values())}")
        return Classification.PRIVATE

    if len(groups) >= 2:
        return Classification.MULTIAGENCY

    return Classification.SINGLE_AGENCY


# ============================================
# OWNER TYPE (raw listings)
# ============================================

@dataclass(frozen=True)
class OwnerClassification:
    owner_type: str  # 'private' | 'agency'
    agency_name: Optional[str]
    confidence: str  # 'high' | 'medium' | 'low'
    reasoning: str

    @property
    def display_name(self) -> str:
        """Name to record on the SharedProperty agency list."""
        if self.owner_type == 'agency' and self.agency_name:
            return self.agency_name
        if self.owner_type == 'agency':
            return 'Agenzia sconosciuta'
        return PRIVATE_DISPLAY_NAME


def looks_like_agency_name(name: Optional[str]) -> bool:
    """Anything that is not an explicit private-person indicator counts."""
    if not name:
        return False
    lower = name.lower().strip()
    if len(lower) < 2:
        return False

    for indicator in PRIVATE_NAME_INDICATORS:
        if lower == indicator or lower.startswith(indicator + ' '):
            return False

    # Single-word brands ("Temacase") are agencies too
    return True


def classify_owner(
    agency_name: Optional[str] = None,
    advertiser: Optional[str] = None,
    contact_type: Optional[str] = None,
    agency_id: Optional[str] = None,
    description: Optional[str] = None,
    title: Optional[str] = None,
    contact: Optional[str] = None,
) -> OwnerClassification:
    """
    Decide whether a listing is advertised by a private seller or an agency.

    Signals, strongest first: an agency-looking name, the portal's
    advertiser field, the contact type, agency id plus name, agency
    keywords in the text, private keywords in the text.
    """
    if agency_name and looks_like_agency_name(agency_name):
        return OwnerClassification(
            'agency', agency_name, 'high',
            f'Agency name detected: "{agency_name}"',
        )

    if agency_name and is_private_marker(normalize_agency_name(agency_name)):
        return OwnerClassification('private', None, 'high', f'Private seller name: "{agency_name}"')

    if advertiser:
        value = advertiser.lower().strip()
        if value in ('privato', 'private', 'owner'):
            return OwnerClassification('private', None, 'high', f'advertiser == "{value}"')
        if value in ('agenzia', 'agency'):
            return OwnerClassification('agency', agency_name, 'high', f'advertiser == "{value}"')

    if contact_type and contact_type.lower().strip() in ('privato', 'private'):
        return OwnerClassification('private', None, 'high', 'contact type is private')

    if agency_id and agency_name:
        return OwnerClassification('agency', agency_name, 'high', 'Has both agency id and agency name')

    text = ' '.join([description or '', title or '', contact or '']).lower()
    agency_hits = [k for k in AGENCY_KEYWORDS if k in text]
    private_hits = [k for k in PRIVATE_KEYWORDS if k in text]

    # Agency wording is more specific than private wording
    if agency_hits:
        return OwnerClassification(
            'agency', None,
            'high' if len(agency_hits) >= 2 else 'medium',
            f"Agency keywords: {', '.join(agency_hits)}",
        )

    if private_hits:
        return OwnerClassification(
            'private', None,
            'high' if len(private_hits) >= 2 else 'medium',
            f"Private keywords: {', '.join(private_hits)}",
        )

    if agency_id:
        return OwnerClassification('agency', None, 'low', 'Has agency id (fallback)')

    return OwnerClassification('private', None, 'low', 'No agency identifiers found')
