"""
Address Normalizer

One place for the address heuristics every caller shares: splitting an
Italian street address into street / civic number / city, pulling a
portal listing id out of free text (email subjects, bodies, URLs), and
deciding whether a piece of text talks about a known property.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from casamatch.adapters.base_adapter import Property
from casamatch.utils.config import MatchingConfig

logger = logging.getLogger(__name__)

# e.g. https://www.immobiliare.it/annunci/119032725/
LISTING_URL_PATTERN = re.compile(r'/annunci/(\d+)', re.IGNORECASE)
# e.g. "annuncio 119032725", "codice: 119032725"
LISTING_ID_PATTERN = re.compile(r'\b(?:annuncio|codice|id)\s*:?\s*(\d{8,9})(?!\d)', re.IGNORECASE)

_WHITESPACE = re.compile(r'\s+')
_NUMBER = re.compile(r'\b(\d+)\b')


@dataclass(frozen=True)
class AddressComponents:
    street: Optional[str] = None
    number: Optional[str] = None
    city: Optional[str] = None

    def present(self) -> int:
        return sum(1 for part in (self.street, self.number, self.city) if part)


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(' ', text or '').strip().lower()


class AddressNormalizer:
    """
    Address parsing bound to a set of known cities and street keywords.

    Both lists come from :class:`MatchingConfig` so tests can swap them.
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()

        # Longest first so "viale" wins over "via"
        keywords = sorted(self.config.street_keywords, key=len, reverse=True)
        self._street_re = re.compile(
            r'\b(?:' + '|'.join(re.escape(k) for k in keywords) + r')\s+[^,\d]+',
            re.IGNORECASE,
        )
        cities = sorted(self.config.known_cities, key=len, reverse=True)
        self._city_re = re.compile(
            r'\b(?:' + '|'.join(re.escape(c) for c in cities) + r')\b',
            re.IGNORECASE,
        ) if cities else None

    def extract_components(self, address: str) -> AddressComponents:
        """Split an address into street, civic number and city tokens."""
        text = _collapse(address)
        if not text:
            return AddressComponents()

        street_match = self._street_re.search(text)
        number_match = _NUMBER.search(text)

        street = street_match.group(0).strip() if street_match else None

        # A city named inside the street ("Via Roma") is not the city
        rest = text
        if street_match:
            rest = text[:street_match.start()] + ' ' + text[street_match.end():]
        cities = self._city_re.findall(rest) if self._city_re else []

        return AddressComponents(
            street=street or None,
            number=number_match.group(1) if number_match else None,
            city=cities[-1] if cities else None,
        )

    def extract_listing_id(self, text: str) -> Optional[str]:
        """Portal listing id from a URL, else from an "annuncio/codice/id" mention."""
        if not text:
            return None

        match = LISTING_URL_PATTERN.search(text)
        if match:
            return match.group(1)

        match = LISTING_ID_PATTERN.search(text)
        if match:
            return match.group(1)

        return None

    def is_same_property(self, text: str, property: Property) -> bool:
        """
        Decide whether ``text`` refers to ``property``.

        A listing id equal to the property's source id settles it, and so
        does the whole stored address appearing in the text. Otherwise at
        least two of street / number / city found in the text must appear
        in the property's stored address.
        """
        listing_id = self.extract_listing_id(text)
        if listing_id and property.source_listing_id and listing_id == str(property.source_listing_id):
            logger.debug(f"Listing id {listing_id} matches property {property.id}")
            return True

        stored = _collapse(property.address)
        if not stored:
            return False

        if re.search(r'(?<!\w)' + re.escape(stored) + r'(?!\w)', _collapse(text)):
            return True

        parts = self.extract_components(text)
        matches = sum(
            1 for part in (parts.street, parts.number, parts.city)
            if part and part in stored
        )

        return matches >= 2

    def address_key(self, address: str) -> str:
        """Exact-identity key: lowercase, no commas or dots, single spaces."""
        return _WHITESPACE.sub(' ', re.sub(r'[,.]', ' ', address or '')).strip().lower()

    def is_generic_address(self, address: str) -> bool:
        """
        Too vague to identify a building: empty, a bare city name,
        no civic number, or very short.
        """
        text = _collapse(address)
        if not text:
            return True
        if text in self.config.known_cities or text in ('italy', 'italia'):
            return True
        if not re.search(r'\d', text):
            return True
        return len(text) < 5


_default = AddressNormalizer()


def extract_components(address: str) -> AddressComponents:
    return _default.extract_components(address)


def extract_listing_id(text: str) -> Optional[str]:
    return _default.extract_listing_id(text)


def is_same_property(text: str, property: Property) -> bool:
    return _default.is_same_property(text, property)
