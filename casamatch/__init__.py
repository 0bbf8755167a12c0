"""
casamatch
Property-client matching and multi-agency deduplication

Scores properties against buyer criteria, restricts matches to each
buyer's search area, and folds listings of the same property published
by several agencies into one shared record.
"""

__version__ = "0.1.0"

from .core.deduplication import PropertyDeduper
from .core.matching_engine import MatchingEngine

__all__ = ["MatchingEngine", "PropertyDeduper"]
