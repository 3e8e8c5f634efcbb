"""
Atom Nexus - Core AtomSpace

Typed atoms with truth and attention values, held in a single
in-memory store with pattern queries and flat JSON export/import.
"""

from .models import Atom, AtomPattern, AtomType, AttentionValue, TruthValue
from .store import AtomStore

__all__ = [
    "AtomStore",
    "Atom",
    "AtomPattern",
    "AtomType",
    "AttentionValue",
    "TruthValue",
]
