"""
Atom Nexus - Cognitive Knowledge Engine.

An in-memory typed graph of atoms with pattern recognition, multi-strategy
reasoning and a learning layer that adapts both from recorded feedback.
"""

from .engine import CognitiveEngine
from .errors import AtomSpaceImportError, NexusError, NotFoundError

__version__ = "0.1.0"

__all__ = [
    "CognitiveEngine",
    "AtomSpaceImportError",
    "NexusError",
    "NotFoundError",
]
