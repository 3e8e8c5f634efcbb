"""
Pattern Recognition for Atom Nexus.

Finds regularities in whatever the caller hands over, locally and
without any model dependency.

Input shapes:
1. Source text: a table of code detectors (declarations, async flows,
   dependency injection, singletons, reactive streams)
2. Sequences: progressions, repetition, nesting, atom clusters and
   naming conventions
3. Records: interaction rhythm, action flow, usage profiles

Every result carries a confidence in [0, 1], its supporting instances
and a metadata.patternType tag.
"""

from .types import (
    PatternInput,
    PatternResult,
    PatternType,
    RecognitionOptions,
    Scope,
)
from .extractor import CODE_DETECTORS, CodeDetector, ExtractionConfig, PatternExtractor, naming_style
from .analyzer import PatternAnalyzer
from .engine import PatternEngine

__all__ = [
    # Types
    "PatternInput",
    "PatternResult",
    "PatternType",
    "RecognitionOptions",
    "Scope",
    # Detection
    "CODE_DETECTORS",
    "CodeDetector",
    "ExtractionConfig",
    "PatternExtractor",
    "naming_style",
    # Core classes
    "PatternAnalyzer",
    "PatternEngine",
]
