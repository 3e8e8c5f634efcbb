"""
Pattern Type Definitions.

Recognition inputs, options and results shared by the detectors and
the pattern engine.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PatternType(Enum):
    """
    Tags carried in a result's metadata.patternType.

    CUSTOM is the escape hatch for tags outside this vocabulary.
    """
    # Broad families
    CODE = "code"
    STRUCTURAL = "structural"
    BEHAVIORAL = "behavioral"

    # Code detector categories
    SYNTAX = "syntax-pattern"
    DESIGN = "design-pattern"
    ASYNC = "async-pattern"
    REACTIVE = "reactive-pattern"

    # Structural
    SEQUENCE = "sequence"
    REPETITION = "repetition"
    HIERARCHICAL = "hierarchical"
    SEMANTIC = "semantic"

    # Behavioral
    INTERACTION_RHYTHM = "interaction-rhythm"
    USAGE_PROFILE = "usage-profile"
    SEQUENTIAL = "sequential"

    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "PatternType":
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOM


class Scope(Enum):
    """Where a recognition request applies."""
    LOCAL = "local"
    GLOBAL = "global"
    PROJECT = "project"


@dataclass
class RecognitionOptions:
    """Post-processing configuration for pattern recognition."""
    max_results: int = 10
    min_confidence: float = 0.1
    pattern_types: Optional[List[str]] = None
    include_low_confidence: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RecognitionOptions":
        data = data or {}
        return cls(
            max_results=data.get("maxResults", data.get("max_results", 10)),
            min_confidence=data.get("minConfidence", data.get("min_confidence", 0.1)),
            pattern_types=data.get("patternTypes", data.get("pattern_types")),
            include_low_confidence=data.get(
                "includeLowConfidence", data.get("include_low_confidence", False)
            ),
        )


@dataclass
class PatternInput:
    """A recognition request."""
    data: Any
    context: Dict[str, Any] = field(default_factory=dict)
    scope: Optional[str] = None
    options: RecognitionOptions = field(default_factory=RecognitionOptions)


@dataclass
class PatternResult:
    """
    A recognized regularity.

    `pattern` describes what was found (name or type plus structural
    parameters); `instances` are the supporting elements.
    """
    pattern: Dict[str, Any]
    confidence: float
    instances: List[Any] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        confidence = float(self.confidence)
        self.confidence = max(0.0, min(1.0, confidence)) if math.isfinite(confidence) else 0.0

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.parse(self.metadata.get("patternType", ""))

    @property
    def label(self) -> str:
        return str(self.pattern.get("name") or self.pattern.get("type") or "pattern")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "confidence": self.confidence,
            "instances": [_plain(i) for i in self.instances],
            "metadata": self.metadata,
        }


def _plain(value: Any) -> Any:
    """Turn atoms inside instances into plain records."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
