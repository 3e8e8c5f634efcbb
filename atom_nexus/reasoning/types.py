"""
Reasoning Type Definitions.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..core.models import Atom


class ReasoningType(Enum):
    """
    Reasoning strategies a query can ask for.

    UNKNOWN stands in for any type string outside this vocabulary.
    """
    DEDUCTIVE = "deductive"
    INDUCTIVE = "inductive"
    ABDUCTIVE = "abductive"
    CODE_ANALYSIS = "code-analysis"
    CODE_COMPLETION = "code-completion"
    PATTERN_MATCHING = "pattern-matching"
    HYBRID = "hybrid"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union[str, "ReasoningType", None]) -> "ReasoningType":
        """No type, or a "mixed" request, means hybrid reasoning."""
        if isinstance(value, ReasoningType):
            return value
        if value is None or value in ("", "mixed"):
            return cls.HYBRID
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ReasoningConfig:
    """Confidence policy and limits for each strategy."""
    deductive_ceiling: float = 0.95
    deductive_decay: float = 0.95           # confidence kept per inference step
    max_inference_depth: int = 3
    inductive_ceiling: float = 0.75
    inductive_prior: int = 2                # pseudo-count in n / (n + prior)
    abductive_ceiling: float = 0.5
    abductive_factor: float = 0.5
    complexity_threshold: float = 10.0
    completion_limit: int = 10
    completion_ceiling: float = 0.9


@dataclass
class ReasoningQuery:
    """A request to reason over atoms."""
    type: Optional[str] = None
    atoms: Optional[List[Atom]] = None
    context: Dict[str, Any] = field(default_factory=dict)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def reasoning_type(self) -> ReasoningType:
        return ReasoningType.parse(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReasoningQuery":
        atoms = data.get("atoms")
        return cls(
            type=data.get("type"),
            atoms=(
                [a if isinstance(a, Atom) else Atom.from_dict(a) for a in atoms]
                if atoms is not None else None
            ),
            context=dict(data.get("context") or {}),
            parameters=dict(data.get("parameters") or {}),
        )


@dataclass
class ReasoningResult:
    """Outcome of a reasoning strategy."""
    conclusion: List[Atom] = field(default_factory=list)
    confidence: float = 0.0
    explanation: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        confidence = float(self.confidence)
        self.confidence = max(0.0, min(1.0, confidence)) if math.isfinite(confidence) else 0.0

    @property
    def failed(self) -> bool:
        return bool(self.metadata.get("error"))

    @classmethod
    def failure(cls, explanation: str, reasoning_type: str) -> "ReasoningResult":
        return cls(
            conclusion=[],
            confidence=0.0,
            explanation=explanation,
            metadata={"error": True, "reasoningType": reasoning_type},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conclusion": [a.to_dict() for a in self.conclusion],
            "confidence": self.confidence,
            "explanation": self.explanation,
            "metadata": self.metadata,
        }
