"""
Data models for the AtomSpace.

Plain dataclasses, serialized with the camelCase keys used by the
export/import blob.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


class AtomType(Enum):
    """Catalog of atom types the engine knows about."""
    # Nodes
    CONCEPT_NODE = "ConceptNode"
    PREDICATE_NODE = "PredicateNode"
    VARIABLE_NODE = "VariableNode"
    FUNCTION_NODE = "FunctionNode"
    CLASS_NODE = "ClassNode"
    FILE_NODE = "FileNode"
    PATTERN_NODE = "PatternNode"
    COMPLETION_SUGGESTION = "CompletionSuggestion"

    # Learning records
    LEARNING_RECORD = "LearningRecord"
    SUCCESS_PATTERN = "SuccessPattern"
    PERSONALIZATION_NODE = "PersonalizationNode"

    # Links
    INHERITANCE_LINK = "InheritanceLink"
    IMPLICATION_LINK = "ImplicationLink"
    EVALUATION_LINK = "EvaluationLink"
    LIST_LINK = "ListLink"

    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "AtomType":
        """Map an open type string onto the catalog, CUSTOM if unknown."""
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOM


@dataclass
class TruthValue:
    """How true (strength) and how certain (confidence)."""

    strength: float = 1.0
    confidence: float = 1.0

    def __post_init__(self):
        self.strength = _clamp(self.strength)
        self.confidence = _clamp(self.confidence)

    def to_dict(self) -> Dict[str, float]:
        return {"strength": self.strength, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TruthValue":
        return cls(strength=data["strength"], confidence=data["confidence"])


@dataclass
class AttentionValue:
    """Short, long and very-long term importance."""

    sti: float = 0.0
    lti: float = 0.0
    vlti: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"sti": self.sti, "lti": self.lti, "vlti": self.vlti}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttentionValue":
        return cls(
            sti=float(data.get("sti", 0.0)),
            lti=float(data.get("lti", 0.0)),
            vlti=float(data.get("vlti", 0.0)),
        )


@dataclass
class Atom:
    """A typed node or link in the AtomSpace."""

    type: str
    name: Optional[str] = None
    id: Optional[str] = None
    truth_value: Optional[TruthValue] = None
    attention_value: Optional[AttentionValue] = None
    outgoing: List["Atom"] = field(default_factory=list)
    incoming: List["Atom"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def atom_type(self) -> AtomType:
        return AtomType.parse(self.type)

    @property
    def is_link(self) -> bool:
        return bool(self.outgoing)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the interchange record."""
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "truthValue": self.truth_value.to_dict() if self.truth_value else None,
            "attentionValue": (
                self.attention_value.to_dict() if self.attention_value else None
            ),
            "outgoing": [a.to_dict() for a in self.outgoing],
            "incoming": [a.to_dict() for a in self.incoming],
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Atom":
        """Create from an interchange record (camelCase or snake_case keys)."""
        if not isinstance(data, dict):
            raise ValueError(f"Atom record must be an object, got {type(data).__name__}")
        if not isinstance(data.get("type"), str):
            raise ValueError("Atom record requires a string 'type'")

        tv = data.get("truthValue", data.get("truth_value"))
        av = data.get("attentionValue", data.get("attention_value"))
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("Atom 'metadata' must be an object")

        return cls(
            type=data["type"],
            name=data.get("name"),
            id=data.get("id"),
            truth_value=TruthValue.from_dict(tv) if tv else None,
            attention_value=AttentionValue.from_dict(av) if av else None,
            outgoing=[cls.from_dict(a) for a in data.get("outgoing") or []],
            incoming=[cls.from_dict(a) for a in data.get("incoming") or []],
            metadata=dict(metadata),
        )


@dataclass
class AtomPattern:
    """
    A query descriptor for the AtomSpace.

    Every field left as None is a wildcard. Thresholds match when each
    component of the atom's value meets or exceeds the threshold.
    """

    type: Optional[str] = None
    name: Optional[str] = None
    truth_value_threshold: Optional[TruthValue] = None
    attention_threshold: Optional[AttentionValue] = None

    def matches(self, atom: Atom) -> bool:
        if self.type is not None and atom.type != self.type:
            return False

        if self.name is not None and atom.name != self.name:
            return False

        if self.truth_value_threshold is not None:
            tv = atom.truth_value
            if tv is None:
                return False
            if (tv.strength < self.truth_value_threshold.strength
                    or tv.confidence < self.truth_value_threshold.confidence):
                return False

        if self.attention_threshold is not None:
            av = atom.attention_value
            if av is None:
                return False
            if (av.sti < self.attention_threshold.sti
                    or av.lti < self.attention_threshold.lti
                    or av.vlti < self.attention_threshold.vlti):
                return False

        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtomPattern":
        tv = data.get("truthValueThreshold", data.get("truth_value_threshold"))
        av = data.get("attentionThreshold", data.get("attention_threshold"))
        return cls(
            type=data.get("type"),
            name=data.get("name"),
            truth_value_threshold=TruthValue.from_dict(tv) if tv else None,
            attention_threshold=AttentionValue.from_dict(av) if av else None,
        )
