"""
Pattern Extractor - Local Pattern Detection.

Detects patterns in three kinds of input, with no external services:
- Text: a table of regex code detectors (functions, classes, async,
  dependency injection, reactive streams, ...)
- Sequences: arithmetic/geometric progressions, repetition, nesting depth,
  and clusters/naming conventions over atoms
- Records: interaction rhythm, action flow and usage profiles

Confidences produced here are raw; PatternEngine rescales, filters and
ranks them.
"""

import json
import math
import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..core.models import Atom
from ..core.store import EXPORT_FIELDS
from .types import PatternResult, PatternType


# Per-category multipliers for code detectors
CATEGORY_WEIGHTS: Dict[PatternType, float] = {
    PatternType.DESIGN: 1.2,
    PatternType.ASYNC: 1.1,
    PatternType.REACTIVE: 1.15,
    PatternType.STRUCTURAL: 1.0,
    PatternType.SYNTAX: 0.8,
}


@dataclass(frozen=True)
class CodeDetector:
    """One entry of the code detector table."""
    name: str
    matcher: re.Pattern
    category: PatternType

    @property
    def weight(self) -> float:
        return CATEGORY_WEIGHTS[self.category]


CODE_DETECTORS: List[CodeDetector] = [
    CodeDetector(
        "function-declaration",
        re.compile(r"\b(?:function\s*\*?\s*[A-Za-z_$][\w$]*|def\s+[A-Za-z_]\w*)\s*\("),
        PatternType.SYNTAX,
    ),
    CodeDetector(
        "arrow-function",
        re.compile(r"(?:\([^()]*\)|\b[A-Za-z_$][\w$]*)\s*=>"),
        PatternType.SYNTAX,
    ),
    CodeDetector(
        "class-declaration",
        re.compile(r"\bclass\s+[A-Za-z_$][\w$]*"),
        PatternType.STRUCTURAL,
    ),
    CodeDetector(
        "async-await",
        re.compile(r"\basync\s+(?:function|def)\b|\basync\s*\(|\bawait\s+"),
        PatternType.ASYNC,
    ),
    CodeDetector(
        "promise-chain",
        re.compile(
            r"\.then\s*\(|\.catch\s*\(|\.finally\s*\(|\bnew\s+Promise\s*\("
            r"|\bPromise\.(?:all|allSettled|any|race)\s*\("
        ),
        PatternType.ASYNC,
    ),
    CodeDetector(
        "dependency-injection",
        re.compile(r"@[Ii]nject(?:able)?\s*\(|\bbind\s*\(\s*[\w$.]+\s*\)\s*\.to"),
        PatternType.DESIGN,
    ),
    CodeDetector(
        "singleton-pattern",
        re.compile(
            r"\.inSingletonScope\s*\(|\bgetInstance\s*\(|\bstatic\s+instance\b"
            r"|\b_instance\s*=\s*None\b"
        ),
        PatternType.DESIGN,
    ),
    CodeDetector(
        "observable-pattern",
        re.compile(
            r"\bObservable\b|\.subscribe\s*\(|\.pipe\s*\("
            r"|\bnew\s+(?:Behavior|Replay)?Subject\b|\bEventEmitter\b"
        ),
        PatternType.REACTIVE,
    ),
]


@dataclass
class ExtractionConfig:
    """Configuration for pattern extraction."""
    density_floor: float = 0.4              # density factor for a single sparse match
    density_slope: float = 0.3              # added per match per 100 characters
    max_sequence_window: int = 10           # elements checked for progressions
    ratio_tolerance: float = 0.01           # geometric ratio tolerance
    min_hierarchy_depth: int = 3            # report nesting at this depth or deeper
    arithmetic_confidence: float = 0.9
    geometric_confidence: float = 0.85
    usage_profile_confidence: float = 0.6


_NAME_TOKENS = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


def naming_style(name: str) -> str:
    """Classify an identifier as snake_case, camelCase, PascalCase or flat."""
    if "_" in name.strip("_"):
        return "snake_case"
    if re.search(r"[a-z][A-Z]", name):
        return "PascalCase" if name[0].isupper() else "camelCase"
    return "flat"


def _finite(value: Any) -> Optional[float]:
    """Value as a finite float, or None."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _as_number(value: Any) -> float:
    """Numeric JSON value as a finite float; anything else counts as 0."""
    number = _finite(value)
    return 0.0 if number is None else number


class PatternExtractor:
    """
    Extract raw patterns from text, sequences and records.

    Example:
        extractor = PatternExtractor()

        extractor.extract_code_patterns("function add(a, b) { return a + b; }")
        extractor.extract_structural_patterns([1, 3, 5, 7])
        extractor.extract_behavioral_patterns({"interactions": [...]})
    """

    def __init__(self, config: ExtractionConfig = None):
        self.config = config or ExtractionConfig()
        self.detectors: List[CodeDetector] = list(CODE_DETECTORS)

    # =========================================================================
    # Code
    # =========================================================================

    def extract_code_patterns(
        self,
        text: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[PatternResult]:
        """Run every code detector over the text."""
        context = context or {}
        if not text.strip():
            return []

        patterns = []
        for detector in self.detectors:
            matches = list(detector.matcher.finditer(text))
            if not matches:
                continue

            per_100_chars = len(matches) / len(text) * 100
            density_factor = min(
                1.0, self.config.density_floor + self.config.density_slope * per_100_chars
            )
            confidence = min(density_factor * detector.weight, 1.0)

            instances = [
                {
                    "match": m.group(0).strip(),
                    "line": text.count("\n", 0, m.start()) + 1,
                    "offset": m.start(),
                }
                for m in matches
            ]

            metadata = {
                "patternType": detector.category.value,
                "frequency": len(matches),
                "density": per_100_chars,
                "complexity": self._complexity(len(matches)),
            }
            if context.get("language"):
                metadata["language"] = context["language"]

            patterns.append(PatternResult(
                pattern={
                    "name": detector.name,
                    "type": PatternType.CODE.value,
                    "category": detector.category.value,
                    "matches": len(matches),
                },
                confidence=confidence,
                instances=instances,
                metadata=metadata,
            ))

        return patterns

    def _complexity(self, count: int) -> str:
        if count > 10:
            return "complex"
        if count > 3:
            return "moderate"
        return "simple"

    # =========================================================================
    # Sequences
    # =========================================================================

    def extract_structural_patterns(
        self,
        items: Sequence[Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> List[PatternResult]:
        """Detect progressions, repetition, nesting and atom regularities."""
        items = [self.as_atom(item) for item in items]
        if not items:
            return []

        patterns = []

        numbers = self._numeric(items)
        if numbers is not None:
            arithmetic = self._arithmetic_sequence(numbers)
            if arithmetic:
                patterns.append(arithmetic)
            geometric = self._geometric_sequence(numbers)
            if geometric:
                patterns.append(geometric)

        repetition = self._repetition(items)
        if repetition:
            patterns.append(repetition)

        hierarchy = self._hierarchy(items)
        if hierarchy:
            patterns.append(hierarchy)

        atoms = [item for item in items if isinstance(item, Atom)]
        if atoms:
            patterns.extend(self.extract_atom_patterns(atoms))

        return patterns

    def _numeric(self, items: List[Any]) -> Optional[List[float]]:
        if len(items) < 3:
            return None
        numbers = []
        for item in items:
            number = _finite(item) if isinstance(item, (int, float)) else None
            if number is None:
                return None
            numbers.append(number)
        return numbers

    def _arithmetic_sequence(self, numbers: List[float]) -> Optional[PatternResult]:
        window = numbers[:self.config.max_sequence_window]
        diffs = [b - a for a, b in zip(window, window[1:])]
        difference = diffs[0]
        if not math.isfinite(difference):
            return None
        if not all(math.isclose(d, difference, rel_tol=1e-9, abs_tol=1e-9) for d in diffs):
            return None

        return PatternResult(
            pattern={
                "type": "arithmetic-sequence",
                "commonDifference": difference,
                "start": window[0],
                "length": len(window),
            },
            confidence=self.config.arithmetic_confidence,
            instances=list(window),
            metadata={"patternType": PatternType.SEQUENCE.value},
        )

    def _geometric_sequence(self, numbers: List[float]) -> Optional[PatternResult]:
        window = numbers[:self.config.max_sequence_window]
        if any(n == 0 for n in window):
            return None

        ratios = [b / a for a, b in zip(window, window[1:])]
        ratio = ratios[0]
        if not all(abs(r - ratio) <= self.config.ratio_tolerance for r in ratios):
            return None

        return PatternResult(
            pattern={
                "type": "geometric-sequence",
                "commonRatio": ratio,
                "start": window[0],
                "length": len(window),
            },
            confidence=self.config.geometric_confidence,
            instances=list(window),
            metadata={"patternType": PatternType.SEQUENCE.value},
        )

    def _repetition(self, items: List[Any]) -> Optional[PatternResult]:
        if len(items) < 2:
            return None

        counts = Counter(self._element_key(item) for item in items)
        first_seen: Dict[str, Any] = {}
        for item in items:
            first_seen.setdefault(self._element_key(item), item)

        repeated = [(key, count) for key, count in counts.most_common() if count > 1]
        if not repeated:
            return None

        repeated_keys = {key for key, _ in repeated}
        occurrences = sum(count for _, count in repeated)
        frequency = occurrences / len(items)

        return PatternResult(
            pattern={
                "type": "repetition",
                "repetitions": [
                    {"element": first_seen[key], "count": count}
                    for key, count in repeated
                ],
                "frequency": frequency,
            },
            confidence=frequency,
            instances=[item for item in items if self._element_key(item) in repeated_keys],
            metadata={
                "patternType": PatternType.REPETITION.value,
                "frequency": frequency,
            },
        )

    def _hierarchy(self, items: List[Any]) -> Optional[PatternResult]:
        depth = self._depth(items)
        if depth < self.config.min_hierarchy_depth:
            return None

        nested = [item for item in items if self._depth(item) >= 2]
        return PatternResult(
            pattern={"type": "hierarchical", "depth": depth},
            confidence=min(1.0, 0.5 + 0.1 * depth),
            instances=nested,
            metadata={
                "patternType": PatternType.HIERARCHICAL.value,
                "depth": depth,
            },
        )

    def _depth(self, value: Any) -> int:
        """Nesting depth; scalars are 0, a flat container is 1."""
        if isinstance(value, Atom):
            return 1 + max((self._depth(child) for child in value.outgoing), default=0)
        if isinstance(value, dict):
            return 1 + max((self._depth(v) for v in value.values()), default=0)
        if isinstance(value, (list, tuple)):
            return 1 + max((self._depth(v) for v in value), default=0)
        return 0

    def _element_key(self, item: Any) -> str:
        if isinstance(item, Atom):
            return json.dumps(item.to_dict(), sort_keys=True, default=str)
        try:
            return json.dumps(item, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return repr(item)

    def as_atom(self, item: Any) -> Any:
        """Treat atom-shaped records as atoms."""
        if (isinstance(item, dict) and isinstance(item.get("type"), str)
                and set(item) <= EXPORT_FIELDS | {"truth_value", "attention_value"}):
            try:
                return Atom.from_dict(item)
            except (KeyError, TypeError, ValueError):
                return item
        return item

    # =========================================================================
    # Atoms
    # =========================================================================

    def extract_atom_patterns(self, atoms: List[Atom]) -> List[PatternResult]:
        """Type clusters and shared naming conventions across atoms."""
        patterns = []

        by_type: Dict[str, List[Atom]] = defaultdict(list)
        for atom in atoms:
            by_type[atom.type].append(atom)

        for atom_type, members in by_type.items():
            if len(members) < 2:
                continue
            patterns.append(PatternResult(
                pattern={
                    "type": "type-cluster",
                    "atomType": atom_type,
                    "count": len(members),
                },
                confidence=min(1.0, 0.4 + 0.1 * len(members)),
                instances=members,
                metadata={
                    "patternType": PatternType.SEMANTIC.value,
                    "frequency": len(members),
                },
            ))

        naming = self._naming_convention(atoms)
        if naming:
            patterns.append(naming)

        return patterns

    def _naming_convention(self, atoms: List[Atom]) -> Optional[PatternResult]:
        named = [atom for atom in atoms if atom.name]
        if len(named) < 2:
            return None

        token_sets = [
            {t.lower() for t in _NAME_TOKENS.findall(atom.name)}
            for atom in named
        ]
        token_counts = Counter(token for tokens in token_sets for token in tokens)
        shared = [token for token, count in token_counts.most_common() if count >= 2]
        if not shared:
            return None

        shared_set = set(shared)
        instances = [
            atom for atom, tokens in zip(named, token_sets)
            if tokens & shared_set
        ]
        coverage = len(instances) / len(named)

        return PatternResult(
            pattern={
                "type": "naming-convention",
                "sharedTokens": shared,
                "style": self._naming_style([atom.name for atom in instances]),
            },
            confidence=0.5 + 0.4 * coverage,
            instances=instances,
            metadata={
                "patternType": PatternType.SEMANTIC.value,
                "coverage": coverage,
            },
        )

    def _naming_style(self, names: List[str]) -> str:
        styles = {naming_style(name) for name in names}
        return styles.pop() if len(styles) == 1 else "mixed"

    # =========================================================================
    # Records
    # =========================================================================

    def extract_behavioral_patterns(
        self,
        record: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> List[PatternResult]:
        """Interaction rhythm, action flow and usage profile from a record."""
        patterns = []

        interactions = self._timestamped(record.get("interactions"))
        if len(interactions) >= 2:
            patterns.append(self._interaction_rhythm(interactions))
            flow = self._action_flow(interactions)
            if flow:
                patterns.append(flow)

        usage = record.get("usage")
        if isinstance(usage, dict):
            patterns.append(self._usage_profile(usage))

        return patterns

    def _timestamped(self, interactions: Any) -> List[Dict[str, Any]]:
        if not isinstance(interactions, list):
            return []
        valid = [
            i for i in interactions
            if isinstance(i, dict)
            and isinstance(i.get("timestamp"), (int, float))
            and _finite(i["timestamp"]) is not None
        ]
        return sorted(valid, key=lambda i: i["timestamp"])

    def _interaction_rhythm(self, interactions: List[Dict[str, Any]]) -> PatternResult:
        timestamps = np.array([i["timestamp"] for i in interactions], dtype=float)
        intervals = np.diff(timestamps)
        mean_interval = float(np.mean(intervals))
        std_interval = float(np.std(intervals))

        if mean_interval > 0:
            variability = std_interval / mean_interval
            consistency = max(0.0, 1.0 - variability)
        else:
            variability = 0.0
            consistency = 0.0

        action_counts = Counter(
            str(i["action"]) for i in interactions if "action" in i
        )

        return PatternResult(
            pattern={
                "type": "interaction-rhythm",
                "averageInterval": mean_interval,
                "consistency": consistency,
                "actions": dict(action_counts),
            },
            confidence=0.2 + 0.8 * consistency,
            instances=interactions,
            metadata={
                "patternType": PatternType.INTERACTION_RHYTHM.value,
                "timespan": float(timestamps[-1] - timestamps[0]),
                "consistency": consistency,
                "variability": variability,
            },
        )

    def _action_flow(self, interactions: List[Dict[str, Any]]) -> Optional[PatternResult]:
        actions = [str(i["action"]) for i in interactions if "action" in i]
        transitions = Counter(zip(actions, actions[1:]))
        if not transitions:
            return None

        (from_action, to_action), count = transitions.most_common(1)[0]
        if count < 2:
            return None

        rate = count / (len(actions) - 1)
        return PatternResult(
            pattern={
                "type": "action-flow",
                "from": from_action,
                "to": to_action,
                "count": count,
            },
            confidence=rate,
            instances=[
                {"from": a, "to": b}
                for a, b in zip(actions, actions[1:])
                if (a, b) == (from_action, to_action)
            ],
            metadata={
                "patternType": PatternType.SEQUENTIAL.value,
                "frequency": count,
            },
        )

    def _usage_profile(self, usage: Dict[str, Any]) -> PatternResult:
        features = usage.get("features")
        features = list(features) if isinstance(features, (list, tuple)) else []
        frequency = _as_number(usage.get("frequency"))
        duration = _as_number(usage.get("duration"))
        tasks = _as_number(usage.get("tasksCompleted", usage.get("tasks")))
        time_spent = _as_number(usage.get("timeSpent", usage.get("time", duration)))
        efficiency = tasks / time_spent if time_spent > 0 else 0.0

        return PatternResult(
            pattern={
                "type": "usage-profile",
                "frequency": frequency,
                "duration": duration,
                "features": features,
                "efficiency": efficiency,
            },
            confidence=self.config.usage_profile_confidence,
            instances=features,
            metadata={
                "patternType": PatternType.USAGE_PROFILE.value,
                "efficiency": efficiency,
                "frequency": frequency,
            },
        )
