"""
Code Reasoning - Analysis and Completion over Code Atoms.

Code atoms (FunctionNode, ClassNode, VariableNode, FileNode) describe a
codebase the way the caller indexed it. Two strategies work on them:

1. Analysis: quality metrics, detected design patterns and concrete
   suggestions, optionally enriched by scanning source text
2. Completion: ranked CompletionSuggestion atoms built from recognized
   patterns over the available symbols and from a deductive pass
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.models import Atom, AtomType, TruthValue
from ..core.store import AtomStore
from ..patterns import PatternEngine, PatternInput, Scope, naming_style
from .strategies import deductive_reasoning
from .types import ReasoningConfig, ReasoningQuery, ReasoningResult, ReasoningType

logger = logging.getLogger(__name__)

CODE_ATOM_TYPES = (
    AtomType.FUNCTION_NODE.value,
    AtomType.CLASS_NODE.value,
    AtomType.VARIABLE_NODE.value,
    AtomType.FILE_NODE.value,
)

SYMBOL_ATOM_TYPES = (
    AtomType.VARIABLE_NODE.value,
    AtomType.FUNCTION_NODE.value,
    AtomType.CONCEPT_NODE.value,
)

# Class name suffix -> design pattern
DESIGN_PATTERN_SUFFIXES = {
    "Factory": "factory",
    "Service": "service",
    "Singleton": "singleton",
    "Builder": "builder",
    "Adapter": "adapter",
    "Observer": "observer",
    "Repository": "repository",
    "Strategy": "strategy",
}

RECENT_PATTERN_LIMIT = 10
DOMINANT_CONCEPT_LIMIT = 5

PATTERN_SUGGESTION_CONFIDENCE = 0.8
REASONING_SUGGESTION_CONFIDENCE = 0.7


def _complexity(atom: Atom) -> Optional[float]:
    value = atom.metadata.get("complexity")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class CodeAnalyzer:
    """
    Quality metrics and suggestions for a set of code atoms.

    Example:
        analyzer = CodeAnalyzer(PatternEngine())
        result = analyzer.analyze(atoms, ReasoningQuery(type="code-analysis"))
        result.metadata["qualityMetrics"]["functionCount"]
    """

    def __init__(self, pattern_engine: PatternEngine, config: ReasoningConfig = None):
        self.pattern_engine = pattern_engine
        self.config = config or ReasoningConfig()

    def analyze(self, atoms: List[Atom], query: ReasoningQuery) -> ReasoningResult:
        code_atoms = [a for a in atoms if a.type in CODE_ATOM_TYPES]
        functions = [a for a in code_atoms if a.type == AtomType.FUNCTION_NODE.value]
        classes = [a for a in code_atoms if a.type == AtomType.CLASS_NODE.value]
        variables = [a for a in code_atoms if a.type == AtomType.VARIABLE_NODE.value]

        code_text = query.context.get("code")
        code_patterns = []
        if isinstance(code_text, str) and code_text.strip():
            code_patterns = self.pattern_engine.recognize_patterns(
                PatternInput(data=code_text, context=query.context)
            )

        if not code_atoms and not code_patterns:
            return ReasoningResult(
                confidence=0.0,
                explanation="No code atoms or source text to analyze",
                metadata={
                    "reasoningType": ReasoningType.CODE_ANALYSIS.value,
                    "qualityMetrics": {},
                    "suggestions": [],
                },
            )

        complexities = [c for c in (_complexity(f) for f in functions) if c is not None]
        high_complexity = [
            f for f in functions
            if (_complexity(f) or 0.0) > self.config.complexity_threshold
        ]
        consistency, dominant_style = self._naming_consistency(code_atoms)
        design_patterns = self._design_patterns(classes)

        metrics = {
            "functionCount": len(functions),
            "classCount": len(classes),
            "variableCount": len(variables),
            "averageComplexity": float(np.mean(complexities)) if complexities else 0.0,
            "maxComplexity": float(np.max(complexities)) if complexities else 0.0,
            "highComplexityFunctions": [f.name for f in high_complexity],
            "namingConsistency": consistency,
            "namingStyle": dominant_style,
            "designPatterns": design_patterns,
            "codePatterns": [p.label for p in code_patterns],
        }
        metrics["maintainability"] = self._maintainability(
            len(high_complexity), len(functions), consistency
        )

        suggestions = self._suggestions(code_atoms, high_complexity, consistency, dominant_style)

        confidence = min(0.9, 0.5 + 0.05 * (len(code_atoms) + len(code_patterns)))
        conclusion = [Atom(
            type=AtomType.CONCEPT_NODE.value,
            name="code-quality",
            truth_value=TruthValue(strength=metrics["maintainability"], confidence=confidence),
            metadata={"derivedBy": ReasoningType.CODE_ANALYSIS.value},
        )]
        for suggestion in suggestions:
            conclusion.append(Atom(
                type=AtomType.EVALUATION_LINK.value,
                name=suggestion["type"],
                outgoing=[
                    Atom(type=AtomType.PREDICATE_NODE.value, name=suggestion["type"]),
                    Atom(type=AtomType.CONCEPT_NODE.value, name=suggestion.get("target")),
                ],
                metadata={"message": suggestion["message"]},
            ))

        return ReasoningResult(
            conclusion=conclusion,
            confidence=confidence,
            explanation=(
                f"Analyzed {len(functions)} functions, {len(classes)} classes and "
                f"{len(variables)} variables; {len(suggestions)} suggestion(s)"
            ),
            metadata={
                "reasoningType": ReasoningType.CODE_ANALYSIS.value,
                "qualityMetrics": metrics,
                "suggestions": suggestions,
            },
        )

    def _naming_consistency(self, atoms: List[Atom]) -> tuple:
        """Share of named atoms that follow the most common naming style."""
        styles = Counter(
            naming_style(a.name) for a in atoms
            if a.name and a.type != AtomType.CLASS_NODE.value and a.type != AtomType.FILE_NODE.value
        )
        styles.pop("flat", None)
        if not styles:
            return 1.0, None
        style, count = styles.most_common(1)[0]
        return count / sum(styles.values()), style

    def _design_patterns(self, classes: List[Atom]) -> List[Dict[str, str]]:
        found = []
        for atom in classes:
            for suffix, pattern in DESIGN_PATTERN_SUFFIXES.items():
                if atom.name and atom.name.endswith(suffix):
                    found.append({"class": atom.name, "pattern": pattern})
                    break
        return found

    def _maintainability(self, high: int, total: int, consistency: float) -> float:
        score = 1.0
        if total:
            score -= 0.5 * (high / total)
        score -= 0.2 * (1.0 - consistency)
        return max(0.0, min(1.0, score))

    def _suggestions(
        self,
        atoms: List[Atom],
        high_complexity: List[Atom],
        consistency: float,
        dominant_style: Optional[str],
    ) -> List[Dict[str, Any]]:
        suggestions = []

        for atom in high_complexity:
            suggestions.append({
                "type": "reduce-complexity",
                "target": atom.name,
                "message": (
                    f"Function {atom.name} has complexity {_complexity(atom):g}; "
                    f"consider splitting it"
                ),
            })

        untrusted = [a.name for a in atoms if a.truth_value is None]
        if untrusted:
            suggestions.append({
                "type": "add-truth-values",
                "target": None,
                "message": f"{len(untrusted)} code atom(s) carry no truth value",
                "atoms": untrusted,
            })

        if consistency < 1.0:
            suggestions.append({
                "type": "consistent-naming",
                "target": None,
                "message": f"Mixed naming styles; {dominant_style} is used most",
            })

        return suggestions


class CodeCompleter:
    """
    Ranked completion suggestions from patterns and deduction.

    Example:
        completer = CodeCompleter(PatternEngine(), store)
        result = completer.complete(atoms, ReasoningQuery(
            type="code-completion",
            context={"language": "typescript", "prefix": "get"},
        ))
    """

    def __init__(
        self,
        pattern_engine: PatternEngine,
        store: AtomStore,
        config: ReasoningConfig = None,
    ):
        self.pattern_engine = pattern_engine
        self.store = store
        self.config = config or ReasoningConfig()

    def complete(self, atoms: List[Atom], query: ReasoningQuery) -> ReasoningResult:
        summary = self.summarize(atoms, query.context)
        symbols = [a for a in atoms if a.type in SYMBOL_ATOM_TYPES]

        candidates = self._pattern_candidates(symbols, query.context)
        candidates.extend(self._reasoning_candidates(atoms, query))
        ranked = self._rank(candidates, query.context)

        if not ranked:
            return ReasoningResult(
                confidence=0.0,
                explanation="No completion candidates found",
                metadata={
                    "reasoningType": ReasoningType.CODE_COMPLETION.value,
                    "suggestionCount": 0,
                    "context": summary,
                },
            )

        mean_confidence = float(np.mean([c.truth_value.confidence for c in ranked]))
        top = ranked[:self.config.completion_limit]
        strategies = sorted({c.metadata["suggestionType"] for c in ranked})

        return ReasoningResult(
            conclusion=top,
            confidence=min(self.config.completion_ceiling, mean_confidence * 0.9),
            explanation=(
                f"Generated {len(ranked)} completion candidate(s) from "
                f"{', '.join(strategies)}; returning top {len(top)}"
            ),
            metadata={
                "reasoningType": ReasoningType.CODE_COMPLETION.value,
                "contextType": query.context.get("language"),
                "suggestionCount": len(ranked),
                "completionStrategies": strategies,
                "context": summary,
            },
        )

    def summarize(self, atoms: List[Atom], context: Dict[str, Any]) -> Dict[str, Any]:
        """Scope, available symbols, recent patterns and dominant concepts."""
        stored = self.store.all()
        recent = [a for a in stored if a.type == AtomType.PATTERN_NODE.value]
        concepts = [a for a in stored if a.type == AtomType.CONCEPT_NODE.value]

        return {
            "language": context.get("language"),
            "scope": self._scope(atoms, context),
            "availableSymbols": [
                a.name for a in atoms if a.type in SYMBOL_ATOM_TYPES and a.name
            ],
            "recentPatterns": [a.name for a in recent[-RECENT_PATTERN_LIMIT:]],
            "dominantConcepts": [a.name for a in concepts[:DOMINANT_CONCEPT_LIMIT]],
        }

    def _scope(self, atoms: List[Atom], context: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(context.get("scope"), dict):
            return context["scope"]
        for atom in reversed(atoms):
            if atom.type == AtomType.FUNCTION_NODE.value:
                return {"type": "function", "name": atom.name}
            if atom.type == AtomType.CLASS_NODE.value:
                return {"type": "class", "name": atom.name}
        return {"type": "global", "name": None}

    def _pattern_candidates(self, symbols: List[Atom], context: Dict[str, Any]) -> List[Atom]:
        if not symbols:
            return []

        candidates = []
        patterns = self.pattern_engine.recognize_patterns(
            PatternInput(data=symbols, context=context, scope=Scope.LOCAL.value)
        )
        for pattern in patterns:
            for instance in pattern.instances:
                if not isinstance(instance, Atom) or not instance.name:
                    continue
                candidates.append(Atom(
                    type=AtomType.COMPLETION_SUGGESTION.value,
                    name=instance.name,
                    truth_value=TruthValue(
                        strength=pattern.confidence,
                        confidence=PATTERN_SUGGESTION_CONFIDENCE,
                    ),
                    metadata={
                        "suggestionType": "pattern-based",
                        "pattern": pattern.label,
                        "symbolType": instance.type,
                    },
                ))
        return candidates

    def _reasoning_candidates(self, atoms: List[Atom], query: ReasoningQuery) -> List[Atom]:
        result = deductive_reasoning(atoms, query, self.config)
        return [
            Atom(
                type=AtomType.COMPLETION_SUGGESTION.value,
                name=conclusion.name,
                truth_value=TruthValue(
                    strength=result.confidence,
                    confidence=REASONING_SUGGESTION_CONFIDENCE,
                ),
                metadata={
                    "suggestionType": "reasoning-based",
                    "rule": conclusion.metadata.get("rule"),
                    "symbolType": conclusion.type,
                },
            )
            for conclusion in result.conclusion
            if conclusion.name
        ]

    def _relevance(self, candidate: Atom, context: Dict[str, Any]) -> float:
        prefix = context.get("prefix")
        if isinstance(prefix, str) and prefix:
            return 1.0 if candidate.name.lower().startswith(prefix.lower()) else 0.0
        source = candidate.metadata.get("suggestionType")
        if context.get("preferPatterns") and source == "pattern-based":
            return 1.0
        if context.get("preferReasoning") and source == "reasoning-based":
            return 1.0
        return 0.5

    def _rank(self, candidates: List[Atom], context: Dict[str, Any]) -> List[Atom]:
        """Score, keep the best candidate per name and sort descending."""
        best: Dict[str, Atom] = {}
        for candidate in candidates:
            tv = candidate.truth_value
            score = tv.strength + 0.3 * tv.confidence + 0.2 * self._relevance(candidate, context)
            candidate.metadata["score"] = score

            current = best.get(candidate.name)
            if current is None or current.metadata["score"] < score:
                best[candidate.name] = candidate

        return sorted(best.values(), key=lambda c: c.metadata["score"], reverse=True)
